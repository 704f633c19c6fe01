"""Configuration schema and YAML IO for Hessian estimation runs."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, get_args, get_type_hints

import yaml

from hessian_estimator.errors import ConfigError

__all__ = [
    "DataConfig",
    "ModelConfig",
    "OutputConfig",
    "RuntimeConfig",
    "EstimatorConfig",
    "SUPPORTED_DTYPES",
    "load_config",
    "save_config",
    "validate_config",
    "apply_overrides",
]

SUPPORTED_DTYPES = ("float32", "float64")


@dataclass(frozen=True)
class DataConfig:
    n_inputs: int | None = None
    n_classes: int | None = None
    data_filename: str | None = None
    max_load: int = -1
    binary_mode: bool = False


@dataclass(frozen=True)
class ModelConfig:
    model_filename: str | None = None
    model_label: str = ""


@dataclass(frozen=True)
class OutputConfig:
    output_root: str = "."
    save_binary: bool = False


@dataclass(frozen=True)
class RuntimeConfig:
    device: str = "cpu"
    dtype: str = "float64"
    log_level: str = "INFO"
    show_progress: bool = True


@dataclass(frozen=True)
class EstimatorConfig:
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    @property
    def output_dir(self) -> Path:
        """Directory receiving the eigen files: ``<output_root>/hessian<label>``."""
        return Path(self.output.output_root) / f"hessian{self.model.model_label}"


def _dict_to_dataclass(cls: type, data: Mapping[str, Any]) -> Any:
    """Recursively convert a dict to a frozen dataclass instance."""
    hints = get_type_hints(cls)
    field_types = {f.name: hints[f.name] for f in dataclasses.fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            raise ConfigError(f"Unknown config key '{key}' for {cls.__name__}")
        ft = field_types[key]
        if dataclasses.is_dataclass(ft):
            if not isinstance(value, Mapping):
                raise ConfigError(f"Config section '{key}' must be a mapping")
            kwargs[key] = _dict_to_dataclass(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def apply_overrides(
    config: EstimatorConfig, overrides: Mapping[str, Mapping[str, Any]]
) -> EstimatorConfig:
    """Return a copy of ``config`` with per-section overrides applied.

    ``None`` values are treated as "not given" and leave the current value
    untouched, so parsed CLI namespaces can be passed through directly.
    """
    sections: dict[str, Any] = {}
    for section_name, values in overrides.items():
        if section_name not in {f.name for f in dataclasses.fields(EstimatorConfig)}:
            raise ConfigError(f"Unknown config section '{section_name}'")
        section = getattr(config, section_name)
        known = {f.name for f in dataclasses.fields(section)}
        changes = {}
        for key, value in values.items():
            if key not in known:
                raise ConfigError(f"Unknown config key '{key}' for {type(section).__name__}")
            if value is not None:
                changes[key] = value
        sections[section_name] = dataclasses.replace(section, **changes)
    return dataclasses.replace(config, **sections)


def _check_types(section: Any) -> None:
    """Reject values whose type does not match the section's annotations."""
    hints = get_type_hints(type(section))
    for f in dataclasses.fields(section):
        value = getattr(section, f.name)
        allowed = get_args(hints[f.name]) or (hints[f.name],)
        if value is None and type(None) in allowed:
            continue
        # bool is an int subclass, so it only passes where bool is declared
        if isinstance(value, allowed) and (bool in allowed or not isinstance(value, bool)):
            continue
        expected = " or ".join(t.__name__ for t in allowed if t is not type(None))
        raise ConfigError(f"{f.name} must be {expected}, got {type(value).__name__} {value!r}")


def validate_config(config: EstimatorConfig) -> EstimatorConfig:
    """Check that every required field is set and values are in range."""
    for section in (config.data, config.model, config.output, config.runtime):
        _check_types(section)

    missing = [
        name
        for name, value in (
            ("n_inputs", config.data.n_inputs),
            ("n_classes", config.data.n_classes),
            ("data_filename", config.data.data_filename),
            ("model_filename", config.model.model_filename),
        )
        if value is None
    ]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    if config.data.n_inputs <= 0:
        raise ConfigError("n_inputs must be positive")
    if config.data.n_classes <= 0:
        raise ConfigError("n_classes must be positive")
    if config.runtime.dtype not in SUPPORTED_DTYPES:
        raise ConfigError(
            f"Unsupported dtype '{config.runtime.dtype}'. Expected one of {list(SUPPORTED_DTYPES)}"
        )
    if not isinstance(getattr(logging, str(config.runtime.log_level).upper(), None), int):
        raise ConfigError(f"Unknown log level '{config.runtime.log_level}'")
    return config


def load_config(config_path: str | Path) -> EstimatorConfig:
    """Load a YAML config. Required fields may still be filled in by the CLI."""
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {config_path}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    return _dict_to_dataclass(EstimatorConfig, raw)


def save_config(config: EstimatorConfig, save_path: str | Path) -> None:
    """Save config to YAML."""
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    with open(save_path, "w") as f:
        yaml.dump(dataclasses.asdict(config), f, default_flow_style=False)
