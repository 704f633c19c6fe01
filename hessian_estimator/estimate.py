"""Hessian estimation entry point.

Estimates the loss Hessian of a trained stacked autoencoder with the
covariance of per-example gradients, eigendecomposes it and writes the
eigenpairs, sorted by decreasing eigenvalue, under ``hessian<model_label>/``.

Usage:
    hessian-estimator 784 10 train.amat csae.pt -model_label _run0
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import time
from pathlib import Path
from typing import NamedTuple

import torch

from hessian_estimator.config import (
    SUPPORTED_DTYPES,
    EstimatorConfig,
    apply_overrides,
    load_config,
    save_config,
    validate_config,
)
from hessian_estimator.data import load_class_dataset
from hessian_estimator.errors import ConfigError, EstimationError, HessianEstimatorError
from hessian_estimator.estimation import (
    ParameterGroups,
    center_gradients,
    collect_gradients,
    gradient_covariance,
    mean_squared_norm,
    sort_eigenpairs,
    symmetric_eigendecomposition,
)
from hessian_estimator.models import load_model
from hessian_estimator.output import (
    prepare_output_dir,
    write_binary,
    write_eigenvalues,
    write_eigenvectors,
    write_summary,
)
from hessian_estimator.runtime_log import log_event, setup_logging

__all__ = ["HessianEstimate", "estimate_hessian", "build_parser", "config_from_args", "main"]

logger = logging.getLogger(__name__)


class HessianEstimate(NamedTuple):
    eigenvalues: torch.Tensor
    eigenvectors: torch.Tensor
    covariance: torch.Tensor
    gradient_mean: torch.Tensor
    mean_norm2: float
    n_examples: int
    n_params: int
    output_dir: Path
    files: dict[str, Path]


def estimate_hessian(config: EstimatorConfig) -> HessianEstimate:
    """Run the full estimation described by a validated ``config``."""
    device = torch.device(config.runtime.device)
    dtype = getattr(torch, config.runtime.dtype)
    timings: dict[str, float] = {}

    data = load_class_dataset(config.data)
    model = load_model(
        config.model.model_filename,
        device=device,
        dtype=dtype,
        n_inputs=config.data.n_inputs,
        n_classes=config.data.n_classes,
    )

    groups = ParameterGroups.from_module(model)
    n_examples, n_params = len(data), groups.total
    logger.info(f"{n_params} parameters.")
    if n_examples < 2:
        raise EstimationError(f"Need at least 2 examples to estimate a covariance, got {n_examples}")

    start = time.perf_counter()
    gradients = collect_gradients(model, data, groups=groups, show_progress=config.runtime.show_progress)
    timings["collect_gradients"] = time.perf_counter() - start

    mean_norm2 = mean_squared_norm(gradients)
    logger.info(f"mean_norm2 = {mean_norm2}")

    logger.info("Computing the mean of the gradients.")
    logger.info("Centering the gradients.")
    gradient_mean = center_gradients(gradients)

    logger.info("Computing the covariance.")
    start = time.perf_counter()
    covariance = gradient_covariance(gradients)
    del gradients
    timings["covariance"] = time.perf_counter() - start

    logger.info("Performing the eigendecomposition.")
    start = time.perf_counter()
    eigen = symmetric_eigendecomposition(covariance)
    timings["eigendecomposition"] = time.perf_counter() - start

    logger.info("Sorting the eigen values-vectors")
    eigenvalues, eigenvectors = sort_eigenpairs(eigen)

    logger.info("Saving the results")
    output_dir = prepare_output_dir(config.output_dir)
    files = {
        "eigenvals": write_eigenvalues(output_dir, eigenvalues),
        "eigenvecs": write_eigenvectors(output_dir, eigenvectors),
    }
    if config.output.save_binary:
        files["eigenvals_bin"], files["eigenvecs_bin"] = write_binary(output_dir, eigenvalues, eigenvectors)

    save_config(config, output_dir / "config.yaml")
    files["config"] = output_dir / "config.yaml"
    files["summary"] = write_summary(output_dir, {
        "n_examples": n_examples,
        "n_params": n_params,
        "parameter_groups": [
            {**group._asdict(), "mean_gradient_norm": groups.view(gradient_mean, group.name).norm().item()}
            for group in groups
        ],
        "mean_norm2": mean_norm2,
        "top_eigenvalues": eigenvalues[:10].tolist(),
        "timings": timings,
        "config": dataclasses.asdict(config),
    })

    log_event(
        "hessian_estimated",
        n_examples=n_examples,
        n_params=n_params,
        mean_norm2=mean_norm2,
        output_dir=output_dir,
    )

    return HessianEstimate(
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        covariance=covariance,
        gradient_mean=gradient_mean,
        mean_norm2=mean_norm2,
        n_examples=n_examples,
        n_params=n_params,
        output_dir=output_dir,
        files=files,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hessian-estimator",
        description=(
            "Estimate the hessian with the covariance approx. "
            "The covariance is fully computed and so is the eigendecomposition."
        ),
        allow_abbrev=False,
    )
    parser.add_argument("n_inputs", nargs="?", type=int, default=None, help="number of inputs")
    parser.add_argument("n_classes", nargs="?", type=int, default=None, help="number of targets")
    parser.add_argument("data_filename", nargs="?", type=str, default=None, help="Filename for the data.")
    parser.add_argument("model_filename", nargs="?", type=str, default=None, help="the model filename")
    parser.add_argument("-model_label", type=str, default=None, help="label used to describe the model")
    parser.add_argument("-max_load", type=int, default=None, help="max number of examples to load for train")
    parser.add_argument("-binary_mode", action="store_true", default=None, help="binary mode for files")

    parser.add_argument("--config", type=Path, default=None, help="YAML config; command-line flags override it")
    parser.add_argument("--output-root", type=str, default=None, help="Directory receiving hessian<label>/")
    parser.add_argument("--device", type=str, default=None, help="Torch device (default: cpu)")
    parser.add_argument("--dtype", choices=list(SUPPORTED_DTYPES), default=None, help="Computation dtype")
    parser.add_argument("--save-binary", action="store_true", default=None, help="Also write float32 .bin dumps")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")
    parser.add_argument(
        "--no-progress", dest="show_progress", action="store_false", default=None, help="Hide the progress bar"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> EstimatorConfig:
    """Merge parsed arguments over the optional YAML config and validate."""
    config = load_config(args.config) if args.config is not None else EstimatorConfig()
    config = apply_overrides(config, {
        "data": {
            "n_inputs": args.n_inputs,
            "n_classes": args.n_classes,
            "data_filename": args.data_filename,
            "max_load": args.max_load,
            "binary_mode": args.binary_mode,
        },
        "model": {
            "model_filename": args.model_filename,
            "model_label": args.model_label,
        },
        "output": {
            "output_root": args.output_root,
            "save_binary": args.save_binary,
        },
        "runtime": {
            "device": args.device,
            "dtype": args.dtype,
            "log_level": args.log_level,
            "show_progress": args.show_progress,
        },
    })
    return validate_config(config)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        parser.error(str(exc))

    setup_logging(config.runtime.log_level, config.output_dir)

    try:
        result = estimate_hessian(config)
    except HessianEstimatorError as exc:
        logger.error(str(exc))
        return 1

    logger.info(f"Results written to {result.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
