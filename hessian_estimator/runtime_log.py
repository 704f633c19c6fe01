"""
Logging setup and structured run events.

Provides:
- setup_logging: configure the root logger once per run
- log_event: emit one JSON line per pipeline milestone on stdout
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

__all__ = ["LOG_FORMAT", "LOG_FILENAME", "setup_logging", "log_event"]

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILENAME = 'hessian_estimator.log'


def setup_logging(log_level: str = "INFO", log_dir: str | Path | None = None) -> None:
    """Set up logging for a run.

    Args:
        log_level: Name of the logging level (e.g. ``"INFO"``)
        log_dir: Optional directory receiving ``hessian_estimator.log``. If the
            directory cannot be created, only the stream handler is installed.
    """
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_error: OSError | None = None
    if log_dir is not None:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(Path(log_dir) / LOG_FILENAME))
        except OSError as exc:
            file_error = exc

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    log = logging.getLogger(__name__)
    if file_error is not None:
        log.warning(f"File logging disabled: {file_error}")
    log.debug("Logging configured successfully")


def log_event(event: str, **fields: Any) -> None:
    payload = {"event": event, **fields}
    print(json.dumps(payload, default=str, sort_keys=True), flush=True)
