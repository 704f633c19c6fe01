"""Writers for sorted eigenvalues and eigenvectors."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import torch

from hessian_estimator.errors import OutputError

__all__ = [
    "EIGENVALS_FILENAME",
    "EIGENVECS_FILENAME",
    "prepare_output_dir",
    "format_value",
    "write_eigenvalues",
    "write_eigenvectors",
    "write_binary",
    "write_summary",
]

logger = logging.getLogger(__name__)

EIGENVALS_FILENAME = "eigenvals_full"
EIGENVECS_FILENAME = "eigenvecs_full"


def prepare_output_dir(output_dir: str | Path) -> Path:
    """Create ``output_dir`` if possible. Failure is logged, not raised."""
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning(f"Could not create {output_dir}: {exc}")
    return output_dir


def format_value(value: float) -> str:
    """Six significant digits, the way a default-formatted stream prints reals."""
    return f"{value:g}"


def _open_for_writing(path: Path, what: str, mode: str = "w"):
    try:
        return open(path, mode)
    except OSError as exc:
        raise OutputError(f"Can't open file for {what}: {path}") from exc


def write_eigenvalues(output_dir: str | Path, eigenvalues: torch.Tensor) -> Path:
    """One eigenvalue per line, in the given order."""
    path = Path(output_dir) / f"{EIGENVALS_FILENAME}.txt"
    with _open_for_writing(path, "eigenvals") as f:
        for value in eigenvalues.tolist():
            f.write(format_value(value) + "\n")
    return path


def write_eigenvectors(output_dir: str | Path, eigenvectors: torch.Tensor) -> Path:
    """Text dump of the column-eigenvector matrix, one matrix row per line.

    Line ``j`` holds ``V[j][k]`` for every column ``k``, each value followed
    by a space.
    """
    path = Path(output_dir) / f"{EIGENVECS_FILENAME}.txt"
    with _open_for_writing(path, "eigenvecs") as f:
        for row in eigenvectors.tolist():
            f.write("".join(format_value(value) + " " for value in row) + "\n")
    return path


def write_binary(output_dir: str | Path, eigenvalues: torch.Tensor, eigenvectors: torch.Tensor) -> list[Path]:
    """Raw float32 dumps: the eigenvalues, then the row-major eigenvector matrix."""
    output_dir = Path(output_dir)
    written = []
    for name, tensor in ((EIGENVALS_FILENAME, eigenvalues), (EIGENVECS_FILENAME, eigenvectors)):
        path = output_dir / f"{name}.bin"
        with _open_for_writing(path, name, mode="wb") as f:
            tensor.detach().cpu().numpy().astype(np.float32).tofile(f)
        written.append(path)
    return written


def write_summary(output_dir: str | Path, summary: dict[str, Any]) -> Path:
    path = Path(output_dir) / "run_summary.json"
    with _open_for_writing(path, "run summary") as f:
        json.dump(summary, f, indent=2, default=str)
    return path
