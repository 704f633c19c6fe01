"""Tabular "mat" datasets with class-index targets."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import torch
import torch.utils.data

from hessian_estimator.config import DataConfig
from hessian_estimator.errors import DatasetFormatError

__all__ = [
    "MatDataset",
    "ClassFormatDataset",
    "read_mat_file",
    "write_mat_file",
    "load_class_dataset",
]

logger = logging.getLogger(__name__)

_BINARY_HEADER = np.dtype("<i4")
_BINARY_VALUES = np.dtype("<f4")


def _effective_rows(declared: int, max_load: int) -> int:
    if max_load > 0 and max_load < declared:
        return max_load
    return declared


def _read_ascii(path: Path, max_load: int) -> np.ndarray:
    with open(path, "r") as f:
        header = f.readline().split()
        if len(header) != 2:
            raise DatasetFormatError(f"{path}: expected '<n_rows> <n_cols>' header, got {header}")
        try:
            declared_rows, n_cols = int(header[0]), int(header[1])
        except ValueError as exc:
            raise DatasetFormatError(f"{path}: non-integer header {header}") from exc

        n_rows = _effective_rows(declared_rows, max_load)
        tokens = f.read().split()

    needed = n_rows * n_cols
    if len(tokens) < needed:
        raise DatasetFormatError(
            f"{path}: header declares {n_rows} x {n_cols} values, file holds {len(tokens)}"
        )
    try:
        values = np.asarray(tokens[:needed], dtype=np.float64)
    except ValueError as exc:
        raise DatasetFormatError(f"{path}: non-numeric value in data section") from exc
    return values.reshape(n_rows, n_cols)


def _read_binary(path: Path, max_load: int) -> np.ndarray:
    with open(path, "rb") as f:
        header = np.fromfile(f, dtype=_BINARY_HEADER, count=2)
        if header.size != 2:
            raise DatasetFormatError(f"{path}: truncated binary header")
        declared_rows, n_cols = int(header[0]), int(header[1])

        n_rows = _effective_rows(declared_rows, max_load)
        needed = n_rows * n_cols
        values = np.fromfile(f, dtype=_BINARY_VALUES, count=needed)

    if values.size < needed:
        raise DatasetFormatError(
            f"{path}: header declares {n_rows} x {n_cols} values, file holds {values.size}"
        )
    return values.astype(np.float64).reshape(n_rows, n_cols)


def read_mat_file(path: str | Path, *, max_load: int = -1, binary_mode: bool = False) -> np.ndarray:
    """Read a mat file into a (rows, cols) float64 array.

    ASCII files start with a ``<n_rows> <n_cols>`` line followed by
    whitespace-separated values. Binary files start with two little-endian
    int32 values followed by float32 data. Both are row-major. When
    ``max_load`` is positive only the first ``max_load`` rows are read.
    """
    path = Path(path)
    try:
        if binary_mode:
            return _read_binary(path, max_load)
        return _read_ascii(path, max_load)
    except (OSError, UnicodeDecodeError) as exc:
        raise DatasetFormatError(f"{path}: cannot read data file: {exc}") from exc


def write_mat_file(path: str | Path, matrix: np.ndarray, *, binary_mode: bool = False) -> None:
    """Write ``matrix`` in the layout understood by :func:`read_mat_file`."""
    matrix = np.asarray(matrix)
    if matrix.ndim != 2:
        raise ValueError("mat files hold 2D arrays")
    n_rows, n_cols = matrix.shape

    if binary_mode:
        with open(path, "wb") as f:
            np.asarray([n_rows, n_cols], dtype=_BINARY_HEADER).tofile(f)
            matrix.astype(_BINARY_VALUES).tofile(f)
        return

    with open(path, "w") as f:
        f.write(f"{n_rows} {n_cols}\n")
        for row in matrix:
            f.write(" ".join(f"{value:g}" for value in row) + "\n")


class MatDataset(torch.utils.data.Dataset):
    """Rows of ``n_inputs`` inputs followed by ``n_targets`` target columns."""

    def __init__(
        self,
        filename: str | Path,
        n_inputs: int,
        n_targets: int = 1,
        *,
        max_load: int = -1,
        binary_mode: bool = False,
    ):
        matrix = read_mat_file(filename, max_load=max_load, binary_mode=binary_mode)
        if matrix.shape[1] != n_inputs + n_targets:
            raise DatasetFormatError(
                f"{filename}: {matrix.shape[1]} columns, expected n_inputs + n_targets = "
                f"{n_inputs} + {n_targets}"
            )

        self.filename = str(filename)
        self.n_inputs = n_inputs
        self.n_targets = n_targets
        self.inputs = torch.from_numpy(np.ascontiguousarray(matrix[:, :n_inputs]))
        self.targets = torch.from_numpy(np.ascontiguousarray(matrix[:, n_inputs:]))

    def __len__(self) -> int:
        return self.inputs.shape[0]

    def __getitem__(self, idx: int) -> tuple[torch.Tensor, torch.Tensor]:
        return self.inputs[idx], self.targets[idx]


class ClassFormatDataset(torch.utils.data.Dataset):
    """Interpret the single target column of a :class:`MatDataset` as a class index."""

    def __init__(self, data: MatDataset, n_classes: int):
        if data.n_targets != 1:
            raise DatasetFormatError("Class datasets need exactly one target column")

        # Fractional targets truncate toward zero.
        labels = data.targets[:, 0].long()
        if len(labels) and (labels.min() < 0 or labels.max() >= n_classes):
            raise DatasetFormatError(
                f"{data.filename}: class labels must lie in [0, {n_classes}), "
                f"found [{int(labels.min())}, {int(labels.max())}]"
            )

        self.data = data
        self.n_classes = n_classes
        self.n_inputs = data.n_inputs
        self.labels = labels

    def __len__(self) -> int:
        return len(self.data)

    def __getitem__(self, idx: int) -> tuple[torch.Tensor, torch.Tensor]:
        return self.data.inputs[idx], self.labels[idx]


def load_class_dataset(config: DataConfig) -> ClassFormatDataset:
    """Build the class dataset described by ``config``."""
    matdata = MatDataset(
        config.data_filename,
        config.n_inputs,
        1,
        max_load=config.max_load,
        binary_mode=config.binary_mode,
    )
    dataset = ClassFormatDataset(matdata, config.n_classes)
    logger.info(f"Loaded {len(dataset)} examples from {config.data_filename}")
    return dataset
