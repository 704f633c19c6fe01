"""Dataset loading."""

from hessian_estimator.data.datasets import (
    ClassFormatDataset,
    MatDataset,
    load_class_dataset,
    read_mat_file,
    write_mat_file,
)

__all__ = [
    "MatDataset",
    "ClassFormatDataset",
    "load_class_dataset",
    "read_mat_file",
    "write_mat_file",
]
