"""Symmetric eigendecomposition with descending eigenpair ordering."""

from __future__ import annotations

from typing import NamedTuple

import torch

__all__ = ["EigenResult", "symmetric_eigendecomposition", "sort_eigenpairs", "swap_columns"]


class EigenResult(NamedTuple):
    eigenvalues: torch.Tensor
    eigenvectors: torch.Tensor  # eigenvectors in the columns


def symmetric_eigendecomposition(matrix: torch.Tensor) -> EigenResult:
    """Eigenpairs of a symmetric matrix, in solver order."""
    eigenvalues, eigenvectors = torch.linalg.eigh(matrix)
    return EigenResult(eigenvalues, eigenvectors)


def swap_columns(matrix: torch.Tensor, i: int, j: int) -> None:
    """Swap full columns ``i`` and ``j`` of ``matrix`` in place."""
    if i == j:
        return
    matrix[:, [i, j]] = matrix[:, [j, i]]


def sort_eigenpairs(result: EigenResult) -> EigenResult:
    """Selection-sort eigenvalues into descending order, in place.

    At step ``i`` the first maximum of ``d[i:]`` wins, so equal eigenvalues
    keep their relative order. Eigenvector columns follow every swap.
    """
    d, V = result
    n = d.shape[0]
    for i in range(n):
        max_index = i + int(torch.argmax(d[i:]))
        max_value = d[max_index].clone()
        d[max_index] = d[i]
        d[i] = max_value
        swap_columns(V, i, max_index)
    return EigenResult(d, V)
