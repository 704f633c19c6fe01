"""Gradient statistics and the empirical gradient covariance."""

from __future__ import annotations

import torch

from hessian_estimator.errors import EstimationError

__all__ = ["mean_squared_norm", "center_gradients", "gradient_covariance"]


def mean_squared_norm(gradients: torch.Tensor) -> float:
    """Mean over rows of the squared L2 norm of each gradient row."""
    return (gradients.pow(2).sum(dim=1).sum() / gradients.shape[0]).item()


def center_gradients(gradients: torch.Tensor) -> torch.Tensor:
    """Subtract the column mean from every row in place and return the mean."""
    mean = gradients.sum(dim=0) * (1.0 / gradients.shape[0])
    gradients.sub_(mean)
    return mean


def gradient_covariance(centered: torch.Tensor) -> torch.Tensor:
    """(GᵀG) / (N - 1) for a centered (N, P) gradient matrix G."""
    n_examples = centered.shape[0]
    if n_examples < 2:
        raise EstimationError(f"Need at least 2 examples to estimate a covariance, got {n_examples}")
    covariance = centered.T @ centered
    covariance.mul_(1.0 / (n_examples - 1.0))
    return covariance
