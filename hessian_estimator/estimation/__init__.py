"""Gradient-covariance Hessian estimation."""

from hessian_estimator.estimation.covariance import center_gradients, gradient_covariance, mean_squared_norm
from hessian_estimator.estimation.eigen import (
    EigenResult,
    sort_eigenpairs,
    swap_columns,
    symmetric_eigendecomposition,
)
from hessian_estimator.estimation.gradients import collect_gradients
from hessian_estimator.estimation.parameters import ParameterGroup, ParameterGroups

__all__ = [
    "ParameterGroup",
    "ParameterGroups",
    "collect_gradients",
    "mean_squared_norm",
    "center_gradients",
    "gradient_covariance",
    "EigenResult",
    "symmetric_eigendecomposition",
    "sort_eigenpairs",
    "swap_columns",
]
