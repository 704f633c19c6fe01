"""Exception hierarchy for the Hessian estimator."""

from __future__ import annotations

__all__ = [
    "HessianEstimatorError",
    "ConfigError",
    "DatasetFormatError",
    "ModelFormatError",
    "EstimationError",
    "OutputError",
]


class HessianEstimatorError(RuntimeError):
    """Base class for fatal errors raised by the estimator."""


class ConfigError(HessianEstimatorError, ValueError):
    """Invalid or incomplete configuration."""


class DatasetFormatError(HessianEstimatorError):
    """The data file does not match the expected mat layout."""


class ModelFormatError(HessianEstimatorError):
    """The model checkpoint is malformed or does not match the data."""


class EstimationError(HessianEstimatorError):
    """The covariance estimate cannot be formed from the given data."""


class OutputError(HessianEstimatorError):
    """An output file could not be opened for writing."""
