"""Stacked autoencoder model and checkpoint IO."""

from hessian_estimator.models.autoencoder import (
    NONLINEARITIES,
    AutoencoderLayer,
    StackedAutoencoder,
    StackedAutoencoderOutput,
)
from hessian_estimator.models.checkpoint import load_model, save_model

__all__ = [
    "NONLINEARITIES",
    "AutoencoderLayer",
    "StackedAutoencoder",
    "StackedAutoencoderOutput",
    "load_model",
    "save_model",
]
