"""
Model checkpoint IO.

Checkpoints are ``torch.save``d dicts holding:
- model_config: StackedAutoencoder constructor arguments
- model_state_dict: the trained weights
"""

import logging
from pathlib import Path

import torch

from hessian_estimator.errors import ModelFormatError
from hessian_estimator.models.autoencoder import StackedAutoencoder

__all__ = ['save_model', 'load_model']

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ('model_config', 'model_state_dict')


def save_model(model, path, extra_metadata=None):
    """
    Save a stacked autoencoder checkpoint.

    Args:
        model: StackedAutoencoder to save
        path: Destination file
        extra_metadata: Additional entries stored alongside the weights (optional)
    """
    checkpoint = {
        'model_config': model.model_config,
        'model_state_dict': model.state_dict(),
    }
    if extra_metadata is not None:
        checkpoint.update(extra_metadata)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    torch.save(checkpoint, path)


def load_model(path, device='cpu', dtype=torch.float64, n_inputs=None, n_classes=None):
    """
    Load a stacked autoencoder checkpoint.

    Args:
        path: Checkpoint file written by save_model
        device: Device to place the model on
        dtype: Floating dtype of the loaded parameters
        n_inputs: Expected input dimensionality (checked when given)
        n_classes: Expected number of classes (checked when given)

    Returns:
        StackedAutoencoder in eval mode
    """
    try:
        checkpoint = torch.load(path, map_location='cpu', weights_only=False)
    except (OSError, RuntimeError) as exc:
        raise ModelFormatError(f"{path}: cannot read checkpoint: {exc}") from exc

    if not isinstance(checkpoint, dict):
        raise ModelFormatError(f"{path}: checkpoint must be a dict, got {type(checkpoint).__name__}")
    missing = [key for key in _REQUIRED_KEYS if key not in checkpoint]
    if missing:
        raise ModelFormatError(f"{path}: checkpoint is missing {missing}")

    try:
        model = StackedAutoencoder(**checkpoint['model_config'])
        model.load_state_dict(checkpoint['model_state_dict'])
    except (TypeError, ValueError, RuntimeError) as exc:
        raise ModelFormatError(f"{path}: cannot rebuild model: {exc}") from exc

    if n_inputs is not None and model.n_inputs != n_inputs:
        raise ModelFormatError(f"{path}: model expects {model.n_inputs} inputs, data has {n_inputs}")
    if n_classes is not None and model.n_classes != n_classes:
        raise ModelFormatError(f"{path}: model predicts {model.n_classes} classes, data has {n_classes}")

    model = model.to(device=device, dtype=dtype)
    model.eval()

    logger.info(
        f"Loaded model from {path}: {len(model.hidden_sizes)} autoencoder layers "
        f"{model.hidden_sizes}, {model.n_classes} classes"
    )
    return model
