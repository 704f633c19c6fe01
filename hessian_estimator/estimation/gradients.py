"""Per-example gradient collection."""

from __future__ import annotations

import logging

import torch
import torch.nn as nn
from tqdm import tqdm

from hessian_estimator.data.datasets import ClassFormatDataset
from hessian_estimator.estimation.parameters import ParameterGroups

__all__ = ["collect_gradients"]

logger = logging.getLogger(__name__)


def collect_gradients(
    model: nn.Module,
    dataset: ClassFormatDataset,
    *,
    criterion: nn.Module | None = None,
    groups: ParameterGroups | None = None,
    show_progress: bool = True,
) -> torch.Tensor:
    """Build the (n_examples, n_params) matrix of per-example loss gradients.

    Each example is run through forward, NLL loss and backward on its own.
    Row ``i`` receives the gradient groups of example ``i`` concatenated in
    ``groups`` order, after which the gradient buffers are zeroed so nothing
    accumulates across examples. Progress advances at every 10% boundary.
    """
    if criterion is None:
        criterion = nn.NLLLoss()
    if groups is None:
        groups = ParameterGroups.from_module(model)

    ref = groups.parameters[0]
    n_examples = len(dataset)
    gradients = torch.empty(n_examples, groups.total, dtype=ref.dtype, device=ref.device)

    model.eval()
    groups.zero_gradients()

    tick = 1
    with tqdm(total=n_examples, desc="Collecting gradients", disable=not show_progress) as pbar:
        for i in range(n_examples):
            inputs, label = dataset[i]
            inputs = inputs.to(device=ref.device, dtype=ref.dtype).unsqueeze(0)
            label = label.to(ref.device).unsqueeze(0)

            log_probs = model(inputs).log_probs
            loss = criterion(log_probs, label)
            loss.backward()

            groups.flatten_gradients(out=gradients[i])
            groups.zero_gradients()

            if i / n_examples > tick / 10.0:
                pbar.update(i + 1 - pbar.n)
                tick += 1
        pbar.update(n_examples - pbar.n)

    logger.debug(f"Collected {n_examples} x {groups.total} gradient matrix")
    return gradients
