"""Stacked autoencoder classifier."""

from __future__ import annotations

from typing import NamedTuple

import torch
import torch.nn as nn
import torch.nn.functional as F

__all__ = ["AutoencoderLayer", "StackedAutoencoder", "StackedAutoencoderOutput", "NONLINEARITIES"]

NONLINEARITIES: dict[str, type[nn.Module]] = {
    "sigmoid": nn.Sigmoid,
    "tanh": nn.Tanh,
    "relu": nn.ReLU,
}


class StackedAutoencoderOutput(NamedTuple):
    log_probs: torch.Tensor


class AutoencoderLayer(nn.Module):
    """One encoder/decoder pair. Only the encoder feeds the layer above."""

    def __init__(self, n_inputs: int, n_hidden: int, nonlinearity: str = "sigmoid"):
        super().__init__()
        if nonlinearity not in NONLINEARITIES:
            raise ValueError(
                f"Unknown nonlinearity '{nonlinearity}'. Expected one of {list(NONLINEARITIES)}"
            )
        self.encoder = nn.Linear(n_inputs, n_hidden)
        self.decoder = nn.Linear(n_hidden, n_inputs)
        self.activation = NONLINEARITIES[nonlinearity]()

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        return self.activation(self.encoder(x))

    def reconstruct(self, x: torch.Tensor) -> torch.Tensor:
        return self.activation(self.decoder(self.encode(x)))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.encode(x)


class StackedAutoencoder(nn.Module):
    """Autoencoder layers stacked under a log-softmax output layer.

    Parameters are registered layer by layer (encoder weight, encoder bias,
    decoder weight, decoder bias), then the output weight and bias. That
    registration order is the parameter group order used for gradients.
    """

    def __init__(
        self,
        n_inputs: int,
        hidden_sizes: list[int],
        n_classes: int,
        nonlinearity: str = "sigmoid",
    ):
        super().__init__()
        self.n_inputs = n_inputs
        self.hidden_sizes = list(hidden_sizes)
        self.n_classes = n_classes
        self.nonlinearity = nonlinearity

        sizes = [n_inputs, *self.hidden_sizes]
        self.layers = nn.ModuleList(
            AutoencoderLayer(sizes[i], sizes[i + 1], nonlinearity) for i in range(len(self.hidden_sizes))
        )
        self.output = nn.Linear(sizes[-1], n_classes)

    @property
    def model_config(self) -> dict:
        """Constructor arguments, as stored in checkpoints."""
        return {
            "n_inputs": self.n_inputs,
            "hidden_sizes": list(self.hidden_sizes),
            "n_classes": self.n_classes,
            "nonlinearity": self.nonlinearity,
        }

    def forward(self, x: torch.Tensor) -> StackedAutoencoderOutput:
        h = x
        for layer in self.layers:
            h = layer(h)
        return StackedAutoencoderOutput(log_probs=F.log_softmax(self.output(h), dim=-1))
