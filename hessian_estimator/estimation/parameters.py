"""Flat, group-partitioned views over a model's parameters and gradients."""

from __future__ import annotations

from typing import NamedTuple

import torch
import torch.nn as nn

__all__ = ["ParameterGroup", "ParameterGroups"]


class ParameterGroup(NamedTuple):
    name: str
    offset: int
    size: int
    shape: tuple[int, ...]


class ParameterGroups:
    """Index table of ``(offset, size)`` ranges over a flat parameter vector.

    Groups follow the module's parameter registration order, so a flat row
    built by :meth:`flatten_gradients` concatenates them in that order.
    """

    def __init__(self, names: list[str], parameters: list[nn.Parameter]):
        self.parameters = list(parameters)
        self.groups: list[ParameterGroup] = []
        offset = 0
        for name, param in zip(names, self.parameters):
            self.groups.append(ParameterGroup(name, offset, param.numel(), tuple(param.shape)))
            offset += param.numel()
        self.total = offset
        self._by_name = {group.name: group for group in self.groups}

    @classmethod
    def from_module(cls, module: nn.Module) -> ParameterGroups:
        names, params = [], []
        for name, param in module.named_parameters():
            if param.requires_grad:
                names.append(name)
                params.append(param)
        return cls(names, params)

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self):
        return iter(self.groups)

    @property
    def names(self) -> list[str]:
        return [group.name for group in self.groups]

    def view(self, flat: torch.Tensor, name: str) -> torch.Tensor:
        """View of the sub-range of ``flat`` (last dim) owned by group ``name``."""
        group = self._by_name[name]
        return flat[..., group.offset:group.offset + group.size]

    def flatten_gradients(self, out: torch.Tensor | None = None) -> torch.Tensor:
        """Copy every group's ``.grad`` into one flat vector.

        Parameters without a gradient contribute zeros.
        """
        if out is None:
            ref = self.parameters[0]
            out = torch.empty(self.total, dtype=ref.dtype, device=ref.device)
        for group, param in zip(self.groups, self.parameters):
            dest = out[group.offset:group.offset + group.size]
            if param.grad is None:
                dest.zero_()
            else:
                dest.copy_(param.grad.reshape(-1))
        return out

    def zero_gradients(self) -> None:
        """Zero gradient buffers in place so the next backward starts clean."""
        for param in self.parameters:
            if param.grad is not None:
                param.grad.zero_()
