"""Shared fixtures: small mat files and stacked autoencoder checkpoints."""

import numpy as np
import pytest
import torch

from hessian_estimator.data import write_mat_file
from hessian_estimator.models import StackedAutoencoder, save_model

N_INPUTS = 4
N_CLASSES = 3
HIDDEN_SIZES = [3, 2]


def make_matrix(n_rows, n_inputs=N_INPUTS, n_classes=N_CLASSES, seed=0):
    """Random inputs followed by a class-index column."""
    rng = np.random.default_rng(seed)
    inputs = rng.uniform(-1.0, 1.0, size=(n_rows, n_inputs)).round(4)
    labels = np.arange(n_rows) % n_classes
    return np.column_stack([inputs, labels])


@pytest.fixture
def ascii_data_file(tmp_path):
    path = tmp_path / "train.amat"
    write_mat_file(path, make_matrix(12))
    return path


@pytest.fixture
def binary_data_file(tmp_path):
    path = tmp_path / "train.bmat"
    write_mat_file(path, make_matrix(12), binary_mode=True)
    return path


@pytest.fixture
def autoencoder():
    torch.manual_seed(0)
    return StackedAutoencoder(N_INPUTS, HIDDEN_SIZES, N_CLASSES).double()


@pytest.fixture
def model_file(tmp_path, autoencoder):
    path = tmp_path / "csae.pt"
    save_model(autoencoder, path)
    return path
