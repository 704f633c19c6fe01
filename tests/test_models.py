"""
Tests for the stacked autoencoder, checkpoint IO and parameter groups.

Verifies that:
1. The model produces normalized log-probabilities
2. Checkpoints load back into identical models
3. Malformed or mismatched checkpoints raise ModelFormatError
4. Parameter groups cover every parameter in registration order
"""
import pytest
import torch

from hessian_estimator.errors import ModelFormatError
from hessian_estimator.estimation import ParameterGroups
from hessian_estimator.models import StackedAutoencoder, load_model, save_model

from conftest import HIDDEN_SIZES, N_CLASSES, N_INPUTS


class TestStackedAutoencoder:
    """Tests for the model itself."""

    def test_log_probs_normalized(self, autoencoder):
        out = autoencoder(torch.randn(5, N_INPUTS, dtype=torch.float64))
        assert out.log_probs.shape == (5, N_CLASSES)
        assert torch.allclose(out.log_probs.exp().sum(dim=1), torch.ones(5, dtype=torch.float64))

    def test_reconstruction_shape(self, autoencoder):
        x = torch.randn(2, N_INPUTS, dtype=torch.float64)
        assert autoencoder.layers[0].reconstruct(x).shape == x.shape

    def test_unknown_nonlinearity(self):
        with pytest.raises(ValueError, match="Unknown nonlinearity"):
            StackedAutoencoder(N_INPUTS, HIDDEN_SIZES, N_CLASSES, nonlinearity="softsign")


class TestCheckpoint:
    """Tests for save_model / load_model."""

    def test_round_trip(self, autoencoder, model_file):
        loaded = load_model(model_file, n_inputs=N_INPUTS, n_classes=N_CLASSES)
        assert not loaded.training
        assert loaded.model_config == autoencoder.model_config
        for (name, a), (_, b) in zip(autoencoder.state_dict().items(), loaded.state_dict().items()):
            assert torch.equal(a, b), name

    def test_dtype_conversion(self, model_file):
        loaded = load_model(model_file, dtype=torch.float32)
        assert all(p.dtype == torch.float32 for p in loaded.parameters())

    def test_input_mismatch(self, model_file):
        with pytest.raises(ModelFormatError, match="inputs"):
            load_model(model_file, n_inputs=N_INPUTS + 1)

    def test_class_mismatch(self, model_file):
        with pytest.raises(ModelFormatError, match="classes"):
            load_model(model_file, n_classes=N_CLASSES + 1)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelFormatError, match="cannot read checkpoint"):
            load_model(tmp_path / "absent.pt")

    def test_missing_keys(self, tmp_path):
        path = tmp_path / "bad.pt"
        torch.save({"model_state_dict": {}}, path)
        with pytest.raises(ModelFormatError, match="missing"):
            load_model(path)

    def test_state_dict_mismatch(self, tmp_path, autoencoder):
        path = tmp_path / "other.pt"
        save_model(autoencoder, path)
        checkpoint = torch.load(path, weights_only=False)
        checkpoint["model_config"]["hidden_sizes"] = [5]
        torch.save(checkpoint, path)
        with pytest.raises(ModelFormatError, match="cannot rebuild"):
            load_model(path)

    def test_public_names(self):
        from hessian_estimator.models import checkpoint

        assert checkpoint.__all__ == ["save_model", "load_model"]
        assert all(callable(getattr(checkpoint, name)) for name in checkpoint.__all__)


class TestParameterGroups:
    """Tests for the flat group index table."""

    def test_groups_follow_registration_order(self, autoencoder):
        groups = ParameterGroups.from_module(autoencoder)
        names = [name for name, _ in autoencoder.named_parameters()]
        assert groups.names == names
        assert groups.names[:4] == [
            "layers.0.encoder.weight",
            "layers.0.encoder.bias",
            "layers.0.decoder.weight",
            "layers.0.decoder.bias",
        ]
        assert groups.names[-2:] == ["output.weight", "output.bias"]

    def test_offsets_are_contiguous(self, autoencoder):
        groups = ParameterGroups.from_module(autoencoder)
        offset = 0
        for group in groups:
            assert group.offset == offset
            offset += group.size
        assert groups.total == offset == sum(p.numel() for p in autoencoder.parameters())

    def test_flatten_and_view(self, autoencoder):
        groups = ParameterGroups.from_module(autoencoder)
        for i, param in enumerate(groups.parameters):
            param.grad = torch.full_like(param, float(i))
        flat = groups.flatten_gradients()
        for i, group in enumerate(groups):
            view = groups.view(flat, group.name)
            assert view.shape == (group.size,)
            assert torch.all(view == i)

    def test_missing_grad_is_zero_and_zeroing(self, autoencoder):
        groups = ParameterGroups.from_module(autoencoder)
        groups.parameters[0].grad = torch.ones_like(groups.parameters[0])
        flat = groups.flatten_gradients()
        assert torch.all(groups.view(flat, groups.names[0]) == 1)
        assert torch.all(flat[groups.groups[1].offset:] == 0)

        groups.zero_gradients()
        assert torch.all(groups.parameters[0].grad == 0)
