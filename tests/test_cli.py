"""
End-to-end tests for the hessian-estimator command line.

Verifies:
1. A full run writes sorted eigenvalues and a P x P eigenvector dump
2. YAML config and command-line arguments merge; positionals come first
3. Fatal errors exit non-zero
"""

import json

import numpy as np
import pytest
import yaml

from hessian_estimator.estimate import build_parser, config_from_args, estimate_hessian, main

from conftest import N_CLASSES, N_INPUTS


def _base_argv(data_file, model_file, tmp_path, *extra):
    return [
        str(N_INPUTS),
        str(N_CLASSES),
        str(data_file),
        str(model_file),
        "--output-root", str(tmp_path),
        "--no-progress",
        *extra,
    ]


class TestMain:
    """Full command-line runs."""

    def test_full_run_writes_sorted_eigenpairs(self, tmp_path, ascii_data_file, model_file, autoencoder):
        argv = _base_argv(ascii_data_file, model_file, tmp_path, "-model_label", "_toy")
        assert main(argv) == 0

        out_dir = tmp_path / "hessian_toy"
        n_params = sum(p.numel() for p in autoencoder.parameters())

        eigenvalues = [float(line) for line in (out_dir / "eigenvals_full.txt").read_text().splitlines()]
        assert len(eigenvalues) == n_params
        assert all(a >= b for a, b in zip(eigenvalues, eigenvalues[1:]))

        lines = (out_dir / "eigenvecs_full.txt").read_text().split("\n")
        assert lines[-1] == ""
        rows = lines[:-1]
        assert len(rows) == n_params
        assert all(row.endswith(" ") and len(row.split()) == n_params for row in rows)

        summary = json.loads((out_dir / "run_summary.json").read_text())
        assert summary["n_examples"] == 12
        assert summary["n_params"] == n_params
        assert [group["name"] for group in summary["parameter_groups"]][-1] == "output.bias"
        assert all(group["mean_gradient_norm"] >= 0 for group in summary["parameter_groups"])
        assert (out_dir / "config.yaml").exists()
        assert (out_dir / "hessian_estimator.log").exists()

    def test_empty_label_and_binary_inputs(self, tmp_path, binary_data_file, model_file):
        argv = _base_argv(binary_data_file, model_file, tmp_path, "-binary_mode", "-max_load", "5", "--save-binary")
        assert main(argv) == 0

        out_dir = tmp_path / "hessian"
        summary = json.loads((out_dir / "run_summary.json").read_text())
        assert summary["n_examples"] == 5
        n_params = summary["n_params"]
        assert np.fromfile(out_dir / "eigenvals_full.bin", dtype=np.float32).shape == (n_params,)
        assert np.fromfile(out_dir / "eigenvecs_full.bin", dtype=np.float32).shape == (n_params * n_params,)

    def test_missing_required_argument(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["4", "--output-root", str(tmp_path)])
        assert excinfo.value.code == 2

    def test_model_mismatch_exits_non_zero(self, tmp_path, ascii_data_file, model_file):
        argv = _base_argv(ascii_data_file, model_file, tmp_path)
        argv[1] = str(N_CLASSES + 2)
        # labels still fit the larger class count, so the model check is what fails
        assert main(argv) == 1

    def test_single_example_exits_non_zero(self, tmp_path, ascii_data_file, model_file):
        assert main(_base_argv(ascii_data_file, model_file, tmp_path, "-max_load", "1")) == 1


class TestConfigFromArgs:
    """Merging YAML config with command-line flags."""

    def test_flags_override_yaml(self, tmp_path, ascii_data_file, model_file):
        config_path = tmp_path / "run.yaml"
        config_path.write_text(yaml.safe_dump({
            "data": {"n_inputs": N_INPUTS, "n_classes": N_CLASSES, "data_filename": str(ascii_data_file)},
            "model": {"model_filename": str(model_file), "model_label": "_yaml"},
            "runtime": {"dtype": "float32", "show_progress": False},
        }))

        args = build_parser().parse_args(["--config", str(config_path), "-model_label", "_cli", "-max_load", "4"])
        config = config_from_args(args)

        assert config.model.model_label == "_cli"
        assert config.data.max_load == 4
        assert config.runtime.dtype == "float32"
        assert config.runtime.show_progress is False
        assert config.data.binary_mode is False

    def test_float32_pipeline(self, tmp_path, ascii_data_file, model_file):
        args = build_parser().parse_args(_base_argv(ascii_data_file, model_file, tmp_path, "--dtype", "float32"))
        result = estimate_hessian(config_from_args(args))
        assert result.n_examples == 12
        assert result.eigenvalues.shape == (result.n_params,)
        assert result.covariance.shape == (result.n_params, result.n_params)

    def test_positional_arguments_in_order(self):
        args = build_parser().parse_args(
            ["784", "10", "train.amat", "csae.pt", "-model_label", "_run0", "-max_load", "100", "-binary_mode"]
        )
        assert (args.n_inputs, args.n_classes) == (784, 10)
        assert (args.data_filename, args.model_filename) == ("train.amat", "csae.pt")
        assert args.model_label == "_run0"
        assert args.max_load == 100
        assert args.binary_mode is True

    def test_positionals_override_yaml(self, tmp_path, ascii_data_file, model_file):
        config_path = tmp_path / "run.yaml"
        config_path.write_text(yaml.safe_dump({
            "data": {"n_inputs": 99, "n_classes": 99, "data_filename": "elsewhere.amat"},
            "model": {"model_filename": "elsewhere.pt"},
        }))

        args = build_parser().parse_args(
            _base_argv(ascii_data_file, model_file, tmp_path, "--config", str(config_path))
        )
        config = config_from_args(args)

        assert (config.data.n_inputs, config.data.n_classes) == (N_INPUTS, N_CLASSES)
        assert config.data.data_filename == str(ascii_data_file)
        assert config.model.model_filename == str(model_file)

    def test_mistyped_yaml_value_is_an_argument_error(self, tmp_path, ascii_data_file, model_file):
        config_path = tmp_path / "run.yaml"
        config_path.write_text(yaml.safe_dump({
            "data": {"n_inputs": "4", "n_classes": N_CLASSES, "data_filename": str(ascii_data_file)},
            "model": {"model_filename": str(model_file)},
        }))
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(config_path), "--output-root", str(tmp_path), "--no-progress"])
        assert excinfo.value.code == 2
