"""Tests for qsearch configuration."""

import json
import logging

import pytest

from qsearch.core.config import GroverConfig, QsearchConfig, generate_default_config


class TestGroverConfig:
    """Test suite for GroverConfig."""

    def test_defaults(self):
        config = GroverConfig()
        assert config.iterations is None
        assert config.shots == 100
        assert config.decision_rule == "threshold"

    def test_immutable(self):
        config = GroverConfig()
        with pytest.raises(AttributeError):
            config.shots = 5

    @pytest.mark.parametrize("kwargs", [
        {"shots": -1},
        {"iterations": -2},
        {"success_threshold": 1.5},
        {"solution_threshold": -0.1},
        {"decision_rule": "majority"},
        {"confidence_z": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            GroverConfig(**kwargs)

    def test_presets(self):
        assert GroverConfig.high_precision().shots == 1000
        assert GroverConfig.fast().success_threshold == 0.3
        assert GroverConfig.reproducible(7).random_seed == 7
        assert GroverConfig.manual(3, 64) == GroverConfig(iterations=3, shots=64)

    def test_with_overrides_ignores_none(self):
        config = GroverConfig(shots=10).with_overrides(shots=None, random_seed=4)
        assert config.shots == 10
        assert config.random_seed == 4


class TestQsearchConfig:
    """Test suite for file and environment settings."""

    def test_load_from_file(self, tmp_path, monkeypatch):
        """Test TOML loading and conversion to a GroverConfig."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "custom.toml"
        path.write_text(
            "[quantum]\n"
            "shots = 512\n"
            "seed = 3\n"
            'decision_rule = "wilson"\n'
            "\n"
            "[output]\n"
            'log_level = "DEBUG"\n'
        )

        config = QsearchConfig.load(path)
        grover = config.to_grover_config()

        assert config.output.log_level == "DEBUG"
        assert grover.shots == 512
        assert grover.random_seed == 3
        assert grover.decision_rule == "wilson"
        # Unspecified keys keep their defaults
        assert grover.solution_threshold == 0.1

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("QSEARCH_SHOTS", "2048")
        monkeypatch.setenv("QSEARCH_VERBOSE", "yes")
        monkeypatch.setenv("QSEARCH_MAX_QUBITS", "not-a-number")

        config = QsearchConfig.load()

        assert config.quantum.shots == 2048
        assert config.output.verbose is True
        assert config.quantum.max_qubits == 24

    def test_missing_file_keeps_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = QsearchConfig.load(tmp_path / "absent.toml")
        assert config.quantum.shots == 100

    def test_save_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = QsearchConfig()
        config.quantum.shots = 333
        config.quantum.seed = 12
        path = config.save(tmp_path / "out.toml")

        loaded = QsearchConfig.load(path)
        assert loaded.quantum.shots == 333
        assert loaded.quantum.seed == 12

    def test_generate_default_config(self, tmp_path):
        path = generate_default_config(tmp_path / "nested" / "qsearch.toml")
        assert path.exists()
        assert "[quantum]" in path.read_text()

    def test_json(self):
        config = QsearchConfig()
        config.quantum.backend = "qiskit"
        restored = QsearchConfig.from_json(config.to_json())

        assert restored.quantum.backend == "qiskit"
        assert json.loads(config.to_json())["output"]["json_indent"] == 2

    def test_validate(self):
        config = QsearchConfig()
        assert config.validate() == []

        config.quantum.max_qubits = 40
        config.quantum.solution_threshold = 2.0
        config.output.log_level = "LOUD"
        warnings = config.validate()
        assert len(warnings) == 3

    def test_make_backend(self):
        config = QsearchConfig()
        config.quantum.max_qubits = 8
        backend = config.make_backend()
        assert backend.name == "statevector"
        assert backend.max_qubits == 8

    def test_setup_logging_does_not_duplicate(self):
        config = QsearchConfig()
        config.setup_logging()
        config.setup_logging()

        logger = logging.getLogger("qsearch")
        ours = [h for h in logger.handlers if getattr(h, "_qsearch_handler", False)]
        assert len(ours) == 1

        for handler in ours:
            logger.removeHandler(handler)
