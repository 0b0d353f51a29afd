"""
Configuration handling for qsearch.

Two layers live here. :class:`GroverConfig` is the immutable per-call value
handed to the search driver. :class:`QsearchConfig` is the user-facing
settings layer: TOML files plus ``QSEARCH_*`` environment variables, from
which a GroverConfig and a backend are derived.
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "qsearch"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "qsearch.toml"

DECISION_RULES = ("threshold", "wilson")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class GroverConfig:
    """
    Per-search configuration.

    Attributes:
        iterations: Pin the Grover loop count; None uses the optimum
        shots: Number of measurement shots (<= 0 skips measurement)
        success_threshold: Minimum probability mass on true solutions before
            the caller should distrust the result
        solution_threshold: Minimum per-index frequency to report an index
            as a solution
        random_seed: Seed for measurement sampling; None uses OS entropy
        decision_rule: "threshold" compares raw frequency against
            solution_threshold; "wilson" compares the Wilson score lower bound
        confidence_z: z-score for the Wilson bound
    """
    iterations: int | None = None
    shots: int = 100
    success_threshold: float = 0.5
    solution_threshold: float = 0.1
    random_seed: int | None = None
    decision_rule: str = "threshold"
    confidence_z: float = 1.96

    def __post_init__(self):
        if self.iterations is not None and self.iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {self.iterations}")
        if self.shots < 0:
            raise ValueError(f"shots must be >= 0, got {self.shots}")
        for name in ("success_threshold", "solution_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.decision_rule not in DECISION_RULES:
            raise ValueError(
                f"decision_rule must be one of {DECISION_RULES}, got {self.decision_rule!r}"
            )
        if self.confidence_z <= 0:
            raise ValueError(f"confidence_z must be positive, got {self.confidence_z}")

    @classmethod
    def default(cls) -> GroverConfig:
        return cls()

    @classmethod
    def high_precision(cls) -> GroverConfig:
        return cls(shots=1000, success_threshold=0.9)

    @classmethod
    def fast(cls) -> GroverConfig:
        return cls(shots=50, success_threshold=0.3)

    @classmethod
    def reproducible(cls, seed: int) -> GroverConfig:
        return cls(random_seed=seed)

    @classmethod
    def manual(cls, iterations: int, shots: int) -> GroverConfig:
        """Fixed loop count, no optimisation."""
        return cls(iterations=iterations, shots=shots)

    def with_overrides(self, **changes: Any) -> GroverConfig:
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


@dataclass
class QuantumConfig:
    """Search and backend settings."""
    backend: str = "statevector"
    max_qubits: int = 24
    shots: int = 100
    iterations: int | None = None
    seed: int | None = None
    success_threshold: float = 0.5
    solution_threshold: float = 0.1
    decision_rule: str = "threshold"
    optimization_level: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuantumConfig:
        """Create QuantumConfig from dictionary."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


@dataclass
class OutputConfig:
    """Configuration for output and display."""
    color_output: bool = True
    verbose: bool = False
    log_level: str = "WARNING"
    json_indent: int = 2

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputConfig:
        """Create OutputConfig from dictionary."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


@dataclass
class QsearchConfig:
    """
    Master settings for qsearch.

    Configuration precedence (highest to lowest):
    1. Programmatic overrides
    2. Environment variables (QSEARCH_*)
    3. Explicit config file
    4. Project-level config (./qsearch.toml)
    5. User-level config (~/.config/qsearch/qsearch.toml)
    6. Default values

    Example:
        >>> config = QsearchConfig.load()
        >>> config.quantum.shots = 2048
        >>> result = search(pred, 4, config.make_backend(), config.to_grover_config())
    """
    quantum: QuantumConfig = field(default_factory=QuantumConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    _config_path: Path | None = field(default=None, repr=False)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> QsearchConfig:
        """
        Load configuration with full precedence chain.

        Args:
            config_path: Explicit config file path (overrides search)

        Returns:
            Loaded QsearchConfig instance
        """
        config = cls()

        if DEFAULT_CONFIG_FILE.exists():
            config._merge_from_file(DEFAULT_CONFIG_FILE)

        project_config = Path("qsearch.toml")
        if project_config.exists():
            config._merge_from_file(project_config)

        if config_path is not None:
            path = Path(config_path)
            if path.exists():
                config._merge_from_file(path)
                config._config_path = path
            else:
                logger.warning(f"Config file not found: {path}")

        config._apply_env_overrides()
        return config

    def _merge_from_file(self, path: Path) -> None:
        """Merge configuration from a TOML file."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Failed to parse config file {path}: {e}")
            return

        if "quantum" in data:
            self.quantum = QuantumConfig.from_dict({**self.quantum.__dict__, **data["quantum"]})
        if "output" in data:
            self.output = OutputConfig.from_dict({**self.output.__dict__, **data["output"]})

        logger.debug(f"Loaded configuration from {path}")

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides (QSEARCH_* prefix)."""
        env_mapping = {
            "QSEARCH_BACKEND": ("quantum", "backend"),
            "QSEARCH_MAX_QUBITS": ("quantum", "max_qubits", int),
            "QSEARCH_SHOTS": ("quantum", "shots", int),
            "QSEARCH_ITERATIONS": ("quantum", "iterations", int),
            "QSEARCH_SEED": ("quantum", "seed", int),
            "QSEARCH_SUCCESS_THRESHOLD": ("quantum", "success_threshold", float),
            "QSEARCH_SOLUTION_THRESHOLD": ("quantum", "solution_threshold", float),
            "QSEARCH_DECISION_RULE": ("quantum", "decision_rule"),
            "QSEARCH_LOG_LEVEL": ("output", "log_level"),
            "QSEARCH_VERBOSE": ("output", "verbose", bool),
        }

        for env_var, mapping in env_mapping.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            section_name = mapping[0]
            attr_name = mapping[1]
            converter = mapping[2] if len(mapping) > 2 else str

            try:
                if converter == bool:
                    converted = value.lower() in ("true", "1", "yes")
                else:
                    converted = converter(value)

                section = getattr(self, section_name)
                setattr(section, attr_name, converted)
                logger.debug(f"Applied env override: {env_var}={converted}")
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid env value for {env_var}: {e}")

    def save(self, path: str | Path | None = None) -> Path:
        """
        Save configuration to a TOML file.

        Args:
            path: Output path. Defaults to user config location.

        Returns:
            Path written
        """
        if path is None:
            path = self._config_path or DEFAULT_CONFIG_FILE

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Build TOML content manually to avoid dependency on tomli_w
        lines = [
            "# qsearch configuration",
            "",
        ]

        for section_name, section_obj in (("quantum", self.quantum), ("output", self.output)):
            lines.append(f"[{section_name}]")
            for field_name, field_val in section_obj.__dict__.items():
                if isinstance(field_val, str):
                    lines.append(f'{field_name} = "{field_val}"')
                elif isinstance(field_val, bool):
                    lines.append(f"{field_name} = {'true' if field_val else 'false'}")
                elif field_val is None:
                    continue
                else:
                    lines.append(f"{field_name} = {field_val}")
            lines.append("")

        path.write_text("\n".join(lines))
        logger.info(f"Configuration saved to {path}")
        return path

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "quantum": dict(self.quantum.__dict__),
            "output": dict(self.output.__dict__),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> QsearchConfig:
        """Create configuration from JSON string."""
        data = json.loads(json_str)
        config = cls()
        if "quantum" in data:
            config.quantum = QuantumConfig.from_dict(data["quantum"])
        if "output" in data:
            config.output = OutputConfig.from_dict(data["output"])
        return config

    def to_grover_config(self) -> GroverConfig:
        q = self.quantum
        return GroverConfig(
            iterations=q.iterations,
            shots=q.shots,
            success_threshold=q.success_threshold,
            solution_threshold=q.solution_threshold,
            random_seed=q.seed,
            decision_rule=q.decision_rule,
        )

    def make_backend(self):
        """Instantiate the configured backend."""
        from qsearch.quantum.engine import BackendType, get_backend

        kwargs = {}
        if BackendType.from_name(self.quantum.backend) == BackendType.QISKIT_AER:
            kwargs["optimization_level"] = self.quantum.optimization_level
        return get_backend(self.quantum.backend, max_qubits=self.quantum.max_qubits, **kwargs)

    def setup_logging(self) -> None:
        """Configure the ``qsearch`` logger based on output settings."""
        level = getattr(logging, self.output.log_level.upper(), logging.WARNING)

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        root_logger = logging.getLogger("qsearch")
        for handler in list(root_logger.handlers):
            if getattr(handler, "_qsearch_handler", False):
                root_logger.removeHandler(handler)

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        handler._qsearch_handler = True
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG if self.output.verbose else level)

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of warnings.

        Returns:
            List of warning messages (empty if config is valid)
        """
        warnings = []

        if self.quantum.shots < 0:
            warnings.append("quantum.shots must be >= 0")
        if self.quantum.shots > 100_000:
            warnings.append("quantum.shots > 100000 may be slow")
        if not 1 <= self.quantum.max_qubits <= 24:
            warnings.append("quantum.max_qubits must be between 1 and 24")
        if self.quantum.iterations is not None and self.quantum.iterations < 0:
            warnings.append("quantum.iterations must be >= 0")
        for name in ("success_threshold", "solution_threshold"):
            value = getattr(self.quantum, name)
            if not 0.0 <= value <= 1.0:
                warnings.append(f"quantum.{name} must be between 0 and 1")
        if self.quantum.decision_rule not in DECISION_RULES:
            warnings.append(f"Invalid decision rule: {self.quantum.decision_rule}")
        if self.quantum.backend.lower() not in ("statevector", "numpy", "qiskit", "qiskit_aer", "aer"):
            warnings.append(f"Unknown backend: {self.quantum.backend}")
        if self.output.log_level.upper() not in LOG_LEVELS:
            warnings.append(f"Invalid log level: {self.output.log_level}")

        return warnings


def get_default_config() -> QsearchConfig:
    """Get configuration with all default values."""
    return QsearchConfig()


def generate_default_config(path: str | Path | None = None) -> Path:
    """
    Generate a default configuration file.

    Args:
        path: Output path. Defaults to ~/.config/qsearch/qsearch.toml

    Returns:
        Path to generated config file
    """
    config = QsearchConfig()
    save_path = Path(path) if path else DEFAULT_CONFIG_FILE
    return config.save(save_path)
