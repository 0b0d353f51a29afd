"""Core qsearch components."""

from qsearch.core.config import (
    GroverConfig,
    QsearchConfig,
    QuantumConfig,
    OutputConfig,
)

__all__ = [
    "GroverConfig",
    "QsearchConfig",
    "QuantumConfig",
    "OutputConfig",
]
