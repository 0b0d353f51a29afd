"""Grover search components for qsearch."""

from qsearch.quantum.engine import (
    Backend,
    BackendType,
    StatevectorBackend,
    QiskitBackend,
    get_backend,
    available_backends,
)
from qsearch.quantum.oracle import (
    Oracle,
    Predicate,
    build_oracle,
    oracle_for_value,
    oracle_for_values,
)
from qsearch.quantum.iteration import (
    GroverIterator,
    IterationResult,
    optimal_iterations,
    theoretical_success_probability,
)
from qsearch.quantum.grover import (
    GroverSearch,
    GroverResult,
    search,
    search_async,
    search_value,
    search_values,
)

__all__ = [
    "Backend",
    "BackendType",
    "StatevectorBackend",
    "QiskitBackend",
    "get_backend",
    "available_backends",
    "Oracle",
    "Predicate",
    "build_oracle",
    "oracle_for_value",
    "oracle_for_values",
    "GroverIterator",
    "IterationResult",
    "optimal_iterations",
    "theoretical_success_probability",
    "GroverSearch",
    "GroverResult",
    "search",
    "search_async",
    "search_value",
    "search_values",
]
