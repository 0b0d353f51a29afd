"""
Error taxonomy for qsearch.

"No solution found" and "low success probability" are not errors: the
search driver returns them as ordinary results. Everything here means the
search engine itself could not do its job.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for all qsearch failures."""


class DimensionError(SearchError, ValueError):
    """Qubit count or basis index outside what a register can represent."""


class CapacityError(SearchError):
    """Requested qubit count exceeds what the backend can execute."""

    def __init__(self, num_qubits: int, max_qubits: int, backend: str):
        self.num_qubits = num_qubits
        self.max_qubits = max_qubits
        self.backend = backend
        super().__init__(
            f"{num_qubits} qubits requested but backend '{backend}' "
            f"supports at most {max_qubits}"
        )


class PredicateError(SearchError):
    """The caller-supplied predicate raised while building an oracle."""

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(
            f"Predicate failed at index {index}: {type(cause).__name__}: {cause}"
        )


class BackendError(SearchError):
    """The execution substrate failed."""


class NormalizationError(BackendError):
    """Register norm drifted further from 1 than rounding can explain."""
