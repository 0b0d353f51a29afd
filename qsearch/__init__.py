"""
qsearch - State-vector simulation and Grover search for combinatorial solvers

Solvers reduce their problem to a classical predicate over basis indices
in [0, 2^n); qsearch amplifies the matching indices with Grover's algorithm
and returns the high-probability candidates with confidence diagnostics.
"""

__version__ = "0.1.0"

from qsearch.core.config import GroverConfig, QsearchConfig
from qsearch.exceptions import (
    SearchError,
    DimensionError,
    CapacityError,
    PredicateError,
    BackendError,
)
from qsearch.quantum.engine import Backend, StatevectorBackend, get_backend
from qsearch.quantum.grover import GroverResult, GroverSearch, search

__all__ = [
    "GroverConfig",
    "QsearchConfig",
    "SearchError",
    "DimensionError",
    "CapacityError",
    "PredicateError",
    "BackendError",
    "Backend",
    "StatevectorBackend",
    "get_backend",
    "GroverResult",
    "GroverSearch",
    "search",
    "__version__",
]
