"""
Oracle construction for Grover search.

An oracle marks "good" basis states by flipping the sign of their
amplitudes. Because this runs on a simulator rather than hardware, the
oracle is compiled by evaluating the caller's classical predicate once per
basis index and recording which indices matched. A physical device would
instead need a reversible circuit computing the predicate; this is a
deliberate modelling choice that trades hardware fidelity for speed and
simplicity at small qubit counts, not a bug.

The predicate is evaluated exactly ``2^n`` times per build, never once per
Grover iteration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Protocol, Union, runtime_checkable

import numpy as np

from qsearch.exceptions import DimensionError, PredicateError
from qsearch.simulator.register import MAX_REGISTER_QUBITS

if TYPE_CHECKING:
    from qsearch.quantum.engine import Backend

logger = logging.getLogger(__name__)


@runtime_checkable
class Predicate(Protocol):
    """Stateless classical test over basis indices."""

    def evaluate(self, index: int) -> bool:
        ...


PredicateLike = Union[Callable[[int], bool], Predicate]


def as_callable(predicate: PredicateLike) -> Callable[[int], bool]:
    """Normalise a plain function or an ``evaluate``-style object to a callable."""
    if isinstance(predicate, Predicate):
        return predicate.evaluate
    if callable(predicate):
        return predicate
    raise TypeError(
        f"Predicate must be callable or define evaluate(index), got {type(predicate).__name__}"
    )


@dataclass(frozen=True, eq=False)
class Oracle:
    """
    Compiled phase-flip oracle.

    Attributes:
        num_qubits: Width of the search register
        marked: Sorted array of marked basis indices
    """
    num_qubits: int
    marked: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "marked", np.unique(np.asarray(self.marked, dtype=np.int64)))

    @property
    def search_space_size(self) -> int:
        return 1 << self.num_qubits

    @property
    def marked_count(self) -> int:
        return int(self.marked.size)

    @property
    def marked_set(self) -> frozenset[int]:
        return frozenset(int(i) for i in self.marked)

    def is_marked(self, index: int) -> bool:
        pos = np.searchsorted(self.marked, index)
        return bool(pos < self.marked.size and self.marked[pos] == index)

    def __contains__(self, index: int) -> bool:
        return self.is_marked(index)

    def apply(self, backend: Backend, register) -> None:
        """Flip the sign of every marked amplitude in ``register``."""
        backend.apply_phase_flip(register, self.marked)

    def __and__(self, other: Oracle) -> Oracle:
        self._check_compatible(other)
        return Oracle(self.num_qubits, np.intersect1d(self.marked, other.marked))

    def __or__(self, other: Oracle) -> Oracle:
        self._check_compatible(other)
        return Oracle(self.num_qubits, np.union1d(self.marked, other.marked))

    def __invert__(self) -> Oracle:
        everything = np.arange(self.search_space_size, dtype=np.int64)
        return Oracle(self.num_qubits, np.setdiff1d(everything, self.marked))

    def _check_compatible(self, other: Oracle) -> None:
        if other.num_qubits != self.num_qubits:
            raise DimensionError(
                f"Cannot combine oracles over {self.num_qubits} and {other.num_qubits} qubits"
            )

    def verify(self, backend: Backend) -> bool:
        """
        Check that applying the oracle to a uniform superposition negates
        exactly the marked amplitudes.
        """
        register = backend.create_register(self.num_qubits)
        backend.apply_hadamard_to_all(register)
        before = backend.amplitudes(register)
        self.apply(backend, register)
        after = backend.amplitudes(register)

        expected = before.copy()
        expected[self.marked] *= -1
        return bool(np.allclose(after, expected, atol=1e-12))

    def __repr__(self) -> str:
        return f"Oracle(num_qubits={self.num_qubits}, marked_count={self.marked_count})"


def build_oracle(predicate: PredicateLike, num_qubits: int) -> Oracle:
    """
    Compile a predicate into an oracle by classical enumeration.

    Args:
        predicate: Callable ``index -> bool`` or object with ``evaluate``
        num_qubits: Register width; every index in [0, 2^n) is evaluated

    Returns:
        Oracle marking exactly ``{i : predicate(i)}``

    Raises:
        PredicateError: If the predicate raises for any index
    """
    _check_qubits(num_qubits)
    test = as_callable(predicate)

    marked = []
    for index in range(1 << num_qubits):
        try:
            hit = test(index)
        except Exception as exc:
            raise PredicateError(index, exc) from exc
        if hit:
            marked.append(index)

    logger.debug(f"Built oracle over {num_qubits} qubits: {len(marked)} marked")
    return Oracle(num_qubits, np.asarray(marked, dtype=np.int64))


def oracle_for_values(values: Iterable[int], num_qubits: int) -> Oracle:
    """Oracle marking an explicit set of indices."""
    _check_qubits(num_qubits)
    size = 1 << num_qubits
    unique = sorted(set(int(v) for v in values))
    invalid = [v for v in unique if not 0 <= v < size]
    if invalid:
        raise DimensionError(f"Values {invalid} outside search space [0, {size})")
    return Oracle(num_qubits, np.asarray(unique, dtype=np.int64))


def oracle_for_value(target: int, num_qubits: int) -> Oracle:
    return oracle_for_values([target], num_qubits)


# Predicate factories


def even(index: int) -> bool:
    return index % 2 == 0


def odd(index: int) -> bool:
    return index % 2 == 1


def divisible_by(n: int) -> Callable[[int], bool]:
    if n == 0:
        raise ValueError("Divisor must be non-zero")
    return lambda index: index % n == 0


def in_range(low: int, high: int) -> Callable[[int], bool]:
    """Inclusive range test."""
    return lambda index: low <= index <= high


def greater_than(threshold: int) -> Callable[[int], bool]:
    return lambda index: index > threshold


def less_than(threshold: int) -> Callable[[int], bool]:
    return lambda index: index < threshold


def _check_qubits(num_qubits: int) -> None:
    if not 0 < num_qubits <= MAX_REGISTER_QUBITS:
        raise DimensionError(
            f"Oracle width must be in [1, {MAX_REGISTER_QUBITS}], got {num_qubits}"
        )
