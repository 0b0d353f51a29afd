"""
Grover search driver.

Higher-level solvers reduce their problem to "find indices in [0, 2^n)
satisfying a predicate" and call :func:`search`. The driver compiles the
oracle, picks the iteration count, runs the amplify/diffuse loop on the
backend, samples shots and turns the histogram into a decided solution set
plus diagnostics.

Low confidence is reported, not retried: callers compare
``result.success_probability`` with their own tolerance (``result.success``
uses ``GroverConfig.success_threshold``) and fall back to classical search
if they need to.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from qsearch.core.config import GroverConfig
from qsearch.exceptions import CapacityError, DimensionError
from qsearch.quantum.engine import Backend, StatevectorBackend
from qsearch.quantum.iteration import (
    GroverIterator,
    optimal_iterations,
    theoretical_success_probability,
)
from qsearch.quantum.oracle import (
    Oracle,
    PredicateLike,
    as_callable,
    build_oracle,
    oracle_for_values,
)
from qsearch.simulator.measurement import make_rng
from qsearch.simulator.register import MAX_REGISTER_QUBITS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroverResult:
    """
    Outcome of one Grover search.

    The histogram is read-only and its counts sum to ``shots``. When no index
    is marked nothing is measured, so ``shots`` is 0 and the histogram empty.
    """
    solutions: frozenset[int]
    histogram: Mapping[int, int]
    iterations_used: int
    success_probability: float
    shots: int = 0
    num_qubits: int = 0
    marked_count: int = 0
    expected_success_probability: float = 0.0
    success_threshold: float = 0.5
    backend: str = ""
    probability_history: tuple[float, ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "histogram", MappingProxyType(dict(self.histogram)))

    @property
    def success(self) -> bool:
        """Whether enough probability mass landed on true solutions."""
        return self.marked_count > 0 and self.success_probability >= self.success_threshold

    @property
    def search_space_size(self) -> int:
        return 1 << self.num_qubits

    @property
    def quantum_speedup(self) -> float:
        """Classical queries (N) per Grover iteration used."""
        return self.search_space_size / max(self.iterations_used, 1)

    def frequency(self, index: int) -> float:
        if self.shots <= 0:
            return 0.0
        return self.histogram.get(index, 0) / self.shots

    def ranked_solutions(self) -> list[int]:
        """Solutions ordered by observed count, highest first."""
        return sorted(self.solutions, key=lambda i: (-self.histogram.get(i, 0), i))

    def to_dict(self) -> dict:
        return {
            "solutions": self.ranked_solutions(),
            "histogram": {str(k): v for k, v in sorted(self.histogram.items())},
            "iterations_used": self.iterations_used,
            "success_probability": self.success_probability,
            "expected_success_probability": self.expected_success_probability,
            "success": self.success,
            "shots": self.shots,
            "num_qubits": self.num_qubits,
            "marked_count": self.marked_count,
            "backend": self.backend,
        }


def wilson_lower_bound(count: int, shots: int, z: float = 1.96) -> float:
    """Lower end of the Wilson score interval for a binomial proportion."""
    if shots <= 0:
        return 0.0
    p = count / shots
    denom = 1 + z * z / shots
    centre = p + z * z / (2 * shots)
    margin = z * math.sqrt(p * (1 - p) / shots + z * z / (4 * shots * shots))
    return max(0.0, (centre - margin) / denom)


def decide_solutions(histogram: Mapping[int, int], shots: int, config: GroverConfig) -> frozenset[int]:
    """Indices whose observed frequency clears the solution threshold."""
    if shots <= 0:
        return frozenset()

    decided = set()
    for index, count in histogram.items():
        if config.decision_rule == "wilson":
            score = wilson_lower_bound(count, shots, config.confidence_z)
        else:
            score = count / shots
        if score >= config.solution_threshold:
            decided.add(index)
    return frozenset(decided)


class GroverSearch:
    """
    Grover search over a fixed backend.

    Example:
        >>> searcher = GroverSearch(StatevectorBackend())
        >>> result = searcher.search(lambda i: i == 5, 3, GroverConfig(shots=200))
        >>> 5 in result.solutions
        True
    """

    def __init__(self, backend: Backend | None = None):
        self.backend = backend or StatevectorBackend()

    def search(
        self,
        predicate: PredicateLike,
        num_qubits: int,
        config: GroverConfig | None = None,
        track_probabilities: bool = False,
    ) -> GroverResult:
        """
        Find basis indices satisfying ``predicate``.

        Args:
            predicate: Pure function ``index -> bool`` (or ``evaluate`` object)
            num_qubits: Search register width; the space is [0, 2^n)
            config: Search configuration (defaults to GroverConfig())
            track_probabilities: Record exact success probability per iteration

        Returns:
            GroverResult; empty solutions when nothing matches

        Raises:
            DimensionError: num_qubits <= 0
            CapacityError: num_qubits above the backend limit
            PredicateError: the predicate raised
            BackendError: the substrate failed
        """
        self._check_capacity(num_qubits)
        oracle = build_oracle(predicate, num_qubits)
        return self.search_oracle(oracle, config, track_probabilities)

    def search_oracle(
        self,
        oracle: Oracle,
        config: GroverConfig | None = None,
        track_probabilities: bool = False,
    ) -> GroverResult:
        """Run the search with an already compiled oracle."""
        config = config or GroverConfig()
        num_qubits = oracle.num_qubits
        self._check_capacity(num_qubits)

        size = oracle.search_space_size
        marked = oracle.marked_count

        if marked == 0:
            logger.info(f"No index in [0, {size}) satisfies the predicate")
            return GroverResult(
                solutions=frozenset(),
                histogram={},
                iterations_used=0,
                success_probability=0.0,
                shots=0,
                num_qubits=num_qubits,
                marked_count=0,
                success_threshold=config.success_threshold,
                backend=self.backend.name,
            )

        if config.iterations is not None:
            iterations = config.iterations
        else:
            iterations = optimal_iterations(size, marked)
        logger.debug(
            f"Searching {size} states with {marked} marked: {iterations} iterations "
            f"(theoretical p={theoretical_success_probability(size, marked, iterations):.3f})"
        )

        register = self.backend.create_register(num_qubits)
        self.backend.apply_hadamard_to_all(register)

        iterator = GroverIterator(self.backend)
        loop = iterator.run(register, oracle, iterations, track_probabilities=track_probabilities)
        expected = iterator.marked_probability(register, oracle)

        rng = make_rng(config.random_seed)
        histogram = self.backend.measure(register, config.shots, rng)

        # Sampling noise can clear the threshold; only marked indices are solutions.
        solutions = frozenset(
            index for index in decide_solutions(histogram, config.shots, config)
            if oracle.is_marked(index)
        )
        if config.shots > 0:
            hits = sum(count for index, count in histogram.items() if oracle.is_marked(index))
            success_probability = hits / config.shots
        else:
            success_probability = 0.0

        if success_probability < config.success_threshold:
            logger.warning(
                f"Low-confidence result: success probability {success_probability:.3f} "
                f"below threshold {config.success_threshold:.3f}"
            )

        return GroverResult(
            solutions=solutions,
            histogram=histogram,
            iterations_used=iterations,
            success_probability=success_probability,
            shots=config.shots,
            num_qubits=num_qubits,
            marked_count=marked,
            expected_success_probability=expected,
            success_threshold=config.success_threshold,
            backend=self.backend.name,
            probability_history=tuple(loop.probability_history),
        )

    def _check_capacity(self, num_qubits: int) -> None:
        if num_qubits <= 0:
            raise DimensionError(f"Search needs at least one qubit, got {num_qubits}")
        if not self.backend.supports(num_qubits):
            raise CapacityError(num_qubits, self.backend.max_qubits, self.backend.name)
        if num_qubits > MAX_REGISTER_QUBITS:
            raise CapacityError(num_qubits, MAX_REGISTER_QUBITS, self.backend.name)


def search(
    predicate: PredicateLike,
    num_qubits: int,
    backend: Backend | None = None,
    config: GroverConfig | None = None,
) -> GroverResult:
    """Search [0, 2^num_qubits) for indices satisfying ``predicate``."""
    return GroverSearch(backend).search(predicate, num_qubits, config)


async def search_async(
    predicate: PredicateLike,
    num_qubits: int,
    backend: Backend | None = None,
    config: GroverConfig | None = None,
) -> GroverResult:
    """
    Run :func:`search` as one blocking unit on a worker thread.

    The search itself is not interleaved with the event loop.
    """
    return await asyncio.to_thread(search, predicate, num_qubits, backend, config)


def search_value(
    target: int,
    num_qubits: int,
    backend: Backend | None = None,
    config: GroverConfig | None = None,
) -> GroverResult:
    return search_values([target], num_qubits, backend, config)


def search_values(
    targets: Iterable[int],
    num_qubits: int,
    backend: Backend | None = None,
    config: GroverConfig | None = None,
) -> GroverResult:
    """Search for any of an explicit set of indices."""
    targets = list(targets)
    if not targets:
        raise ValueError("Target list cannot be empty")
    searcher = GroverSearch(backend)
    searcher._check_capacity(num_qubits)
    return searcher.search_oracle(oracle_for_values(targets, num_qubits), config)


def classical_search(predicate: PredicateLike, search_space_size: int) -> int | None:
    """First index satisfying the predicate, by linear scan."""
    test = as_callable(predicate)
    return next((i for i in range(search_space_size) if test(i)), None)


def classical_search_all(predicate: PredicateLike, search_space_size: int) -> list[int]:
    test = as_callable(predicate)
    return [i for i in range(search_space_size) if test(i)]


def verify_solution(predicate: PredicateLike, result: GroverResult) -> bool:
    """True if the result is non-empty and every solution satisfies the predicate."""
    test = as_callable(predicate)
    return bool(result.solutions) and all(test(s) for s in result.solutions)
