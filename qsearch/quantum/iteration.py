"""
Grover iteration: oracle followed by diffusion, repeated k times.

The optimal k for N basis states with M marked is the integer nearest to
(pi/4) * sqrt(N/M). After k iterations the probability of measuring a marked
state is sin^2((2k + 1) * theta) with theta = asin(sqrt(M/N)).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from qsearch.quantum.engine import Backend
    from qsearch.quantum.oracle import Oracle

logger = logging.getLogger(__name__)


def optimal_iterations(search_space_size: int, marked_count: int) -> int:
    """
    Number of Grover iterations that maximises success probability.

    Args:
        search_space_size: N, the number of basis states (>= 1)
        marked_count: M, the number of marked states (0 is treated as 1)

    Returns:
        round((pi/4) * sqrt(N / max(M, 1))), or 0 when every state is marked
    """
    if search_space_size < 1:
        raise ValueError(f"Search space size must be positive, got {search_space_size}")
    if marked_count < 0:
        raise ValueError(f"Marked count must be non-negative, got {marked_count}")
    if marked_count >= search_space_size:
        return 0

    k = int(round(math.pi / 4 * math.sqrt(search_space_size / max(marked_count, 1))))
    return max(0, k)


def theoretical_success_probability(
    search_space_size: int, marked_count: int, iterations: int
) -> float:
    """Probability of measuring a marked state after ``iterations`` rounds."""
    if search_space_size < 1:
        raise ValueError(f"Search space size must be positive, got {search_space_size}")
    if marked_count <= 0:
        return 0.0
    if marked_count >= search_space_size:
        return 1.0

    theta = math.asin(math.sqrt(marked_count / search_space_size))
    return math.sin((2 * iterations + 1) * theta) ** 2


@dataclass
class IterationResult:
    """Diagnostics from a Grover loop."""
    iterations_applied: int
    probability_history: list[float] = field(default_factory=list)


class GroverIterator:
    """
    Drives the amplify/diffuse loop on a backend register.

    The register is mutated in place; nothing is measured here.

    Example:
        >>> iterator = GroverIterator(backend)
        >>> iterator.run(register, oracle, optimal_iterations(8, 1))
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    def run(
        self,
        register,
        oracle: Oracle,
        iterations: int,
        diffuser: Callable[[object], None] | None = None,
        track_probabilities: bool = False,
    ) -> IterationResult:
        """
        Apply oracle then diffusion exactly ``iterations`` times.

        Args:
            register: Backend register, already in the starting superposition
            oracle: Compiled oracle
            iterations: Loop count (>= 0)
            diffuser: Replacement for the backend's inversion about the mean
            track_probabilities: Record marked-state probability after each round

        Returns:
            IterationResult with the count and optional history
        """
        if iterations < 0:
            raise ValueError(f"Number of iterations must be non-negative, got {iterations}")

        diffuse = diffuser or self.backend.apply_diffusion
        history: list[float] = []

        for _ in range(iterations):
            oracle.apply(self.backend, register)
            diffuse(register)
            self.backend.renormalize(register)

            if track_probabilities:
                history.append(self.marked_probability(register, oracle))

        logger.debug(f"Applied {iterations} Grover iterations")
        return IterationResult(iterations_applied=iterations, probability_history=history)

    def marked_probability(self, register, oracle: Oracle) -> float:
        """Exact probability mass currently on marked indices."""
        if oracle.marked_count == 0:
            return 0.0
        probs = self.backend.probabilities(register)
        return float(probs[oracle.marked].sum())
