"""
Shot sampling and histogram helpers.

A histogram maps basis index to observed count. It is built fresh for every
measurement and only ever contains indices that were actually observed.
"""

from __future__ import annotations

import logging
from typing import Mapping

import numpy as np

from qsearch.simulator.register import AmplitudeRegister

logger = logging.getLogger(__name__)


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Seeded generator, or one drawn from OS entropy when ``seed`` is None."""
    return np.random.default_rng(seed)


def sample_counts(probabilities: np.ndarray, shots: int, rng: np.random.Generator) -> dict[int, int]:
    """
    Draw ``shots`` independent outcomes from a probability vector.

    Args:
        probabilities: Non-negative weights over basis indices
        shots: Number of draws; ``<= 0`` gives an empty histogram
        rng: Random source (the only source of randomness)

    Returns:
        Histogram whose counts sum to exactly ``shots``
    """
    if shots <= 0:
        return {}

    probs = np.asarray(probabilities, dtype=np.float64)
    probs = probs / probs.sum()
    counts = rng.multinomial(shots, probs)
    observed = np.flatnonzero(counts)
    return {int(i): int(counts[i]) for i in observed}


def measure(register: AmplitudeRegister, shots: int, rng: np.random.Generator) -> dict[int, int]:
    """Sample ``shots`` measurements from a register without disturbing it."""
    histogram = sample_counts(register.probabilities(), shots, rng)
    logger.debug(f"Measured {shots} shots over {len(histogram)} distinct outcomes")
    return histogram


def frequencies(histogram: Mapping[int, int], shots: int | None = None) -> dict[int, float]:
    """Empirical frequency of each observed index."""
    total = sum(histogram.values()) if shots is None else shots
    if total <= 0:
        return {}
    return {index: count / total for index, count in histogram.items()}


def most_likely(histogram: Mapping[int, int]) -> int | None:
    if not histogram:
        return None
    return max(histogram.items(), key=lambda item: (item[1], -item[0]))[0]


def top_solutions(histogram: Mapping[int, int], n: int) -> list[int]:
    """The ``n`` most frequently observed indices, ties broken by index."""
    ranked = sorted(histogram.items(), key=lambda item: (-item[1], item[0]))
    return [index for index, _ in ranked[:max(n, 0)]]
