"""
Amplitude register for the state-vector simulator.

An n-qubit register is a flat ``complex128`` vector of length 2^n. Qubit
``q`` corresponds to bit ``q`` of the basis index (little-endian, the same
convention Qiskit uses), so the basis index itself is the canonical encoding
of a candidate solution.
"""

from __future__ import annotations

import logging

import numpy as np

from qsearch.exceptions import DimensionError, NormalizationError

logger = logging.getLogger(__name__)

# 2^24 complex128 amplitudes is 256 MiB; beyond that we refuse up front.
MAX_REGISTER_QUBITS = 24

NORM_TOLERANCE = 1e-9


class AmplitudeRegister:
    """
    Complex amplitude vector over 2^n basis states.

    The register is mutated in place by the gate engine and read through
    :meth:`probabilities` and :meth:`sample`, neither of which collapses
    the state.

    Example:
        >>> reg = AmplitudeRegister.create(3, initial_index=5)
        >>> reg.probabilities()[5]
        1.0
    """

    def __init__(self, num_qubits: int, amplitudes: np.ndarray):
        _check_qubits(num_qubits)
        amplitudes = np.ascontiguousarray(amplitudes, dtype=np.complex128)
        if amplitudes.shape != (1 << num_qubits,):
            raise DimensionError(
                f"Expected {1 << num_qubits} amplitudes for {num_qubits} qubits, "
                f"got shape {amplitudes.shape}"
            )
        self.num_qubits = num_qubits
        self.amplitudes = amplitudes

    @classmethod
    def create(cls, num_qubits: int, initial_index: int | None = None) -> AmplitudeRegister:
        """
        Create a register in a computational basis state.

        Args:
            num_qubits: Register width (1 to MAX_REGISTER_QUBITS)
            initial_index: Basis state to start in; defaults to |0...0>,
                from which a Hadamard on every qubit gives the uniform
                superposition

        Returns:
            New AmplitudeRegister
        """
        _check_qubits(num_qubits)
        dimension = 1 << num_qubits
        index = 0 if initial_index is None else initial_index
        if not 0 <= index < dimension:
            raise DimensionError(
                f"Initial index {index} outside [0, {dimension}) for {num_qubits} qubits"
            )

        amplitudes = np.zeros(dimension, dtype=np.complex128)
        amplitudes[index] = 1.0
        return cls(num_qubits, amplitudes)

    @classmethod
    def uniform(cls, num_qubits: int) -> AmplitudeRegister:
        """Create a register directly in the equal superposition."""
        _check_qubits(num_qubits)
        dimension = 1 << num_qubits
        amplitudes = np.full(dimension, 1.0 / np.sqrt(dimension), dtype=np.complex128)
        return cls(num_qubits, amplitudes)

    @property
    def dimension(self) -> int:
        return self.amplitudes.shape[0]

    def amplitude(self, index: int) -> complex:
        self.check_index(index)
        return complex(self.amplitudes[index])

    def probabilities(self) -> np.ndarray:
        """Squared-magnitude distribution over basis indices (a copy)."""
        return np.abs(self.amplitudes) ** 2

    def probability(self, index: int) -> float:
        self.check_index(index)
        return float(abs(self.amplitudes[index]) ** 2)

    def norm_squared(self) -> float:
        return float(np.vdot(self.amplitudes, self.amplitudes).real)

    def is_normalized(self, tolerance: float = NORM_TOLERANCE) -> bool:
        return abs(self.norm_squared() - 1.0) <= tolerance

    def renormalize(self, tolerance: float = 1e-6) -> None:
        """
        Rescale away accumulated rounding error.

        Drift larger than ``tolerance`` means a non-unitary operation slipped
        in, and is reported rather than hidden.
        """
        norm_sq = self.norm_squared()
        if abs(norm_sq - 1.0) > tolerance:
            raise NormalizationError(
                f"Register norm^2 drifted to {norm_sq!r} (tolerance {tolerance})"
            )
        self.amplitudes /= np.sqrt(norm_sq)

    def sample(self, rng: np.random.Generator) -> int:
        """
        Draw one basis index according to the Born rule.

        The register is left untouched, so repeated draws see the same state.
        """
        probs = self.probabilities()
        probs /= probs.sum()
        return int(rng.choice(self.dimension, p=probs))

    def check_index(self, index: int) -> None:
        if not 0 <= index < self.dimension:
            raise DimensionError(
                f"Basis index {index} outside [0, {self.dimension})"
            )

    def copy(self) -> AmplitudeRegister:
        return AmplitudeRegister(self.num_qubits, self.amplitudes.copy())

    def __repr__(self) -> str:
        return f"AmplitudeRegister(num_qubits={self.num_qubits})"


def _check_qubits(num_qubits: int) -> None:
    if num_qubits <= 0:
        raise DimensionError(f"Register needs at least one qubit, got {num_qubits}")
    if num_qubits > MAX_REGISTER_QUBITS:
        raise DimensionError(
            f"{num_qubits} qubits exceeds the simulation ceiling of "
            f"{MAX_REGISTER_QUBITS} (2^{num_qubits} amplitudes)"
        )
