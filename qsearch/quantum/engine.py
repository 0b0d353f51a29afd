"""
Execution backends for qsearch.

The search driver talks only to the :class:`Backend` interface: create a
register, apply the Grover primitives to it, read probabilities, sample
shots. Two substrates ship with the package:

* :class:`StatevectorBackend` runs on the in-process numpy simulator.
* :class:`QiskitBackend` builds the same operations as a Qiskit circuit and
  samples it on ``qiskit-aer``, standing in for any circuit-based device.

A backend may be shared between concurrent searches. It only answers
capability queries; every call gets its own register.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable

import numpy as np

from qsearch.exceptions import BackendError, DimensionError
from qsearch.simulator import gates
from qsearch.simulator.measurement import measure as sample_register
from qsearch.simulator.register import MAX_REGISTER_QUBITS, AmplitudeRegister

logger = logging.getLogger(__name__)


class BackendType(Enum):
    """Available execution backends."""
    STATEVECTOR = auto()  # In-process numpy simulator
    QISKIT_AER = auto()   # Qiskit circuit sampled on AerSimulator

    @classmethod
    def from_name(cls, name: str) -> BackendType:
        key = name.strip().upper().replace("-", "_")
        aliases = {"QISKIT": "QISKIT_AER", "AER": "QISKIT_AER", "NUMPY": "STATEVECTOR"}
        try:
            return cls[aliases.get(key, key)]
        except KeyError:
            choices = ", ".join(b.name.lower() for b in cls)
            raise ValueError(f"Unknown backend '{name}'. Choose from: {choices}") from None


class Backend(ABC):
    """
    Capability object plus the register operations Grover search needs.

    Registers are opaque to the driver; only the backend that created a
    register may operate on it.
    """

    name: str = "abstract"

    def __init__(self, max_qubits: int):
        self.max_qubits = max_qubits

    def supports(self, num_qubits: int) -> bool:
        return 0 < num_qubits <= self.max_qubits

    @property
    def info(self) -> dict:
        return {"name": self.name, "max_qubits": self.max_qubits}

    @abstractmethod
    def create_register(self, num_qubits: int, initial_index: int | None = None) -> Any:
        """Fresh register in a computational basis state (|0...0> by default)."""

    @abstractmethod
    def apply_hadamard_to_all(self, register) -> None:
        ...

    @abstractmethod
    def apply_phase_flip(self, register, marked: np.ndarray) -> None:
        ...

    @abstractmethod
    def apply_diffusion(self, register) -> None:
        ...

    @abstractmethod
    def amplitudes(self, register) -> np.ndarray:
        """Copy of the register's amplitude vector."""

    @abstractmethod
    def measure(self, register, shots: int, rng: np.random.Generator) -> dict[int, int]:
        """Histogram of ``shots`` samples; the register is not disturbed."""

    def probabilities(self, register) -> np.ndarray:
        return np.abs(self.amplitudes(register)) ** 2

    def renormalize(self, register) -> None:
        """Hook for substrates that accumulate rounding drift."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_qubits={self.max_qubits})"


class StatevectorBackend(Backend):
    """Exact simulation on an :class:`AmplitudeRegister`."""

    name = "statevector"

    def __init__(self, max_qubits: int = MAX_REGISTER_QUBITS):
        if not 0 < max_qubits <= MAX_REGISTER_QUBITS:
            raise DimensionError(
                f"Statevector backend max_qubits must be in [1, {MAX_REGISTER_QUBITS}]"
            )
        super().__init__(max_qubits)

    def create_register(self, num_qubits: int, initial_index: int | None = None) -> AmplitudeRegister:
        try:
            return AmplitudeRegister.create(num_qubits, initial_index)
        except MemoryError as e:
            raise BackendError(f"Cannot allocate {num_qubits}-qubit register: {e}") from e

    def apply_hadamard_to_all(self, register: AmplitudeRegister) -> None:
        gates.apply_hadamard_to_all(register)

    def apply_phase_flip(self, register: AmplitudeRegister, marked: np.ndarray) -> None:
        gates.apply_phase_flip(register, marked)

    def apply_diffusion(self, register: AmplitudeRegister) -> None:
        gates.apply_diffusion(register)

    def renormalize(self, register: AmplitudeRegister) -> None:
        register.renormalize()

    def amplitudes(self, register: AmplitudeRegister) -> np.ndarray:
        return register.amplitudes.copy()

    def probabilities(self, register: AmplitudeRegister) -> np.ndarray:
        return register.probabilities()

    def measure(self, register: AmplitudeRegister, shots: int, rng: np.random.Generator) -> dict[int, int]:
        return sample_register(register, shots, rng)


@dataclass
class CircuitRegister:
    """Register on a circuit backend: the gates applied so far."""
    num_qubits: int
    circuit: Any


class QiskitBackend(Backend):
    """
    Grover primitives compiled to Qiskit circuits.

    Oracles become one multi-controlled Z per marked state, conjugated by X
    on the zero bits; diffusion is the usual H-X-MCZ-X-H sandwich. Shots are
    sampled on ``AerSimulator``, seeded from the caller's generator.
    """

    name = "qiskit_aer"

    def __init__(self, max_qubits: int = MAX_REGISTER_QUBITS, optimization_level: int = 1):
        super().__init__(max_qubits)
        self.optimization_level = optimization_level
        if not self._check_qiskit():
            raise BackendError(
                "Qiskit backend requires qiskit and qiskit-aer. "
                "Install with: pip install 'qsearch[qiskit]'"
            )
        from qiskit_aer import AerSimulator
        self._simulator = AerSimulator()

    @staticmethod
    def _check_qiskit() -> bool:
        """Check if Qiskit and Aer are importable."""
        try:
            import qiskit  # noqa: F401
            from qiskit_aer import AerSimulator  # noqa: F401
            return True
        except ImportError:
            logger.warning(
                "Qiskit not available. Install with: pip install qiskit qiskit-aer"
            )
            return False

    @property
    def info(self) -> dict:
        info = super().info
        info["optimization_level"] = self.optimization_level
        return info

    def create_register(self, num_qubits: int, initial_index: int | None = None) -> CircuitRegister:
        from qiskit import QuantumCircuit

        if not 0 < num_qubits <= MAX_REGISTER_QUBITS:
            raise DimensionError(
                f"Register width must be in [1, {MAX_REGISTER_QUBITS}], got {num_qubits}"
            )
        circuit = QuantumCircuit(num_qubits, name="grover")
        if initial_index is not None:
            if not 0 <= initial_index < (1 << num_qubits):
                raise DimensionError(f"Initial index {initial_index} outside register")
            for qubit in range(num_qubits):
                if initial_index >> qubit & 1:
                    circuit.x(qubit)
        return CircuitRegister(num_qubits, circuit)

    def apply_hadamard_to_all(self, register: CircuitRegister) -> None:
        register.circuit.h(range(register.num_qubits))

    def apply_phase_flip(self, register: CircuitRegister, marked: Iterable[int]) -> None:
        n = register.num_qubits
        circuit = register.circuit

        for state in marked:
            state = int(state)
            if not 0 <= state < (1 << n):
                raise DimensionError(f"Marked index {state} outside register")
            zero_bits = [q for q in range(n) if not state >> q & 1]

            for qubit in zero_bits:
                circuit.x(qubit)
            self._mcz(circuit, n)
            for qubit in zero_bits:
                circuit.x(qubit)

    def apply_diffusion(self, register: CircuitRegister) -> None:
        n = register.num_qubits
        circuit = register.circuit

        circuit.h(range(n))
        circuit.x(range(n))
        self._mcz(circuit, n)
        circuit.x(range(n))
        circuit.h(range(n))
        # The sandwich implements I - 2|s><s|; fix the sign to match 2|s><s| - I.
        circuit.global_phase += math.pi

    @staticmethod
    def _mcz(circuit, n: int) -> None:
        """Phase-flip |1...1> on all n qubits."""
        if n == 1:
            circuit.z(0)
        else:
            circuit.h(n - 1)
            circuit.mcx(list(range(n - 1)), n - 1)
            circuit.h(n - 1)

    def amplitudes(self, register: CircuitRegister) -> np.ndarray:
        from qiskit.quantum_info import Statevector

        try:
            return np.asarray(Statevector.from_instruction(register.circuit).data)
        except Exception as e:
            raise BackendError(f"Statevector evaluation failed: {e}") from e

    def measure(self, register: CircuitRegister, shots: int, rng: np.random.Generator) -> dict[int, int]:
        if shots <= 0:
            return {}

        from qiskit import transpile

        measured = register.circuit.copy()
        measured.measure_all()
        seed = int(rng.integers(0, 2**31 - 1))

        try:
            transpiled = transpile(
                measured,
                self._simulator,
                optimization_level=self.optimization_level,
                seed_transpiler=seed,
            )
            result = self._simulator.run(transpiled, shots=shots, seed_simulator=seed).result()
            counts = result.get_counts()
        except Exception as e:
            raise BackendError(f"Aer execution failed: {e}") from e

        return {int(bits.replace(" ", ""), 2): int(count) for bits, count in counts.items()}


def get_backend(
    backend: BackendType | str = BackendType.STATEVECTOR,
    max_qubits: int | None = None,
    **kwargs,
) -> Backend:
    """
    Construct a backend by type or name.

    Args:
        backend: BackendType or its name ("statevector", "qiskit", ...)
        max_qubits: Capacity limit (defaults to the register ceiling)

    Returns:
        Backend instance
    """
    if isinstance(backend, str):
        backend = BackendType.from_name(backend)
    limit = MAX_REGISTER_QUBITS if max_qubits is None else max_qubits

    if backend == BackendType.STATEVECTOR:
        instance: Backend = StatevectorBackend(max_qubits=limit)
    elif backend == BackendType.QISKIT_AER:
        instance = QiskitBackend(max_qubits=limit, **kwargs)
    else:
        raise ValueError(f"Unsupported backend: {backend}")

    logger.debug(f"Using backend {instance.name} (max_qubits={instance.max_qubits})")
    return instance


def available_backends() -> dict[str, bool]:
    """Map of backend name to whether it can be constructed here."""
    return {
        BackendType.STATEVECTOR.name.lower(): True,
        BackendType.QISKIT_AER.name.lower(): QiskitBackend._check_qiskit(),
    }
