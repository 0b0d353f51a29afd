"""
Gate application on an AmplitudeRegister.

Gates act in place through index arithmetic on the amplitude vector: the
vector is viewed as an n-dimensional (2, 2, ..., 2) tensor and a 2x2 matrix
is contracted against one axis, optionally restricted to the slice where
every control qubit is 1. No 2^n x 2^n matrix is ever formed.

Qubit ``q`` is bit ``q`` of the basis index. With a C-ordered reshape the
most significant bit comes first, so qubit ``q`` lives on tensor axis
``n - 1 - q``.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import numpy as np

from qsearch.exceptions import DimensionError
from qsearch.simulator.register import AmplitudeRegister

logger = logging.getLogger(__name__)

_SQRT_HALF = 1.0 / math.sqrt(2.0)

H = np.array([[_SQRT_HALF, _SQRT_HALF], [_SQRT_HALF, -_SQRT_HALF]], dtype=np.complex128)
X = np.array([[0, 1], [1, 0]], dtype=np.complex128)
Y = np.array([[0, -1j], [1j, 0]], dtype=np.complex128)
Z = np.array([[1, 0], [0, -1]], dtype=np.complex128)
S = np.array([[1, 0], [0, 1j]], dtype=np.complex128)
T = np.array([[1, 0], [0, np.exp(1j * math.pi / 4)]], dtype=np.complex128)


def rx(theta: float) -> np.ndarray:
    c, s = math.cos(theta / 2), math.sin(theta / 2)
    return np.array([[c, -1j * s], [-1j * s, c]], dtype=np.complex128)


def ry(theta: float) -> np.ndarray:
    c, s = math.cos(theta / 2), math.sin(theta / 2)
    return np.array([[c, -s], [s, c]], dtype=np.complex128)


def rz(theta: float) -> np.ndarray:
    return np.array(
        [[np.exp(-0.5j * theta), 0], [0, np.exp(0.5j * theta)]],
        dtype=np.complex128,
    )


def phase(theta: float) -> np.ndarray:
    return np.array([[1, 0], [0, np.exp(1j * theta)]], dtype=np.complex128)


def apply_gate(
    register: AmplitudeRegister,
    matrix: np.ndarray,
    target: int,
    controls: Sequence[int] = (),
) -> None:
    """
    Apply a 2x2 unitary to ``target``, conditioned on all ``controls`` being 1.

    Args:
        register: Register to mutate
        matrix: 2x2 complex matrix
        target: Target qubit
        controls: Control qubits (distinct from target and each other)
    """
    n = register.num_qubits
    _check_qubits(n, [target, *controls])
    if len(set(controls)) != len(controls) or target in controls:
        raise DimensionError(f"Target {target} and controls {list(controls)} must be distinct")

    psi = register.amplitudes.reshape((2,) * n)
    selector: list = [slice(None)] * n
    for control in controls:
        selector[n - 1 - control] = 1

    target_axis = n - 1 - target
    # Fixing control axes with integers drops them from the view.
    target_axis -= sum(1 for c in controls if n - 1 - c < target_axis)

    view = psi[tuple(selector)]
    updated = np.tensordot(matrix, view, axes=([1], [target_axis]))
    view[...] = np.moveaxis(updated, 0, target_axis)


def apply_hadamard(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, H, qubit)


def apply_hadamard_to_all(register: AmplitudeRegister) -> None:
    """
    Apply H to every qubit.

    From |0...0> this yields amplitude 1/sqrt(2^n) on every index.
    """
    for qubit in range(register.num_qubits):
        apply_gate(register, H, qubit)


def apply_x(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, X, qubit)


def apply_y(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, Y, qubit)


def apply_z(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, Z, qubit)


def apply_s(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, S, qubit)


def apply_t(register: AmplitudeRegister, qubit: int) -> None:
    apply_gate(register, T, qubit)


def apply_rx(register: AmplitudeRegister, qubit: int, theta: float) -> None:
    apply_gate(register, rx(theta), qubit)


def apply_ry(register: AmplitudeRegister, qubit: int, theta: float) -> None:
    apply_gate(register, ry(theta), qubit)


def apply_rz(register: AmplitudeRegister, qubit: int, theta: float) -> None:
    apply_gate(register, rz(theta), qubit)


def apply_phase(register: AmplitudeRegister, qubit: int, theta: float) -> None:
    apply_gate(register, phase(theta), qubit)


def apply_cnot(register: AmplitudeRegister, control: int, target: int) -> None:
    apply_gate(register, X, target, (control,))


def apply_cz(register: AmplitudeRegister, control: int, target: int) -> None:
    apply_gate(register, Z, target, (control,))


def apply_cphase(register: AmplitudeRegister, control: int, target: int, theta: float) -> None:
    apply_gate(register, phase(theta), target, (control,))


def apply_crx(register: AmplitudeRegister, control: int, target: int, theta: float) -> None:
    apply_gate(register, rx(theta), target, (control,))


def apply_cry(register: AmplitudeRegister, control: int, target: int, theta: float) -> None:
    apply_gate(register, ry(theta), target, (control,))


def apply_crz(register: AmplitudeRegister, control: int, target: int, theta: float) -> None:
    apply_gate(register, rz(theta), target, (control,))


def apply_ccx(register: AmplitudeRegister, control1: int, control2: int, target: int) -> None:
    apply_gate(register, X, target, (control1, control2))


def apply_mcz(register: AmplitudeRegister, controls: Sequence[int], target: int) -> None:
    apply_gate(register, Z, target, tuple(controls))


def apply_swap(register: AmplitudeRegister, qubit1: int, qubit2: int) -> None:
    n = register.num_qubits
    _check_qubits(n, [qubit1, qubit2])
    if qubit1 == qubit2:
        return
    psi = register.amplitudes.reshape((2,) * n)
    psi[...] = np.swapaxes(psi, n - 1 - qubit1, n - 1 - qubit2).copy()


def apply_phase_flip(register: AmplitudeRegister, marked: Iterable[int] | np.ndarray) -> None:
    """
    Multiply the amplitude at every marked index by -1.

    Args:
        register: Register to mutate
        marked: Distinct basis indices to flip
    """
    indices = np.fromiter(marked, dtype=np.int64)
    if indices.size == 0:
        return
    if indices.min() < 0 or indices.max() >= register.dimension:
        raise DimensionError(
            f"Marked indices must lie in [0, {register.dimension})"
        )
    register.amplitudes[indices] *= -1


def apply_diffusion(register: AmplitudeRegister) -> None:
    """
    Inversion about the mean: a_i -> 2*mean(a) - a_i.

    Equal to H^n (2|0><0| - I) H^n, computed in O(2^n).
    """
    amplitudes = register.amplitudes
    mean = amplitudes.mean()
    np.subtract(2.0 * mean, amplitudes, out=amplitudes)


def _check_qubits(num_qubits: int, qubits: Iterable[int]) -> None:
    for qubit in qubits:
        if not 0 <= qubit < num_qubits:
            raise DimensionError(
                f"Qubit {qubit} outside register of {num_qubits} qubits"
            )
