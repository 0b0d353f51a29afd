"""State-vector simulator components for qsearch."""

from qsearch.simulator.register import (
    AmplitudeRegister,
    MAX_REGISTER_QUBITS,
)
from qsearch.simulator.gates import (
    apply_gate,
    apply_hadamard_to_all,
    apply_phase_flip,
    apply_diffusion,
)
from qsearch.simulator.measurement import (
    make_rng,
    measure,
    frequencies,
    most_likely,
    top_solutions,
)

__all__ = [
    "AmplitudeRegister",
    "MAX_REGISTER_QUBITS",
    "apply_gate",
    "apply_hadamard_to_all",
    "apply_phase_flip",
    "apply_diffusion",
    "make_rng",
    "measure",
    "frequencies",
    "most_likely",
    "top_solutions",
]
