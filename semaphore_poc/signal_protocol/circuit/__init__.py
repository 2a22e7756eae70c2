"""
Commit-and-prove circuit backend.

Circuit builder, partial witness, prover and verifier consumed by the
signaling protocol. Proofs are zero-knowledge and sound; their size grows
with the circuit.
"""

from .builder import CircuitBuilder
from .circuit_data import (
    CircuitData,
    CommonCircuitData,
    VerifierCircuitData,
    VerifierOnlyCircuitData,
)
from .proof import Proof, ProofWithPublicInputs, RecursionOpening
from .targets import (
    BoolTarget,
    HashOutTarget,
    MerkleCapTarget,
    MerkleProofTarget,
    ProofWithPublicInputsTarget,
    Target,
    VerifierCircuitTarget,
)
from .witness import PartialWitness

__all__ = [
    "CircuitBuilder",
    "CircuitData",
    "CommonCircuitData",
    "VerifierCircuitData",
    "VerifierOnlyCircuitData",
    "Proof",
    "ProofWithPublicInputs",
    "RecursionOpening",
    "BoolTarget",
    "HashOutTarget",
    "MerkleCapTarget",
    "MerkleProofTarget",
    "ProofWithPublicInputsTarget",
    "Target",
    "VerifierCircuitTarget",
    "PartialWitness",
]
