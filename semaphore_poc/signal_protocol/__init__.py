"""Public API for the anonymous signaling protocol."""

from .access_set import AccessSet, NullifierRegistry, SignalCircuit
from .config import CircuitConfig
from .exceptions import (
    ArityMismatch,
    FieldElementError,
    IncompatibleCircuitShape,
    IndexOutOfRange,
    SelfCheckFailed,
    SignalProtocolError,
    VerificationFailed,
    WitnessMismatch,
)
from .field import Digest, random_digest, topic_from_text
from .merkle import CommitmentTree, MerkleProof
from .poseidon import compute_nullifier, identity_commitment
from .recursion import Aggregator
from .types import AggregatedSignal, Signal

__all__ = [
    "AccessSet",
    "NullifierRegistry",
    "SignalCircuit",
    "Aggregator",
    "CircuitConfig",
    "CommitmentTree",
    "MerkleProof",
    "Signal",
    "AggregatedSignal",
    "Digest",
    "random_digest",
    "topic_from_text",
    "identity_commitment",
    "compute_nullifier",
    "SignalProtocolError",
    "ArityMismatch",
    "FieldElementError",
    "IndexOutOfRange",
    "WitnessMismatch",
    "VerificationFailed",
    "IncompatibleCircuitShape",
    "SelfCheckFailed",
]
