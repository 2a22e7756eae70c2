"""
⚠️ DRAFT — requires crypto review before production use

Signal artifacts and their CBOR serialization.

This module provides:
1. Signal - nullifier plus membership proof for one topic
2. AggregatedSignal - nullifier vector plus one proof attesting to all of them
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

try:
    import cbor2
except ImportError:
    raise ImportError(
        "cbor2 is required for signal serialization. "
        "Install with: pip install cbor2"
    )

from .config import PROOF_VERSION
from .exceptions import SerializationError
from .field import Digest, to_digest
from .circuit.proof import Proof

if TYPE_CHECKING:
    from .circuit.circuit_data import VerifierCircuitData

# ============================================================================
# SIGNAL
# ============================================================================


@dataclass(frozen=True)
class Signal:
    """
    One anonymous signal.

    Attributes:
        nullifier: H(secret ‖ topic); equal for repeated signals of one
            member on one topic
        proof: Membership and nullifier-derivation proof; the public inputs
            are rebuilt by the verifier from the access set cap, the
            nullifier and the topic

    Example:
        >>> signal, verifier_data = access_set.make_signal(secret, topic, 3)
        >>> access_set.verify_signal(topic, signal, verifier_data)
    """

    nullifier: Digest
    proof: Proof

    def __post_init__(self):
        object.__setattr__(self, "nullifier", to_digest(self.nullifier, "nullifier"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": PROOF_VERSION,
            "nullifier": list(self.nullifier),
            "proof": self.proof.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Signal":
        try:
            if data.get("version") != PROOF_VERSION:
                raise SerializationError(
                    f"Unsupported signal version: {data.get('version')}"
                )
            return cls(
                nullifier=data["nullifier"],
                proof=Proof.from_dict(data["proof"]),
            )
        except SerializationError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"Malformed signal: {e}") from e

    def to_bytes(self) -> bytes:
        """Serialize to CBOR bytes."""
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signal":
        try:
            decoded = cbor2.loads(data)
        except Exception as e:
            raise SerializationError(f"Failed to decode signal: {e}") from e
        return cls.from_dict(decoded)


# ============================================================================
# AGGREGATED SIGNAL
# ============================================================================


@dataclass(frozen=True)
class AggregatedSignal:
    """
    Nullifiers of ``2 ** level`` signals plus one proof over all of them.

    The outer proof's public inputs are exactly the concatenated
    nullifiers, in aggregation order. ``verifier_data`` is attached by the
    aggregator; it is not serialized because it can be rebuilt from the
    access set and the level.
    """

    nullifiers: Tuple[Digest, ...]
    proof: Proof
    level: int = 1
    verifier_data: Optional["VerifierCircuitData"] = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self):
        nullifiers = tuple(
            to_digest(n, f"nullifiers[{i}]") for i, n in enumerate(self.nullifiers)
        )
        if self.level < 1 or len(nullifiers) != 2**self.level:
            raise ValueError(
                f"level {self.level} aggregate needs {2 ** max(self.level, 0)} "
                f"nullifiers, got {len(nullifiers)}"
            )
        object.__setattr__(self, "nullifiers", nullifiers)

    @property
    def nullifier0(self) -> Digest:
        return self.nullifiers[0]

    @property
    def nullifier1(self) -> Digest:
        return self.nullifiers[1]

    @property
    def public_inputs(self) -> Tuple[int, ...]:
        return tuple(v for n in self.nullifiers for v in n)

    def as_tuple(self) -> Tuple[Digest, Digest, Proof]:
        """``(nullifier0, nullifier1, proof)`` for a single pairwise aggregate."""
        if self.level != 1:
            raise ValueError("as_tuple is only defined for level 1 aggregates")
        return self.nullifier0, self.nullifier1, self.proof

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": PROOF_VERSION,
            "level": self.level,
            "nullifiers": [list(n) for n in self.nullifiers],
            "proof": self.proof.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregatedSignal":
        try:
            if data.get("version") != PROOF_VERSION:
                raise SerializationError(
                    f"Unsupported aggregate version: {data.get('version')}"
                )
            return cls(
                nullifiers=tuple(tuple(n) for n in data["nullifiers"]),
                proof=Proof.from_dict(data["proof"]),
                level=int(data["level"]),
            )
        except SerializationError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"Malformed aggregated signal: {e}") from e

    def to_bytes(self) -> bytes:
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "AggregatedSignal":
        try:
            decoded = cbor2.loads(data)
        except Exception as e:
            raise SerializationError(f"Failed to decode aggregated signal: {e}") from e
        return cls.from_dict(decoded)

    def __len__(self) -> int:
        return len(self.nullifiers)

