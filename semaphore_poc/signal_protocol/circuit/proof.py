"""
Proof objects and their CBOR encoding.

A proof carries:
    wire_commitments       one Pedersen commitment per private wire
    linear_announcement    A = k*H for the batched linear relation
    linear_response        z = k + e*R
    product_announcements  (T1, T2) per product gate
    product_responses      (z1, z2, z3) per product gate
    recursion_openings     inner proof, inner public inputs and inner
                           circuit digest per recursion gate
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import cbor2

from ..config import PROOF_VERSION
from ..exceptions import SerializationError
from ..field import Digest, to_digest, validate_elements


@dataclass(frozen=True)
class RecursionOpening:
    proof: "Proof"
    public_inputs: Tuple[int, ...]
    circuit_digest: Digest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof": self.proof.to_dict(),
            "public_inputs": list(self.public_inputs),
            "circuit_digest": list(self.circuit_digest),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecursionOpening":
        return cls(
            proof=Proof.from_dict(data["proof"]),
            public_inputs=validate_elements(data["public_inputs"], "public_inputs"),
            circuit_digest=to_digest(data["circuit_digest"], "circuit_digest"),
        )


@dataclass(frozen=True)
class Proof:
    wire_commitments: Tuple[bytes, ...]
    linear_announcement: bytes
    linear_response: int
    product_announcements: Tuple[Tuple[bytes, bytes], ...]
    product_responses: Tuple[Tuple[int, int, int], ...]
    recursion_openings: Tuple[RecursionOpening, ...] = ()

    @property
    def size_bytes(self) -> int:
        """Approximate encoded size; grows with the circuit."""
        return len(self.to_bytes())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": PROOF_VERSION,
            "wire_commitments": list(self.wire_commitments),
            "linear_announcement": self.linear_announcement,
            "linear_response": self.linear_response,
            "product_announcements": [list(t) for t in self.product_announcements],
            "product_responses": [list(z) for z in self.product_responses],
            "recursion_openings": [o.to_dict() for o in self.recursion_openings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proof":
        try:
            version = data.get("version")
            if version != PROOF_VERSION:
                raise SerializationError(f"Unsupported proof version: {version}")
            return cls(
                wire_commitments=tuple(bytes(c) for c in data["wire_commitments"]),
                linear_announcement=bytes(data["linear_announcement"]),
                linear_response=int(data["linear_response"]),
                product_announcements=tuple(
                    (bytes(t1), bytes(t2)) for t1, t2 in data["product_announcements"]
                ),
                product_responses=tuple(
                    (int(z1), int(z2), int(z3))
                    for z1, z2, z3 in data["product_responses"]
                ),
                recursion_openings=tuple(
                    RecursionOpening.from_dict(o) for o in data["recursion_openings"]
                ),
            )
        except SerializationError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"Malformed proof: {e}") from e

    def to_bytes(self) -> bytes:
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "Proof":
        try:
            decoded = cbor2.loads(data)
        except Exception as e:
            raise SerializationError(f"Failed to decode proof: {e}") from e
        return cls.from_dict(decoded)


@dataclass(frozen=True)
class ProofWithPublicInputs:
    proof: Proof
    public_inputs: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof": self.proof.to_dict(),
            "public_inputs": list(self.public_inputs),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProofWithPublicInputs":
        try:
            return cls(
                proof=Proof.from_dict(data["proof"]),
                public_inputs=validate_elements(data["public_inputs"], "public_inputs"),
            )
        except (KeyError, TypeError) as e:
            raise SerializationError(f"Malformed proof with public inputs: {e}") from e

    def to_bytes(self) -> bytes:
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProofWithPublicInputs":
        try:
            decoded = cbor2.loads(data)
        except Exception as e:
            raise SerializationError(f"Failed to decode proof: {e}") from e
        return cls.from_dict(decoded)
