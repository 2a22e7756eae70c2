"""
Built circuits and the metadata needed to verify their proofs.

A circuit is a wire program plus constraints:

- INPUT wires are supplied by the partial witness;
- CONSTANT wires carry a fixed value;
- LINEAR wires are ``sum(coeff * wire) + constant``;
- PRODUCT wires are ``left * right`` (one product gate each);
- explicit linear constraints assert ``sum(coeff * wire) + constant == 0``;
- recursion gates assert that an inner proof verifies against inner public
  inputs and an inner circuit digest carried on outer wires.

``CommonCircuitData`` is the full shape; its digest is the circuit digest
held in ``VerifierOnlyCircuitData``. Both are needed to verify a proof, and a
proof only verifies under the exact metadata it was produced with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from functools import cached_property
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterator, Optional, Tuple

import cbor2

from ..config import CircuitConfig, DIGEST_LEN, DOMAIN_SEPARATORS, FIELD_ORDER
from ..exceptions import SerializationError
from ..field import Digest, to_digest
from ..security import hash_to_scalar

if TYPE_CHECKING:
    from ..security import RandomnessSource
    from .proof import Proof, ProofWithPublicInputs
    from .witness import PartialWitness

Terms = Tuple[Tuple[int, int], ...]


class WireKind(IntEnum):
    INPUT = 0
    CONSTANT = 1
    LINEAR = 2
    PRODUCT = 3


@dataclass(frozen=True)
class Wire:
    kind: WireKind
    constant: int = 0
    terms: Terms = ()
    left: int = -1
    right: int = -1

    def encode(self) -> list:
        return [int(self.kind), self.constant, [list(t) for t in self.terms], self.left, self.right]


@dataclass(frozen=True)
class LinearConstraint:
    """``sum(coeff * wire) + constant == 0``."""

    terms: Terms
    constant: int = 0
    label: str = ""

    def encode(self) -> list:
        return [[list(t) for t in self.terms], self.constant, self.label]


@dataclass(frozen=True)
class RecursionGate:
    """In-circuit verification of the inner proof supplied for ``slot``."""

    slot: int
    public_inputs: Tuple[int, ...]
    circuit_digest: Tuple[int, ...]
    inner: "CommonCircuitData"

    def encode(self) -> list:
        return [
            self.slot,
            list(self.public_inputs),
            list(self.circuit_digest),
            list(self.inner.digest),
        ]


def _is_bytes(value) -> bool:
    return isinstance(value, (bytes, bytearray))


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_tuple_of(value, length: int, check) -> bool:
    return (
        isinstance(value, (tuple, list))
        and len(value) == length
        and all(check(v) for v in value)
    )


@dataclass(frozen=True, eq=False)
class CommonCircuitData:
    """Shape of a built circuit, shared by prover and verifier."""

    config: CircuitConfig
    wires: Tuple[Wire, ...]
    constraints: Tuple[LinearConstraint, ...]
    public_inputs: Tuple[int, ...]
    recursion_gates: Tuple[RecursionGate, ...] = ()
    num_proof_slots: int = 0

    # ------------------------------------------------------------------
    # Derived shape
    # ------------------------------------------------------------------

    @property
    def num_wires(self) -> int:
        return len(self.wires)

    @property
    def num_public_inputs(self) -> int:
        return len(self.public_inputs)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @cached_property
    def disclosed_wires(self) -> FrozenSet[int]:
        """Wires whose values the verifier learns from recursion openings."""
        disclosed = set()
        for gate in self.recursion_gates:
            disclosed.update(gate.public_inputs)
            disclosed.update(gate.circuit_digest)
        return frozenset(disclosed)

    @cached_property
    def known_wires(self) -> FrozenSet[int]:
        constants = {
            i for i, wire in enumerate(self.wires) if wire.kind == WireKind.CONSTANT
        }
        return frozenset(constants | set(self.public_inputs) | self.disclosed_wires)

    @cached_property
    def private_wires(self) -> Tuple[int, ...]:
        known = self.known_wires
        return tuple(i for i in range(len(self.wires)) if i not in known)

    @cached_property
    def product_wires(self) -> Tuple[int, ...]:
        return tuple(
            i for i, wire in enumerate(self.wires) if wire.kind == WireKind.PRODUCT
        )

    @property
    def num_product_gates(self) -> int:
        return len(self.product_wires)

    def linear_relations(self) -> Iterator[Tuple[Terms, int]]:
        """Explicit constraints followed by the defining relation of every LINEAR wire."""
        for constraint in self.constraints:
            yield constraint.terms, constraint.constant
        for index, wire in enumerate(self.wires):
            if wire.kind == WireKind.LINEAR:
                yield wire.terms + ((FIELD_ORDER - 1, index),), wire.constant

    def batched_linear(self, rho: int) -> Tuple[Dict[int, int], int]:
        """
        Combine all linear relations with weights rho, rho^2, ...

        Returns:
            (coefficient per wire, combined constant)
        """
        coefficients: Dict[int, int] = {}
        constant = 0
        weight = 1
        for terms, offset in self.linear_relations():
            weight = weight * rho % FIELD_ORDER
            for coeff, wire in terms:
                coefficients[wire] = (coefficients.get(wire, 0) + weight * coeff) % FIELD_ORDER
            constant = (constant + weight * offset) % FIELD_ORDER
        return coefficients, constant

    # ------------------------------------------------------------------
    # Digest
    # ------------------------------------------------------------------

    def encode(self) -> bytes:
        structure = [
            self.config.to_dict(),
            [wire.encode() for wire in self.wires],
            [constraint.encode() for constraint in self.constraints],
            list(self.public_inputs),
            [gate.encode() for gate in self.recursion_gates],
            self.num_proof_slots,
        ]
        try:
            return cbor2.dumps(structure, canonical=True)
        except Exception as e:
            raise SerializationError(f"Failed to encode circuit shape: {e}") from e

    @cached_property
    def digest(self) -> Digest:
        encoded = self.encode()
        domain = DOMAIN_SEPARATORS["circuit_digest"]
        return tuple(
            hash_to_scalar(encoded, domain + bytes([i]), FIELD_ORDER)
            for i in range(DIGEST_LEN)
        )  # type: ignore[return-value]

    def same_shape(self, other: "CommonCircuitData") -> bool:
        return self is other or self.digest == other.digest

    def matches_proof(self, proof: "Proof") -> bool:
        """
        Cheap structural check that ``proof`` was made for a circuit of this shape.

        Checks types and arity of every entry, not values; never raises.
        """
        from .proof import Proof, RecursionOpening

        if not isinstance(proof, Proof):
            return False
        try:
            if len(proof.wire_commitments) != len(self.private_wires):
                return False
            if not all(_is_bytes(c) for c in proof.wire_commitments):
                return False
            if not _is_bytes(proof.linear_announcement):
                return False
            if len(proof.product_announcements) != self.num_product_gates:
                return False
            for announcement in proof.product_announcements:
                if not _is_tuple_of(announcement, 2, _is_bytes):
                    return False
            if len(proof.product_responses) != self.num_product_gates:
                return False
            for responses in proof.product_responses:
                if not _is_tuple_of(responses, 3, _is_int):
                    return False
            if len(proof.recursion_openings) != len(self.recursion_gates):
                return False
            for gate, opening in zip(self.recursion_gates, proof.recursion_openings):
                if not isinstance(opening, RecursionOpening):
                    return False
                if len(opening.public_inputs) != len(gate.public_inputs):
                    return False
                if len(opening.circuit_digest) != DIGEST_LEN:
                    return False
                if not gate.inner.matches_proof(opening.proof):
                    return False
        except TypeError:
            return False
        return True

    def __repr__(self) -> str:
        return (
            f"CommonCircuitData(wires={self.num_wires}, "
            f"product_gates={self.num_product_gates}, "
            f"constraints={self.num_constraints}, "
            f"public_inputs={self.num_public_inputs}, "
            f"recursion_gates={len(self.recursion_gates)})"
        )


@dataclass(frozen=True)
class VerifierOnlyCircuitData:
    circuit_digest: Digest

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "circuit_digest", to_digest(self.circuit_digest, "circuit_digest")
        )


@dataclass(frozen=True, eq=False)
class VerifierCircuitData:
    """Everything a verifier (or an outer circuit) needs about a circuit."""

    verifier_only: VerifierOnlyCircuitData
    common: CommonCircuitData

    def verify(self, proof_with_pis: "ProofWithPublicInputs") -> None:
        """
        Raises:
            VerificationFailed: If the proof is rejected
        """
        from .verifier import verify_proof

        verify_proof(self.common, self.verifier_only, proof_with_pis)

    @property
    def circuit_digest(self) -> Digest:
        return self.verifier_only.circuit_digest


@dataclass(frozen=True, eq=False)
class CircuitData:
    """A built circuit that can prove and verify."""

    common: CommonCircuitData
    verifier_only: VerifierOnlyCircuitData = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "verifier_only", VerifierOnlyCircuitData(self.common.digest)
        )

    def prove(
        self,
        witness: "PartialWitness",
        rng: Optional["RandomnessSource"] = None,
    ) -> "ProofWithPublicInputs":
        """
        Raises:
            WitnessGenerationError: If the witness does not satisfy the circuit
        """
        from .prover import prove

        return prove(self.common, self.verifier_only, witness, rng=rng)

    def verify(self, proof_with_pis: "ProofWithPublicInputs") -> None:
        from .verifier import verify_proof

        verify_proof(self.common, self.verifier_only, proof_with_pis)

    def verifier_data(self) -> VerifierCircuitData:
        return VerifierCircuitData(self.verifier_only, self.common)
