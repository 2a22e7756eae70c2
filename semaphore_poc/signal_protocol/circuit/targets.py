"""Handles to circuit wires returned by the builder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Tuple

if TYPE_CHECKING:
    from .circuit_data import CommonCircuitData


@dataclass(frozen=True)
class Target:
    """A single wire, identified by its index in the circuit's wire program."""

    index: int


@dataclass(frozen=True)
class BoolTarget:
    """A wire constrained (or known) to be 0 or 1."""

    target: Target


@dataclass(frozen=True)
class HashOutTarget:
    elements: Tuple[Target, ...]

    def __iter__(self) -> Iterator[Target]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)


@dataclass(frozen=True)
class MerkleCapTarget:
    hashes: Tuple[HashOutTarget, ...]

    def __len__(self) -> int:
        return len(self.hashes)


@dataclass(frozen=True)
class MerkleProofTarget:
    siblings: Tuple[HashOutTarget, ...]

    def __len__(self) -> int:
        return len(self.siblings)


@dataclass(frozen=True)
class ProofWithPublicInputsTarget:
    """
    Placeholder for an inner proof inside an outer circuit.

    ``public_inputs`` are outer wires carrying the inner proof's public
    inputs; ``slot`` identifies which proof the witness must supply.
    """

    slot: int
    public_inputs: Tuple[Target, ...]
    common: "CommonCircuitData"


@dataclass(frozen=True)
class VerifierCircuitTarget:
    circuit_digest: HashOutTarget
