"""
Partial witness and witness generation.

The partial witness binds values to INPUT wires and supplies inner proofs for
recursion slots. ``generate_witness`` evaluates the rest of the wire program,
checks every constraint, and natively verifies every inner proof.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import FIELD_ORDER
from ..exceptions import (
    IncompatibleCircuitShape,
    VerificationFailed,
    WitnessGenerationError,
)
from ..field import to_digest, validate_element
from ..merkle import MerkleProof
from .circuit_data import CommonCircuitData, VerifierOnlyCircuitData, WireKind
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
from .verifier import verify_proof

logger = logging.getLogger(__name__)


class PartialWitness:
    """Values for input wires, plus inner proofs keyed by recursion slot."""

    def __init__(self):
        self._values: Dict[int, int] = {}
        self._proofs: Dict[int, Proof] = {}

    def get(self, target: Target) -> Optional[int]:
        return self._values.get(target.index)

    def set_target(self, target: Target, value: int) -> None:
        value = validate_element(value, f"wire {target.index}")
        existing = self._values.get(target.index)
        if existing is not None and existing != value:
            raise WitnessGenerationError(
                f"wire {target.index} already set to a different value"
            )
        self._values[target.index] = value

    def set_targets(self, targets: Sequence[Target], values: Sequence[int]) -> None:
        if len(targets) != len(values):
            raise ValueError(f"{len(targets)} targets but {len(values)} values")
        for target, value in zip(targets, values):
            self.set_target(target, value)

    def set_bool_target(self, target: BoolTarget, value: bool) -> None:
        self.set_target(target.target, int(bool(value)))

    def set_hash_target(self, target: HashOutTarget, digest: Sequence[int]) -> None:
        self.set_targets(target.elements, to_digest(digest))

    def set_cap_target(
        self, target: MerkleCapTarget, cap: Sequence[Sequence[int]]
    ) -> None:
        if len(target) != len(cap):
            raise ValueError(f"cap target holds {len(target)} hashes, got {len(cap)}")
        for hash_target, digest in zip(target.hashes, cap):
            self.set_hash_target(hash_target, digest)

    def set_merkle_proof_target(
        self, target: MerkleProofTarget, proof: MerkleProof
    ) -> None:
        if len(target) != len(proof):
            raise ValueError(
                f"merkle proof target has {len(target)} siblings, got {len(proof)}"
            )
        for hash_target, sibling in zip(target.siblings, proof.siblings):
            self.set_hash_target(hash_target, sibling)

    def set_proof_with_pis_target(
        self, target: ProofWithPublicInputsTarget, proof_with_pis: ProofWithPublicInputs
    ) -> None:
        """
        Raises:
            IncompatibleCircuitShape: If the proof was not made for a circuit
                shaped like the one the target was allocated for
        """
        if len(proof_with_pis.public_inputs) != len(target.public_inputs):
            raise IncompatibleCircuitShape(
                f"proof has {len(proof_with_pis.public_inputs)} public inputs, "
                f"target expects {len(target.public_inputs)}"
            )
        if not target.common.matches_proof(proof_with_pis.proof):
            raise IncompatibleCircuitShape(
                "proof does not match the inner circuit shape"
            )
        self.set_targets(target.public_inputs, proof_with_pis.public_inputs)
        self._proofs[target.slot] = proof_with_pis.proof

    def set_verifier_data_target(
        self, target: VerifierCircuitTarget, verifier_only: VerifierOnlyCircuitData
    ) -> None:
        self.set_hash_target(target.circuit_digest, verifier_only.circuit_digest)

    def proof_for_slot(self, slot: int) -> Optional[Proof]:
        return self._proofs.get(slot)


def generate_witness(
    common: CommonCircuitData, witness: PartialWitness
) -> Tuple[List[int], List[RecursionOpening]]:
    """
    Evaluate all wires and check the circuit is satisfied.

    Returns:
        (value of every wire, one opening per recursion gate)

    Raises:
        WitnessGenerationError: If an input is missing, a constraint does not
            hold, or an inner proof does not verify
    """
    values: List[int] = []
    for index, wire in enumerate(common.wires):
        if wire.kind == WireKind.INPUT:
            value = witness._values.get(index)
            if value is None:
                raise WitnessGenerationError(f"wire {index} was never set")
        elif wire.kind == WireKind.CONSTANT:
            value = wire.constant
        elif wire.kind == WireKind.LINEAR:
            value = (
                sum(coeff * values[i] for coeff, i in wire.terms) + wire.constant
            ) % FIELD_ORDER
        else:
            value = values[wire.left] * values[wire.right] % FIELD_ORDER

        assigned = witness._values.get(index)
        if wire.kind != WireKind.INPUT and assigned is not None and assigned != value:
            raise WitnessGenerationError(
                f"wire {index} was set to a value the circuit does not compute"
            )
        values.append(value)

    for constraint in common.constraints:
        total = (
            sum(coeff * values[i] for coeff, i in constraint.terms)
            + constraint.constant
        ) % FIELD_ORDER
        if total:
            raise WitnessGenerationError(
                f"constraint {constraint.label or '<unnamed>'} is not satisfied"
            )

    openings = []
    for gate in common.recursion_gates:
        proof = witness.proof_for_slot(gate.slot)
        if proof is None:
            raise WitnessGenerationError(f"no proof supplied for slot {gate.slot}")
        inner = ProofWithPublicInputs(
            proof=proof,
            public_inputs=tuple(values[i] for i in gate.public_inputs),
        )
        digest = to_digest([values[i] for i in gate.circuit_digest], "circuit_digest")

        try:
            verify_proof(gate.inner, VerifierOnlyCircuitData(digest), inner)
        except VerificationFailed as e:
            logger.debug("Inner proof in slot %d rejected: %s", gate.slot, e)
            raise WitnessGenerationError(
                f"inner proof in slot {gate.slot} does not verify: {e}"
            ) from e
        openings.append(
            RecursionOpening(
                proof=proof, public_inputs=inner.public_inputs, circuit_digest=digest
            )
        )

    return values, openings
