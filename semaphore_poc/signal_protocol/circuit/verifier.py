"""
⚠️ DRAFT — requires crypto review before production use

Verifier for the commit-and-prove backend.

Checks, in order:
    1. the verifier data digest equals the digest of the circuit shape
    2. the proof has the circuit's shape and decodes to valid points/scalars
    3. the batched linear relation: z*H == A + e*P, where
       P = sum(lambda_i * C_i) + (kappa + sum(lambda_j * v_j)) * G
       over private wires i and known wires j
    4. every product gate:
       z1*G + z2*H == T1 + e*C_b and z1*C_a + z3*H == T2 + e*C_c
    5. every recursion opening, recursively
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Sequence

from ..config import GROUP_ORDER
from ..exceptions import FieldElementError, SerializationError, VerificationFailed
from ..field import validate_elements
from ..security import Transcript
from .circuit_data import CommonCircuitData, VerifierOnlyCircuitData, WireKind
from .curve import get_cached_curve_params, multi_scalar_mul, point_from_bytes, to_bn
from .proof import Proof, ProofWithPublicInputs, RecursionOpening

logger = logging.getLogger(__name__)


def statement_transcript(
    common: CommonCircuitData,
    verifier_only: VerifierOnlyCircuitData,
    public_inputs: Sequence[int],
    openings: Sequence[RecursionOpening],
    wire_commitments: Sequence[bytes],
) -> Transcript:
    """Transcript state shared by prover and verifier before the first challenge."""
    transcript = Transcript()
    transcript.absorb_scalars(b"circuit_digest", verifier_only.circuit_digest)
    transcript.absorb_scalars(b"public_inputs", public_inputs)
    for opening in openings:
        transcript.absorb_scalars(b"opening_public_inputs", opening.public_inputs)
        transcript.absorb_scalars(b"opening_circuit_digest", opening.circuit_digest)
    for commitment in wire_commitments:
        transcript.absorb_bytes(b"wire", commitment)
    return transcript


def _known_values(
    common: CommonCircuitData, proof_with_pis: ProofWithPublicInputs
) -> Dict[int, int]:
    values: Dict[int, int] = {}

    def assign(index: int, value: int) -> None:
        if values.setdefault(index, value) != value:
            raise VerificationFailed(f"conflicting values for known wire {index}")

    for index, wire in enumerate(common.wires):
        if wire.kind == WireKind.CONSTANT:
            assign(index, wire.constant)
    for index, value in zip(common.public_inputs, proof_with_pis.public_inputs):
        assign(index, value)
    for gate, opening in zip(common.recursion_gates, proof_with_pis.proof.recursion_openings):
        for index, value in zip(gate.public_inputs, opening.public_inputs):
            assign(index, value)
        for index, value in zip(gate.circuit_digest, opening.circuit_digest):
            assign(index, value)
    return values


def _check_scalar(value: int, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < GROUP_ORDER:
        raise VerificationFailed(f"{label} is not a canonical scalar")


def verify_proof(
    common: CommonCircuitData,
    verifier_only: VerifierOnlyCircuitData,
    proof_with_pis: ProofWithPublicInputs,
) -> None:
    """
    Verify ``proof_with_pis`` against a circuit shape and its verifier data.

    Raises:
        VerificationFailed: On any mismatch; never returns a failure value
    """
    start = time.perf_counter()

    if tuple(verifier_only.circuit_digest) != tuple(common.digest):
        raise VerificationFailed("verifier data does not match the circuit")

    if not isinstance(proof_with_pis, ProofWithPublicInputs):
        raise VerificationFailed("expected a ProofWithPublicInputs")
    proof = proof_with_pis.proof
    if not isinstance(proof, Proof):
        raise VerificationFailed(f"malformed proof: got {type(proof).__name__}")
    if not isinstance(proof_with_pis.public_inputs, (tuple, list)):
        raise VerificationFailed("public inputs must be a sequence")
    if len(proof_with_pis.public_inputs) != common.num_public_inputs:
        raise VerificationFailed(
            f"expected {common.num_public_inputs} public inputs, "
            f"got {len(proof_with_pis.public_inputs)}"
        )
    if not common.matches_proof(proof):
        raise VerificationFailed("proof does not have the shape of this circuit")
    try:
        validate_elements(proof_with_pis.public_inputs, "public_inputs")
        for opening in proof.recursion_openings:
            validate_elements(opening.public_inputs, "opening.public_inputs")
            validate_elements(opening.circuit_digest, "opening.circuit_digest")
    except FieldElementError as e:
        raise VerificationFailed(str(e)) from e

    params = get_cached_curve_params()
    G, H = params.G, params.H

    try:
        commitments = {
            index: point_from_bytes(data, params)
            for index, data in zip(common.private_wires, proof.wire_commitments)
        }
        announcement = point_from_bytes(proof.linear_announcement, params)
        product_points = [
            (point_from_bytes(t1, params), point_from_bytes(t2, params))
            for t1, t2 in proof.product_announcements
        ]
    except SerializationError as e:
        raise VerificationFailed(f"malformed proof: {e}") from e

    _check_scalar(proof.linear_response, "linear response")
    for responses in proof.product_responses:
        for z in responses:
            _check_scalar(z, "product response")

    known = _known_values(common, proof_with_pis)

    def commitment_of(index: int):
        if index in commitments:
            return commitments[index]
        return to_bn(known[index]) * G

    transcript = statement_transcript(
        common,
        verifier_only,
        proof_with_pis.public_inputs,
        proof.recursion_openings,
        proof.wire_commitments,
    )
    rho = transcript.challenge_scalar(b"linear")
    transcript.absorb_bytes(b"linear_announcement", proof.linear_announcement)
    for t1, t2 in proof.product_announcements:
        transcript.absorb_bytes(b"product_t1", t1)
        transcript.absorb_bytes(b"product_t2", t2)
    e = transcript.challenge_scalar(b"product")

    # Batched linear relation
    coefficients, kappa = common.batched_linear(rho)
    known_part = kappa
    private_pairs = []
    for index, coeff in coefficients.items():
        if index in commitments:
            private_pairs.append((coeff, commitments[index]))
        else:
            known_part = (known_part + coeff * known[index]) % GROUP_ORDER
    private_pairs.append((known_part, G))
    combined = multi_scalar_mul(private_pairs, params)

    lhs = to_bn(proof.linear_response) * H
    rhs = announcement + to_bn(e) * combined
    if lhs != rhs:
        raise VerificationFailed("linear relation check failed")

    # Product gates
    eb = to_bn(e)
    for gate_index, wire_index in enumerate(common.product_wires):
        wire = common.wires[wire_index]
        t1, t2 = product_points[gate_index]
        z1, z2, z3 = (to_bn(z) for z in proof.product_responses[gate_index])
        c_a = commitment_of(wire.left)
        c_b = commitment_of(wire.right)
        c_c = commitment_of(wire_index)
        if z1 * G + z2 * H != t1 + eb * c_b:
            raise VerificationFailed(f"product gate {gate_index} failed (opening)")
        if z1 * c_a + z3 * H != t2 + eb * c_c:
            raise VerificationFailed(f"product gate {gate_index} failed (product)")

    # Inner proofs
    for gate, opening in zip(common.recursion_gates, proof.recursion_openings):
        try:
            verify_proof(
                gate.inner,
                VerifierOnlyCircuitData(opening.circuit_digest),
                ProofWithPublicInputs(opening.proof, opening.public_inputs),
            )
        except VerificationFailed as exc:
            raise VerificationFailed(
                f"inner proof in slot {gate.slot} rejected: {exc}"
            ) from exc

    logger.debug(
        "Verified proof (%d wires, %d product gates) in %.3fs",
        common.num_wires,
        common.num_product_gates,
        time.perf_counter() - start,
    )
