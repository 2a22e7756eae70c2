"""
⚠️ DRAFT — requires crypto review before production use

Prover for the commit-and-prove backend.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Protocol (non-interactive via Fiat-Shamir):
    1. Evaluate the witness; commit to every private wire
       C_i = v_i*G + r_i*H (r_i = 0 when zero_knowledge is off)
    2. rho <- transcript; all linear relations are batched with weights
       rho, rho^2, ... into one relation whose G-component vanishes, leaving
       P = R*H with R = sum(lambda_i * r_i)
    3. Announce A = k*H and, per product gate c = a*b,
       T1 = k1*G + k2*H, T2 = k1*C_a + k3*H
    4. e <- transcript; respond
       z = k + e*R, z1 = k1 + e*v_b, z2 = k2 + e*r_b, z3 = k3 + e*(r_c - v_b*r_a)
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..config import GROUP_ORDER
from ..exceptions import CryptographicError, ProofGenerationError
from ..security import RandomnessSource
from .circuit_data import CommonCircuitData, VerifierOnlyCircuitData
from .curve import commit_point, get_cached_curve_params, point_to_bytes, to_bn
from .proof import Proof, ProofWithPublicInputs
from .verifier import statement_transcript
from .witness import PartialWitness, generate_witness

logger = logging.getLogger(__name__)


def prove(
    common: CommonCircuitData,
    verifier_only: VerifierOnlyCircuitData,
    witness: PartialWitness,
    rng: Optional[RandomnessSource] = None,
) -> ProofWithPublicInputs:
    """
    Produce a proof that ``witness`` satisfies ``common``.

    Raises:
        WitnessGenerationError: If the witness does not satisfy the circuit
        ProofGenerationError: If a curve operation fails
    """
    rng = rng or RandomnessSource()
    start = time.perf_counter()

    values, openings = generate_witness(common, witness)
    witness_time = time.perf_counter() - start

    try:
        params = get_cached_curve_params()
        G, H = params.G, params.H

        blindings = [0] * common.num_wires
        commitments = {}
        for index in common.private_wires:
            if common.config.zero_knowledge:
                blindings[index] = rng.get_random_scalar_mod_order()
            commitments[index] = commit_point(values[index], blindings[index], params)
        wire_commitments = tuple(
            point_to_bytes(commitments[index]) for index in common.private_wires
        )

        def commitment_of(index: int):
            if index in commitments:
                return commitments[index]
            return to_bn(values[index]) * G

        public_inputs = tuple(values[index] for index in common.public_inputs)

        transcript = statement_transcript(
            common, verifier_only, public_inputs, openings, wire_commitments
        )
        rho = transcript.challenge_scalar(b"linear")
        coefficients, _ = common.batched_linear(rho)
        combined_blinding = (
            sum(coeff * blindings[index] for index, coeff in coefficients.items())
            % GROUP_ORDER
        )

        k = rng.get_random_nonzero_scalar()
        linear_announcement = point_to_bytes(to_bn(k) * H)

        nonces = []
        product_announcements = []
        for index in common.product_wires:
            wire = common.wires[index]
            k1, k2, k3 = (rng.get_random_nonzero_scalar() for _ in range(3))
            t1 = to_bn(k1) * G + to_bn(k2) * H
            t2 = to_bn(k1) * commitment_of(wire.left) + to_bn(k3) * H
            nonces.append((k1, k2, k3))
            product_announcements.append((point_to_bytes(t1), point_to_bytes(t2)))

        transcript.absorb_bytes(b"linear_announcement", linear_announcement)
        for t1, t2 in product_announcements:
            transcript.absorb_bytes(b"product_t1", t1)
            transcript.absorb_bytes(b"product_t2", t2)
        e = transcript.challenge_scalar(b"product")

        linear_response = (k + e * combined_blinding) % GROUP_ORDER
        product_responses = []
        for (k1, k2, k3), index in zip(nonces, common.product_wires):
            wire = common.wires[index]
            v_b = values[wire.right]
            r_a, r_b, r_c = blindings[wire.left], blindings[wire.right], blindings[index]
            product_responses.append(
                (
                    (k1 + e * v_b) % GROUP_ORDER,
                    (k2 + e * r_b) % GROUP_ORDER,
                    (k3 + e * (r_c - v_b * r_a)) % GROUP_ORDER,
                )
            )
    except CryptographicError as exc:
        raise ProofGenerationError(f"Proof generation failed: {exc}") from exc

    proof = Proof(
        wire_commitments=wire_commitments,
        linear_announcement=linear_announcement,
        linear_response=linear_response,
        product_announcements=tuple(product_announcements),
        product_responses=tuple(product_responses),
        recursion_openings=tuple(openings),
    )

    logger.debug(
        "Proved circuit (%d wires, %d product gates, %d recursion gates): "
        "witness %.3fs, total %.3fs",
        common.num_wires,
        common.num_product_gates,
        len(common.recursion_gates),
        witness_time,
        time.perf_counter() - start,
    )
    return ProofWithPublicInputs(proof=proof, public_inputs=public_inputs)
