"""
⚠️ DRAFT — requires crypto review before production use

Tests for the commit-and-prove backend on small circuits.

Test Coverage:
1. Completeness with and without zero knowledge
2. Soundness against tampered proofs and public inputs
3. Verifier data binding
4. Witness errors
5. Recursion gates
"""

import dataclasses

import pytest

from semaphore_poc.signal_protocol.circuit import (
    CircuitBuilder,
    PartialWitness,
    ProofWithPublicInputs,
    VerifierOnlyCircuitData,
)
from semaphore_poc.signal_protocol.circuit.verifier import verify_proof
from semaphore_poc.signal_protocol.config import CircuitConfig, FIELD_ORDER
from semaphore_poc.signal_protocol.exceptions import (
    IncompatibleCircuitShape,
    VerificationFailed,
    WitnessGenerationError,
)


def _cubic_circuit(config=None):
    """Public y with y == x^3 + 2x + 5 for a private x."""
    builder = CircuitBuilder(config or CircuitConfig.standard())
    x = builder.add_virtual_target()
    x3 = builder.mul(builder.mul(x, x), x)
    y = builder.linear_combination([(1, x3), (2, x)], 5)
    builder.register_public_input(y)
    return builder.build(), x


def _cubic(x):
    return (x**3 + 2 * x + 5) % FIELD_ORDER


@pytest.fixture(scope="module")
def cubic():
    data, x = _cubic_circuit()
    witness = PartialWitness()
    witness.set_target(x, 3)
    return data, data.prove(witness)


class TestCompleteness:
    def test_prove_and_verify(self, cubic):
        data, proof_with_pis = cubic
        assert proof_with_pis.public_inputs == (_cubic(3),)
        data.verify(proof_with_pis)
        data.verifier_data().verify(proof_with_pis)

    def test_without_zero_knowledge(self):
        data, x = _cubic_circuit(CircuitConfig(zero_knowledge=False))
        witness = PartialWitness()
        witness.set_target(x, 0)
        proof_with_pis = data.prove(witness)
        data.verify(proof_with_pis)

    def test_hiding_commitments_differ(self, cubic):
        data, first = cubic
        data_again, x = _cubic_circuit()
        witness = PartialWitness()
        witness.set_target(x, 3)
        second = data_again.prove(witness)
        assert first.proof.wire_commitments != second.proof.wire_commitments

    def test_deterministic_commitments_without_blinding(self):
        data, x = _cubic_circuit(CircuitConfig(zero_knowledge=False))
        proofs = []
        for _ in range(2):
            witness = PartialWitness()
            witness.set_target(x, 3)
            proofs.append(data.prove(witness))
        assert proofs[0].proof.wire_commitments == proofs[1].proof.wire_commitments

    def test_serialized_proof_verifies(self, cubic):
        data, proof_with_pis = cubic
        data.verify(ProofWithPublicInputs.from_bytes(proof_with_pis.to_bytes()))


class TestSoundness:
    def test_wrong_public_input(self, cubic):
        data, proof_with_pis = cubic
        forged = ProofWithPublicInputs(proof_with_pis.proof, (_cubic(4),))
        with pytest.raises(VerificationFailed):
            data.verify(forged)

    def test_public_input_count(self, cubic):
        data, proof_with_pis = cubic
        with pytest.raises(VerificationFailed, match="public inputs"):
            data.verify(ProofWithPublicInputs(proof_with_pis.proof, ()))

    def test_non_canonical_public_input(self, cubic):
        data, proof_with_pis = cubic
        with pytest.raises(VerificationFailed):
            data.verify(ProofWithPublicInputs(proof_with_pis.proof, (FIELD_ORDER,)))

    @pytest.mark.parametrize(
        "field_name",
        ["linear_response", "product_responses", "wire_commitments"],
    )
    def test_tampered_proof(self, cubic, field_name):
        data, proof_with_pis = cubic
        proof = proof_with_pis.proof
        if field_name == "linear_response":
            changed = (proof.linear_response + 1) % FIELD_ORDER
        elif field_name == "product_responses":
            z1, z2, z3 = proof.product_responses[0]
            changed = (((z1 + 1) % FIELD_ORDER, z2, z3),) + proof.product_responses[1:]
        else:
            changed = proof.wire_commitments[::-1]
        forged = dataclasses.replace(proof, **{field_name: changed})
        with pytest.raises(VerificationFailed):
            data.verify(ProofWithPublicInputs(forged, proof_with_pis.public_inputs))

    def test_garbage_point(self, cubic):
        data, proof_with_pis = cubic
        forged = dataclasses.replace(
            proof_with_pis.proof, linear_announcement=b"\x05" + b"\xff" * 32
        )
        with pytest.raises(VerificationFailed, match="malformed"):
            data.verify(ProofWithPublicInputs(forged, proof_with_pis.public_inputs))

    def test_missing_gate_response(self, cubic):
        data, proof_with_pis = cubic
        forged = dataclasses.replace(
            proof_with_pis.proof,
            product_responses=proof_with_pis.proof.product_responses[:-1],
        )
        with pytest.raises(VerificationFailed, match="shape"):
            data.verify(ProofWithPublicInputs(forged, proof_with_pis.public_inputs))

    def test_wrong_verifier_data(self, cubic):
        data, proof_with_pis = cubic
        with pytest.raises(VerificationFailed, match="verifier data"):
            verify_proof(
                data.common, VerifierOnlyCircuitData((1, 2, 3, 4)), proof_with_pis
            )

    def test_proof_for_other_circuit(self, cubic):
        _, proof_with_pis = cubic
        other, _ = _cubic_circuit(CircuitConfig(zero_knowledge=False))
        with pytest.raises(VerificationFailed):
            other.verify(proof_with_pis)


class TestWitnessErrors:
    def test_missing_input(self):
        data, _ = _cubic_circuit()
        with pytest.raises(WitnessGenerationError, match="never set"):
            data.prove(PartialWitness())

    def test_conflicting_assignment(self):
        _, x = _cubic_circuit()
        witness = PartialWitness()
        witness.set_target(x, 1)
        witness.set_target(x, 1)
        with pytest.raises(WitnessGenerationError):
            witness.set_target(x, 2)

    def test_unsatisfied_constraint(self):
        builder = CircuitBuilder(CircuitConfig.standard())
        x = builder.add_virtual_target()
        builder.connect(builder.mul(x, x), builder.constant(4), "square_is_four")
        data = builder.build()
        witness = PartialWitness()
        witness.set_target(x, 3)
        with pytest.raises(WitnessGenerationError, match="square_is_four"):
            data.prove(witness)

    def test_set_computed_wire_to_wrong_value(self):
        builder = CircuitBuilder(CircuitConfig.standard())
        x = builder.add_virtual_target()
        y = builder.mul(x, x)
        data = builder.build()
        witness = PartialWitness()
        witness.set_target(x, 3)
        witness.set_target(y, 10)
        with pytest.raises(WitnessGenerationError, match="does not compute"):
            data.prove(witness)

    def test_bool_constraint(self):
        builder = CircuitBuilder(CircuitConfig.standard())
        bit = builder.add_virtual_bool_target_safe()
        data = builder.build()
        witness = PartialWitness()
        witness.set_target(bit.target, 2)
        with pytest.raises(WitnessGenerationError, match="assert_bool"):
            data.prove(witness)


# ============================================================================
# TEST: RECURSION GATES
# ============================================================================


def _outer_circuit(inner_data):
    """Verifies one inner cubic proof and re-exposes its public input."""
    builder = CircuitBuilder(CircuitConfig.standard())
    proof_target = builder.add_virtual_proof_with_pis(inner_data.common)
    verifier_target = builder.add_virtual_verifier_data()
    builder.connect_hashes(
        verifier_target.circuit_digest,
        builder.constant_hash(inner_data.verifier_only.circuit_digest),
    )
    builder.verify_proof(proof_target, verifier_target, inner_data.common)
    builder.register_public_inputs(proof_target.public_inputs)
    return builder.build(), proof_target, verifier_target


class TestRecursion:
    @pytest.fixture(scope="class")
    def outer(self, cubic):
        inner_data, inner_proof = cubic
        data, proof_target, verifier_target = _outer_circuit(inner_data)
        witness = PartialWitness()
        witness.set_proof_with_pis_target(proof_target, inner_proof)
        witness.set_verifier_data_target(verifier_target, inner_data.verifier_only)
        return data, data.prove(witness)

    def test_outer_verifies(self, cubic, outer):
        data, proof_with_pis = outer
        assert proof_with_pis.public_inputs == cubic[1].public_inputs
        assert len(proof_with_pis.proof.recursion_openings) == 1
        data.verify(proof_with_pis)

    def test_outer_public_input_bound_to_inner(self, outer):
        data, proof_with_pis = outer
        with pytest.raises(VerificationFailed):
            data.verify(ProofWithPublicInputs(proof_with_pis.proof, (_cubic(9),)))

    def test_tampered_inner_proof(self, outer):
        data, proof_with_pis = outer
        opening = proof_with_pis.proof.recursion_openings[0]
        bad_inner = dataclasses.replace(
            opening.proof,
            linear_response=(opening.proof.linear_response + 1) % FIELD_ORDER,
        )
        forged = dataclasses.replace(
            proof_with_pis.proof,
            recursion_openings=(dataclasses.replace(opening, proof=bad_inner),),
        )
        with pytest.raises(VerificationFailed, match="inner proof"):
            data.verify(ProofWithPublicInputs(forged, proof_with_pis.public_inputs))

    def test_invalid_inner_proof_fails_witness_generation(self, cubic):
        inner_data, inner_proof = cubic
        data, proof_target, verifier_target = _outer_circuit(inner_data)
        witness = PartialWitness()
        witness.set_proof_with_pis_target(
            proof_target, ProofWithPublicInputs(inner_proof.proof, (_cubic(5),))
        )
        witness.set_verifier_data_target(verifier_target, inner_data.verifier_only)
        with pytest.raises(WitnessGenerationError, match="does not verify"):
            data.prove(witness)

    def test_wrong_inner_shape(self, cubic):
        inner_data, _ = cubic
        _, proof_target, _ = _outer_circuit(inner_data)
        builder = CircuitBuilder(CircuitConfig.standard())
        y = builder.add_virtual_target()
        builder.register_public_input(builder.add(y, y))
        unrelated = builder.build()
        witness = PartialWitness()
        witness.set_target(y, 1)
        with pytest.raises(IncompatibleCircuitShape):
            PartialWitness().set_proof_with_pis_target(
                proof_target, unrelated.prove(witness)
            )
