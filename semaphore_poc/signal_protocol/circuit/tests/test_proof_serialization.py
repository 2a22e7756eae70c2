import cbor2
import pytest

from semaphore_poc.signal_protocol.circuit import (
    CircuitBuilder,
    PartialWitness,
    Proof,
    ProofWithPublicInputs,
)
from semaphore_poc.signal_protocol.config import CircuitConfig, PROOF_VERSION
from semaphore_poc.signal_protocol.exceptions import SerializationError


@pytest.fixture(scope="module")
def square_proof():
    builder = CircuitBuilder(CircuitConfig.standard())
    x = builder.add_virtual_target()
    builder.register_public_input(builder.mul(x, x))
    data = builder.build()
    witness = PartialWitness()
    witness.set_target(x, 12)
    return data.prove(witness)


def test_proof_roundtrip(square_proof):
    proof = square_proof.proof
    assert Proof.from_bytes(proof.to_bytes()) == proof


def test_proof_with_public_inputs_roundtrip(square_proof):
    restored = ProofWithPublicInputs.from_bytes(square_proof.to_bytes())
    assert restored == square_proof
    assert restored.public_inputs == (144,)


def test_version_required(square_proof):
    data = square_proof.proof.to_dict()
    data["version"] = PROOF_VERSION + 1
    with pytest.raises(SerializationError, match="version"):
        Proof.from_dict(data)


def test_missing_key(square_proof):
    data = square_proof.proof.to_dict()
    del data["linear_response"]
    with pytest.raises(SerializationError):
        Proof.from_dict(data)


def test_wrong_response_arity(square_proof):
    data = square_proof.proof.to_dict()
    data["product_responses"] = [[1, 2]]
    with pytest.raises(SerializationError):
        Proof.from_dict(data)


def test_bad_public_inputs():
    payload = cbor2.dumps({"proof": {"version": PROOF_VERSION}, "public_inputs": []})
    with pytest.raises(SerializationError):
        ProofWithPublicInputs.from_bytes(payload)


def test_not_cbor():
    with pytest.raises(SerializationError):
        Proof.from_bytes(b"\xff")
