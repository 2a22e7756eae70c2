"""
Tests for the circuit builder: wire allocation, constant folding,
constraints and the circuit digest.
"""

import pytest

from semaphore_poc.signal_protocol.circuit import CircuitBuilder, HashOutTarget
from semaphore_poc.signal_protocol.circuit.circuit_data import WireKind
from semaphore_poc.signal_protocol.config import CircuitConfig, FIELD_ORDER
from semaphore_poc.signal_protocol.exceptions import FieldElementError


@pytest.fixture
def builder():
    return CircuitBuilder(CircuitConfig.standard())


def _kind(builder, target):
    return builder._wire(target).kind


class TestTargets:
    def test_virtual_targets_are_inputs(self, builder):
        targets = builder.add_virtual_targets(3)
        assert [t.index for t in targets] == [0, 1, 2]
        assert all(_kind(builder, t) == WireKind.INPUT for t in targets)

    def test_hash_cap_and_proof_shapes(self, builder):
        assert len(builder.add_virtual_hash()) == 4
        assert len(builder.add_virtual_cap(2)) == 4
        assert len(builder.add_virtual_merkle_proof(3)) == 3

    def test_bool_target_adds_constraint(self, builder):
        builder.add_virtual_bool_target_safe()
        assert builder.num_product_gates == 1
        assert len(builder.build().common.constraints) == 1

    def test_foreign_target_rejected(self, builder):
        other = CircuitBuilder(CircuitConfig.standard())
        target = other.add_virtual_targets(5)[-1]
        with pytest.raises(ValueError, match="does not belong"):
            builder.add(target, target)

    def test_config_type_checked(self):
        with pytest.raises(TypeError):
            CircuitBuilder({"zero_knowledge": True})


class TestConstantFolding:
    def test_constants_are_deduplicated(self, builder):
        assert builder.constant(7) == builder.constant(7)
        assert builder.zero() == builder.constant(0)

    def test_constant_validated(self, builder):
        with pytest.raises(FieldElementError):
            builder.constant(FIELD_ORDER)

    def test_add_constants_folds(self, builder):
        result = builder.add(builder.constant(2), builder.constant(3))
        assert result == builder.constant(5)

    def test_mul_by_constant_is_linear(self, builder):
        x = builder.add_virtual_target()
        y = builder.mul(x, builder.constant(3))
        assert _kind(builder, y) == WireKind.LINEAR
        assert builder.num_product_gates == 0

    def test_mul_by_one_is_identity(self, builder):
        x = builder.add_virtual_target()
        assert builder.mul(builder.one(), x) == x

    def test_terms_merge_and_cancel(self, builder):
        x = builder.add_virtual_target()
        assert builder.sub(x, x) == builder.zero()
        doubled = builder.add(x, x)
        assert builder._wire(doubled).terms == ((2, x.index),)

    def test_product_of_inputs(self, builder):
        x, y = builder.add_virtual_targets(2)
        z = builder.mul(x, y)
        wire = builder._wire(z)
        assert wire.kind == WireKind.PRODUCT
        assert (wire.left, wire.right) == (x.index, y.index)


class TestConstraints:
    def test_trivial_constraint_skipped(self, builder):
        builder.connect(builder.constant(4), builder.constant(4))
        assert builder.build().common.num_constraints == 0

    def test_unsatisfiable_constant_constraint_kept(self, builder):
        builder.connect(builder.constant(4), builder.constant(5))
        assert builder.build().common.num_constraints == 1

    def test_connect_hashes_length(self, builder):
        a = builder.add_virtual_hash()
        with pytest.raises(ValueError):
            builder.connect_hashes(a, HashOutTarget(a.elements[:3]))

    def test_public_inputs_in_order(self, builder):
        x, y = builder.add_virtual_targets(2)
        builder.register_public_inputs([y, x])
        assert builder.num_public_inputs == 2
        assert builder.build().common.public_inputs == (y.index, x.index)


class TestDigest:
    def _square_circuit(self, config):
        builder = CircuitBuilder(config)
        x = builder.add_virtual_target()
        builder.register_public_input(builder.mul(x, x))
        return builder.build()

    def test_same_circuit_same_digest(self):
        a = self._square_circuit(CircuitConfig.standard())
        b = self._square_circuit(CircuitConfig.standard())
        assert a.verifier_only == b.verifier_only
        assert a.common.same_shape(b.common)

    def test_config_changes_digest(self):
        a = self._square_circuit(CircuitConfig.standard())
        b = self._square_circuit(CircuitConfig(zero_knowledge=False))
        assert a.verifier_only != b.verifier_only

    def test_structure_changes_digest(self):
        builder = CircuitBuilder(CircuitConfig.standard())
        x = builder.add_virtual_target()
        builder.register_public_input(builder.mul(x, builder.add_const(x, 1)))
        other = builder.build()
        assert other.verifier_only != self._square_circuit(CircuitConfig.standard()).verifier_only

    def test_private_and_known_wires(self):
        data = self._square_circuit(CircuitConfig.standard())
        common = data.common
        assert common.private_wires == (0,)
        assert common.known_wires == frozenset({1})
        assert common.num_product_gates == 1
        assert "product_gates=1" in repr(common)
