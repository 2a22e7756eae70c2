"""
Circuit builder.

Allocates wires, folds constants, records constraints and public inputs, and
produces ``CircuitData``. One builder builds one circuit; it is not shared
between threads.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from ..config import CircuitConfig, DIGEST_LEN, FIELD_ORDER
from ..field import to_digest, validate_element
from . import gadgets
from .circuit_data import (
    CircuitData,
    CommonCircuitData,
    LinearConstraint,
    RecursionGate,
    Wire,
    WireKind,
)
from .targets import (
    BoolTarget,
    HashOutTarget,
    MerkleCapTarget,
    MerkleProofTarget,
    ProofWithPublicInputsTarget,
    Target,
    VerifierCircuitTarget,
)

logger = logging.getLogger(__name__)


class CircuitBuilder:
    """
    Example:
        >>> builder = CircuitBuilder(CircuitConfig.standard())
        >>> x = builder.add_virtual_target()
        >>> y = builder.mul(x, x)
        >>> builder.register_public_input(y)
        >>> data = builder.build()
    """

    def __init__(self, config: CircuitConfig):
        if not isinstance(config, CircuitConfig):
            raise TypeError(f"config must be a CircuitConfig, got {type(config)}")
        self.config = config
        self._wires: List[Wire] = []
        self._constraints: List[LinearConstraint] = []
        self._public_inputs: List[int] = []
        self._recursion_gates: List[RecursionGate] = []
        self._constants: Dict[int, Target] = {}
        self._num_proof_slots = 0

    @property
    def num_wires(self) -> int:
        return len(self._wires)

    @property
    def num_product_gates(self) -> int:
        return sum(1 for wire in self._wires if wire.kind == WireKind.PRODUCT)

    def _push(self, wire: Wire) -> Target:
        self._wires.append(wire)
        return Target(len(self._wires) - 1)

    def _wire(self, target: Target) -> Wire:
        if not 0 <= target.index < len(self._wires):
            raise ValueError(f"target {target.index} does not belong to this circuit")
        return self._wires[target.index]

    # ------------------------------------------------------------------
    # Virtual targets
    # ------------------------------------------------------------------

    def add_virtual_target(self) -> Target:
        return self._push(Wire(WireKind.INPUT))

    def add_virtual_targets(self, n: int) -> List[Target]:
        return [self.add_virtual_target() for _ in range(n)]

    def add_virtual_hash(self) -> HashOutTarget:
        return HashOutTarget(tuple(self.add_virtual_targets(DIGEST_LEN)))

    def add_virtual_hashes(self, n: int) -> List[HashOutTarget]:
        return [self.add_virtual_hash() for _ in range(n)]

    def add_virtual_cap(self, cap_height: int) -> MerkleCapTarget:
        return MerkleCapTarget(tuple(self.add_virtual_hashes(1 << cap_height)))

    def add_virtual_merkle_proof(self, length: int) -> MerkleProofTarget:
        return MerkleProofTarget(tuple(self.add_virtual_hashes(length)))

    def add_virtual_bool_target_safe(self) -> BoolTarget:
        target = self.add_virtual_target()
        self.assert_bool(target)
        return BoolTarget(target)

    # ------------------------------------------------------------------
    # Constants
    # ------------------------------------------------------------------

    def constant(self, value: int) -> Target:
        value = validate_element(value, "constant")
        if value not in self._constants:
            self._constants[value] = self._push(Wire(WireKind.CONSTANT, constant=value))
        return self._constants[value]

    def zero(self) -> Target:
        return self.constant(0)

    def one(self) -> Target:
        return self.constant(1)

    def constant_hash(self, digest: Sequence[int]) -> HashOutTarget:
        return HashOutTarget(tuple(self.constant(v) for v in to_digest(digest)))

    def constant_merkle_cap(self, cap: Sequence[Sequence[int]]) -> MerkleCapTarget:
        return MerkleCapTarget(tuple(self.constant_hash(h) for h in cap))

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _fold(
        self, terms: Iterable[Tuple[int, Target]], constant: int
    ) -> Tuple[Dict[int, int], int]:
        coefficients: Dict[int, int] = {}
        constant %= FIELD_ORDER
        for coeff, target in terms:
            coeff %= FIELD_ORDER
            if not coeff:
                continue
            wire = self._wire(target)
            if wire.kind == WireKind.CONSTANT:
                constant = (constant + coeff * wire.constant) % FIELD_ORDER
            else:
                coefficients[target.index] = (
                    coefficients.get(target.index, 0) + coeff
                ) % FIELD_ORDER
        return {i: c for i, c in coefficients.items() if c}, constant

    def linear_combination(
        self, terms: Iterable[Tuple[int, Target]], constant: int = 0
    ) -> Target:
        """``sum(coeff * target) + constant``; free of product gates."""
        coefficients, constant = self._fold(terms, constant)
        if not coefficients:
            return self.constant(constant)
        if len(coefficients) == 1 and constant == 0:
            ((index, coeff),) = coefficients.items()
            if coeff == 1:
                return Target(index)
        return self._push(
            Wire(
                WireKind.LINEAR,
                constant=constant,
                terms=tuple((c, i) for i, c in sorted(coefficients.items())),
            )
        )

    def add(self, a: Target, b: Target) -> Target:
        return self.linear_combination([(1, a), (1, b)])

    def sub(self, a: Target, b: Target) -> Target:
        return self.linear_combination([(1, a), (-1, b)])

    def neg(self, a: Target) -> Target:
        return self.linear_combination([(-1, a)])

    def add_const(self, a: Target, value: int) -> Target:
        return self.linear_combination([(1, a)], value)

    def mul_const(self, value: int, a: Target) -> Target:
        return self.linear_combination([(value, a)])

    def mul(self, a: Target, b: Target) -> Target:
        wire_a, wire_b = self._wire(a), self._wire(b)
        if wire_a.kind == WireKind.CONSTANT:
            return self.mul_const(wire_a.constant, b)
        if wire_b.kind == WireKind.CONSTANT:
            return self.mul_const(wire_b.constant, a)
        return self._push(Wire(WireKind.PRODUCT, left=a.index, right=b.index))

    def select(self, bit: BoolTarget, x: Target, y: Target) -> Target:
        """``x`` if bit else ``y``, as ``y + bit * (x - y)``."""
        return self.add(y, self.mul(bit.target, self.sub(x, y)))

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def _constrain(
        self, terms: Iterable[Tuple[int, Target]], constant: int, label: str
    ) -> None:
        coefficients, constant = self._fold(terms, constant)
        if not coefficients and constant == 0:
            return
        self._constraints.append(
            LinearConstraint(
                terms=tuple((c, i) for i, c in sorted(coefficients.items())),
                constant=constant,
                label=label,
            )
        )

    def assert_zero(self, a: Target, label: str = "assert_zero") -> None:
        self._constrain([(1, a)], 0, label)

    def connect(self, a: Target, b: Target, label: str = "connect") -> None:
        self._constrain([(1, a), (-1, b)], 0, label)

    def connect_hashes(
        self, a: HashOutTarget, b: HashOutTarget, label: str = "connect_hashes"
    ) -> None:
        if len(a) != len(b):
            raise ValueError("hash targets have different lengths")
        for x, y in zip(a, b):
            self.connect(x, y, label)

    def assert_bool(self, a: Target) -> None:
        self.assert_zero(self.mul(a, self.add_const(a, FIELD_ORDER - 1)), "assert_bool")

    # ------------------------------------------------------------------
    # Public inputs
    # ------------------------------------------------------------------

    def register_public_input(self, target: Target) -> None:
        self._wire(target)
        self._public_inputs.append(target.index)

    def register_public_inputs(self, targets: Iterable[Target]) -> None:
        for target in targets:
            self.register_public_input(target)

    @property
    def num_public_inputs(self) -> int:
        return len(self._public_inputs)

    # ------------------------------------------------------------------
    # Hash and Merkle gadgets
    # ------------------------------------------------------------------

    def hash_n_to_hash_no_pad(self, inputs: Sequence[Target]) -> HashOutTarget:
        return gadgets.hash_n_to_hash_no_pad(self, inputs)

    def random_access_hash(
        self, index_bits: Sequence[BoolTarget], items: Sequence[HashOutTarget]
    ) -> HashOutTarget:
        return gadgets.random_access_hash(self, index_bits, items)

    def verify_merkle_proof_to_cap(
        self,
        leaf: HashOutTarget,
        index_bits: Sequence[BoolTarget],
        cap: MerkleCapTarget,
        proof: MerkleProofTarget,
    ) -> None:
        gadgets.verify_merkle_proof_to_cap(self, leaf, index_bits, cap, proof)

    # ------------------------------------------------------------------
    # Recursion
    # ------------------------------------------------------------------

    def add_virtual_proof_with_pis(
        self, common: CommonCircuitData
    ) -> ProofWithPublicInputsTarget:
        """Allocate a slot for an inner proof of a circuit shaped like ``common``."""
        slot = self._num_proof_slots
        self._num_proof_slots += 1
        return ProofWithPublicInputsTarget(
            slot=slot,
            public_inputs=tuple(self.add_virtual_targets(common.num_public_inputs)),
            common=common,
        )

    def add_virtual_verifier_data(self) -> VerifierCircuitTarget:
        return VerifierCircuitTarget(circuit_digest=self.add_virtual_hash())

    def verify_proof(
        self,
        proof_with_pis: ProofWithPublicInputsTarget,
        verifier_data: VerifierCircuitTarget,
        common: CommonCircuitData,
    ) -> None:
        """
        Constrain the inner proof in ``proof_with_pis`` to verify under the
        circuit digest carried by ``verifier_data``.
        """
        if not proof_with_pis.common.same_shape(common):
            raise ValueError("proof target was allocated for a different circuit")
        if len(proof_with_pis.public_inputs) != common.num_public_inputs:
            raise ValueError("proof target has the wrong number of public inputs")
        self._recursion_gates.append(
            RecursionGate(
                slot=proof_with_pis.slot,
                public_inputs=tuple(t.index for t in proof_with_pis.public_inputs),
                circuit_digest=tuple(t.index for t in verifier_data.circuit_digest),
                inner=common,
            )
        )

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> CircuitData:
        common = CommonCircuitData(
            config=self.config,
            wires=tuple(self._wires),
            constraints=tuple(self._constraints),
            public_inputs=tuple(self._public_inputs),
            recursion_gates=tuple(self._recursion_gates),
            num_proof_slots=self._num_proof_slots,
        )
        logger.debug("Built circuit: %r", common)
        return CircuitData(common)
