"""
In-circuit versions of the native hash and Merkle routines.

``permute_targets`` mirrors ``poseidon.permute`` round for round. The round
constants of round r+1 are folded into the MDS linear combination of round r,
so each round costs only its S-box products: three per S-box (x^2, x^4, x^5).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from ..config import DIGEST_LEN
from ..poseidon import (
    MDS_MATRIX,
    RATE,
    TOTAL_ROUNDS,
    WIDTH,
    is_full_round,
    round_constant,
)
from .targets import BoolTarget, HashOutTarget, MerkleCapTarget, MerkleProofTarget, Target

if TYPE_CHECKING:
    from .builder import CircuitBuilder


def sbox_target(builder: "CircuitBuilder", x: Target) -> Target:
    x2 = builder.mul(x, x)
    x4 = builder.mul(x2, x2)
    return builder.mul(x4, x)


def permute_targets(
    builder: "CircuitBuilder", state: Sequence[Target], num_outputs: int = WIDTH
) -> List[Target]:
    """
    Permutation gadget.

    Only the first ``num_outputs`` elements of the final MDS layer are
    materialised; the rest would be dead wires.
    """
    if len(state) != WIDTH:
        raise ValueError(f"state must have {WIDTH} elements, got {len(state)}")

    state = [builder.add_const(s, round_constant(0, i)) for i, s in enumerate(state)]
    for r in range(TOTAL_ROUNDS):
        if is_full_round(r):
            state = [sbox_target(builder, s) for s in state]
        else:
            state = [sbox_target(builder, state[0])] + list(state[1:])

        last = r == TOTAL_ROUNDS - 1
        rows = MDS_MATRIX[:num_outputs] if last else MDS_MATRIX
        state = [
            builder.linear_combination(
                zip(row, state), 0 if last else round_constant(r + 1, i)
            )
            for i, row in enumerate(rows)
        ]
    return state


def hash_n_to_hash_no_pad(
    builder: "CircuitBuilder", inputs: Sequence[Target]
) -> HashOutTarget:
    if not inputs:
        raise ValueError("hash_n_to_hash_no_pad requires at least one input")

    inputs = list(inputs)
    state = [builder.zero()] * WIDTH
    blocks = range(0, len(inputs), RATE)
    for n, start in enumerate(blocks):
        chunk = inputs[start : start + RATE]
        state[: len(chunk)] = chunk
        outputs = DIGEST_LEN if n == len(blocks) - 1 else WIDTH
        state = permute_targets(builder, state, outputs) + state[outputs:]
    return HashOutTarget(tuple(state[:DIGEST_LEN]))


def select_hash(
    builder: "CircuitBuilder", bit: BoolTarget, x: HashOutTarget, y: HashOutTarget
) -> HashOutTarget:
    """``x`` if bit else ``y``."""
    return HashOutTarget(tuple(builder.select(bit, a, b) for a, b in zip(x, y)))


def random_access_hash(
    builder: "CircuitBuilder",
    index_bits: Sequence[BoolTarget],
    items: Sequence[HashOutTarget],
) -> HashOutTarget:
    """
    Pick ``items[index]`` where ``index`` is given by little-endian bits.

    Built as a binary multiplexer tree; ``len(items)`` must be
    ``2 ** len(index_bits)``.
    """
    if len(items) != 1 << len(index_bits):
        raise ValueError(
            f"{len(items)} items cannot be indexed by {len(index_bits)} bits"
        )
    layer = list(items)
    for bit in index_bits:
        layer = [
            select_hash(builder, bit, layer[i + 1], layer[i])
            for i in range(0, len(layer), 2)
        ]
    return layer[0]


def verify_merkle_proof_to_cap(
    builder: "CircuitBuilder",
    leaf: HashOutTarget,
    index_bits: Sequence[BoolTarget],
    cap: MerkleCapTarget,
    proof: MerkleProofTarget,
) -> None:
    """
    Constrain ``leaf`` to sit at the position given by ``index_bits`` under
    ``cap``.

    The low ``len(proof)`` bits steer the path; the remaining bits select the
    cap entry the path must end at.
    """
    cap_bits = (len(cap) - 1).bit_length()
    if len(cap) != 1 << cap_bits:
        raise ValueError(f"cap size {len(cap)} is not a power of two")
    if len(index_bits) != len(proof) + cap_bits:
        raise ValueError(
            f"expected {len(proof) + cap_bits} index bits, got {len(index_bits)}"
        )

    current = leaf
    for bit, sibling in zip(index_bits, proof.siblings):
        left = select_hash(builder, bit, sibling, current)
        right = [
            builder.linear_combination([(1, c), (1, s), (-1, l)])
            for c, s, l in zip(current, sibling, left)
        ]
        current = hash_n_to_hash_no_pad(builder, list(left) + right)

    expected = random_access_hash(builder, index_bits[len(proof) :], cap.hashes)
    builder.connect_hashes(current, expected)
