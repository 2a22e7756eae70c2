"""
Poseidon-style permutation and sponge over the circuit field.

Instance:
    width 9 (rate 8, capacity 1), S-box x^5, 8 full rounds split 4/4 around
    63 partial rounds, Cauchy MDS matrix M[i][j] = 1 / (i + (WIDTH + j)).
    Round constants are SHAKE-256 outputs of POSEIDON_CONSTANTS_SEED reduced
    into the field, so anyone can recompute them.

The sponge is the "no pad" variant: inputs overwrite the rate portion of the
state block by block, one permutation per block, and the first DIGEST_LEN
state elements are the output. Every hash in the protocol absorbs exactly two
digests (one block).

The same constants drive the in-circuit gadget in ``circuit/gadgets.py``;
the two must stay in lockstep.
"""

from __future__ import annotations

import hashlib
from typing import List, Sequence, Tuple

from .config import (
    DIGEST_LEN,
    FIELD_ORDER,
    POSEIDON_ALPHA,
    POSEIDON_CONSTANTS_SEED,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_PARTIAL_ROUNDS,
    POSEIDON_RATE,
    POSEIDON_WIDTH,
)
from .field import Digest, ZERO_DIGEST, to_digest, validate_elements

WIDTH = POSEIDON_WIDTH
RATE = POSEIDON_RATE
HALF_FULL_ROUNDS = POSEIDON_FULL_ROUNDS // 2
TOTAL_ROUNDS = POSEIDON_FULL_ROUNDS + POSEIDON_PARTIAL_ROUNDS


def _derive_round_constants() -> Tuple[int, ...]:
    constants = []
    for counter in range(TOTAL_ROUNDS * WIDTH):
        digest = hashlib.shake_256(
            POSEIDON_CONSTANTS_SEED + counter.to_bytes(4, "big")
        ).digest(64)
        constants.append(int.from_bytes(digest, "big") % FIELD_ORDER)
    return tuple(constants)


def _derive_mds() -> Tuple[Tuple[int, ...], ...]:
    return tuple(
        tuple(pow(i + WIDTH + j, -1, FIELD_ORDER) for j in range(WIDTH))
        for i in range(WIDTH)
    )


ROUND_CONSTANTS: Tuple[int, ...] = _derive_round_constants()
MDS_MATRIX: Tuple[Tuple[int, ...], ...] = _derive_mds()


def is_full_round(round_index: int) -> bool:
    return (
        round_index < HALF_FULL_ROUNDS
        or round_index >= HALF_FULL_ROUNDS + POSEIDON_PARTIAL_ROUNDS
    )


def round_constant(round_index: int, position: int) -> int:
    return ROUND_CONSTANTS[round_index * WIDTH + position]


def sbox(x: int) -> int:
    return pow(x, POSEIDON_ALPHA, FIELD_ORDER)


def mds_layer(state: Sequence[int]) -> List[int]:
    return [
        sum(m * s for m, s in zip(row, state)) % FIELD_ORDER for row in MDS_MATRIX
    ]


def permute(state: Sequence[int]) -> List[int]:
    """Apply the permutation to a WIDTH-element state."""
    if len(state) != WIDTH:
        raise ValueError(f"state must have {WIDTH} elements, got {len(state)}")

    state = [s % FIELD_ORDER for s in state]
    for r in range(TOTAL_ROUNDS):
        state = [
            (s + round_constant(r, i)) % FIELD_ORDER for i, s in enumerate(state)
        ]
        if is_full_round(r):
            state = [sbox(s) for s in state]
        else:
            state[0] = sbox(state[0])
        state = mds_layer(state)
    return state


def hash_no_pad(inputs: Sequence[int]) -> Digest:
    """Sponge hash of a non-empty vector of field elements."""
    inputs = validate_elements(inputs, "inputs")
    if not inputs:
        raise ValueError("hash_no_pad requires at least one input")

    state = [0] * WIDTH
    for start in range(0, len(inputs), RATE):
        chunk = inputs[start : start + RATE]
        state[: len(chunk)] = chunk
        state = permute(state)
    return tuple(state[:DIGEST_LEN])  # type: ignore[return-value]


def two_to_one(left: Sequence[int], right: Sequence[int]) -> Digest:
    """Internal Merkle node: H(left ‖ right)."""
    return hash_no_pad(to_digest(left, "left") + to_digest(right, "right"))


def identity_commitment(secret: Sequence[int]) -> Digest:
    """Tree leaf for a member: H(secret ‖ 0^4)."""
    return hash_no_pad(to_digest(secret, "secret") + ZERO_DIGEST)


def compute_nullifier(secret: Sequence[int], topic: Sequence[int]) -> Digest:
    """Per-topic nullifier: H(secret ‖ topic)."""
    return hash_no_pad(to_digest(secret, "secret") + to_digest(topic, "topic"))
