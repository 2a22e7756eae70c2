"""
Tests for the native permutation hash.
"""

import pytest

from semaphore_poc.signal_protocol.config import (
    FIELD_ORDER,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_PARTIAL_ROUNDS,
)
from semaphore_poc.signal_protocol.exceptions import ArityMismatch, FieldElementError
from semaphore_poc.signal_protocol.field import ZERO_DIGEST
from semaphore_poc.signal_protocol import poseidon


class TestConstants:
    def test_round_constant_count(self):
        assert len(poseidon.ROUND_CONSTANTS) == (
            (POSEIDON_FULL_ROUNDS + POSEIDON_PARTIAL_ROUNDS) * poseidon.WIDTH
        )

    def test_round_constants_are_canonical(self):
        assert all(0 <= c < FIELD_ORDER for c in poseidon.ROUND_CONSTANTS)

    def test_mds_is_cauchy(self):
        m = poseidon.MDS_MATRIX
        assert len(m) == poseidon.WIDTH
        for i in range(poseidon.WIDTH):
            for j in range(poseidon.WIDTH):
                assert m[i][j] * (i + poseidon.WIDTH + j) % FIELD_ORDER == 1

    def test_round_schedule(self):
        full = [r for r in range(poseidon.TOTAL_ROUNDS) if poseidon.is_full_round(r)]
        assert len(full) == POSEIDON_FULL_ROUNDS
        assert full[: poseidon.HALF_FULL_ROUNDS] == list(range(poseidon.HALF_FULL_ROUNDS))
        assert full[-1] == poseidon.TOTAL_ROUNDS - 1


class TestPermutation:
    def test_sbox_is_fifth_power(self):
        assert poseidon.sbox(3) == 243
        assert poseidon.sbox(FIELD_ORDER - 1) == FIELD_ORDER - 1

    def test_deterministic(self):
        state = list(range(poseidon.WIDTH))
        assert poseidon.permute(state) == poseidon.permute(state)

    def test_changes_state(self):
        state = [0] * poseidon.WIDTH
        assert poseidon.permute(state) != state

    def test_single_element_diffuses(self):
        a = poseidon.permute([0] * poseidon.WIDTH)
        b = poseidon.permute([0] * (poseidon.WIDTH - 1) + [1])
        assert all(x != y for x, y in zip(a, b))

    def test_wrong_width(self):
        with pytest.raises(ValueError, match="state must have"):
            poseidon.permute([0] * (poseidon.WIDTH - 1))


class TestSponge:
    def test_output_is_digest(self):
        digest = poseidon.hash_no_pad([1, 2, 3])
        assert len(digest) == 4
        assert all(0 <= v < FIELD_ORDER for v in digest)

    def test_single_block_matches_permutation(self):
        inputs = list(range(1, 9))
        expected = poseidon.permute(inputs + [0])[:4]
        assert poseidon.hash_no_pad(inputs) == tuple(expected)

    def test_two_blocks(self):
        inputs = list(range(1, 10))
        state = poseidon.permute(inputs[:8] + [0])
        state[0] = inputs[8]
        assert poseidon.hash_no_pad(inputs) == tuple(poseidon.permute(state)[:4])

    def test_empty_input(self):
        with pytest.raises(ValueError, match="at least one input"):
            poseidon.hash_no_pad([])

    def test_non_canonical_input(self):
        with pytest.raises(FieldElementError):
            poseidon.hash_no_pad([FIELD_ORDER])


class TestProtocolHashes:
    secret = (11, 22, 33, 44)
    topic = (5, 6, 7, 8)

    def test_identity_commitment_is_padded_hash(self):
        assert poseidon.identity_commitment(self.secret) == poseidon.hash_no_pad(
            self.secret + ZERO_DIGEST
        )

    def test_nullifier_uses_raw_topic(self):
        assert poseidon.compute_nullifier(self.secret, self.topic) == (
            poseidon.hash_no_pad(self.secret + self.topic)
        )

    def test_nullifier_depends_on_topic(self):
        other = (5, 6, 7, 9)
        assert poseidon.compute_nullifier(self.secret, self.topic) != (
            poseidon.compute_nullifier(self.secret, other)
        )

    def test_zero_topic_nullifier_equals_commitment(self):
        # Both hash secret ‖ 0^4; topics are application labels, never zero in practice.
        assert poseidon.compute_nullifier(self.secret, ZERO_DIGEST) == (
            poseidon.identity_commitment(self.secret)
        )

    def test_two_to_one_is_ordered(self):
        a, b = (1, 2, 3, 4), (5, 6, 7, 8)
        assert poseidon.two_to_one(a, b) != poseidon.two_to_one(b, a)

    def test_arity_checked(self):
        with pytest.raises(ArityMismatch):
            poseidon.identity_commitment((1, 2, 3))
