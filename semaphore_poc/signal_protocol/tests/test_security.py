"""
⚠️ DRAFT — requires crypto review before production use

Unit tests for security utilities.

Tests randomness, hash-to-scalar and the Fiat-Shamir transcript.
"""

import os

import pytest

from semaphore_poc.signal_protocol.config import GROUP_ORDER
from semaphore_poc.signal_protocol.security import (
    RandomnessSource,
    Transcript,
    constant_time_compare,
    hash_to_scalar,
)


class TestRandomnessSource:
    def test_scalars_in_range(self):
        rng = RandomnessSource()
        for _ in range(50):
            assert 0 <= rng.get_random_scalar_mod_order() < GROUP_ORDER
            assert 1 <= rng.get_random_nonzero_scalar() < GROUP_ORDER

    def test_scalars_differ(self):
        rng = RandomnessSource()
        values = {rng.get_random_scalar_mod_order() for _ in range(20)}
        assert len(values) == 20

    def test_random_bytes_length(self):
        assert len(RandomnessSource().get_random_bytes(32)) == 32

    def test_reinitialises_after_fork(self, monkeypatch):
        rng = RandomnessSource()
        child_pid = rng._pid + 1
        monkeypatch.setattr(os, "getpid", lambda: child_pid)
        rng.get_random_scalar(10)
        assert rng._pid == child_pid


class TestHashToScalar:
    def test_deterministic(self):
        assert hash_to_scalar(b"data", b"DOMAIN") == hash_to_scalar(b"data", b"DOMAIN")

    def test_domain_separation(self):
        assert hash_to_scalar(b"data", b"A") != hash_to_scalar(b"data", b"B")

    def test_length_prefix_prevents_shifting(self):
        assert hash_to_scalar(b"bc", b"a") != hash_to_scalar(b"c", b"ab")

    def test_range(self):
        assert 0 <= hash_to_scalar(b"x", b"D", 7) < 7

    def test_type_checks(self):
        with pytest.raises(TypeError):
            hash_to_scalar("text", b"D")
        with pytest.raises(TypeError):
            hash_to_scalar(b"x", "D")
        with pytest.raises(ValueError):
            hash_to_scalar(b"x", b"D", 1)


class TestTranscript:
    def test_same_inputs_same_challenge(self):
        a, b = Transcript(), Transcript()
        for t in (a, b):
            t.absorb_scalars(b"pis", [1, 2, 3])
            t.absorb_bytes(b"wire", b"\x02" * 33)
        assert a.challenge_scalar(b"c") == b.challenge_scalar(b"c")

    def test_absorbed_data_changes_challenge(self):
        a, b = Transcript(), Transcript()
        a.absorb_scalars(b"pis", [1, 2, 3])
        b.absorb_scalars(b"pis", [1, 2, 4])
        assert a.challenge_scalar(b"c") != b.challenge_scalar(b"c")

    def test_labels_matter(self):
        a, b = Transcript(), Transcript()
        a.absorb_bytes(b"x", b"data")
        b.absorb_bytes(b"y", b"data")
        assert a.challenge_scalar(b"c") != b.challenge_scalar(b"c")

    def test_successive_challenges_differ(self):
        t = Transcript()
        first = t.challenge_scalar(b"c")
        second = t.challenge_scalar(b"c")
        assert first != second
        assert 0 < first < GROUP_ORDER and 0 < second < GROUP_ORDER

    def test_absorb_bytes_type(self):
        with pytest.raises(TypeError):
            Transcript().absorb_bytes(b"x", "not bytes")


def test_constant_time_compare():
    assert constant_time_compare(b"abc", b"abc") is True
    assert constant_time_compare(b"abc", b"abd") is False
