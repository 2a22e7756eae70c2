"""
⚠️ DRAFT — requires crypto review before production use

Security utilities for cryptographic operations.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Provides the fork-safe randomness source used for blindings and nonces and
the Fiat-Shamir transcript shared by the prover and the verifier.
"""

import hashlib
import hmac
import os
import secrets
from typing import Iterable

from .config import (
    CURVE_NAME,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    HASH_FUNCTION,
    SCALAR_SIZE_BYTES,
)


# ============================================================================
# GROUP ORDER VALIDATION (Run at module import)
# ============================================================================


def _validate_group_order():
    """
    Validate GROUP_ORDER is reasonable.

    Raises:
        ValueError: If GROUP_ORDER is invalid
    """
    if GROUP_ORDER <= 0:
        raise ValueError(f"Invalid GROUP_ORDER: {GROUP_ORDER}")

    if GROUP_ORDER < 2**128:
        raise ValueError(f"GROUP_ORDER too small (< 2^128): {GROUP_ORDER}")

    secp256k1_order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
    if CURVE_NAME == "secp256k1" and GROUP_ORDER != secp256k1_order:
        raise ValueError(
            f"GROUP_ORDER mismatch for secp256k1: "
            f"expected {hex(secp256k1_order)}, got {hex(GROUP_ORDER)}"
        )


_validate_group_order()


# ============================================================================
# RANDOMNESS SOURCE (Fork-Safe)
# ============================================================================


class RandomnessSource:
    """
    Cryptographically secure randomness with fork detection.

    Prevents catastrophic randomness reuse if process forks.

    Example:
        >>> rng = RandomnessSource()
        >>> scalar = rng.get_random_scalar_mod_order()
    """

    def __init__(self):
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def get_random_scalar(self, max_value: int) -> int:
        """Get random scalar in [0, max_value)."""
        if os.getpid() != self._pid:
            self.__init__()
        return self._rng.randrange(0, max_value)

    def get_random_bytes(self, n: int) -> bytes:
        if os.getpid() != self._pid:
            self.__init__()
        return secrets.token_bytes(n)

    def get_random_scalar_mod_order(self) -> int:
        """Random scalar in [0, GROUP_ORDER)."""
        return self.get_random_scalar(GROUP_ORDER)

    def get_random_nonzero_scalar(self) -> int:
        """Random scalar in [1, GROUP_ORDER); zero nonces leak witnesses."""
        value = self.get_random_scalar_mod_order()
        while value == 0:
            value = self.get_random_scalar_mod_order()
        return value


# ============================================================================
# HASH FUNCTIONS
# ============================================================================


def _new_hash():
    return hashlib.sha3_256() if HASH_FUNCTION == "SHA3-256" else hashlib.sha256()


def hash_to_scalar(data: bytes, domain_sep: bytes, max_value: int = GROUP_ORDER) -> int:
    """
    Hash data to a scalar in [0, max_value) with length-prefixed domain separation.

    Raises:
        TypeError: If inputs are not bytes
        ValueError: If max_value <= 1
    """
    if not isinstance(data, bytes):
        raise TypeError(f"data must be bytes, got {type(data)}")
    if not isinstance(domain_sep, bytes):
        raise TypeError(f"domain_sep must be bytes, got {type(domain_sep)}")
    if max_value <= 1:
        raise ValueError(f"max_value must be > 1, got {max_value}")

    h = _new_hash()
    h.update(len(domain_sep).to_bytes(4, "big"))
    h.update(domain_sep)
    h.update(len(data).to_bytes(4, "big"))
    h.update(data)
    return int.from_bytes(h.digest(), "big") % max_value


class Transcript:
    """
    Fiat-Shamir transcript for the commit-and-prove backend.

    Every absorbed item is labelled and length-prefixed. Each squeezed
    challenge is fed back into the state, so later challenges depend on
    earlier ones.
    """

    def __init__(self, domain_sep: bytes = DOMAIN_SEPARATORS["transcript"]):
        self._hash = _new_hash()
        self._absorb_raw(b"domain", domain_sep)

    def _absorb_raw(self, label: bytes, data: bytes) -> None:
        self._hash.update(len(label).to_bytes(4, "big"))
        self._hash.update(label)
        self._hash.update(len(data).to_bytes(4, "big"))
        self._hash.update(data)

    def absorb_bytes(self, label: bytes, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(f"transcript data must be bytes, got {type(data)}")
        self._absorb_raw(label, bytes(data))

    def absorb_scalars(self, label: bytes, values: Iterable[int]) -> None:
        encoded = b"".join(
            (value % GROUP_ORDER).to_bytes(SCALAR_SIZE_BYTES, "big")
            for value in values
        )
        self._absorb_raw(label, encoded)

    def challenge_scalar(self, label: bytes) -> int:
        """Squeeze a non-zero challenge in [1, GROUP_ORDER)."""
        counter = 0
        while True:
            fork = self._hash.copy()
            fork.update(label)
            fork.update(counter.to_bytes(4, "big"))
            digest = fork.digest()
            value = int.from_bytes(digest, "big") % GROUP_ORDER
            if value != 0:
                self._absorb_raw(b"challenge:" + label, digest)
                return value
            counter += 1


# ============================================================================
# CONSTANT-TIME OPERATIONS
# ============================================================================


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Constant-time comparison to prevent timing attacks.

    Uses hmac.compare_digest.
    """
    return hmac.compare_digest(a, b)
