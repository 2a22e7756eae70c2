"""
Circuit field elements and 4-element digests.

Every secret, topic, nullifier and hash output in the protocol is a tuple of
exactly ``DIGEST_LEN`` canonical integers in ``[0, FIELD_ORDER)``. Callers'
values are validated, never silently reduced; ``reduce_digest`` exists for
callers that explicitly want reduction.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from .config import DIGEST_LEN, DOMAIN_SEPARATORS, FIELD_ORDER, SCALAR_SIZE_BYTES
from .exceptions import ArityMismatch, FieldElementError
from .security import RandomnessSource, hash_to_scalar

Digest = Tuple[int, int, int, int]

ZERO_DIGEST: Digest = (0, 0, 0, 0)

DIGEST_SIZE_BYTES = DIGEST_LEN * SCALAR_SIZE_BYTES


def validate_element(value, label: str = "value") -> int:
    """Return ``value`` if it is a canonical field element, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldElementError(f"{label} must be an int, got {type(value).__name__}")
    if value < 0 or value >= FIELD_ORDER:
        raise FieldElementError(f"{label} is outside the field range [0, p)")
    return value


def validate_elements(values: Iterable[int], label: str = "values") -> Tuple[int, ...]:
    return tuple(
        validate_element(value, f"{label}[{i}]") for i, value in enumerate(values)
    )


def to_digest(values, label: str = "digest") -> Digest:
    """
    Validate a 4-element vector of field elements.

    Raises:
        ArityMismatch: If the vector does not have exactly 4 elements
        FieldElementError: If an element is not canonical
    """
    if isinstance(values, (str, bytes, bytearray)):
        raise ArityMismatch(
            f"{label} must be a sequence of field elements, got {type(values).__name__}"
        )
    if not isinstance(values, Sequence):
        try:
            values = tuple(values)
        except TypeError as exc:
            raise ArityMismatch(f"{label} must be a sequence of field elements") from exc
    if len(values) != DIGEST_LEN:
        raise ArityMismatch(
            f"{label} must have {DIGEST_LEN} elements, got {len(values)}"
        )
    return validate_elements(values, label)  # type: ignore[return-value]


def reduce_digest(values: Sequence[int]) -> Digest:
    """Reduce arbitrary integers into a digest (explicit opt-in to reduction)."""
    if len(values) != DIGEST_LEN:
        raise ArityMismatch(
            f"digest must have {DIGEST_LEN} elements, got {len(values)}"
        )
    return tuple(int(v) % FIELD_ORDER for v in values)  # type: ignore[return-value]


def random_digest(rng: Optional[RandomnessSource] = None) -> Digest:
    rng = rng or RandomnessSource()
    return tuple(rng.get_random_scalar(FIELD_ORDER) for _ in range(DIGEST_LEN))  # type: ignore[return-value]


def topic_from_text(text: str) -> Digest:
    """Map an application label (e.g. "vote on proposal X") to a topic digest."""
    data = text.encode("utf-8")
    return tuple(
        hash_to_scalar(data, DOMAIN_SEPARATORS["topic"] + bytes([i]), FIELD_ORDER)
        for i in range(DIGEST_LEN)
    )  # type: ignore[return-value]


def digest_to_bytes(digest: Sequence[int]) -> bytes:
    digest = to_digest(digest)
    return b"".join(v.to_bytes(SCALAR_SIZE_BYTES, "big") for v in digest)


def digest_from_bytes(data: bytes) -> Digest:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"digest bytes must be bytes, got {type(data)}")
    if len(data) != DIGEST_SIZE_BYTES:
        raise ArityMismatch(
            f"digest must be {DIGEST_SIZE_BYTES} bytes, got {len(data)}"
        )
    return to_digest(
        [
            int.from_bytes(data[i : i + SCALAR_SIZE_BYTES], "big")
            for i in range(0, DIGEST_SIZE_BYTES, SCALAR_SIZE_BYTES)
        ]
    )


def digest_hex(digest: Sequence[int]) -> str:
    return digest_to_bytes(digest).hex()


def digest_from_hex(text: str) -> Digest:
    try:
        data = bytes.fromhex(text)
    except ValueError as exc:
        raise FieldElementError(f"invalid digest hex: {text!r}") from exc
    return digest_from_bytes(data)
