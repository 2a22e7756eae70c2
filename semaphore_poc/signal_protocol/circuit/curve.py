"""
⚠️ DRAFT — requires crypto review before production use

Curve setup and Pedersen wire commitments using petlib + secp256k1.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Every private wire of a circuit is committed as

    C = value * G + blinding * H

where G is the standard secp256k1 generator and H is hash_to_point of a
Nothing-Up-My-Sleeve seed. Binding of the whole proof system rests on nobody
knowing log_G(H).
"""

import threading
from dataclasses import dataclass
from typing import Any, Optional

try:
    from petlib.bn import Bn
    from petlib.ec import EcGroup, EcPt
except ImportError:
    raise ImportError(
        "petlib is required for the proving backend. "
        "Install with: pip install petlib"
    )

from ..config import (
    COFACTOR,
    CURVE_LIBRARY,
    CURVE_NAME,
    CURVE_NID,
    GENERATOR_H_SEED,
    GROUP_ORDER,
    POINT_SIZE_BYTES,
    SCALAR_SIZE_BYTES,
)
from ..exceptions import ConfigurationError, CryptographicError, SerializationError


@dataclass
class CurveParameters:
    """
    Elliptic curve parameters for wire commitments.

    Attributes:
        curve: Curve name (e.g., "secp256k1")
        library: Cryptographic library (e.g., "petlib")
        group: Elliptic curve group (EcGroup)
        G: Standard generator
        H: Second generator derived via hash-to-point
        order: Group order
    """

    curve: str
    library: str
    group: Any  # EcGroup
    G: Any  # EcPt
    H: Any  # EcPt
    order: int

    def __post_init__(self):
        if not isinstance(self.order, int):
            self.order = int(self.order)

        if self.order != GROUP_ORDER:
            raise ConfigurationError(
                f"Group order mismatch: expected {GROUP_ORDER}, got {self.order}"
            )

        if COFACTOR != 1:
            raise ConfigurationError(
                f"Configuration error: COFACTOR={COFACTOR}, expected 1. "
                "Wire commitments require prime order curves only."
            )


def setup_curve(
    curve_name: Optional[str] = None, library: Optional[str] = None
) -> CurveParameters:
    """
    Setup the secp256k1 group and the generators G, H.

    H = hash_to_point(GENERATOR_H_SEED); anyone can recompute it.

    Raises:
        ValueError: If curve/library combination is unsupported
        CryptographicError: If curve initialization fails
    """
    curve_name = curve_name or CURVE_NAME
    library = library or CURVE_LIBRARY

    if curve_name != "secp256k1":
        raise ValueError(f"Only secp256k1 is supported, got {curve_name}")

    if library != "petlib":
        raise ValueError(f"Only petlib is supported, got {library}")

    try:
        group = EcGroup(CURVE_NID)
        G = group.generator()
        H = group.hash_to_point(GENERATOR_H_SEED)

        return CurveParameters(
            curve=curve_name,
            library=library,
            group=group,
            G=G,
            H=H,
            order=int(group.order()),
        )
    except Exception as e:
        if isinstance(e, (ValueError, ConfigurationError)):
            raise
        raise CryptographicError(
            f"Failed to initialize curve {curve_name}: {e}"
        ) from e


_cached_params: Optional[CurveParameters] = None
_cache_lock = threading.Lock()


def get_cached_curve_params() -> CurveParameters:
    """Return process-wide curve parameters, creating them once."""
    global _cached_params
    if _cached_params is None:
        with _cache_lock:
            if _cached_params is None:
                _cached_params = setup_curve()
    return _cached_params


def clear_curve_params_cache() -> None:
    """Drop cached parameters (tests only)."""
    global _cached_params
    with _cache_lock:
        _cached_params = None


# ============================================================================
# SCALAR AND POINT HELPERS
# ============================================================================


def to_bn(value: int) -> Bn:
    """Convert a Python int to a petlib Bn, reducing modulo the group order."""
    return Bn.from_binary((value % GROUP_ORDER).to_bytes(SCALAR_SIZE_BYTES, "big"))


def commit_point(value: int, blinding: int, params: CurveParameters):
    """C = value * G + blinding * H as a curve point."""
    return to_bn(value) * params.G + to_bn(blinding) * params.H


def multi_scalar_mul(pairs, params: CurveParameters):
    """Sum of scalar * point over ``(scalar, point)`` pairs."""
    acc = params.group.infinite()
    for scalar, point in pairs:
        scalar %= GROUP_ORDER
        if scalar:
            acc = acc + to_bn(scalar) * point
    return acc


def point_to_bytes(point) -> bytes:
    """Compressed encoding; the point at infinity encodes as b""."""
    if point.is_infinite():
        return b""
    data = point.export()
    if len(data) != POINT_SIZE_BYTES:
        raise CryptographicError(
            f"Point size mismatch: expected {POINT_SIZE_BYTES} bytes, got {len(data)}"
        )
    return data


def point_from_bytes(data: bytes, params: CurveParameters):
    """
    Decode a point produced by ``point_to_bytes``.

    Raises:
        SerializationError: If the bytes are not a valid curve point
    """
    if not isinstance(data, (bytes, bytearray)):
        raise SerializationError(f"Point must be bytes, got {type(data).__name__}")
    if len(data) == 0:
        return params.group.infinite()
    if len(data) != POINT_SIZE_BYTES:
        raise SerializationError(
            f"Point must be {POINT_SIZE_BYTES} bytes, got {len(data)}"
        )
    try:
        point = EcPt.from_binary(bytes(data), params.group)
    except Exception as e:
        raise SerializationError(f"Invalid point encoding: {e}") from e
    if not params.group.check_point(point):
        raise SerializationError("Point is not on the curve")
    return point
