"""
⚠️ DRAFT — requires crypto review before production use

Cryptographic configuration for the anonymous signaling protocol.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Module-level constants describe the fixed cryptographic choices (curve,
circuit field, permutation hash, domain separators). Everything that shapes a
circuit is carried by an explicit ``CircuitConfig`` object instead of
process-wide state.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigurationError

# ============================================================================
# CURVE SELECTION
# ============================================================================

# secp256k1 via petlib, same as the Pedersen commitment layer.
CURVE_NAME = "secp256k1"
CURVE_LIBRARY = "petlib"
CURVE_NID = 714  # OpenSSL NID for secp256k1

GROUP_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
GROUP_ORDER_BITS = 256
COFACTOR = 1
POINT_SIZE_BYTES = 33  # Compressed point format
SCALAR_SIZE_BYTES = 32

# ============================================================================
# CIRCUIT FIELD
# ============================================================================

# Wires are committed with Pedersen commitments, so the circuit field is the
# scalar field of the commitment group.
FIELD_ORDER = GROUP_ORDER

# Secrets, topics, nullifiers and hash outputs are all 4 field elements.
DIGEST_LEN = 4

# ============================================================================
# PERMUTATION HASH (Poseidon-style sponge)
# ============================================================================

POSEIDON_WIDTH = 9
POSEIDON_RATE = 8
POSEIDON_FULL_ROUNDS = 8
POSEIDON_PARTIAL_ROUNDS = 63
POSEIDON_ALPHA = 5  # gcd(5, FIELD_ORDER - 1) == 1
POSEIDON_CONSTANTS_SEED = b"SEMAPHORE_POC_V1_POSEIDON_CONSTANTS"

# ============================================================================
# GENERATORS AND FIAT-SHAMIR
# ============================================================================

GENERATOR_H_SEED = b"SEMAPHORE_POC_V1_GENERATOR_H"

HASH_FUNCTION = "SHA3-256"
HASH_OUTPUT_BITS = 256

DOMAIN_SEPARATOR_PREFIX = b"SEMAPHORE_POC_V1_"

DOMAIN_SEPARATORS = {
    "transcript": DOMAIN_SEPARATOR_PREFIX + b"TRANSCRIPT",
    "circuit_digest": DOMAIN_SEPARATOR_PREFIX + b"CIRCUIT_DIGEST",
    "topic": DOMAIN_SEPARATOR_PREFIX + b"TOPIC",
}

# ============================================================================
# TREE AND SERIALIZATION LIMITS
# ============================================================================

MAX_TREE_DEPTH = 32
SERIALIZATION_FORMAT = "CBOR"
PROOF_VERSION = 1

# ============================================================================
# CIRCUIT CONFIGURATION
# ============================================================================

_ENV_ZK = "SEMAPHORE_POC_ZK"
_ENV_CAP_HEIGHT = "SEMAPHORE_POC_CAP_HEIGHT"
_ENV_MAX_DEPTH = "SEMAPHORE_POC_MAX_DEPTH"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class CircuitConfig:
    """
    Shape-relevant settings passed into every circuit construction.

    Attributes:
        zero_knowledge: Blind private wire commitments. Without blinding the
            commitments are deterministic and leak low-entropy witnesses.
        max_tree_depth: Largest commitment tree depth a circuit accepts.
        cap_height: Default cap height for trees built by helpers and the CLI.

    Two circuits built from equal configs and equal inputs have equal
    circuit digests, which is what lets independently produced signals be
    aggregated under one verifier metadata.
    """

    zero_knowledge: bool = True
    max_tree_depth: int = MAX_TREE_DEPTH
    cap_height: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.zero_knowledge, bool):
            raise ConfigurationError("zero_knowledge must be a bool")
        if not isinstance(self.max_tree_depth, int) or isinstance(
            self.max_tree_depth, bool
        ):
            raise ConfigurationError("max_tree_depth must be an int")
        if not 1 <= self.max_tree_depth <= MAX_TREE_DEPTH:
            raise ConfigurationError(
                f"max_tree_depth must be in [1, {MAX_TREE_DEPTH}], "
                f"got {self.max_tree_depth}"
            )
        if not isinstance(self.cap_height, int) or isinstance(self.cap_height, bool):
            raise ConfigurationError("cap_height must be an int")
        if not 0 <= self.cap_height <= self.max_tree_depth:
            raise ConfigurationError(
                f"cap_height must be in [0, max_tree_depth], got {self.cap_height}"
            )

    @classmethod
    def standard(cls) -> "CircuitConfig":
        return cls()

    @classmethod
    def standard_recursion_zk(cls) -> "CircuitConfig":
        """Config used for outer aggregation circuits."""
        return cls(zero_knowledge=True)

    @classmethod
    def from_env(cls, base: Optional["CircuitConfig"] = None) -> "CircuitConfig":
        """
        Overlay environment variables on ``base`` (or the standard config).

        Recognised variables:
            SEMAPHORE_POC_ZK: "1"/"0" (also true/false, yes/no, on/off)
            SEMAPHORE_POC_CAP_HEIGHT: integer
            SEMAPHORE_POC_MAX_DEPTH: integer
        """
        values = asdict(base or cls.standard())

        zk_value = os.getenv(_ENV_ZK)
        if zk_value not in (None, ""):
            values["zero_knowledge"] = _parse_bool(zk_value, _ENV_ZK)

        for env_name, key in (
            (_ENV_CAP_HEIGHT, "cap_height"),
            (_ENV_MAX_DEPTH, "max_tree_depth"),
        ):
            raw = os.getenv(env_name)
            if raw in (None, ""):
                continue
            try:
                values[key] = int(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid integer in {env_name}: {raw!r}"
                ) from exc

        return cls(**values)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "CircuitConfig":
        if not isinstance(data, dict):
            raise ConfigurationError("circuit config must be a mapping")
        unknown = set(data) - {"zero_knowledge", "max_tree_depth", "cap_height"}
        if unknown:
            raise ConfigurationError(
                f"Unknown circuit config keys: {', '.join(sorted(unknown))}"
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CircuitConfig":
        """
        Load a config from a YAML file.

        The file may hold the settings at top level or under a ``circuit`` key.
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

        if isinstance(data, dict) and "circuit" in data:
            data = data["circuit"]
        return cls.from_mapping(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean in {name}: {value!r}")


# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert CURVE_NAME == "secp256k1", "Invalid curve"
    assert CURVE_LIBRARY == "petlib", "secp256k1 requires petlib library"
    assert COFACTOR == 1, "secp256k1 must have cofactor 1"
    assert CURVE_NID == 714, "secp256k1 NID must be 714"
    assert HASH_FUNCTION in ["SHA3-256", "SHA256"], "Invalid hash function"
    assert FIELD_ORDER == GROUP_ORDER, "Circuit field must match group order"
    assert POSEIDON_RATE < POSEIDON_WIDTH, "Sponge needs a capacity element"
    assert POSEIDON_RATE >= 2 * DIGEST_LEN, "Two digests must fit in one block"
    assert POSEIDON_FULL_ROUNDS % 2 == 0, "Full rounds are split evenly"
    assert (FIELD_ORDER - 1) % POSEIDON_ALPHA != 0, "S-box must be a permutation"

    return True


# Auto-validate on import
validate_config()
