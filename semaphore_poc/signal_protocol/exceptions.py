"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the signaling protocol.

These exceptions provide structured error handling for tree construction,
proving, verification and aggregation. None of them is retried
automatically: proving is deterministic in its inputs, so retrying without
changing them reproduces the same failure.
"""


class SignalProtocolError(Exception):
    """Base exception for signaling protocol errors."""

    pass


class ConfigurationError(SignalProtocolError):
    """Configuration error."""

    pass


class CryptographicError(SignalProtocolError):
    """Cryptographic operation error."""

    pass


class SerializationError(SignalProtocolError):
    """Encoding or decoding of a protocol artifact failed."""

    pass


class FieldElementError(SignalProtocolError, ValueError):
    """A value is not a canonical element of the circuit field."""

    pass


class ArityMismatch(SignalProtocolError, ValueError):
    """Wrong number of elements supplied for a digest or input vector."""

    pass


class IndexOutOfRange(SignalProtocolError, IndexError):
    """Membership index is outside the commitment tree."""

    pass


class WitnessMismatch(SignalProtocolError):
    """The secret does not correspond to the leaf at the claimed index."""

    pass


class ProofGenerationError(SignalProtocolError):
    """Error during proof generation."""

    pass


class WitnessGenerationError(ProofGenerationError):
    """The partial witness does not satisfy the circuit."""

    pass


class ProofVerificationError(SignalProtocolError):
    """Error during proof verification."""

    pass


class VerificationFailed(ProofVerificationError):
    """Proof rejected: malformed, wrong public inputs or wrong verifier data."""

    pass


class IncompatibleCircuitShape(SignalProtocolError):
    """Proofs or verifier metadata come from differently shaped circuits."""

    pass


class SelfCheckFailed(SignalProtocolError):
    """
    The aggregator could not verify the proof it just produced.

    This is an internal invariant violation, not a recoverable condition.
    """

    pass
