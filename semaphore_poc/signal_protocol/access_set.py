"""
⚠️ DRAFT — requires crypto review before production use

Access set: binds a commitment tree to the signaling protocol.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Signal circuit (public inputs in this order):
    cap[0] ‖ ... ‖ cap[2^h - 1]   the access set's tree cap
    nullifier                     H(secret ‖ topic)
    topic

Private inputs: secret, index bits (boolean constrained), Merkle siblings.
The circuit recomputes the leaf H(secret ‖ 0^4), walks the path to the cap
entry selected by the high index bits, and derives the nullifier from the
same secret wires.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Sequence, Tuple

from .circuit import (
    BoolTarget,
    CircuitBuilder,
    CircuitData,
    HashOutTarget,
    MerkleCapTarget,
    MerkleProofTarget,
    PartialWitness,
    ProofWithPublicInputs,
    VerifierCircuitData,
)
from .config import CircuitConfig, DIGEST_LEN
from .exceptions import (
    ConfigurationError,
    ProofGenerationError,
    VerificationFailed,
    WitnessGenerationError,
    WitnessMismatch,
)
from .field import Digest, to_digest
from .merkle import CommitmentTree
from .poseidon import compute_nullifier, identity_commitment
from .types import AggregatedSignal, Signal

if TYPE_CHECKING:
    from .security import RandomnessSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SignalCircuit:
    """A built signal circuit together with the targets its witness fills."""

    data: CircuitData
    cap: MerkleCapTarget
    secret: HashOutTarget
    index_bits: Tuple[BoolTarget, ...]
    siblings: MerkleProofTarget
    topic: HashOutTarget
    nullifier: HashOutTarget


def build_signal_circuit(
    depth: int, cap_height: int, config: CircuitConfig
) -> SignalCircuit:
    """Build the membership + nullifier circuit for a tree of the given shape."""
    if depth > config.max_tree_depth:
        raise ConfigurationError(
            f"tree depth {depth} exceeds max_tree_depth {config.max_tree_depth}"
        )

    builder = CircuitBuilder(config)

    cap = builder.add_virtual_cap(cap_height)
    for cap_hash in cap.hashes:
        builder.register_public_inputs(cap_hash.elements)

    secret = builder.add_virtual_hash()
    index_bits = tuple(builder.add_virtual_bool_target_safe() for _ in range(depth))
    siblings = builder.add_virtual_merkle_proof(depth - cap_height)

    zero = builder.zero()
    leaf = builder.hash_n_to_hash_no_pad(list(secret) + [zero] * DIGEST_LEN)
    builder.verify_merkle_proof_to_cap(leaf, index_bits, cap, siblings)

    topic = builder.add_virtual_hash()
    nullifier = builder.hash_n_to_hash_no_pad(list(secret) + list(topic))
    builder.register_public_inputs(nullifier.elements)
    builder.register_public_inputs(topic.elements)

    return SignalCircuit(
        data=builder.build(),
        cap=cap,
        secret=secret,
        index_bits=index_bits,
        siblings=siblings,
        topic=topic,
        nullifier=nullifier,
    )


class AccessSet:
    """
    A committed set of identities that members can signal from.

    Args:
        tree: Commitment tree of identity commitments
        config: Default circuit config for signals made from this set

    Example:
        >>> access_set = AccessSet.from_secrets(secrets)
        >>> signal, vd = access_set.make_signal(secrets[3], topic, 3)
        >>> access_set.verify_signal(topic, signal, vd)
    """

    def __init__(self, tree: CommitmentTree, config: Optional[CircuitConfig] = None):
        if not isinstance(tree, CommitmentTree):
            raise TypeError(f"tree must be a CommitmentTree, got {type(tree)}")
        self._tree = tree
        self._config = config or CircuitConfig.standard()
        if tree.depth > self._config.max_tree_depth:
            raise ConfigurationError(
                f"tree depth {tree.depth} exceeds max_tree_depth "
                f"{self._config.max_tree_depth}"
            )
        self._circuits: Dict[CircuitConfig, SignalCircuit] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_commitments(
        cls,
        commitments: Iterable[Sequence[int]],
        cap_height: Optional[int] = None,
        config: Optional[CircuitConfig] = None,
    ) -> "AccessSet":
        config = config or CircuitConfig.standard()
        if cap_height is None:
            cap_height = config.cap_height
        tree = CommitmentTree(commitments, cap_height, max_depth=config.max_tree_depth)
        return cls(tree, config)

    @classmethod
    def from_secrets(
        cls,
        secrets: Iterable[Sequence[int]],
        cap_height: Optional[int] = None,
        config: Optional[CircuitConfig] = None,
    ) -> "AccessSet":
        return cls.from_commitments(
            [identity_commitment(s) for s in secrets], cap_height, config
        )

    # ------------------------------------------------------------------
    # Public commitment
    # ------------------------------------------------------------------

    @property
    def tree(self) -> CommitmentTree:
        return self._tree

    @property
    def config(self) -> CircuitConfig:
        return self._config

    @property
    def cap(self) -> Tuple[Digest, ...]:
        return self._tree.cap

    @property
    def root(self) -> Digest:
        return self._tree.root

    @property
    def depth(self) -> int:
        return self._tree.depth

    @property
    def cap_height(self) -> int:
        return self._tree.cap_height

    def __len__(self) -> int:
        return len(self._tree)

    def public_inputs(self, nullifier: Sequence[int], topic: Sequence[int]) -> Tuple[int, ...]:
        """Signal public inputs: cap ‖ nullifier ‖ topic."""
        cap_elements = [v for cap_hash in self.cap for v in cap_hash]
        return tuple(
            cap_elements
            + list(to_digest(nullifier, "nullifier"))
            + list(to_digest(topic, "topic"))
        )

    # ------------------------------------------------------------------
    # Circuit shapes
    # ------------------------------------------------------------------

    def signal_circuit(self, config: Optional[CircuitConfig] = None) -> SignalCircuit:
        """Signal circuit for ``config``; built once, then shared read-only."""
        config = config or self._config
        circuit = self._circuits.get(config)
        if circuit is None:
            with self._lock:
                circuit = self._circuits.get(config)
                if circuit is None:
                    start = time.perf_counter()
                    circuit = build_signal_circuit(
                        self._tree.depth, self._tree.cap_height, config
                    )
                    self._circuits[config] = circuit
                    logger.debug(
                        "Built signal circuit for depth %d in %.3fs: %r",
                        self._tree.depth,
                        time.perf_counter() - start,
                        circuit.data.common,
                    )
        return circuit

    def signal_verifier_data(
        self, config: Optional[CircuitConfig] = None
    ) -> VerifierCircuitData:
        return self.signal_circuit(config).data.verifier_data()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def make_signal(
        self,
        secret: Sequence[int],
        topic: Sequence[int],
        index: int,
        *,
        config: Optional[CircuitConfig] = None,
        rng: Optional["RandomnessSource"] = None,
    ) -> Tuple[Signal, VerifierCircuitData]:
        """
        Prove membership at ``index`` and derive the nullifier for ``topic``.

        Returns:
            (signal, verifier data needed to check it)

        Raises:
            ArityMismatch: If secret or topic is not 4 elements
            FieldElementError: If an element is not canonical
            IndexOutOfRange: If index is outside the tree
            WitnessMismatch: If the secret's commitment is not the leaf at index
        """
        secret = to_digest(secret, "secret")
        topic = to_digest(topic, "topic")
        leaf = self._tree.leaf(index)
        if identity_commitment(secret) != leaf:
            raise WitnessMismatch(f"secret does not match the leaf at index {index}")

        circuit = self.signal_circuit(config)
        start = time.perf_counter()

        witness = PartialWitness()
        witness.set_cap_target(circuit.cap, self.cap)
        witness.set_hash_target(circuit.secret, secret)
        for position, bit in enumerate(circuit.index_bits):
            witness.set_bool_target(bit, (index >> position) & 1)
        witness.set_merkle_proof_target(circuit.siblings, self._tree.path(index))
        witness.set_hash_target(circuit.topic, topic)

        try:
            proof_with_pis = circuit.data.prove(witness, rng=rng)
        except WitnessGenerationError as e:
            raise WitnessMismatch(f"witness generation failed: {e}") from e

        nullifier = compute_nullifier(secret, topic)
        if proof_with_pis.public_inputs != self.public_inputs(nullifier, topic):
            raise ProofGenerationError("proof public inputs do not match the signal")

        logger.info(
            "Created signal in %.3fs (depth %d, %d product gates)",
            time.perf_counter() - start,
            self._tree.depth,
            circuit.data.common.num_product_gates,
        )
        return Signal(nullifier=nullifier, proof=proof_with_pis.proof), (
            circuit.data.verifier_data()
        )

    def verify_signal(
        self, topic: Sequence[int], signal: Signal, verifier_data: VerifierCircuitData
    ) -> None:
        """
        Check ``signal`` for ``topic`` against this access set.

        Replay detection is the caller's job (see ``NullifierRegistry``).

        Raises:
            VerificationFailed: If the verifier data is not this set's signal
                circuit, the public inputs do not match, or the proof is invalid
        """
        if not isinstance(verifier_data, VerifierCircuitData):
            raise VerificationFailed("verifier data has the wrong type")
        config = verifier_data.common.config
        if not isinstance(config, CircuitConfig) or config != replace(
            self._config, zero_knowledge=config.zero_knowledge
        ):
            raise VerificationFailed(
                "verifier data was not built with this access set's circuit config"
            )
        expected = self.signal_verifier_data(config)
        if verifier_data.circuit_digest != expected.circuit_digest:
            raise VerificationFailed(
                "verifier data does not belong to this access set's signal circuit"
            )

        public_inputs = self.public_inputs(signal.nullifier, topic)
        expected.verify(ProofWithPublicInputs(signal.proof, public_inputs))
        logger.debug("Signal verified")

    def aggregate_signals(
        self,
        topic0: Sequence[int],
        signal0: Signal,
        topic1: Sequence[int],
        signal1: Signal,
        verifier_data: VerifierCircuitData,
        *,
        config: Optional[CircuitConfig] = None,
    ) -> AggregatedSignal:
        """Shortcut for ``Aggregator(self, config).aggregate(...)``."""
        from .recursion import Aggregator

        return Aggregator(self, config).aggregate(
            topic0, signal0, topic1, signal1, verifier_data
        )

    def __repr__(self) -> str:
        return f"AccessSet({self._tree!r})"


class NullifierRegistry:
    """
    Thread-safe record of nullifiers already accepted.

    Verification never consults this; applications call ``record`` after a
    successful verification and reject the signal if it returns False.
    """

    def __init__(self):
        self._seen = set()
        self._lock = threading.Lock()

    def record(self, nullifier: Sequence[int]) -> bool:
        """Record ``nullifier``; False if it was already present."""
        nullifier = to_digest(nullifier, "nullifier")
        with self._lock:
            if nullifier in self._seen:
                return False
            self._seen.add(nullifier)
            return True

    def record_all(self, nullifiers: Iterable[Sequence[int]]) -> bool:
        """Record several nullifiers atomically; False (nothing recorded) on any replay."""
        batch = [to_digest(n, "nullifier") for n in nullifiers]
        with self._lock:
            if len(set(batch)) != len(batch) or any(n in self._seen for n in batch):
                return False
            self._seen.update(batch)
            return True

    def seen(self, nullifier: Sequence[int]) -> bool:
        with self._lock:
            return to_digest(nullifier, "nullifier") in self._seen

    def __contains__(self, nullifier) -> bool:
        return self.seen(nullifier)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
