"""
⚠️ DRAFT — requires crypto review before production use

Recursive aggregation of signals.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

A level-1 outer circuit verifies two signal proofs under one shared
verifier-data target, pins the access set's cap as circuit constants on both
inner cap slices, and exposes ``nullifier0 ‖ nullifier1`` as its only public
inputs. A level-L circuit (L > 1) verifies two level-(L-1) aggregates and
exposes the concatenation of their nullifier vectors, so a binary tree of
pairwise merges covers ``2 ** L`` signals.

Every aggregate is verified once by the aggregator before it is returned.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Iterator, Optional, Sequence, Tuple

from .circuit import (
    CircuitBuilder,
    CircuitData,
    PartialWitness,
    ProofWithPublicInputs,
    ProofWithPublicInputsTarget,
    VerifierCircuitData,
    VerifierCircuitTarget,
)
from .config import CircuitConfig, DIGEST_LEN
from .exceptions import (
    IncompatibleCircuitShape,
    SelfCheckFailed,
    VerificationFailed,
    WitnessGenerationError,
)
from .field import to_digest
from .types import AggregatedSignal, Signal

if TYPE_CHECKING:
    from .access_set import AccessSet

logger = logging.getLogger(__name__)


class AggregationSession:
    """Builder and witness owned by one aggregation; dropped on close."""

    def __init__(self, config: CircuitConfig):
        self.builder: Optional[CircuitBuilder] = CircuitBuilder(config)
        self.witness: Optional[PartialWitness] = PartialWitness()
        self.data: Optional[CircuitData] = None
        self.closed = False

    def close(self) -> None:
        self.builder = None
        self.witness = None
        self.data = None
        self.closed = True


@contextmanager
def aggregation_session(config: CircuitConfig) -> Iterator[AggregationSession]:
    """Scope the heavy per-aggregation state; released on every exit path."""
    session = AggregationSession(config)
    try:
        yield session
    finally:
        session.close()


class Aggregator:
    """
    Pairwise recursive aggregation over one access set.

    Args:
        access_set: Set whose cap every aggregated signal must be under
        config: Config of the outer circuits (default: standard_recursion_zk)
        signal_config: Config of the inner signal circuit (default: the
            access set's config)

    Example:
        >>> aggregator = Aggregator(access_set)
        >>> agg = aggregator.aggregate(topic0, s0, topic1, s1, verifier_data)
        >>> aggregator.verify(agg)
        >>> nullifier0, nullifier1, proof = agg.as_tuple()
    """

    def __init__(
        self,
        access_set: "AccessSet",
        config: Optional[CircuitConfig] = None,
        *,
        signal_config: Optional[CircuitConfig] = None,
    ):
        self.access_set = access_set
        self.config = config or CircuitConfig.standard_recursion_zk()
        self.signal_config = signal_config or access_set.config
        self._outer: Dict[int, VerifierCircuitData] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Circuit shapes
    # ------------------------------------------------------------------

    def inner_verifier_data(self, level: int) -> VerifierCircuitData:
        """Verifier data of the proofs a level-``level`` circuit consumes."""
        if level == 1:
            return self.access_set.signal_verifier_data(self.signal_config)
        return self.outer_verifier_data(level - 1)

    def outer_verifier_data(self, level: int) -> VerifierCircuitData:
        """Expected verifier data of a level-``level`` aggregate."""
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            raise ValueError(f"level must be a positive int, got {level!r}")
        cached = self._outer.get(level)
        if cached is not None:
            return cached
        inner = self.inner_verifier_data(level)
        with self._lock:
            cached = self._outer.get(level)
            if cached is None:
                builder = CircuitBuilder(self.config)
                self._define_outer(builder, inner, level)
                cached = builder.build().verifier_data()
                self._outer[level] = cached
        return cached

    def _define_outer(
        self, builder: CircuitBuilder, inner: VerifierCircuitData, level: int
    ) -> Tuple[Tuple[ProofWithPublicInputsTarget, ...], VerifierCircuitTarget]:
        common = inner.common
        proof_targets = (
            builder.add_virtual_proof_with_pis(common),
            builder.add_virtual_proof_with_pis(common),
        )
        verifier_target = builder.add_virtual_verifier_data()
        builder.connect_hashes(
            verifier_target.circuit_digest,
            builder.constant_hash(inner.circuit_digest),
            "inner_circuit_digest",
        )
        for target in proof_targets:
            builder.verify_proof(target, verifier_target, common)

        if level == 1:
            cap = builder.constant_merkle_cap(self.access_set.cap)
            cap_targets = [t for cap_hash in cap.hashes for t in cap_hash]
            for target in proof_targets:
                inner_cap = target.public_inputs[: len(cap_targets)]
                for a, b in zip(inner_cap, cap_targets):
                    builder.connect(a, b, "access_set_cap")
            for target in proof_targets:
                start = len(cap_targets)
                builder.register_public_inputs(
                    target.public_inputs[start : start + DIGEST_LEN]
                )
        else:
            for target in proof_targets:
                builder.register_public_inputs(target.public_inputs)

        return proof_targets, verifier_target

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _check_inner(self, verifier_data: VerifierCircuitData, level: int) -> VerifierCircuitData:
        expected = self.inner_verifier_data(level)
        if not isinstance(verifier_data, VerifierCircuitData) or (
            verifier_data.circuit_digest != expected.circuit_digest
        ):
            raise IncompatibleCircuitShape(
                "verifier data does not match the access set's circuit"
            )
        return expected

    def _prove(
        self,
        level: int,
        inner: VerifierCircuitData,
        inputs: Sequence[ProofWithPublicInputs],
        nullifiers: Tuple,
    ) -> AggregatedSignal:
        start = time.perf_counter()
        expected = self.outer_verifier_data(level)

        with aggregation_session(self.config) as session:
            proof_targets, verifier_target = self._define_outer(
                session.builder, inner, level
            )
            for target, proof_with_pis in zip(proof_targets, inputs):
                session.witness.set_proof_with_pis_target(target, proof_with_pis)
            session.witness.set_verifier_data_target(
                verifier_target, inner.verifier_only
            )
            session.data = session.builder.build()

            try:
                outer = session.data.prove(session.witness)
            except WitnessGenerationError as e:
                raise VerificationFailed(f"inner proof rejected: {e}") from e

            expected_inputs = tuple(v for n in nullifiers for v in n)
            try:
                if outer.public_inputs != expected_inputs:
                    raise VerificationFailed("outer public inputs are not the nullifiers")
                if session.data.verifier_only != expected.verifier_only:
                    raise VerificationFailed("outer circuit digest is not the expected one")
                session.data.verify(outer)
            except VerificationFailed as e:
                logger.error("Aggregation self-check failed: %s", e)
                raise SelfCheckFailed(f"aggregated proof does not verify: {e}") from e

        logger.info(
            "Aggregated %d signals (level %d) in %.3fs",
            len(nullifiers),
            level,
            time.perf_counter() - start,
        )
        return AggregatedSignal(
            nullifiers=nullifiers,
            proof=outer.proof,
            level=level,
            verifier_data=expected,
        )

    def aggregate(
        self,
        topic0: Sequence[int],
        signal0: Signal,
        topic1: Sequence[int],
        signal1: Signal,
        verifier_data: VerifierCircuitData,
    ) -> AggregatedSignal:
        """
        Aggregate two signals into one level-1 proof over both nullifiers.

        Raises:
            IncompatibleCircuitShape: If the verifier data or either proof does
                not come from this access set's signal circuit
            VerificationFailed: If either inner proof does not verify
            SelfCheckFailed: If the aggregated proof fails its own check
        """
        inner = self._check_inner(verifier_data, 1)
        pairs = (
            (to_digest(topic0, "topic0"), signal0),
            (to_digest(topic1, "topic1"), signal1),
        )
        inputs = [
            ProofWithPublicInputs(
                signal.proof, self.access_set.public_inputs(signal.nullifier, topic)
            )
            for topic, signal in pairs
        ]
        for proof_with_pis in inputs:
            if not inner.common.matches_proof(proof_with_pis.proof):
                raise IncompatibleCircuitShape(
                    "signal proof does not have the signal circuit's shape"
                )
        return self._prove(1, inner, inputs, (signal0.nullifier, signal1.nullifier))

    def merge(
        self, aggregated0: AggregatedSignal, aggregated1: AggregatedSignal
    ) -> AggregatedSignal:
        """
        Combine two aggregates of the same level into one of the next level.

        Raises:
            IncompatibleCircuitShape: If the levels differ
        """
        if aggregated0.level != aggregated1.level:
            raise IncompatibleCircuitShape(
                f"cannot merge level {aggregated0.level} with level {aggregated1.level}"
            )
        level = aggregated0.level + 1
        inner = self.inner_verifier_data(level)
        inputs = [
            ProofWithPublicInputs(a.proof, a.public_inputs)
            for a in (aggregated0, aggregated1)
        ]
        for proof_with_pis in inputs:
            if not inner.common.matches_proof(proof_with_pis.proof):
                raise IncompatibleCircuitShape(
                    "aggregate proof does not have the expected circuit shape"
                )
        return self._prove(
            level, inner, inputs, aggregated0.nullifiers + aggregated1.nullifiers
        )

    def verify(self, aggregated: AggregatedSignal) -> None:
        """
        Verify an aggregate against this access set.

        Raises:
            VerificationFailed: If the proof does not verify for these nullifiers
        """
        expected = self.outer_verifier_data(aggregated.level)
        if aggregated.verifier_data is not None and (
            aggregated.verifier_data.circuit_digest != expected.circuit_digest
        ):
            raise VerificationFailed("aggregate carries foreign verifier data")
        expected.verify(
            ProofWithPublicInputs(aggregated.proof, aggregated.public_inputs)
        )
        logger.debug("Aggregate of %d signals verified", len(aggregated))
