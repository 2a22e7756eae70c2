import threading

import pytest

from semaphore_poc.signal_protocol import NullifierRegistry
from semaphore_poc.signal_protocol.exceptions import ArityMismatch


def test_record_detects_replay():
    registry = NullifierRegistry()
    assert registry.record((1, 2, 3, 4)) is True
    assert registry.record([1, 2, 3, 4]) is False
    assert (1, 2, 3, 4) in registry
    assert registry.seen((4, 3, 2, 1)) is False
    assert len(registry) == 1


def test_record_all_is_atomic():
    registry = NullifierRegistry()
    registry.record((1, 1, 1, 1))
    assert registry.record_all([(2, 2, 2, 2), (1, 1, 1, 1)]) is False
    assert (2, 2, 2, 2) not in registry
    assert registry.record_all([(2, 2, 2, 2), (3, 3, 3, 3)]) is True
    assert len(registry) == 3


def test_record_all_rejects_duplicates_within_batch():
    registry = NullifierRegistry()
    assert registry.record_all([(5, 5, 5, 5), (5, 5, 5, 5)]) is False
    assert len(registry) == 0


def test_invalid_nullifier():
    with pytest.raises(ArityMismatch):
        NullifierRegistry().record((1, 2))


def test_concurrent_record_accepts_once():
    registry = NullifierRegistry()
    results = []
    lock = threading.Lock()

    def worker():
        accepted = registry.record((9, 9, 9, 9))
        with lock:
            results.append(accepted)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert len(results) == 16


def test_replayed_signal_flow(signal_1, access_set, topic):
    """Verification succeeds twice; the registry is what rejects the replay."""
    registry = NullifierRegistry()
    signal, verifier_data = signal_1
    access_set.verify_signal(topic, signal, verifier_data)
    assert registry.record(signal.nullifier) is True
    access_set.verify_signal(topic, signal, verifier_data)
    assert registry.record(signal.nullifier) is False


def test_aggregate_nullifiers_recorded(aggregated):
    registry = NullifierRegistry()
    assert registry.record_all(aggregated.nullifiers) is True
    assert registry.record(aggregated.nullifier0) is False
