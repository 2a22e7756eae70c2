"""
Shared pytest configuration.

Proving is slow in pure Python, so the signals and aggregates used by many
tests are produced once per session on a small access set.
"""

import pytest

from semaphore_poc.signal_protocol import AccessSet, Aggregator, topic_from_text


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow: long-running test, enabled with RUN_SLOW=1"
    )


def _secret(i: int):
    return (1000 + i, 2000 + i, 3000 + i, 4000 + i)


@pytest.fixture(scope="session")
def secrets():
    return [_secret(i) for i in range(4)]


@pytest.fixture(scope="session")
def access_set(secrets):
    return AccessSet.from_secrets(secrets)


@pytest.fixture(scope="session")
def topic():
    return topic_from_text("vote on proposal X")


@pytest.fixture(scope="session")
def signal_1(access_set, secrets, topic):
    """(signal, verifier_data) for member 1 on ``topic``."""
    return access_set.make_signal(secrets[1], topic, 1)


@pytest.fixture(scope="session")
def signal_2(access_set, secrets, topic):
    return access_set.make_signal(secrets[2], topic, 2)


@pytest.fixture(scope="session")
def aggregator(access_set):
    return Aggregator(access_set)


@pytest.fixture(scope="session")
def aggregated(aggregator, topic, signal_1, signal_2):
    (s1, verifier_data), (s2, _) = signal_1, signal_2
    return aggregator.aggregate(topic, s1, topic, s2, verifier_data)
