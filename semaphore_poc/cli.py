"""
Command-Line Interface for the anonymous signaling toolkit

Provides commands to generate identities, build access sets, create and
verify signals, and aggregate pairs of signals.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import cbor2
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from semaphore_poc import __version__, print_disclaimer
from semaphore_poc.signal_protocol import (
    AccessSet,
    AggregatedSignal,
    Aggregator,
    CircuitConfig,
    CommitmentTree,
    Signal,
    SignalProtocolError,
    random_digest,
    topic_from_text,
)
from semaphore_poc.signal_protocol.circuit import (
    VerifierCircuitData,
    VerifierOnlyCircuitData,
)
from semaphore_poc.signal_protocol.config import PROOF_VERSION
from semaphore_poc.signal_protocol.exceptions import SerializationError
from semaphore_poc.signal_protocol.field import digest_hex, to_digest

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _write_cbor(path: str, payload: Dict[str, Any]) -> None:
    Path(path).write_bytes(cbor2.dumps({"version": PROOF_VERSION, **payload}))


def _read_cbor(path: str, kind: str) -> Dict[str, Any]:
    try:
        data = cbor2.loads(Path(path).read_bytes())
    except Exception as e:
        raise SerializationError(f"Cannot read {kind} file {path}: {e}") from e
    if not isinstance(data, dict) or data.get("version") != PROOF_VERSION:
        raise SerializationError(f"{path} is not a version {PROOF_VERSION} {kind} file")
    return data


def _load_access_set(path: str) -> AccessSet:
    data = _read_cbor(path, "access set")
    try:
        config = CircuitConfig.from_mapping(data["config"])
        tree = CommitmentTree.from_dict(data["tree"], max_depth=config.max_tree_depth)
    except (KeyError, TypeError) as e:
        raise SerializationError(f"Malformed access set file {path}: {e}") from e
    access_set = AccessSet(tree, config)
    logger.debug("Loaded %r with %r from %s", access_set, config, path)
    return access_set


def _load_secrets(path: str):
    data = _read_cbor(path, "secrets")
    try:
        return [to_digest(s, f"secrets[{i}]") for i, s in enumerate(data["secrets"])]
    except (KeyError, TypeError) as e:
        raise SerializationError(f"Malformed secrets file {path}: {e}") from e


def _fail(message: str) -> None:
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file with circuit settings (zero_knowledge, max_tree_depth, cap_height)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx, config_path: Optional[str], verbose: bool):
    """
    Anonymous signaling toolkit - Proof of Concept

    Members of an access set emit one signal per topic without revealing
    which member they are; pairs of signals can be aggregated into one proof.

    ⚠️  PROOF OF CONCEPT - NOT PRODUCTION READY
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    try:
        base = CircuitConfig.from_yaml(config_path) if config_path else None
        ctx.obj["config"] = CircuitConfig.from_env(base)
    except SignalProtocolError as e:
        _fail(str(e))


@main.command()
@click.option("--count", type=click.IntRange(min=1), required=True, help="Number of identities")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output file")
def keygen(count: int, out: str):
    """
    Generate random identity secrets.

    Examples:

        semaphore-poc keygen --count 8 --out secrets.cbor
    """
    secrets = [list(random_digest()) for _ in range(count)]
    _write_cbor(out, {"secrets": secrets})
    click.echo(click.style(f"✓ Wrote {count} secrets to {out}", fg="green"))


@main.command("build-set")
@click.argument("secrets_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output file")
@click.option("--cap-height", type=click.IntRange(min=0), default=None, help="Tree cap height")
@click.pass_context
def build_set(ctx, secrets_file: str, out: str, cap_height: Optional[int]):
    """
    Build an access set from a secrets file.

    Only identity commitments are written; secrets stay in SECRETS_FILE.
    """
    config = ctx.obj["config"]
    try:
        access_set = AccessSet.from_secrets(
            _load_secrets(secrets_file), cap_height=cap_height, config=config
        )
    except (SignalProtocolError, ValueError) as e:
        _fail(str(e))

    _write_cbor(out, {"config": config.to_dict(), "tree": access_set.tree.to_dict()})

    table = Table(title="Access set")
    table.add_column("Property")
    table.add_column("Value")
    table.add_row("Members", str(len(access_set)))
    table.add_row("Depth", str(access_set.depth))
    table.add_row("Cap height", str(access_set.cap_height))
    table.add_row("Root", digest_hex(access_set.root)[:32] + "…")
    Console().print(table)
    click.echo(click.style(f"✓ Access set saved to: {out}", fg="green"))


@main.command()
@click.argument("set_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("secrets_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--index", type=int, required=True, help="Member index in the access set")
@click.option("--topic", required=True, help="Topic text, e.g. 'vote on proposal X'")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output file")
@click.pass_context
def signal(ctx, set_file: str, secrets_file: str, index: int, topic: str, out: str):
    """Create a signal for TOPIC as the member at INDEX."""
    try:
        access_set = _load_access_set(set_file)
        secrets = _load_secrets(secrets_file)
        if not 0 <= index < len(secrets):
            _fail(f"no secret at index {index} in {secrets_file}")
        topic_digest = topic_from_text(topic)
        new_signal, verifier_data = access_set.make_signal(
            secrets[index], topic_digest, index
        )
    except (SignalProtocolError, ValueError) as e:
        _fail(str(e))

    _write_cbor(
        out,
        {
            "topic": list(topic_digest),
            "signal": new_signal.to_dict(),
            "circuit_digest": list(verifier_data.circuit_digest),
        },
    )
    click.echo(f"  Nullifier: {digest_hex(new_signal.nullifier)}")
    click.echo(click.style(f"✓ Signal saved to: {out}", fg="green"))


def _load_signal(path: str, access_set: AccessSet):
    data = _read_cbor(path, "signal")
    try:
        loaded = Signal.from_dict(data["signal"])
        topic = to_digest(data["topic"], "topic")
        verifier_only = VerifierOnlyCircuitData(data["circuit_digest"])
    except (KeyError, ValueError) as e:
        raise SerializationError(f"Malformed signal file {path}: {e}") from e
    common = access_set.signal_verifier_data().common
    return topic, loaded, VerifierCircuitData(verifier_only, common)


@main.command()
@click.argument("set_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("signal_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--topic", required=True, help="Topic text the signal must be bound to")
def verify(set_file: str, signal_file: str, topic: str):
    """Verify a signal against an access set and topic."""
    try:
        access_set = _load_access_set(set_file)
        _, loaded, verifier_data = _load_signal(signal_file, access_set)
        access_set.verify_signal(topic_from_text(topic), loaded, verifier_data)
    except SignalProtocolError as e:
        _fail(f"Signal rejected: {e}")

    click.echo(f"  Nullifier: {digest_hex(loaded.nullifier)}")
    click.echo(click.style("✓ Signal verified", fg="green"))


@main.command()
@click.argument("set_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("signal_a", type=click.Path(exists=True, dir_okay=False))
@click.argument("signal_b", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output file")
def aggregate(set_file: str, signal_a: str, signal_b: str, out: str):
    """Aggregate two signals into one proof over both nullifiers."""
    try:
        access_set = _load_access_set(set_file)
        topic0, signal0, verifier_data = _load_signal(signal_a, access_set)
        topic1, signal1, _ = _load_signal(signal_b, access_set)
        aggregated = Aggregator(access_set).aggregate(
            topic0, signal0, topic1, signal1, verifier_data
        )
    except SignalProtocolError as e:
        _fail(f"Aggregation failed: {e}")

    _write_cbor(out, {"aggregate": aggregated.to_dict()})
    for i, nullifier in enumerate(aggregated.nullifiers):
        click.echo(f"  Nullifier {i}: {digest_hex(nullifier)}")
    click.echo(click.style(f"✓ Aggregated signal saved to: {out}", fg="green"))


@main.command("verify-aggregate")
@click.argument("set_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("aggregate_file", type=click.Path(exists=True, dir_okay=False))
def verify_aggregate(set_file: str, aggregate_file: str):
    """Verify an aggregated signal against an access set."""
    try:
        access_set = _load_access_set(set_file)
        data = _read_cbor(aggregate_file, "aggregate")
        if "aggregate" not in data:
            raise SerializationError(f"{aggregate_file} has no aggregate")
        aggregated = AggregatedSignal.from_dict(data["aggregate"])
        Aggregator(access_set).verify(aggregated)
    except SignalProtocolError as e:
        _fail(f"Aggregate rejected: {e}")

    for i, nullifier in enumerate(aggregated.nullifiers):
        click.echo(f"  Nullifier {i}: {digest_hex(nullifier)}")
    click.echo(click.style("✓ Aggregated signal verified", fg="green"))


@main.command()
def version():
    """Show version and disclaimer information."""
    click.echo(f"\nsemaphore-poc v{__version__}")
    click.echo("Proof of Concept - Not Production Ready\n")
    print_disclaimer()


if __name__ == "__main__":
    main()
