"""
semaphore_poc - anonymous signaling with recursive aggregation.

⚠️  PROOF OF CONCEPT - NOT PRODUCTION READY
"""

import click

__version__ = "0.1.0"

DISCLAIMER = """
⚠️  DISCLAIMER
This is a proof-of-concept implementation. The proving backend has not been
audited; proofs are zero-knowledge and sound under the discrete-log
assumption on secp256k1, but they are not succinct. Do not use to protect
real votes, credentials or funds.
"""


def print_disclaimer() -> None:
    click.echo(click.style(DISCLAIMER, fg="yellow"))
