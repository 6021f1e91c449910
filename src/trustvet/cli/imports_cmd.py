"""``trustvet fetch-imports`` -- Refresh the imports lock.

Downloads the ``audits.yaml`` of every import configured in
``config.yaml``, checks that each translates into local criteria, and
rewrites ``imports.lock.yaml``. Vetting itself never touches the network;
it only reads the lock.

Exit Codes:
    0 -- Lock written.
    2 -- A fetch failed or the store is unusable.
"""

from __future__ import annotations

import sys

import click

from trustvet.cli.common import EXIT_OK, exit_with_error, open_store, store_option
from trustvet.exceptions import TrustVetError
from trustvet.store import write_imports_lock
from trustvet.store.http_client import DEFAULT_TIMEOUT
from trustvet.store.imports import fetch_imports, translate_import


@click.command("fetch-imports")
@store_option
@click.option(
    "--timeout", type=float, default=DEFAULT_TIMEOUT,
    help="Per-request timeout in seconds.",
)
def fetch_imports_command(store_dir: str, timeout: float) -> None:
    """Fetch configured imports into imports.lock.yaml.

    Exit code 0 on success, 2 on any fetch or store error.
    """
    loaded = open_store(store_dir)
    sources = loaded.config.imports
    if not sources:
        click.echo("No imports configured.")
        sys.exit(EXIT_OK)

    try:
        documents = fetch_imports(sources, timeout=timeout)
        kept = {
            source.name: len(translate_import(source, documents[source.name], loaded.criteria))
            for source in sources
        }
        path = write_imports_lock(store_dir, documents)
    except TrustVetError as exc:
        exit_with_error(str(exc))

    for name in sorted(kept):
        click.echo(f"{name}: {kept[name]} records")
    click.echo(f"Imports written to: {path}")
    sys.exit(EXIT_OK)
