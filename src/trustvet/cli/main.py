"""trustvet CLI: audit-based vetting of third-party dependencies.

Entry point for the ``trustvet`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    check          -- Vet a dependency graph against the audit store.
    suggest        -- Print the cheapest audits that would fix a failing vet.
    certify        -- Record a full or delta audit in audits.yaml.
    fetch-imports  -- Refresh imports.lock.yaml from configured imports.
    criteria       -- List criteria and what each implies.

Usage::

    trustvet check --graph deps.yaml
    trustvet check --graph deps.yaml --locked --format json
    trustvet suggest --graph deps.yaml --cost diffstat
    trustvet certify left-pad 1.1.0 --from 1.0.0 --who "Alice <a@example.com>"
    trustvet fetch-imports
    trustvet criteria
"""

from __future__ import annotations

import logging

import click

from trustvet import __version__
from trustvet.cli.certify_cmd import certify_command
from trustvet.cli.check_cmd import check_command
from trustvet.cli.criteria_cmd import criteria_command
from trustvet.cli.imports_cmd import fetch_imports_command
from trustvet.cli.suggest_cmd import suggest_command

_LOG_LEVELS = {1: logging.INFO, 2: logging.DEBUG}


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-v", "--verbose",
    count=True,
    help="Log more detail to stderr (-v for info, -vv for debug).",
)
def cli(verbose: int) -> None:
    """trustvet: prove every dependency was reviewed for what you need.

    Combines audits, delta audits, exemptions, trusted publishers and
    violations into a per-package verdict, and suggests the smallest
    reviews that would close any gap.
    """
    if verbose:
        logging.basicConfig(
            level=_LOG_LEVELS.get(verbose, logging.DEBUG),
            format="%(levelname)s %(name)s: %(message)s",
            force=True,
        )


# Register all subcommands
cli.add_command(check_command)
cli.add_command(suggest_command)
cli.add_command(certify_command)
cli.add_command(fetch_imports_command)
cli.add_command(criteria_command)
