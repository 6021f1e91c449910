"""``trustvet suggest`` -- Print the cheapest audits that would fix a vet.

Runs the same resolution as ``check`` and, for every failing package,
proposes a delta audit from the nearest already-trusted version or a full
audit when no version is trusted yet. Proposals are ranked by a cost
metric: distance between version numbers (``version``, the default) or
recorded diff sizes from ``diffcache.yaml`` (``diffstat``).

Exit Codes:
    0 -- Suggestions printed (or nothing to suggest).
    2 -- The store, configuration or graph is unusable.
"""

from __future__ import annotations

import json
import sys

import click

from trustvet.cli.common import (
    EXIT_OK,
    exit_with_error,
    format_option,
    graph_option,
    open_graph,
    open_store,
    store_option,
)
from trustvet.core.report import resolve
from trustvet.core.resolver import ExemptionMode
from trustvet.core.suggest import CostFn, DiffStatCost, suggest_all, version_distance
from trustvet.exceptions import TrustVetError
from trustvet.store import load_diffcache


@click.command("suggest")
@store_option
@graph_option
@click.option("--locked", is_flag=True, help="Ignore every exemption.")
@click.option(
    "--strict-exemptions", is_flag=True,
    help="Ignore exemptions marked unconfirmed.",
)
@click.option(
    "--cost", "cost_name",
    type=click.Choice(["version", "diffstat"]),
    default="version",
    help="How to rank candidate audits (default: version).",
)
@format_option
def suggest_command(
    store_dir: str,
    graph_path: str,
    locked: bool,
    strict_exemptions: bool,
    cost_name: str,
    output_format: str,
) -> None:
    """Suggest audits that would make the vet pass.

    Exit code 0 on success, 2 on unusable input.
    """
    loaded = open_store(store_dir, output_format)
    graph = open_graph(graph_path, output_format)
    try:
        cost: CostFn = version_distance
        if cost_name == "diffstat":
            cost = DiffStatCost(load_diffcache(store_dir))
        report = resolve(
            loaded.criteria,
            loaded.store,
            graph,
            loaded.config.policy,
            exemption_mode=ExemptionMode.from_flags(locked, strict_exemptions),
        )
    except TrustVetError as exc:
        exit_with_error(str(exc), output_format)

    suggestions = suggest_all(loaded.criteria, loaded.store, report, cost=cost)

    if output_format == "json":
        click.echo(json.dumps(suggestions.to_dict(), indent=2))
    else:
        from trustvet.cli.output import print_suggestions
        print_suggestions(suggestions)

    sys.exit(EXIT_OK)
