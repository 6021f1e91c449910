"""``trustvet check`` -- Vet a dependency graph against the audit store.

Loads the store and the resolved dependency graph, propagates required
criteria from first-party policies, resolves every third-party package
against its audit graph, and prints the verdict. When the vet fails, the
cheapest audits that would fix it are suggested.

Exit Codes:
    0 -- Every package satisfies what is required of it.
    1 -- The vet failed (missing audits or a violation).
    2 -- The store, configuration or graph is unusable.
"""

from __future__ import annotations

import json
import sys

import click

from trustvet.cli.common import (
    EXIT_FAILED,
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
from trustvet.core.suggest import suggest_all
from trustvet.exceptions import ConfigurationError


@click.command("check")
@store_option
@graph_option
@click.option("--locked", is_flag=True, help="Ignore every exemption.")
@click.option(
    "--strict-exemptions", is_flag=True,
    help="Ignore exemptions marked unconfirmed.",
)
@click.option("--no-suggest", is_flag=True, help="Do not suggest audits on failure.")
@click.option(
    "--jobs", "-j", type=click.IntRange(min=1), default=1,
    help="Resolve packages on this many threads.",
)
@format_option
def check_command(
    store_dir: str,
    graph_path: str,
    locked: bool,
    strict_exemptions: bool,
    no_suggest: bool,
    jobs: int,
    output_format: str,
) -> None:
    """Check that every dependency meets the criteria required of it.

    Exit code 0 if the vet passes, 1 if it fails, 2 on unusable input.
    """
    loaded = open_store(store_dir, output_format)
    graph = open_graph(graph_path, output_format)
    try:
        report = resolve(
            loaded.criteria,
            loaded.store,
            graph,
            loaded.config.policy,
            exemption_mode=ExemptionMode.from_flags(locked, strict_exemptions),
            max_workers=jobs,
        )
    except ConfigurationError as exc:
        exit_with_error(str(exc), output_format)

    suggestions = None
    if not report.passed and not no_suggest:
        suggestions = suggest_all(loaded.criteria, loaded.store, report)

    if output_format == "json":
        click.echo(json.dumps({
            "report": report.to_dict(),
            "suggestions": suggestions.to_dict() if suggestions is not None else None,
        }, indent=2))
    else:
        from trustvet.cli.output import print_report, print_suggestions
        print_report(report)
        if suggestions is not None:
            print_suggestions(suggestions)

    sys.exit(EXIT_OK if report.passed else EXIT_FAILED)
