"""``trustvet criteria`` -- List criteria and what each implies.

Exit Codes:
    0 -- Criteria listed.
    2 -- The store is unusable (for example, an implication cycle).
"""

from __future__ import annotations

import json
import sys

import click

from trustvet.cli.common import EXIT_OK, format_option, open_store, store_option
from trustvet.core.criteria import BUILTIN_CRITERIA


@click.command("criteria")
@store_option
@format_option
def criteria_command(store_dir: str, output_format: str) -> None:
    """List built-in and custom criteria with their implication closure."""
    loaded = open_store(store_dir, output_format)
    criteria = loaded.criteria

    if output_format == "json":
        click.echo(json.dumps([
            {
                "name": name,
                "builtin": name in BUILTIN_CRITERIA,
                "implies": sorted(criteria.closure(name) - {name}),
                "description": criteria.get(name).description,
                "description_url": criteria.get(name).description_url,
            }
            for name in criteria.names
        ], indent=2))
    else:
        from trustvet.cli.output import print_criteria
        print_criteria(criteria)

    sys.exit(EXIT_OK)
