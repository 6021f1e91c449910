"""``trustvet certify PACKAGE VERSION`` -- Record an audit.

Appends a full audit of VERSION, or with ``--from`` a delta audit from
that version to VERSION, to ``audits.yaml``. Without ``--criteria`` the
audit certifies what would be useful: criteria trusted at the start of the
delta (every criterion for a full audit) that VERSION does not already
meet and no violation denies, falling back to the default criteria.

Exit Codes:
    0 -- Audit recorded.
    2 -- Invalid version, criterion, or store.
"""

from __future__ import annotations

import sys

import click

from trustvet.cli.common import EXIT_OK, exit_with_error, open_store, store_option
from trustvet.core.audits import DeltaAudit, FullAudit, Version, describe, validate_record
from trustvet.core.suggest import suggested_criteria
from trustvet.exceptions import TrustVetError
from trustvet.store import append_audit


@click.command("certify")
@click.argument("package")
@click.argument("version")
@store_option
@click.option("--from", "from_version", default=None, help="Record a delta audit from this version.")
@click.option(
    "--criteria", "criteria_names", multiple=True,
    help="Criterion to certify (repeatable).",
)
@click.option("--who", multiple=True, help="Reviewer identity (repeatable).")
@click.option("--notes", default=None, help="Free-text justification.")
def certify_command(
    package: str,
    version: str,
    store_dir: str,
    from_version: str | None,
    criteria_names: tuple[str, ...],
    who: tuple[str, ...],
    notes: str | None,
) -> None:
    """Record that PACKAGE at VERSION was reviewed.

    Exit code 0 on success, 2 on invalid input.
    """
    loaded = open_store(store_dir)
    try:
        to_v = Version.parse(version)
        from_v = Version.parse(from_version) if from_version is not None else None
    except ValueError as exc:
        exit_with_error(str(exc))

    if criteria_names:
        criteria = frozenset(criteria_names)
    else:
        criteria = suggested_criteria(loaded.criteria, loaded.store, package, from_v, to_v)
        if not criteria:
            criteria = frozenset({loaded.config.default_criteria})

    record: FullAudit | DeltaAudit
    if from_v is None:
        record = FullAudit(package, to_v, criteria, who, notes)
    else:
        record = DeltaAudit(package, from_v, to_v, criteria, who, notes)

    try:
        validate_record(record, package, loaded.criteria)
        path = append_audit(store_dir, record)
    except TrustVetError as exc:
        exit_with_error(str(exc))

    click.echo(
        f"Recorded {describe(record)} for {package} "
        f"({', '.join(sorted(criteria))}) in {path}"
    )
    sys.exit(EXIT_OK)
