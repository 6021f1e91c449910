"""Shared fixtures for CLI tests.

Provides a store directory and dependency graph files for the common
situations: a passing vet, a vet missing one delta audit, and a vet blocked
by a violation. Every store here is free of warnings so JSON output stays
parseable.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

PASSING_AUDITS = (
    "criteria:\n"
    "  license-ok:\n"
    "    description: License reviewed\n"
    "audits:\n"
    "  left-pad:\n"
    "    - version: \"1.0.0\"\n"
    "      criteria: safe-to-deploy\n"
    "  jest:\n"
    "    - version: \"29.0.0\"\n"
    "      criteria: safe-to-run\n"
)

VIOLATION_AUDITS = (
    "audits:\n"
    "  left-pad:\n"
    "    - version: \"1.0.0\"\n"
    "      criteria: safe-to-deploy\n"
    "    - violation: \">=1.1.0, <2.0.0\"\n"
    "      criteria: safe-to-deploy\n"
    "      notes: Ships a crypto miner\n"
    "  jest:\n"
    "    - version: \"29.0.0\"\n"
    "      criteria: safe-to-run\n"
)


def _graph_text(left_pad_version: str) -> str:
    return (
        "packages:\n"
        "  - {name: my-app, version: \"0.1.0\", first_party: true}\n"
        f"  - {{name: left-pad, version: \"{left_pad_version}\"}}\n"
        "  - {name: jest, version: \"29.0.0\"}\n"
        "dependencies:\n"
        f"  - {{from: my-app@0.1.0, to: left-pad@{left_pad_version}}}\n"
        "  - {from: my-app@0.1.0, to: jest@29.0.0, kind: dev}\n"
    )


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """Store with a full audit of left-pad 1.0.0 and a run-level audit of jest."""
    root = tmp_path / "supply-chain"
    root.mkdir()
    (root / "audits.yaml").write_text(PASSING_AUDITS)
    return root


@pytest.fixture
def passing_graph(tmp_path: Path) -> Path:
    """my-app -> left-pad 1.0.0 (normal), my-app -> jest 29.0.0 (dev)."""
    path = tmp_path / "graph-pass.yaml"
    path.write_text(_graph_text("1.0.0"))
    return path


@pytest.fixture
def failing_graph(tmp_path: Path) -> Path:
    """Same as passing_graph but with left-pad 1.1.0, which nothing covers."""
    path = tmp_path / "graph-fail.yaml"
    path.write_text(_graph_text("1.1.0"))
    return path


@pytest.fixture
def violation_store(store_dir: Path) -> Path:
    """store_dir plus a violation covering left-pad 1.1.0."""
    (store_dir / "audits.yaml").write_text(VIOLATION_AUDITS)
    return store_dir


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by ``-v``."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
