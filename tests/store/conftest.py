"""Fixtures for store directory tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """A store with custom criteria, every record kind, policies and an import."""
    root = tmp_path / "supply-chain"
    _write(root / "audits.yaml", """\
        criteria:
          license-ok:
            description: License reviewed for compatibility
            description-url: https://example.com/license-ok.txt
          crypto-reviewed:
            description: Cryptography reviewed
            implies: safe-to-run
        audits:
          left-pad:
            - version: "1.0.0"
              criteria: safe-to-deploy
              who: Alice <alice@example.com>
              notes: Small and boring.
            - delta: "1.0.0 -> 1.1.0"
              criteria: [safe-to-deploy, license-ok]
              who: [alice, bob]
            - violation: ">=1.5.0, <2.0.0"
              criteria: safe-to-run
              notes: Ships a crypto miner.
        trusted:
          is-even:
            - publisher: jonschlinkert
              criteria: safe-to-deploy
    """)
    _write(root / "config.yaml", """\
        default-criteria: safe-to-deploy
        policy:
          my-app:
            criteria: [safe-to-deploy, license-ok]
            dependency-criteria:
              left-pad: safe-to-run
        exemptions:
          is-odd:
            - version: "3.0.1"
              unconfirmed: true
              suggest: false
        imports:
          upstream:
            url: https://example.com/audits.yaml
            exclude: [bad-pkg]
            criteria-map:
              - ours: license-ok
                theirs: [licensed]
    """)
    return root


@pytest.fixture
def write():
    """Write dedented text to a path, creating parent directories."""
    return _write
