"""Shared fixtures for trustvet tests."""

import pytest

from trustvet.core.criteria import SAFE_TO_RUN, CriteriaModel, Criterion


@pytest.fixture
def criteria() -> CriteriaModel:
    """The built-in criteria only."""
    return CriteriaModel()


@pytest.fixture
def custom_criteria() -> CriteriaModel:
    """Built-ins plus two custom criteria.

    - ``license-ok`` stands alone (no run/deploy tiering).
    - ``crypto-reviewed`` implies ``safe-to-run``.
    """
    return CriteriaModel([
        Criterion("license-ok", description="License reviewed"),
        Criterion(
            "crypto-reviewed",
            description="Cryptography reviewed",
            implies=frozenset({SAFE_TO_RUN}),
        ),
    ])
