"""trustvet: Audit-based trust vetting for third-party dependency supply chains."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
