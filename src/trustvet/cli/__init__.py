"""Command-line interface for trustvet."""
