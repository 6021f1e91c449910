"""Helpers shared by the CLI commands: common options and error exits.

Every command reports unusable input the same way: ``Error: <message>``
(or ``{"error": ...}`` with ``--format json``) and exit code 2.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from typing import Any, NoReturn

import click

from trustvet.core.dependency import DependencyGraph
from trustvet.exceptions import TrustVetError
from trustvet.store import STORE_DIR, LoadedStore, load_dependency_graph, load_store

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def store_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--store", "store_dir",
        type=click.Path(file_okay=False),
        default=STORE_DIR,
        show_default=True,
        help="Store directory holding audits.yaml and config.yaml.",
    )(func)


def graph_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--graph", "graph_path",
        type=click.Path(exists=True, dir_okay=False),
        required=True,
        help="Resolved dependency graph (YAML or JSON).",
    )(func)


def format_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--format", "output_format",
        type=click.Choice(["text", "json"]),
        default="text",
        help="Output format (default: text).",
    )(func)


def exit_with_error(message: str, output_format: str = "text") -> NoReturn:
    if output_format == "json":
        click.echo(json.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}")
    sys.exit(EXIT_ERROR)


def open_store(store_dir: str, output_format: str = "text") -> LoadedStore:
    try:
        return load_store(store_dir)
    except TrustVetError as exc:
        exit_with_error(str(exc), output_format)


def open_graph(graph_path: str, output_format: str = "text") -> DependencyGraph:
    try:
        return load_dependency_graph(graph_path)
    except TrustVetError as exc:
        exit_with_error(str(exc), output_format)
