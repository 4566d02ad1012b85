"""Output formatting for decoded resource payloads."""

from __future__ import annotations

import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


def print_output(
    data: Any,
    fmt: OutputFormat = OutputFormat.TABLE,
    title: str | None = None,
) -> None:
    """Print a decoded payload in the requested format.

    Text is printed as-is and binary is written raw to stdout, whatever the
    format. Structured data goes through JSON or a Rich table.
    """
    if isinstance(data, bytes):
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
    elif isinstance(data, str):
        sys.stdout.write(data)
        if not data.endswith("\n"):
            sys.stdout.write("\n")
    elif fmt == OutputFormat.JSON or not _is_tabular(data):
        print_json(data)
    else:
        print_table(data, title)


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def print_table(data: list[dict[str, Any]] | dict[str, Any], title: str | None = None) -> None:
    """Print a dict or list of dicts as a Rich table."""
    if isinstance(data, dict):
        data = [data]

    if not data:
        console.print("[dim]No results.[/dim]")
        return

    columns: list[str] = []
    for row in data:
        for key in row:
            if key not in columns:
                columns.append(key)

    table = Table(title=title, show_lines=False)
    for col in columns:
        table.add_column(col, overflow="fold")

    for row in data:
        table.add_row(*[_cell(row.get(col, "")) for col in columns])

    Console().print(table)


def save_payload(data: Any, path: Path) -> int:
    """Write a decoded payload to a file. Returns the number of bytes written."""
    if isinstance(data, bytes):
        raw = data
    elif isinstance(data, str):
        raw = data.encode()
    else:
        raw = json.dumps(data, indent=2, default=str).encode()
    path.write_bytes(raw)
    return len(raw)


def _is_tabular(data: Any) -> bool:
    if isinstance(data, dict):
        return True
    return isinstance(data, list) and all(isinstance(row, dict) for row in data)


def _cell(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)
