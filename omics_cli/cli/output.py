"""Terminal output helpers for the omics CLI.

Command results go to stdout through :func:`emit`, so they can be piped
into other tools. Status messages go to stderr with ANSI colors, which
are disabled when stderr is not a TTY or when ``NO_COLOR`` is set.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, TextIO


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(sys.stderr, "isatty"):
        return False
    return sys.stderr.isatty()


_COLOR = _supports_color()


def _ansi(code: str, text: str) -> str:
    if not _COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def bold(text: str) -> str:
    return _ansi("1", text)


def dim(text: str) -> str:
    return _ansi("2", text)


def green(text: str) -> str:
    return _ansi("32", text)


def red(text: str) -> str:
    return _ansi("31", text)


def cyan(text: str) -> str:
    return _ansi("36", text)


# ── Command results ─────────────────────────────────────────────────


def render(data: Any, fmt: str = "pretty") -> str:
    """Serialize *data* for display: indented (``pretty``) or one line (``json``)."""
    if fmt == "json":
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(data, ensure_ascii=False, indent=2)


def emit(data: Any, fmt: str = "pretty", file: TextIO | None = None) -> None:
    """Write one command result to *file* (stdout by default)."""
    stream = file if file is not None else sys.stdout
    print(render(data, fmt), file=stream, flush=True)


# ── Status messages ─────────────────────────────────────────────────


def _status(text: str) -> None:
    print(text, file=sys.stderr)


def header(title: str) -> None:
    """Print a section header."""
    _status(f"\n{bold(title)}")


def success(msg: str) -> None:
    _status(f"  {green('✓')} {msg}")


def error(msg: str) -> None:
    _status(f"  {red('✗')} {msg}")


def info(msg: str) -> None:
    _status(f"  {msg}")


def kv(key: str, value: object, indent: int = 2) -> None:
    """Print a key-value pair."""
    pad = " " * indent
    _status(f"{pad}{dim(str(key) + ':')}  {value}")


def next_step(command: str, description: str = "") -> None:
    """Print a suggested next-step command."""
    desc = f"  {dim(description)}" if description else ""
    _status(f"    {cyan(command)}{desc}")
