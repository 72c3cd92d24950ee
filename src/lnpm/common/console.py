"""User-facing console reporter.

Every line starts with a coloured marker: ``i)`` for info, ``!)`` for warnings
and errors, ``$)`` for the command about to be spawned.
"""
from __future__ import annotations

import json
from typing import Sequence

from rich.console import Console
from rich.text import Text

console = Console(highlight=False, soft_wrap=True)


def _emit(marker: str, style: str, message: str) -> None:
    line = Text(marker, style=style)
    line.append(message)
    console.print(line)


def info(message: str) -> None:
    _emit("i) ", "blue", message)


def warn(message: str) -> None:
    _emit("!) ", "yellow", message)


def error(message: str) -> None:
    _emit("!) ", "red", message)


def format_shell(args: Sequence[str]) -> str:
    """Render a command line with the program bare and its arguments quoted."""
    if not args:
        return ""
    return " ".join([args[0], *(json.dumps(arg) for arg in args[1:])])


def shell(args: Sequence[str]) -> None:
    _emit("$) ", "dim", format_shell(args))
