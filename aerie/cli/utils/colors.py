"""
Aerie CLI - styled output helpers built on Click.

    success(), error(), info(), dim(), bold()
    section()   - section divider with title
    kv()        - aligned key-value pair
    tree_item() - indented tree node

click.style handles NO_COLOR / TERM=dumb terminals.
"""

from __future__ import annotations

import shutil
from typing import Optional

import click

_TERM_WIDTH: Optional[int] = None


def _tw() -> int:
    """Terminal width, cached and clamped to a sane range."""
    global _TERM_WIDTH
    if _TERM_WIDTH is None:
        _TERM_WIDTH = max(40, min(shutil.get_terminal_size((80, 24)).columns, 120))
    return _TERM_WIDTH


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red (to stderr)."""
    click.echo(click.style(message, fg="red"), err=True)


def info(message: str) -> None:
    """Print info message in cyan."""
    click.echo(click.style(message, fg="cyan"))


def dim(message: str) -> None:
    click.echo(click.style(message, dim=True))


def bold(message: str) -> str:
    """Return bold-styled text (does not echo)."""
    return click.style(message, bold=True)


_L_H = "─"    # ─
_L_BL = "└"   # └
_L_LT = "├"   # ├
_CHECK = "✓"  # ✓
_CROSS = "✗"  # ✗


def section(title: str, *, width: Optional[int] = None, fg: str = "cyan") -> None:
    """
    Print a section header with a ruled line.

        ── Realms ─────────────────────────────────
    """
    w = width or _tw()
    dashes = max(4, w - len(title) - 6)
    line = f"{_L_H}{_L_H} {title} {_L_H * dashes}"
    click.echo(click.style(line, fg=fg, bold=True))


def kv(key: str, value: object, *, key_width: int = 20, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        max_size:           10000
    """
    k = click.style(f"{key}:", fg="white")
    v = click.style(str(value), fg="cyan")
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{' ' * indent}{k}{padding}{v}")


def tree_item(text: str, *, last: bool = False, depth: int = 0, fg: str = "white") -> None:
    """
    Print an indented tree node.

        ├── userStore
        └── mailer
    """
    connector = f"{_L_BL}{_L_H}{_L_H} " if last else f"{_L_LT}{_L_H}{_L_H} "
    click.echo(
        click.style("    " * depth, dim=True)
        + click.style(connector, dim=True)
        + click.style(text, fg=fg)
    )
