"""
Sequent CLI - styled terminal output.

Every helper writes through ``click.echo``/``click.style``, so NO_COLOR,
TERM=dumb and non-tty output (CliRunner, pipes) are handled by Click.

    Messages:   success(), error(), warning(), info(), dim(), bold()
    Layout:     section(), kv(), step(), table()
"""

from __future__ import annotations

import shutil
from typing import Optional, Sequence

import click

_L_H = "\u2500"      # ─
_CHECK = "\u2713"    # ✓
_CROSS = "\u2717"    # ✗

_MIN_WIDTH = 40
_MAX_WIDTH = 120

_width_cache: Optional[int] = None


def _tw() -> int:
    """Terminal width, clamped and computed once per process."""
    global _width_cache
    if _width_cache is None:
        columns = shutil.get_terminal_size((80, 24)).columns
        _width_cache = max(_MIN_WIDTH, min(columns, _MAX_WIDTH))
    return _width_cache


def _echo(message: str, **style) -> None:
    click.echo(click.style(message, **style))


# ═══════════════════════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════════════════════


def success(message: str) -> None:
    _echo(message, fg="green")


def error(message: str) -> None:
    _echo(message, fg="red")


def warning(message: str) -> None:
    _echo(message, fg="yellow")


def info(message: str) -> None:
    _echo(message, fg="cyan")


def dim(message: str) -> None:
    _echo(message, dim=True)


def bold(message: str) -> str:
    """Bold text for embedding in another message; nothing is printed."""
    return click.style(message, bold=True)


# ═══════════════════════════════════════════════════════════════════════════
# Layout
# ═══════════════════════════════════════════════════════════════════════════


def section(title: str, *, width: Optional[int] = None, fg: str = "cyan") -> None:
    """
    Section heading padded with a rule to the terminal width::

        ── Execution order (4) ─────────────────────
    """
    fill = max(4, (width or _tw()) - len(title) - 6)
    _echo(f"{_L_H * 2} {title} {_L_H * fill}", fg=fg, bold=True)


def kv(key: str, value: str, *, key_width: int = 20, indent: int = 2) -> None:
    """
    Aligned ``key: value`` line::

        Components:         4
        Backend:            memory
    """
    label = f"{key}:".ljust(max(key_width, len(key) + 2))
    click.echo(" " * indent + label + click.style(str(value), fg="cyan"))


def step(number: int, text: str, *, fg: str = "cyan") -> None:
    """Numbered line, ``[3] app.seeders.PackageSeeder``."""
    marker = click.style(f"[{number}]", fg=fg, bold=True)
    click.echo(f"  {marker} {text}")


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    indent: int = 2,
) -> None:
    """
    Left-aligned columns under a ruled header::

        Component                 Priority  After          Before
        ───────────────────────── ───────── ────────────── ──────
        app.seeders.Feature       10
        app.seeders.Package       50        Feature
    """
    columns = list(zip(headers, *rows)) if rows else [(h,) for h in headers]
    widths = [max(len(str(cell)) for cell in column) + 2 for column in columns]
    prefix = " " * indent

    def render(cells: Sequence[str]) -> str:
        return "".join(str(cell).ljust(w) for cell, w in zip(cells, widths)).rstrip()

    click.echo(prefix + click.style(render(headers), fg="cyan", bold=True))
    click.echo(prefix + click.style(" ".join(_L_H * (w - 1) for w in widths), dim=True))
    for row in rows:
        click.echo(prefix + render(row))
