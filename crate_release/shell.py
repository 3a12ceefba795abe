"""Shell utilities.

Provides simple wrappers around subprocess calls for running cargo, plus
output formatting helpers.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click

from .errors import CommandError


def run(
    *args: str, cwd: Path | None = None, check: bool = True
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary command.

    Output is not captured - it streams directly to the terminal so users
    can see build progress, etc.

    Args:
        *args: Command and arguments (e.g., "cargo", "build", "--release").
        cwd: Working directory, or None for the current one.
        check: If True (default), raise on non-zero exit.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, cwd=cwd, check=check)


def cargo(*args: str, cwd: Path | None = None) -> int:
    """Run a cargo subcommand and return its exit code.

    Raises:
        CommandError: If cargo cannot be started at all.
    """
    click.echo(f"  Running `cargo {' '.join(args)}`")
    try:
        return run("cargo", *args, cwd=cwd, check=False).returncode
    except OSError as exc:
        raise CommandError(f"could not run cargo: {exc}") from exc


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a command in terminal output.
    """
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
