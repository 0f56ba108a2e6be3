"""Allow-listed execution of template declared commands."""
from __future__ import annotations

from pathlib import Path
from typing import FrozenSet

from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from .console import Console
from .errors import CommandFailed, CommandNotAllowed

ALLOWED_COMMANDS: FrozenSet[str] = frozenset({"npm", "cnpm", "yarn", "pnpm"})
"""Package-manager executables a template may ask the host to run."""


def split_command(command_line: str) -> list[str]:
    """Split ``command_line`` on whitespace; quoting is not interpreted."""

    return command_line.split()


def check_command(program: str, allowed: FrozenSet[str] = ALLOWED_COMMANDS) -> str:
    if program not in allowed:
        raise CommandNotAllowed(f"Command is not allowed: {program!r}. Allowed: {', '.join(sorted(allowed))}")
    return program


class CommandGuard:
    """Runs a single allow-listed program to completion.

    The command line is never passed to a shell; the program name is checked
    against ``allowed`` before an argument vector is built.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        console: Console | None = None,
        allowed: FrozenSet[str] = ALLOWED_COMMANDS,
    ) -> None:
        self._runner = runner or SubprocessCommandRunner()
        self._console = console or Console("none")
        self._allowed = frozenset(allowed)

    @property
    def allowed(self) -> FrozenSet[str]:
        return self._allowed

    def run(
        self,
        command_line: str,
        *,
        cwd: Path | None = None,
        error_message: str | None = None,
    ) -> int:
        parts = split_command(command_line or "")
        if not parts:
            raise CommandNotAllowed("Empty command")
        program = check_command(parts[0], self._allowed)
        argv = [program, *parts[1:]]

        self._console.debug(f"exec {self._runner.format_command(argv)} (cwd={cwd})")
        try:
            result = self._runner.run(argv, cwd=cwd, check=True, stream=True, note=error_message)
        except CommandError as exc:
            message = error_message or f"Command failed: {command_line}"
            raise CommandFailed(message, returncode=exc.result.returncode) from exc
        return result.returncode


__all__ = ["ALLOWED_COMMANDS", "CommandGuard", "check_command", "split_command"]
