"""Process execution backends shared by the command guard and the custom installer."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Sequence
import shlex
import subprocess

# Exit status reported when the program itself cannot be started.
EXIT_NOT_FOUND = 127


@dataclass
class CommandResult:
    """Exit status of one program, plus its output when it was captured."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """A checked program finished with a non-zero exit status."""

    def __init__(self, result: CommandResult):
        lines = [f"{format_command(result.command)} exited with status {result.returncode}"]
        if result.streamed:
            lines.append("(output was shown on the terminal)")
        elif result.stderr.strip():
            lines.append(result.stderr.strip())
        super().__init__("\n".join(lines))
        self.result = result


def format_command(command: Sequence[str]) -> str:
    return shlex.join(str(part) for part in command)


class CommandRunner:
    """Runs an argument vector to completion; never through a shell.

    Subclasses implement :meth:`_execute`. ``stream`` means the child shares
    this process' standard streams; otherwise its output is captured. With
    ``check`` set a non-zero status raises :class:`CommandError`.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = True,
    ) -> CommandResult:
        argv = [str(part) for part in command]
        result = self._execute(argv, cwd=cwd, note=note, stream=stream)
        if check and not result.ok:
            raise CommandError(result)
        return result

    def _execute(self, argv: List[str], *, cwd: Path | None, note: str | None, stream: bool) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)


class SubprocessCommandRunner(CommandRunner):
    def _execute(self, argv: List[str], *, cwd: Path | None, note: str | None, stream: bool) -> CommandResult:
        try:
            process = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                capture_output=not stream,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            return CommandResult(argv, EXIT_NOT_FOUND, stderr=str(exc))
        return CommandResult(
            argv,
            process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=stream,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None = None
    note: str | None = None
    stream: bool = True


@dataclass
class RecordingCommandRunner(CommandRunner):
    """Keeps commands instead of executing them (``--dry-run`` and tests).

    Every recorded command "exits" with ``returncode``.
    """

    returncode: int = 0
    commands: List[RecordedCommand] = field(default_factory=list)

    def _execute(self, argv: List[str], *, cwd: Path | None, note: str | None, stream: bool) -> CommandResult:
        self.commands.append(RecordedCommand(argv, str(cwd) if cwd else None, note, stream))
        return CommandResult(argv, self.returncode, streamed=stream)

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterator[str]:
        for record in self.commands:
            words = ["[dry-run]"]
            if record.note:
                words.append(record.note)
            cwd = record.cwd or (str(workspace) if workspace else None)
            if cwd:
                words.append(f"(cwd={cwd})")
            words.append(self.format_command(record.command))
            yield " ".join(words)


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "EXIT_NOT_FOUND",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
