"""Leveled console output used in place of a logging framework."""
import sys
from typing import TextIO


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'info'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(
        self,
        level: str = "info",
        dry_run: bool = False,
        *,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ):
        normalized = (level or "info").strip().lower()
        if normalized == "verbose":
            normalized = "debug"
        if normalized == "warning":
            normalized = "warn"
        if normalized not in self.LEVELS:
            raise ValueError(
                f"Unknown log level '{level}'. Choose from: {', '.join(self.LEVELS)}"
            )
        self.level_name = normalized
        self.level = self.LEVELS[normalized]
        self.dry_run = dry_run
        self._stream = stream
        self._err_stream = err_stream

    @property
    def out(self) -> TextIO:
        return self._stream or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err_stream or sys.stderr

    def enabled(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def info(self, message: str) -> None:
        if self.enabled("info"):
            print(f"[INFO] {message}", file=self.out)

    def notice(self, message: str) -> None:
        if self.enabled("info"):
            print(f"[NOTICE] {message}", file=self.out)

    def success(self, message: str) -> None:
        if self.enabled("info"):
            print(f"[OK] {message}", file=self.out)

    def warn(self, message: str) -> None:
        if self.enabled("warn"):
            print(f"[WARN] {message}", file=self.err)

    def error(self, message: str) -> None:
        if self.enabled("error"):
            print(f"[ERROR] {message}", file=self.err)

    def debug(self, message: str) -> None:
        if self.enabled("debug"):
            print(f"[DEBUG] {message}", file=self.out)

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}", file=self.out)
