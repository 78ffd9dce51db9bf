"""Operator-facing output for a run.

The loop talks to a Reporter passed in at construction. ConsoleReporter
prints prefixed lines and mirrors them to the storyloop.report logger;
RecordingReporter keeps them in memory.
"""

import logging
from typing import Protocol

report_logger = logging.getLogger("storyloop.report")


class Reporter(Protocol):
    def header(self, title: str) -> None: ...
    def info(self, message: str) -> None: ...
    def success(self, message: str) -> None: ...
    def warn(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...
    def debug(self, message: str) -> None: ...
    def newline(self) -> None: ...


class ConsoleReporter:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def _emit(self, prefix: str, message: str, level: int):
        print(f"{prefix} {message}")
        report_logger.log(level, message)

    def header(self, title: str):
        print()
        print("=" * 60)
        print(f"  {title}")
        print("=" * 60)
        report_logger.info(title)

    def info(self, message: str):
        self._emit("[INFO]", message, logging.INFO)

    def success(self, message: str):
        self._emit("[OK]", message, logging.INFO)

    def warn(self, message: str):
        self._emit("[WARN]", message, logging.WARNING)

    def error(self, message: str):
        self._emit("[ERROR]", message, logging.ERROR)

    def debug(self, message: str):
        if self.verbose:
            self._emit("[DEBUG]", message, logging.DEBUG)

    def newline(self):
        print()


class RecordingReporter:
    """Collects (level, message) pairs."""

    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def header(self, title: str):
        self.records.append(("header", title))

    def info(self, message: str):
        self.records.append(("info", message))

    def success(self, message: str):
        self.records.append(("success", message))

    def warn(self, message: str):
        self.records.append(("warn", message))

    def error(self, message: str):
        self.records.append(("error", message))

    def debug(self, message: str):
        self.records.append(("debug", message))

    def newline(self):
        pass

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.records if lvl == level]
