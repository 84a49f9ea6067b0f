"""Console output abstraction.

Services report progress through ``ConsoleProtocol`` so they never touch
Rich directly: ``RichConsole`` is used by the CLI, ``MockConsole``
captures records in tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
    "mask_command",
]

# Flags whose following argument must never be echoed.
_SECRET_FLAGS = frozenset({"--password", "-p"})


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


def mask_command(cmd: Sequence[str]) -> str:
    """Render a command line with secret arguments replaced by ``***``."""
    parts: list[str] = []
    hide_next = False
    for arg in cmd:
        if hide_next:
            parts.append("***")
            hide_next = False
            continue
        parts.append(arg)
        hide_next = arg in _SECRET_FLAGS
    return " ".join(parts)


class ConsoleProtocol(Protocol):
    """Interface for styled console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def command(self, cmd: Sequence[str]) -> None:
        """Echo an external command (secrets masked)."""
        ...

    def detail(self, text: str) -> None:
        """Print captured tool output, indented."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Production console backed by Rich."""

    def __init__(self) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def header(self, message: str) -> None:
        from rich.rule import Rule

        self._console.print()
        self._console.print(Rule(_escape(message), style="blue bold", align="left"))

    def command(self, cmd: Sequence[str]) -> None:
        self._console.print(f"$ {mask_command(cmd)}", style="dim", markup=False)

    def detail(self, text: str) -> None:
        from rich.padding import Padding
        from rich.text import Text

        stripped = text.strip("\n")
        if stripped:
            self._console.print(Padding(Text(stripped, style="dim"), (0, 0, 0, 4)))

    def newline(self) -> None:
        self._console.print()


def _escape(text: str) -> str:
    from rich.markup import escape

    return escape(text)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that captures output for assertions in tests."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def command(self, cmd: Sequence[str]) -> None:
        self.outputs.append(OutputRecord(f"$ {mask_command(cmd)}", Style.DIM))

    def detail(self, text: str) -> None:
        stripped = text.strip("\n")
        if stripped:
            self.outputs.append(OutputRecord(stripped, Style.DIM))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
