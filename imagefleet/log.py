"""Build progress loggers.

This module provides the logger handed to builds and to the orchestrator:
- BuildLogger: interactive output on a rich Console with a wait spinner
- BufferedBuildLogger: private in-memory log for builds that run concurrently
- configure_logging(): route diagnostic logging through rich

Only one thread at a time may use a BuildLogger. Concurrent builds each get
their own BufferedBuildLogger so their output is never interleaved.
"""

from __future__ import annotations

import io
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.status import Status


class BuildLogger:
    """Progress logger writing to a rich Console.

    Args:
        console: Console to write to; a stderr console is created if omitted.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console if console is not None else Console(stderr=True)
        self._status: Status | None = None

    def info(self, message: str) -> None:
        """Emit an informational message."""
        self.console.print(escape(message), highlight=False)

    def warn(self, message: str) -> None:
        """Emit a warning message."""
        self.console.print(f"[yellow]{escape(message)}[/yellow]", highlight=False)

    def error(self, message: str) -> None:
        """Emit an error message."""
        self.console.print(f"[red]{escape(message)}[/red]", highlight=False)

    def done(self, message: str) -> None:
        """Emit a completion message."""
        self.console.print(f"[green]✓ {escape(message)}[/green]", highlight=False)

    def start_wait(self, message: str) -> None:
        """Start or update the wait indicator."""
        if self._status is None:
            self._status = self.console.status(escape(message))
            self._status.start()
        else:
            self._status.update(escape(message))

    def stop_wait(self) -> None:
        """Stop the wait indicator if it is running."""
        if self._status is not None:
            self._status.stop()
            self._status = None


class BufferedBuildLogger(BuildLogger):
    """BuildLogger that collects plain-text output in memory."""

    def __init__(self) -> None:
        self._buffer = io.StringIO()
        super().__init__(
            Console(
                file=self._buffer,
                force_terminal=False,
                color_system=None,
                soft_wrap=True,
            )
        )

    def start_wait(self, message: str) -> None:
        """Record the wait message; buffered logs have no spinner."""
        self.info(message)

    def stop_wait(self) -> None:
        """No-op for buffered logs."""

    def getvalue(self) -> str:
        """Return everything logged so far."""
        return self._buffer.getvalue()


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route stdlib logging through a rich handler.

    Args:
        level: Logging level name.
        console: Console the handler writes to (stderr when omitted).
    """
    handler = RichHandler(
        console=console if console is not None else Console(stderr=True),
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


__all__ = ["BufferedBuildLogger", "BuildLogger", "configure_logging"]
