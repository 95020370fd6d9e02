"""Tests for log module."""

import io
import logging

from rich.console import Console

from imagefleet.log import BufferedBuildLogger, BuildLogger, configure_logging


def make_console() -> tuple[Console, io.StringIO]:
    """Create a plain-text console writing to a buffer."""
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, color_system=None, width=200)
    return console, buffer


class TestBuildLogger:
    """Tests for BuildLogger."""

    def test_messages(self) -> None:
        """Should write every message kind to the console."""
        console, buffer = make_console()
        log = BuildLogger(console)

        log.info("Skipping building image legacy")
        log.warn("careful")
        log.error("broken")
        log.done("Done building image api (repo/api:abc1234)")

        output = buffer.getvalue()
        assert "Skipping building image legacy" in output
        assert "careful" in output
        assert "broken" in output
        assert "✓ Done building image api (repo/api:abc1234)" in output

    def test_markup_is_escaped(self) -> None:
        """Square brackets in messages should be printed literally."""
        console, buffer = make_console()
        BuildLogger(console).info("RUN [ -f /app ] && echo [bold]ok")
        assert "RUN [ -f /app ] && echo [bold]ok" in buffer.getvalue()

    def test_wait_indicator(self) -> None:
        """start_wait should start and update a single indicator."""
        console, _ = make_console()
        log = BuildLogger(console)

        assert log._status is None
        log.start_wait("Building 3 images...")
        first = log._status
        log.start_wait("Building 2 images...")
        assert log._status is first

        log.stop_wait()
        assert log._status is None

    def test_stop_wait_without_start(self) -> None:
        """stop_wait should be safe to call when not waiting."""
        console, _ = make_console()
        BuildLogger(console).stop_wait()


class TestBufferedBuildLogger:
    """Tests for BufferedBuildLogger."""

    def test_collects_output(self) -> None:
        """Should keep all messages in memory."""
        log = BufferedBuildLogger()
        log.info("step 1/3 : FROM alpine")
        log.error("failed to solve")

        output = log.getvalue()
        assert "step 1/3 : FROM alpine" in output
        assert "failed to solve" in output

    def test_wait_is_logged(self) -> None:
        """Wait messages should be recorded as plain lines."""
        log = BufferedBuildLogger()
        log.start_wait("waiting for registry")
        log.stop_wait()

        assert "waiting for registry" in log.getvalue()
        assert log._status is None

    def test_plain_text(self) -> None:
        """Buffered output should not contain ANSI escapes."""
        log = BufferedBuildLogger()
        log.done("ok")
        assert "\x1b[" not in log.getvalue()

    def test_separate_buffers(self) -> None:
        """Each buffered logger should have its own output."""
        first = BufferedBuildLogger()
        second = BufferedBuildLogger()
        first.info("only first")
        assert "only first" not in second.getvalue()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level_and_handler(self) -> None:
        """Should install a rich handler at the requested level."""
        console, buffer = make_console()

        configure_logging("DEBUG", console)
        logging.getLogger("imagefleet.test").debug("fingerprint computed")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert "fingerprint computed" in buffer.getvalue()

        configure_logging("WARNING", console)
        assert logging.getLogger().level == logging.WARNING
