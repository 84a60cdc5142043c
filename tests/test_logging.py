"""Tests for the in-memory shell log.

Entries carry a level, a message, and the component that produced them
(``boot``, ``fs``, ``loader``, ``shell``).
"""

import pytest

from py_sh.bootloader import Bootloader
from py_sh.config import ShellConfig
from py_sh.logging import DEFAULT_CAPACITY, LogEntry, Logger, LogLevel, LogSource


class TestLogLevel:
    """Verify log level ordering."""

    def test_levels_are_ordered(self) -> None:
        """Levels should compare by severity."""
        assert LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARNING < LogLevel.ERROR

    def test_parse_ignores_case(self) -> None:
        """Level names are looked up case-insensitively."""
        assert LogLevel.parse("warning") is LogLevel.WARNING

    def test_parse_unknown(self) -> None:
        """An unknown name is a ValueError."""
        with pytest.raises(ValueError, match="unknown level"):
            LogLevel.parse("LOUD")


class TestLogEntry:
    """Verify log entry fields and formatting."""

    def test_entry_has_fields(self) -> None:
        """An entry keeps what it was given."""
        entry = LogEntry(level=LogLevel.INFO, message="hello", source="boot")
        assert entry.level is LogLevel.INFO
        assert entry.message == "hello"
        assert entry.source == "boot"

    def test_entry_str(self) -> None:
        """str() gives ``[LEVEL] source: message``."""
        entry = LogEntry(level=LogLevel.WARNING, message="no unit", source="loader")
        assert str(entry) == "[WARNING] loader: no unit"

    def test_source_enum_renders_as_text(self) -> None:
        """A LogSource prints as its value."""
        entry = LogEntry(level=LogLevel.INFO, message="up", source=LogSource.BOOT)
        assert str(entry) == "[INFO] boot: up"

    def test_timestamp_ignored_in_equality(self) -> None:
        """Two entries with the same content are equal."""
        first = LogEntry(level=LogLevel.INFO, message="x", source="fs", timestamp=1)
        assert first == LogEntry(level=LogLevel.INFO, message="x", source="fs", timestamp=2)


class TestLogger:
    """Verify the Logger buffer."""

    def test_log_stores_entries(self) -> None:
        """Logging appends an entry."""
        logger = Logger()
        logger.log(LogLevel.INFO, "started", source="boot")
        assert len(logger.entries) == 1

    def test_entries_are_ordered(self) -> None:
        """Entries come back in the order they were logged."""
        logger = Logger()
        logger.log(LogLevel.INFO, "first", source="boot")
        logger.log(LogLevel.INFO, "second", source="boot")
        assert [e.message for e in logger.entries] == ["first", "second"]

    def test_entries_is_a_copy(self) -> None:
        """Changing the returned list does not change the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "x", source="boot")
        logger.entries.clear()
        assert len(logger.entries) == 1

    def test_filter_by_level(self) -> None:
        """min_level drops less severe entries."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "noise", source="shell")
        logger.log(LogLevel.ERROR, "bad", source="shell")
        assert [e.message for e in logger.filter(min_level=LogLevel.WARNING)] == ["bad"]

    def test_filter_by_source(self) -> None:
        """source keeps only one component's entries."""
        logger = Logger()
        logger.log(LogLevel.INFO, "a", source="boot")
        logger.log(LogLevel.INFO, "b", source="fs")
        assert [e.message for e in logger.filter(source="fs")] == ["b"]

    def test_clear(self) -> None:
        """clear() empties the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "x", source="boot")
        logger.clear()
        assert logger.entries == []

    def test_ring_buffer_drops_oldest(self) -> None:
        """A full buffer forgets its oldest entry."""
        logger = Logger(capacity=2)
        for message in ("a", "b", "c"):
            logger.log(LogLevel.INFO, message, source="shell")
        assert [e.message for e in logger.entries] == ["b", "c"]
        assert len(logger) == 2

    def test_default_capacity(self) -> None:
        """The default buffer size is DEFAULT_CAPACITY."""
        assert Logger().capacity == DEFAULT_CAPACITY


class TestShellLogging:
    """Verify what the shell writes to its log."""

    def test_boot_is_logged(self) -> None:
        """Booting logs INFO entries from ``boot``."""
        logger = Logger()
        Bootloader(ShellConfig(), logger=logger).boot()
        messages = [e.message for e in logger.filter(source="boot")]
        assert any(m.startswith("Shell ready") for m in messages)

    def test_missing_command_is_logged(self) -> None:
        """A failed lookup logs a warning from ``loader``."""
        shell = Bootloader(ShellConfig()).boot()
        shell.run("nope")
        warnings = shell.logger.filter(min_level=LogLevel.WARNING, source="loader")
        assert "nope" in warnings[-1].message
