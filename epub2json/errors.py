"""
Exception types raised during conversion.

Only ValidationError is fatal to a run. The others are raised for a single
archive and contained by the scheduler.
"""

from pathlib import Path


class ConversionError(Exception):
    """Base class for all conversion errors."""


class ValidationError(ConversionError):
    """Input or output directory is missing, not a directory, or not accessible."""


class ArchiveParseError(ConversionError):
    """An archive could not be opened or its package structure is unreadable."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Unable to parse {self.path.name}: {reason}")


class ChapterReadError(ConversionError):
    """A chapter listed in the reading order could not be resolved."""

    def __init__(self, chapter_id: str, reason: str, path: Path | str | None = None) -> None:
        self.chapter_id = chapter_id
        self.reason = reason
        self.path = Path(path) if path is not None else None
        where = f" in {self.path.name}" if self.path is not None else ""
        super().__init__(f"Unable to read chapter '{chapter_id}'{where}: {reason}")


class WriteError(ConversionError):
    """A JSON output file could not be created or written."""

    def __init__(self, output_path: Path | str, reason: str) -> None:
        self.output_path = Path(output_path)
        self.reason = reason
        super().__init__(f"Unable to write to file {self.output_path}: {reason}")
