"""
Data types shared across the conversion pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path

METADATA_FIELDS = ("creator", "title", "language", "subject", "date", "description")


@dataclass
class ArchiveMetadata:
    """Dublin Core metadata read from an archive's package document."""

    creator: str = ""
    title: str = ""
    language: str = ""
    subject: str = ""
    date: str = ""
    description: str = ""
    publisher: str = ""
    identifier: str = ""


@dataclass
class ChapterRef:
    """One entry of an archive's reading order."""

    id: str
    href: str  # Path of the content document inside the archive
    media_type: str
    title: str = ""  # Label from the NCX table of contents, if any


@dataclass
class Book:
    """Normalized record written as one JSON file.

    ``chapter_ids`` carries the reading order; ``chapters`` maps each id to
    its content and is not relied on for ordering.
    """

    filename: str
    creator: str = ""
    title: str = ""
    language: str = ""
    subject: str = ""
    date: str = ""
    description: str = ""
    chapter_ids: list[str] = field(default_factory=list)
    chapters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_metadata(cls, filename: str, metadata: ArchiveMetadata) -> "Book":
        """Create a book with metadata copied over and no chapters yet."""
        values = {name: getattr(metadata, name) or "" for name in METADATA_FIELDS}
        return cls(filename=filename, **values)

    @property
    def chapter_count(self) -> int:
        return len(self.chapter_ids)

    def to_dict(self) -> dict:
        """Output object, keys in their documented order."""
        data = {"filename": self.filename}
        for name in METADATA_FIELDS:
            data[name] = getattr(self, name)
        data["chapterIds"] = list(self.chapter_ids)
        data["chapters"] = {cid: self.chapters[cid] for cid in self.chapter_ids}
        return data


@dataclass
class ConversionTask:
    """Outcome of converting a single archive."""

    path: Path
    success: bool = False
    output_path: Path | None = None
    error_type: str | None = None
    error_message: str | None = None

    @property
    def settled(self) -> bool:
        return self.success or self.error_message is not None


@dataclass
class ConversionBatch:
    """A group of archives converted concurrently."""

    index: int  # 1-based
    paths: list[Path]
    tasks: list[ConversionTask] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.paths)

    @property
    def settled(self) -> bool:
        return len(self.tasks) == len(self.paths) and all(t.settled for t in self.tasks)


@dataclass
class RunSummary:
    """Aggregate result of a conversion run."""

    tasks: list[ConversionTask] = field(default_factory=list)
    groups: int = 0

    @property
    def attempted(self) -> int:
        return len(self.tasks)

    @property
    def succeeded(self) -> int:
        return sum(1 for t in self.tasks if t.success)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def failures(self) -> list[ConversionTask]:
        return [t for t in self.tasks if not t.success]

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            f"Attempted: {self.attempted}",
            f"Succeeded: {self.succeeded}",
            f"Failed: {self.failed}",
        ]

        if self.failures:
            lines.append("")
            lines.append("Failed archives:")
            for task in self.failures:
                lines.append(f"  {task.path.name}: [{task.error_type}] {task.error_message}")

        return "\n".join(lines)
