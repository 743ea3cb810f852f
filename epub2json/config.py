"""
Configuration for a conversion run.
"""

from dataclasses import dataclass
from pathlib import Path

DEFAULT_GROUP_SIZE = 10
EPUB_EXTENSION = ".epub"
JSON_EXTENSION = ".json"


@dataclass
class ConverterConfig:
    """Configuration for converting a directory of EPUB files.

    Attributes:
        input_dir: Directory containing the .epub files (not searched recursively)
        output_dir: Directory receiving one .json file per archive

        # Scheduling
        group_size: Maximum number of archives open at once. Groups run one
            after another; every archive in a group settles before the next
            group starts.

        # Discovery
        extension: Archive suffix to match, compared case-sensitively

        # Output
        show_progress: Render the terminal progress line
    """

    # Required
    input_dir: Path
    output_dir: Path

    # Scheduling
    group_size: int = DEFAULT_GROUP_SIZE

    # Discovery
    extension: str = EPUB_EXTENSION

    # Output
    show_progress: bool = True

    def __post_init__(self) -> None:
        """Validate and convert paths."""
        self.input_dir = Path(self.input_dir)
        self.output_dir = Path(self.output_dir)

        if self.group_size < 1:
            raise ValueError(f"group_size must be >= 1, got {self.group_size}")

        if not self.extension.startswith("."):
            raise ValueError(f"extension must start with '.', got {self.extension!r}")
