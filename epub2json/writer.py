"""
JSON output for assembled books.
"""

import asyncio
import json
import logging
from pathlib import Path

from .config import JSON_EXTENSION
from .errors import WriteError
from .models import Book

logger = logging.getLogger(__name__)


class JsonWriter:
    """Writes one ``<filename>.json`` per Book into an output directory.

    Existing files are overwritten. Two archives with the same basename
    write to the same file, and the last write wins.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    @staticmethod
    def output_path(book: Book, output_dir: Path) -> Path:
        """Path the book is written to, directly under output_dir."""
        return Path(output_dir) / f"{book.filename}{JSON_EXTENSION}"

    @staticmethod
    def serialize(book: Book) -> str:
        """Compact JSON text for a book."""
        return json.dumps(book.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def write_sync(self, book: Book, output_dir: Path) -> Path:
        """Serialize and write a book.

        Returns:
            Path of the written file

        Raises:
            WriteError: if the file cannot be created or written
        """
        output_file = self.output_path(book, output_dir)
        try:
            output_file.write_text(self.serialize(book), encoding=self.encoding)
        except (OSError, UnicodeEncodeError) as e:
            raise WriteError(output_file, str(e)) from e

        logger.info(f"Output {output_file}")
        return output_file

    async def write(self, book: Book, output_dir: Path) -> Path:
        """Async wrapper around write_sync()."""
        return await asyncio.to_thread(self.write_sync, book, output_dir)
