"""
Build a Book record from a single EPUB archive.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from .archive import EpubArchive
from .errors import ArchiveParseError, ChapterReadError
from .models import Book

logger = logging.getLogger(__name__)

ArchiveOpener = Callable[[Path], Awaitable[EpubArchive]]


async def gather_all_or_fail(awaitables: list[Awaitable]) -> list:
    """Await every awaitable, returning results in input order.

    The first exception cancels the ones still pending and is re-raised, so
    callers never see a partial result list.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class BookAssembler:
    """Drives an archive reader to produce one Book per archive.

    Usage:
        assembler = BookAssembler()
        book = await assembler.assemble(Path("books/moby-dick.epub"))
    """

    def __init__(self, open_archive: ArchiveOpener = EpubArchive.open) -> None:
        """Initialize the assembler.

        Args:
            open_archive: Coroutine function returning an opened archive handle
                with ``metadata``, ``reading_order``, ``read_chapter()`` and
                ``close()``
        """
        self.open_archive = open_archive

    async def assemble(self, archive_path: Path) -> Book:
        """Read metadata and every chapter of an archive.

        Args:
            archive_path: Path to the .epub file

        Returns:
            Fully populated Book

        Raises:
            ArchiveParseError: archive could not be opened or parsed
            ChapterReadError: any chapter in the reading order failed
        """
        archive_path = Path(archive_path)

        try:
            archive = await self.open_archive(archive_path)
        except ArchiveParseError:
            raise
        except Exception as e:
            raise ArchiveParseError(archive_path, str(e)) from e

        try:
            book = Book.from_metadata(archive_path.stem, archive.metadata)
            chapter_ids = list(archive.reading_order)

            contents = await gather_all_or_fail(
                [self._read_chapter(archive, archive_path, cid) for cid in chapter_ids]
            )

            book.chapter_ids = chapter_ids
            book.chapters = dict(zip(chapter_ids, contents))
        finally:
            archive.close()

        logger.debug(f"Assembled {archive_path.name}: {book.chapter_count} chapters")
        return book

    async def _read_chapter(self, archive: EpubArchive, archive_path: Path, chapter_id: str) -> str:
        try:
            return await archive.read_chapter(chapter_id)
        except ChapterReadError:
            raise
        except Exception as e:
            raise ChapterReadError(chapter_id, str(e), archive_path) from e


async def assemble_book(archive_path: Path) -> Book:
    """Assemble a Book using the default EPUB reader."""
    return await BookAssembler().assemble(archive_path)
