"""Tests for assembler module."""

import asyncio
from pathlib import Path

import pytest
from epub2json.assembler import BookAssembler, assemble_book, gather_all_or_fail
from epub2json.errors import ArchiveParseError, ChapterReadError
from epub2json.models import ArchiveMetadata


class FakeArchive:
    """Archive stand-in whose chapters finish after configurable delays."""

    def __init__(self, chapters: dict[str, str], delays: dict[str, float] | None = None, fail: set | None = None):
        self.metadata = ArchiveMetadata(title="Fake", creator="Someone")
        self.reading_order = list(chapters)
        self.chapters = chapters
        self.delays = delays or {}
        self.fail = fail or set()
        self.completed: list[str] = []
        self.closed = False

    async def read_chapter(self, chapter_id: str) -> str:
        await asyncio.sleep(self.delays.get(chapter_id, 0))
        if chapter_id in self.fail:
            raise ChapterReadError(chapter_id, "unreadable")
        self.completed.append(chapter_id)
        return self.chapters[chapter_id]

    def close(self) -> None:
        self.closed = True


def opener_for(archive):
    async def open_archive(path):
        return archive

    return open_archive


class TestGatherAllOrFail:
    """Tests for the join-all helper."""

    def test_results_in_input_order(self):
        """Results should follow input order, not completion order."""

        async def value(v, delay):
            await asyncio.sleep(delay)
            return v

        result = asyncio.run(gather_all_or_fail([value("a", 0.03), value("b", 0.0), value("c", 0.01)]))
        assert result == ["a", "b", "c"]

    def test_first_failure_cancels_rest(self):
        """A failure should cancel pending work and propagate."""
        finished = []

        async def slow():
            await asyncio.sleep(0.5)
            finished.append("slow")

        async def boom():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            asyncio.run(gather_all_or_fail([slow(), boom()]))
        assert finished == []

    def test_empty(self):
        """No awaitables should give an empty list."""
        assert asyncio.run(gather_all_or_fail([])) == []


class TestBookAssembler:
    """Tests for assembling books."""

    def test_assemble_real_archive(self, make_epub):
        """A valid archive should produce a fully populated book."""
        book = asyncio.run(assemble_book(make_epub("moby-dick.epub")))
        assert book.filename == "moby-dick"
        assert book.title == "Moby Dick"
        assert book.creator == "Herman Melville"
        assert book.chapter_ids == ["c1", "c2", "c3"]
        assert "Call me Ishmael." in book.chapters["c1"]

    def test_filename_keeps_inner_dots(self, make_epub):
        """Only the final extension should be dropped from the filename."""
        book = asyncio.run(assemble_book(make_epub("vol.1.epub")))
        assert book.filename == "vol.1"

    def test_order_preserved_despite_completion_order(self):
        """Chapter ids should follow reading order even if reads finish reversed."""
        archive = FakeArchive(
            {"c1": "one", "c2": "two", "c3": "three"},
            delays={"c1": 0.03, "c2": 0.02, "c3": 0.0},
        )
        book = asyncio.run(BookAssembler(opener_for(archive)).assemble(Path("fake.epub")))
        assert archive.completed == ["c3", "c2", "c1"]
        assert book.chapter_ids == ["c1", "c2", "c3"]
        assert list(book.to_dict()["chapters"]) == ["c1", "c2", "c3"]
        assert book.chapters == {"c1": "one", "c2": "two", "c3": "three"}

    def test_metadata_copied(self):
        """Metadata should be copied and missing fields left empty."""
        archive = FakeArchive({"c1": "one"})
        book = asyncio.run(BookAssembler(opener_for(archive)).assemble(Path("fake.epub")))
        assert book.title == "Fake"
        assert book.creator == "Someone"
        assert book.language == ""
        assert book.date == ""

    def test_chapter_failure_fails_book(self):
        """One failing chapter should fail the whole book."""
        archive = FakeArchive({"c1": "one", "c2": "two"}, fail={"c2"})
        with pytest.raises(ChapterReadError, match="c2"):
            asyncio.run(BookAssembler(opener_for(archive)).assemble(Path("fake.epub")))
        assert archive.closed

    def test_unexpected_chapter_error_wrapped(self):
        """Non-taxonomy chapter errors should become ChapterReadError."""

        class Exploding(FakeArchive):
            async def read_chapter(self, chapter_id):
                raise KeyError(chapter_id)

        archive = Exploding({"c1": "one"})
        with pytest.raises(ChapterReadError):
            asyncio.run(BookAssembler(opener_for(archive)).assemble(Path("fake.epub")))

    def test_open_failure(self, make_corrupt):
        """An unreadable archive should raise ArchiveParseError."""
        with pytest.raises(ArchiveParseError):
            asyncio.run(assemble_book(make_corrupt()))

    def test_unexpected_open_error_wrapped(self):
        """Opener errors outside the taxonomy should become ArchiveParseError."""

        async def open_archive(path):
            raise RuntimeError("disk on fire")

        with pytest.raises(ArchiveParseError, match="disk on fire"):
            asyncio.run(BookAssembler(open_archive).assemble(Path("fake.epub")))

    def test_archive_closed_on_success(self):
        """The archive should be closed after assembly."""
        archive = FakeArchive({"c1": "one"})
        asyncio.run(BookAssembler(opener_for(archive)).assemble(Path("fake.epub")))
        assert archive.closed

    def test_missing_chapter_file_fails(self, make_epub):
        """A chapter missing from the zip should fail the book."""
        path = make_epub(skip_files=("OEBPS/text/c3.xhtml",))
        with pytest.raises(ChapterReadError):
            asyncio.run(assemble_book(path))
