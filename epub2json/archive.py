"""
Read-only access to EPUB archives.

An EPUB is a zip file holding a ``mimetype`` marker, a container document
(``META-INF/container.xml``) that points at the OPF package document, and
the content documents the package lists. The package document supplies
the Dublin Core metadata, the manifest (id -> file) and the spine (reading
order). An optional NCX document supplies chapter titles.
"""

import asyncio
import logging
import posixpath
import zipfile
import zlib
from pathlib import Path
from urllib.parse import unquote
from xml.etree import ElementTree as ET

from bs4 import BeautifulSoup

from .errors import ArchiveParseError, ChapterReadError
from .models import ArchiveMetadata, ChapterRef

logger = logging.getLogger(__name__)

EPUB_MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
OPF_MEDIA_TYPE = "application/oebps-package+xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
HTML_MEDIA_TYPES = ("application/xhtml+xml", "text/html", "application/html")
SVG_MEDIA_TYPE = "image/svg+xml"

# Failures raised by zipfile when a member cannot be extracted
ZIP_READ_ERRORS = (OSError, zipfile.BadZipFile, zlib.error, RuntimeError, NotImplementedError)

# Dublin Core elements copied into ArchiveMetadata
DC_FIELDS = ("creator", "title", "language", "subject", "date", "description", "publisher", "identifier")


def _local(tag: str) -> str:
    """Strip the namespace from an ElementTree tag."""
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _first(element: ET.Element, name: str) -> ET.Element | None:
    for child in element.iter():
        if _local(child.tag) == name:
            return child
    return None


def _text(element: ET.Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _resolve(base_dir: str, href: str) -> str:
    """Resolve an href from a package document to an archive member name."""
    href = unquote(href.split("#", 1)[0])
    return posixpath.normpath(posixpath.join(base_dir, href)) if base_dir else posixpath.normpath(href)


def _strip_active(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove script and style elements and on* event handler attributes."""
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in [a for a in tag.attrs if a.lower().startswith("on")]:
            del tag[attr]
    return soup


class EpubArchive:
    """One opened EPUB file.

    Usage:
        archive = await EpubArchive.open(path)
        try:
            for chapter_id in archive.reading_order:
                text = await archive.read_chapter(chapter_id)
        finally:
            archive.close()

    The synchronous ``parse()`` / ``get_chapter()`` pair does the work; the
    async methods run them off the event loop.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.metadata = ArchiveMetadata()
        self.manifest: dict[str, ChapterRef] = {}
        self.flow: list[ChapterRef] = []
        self.toc: dict[str, str] = {}  # archive member name -> NCX label
        self.opf_path = ""
        self._zip: zipfile.ZipFile | None = None

    @classmethod
    async def open(cls, path: Path | str) -> "EpubArchive":
        """Open and parse an archive.

        Raises:
            ArchiveParseError: if the archive or its package document is unreadable
        """
        archive = cls(path)
        await asyncio.to_thread(archive.parse)
        return archive

    @property
    def reading_order(self) -> list[str]:
        """Chapter ids in spine order."""
        return [ref.id for ref in self.flow]

    def parse(self) -> None:
        """Open the zip and read container, package and NCX documents."""
        try:
            self._zip = zipfile.ZipFile(self.path)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveParseError(self.path, f"not a readable zip archive ({e})") from e

        try:
            self._check_mimetype()
            self.opf_path = self._find_rootfile()
            package = self._read_xml(self.opf_path)
            self._parse_package(package)
        except ArchiveParseError:
            self.close()
            raise
        except (ET.ParseError, KeyError, UnicodeDecodeError, *ZIP_READ_ERRORS) as e:
            self.close()
            raise ArchiveParseError(self.path, str(e)) from e

        logger.debug(
            f"Parsed {self.path.name}: {len(self.manifest)} manifest items, "
            f"{len(self.flow)} chapters in reading order "
            f"(publisher={self.metadata.publisher!r}, identifier={self.metadata.identifier!r})"
        )

    def _member(self, name: str) -> bytes:
        if self._zip is None:
            raise ArchiveParseError(self.path, "archive is not open")
        return self._zip.read(name)

    def _has_member(self, name: str) -> bool:
        return self._zip is not None and name in self._zip.NameToInfo

    def _read_xml(self, name: str) -> ET.Element:
        if not self._has_member(name):
            raise ArchiveParseError(self.path, f"missing {name}")
        return ET.fromstring(self._member(name))

    def _check_mimetype(self) -> None:
        if not self._has_member("mimetype"):
            raise ArchiveParseError(self.path, "no mimetype file in archive")
        mimetype = self._member("mimetype").decode("ascii", errors="replace").strip()
        if mimetype != EPUB_MIMETYPE:
            raise ArchiveParseError(self.path, f"unsupported mime type {mimetype!r}")

    def _find_rootfile(self) -> str:
        """Return the archive path of the OPF package document."""
        if not self._has_member(CONTAINER_PATH):
            raise ArchiveParseError(self.path, "no container file in archive")

        container = self._read_xml(CONTAINER_PATH)
        rootfiles = [el for el in container.iter() if _local(el.tag) == "rootfile"]
        if not rootfiles:
            raise ArchiveParseError(self.path, "no rootfiles found in container")

        for rootfile in rootfiles:
            if rootfile.get("media-type") == OPF_MEDIA_TYPE and rootfile.get("full-path"):
                return rootfile.get("full-path")

        full_path = rootfiles[0].get("full-path")
        if not full_path:
            raise ArchiveParseError(self.path, "rootfile has no full-path")
        return full_path

    def _parse_package(self, package: ET.Element) -> None:
        if _local(package.tag) != "package":
            raise ArchiveParseError(self.path, f"{self.opf_path} is not a package document")

        base_dir = posixpath.dirname(self.opf_path)

        metadata = _first(package, "metadata")
        if metadata is not None:
            self._parse_metadata(metadata)

        manifest = _first(package, "manifest")
        if manifest is None:
            raise ArchiveParseError(self.path, "package has no manifest")
        for item in _children(manifest, "item"):
            item_id = item.get("id")
            href = item.get("href")
            if not item_id or not href:
                continue
            self.manifest[item_id] = ChapterRef(
                id=item_id,
                href=_resolve(base_dir, href),
                media_type=(item.get("media-type") or "").lower(),
            )

        spine = _first(package, "spine")
        if spine is None:
            raise ArchiveParseError(self.path, "package has no spine")

        ncx_ref = self.manifest.get(spine.get("toc") or "")
        if ncx_ref is None:
            ncx_ref = next((ref for ref in self.manifest.values() if ref.media_type == NCX_MEDIA_TYPE), None)
        if ncx_ref is not None:
            self._parse_ncx(ncx_ref.href)

        for itemref in _children(spine, "itemref"):
            ref = self.manifest.get(itemref.get("idref") or "")
            if ref is None:
                logger.debug(f"{self.path.name}: spine item {itemref.get('idref')!r} not in manifest, skipped")
                continue
            self.flow.append(ChapterRef(
                id=ref.id,
                href=ref.href,
                media_type=ref.media_type,
                title=self.toc.get(ref.href, ""),
            ))

    def _parse_metadata(self, metadata: ET.Element) -> None:
        for element in metadata.iter():
            name = _local(element.tag)
            if name in DC_FIELDS and not getattr(self.metadata, name):
                setattr(self.metadata, name, _text(element))

    def _parse_ncx(self, ncx_path: str) -> None:
        """Map content documents to their NCX labels. A broken NCX is ignored."""
        try:
            ncx = self._read_xml(ncx_path)
        except (ArchiveParseError, ET.ParseError, KeyError, *ZIP_READ_ERRORS) as e:
            logger.warning(f"{self.path.name}: ignoring unreadable table of contents {ncx_path}: {e}")
            return

        base_dir = posixpath.dirname(ncx_path)
        for nav_point in ncx.iter():
            if _local(nav_point.tag) != "navPoint":
                continue
            label = _first(nav_point, "navLabel")
            content = next((c for c in nav_point if _local(c.tag) == "content"), None)
            if content is None or not content.get("src"):
                continue
            target = _resolve(base_dir, content.get("src"))
            # First label wins
            self.toc.setdefault(target, _text(label))

    def read_chapter_raw(self, chapter_id: str) -> bytes:
        """Return the undecoded content document for a manifest id.

        Raises:
            ChapterReadError: if the id is unknown or the file is missing
        """
        ref = self.manifest.get(chapter_id)
        if ref is None:
            raise ChapterReadError(chapter_id, "not in manifest", self.path)
        if not self._has_member(ref.href):
            raise ChapterReadError(chapter_id, f"file not found: {ref.href}", self.path)
        try:
            return self._member(ref.href)
        except (ArchiveParseError, *ZIP_READ_ERRORS) as e:
            raise ChapterReadError(chapter_id, str(e), self.path) from e

    def get_chapter(self, chapter_id: str) -> str:
        """Return the body markup of a chapter.

        Scripts, styles and inline event handlers are removed. The markup is
        otherwise returned as found. SVG content documents are returned as
        their <svg> element.

        Raises:
            ChapterReadError: if the chapter is unknown, not HTML, or unreadable
        """
        ref = self.manifest.get(chapter_id)
        if ref is not None and ref.media_type not in (*HTML_MEDIA_TYPES, SVG_MEDIA_TYPE):
            raise ChapterReadError(chapter_id, f"invalid mime type for chapter: {ref.media_type}", self.path)

        raw = self.read_chapter_raw(chapter_id)
        try:
            markup = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ChapterReadError(chapter_id, f"not valid UTF-8 ({e})", self.path) from e

        if ref is not None and ref.media_type == SVG_MEDIA_TYPE:
            soup = _strip_active(BeautifulSoup(raw, "lxml-xml"))
            svg = soup.find("svg")
            return str(svg) if svg is not None else soup.decode_contents()

        soup = _strip_active(BeautifulSoup(markup, "lxml"))
        body = soup.body
        if body is None:
            return soup.decode_contents()
        return body.decode_contents()

    async def read_chapter(self, chapter_id: str) -> str:
        """Async wrapper around get_chapter()."""
        return await asyncio.to_thread(self.get_chapter, chapter_id)

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def __enter__(self):
        if self._zip is None:
            self.parse()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        if self._zip is None:
            await asyncio.to_thread(self.parse)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
