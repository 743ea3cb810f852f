"""Shared fixtures: small EPUB archives built on the fly."""

import zipfile
from pathlib import Path

import pytest

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

CHAPTER_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title}</title></head>
<body>{body}</body>
</html>
"""

DEFAULT_METADATA = {
    "creator": "Herman Melville",
    "title": "Moby Dick",
    "language": "en",
    "subject": "Whaling",
    "date": "1851",
    "description": "A whale of a tale.",
}

DEFAULT_CHAPTERS = [
    ("c1", "Loomings", "<p>Call me Ishmael.</p>"),
    ("c2", "The Carpet-Bag", "<p>I stuffed a shirt or two.</p>"),
    ("c3", "The Spouter-Inn", "<p>Entering that gable-ended inn.</p>"),
]


def _opf(metadata: dict, chapters: list, spine: list | None, extra_items: list) -> str:
    meta = "\n".join(
        f"    <dc:{name}>{value}</dc:{name}>" for name, value in metadata.items()
    )
    items = "\n".join(
        f'    <item id="{cid}" href="text/{cid}.xhtml" media-type="application/xhtml+xml"/>'
        for cid, _, _ in chapters
    )
    items += "\n" + "\n".join(extra_items)
    spine_ids = spine if spine is not None else [cid for cid, _, _ in chapters]
    itemrefs = "\n".join(f'    <itemref idref="{cid}"/>' for cid in spine_ids)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
{meta}
  </metadata>
  <manifest>
    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>
{items}
  </manifest>
  <spine toc="ncx">
{itemrefs}
  </spine>
</package>
"""


def _ncx(chapters: list) -> str:
    points = "\n".join(
        f"""    <navPoint id="np{n}" playOrder="{n}">
      <navLabel><text>{title}</text></navLabel>
      <content src="text/{cid}.xhtml"/>
    </navPoint>"""
        for n, (cid, title, _) in enumerate(chapters, start=1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
{points}
  </navMap>
</ncx>
"""


def build_epub(
    path: Path,
    metadata: dict | None = None,
    chapters: list | None = None,
    spine: list | None = None,
    mimetype: str | None = "application/epub+zip",
    extra_items: list | None = None,
    extra_files: dict | None = None,
    skip_files: tuple = (),
) -> Path:
    """Write a minimal EPUB 2 archive.

    Args:
        path: Destination file
        metadata: Dublin Core values (defaults to DEFAULT_METADATA)
        chapters: (id, title, body markup) triples
        spine: Spine idrefs, defaults to the chapter ids in order
        mimetype: Content of the mimetype entry, None to omit it
        extra_items: Raw manifest <item> lines
        extra_files: Extra archive members, name -> content
        skip_files: Archive members to leave out
    """
    metadata = DEFAULT_METADATA if metadata is None else metadata
    chapters = DEFAULT_CHAPTERS if chapters is None else chapters

    files = {
        "META-INF/container.xml": CONTAINER_XML.format(opf_path="OEBPS/content.opf"),
        "OEBPS/content.opf": _opf(metadata, chapters, spine, extra_items or []),
        "OEBPS/toc.ncx": _ncx(chapters),
    }
    for cid, title, body in chapters:
        files[f"OEBPS/text/{cid}.xhtml"] = CHAPTER_XHTML.format(title=title, body=body)
    files.update(extra_files or {})

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as epub:
        if mimetype is not None:
            epub.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        for name, content in files.items():
            if name not in skip_files:
                epub.writestr(name, content)
    return path


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "epubs"
    directory.mkdir()
    return directory


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "json"
    directory.mkdir()
    return directory


@pytest.fixture
def make_epub(input_dir: Path):
    """Factory writing an EPUB named ``name`` into the input directory."""

    def factory(name: str = "moby-dick.epub", **kwargs) -> Path:
        return build_epub(input_dir / name, **kwargs)

    return factory


@pytest.fixture
def make_corrupt(input_dir: Path):
    """Factory writing a file with an .epub name that is not a zip archive."""

    def factory(name: str = "broken.epub") -> Path:
        path = input_dir / name
        path.write_bytes(b"this is not a zip archive")
        return path

    return factory
