"""
epub2json - Convert directories of EPUB files to JSON

Pipeline:
1. Discover .epub files in an input directory
2. Read each archive's metadata and chapters in reading order
3. Write one JSON document per archive to an output directory

Archives are converted concurrently in groups of ten; a broken archive is
reported and skipped without stopping the run.
"""

__version__ = "0.1.0"

from .assembler import BookAssembler
from .config import ConverterConfig
from .models import Book, RunSummary
from .scheduler import BatchScheduler
from .writer import JsonWriter

__all__ = ["BatchScheduler", "Book", "BookAssembler", "ConverterConfig", "JsonWriter", "RunSummary"]
