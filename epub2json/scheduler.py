"""
Batch scheduling: discover archives, split them into groups, convert each
group concurrently and the groups one after another.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable

from .assembler import BookAssembler
from .config import DEFAULT_GROUP_SIZE, EPUB_EXTENSION, ConverterConfig
from .errors import ConversionError
from .models import ConversionBatch, ConversionTask, RunSummary
from .progress import ProgressReporter
from .writer import JsonWriter

logger = logging.getLogger(__name__)


def _is_candidate(path: Path, extension: str) -> bool:
    name = path.name
    return not name.startswith(".") and name.endswith(extension) and path.is_file()


def discover(input_dir: Path, extension: str = EPUB_EXTENSION) -> list[Path]:
    """Find archives directly inside input_dir.

    The suffix match is case-sensitive and not recursive. Hidden files
    (leading dot, such as macOS "._" resource forks) are skipped. Results
    are sorted by name so runs are repeatable.

    Args:
        input_dir: Directory to search
        extension: Suffix to match, including the dot

    Returns:
        Sorted list of archive paths
    """
    paths = sorted(
        (p for p in Path(input_dir).iterdir() if _is_candidate(p, extension)),
        key=lambda p: p.name,
    )
    logger.info(f"Found {len(paths)} {extension} files in {input_dir}")
    return paths


def partition(paths: list[Path], group_size: int) -> list[ConversionBatch]:
    """Split paths into contiguous groups of at most group_size, keeping order."""
    if group_size < 1:
        raise ValueError(f"group_size must be >= 1, got {group_size}")
    return [
        ConversionBatch(index=n + 1, paths=list(paths[start:start + group_size]))
        for n, start in enumerate(range(0, len(paths), group_size))
    ]


class BatchScheduler:
    """Converts a directory of archives in bounded groups.

    At most ``group_size`` archives are in flight at once. Group N+1 starts
    only after every archive of group N has either been written or failed.
    A failing archive is logged and recorded; it never stops the run.

    Usage:
        scheduler = BatchScheduler(group_size=10)
        summary = scheduler.run_sync(Path("./epubs"), Path("./json"))
    """

    def __init__(
        self,
        group_size: int = DEFAULT_GROUP_SIZE,
        extension: str = EPUB_EXTENSION,
        assembler: BookAssembler | None = None,
        writer: JsonWriter | None = None,
        show_progress: bool = False,
        on_group_complete: Callable[[ConversionBatch], None] | None = None,
    ) -> None:
        if group_size < 1:
            raise ValueError(f"group_size must be >= 1, got {group_size}")
        self.group_size = group_size
        self.extension = extension
        self.assembler = assembler or BookAssembler()
        self.writer = writer or JsonWriter()
        self.show_progress = show_progress
        self.on_group_complete = on_group_complete

    @classmethod
    def from_config(cls, config: ConverterConfig, **kwargs) -> "BatchScheduler":
        return cls(
            group_size=config.group_size,
            extension=config.extension,
            show_progress=config.show_progress,
            **kwargs,
        )

    async def run(self, input_dir: Path, output_dir: Path) -> RunSummary:
        """Convert every archive in input_dir into output_dir.

        Args:
            input_dir: Validated input directory
            output_dir: Validated output directory

        Returns:
            RunSummary with one task per discovered archive
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)

        batches = partition(discover(input_dir, self.extension), self.group_size)
        summary = RunSummary(groups=len(batches))
        if not batches:
            logger.info("Nothing to convert")
            return summary

        total = sum(batch.size for batch in batches)
        progress = ProgressReporter(total=total, groups=len(batches)) if self.show_progress else None

        try:
            for batch in batches:
                if progress:
                    progress.start_group(batch.index)
                await self._run_batch(batch, output_dir, progress)
                summary.tasks.extend(batch.tasks)

                logger.info(
                    f"Group {batch.index}/{len(batches)} done: "
                    f"{sum(1 for t in batch.tasks if t.success)}/{batch.size} converted"
                )
                if self.on_group_complete:
                    self.on_group_complete(batch)
        finally:
            if progress:
                progress.finish()

        return summary

    def run_sync(self, input_dir: Path, output_dir: Path) -> RunSummary:
        """Run the conversion on a fresh event loop."""
        return asyncio.run(self.run(input_dir, output_dir))

    async def _run_batch(
        self,
        batch: ConversionBatch,
        output_dir: Path,
        progress: ProgressReporter | None,
    ) -> None:
        """Convert every path of a batch concurrently and wait for all of them."""
        logger.debug(f"Starting group {batch.index}: {[p.name for p in batch.paths]}")
        batch.tasks = [ConversionTask(path=path) for path in batch.paths]
        await asyncio.gather(*(self._convert(task, output_dir, progress) for task in batch.tasks))

    async def _convert(
        self,
        task: ConversionTask,
        output_dir: Path,
        progress: ProgressReporter | None,
    ) -> None:
        """Assemble and write one archive, recording the outcome on the task."""
        try:
            book = await self.assembler.assemble(task.path)
            task.output_path = await self.writer.write(book, output_dir)
            task.success = True
        except ConversionError as e:
            task.error_type = type(e).__name__
            task.error_message = str(e)
            logger.error(str(e))
        except Exception as e:
            task.error_type = type(e).__name__
            task.error_message = str(e) or repr(e)
            logger.exception(f"Unexpected error converting {task.path.name}")

        if progress:
            progress.update(success=task.success, item_name=task.path.name)
