"""
Directory checks performed before any archive is opened.
"""

import logging
import os
import stat
from pathlib import Path

from .errors import ValidationError

logger = logging.getLogger(__name__)

READ_MODE = os.R_OK | os.X_OK
WRITE_MODE = os.W_OK


def validate_path(path: Path | str, mode: int = READ_MODE) -> bool:
    """Check that a path is a directory with the given access.

    The path itself must be a directory; a symlink to one is rejected.
    Nothing is created.

    Args:
        path: Directory path to test
        mode: ``os.access`` mode bits (defaults to read + traverse)

    Returns:
        True if the path exists, is a directory and grants ``mode``
    """
    path = Path(path)
    try:
        mode_bits = path.lstat().st_mode
    except OSError:
        return False

    if not stat.S_ISDIR(mode_bits):
        return False

    return os.access(path, mode)


def validate_input(path: Path | str) -> bool:
    """Input directories must be readable and traversable."""
    return validate_path(path, READ_MODE)


def validate_output(path: Path | str) -> bool:
    """Output directories must be writable."""
    return validate_path(path, WRITE_MODE)


def require_directories(input_dir: Path | str, output_dir: Path | str) -> None:
    """Raise ValidationError unless both directories are usable.

    Raises:
        ValidationError: naming the first directory that failed its check
    """
    if not validate_input(input_dir):
        raise ValidationError(f"No such input path or can not read from '{input_dir}'")
    if not validate_output(output_dir):
        raise ValidationError(f"No such output path or can not write to '{output_dir}'")
    logger.debug(f"Validated input {input_dir} and output {output_dir}")
