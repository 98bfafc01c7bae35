"""
File utility functions for the narrated video pipeline.
"""

import shutil
from pathlib import Path
from typing import Union

from ..logging_config import get_logger

logger = get_logger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to create

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Directory ensured", path=str(path))
    return path


def get_file_size(file_path: Union[str, Path]) -> int:
    """
    Get file size in bytes.

    Args:
        file_path: Path to the file

    Returns:
        File size in bytes
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    return file_path.stat().st_size


def remove_tree(path: Union[str, Path]) -> bool:
    """
    Recursively remove a directory.

    Args:
        path: Directory to remove

    Returns:
        True if something was removed, False if the directory was already gone
    """
    path = Path(path)
    if not path.exists():
        return False

    shutil.rmtree(path)
    logger.debug("Directory removed", path=str(path))
    return True
