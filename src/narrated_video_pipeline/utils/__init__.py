"""
Utility modules for the narrated video pipeline.
"""

from .file_utils import (
    ensure_directory,
    get_file_size,
    remove_tree,
)

from .time_utils import (
    format_srt_timestamp,
    parse_srt_timestamp,
)

__all__ = [
    "ensure_directory",
    "get_file_size",
    "remove_tree",
    "format_srt_timestamp",
    "parse_srt_timestamp",
]
