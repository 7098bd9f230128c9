"""Filesystem helpers for preparing output folders and safe filenames."""

from __future__ import annotations

import os
import re
import unicodedata
from pathlib import Path

INVALID_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|\x00-\x1f]")
WHITESPACE = re.compile(r"\s+")

MIN_INDEX_WIDTH = 2
MEDIA_EXTENSION = "ts"


def sanitize_filename(value: str, default: str = "untitled") -> str:
    """Replaces characters that are invalid on most filesystems."""

    normalized = unicodedata.normalize("NFKC", value or "")
    sanitized = WHITESPACE.sub(" ", INVALID_FILENAME_CHARS.sub("_", normalized)).strip()
    return sanitized or default


def ensure_directory(path: str) -> str:
    """Creates a directory (and its parents) if needed."""

    Path(path).mkdir(parents=True, exist_ok=True)
    return path


def file_has_content(path: str) -> bool:
    """True when ``path`` is a regular file with a non-zero size."""

    try:
        return os.path.isfile(path) and os.path.getsize(path) > 0
    except OSError:
        return False


def index_width(total: int) -> int:
    return max(MIN_INDEX_WIDTH, len(str(total)))


def pad_index(index: int, width: int = MIN_INDEX_WIDTH) -> str:
    return str(index).zfill(width)


def build_course_directory(base_output: str, course_id: int) -> str:
    return os.path.join(base_output, sanitize_filename(f"course-{course_id}"))


def build_media_filename(lesson_id: int, part_index: int = 1, part_count: int = 1) -> str:
    """``lesson-<id>.ts``, or ``lesson-<id>_part-<n>.ts`` for multi-part lessons."""

    suffix = f"_part-{part_index}" if part_count > 1 else ""
    return f"lesson-{lesson_id}{suffix}.{MEDIA_EXTENSION}"
