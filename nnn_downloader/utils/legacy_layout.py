"""One-time migration of download folders written by earlier layouts.

Earlier runs named course folders after the course title and chapter folders
``chapter-<id>`` or after the chapter title. These helpers move such folders
to the current names without ever overwriting an existing file.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from .file_utils import ensure_directory, sanitize_filename


def merge_directory(src_dir: str, dst_dir: str) -> bool:
    """Moves the contents of ``src_dir`` into ``dst_dir`` file by file.

    Returns True when everything was moved, False when conflicts or errors
    left something behind in ``src_dir``.
    """

    ensure_directory(dst_dir)
    fully_moved = True

    for name in sorted(os.listdir(src_dir)):
        src = os.path.join(src_dir, name)
        dst = os.path.join(dst_dir, name)

        if os.path.isdir(src) and not os.path.islink(src):
            if not os.path.lexists(dst):
                try:
                    os.rename(src, dst)
                    continue
                except OSError:
                    pass
            elif not os.path.isdir(dst):
                logging.warning("Cannot merge folder %s: %s is not a folder", src, dst)
                fully_moved = False
                continue

            if merge_directory(src, dst):
                try:
                    os.rmdir(src)
                except OSError:
                    fully_moved = False
            else:
                fully_moved = False
            continue

        if os.path.lexists(dst):
            logging.warning("Keeping legacy file %s: %s already exists", src, dst)
            fully_moved = False
            continue

        try:
            os.rename(src, dst)
        except OSError as exc:
            logging.warning("Failed to move %s -> %s: %s", src, dst, exc)
            fully_moved = False

    return fully_moved


def migrate_legacy_dir(legacy_path: str, new_path: str) -> bool:
    """Renames ``legacy_path`` to ``new_path``, merging when the new folder already exists.

    Returns True when the legacy folder is gone afterwards.
    """

    if not os.path.isdir(legacy_path):
        return False
    if os.path.abspath(legacy_path) == os.path.abspath(new_path):
        return False

    legacy_name = os.path.basename(legacy_path)
    new_name = os.path.basename(new_path)

    if not os.path.lexists(new_path):
        try:
            os.rename(legacy_path, new_path)
            logging.info("Renamed legacy folder: %s -> %s", legacy_name, new_name)
            return True
        except OSError as exc:
            logging.warning("Failed to rename legacy folder %s -> %s; will attempt merge: %s", legacy_name, new_name, exc)

    if not merge_directory(legacy_path, new_path):
        logging.warning(
            "Partially merged legacy folder (some conflicts left behind): %s -> %s",
            legacy_name,
            new_name,
        )
        return False

    try:
        os.rmdir(legacy_path)
    except OSError:
        logging.warning("Legacy folder not empty after merge, leaving in place: %s", legacy_path)
        return False
    logging.info("Merged legacy folder: %s -> %s", legacy_name, new_name)
    return True


def _legacy_names(candidates: Iterable[Optional[str]], current_name: str) -> list:
    names = []
    for candidate in candidates:
        # Purely numeric names belong to the current layout.
        if not candidate or candidate.isdigit():
            continue
        if candidate != current_name and candidate not in names:
            names.append(candidate)
    return names


def migrate_legacy_course_dir(base_output: str, course_dir: str, course_title: Optional[str]) -> None:
    """Moves a title-named course folder to its id-based ``course_dir``."""

    if not course_title:
        return
    current_name = os.path.basename(course_dir)
    for legacy_name in _legacy_names([sanitize_filename(course_title)], current_name):
        migrate_legacy_dir(os.path.join(base_output, legacy_name), course_dir)


def migrate_legacy_chapter_dir(
    course_dir: str,
    chapter_id: int,
    chapter_dir_name: str,
    chapter_title: Optional[str] = None,
) -> None:
    """Moves ``chapter-<id>`` and title-named chapter folders to ``chapter_dir_name``."""

    candidates = [f"chapter-{chapter_id}", sanitize_filename(chapter_title) if chapter_title else None]
    new_path = os.path.join(course_dir, chapter_dir_name)
    for legacy_name in _legacy_names(candidates, chapter_dir_name):
        migrate_legacy_dir(os.path.join(course_dir, legacy_name), new_path)
