"""Drives course resolution and downloads into a stable on-disk layout.

Layout: ``course-<id>/<chapter>/<lesson>/lesson-<id>[_part-<n>].ts`` where the
chapter folder is the chapter's 1-based position in the *full* course (so
downloading different chapter subsets never renumbers folders) and the lesson
folder is the lesson's position within its chapter.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from ..api.catalog_api import CatalogAPI, ResolutionError
from ..models import Chapter, CourseLesson, CourseListItem, CourseStructure, DownloadedItem
from ..utils.file_utils import (
    build_course_directory,
    build_media_filename,
    ensure_directory,
    file_has_content,
    index_width,
    pad_index,
)
from ..utils.legacy_layout import migrate_legacy_chapter_dir, migrate_legacy_course_dir
from .video_downloader import VideoDownloader

MediaReadyHook = Callable[[DownloadedItem], Awaitable[None]]


class CourseFailure(NamedTuple):
    course_id: int
    title: str
    error: str


class BulkDownloadError(RuntimeError):
    """Raised after a bulk run when at least one course failed."""

    def __init__(self, failures: Sequence[CourseFailure]) -> None:
        self.failures = list(failures)
        summary = "\n".join(f"- {f.course_id} {f.title}: {f.error}" for f in self.failures)
        super().__init__(f"Some courses failed:\n{summary}")


class CourseListError(ValueError):
    """Raised when a course list file cannot be read or has the wrong shape."""


def load_course_list(path: str) -> List[CourseListItem]:
    """Reads ``[{"courseId": ..., "title": ...}]`` as produced by the course list scraper."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except OSError as exc:
        raise CourseListError(f"Cannot read course list {path}: {exc}") from exc
    except ValueError as exc:
        raise CourseListError(f"Course list {path} is not valid JSON: {exc}") from exc
    try:
        return TypeAdapter(List[CourseListItem]).validate_python(payload)
    except ValidationError as exc:
        raise CourseListError(f"Course list {path} has an unexpected shape: {exc}") from exc


class ChapterNumbering:
    """Maps chapter ids to zero-padded folder names from the full course chapter order."""

    def __init__(self, chapters: Sequence[Chapter]) -> None:
        self.width = index_width(len(chapters))
        self._index_by_id: Dict[int, int] = {chapter.id: index for index, chapter in enumerate(chapters, start=1)}

    def dir_name(self, chapter_id: int) -> str:
        index = self._index_by_id.get(chapter_id)
        if index is None:
            index = len(self._index_by_id) + 1
            self._index_by_id[chapter_id] = index
            logging.warning(
                "Chapter ID %s was not found in course chapter list; using fallback folder %s",
                chapter_id,
                pad_index(index, self.width),
            )
        return pad_index(index, self.width)


def lesson_positions(lessons: Sequence[CourseLesson]) -> Dict[Tuple[int, int], int]:
    """1-based position of every lesson within its chapter, in resolution order."""

    positions: Dict[Tuple[int, int], int] = {}
    per_chapter: Dict[int, int] = {}
    for lesson in lessons:
        key = (lesson.chapter_id, lesson.lesson_id)
        if key in positions:
            continue
        per_chapter[lesson.chapter_id] = per_chapter.get(lesson.chapter_id, 0) + 1
        positions[key] = per_chapter[lesson.chapter_id]
    return positions


def select_lessons(
    structure: CourseStructure,
    lesson_ids: Optional[Sequence[int]] = None,
    first_lecture_only: bool = False,
) -> List[CourseLesson]:
    if lesson_ids:
        by_id = {lesson.lesson_id: lesson for lesson in structure.lessons}
        missing = [lesson_id for lesson_id in lesson_ids if lesson_id not in by_id]
        if missing:
            reasons = [
                f"{skipped.lesson_id} ({skipped.reason})"
                for skipped in structure.skipped_lessons
                if skipped.lesson_id in missing
            ]
            message = f"Requested lesson-id(s) could not be resolved: {', '.join(str(i) for i in missing)}"
            if reasons:
                message = f"{message}\nSkipped: {', '.join(reasons)}"
            raise ResolutionError(message)
        return [by_id[lesson_id] for lesson_id in lesson_ids]

    if first_lecture_only:
        return list(structure.lessons[:1])
    return list(structure.lessons)


class CourseDownloader:
    """Resolves courses and downloads every lesson item that is not on disk yet."""

    def __init__(
        self,
        catalog: CatalogAPI,
        video_downloader: VideoDownloader,
        output_dir: str,
        on_media_ready: Optional[MediaReadyHook] = None,
        migrate_legacy: bool = True,
    ) -> None:
        self._catalog = catalog
        self._video_downloader = video_downloader
        self.output_dir = output_dir
        self._on_media_ready = on_media_ready
        self.migrate_legacy = migrate_legacy

    async def download_course(
        self,
        course_id: int,
        chapter_ids: Optional[Sequence[int]] = None,
        lesson_ids: Optional[Sequence[int]] = None,
        max_concurrency: int = 6,
        first_lecture_only: bool = False,
    ) -> List[DownloadedItem]:
        first_only = first_lecture_only and not lesson_ids
        structure = await self._catalog.resolve_course_lessons(
            course_id,
            chapter_ids=chapter_ids,
            max_concurrency=max_concurrency,
            limit_lessons=1 if first_only else None,
        )

        lessons = select_lessons(structure, lesson_ids, first_only)
        if not lessons:
            raise ResolutionError("No lessons resolved to download.")
        if structure.skipped_lessons:
            logging.warning(
                "Skipped %s lesson(s) that could not be resolved (no video URL, etc).",
                len(structure.skipped_lessons),
            )

        course_title, all_chapters = await self._catalog.get_course_chapters(course_id)
        numbering = ChapterNumbering(all_chapters)
        logging.info(
            "Resolved %s lesson(s) across %s selected chapter(s) (%s total chapter(s) in course).",
            len(lessons),
            len(structure.chapters),
            len(all_chapters),
        )

        course_dir = build_course_directory(self.output_dir, course_id)
        if self.migrate_legacy:
            migrate_legacy_course_dir(self.output_dir, course_dir, structure.course_title or course_title)
        ensure_directory(course_dir)

        positions = lesson_positions(structure.lessons)
        migrated_chapters = set()
        downloaded: List[DownloadedItem] = []

        for lesson in lessons:
            chapter_dir_name = numbering.dir_name(lesson.chapter_id)
            if self.migrate_legacy and lesson.chapter_id not in migrated_chapters:
                migrated_chapters.add(lesson.chapter_id)
                migrate_legacy_chapter_dir(course_dir, lesson.chapter_id, chapter_dir_name, lesson.chapter_title)

            lesson_dir = os.path.join(
                course_dir,
                chapter_dir_name,
                pad_index(positions[(lesson.chapter_id, lesson.lesson_id)]),
            )
            ensure_directory(lesson_dir)
            downloaded.extend(await self._download_items(lesson, lesson_dir))

        logging.info("All downloads finished for course %s.", course_id)
        return downloaded

    async def _download_items(self, lesson: CourseLesson, lesson_dir: str) -> List[DownloadedItem]:
        items = lesson.items()
        results: List[DownloadedItem] = []
        for item in items:
            out_file_path = os.path.join(lesson_dir, build_media_filename(lesson.lesson_id, item.index, len(items)))
            part_label = f" (part {item.index})" if len(items) > 1 else ""
            logging.info("Downloading: %s/%s%s -> %s", lesson.chapter_id, lesson.lesson_id, part_label, out_file_path)

            skipped = file_has_content(out_file_path)
            if skipped:
                logging.info("Media already exists, skipping download: %s", out_file_path)
            else:
                await self._video_downloader.download(item.video_url, out_file_path)

            result = DownloadedItem(lesson=lesson, part_index=item.index, out_file_path=out_file_path, skipped=skipped)
            if self._on_media_ready:
                await self._on_media_ready(result)
            results.append(result)
        return results

    async def download_all(
        self,
        courses: Sequence[CourseListItem],
        max_concurrency: int = 6,
    ) -> List[DownloadedItem]:
        """Downloads every course, continuing past failures and reporting them together."""

        if not courses:
            raise ResolutionError("No courses found for this account.")

        logging.info("Downloading %s course(s).", len(courses))
        failures: List[CourseFailure] = []
        downloaded: List[DownloadedItem] = []
        for course in courses:
            logging.info("=== Course %s: %s ===", course.course_id, course.title)
            try:
                downloaded.extend(await self.download_course(course.course_id, max_concurrency=max_concurrency))
            except Exception as exc:
                failures.append(CourseFailure(course.course_id, course.title, str(exc)))
                logging.error("Failed course %s: %s (%s)", course.course_id, course.title, exc)
                continue
            logging.info("Finished course %s: %s", course.course_id, course.title)

        if failures:
            raise BulkDownloadError(failures)
        logging.info("All courses finished.")
        return downloaded
