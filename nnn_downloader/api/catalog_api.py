"""API client that walks course -> chapters -> lessons and resolves stream URLs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin

from ..models import (
    Chapter,
    CourseLesson,
    CourseStructure,
    NormalizedChapter,
    NormalizedCourse,
    NormalizedLesson,
    NormalizedMovie,
    ResolvedLecture,
    SkippedLesson,
)
from ..utils.http_client import API_V1_BASE, API_V2_BASE, HttpClient, HttpError
from .schemas import SchemaError, parse_chapter_details, parse_course_details, parse_lesson, parse_movie

COURSE_PATH = "material/courses/{course_id}?revision=1"
CHAPTER_PATH = "material/courses/{course_id}/chapters/{chapter_id}?revision=1"
LESSON_V1_PATH = "n_school/courses/{course_id}/chapters/{chapter_id}/lessons/{lesson_id}?revision=1"
LESSON_V2_PATH = "material/courses/{course_id}/chapters/{chapter_id}/lessons/{lesson_id}?revision=1"
MOVIE_PATH = "material/courses/{course_id}/chapters/{chapter_id}/movies/{movie_id}?revision=1"

DOWNLOADABLE_KINDS = {"lesson", "movie"}


class ResolutionError(RuntimeError):
    """Raised when a course has nothing that could be resolved."""


class WorkItem(NamedTuple):
    chapter: Chapter
    content_id: int
    kind: str
    title: Optional[str] = None


def sort_chapters(chapters: Sequence[Chapter]) -> List[Chapter]:
    """Orders chapters by ``order``; chapters without one sort as 0 and ties keep discovery order."""

    return sorted(chapters, key=lambda chapter: chapter.order if chapter.order is not None else 0)


class CatalogAPI:
    """Fetches catalog resources and turns them into downloadable lessons."""

    def __init__(self, http_client: HttpClient) -> None:
        self._client = http_client

    async def _get(self, url: str) -> Any:
        result = await self._client.get_json(url)
        return result.unwrap()

    async def get_course_details(self, course_id: int) -> NormalizedCourse:
        url = urljoin(API_V2_BASE, COURSE_PATH.format(course_id=course_id))
        try:
            return parse_course_details(await self._get(url))
        except Exception as exc:
            logging.error("Failed to fetch course %s details: %s", course_id, exc)
            raise

    async def get_chapter_details(self, course_id: int, chapter_id: int) -> NormalizedChapter:
        url = urljoin(API_V2_BASE, CHAPTER_PATH.format(course_id=course_id, chapter_id=chapter_id))
        try:
            return parse_chapter_details(await self._get(url))
        except Exception as exc:
            logging.error("Failed to fetch chapter %s details: %s", chapter_id, exc)
            raise

    async def get_lesson(self, course_id: int, chapter_id: int, lesson_id: int) -> NormalizedLesson:
        """Tries the v1 lesson endpoint, then the v2 one when v1 is missing or unparseable."""

        ids = {"course_id": course_id, "chapter_id": chapter_id, "lesson_id": lesson_id}
        v1_url = urljoin(API_V1_BASE, LESSON_V1_PATH.format(**ids))
        try:
            return parse_lesson(await self._get(v1_url))
        except HttpError as exc:
            if exc.status != 404:
                raise
            logging.debug("Lesson %s not found on v1, trying v2", lesson_id)
        except SchemaError as exc:
            logging.debug("Lesson %s v1 response not recognized (%s), trying v2", lesson_id, exc)

        v2_url = urljoin(API_V2_BASE, LESSON_V2_PATH.format(**ids))
        return parse_lesson(await self._get(v2_url))

    async def get_movie(self, course_id: int, chapter_id: int, movie_id: int) -> NormalizedMovie:
        url = urljoin(API_V2_BASE, MOVIE_PATH.format(course_id=course_id, chapter_id=chapter_id, movie_id=movie_id))
        return parse_movie(await self._get(url))

    async def get_course_chapters(self, course_id: int) -> Tuple[Optional[str], List[Chapter]]:
        course = await self.get_course_details(course_id)
        return course.title, sort_chapters(course.chapters)

    async def resolve_first_lecture(self, course_id: int) -> ResolvedLecture:
        """Resolves only the first lesson or movie of the first chapter."""

        course_title, chapters = await self.get_course_chapters(course_id)
        if not chapters:
            raise ResolutionError(f"No chapters found for course {course_id}")
        first_chapter = chapters[0]

        details = await self.get_chapter_details(course_id, first_chapter.id)
        section = next((s for s in details.sections if s.kind in DOWNLOADABLE_KINDS), None)
        if section is None:
            raise ResolutionError(f"No lesson sections found in chapter {first_chapter.id}")

        chapter = first_chapter.model_copy(update={"title": details.title or first_chapter.title})
        lesson = await self._resolve_item(course_id, WorkItem(chapter, section.id, section.kind, section.title))
        return ResolvedLecture(course_id=course_id, course_title=course_title, **lesson.model_dump())

    async def resolve_course_lessons(
        self,
        course_id: int,
        chapter_ids: Optional[Sequence[int]] = None,
        max_concurrency: int = 6,
        limit_lessons: Optional[int] = None,
    ) -> CourseStructure:
        course_title, chapters = await self.get_course_chapters(course_id)
        if chapter_ids is not None:
            allowed = set(chapter_ids)
            chapters = [chapter for chapter in chapters if chapter.id in allowed]
        if not chapters:
            raise ResolutionError("No chapters selected (check the chapter filter).")

        queue = await self._build_queue(course_id, chapters, limit_lessons)

        batch_size = max(1, int(max_concurrency))
        lessons: List[CourseLesson] = []
        skipped: List[SkippedLesson] = []
        for start in range(0, len(queue), batch_size):
            batch = queue[start : start + batch_size]
            outcomes = await asyncio.gather(*(self._try_resolve(course_id, item) for item in batch))
            for outcome in outcomes:
                if isinstance(outcome, SkippedLesson):
                    skipped.append(outcome)
                else:
                    lessons.append(outcome)

        logging.info(
            "Resolved %s lesson(s) for course %s (%s skipped)",
            len(lessons),
            course_id,
            len(skipped),
        )
        return CourseStructure(
            course_id=course_id,
            course_title=course_title,
            chapters=chapters,
            lessons=lessons,
            skipped_lessons=skipped,
        )

    async def _build_queue(
        self,
        course_id: int,
        chapters: Sequence[Chapter],
        limit_lessons: Optional[int],
    ) -> List[WorkItem]:
        cap = max(0, int(limit_lessons)) if limit_lessons is not None else None
        queue: List[WorkItem] = []
        for chapter in chapters:
            if cap is not None and len(queue) >= cap:
                break
            details = await self.get_chapter_details(course_id, chapter.id)
            merged = chapter.model_copy(update={"title": details.title or chapter.title})
            for section in details.sections:
                if section.kind not in DOWNLOADABLE_KINDS:
                    continue
                if cap is not None and len(queue) >= cap:
                    break
                queue.append(WorkItem(merged, section.id, section.kind, section.title))
        return queue

    async def _try_resolve(self, course_id: int, item: WorkItem) -> Union[CourseLesson, SkippedLesson]:
        try:
            return await self._resolve_item(course_id, item)
        except Exception as exc:
            logging.warning("Skipping %s %s in chapter %s: %s", item.kind, item.content_id, item.chapter.id, exc)
            return SkippedLesson(chapter_id=item.chapter.id, lesson_id=item.content_id, reason=str(exc))

    async def _resolve_item(self, course_id: int, item: WorkItem) -> CourseLesson:
        if item.kind == "movie":
            movie = await self.get_movie(course_id, item.chapter.id, item.content_id)
            return CourseLesson(
                chapter_id=item.chapter.id,
                chapter_title=item.chapter.title,
                lesson_id=item.content_id,
                lesson_title=movie.title or item.title,
                kind="movie",
                video_url=movie.video_url,
                reference_page_urls=movie.reference_page_urls,
            )

        lesson = await self.get_lesson(course_id, item.chapter.id, item.content_id)
        return CourseLesson(
            chapter_id=item.chapter.id,
            chapter_title=item.chapter.title,
            lesson_id=item.content_id,
            lesson_title=lesson.title or item.title,
            kind="lesson",
            video_url=lesson.video_url,
            reference_page_urls=lesson.reference_page_urls,
            video_items=lesson.parts,
        )
