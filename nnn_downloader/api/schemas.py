"""Upstream response shapes and their normalization into the internal model.

The API has shipped several incompatible generations. Every resource has a
legacy shape (``data`` envelope, snake_case fields) and a current shape
(resource-named envelope). Shapes are tried in order and the first one that
validates *and* yields a usable video URL wins; results are never merged.
When nothing matches a :class:`SchemaError` is raised instead of guessing.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, ValidationError

from ..models import (
    Chapter,
    NormalizedChapter,
    NormalizedCourse,
    NormalizedLesson,
    NormalizedMovie,
    Section,
    VideoItem,
)

T = TypeVar("T")

SECTION_KINDS = {"lesson": "lesson", "movie": "movie"}

# Field names that may hold the parts of a multi-part lesson, highest priority first.
MULTI_PART_FIELDS: Tuple[str, ...] = ("video_parts", "parts", "videos", "movies")


class SchemaError(ValueError):
    """Raised when no known response shape matches a payload."""


class _ChapterEntry(BaseModel):
    id: int
    title: Optional[str] = None
    order: Optional[float] = None


class _CourseBody(BaseModel):
    title: Optional[str] = None
    chapters: List[_ChapterEntry]


class LegacyCourseDetails(BaseModel):
    data: _CourseBody


class CurrentCourseDetails(BaseModel):
    course: _CourseBody


class _LegacySection(BaseModel):
    id: int
    title: Optional[str] = None
    section_type: str
    content_id: Optional[int] = None


class _LegacyChapterBody(BaseModel):
    title: Optional[str] = None
    sections: List[_LegacySection]


class LegacyChapterDetails(BaseModel):
    data: _LegacyChapterBody


class _CurrentSection(BaseModel):
    id: int
    title: Optional[str] = None
    resource_type: Optional[str] = None


class _CurrentChapterBody(BaseModel):
    title: Optional[str] = None
    sections: Optional[List[_CurrentSection]] = None


class CurrentChapterDetails(BaseModel):
    """Sections are either nested in ``chapter`` or a sibling of it."""

    chapter: _CurrentChapterBody
    sections: Optional[List[_CurrentSection]] = None


class _Reference(BaseModel):
    title: Optional[str] = None
    content_url: str


class _HlsLocation(BaseModel):
    hls: Optional[str] = None


class _Archive(BaseModel):
    url: Optional[_HlsLocation] = None


class _HlsFile(BaseModel):
    url: Optional[str] = None


class _Files(BaseModel):
    hls: Optional[_HlsFile] = None


class _LessonPart(BaseModel):
    title: Optional[str] = None
    video_url: Optional[str] = None
    url: Optional[str] = None
    archive: Optional[_Archive] = None
    files: Optional[_Files] = None
    references: Optional[List[_Reference]] = None


class _LessonBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    video_url: Optional[str] = None
    archive: Optional[_Archive] = None
    references: Optional[List[_Reference]] = None


class LegacyLessonDetails(BaseModel):
    data: _LessonBody


class CurrentLessonDetails(BaseModel):
    lesson: _LessonBody


class _MovieVideo(BaseModel):
    files: Optional[_Files] = None


class _MovieReference(BaseModel):
    content_urls: List[str] = []


class _MovieBody(BaseModel):
    title: Optional[str] = None
    videos: List[_MovieVideo]
    references: List[_MovieReference] = []


class LegacyMovieDetails(BaseModel):
    data: _MovieBody


class CurrentMovieDetails(BaseModel):
    movie: _MovieBody


def _describe(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        return f"{location}: {first.get('msg')}"
    return str(exc)


def _first_match(resource: str, payload: Any, attempts: Sequence[Tuple[str, Callable[[Any], T]]]) -> T:
    failures: List[str] = []
    for shape, attempt in attempts:
        try:
            return attempt(payload)
        except (ValidationError, SchemaError) as exc:
            failures.append(f"{shape} ({_describe(exc)})")
    raise SchemaError(f"Unrecognized {resource} response; tried {', '.join(failures)}")


def usable_url(value: Optional[str]) -> Optional[str]:
    """Returns ``value`` stripped when it is an absolute http(s) URL."""

    if not isinstance(value, str):
        return None
    candidate = value.strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return candidate


def _reference_urls(references: Optional[List[_Reference]]) -> List[str]:
    return [ref.content_url.strip() for ref in references or [] if ref.content_url.strip()]


def _archive_hls(archive: Optional[_Archive]) -> Optional[str]:
    if archive and archive.url:
        return archive.url.hls
    return None


def _files_hls(files: Optional[_Files]) -> Optional[str]:
    if files and files.hls:
        return files.hls.url
    return None


def _chapters(body: _CourseBody) -> NormalizedCourse:
    return NormalizedCourse(
        title=body.title or None,
        chapters=[Chapter(id=entry.id, title=entry.title or None, order=entry.order) for entry in body.chapters],
    )


def parse_course_details(payload: Any) -> NormalizedCourse:
    return _first_match(
        "course",
        payload,
        [
            ("legacy", lambda raw: _chapters(LegacyCourseDetails.model_validate(raw).data)),
            ("current", lambda raw: _chapters(CurrentCourseDetails.model_validate(raw).course)),
        ],
    )


def _legacy_chapter(raw: Any) -> NormalizedChapter:
    body = LegacyChapterDetails.model_validate(raw).data
    sections = [
        Section(
            id=section.content_id if section.content_id is not None else section.id,
            title=section.title or None,
            kind=SECTION_KINDS.get(section.section_type, "other"),
        )
        for section in body.sections
    ]
    return NormalizedChapter(title=body.title or None, sections=sections)


def _current_chapter(raw: Any) -> NormalizedChapter:
    details = CurrentChapterDetails.model_validate(raw)
    entries = details.chapter.sections if details.chapter.sections is not None else details.sections
    if entries is None:
        raise SchemaError("chapter response has no sections")
    sections = [
        Section(
            id=section.id,
            title=section.title or None,
            kind=SECTION_KINDS.get(section.resource_type or "", "other"),
        )
        for section in entries
    ]
    return NormalizedChapter(title=details.chapter.title or None, sections=sections)


def parse_chapter_details(payload: Any) -> NormalizedChapter:
    return _first_match("chapter", payload, [("legacy", _legacy_chapter), ("current", _current_chapter)])


def _lesson_parts(body: _LessonBody, lesson_refs: List[str]) -> List[VideoItem]:
    extra = body.model_extra or {}
    for field in MULTI_PART_FIELDS:
        raw_parts = extra.get(field)
        if not isinstance(raw_parts, list):
            continue
        parts: List[VideoItem] = []
        for raw_part in raw_parts:
            try:
                part = _LessonPart.model_validate(raw_part)
            except ValidationError:
                continue
            url = (
                usable_url(part.video_url)
                or usable_url(part.url)
                or usable_url(_archive_hls(part.archive))
                or usable_url(_files_hls(part.files))
            )
            if not url:
                continue
            refs = _reference_urls(part.references) if part.references is not None else list(lesson_refs)
            parts.append(
                VideoItem(index=len(parts) + 1, title=part.title or None, video_url=url, reference_page_urls=refs)
            )
        if parts:
            return parts
    return []


def _lesson(body: _LessonBody) -> NormalizedLesson:
    references = _reference_urls(body.references)
    parts = _lesson_parts(body, references)
    if parts:
        first = parts[0]
        return NormalizedLesson(
            title=body.title or None,
            video_url=first.video_url,
            reference_page_urls=list(first.reference_page_urls),
            parts=parts,
        )

    video_url = usable_url(body.video_url) or usable_url(_archive_hls(body.archive))
    if not video_url:
        raise SchemaError("no HLS URL (expected video_url, archive.url.hls or a multi-part list)")
    return NormalizedLesson(title=body.title or None, video_url=video_url, reference_page_urls=references)


def parse_lesson(payload: Any) -> NormalizedLesson:
    return _first_match(
        "lesson",
        payload,
        [
            ("legacy", lambda raw: _lesson(LegacyLessonDetails.model_validate(raw).data)),
            ("current", lambda raw: _lesson(CurrentLessonDetails.model_validate(raw).lesson)),
        ],
    )


def _movie(body: _MovieBody) -> NormalizedMovie:
    video_url = usable_url(_files_hls(body.videos[0].files)) if body.videos else None
    if not video_url:
        raise SchemaError("no HLS URL at videos[0].files.hls.url")
    references = [url.strip() for ref in body.references for url in ref.content_urls if url.strip()]
    return NormalizedMovie(title=body.title or None, video_url=video_url, reference_page_urls=references)


def parse_movie(payload: Any) -> NormalizedMovie:
    return _first_match(
        "movie",
        payload,
        [
            ("legacy", lambda raw: _movie(LegacyMovieDetails.model_validate(raw).data)),
            ("current", lambda raw: _movie(CurrentMovieDetails.model_validate(raw).movie)),
        ],
    )
