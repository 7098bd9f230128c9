"""Pydantic models that describe courses, chapters, lessons, and media artifacts."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SectionKind = Literal["lesson", "movie", "other"]
DownloadableKind = Literal["lesson", "movie"]


class Chapter(BaseModel):
    """A chapter entry from the course details API."""

    id: int
    title: Optional[str] = None
    order: Optional[float] = None


class Section(BaseModel):
    """An entry inside a chapter. Only lessons and movies carry video."""

    id: int
    title: Optional[str] = None
    kind: SectionKind = "other"


class NormalizedCourse(BaseModel):
    title: Optional[str] = None
    chapters: List[Chapter]


class NormalizedChapter(BaseModel):
    title: Optional[str] = None
    sections: List[Section]


class VideoItem(BaseModel):
    """One playable part of a lesson."""

    index: int
    title: Optional[str] = None
    video_url: str
    reference_page_urls: List[str] = Field(default_factory=list)


class NormalizedLesson(BaseModel):
    """Lesson details reduced to what the downloader needs.

    ``parts`` is only populated for multi-part lessons; ``video_url`` and
    ``reference_page_urls`` always mirror the first part in that case.
    """

    title: Optional[str] = None
    video_url: str
    reference_page_urls: List[str] = Field(default_factory=list)
    parts: List[VideoItem] = Field(default_factory=list)


class NormalizedMovie(BaseModel):
    title: Optional[str] = None
    video_url: str
    reference_page_urls: List[str] = Field(default_factory=list)


class CourseLesson(BaseModel):
    """A lesson or movie that has been resolved to a stream URL."""

    chapter_id: int
    chapter_title: Optional[str] = None
    lesson_id: int
    lesson_title: Optional[str] = None
    kind: DownloadableKind = "lesson"
    video_url: str
    reference_page_urls: List[str] = Field(default_factory=list)
    video_items: List[VideoItem] = Field(default_factory=list)

    def items(self) -> List[VideoItem]:
        """Returns the parts to download, synthesizing one for single-video lessons."""

        if self.video_items:
            return list(self.video_items)
        return [
            VideoItem(
                index=1,
                title=self.lesson_title,
                video_url=self.video_url,
                reference_page_urls=list(self.reference_page_urls),
            )
        ]


class ResolvedLecture(CourseLesson):
    """A single resolved lesson together with its course context."""

    course_id: int
    course_title: Optional[str] = None


class SkippedLesson(BaseModel):
    chapter_id: int
    lesson_id: int
    reason: str


class CourseStructure(BaseModel):
    """Selected chapters and their resolved lessons for one course."""

    course_id: int
    course_title: Optional[str] = None
    chapters: List[Chapter]
    lessons: List[CourseLesson]
    skipped_lessons: List[SkippedLesson] = Field(default_factory=list)


class CourseListItem(BaseModel):
    """A course discovered outside of explicit course-id input."""

    model_config = ConfigDict(populate_by_name=True)

    course_id: int = Field(alias="courseId")
    title: str


class Playlist(BaseModel):
    """Parsed metadata from an m3u8 playlist.

    A playlist is a master playlist when it declares variants; otherwise its
    URI lines are media segments.
    """

    variant_urls: List[str] = Field(default_factory=list)
    segment_urls: List[str] = Field(default_factory=list)
    is_encrypted: bool = False

    @property
    def is_master(self) -> bool:
        return bool(self.variant_urls)


class DownloadedItem(BaseModel):
    """A media file that exists on disk after orchestration."""

    lesson: CourseLesson
    part_index: int
    out_file_path: str
    skipped: bool = False
