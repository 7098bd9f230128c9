"""Data models for course structure, media assets, and sessions."""

from .course_models import (
    Chapter,
    CourseLesson,
    CourseListItem,
    CourseStructure,
    DownloadedItem,
    NormalizedChapter,
    NormalizedCourse,
    NormalizedLesson,
    NormalizedMovie,
    Playlist,
    ResolvedLecture,
    Section,
    SkippedLesson,
    VideoItem,
)
from .session_models import Session, StoredCookie

__all__ = [
    "Chapter",
    "Section",
    "NormalizedCourse",
    "NormalizedChapter",
    "NormalizedLesson",
    "NormalizedMovie",
    "VideoItem",
    "CourseLesson",
    "ResolvedLecture",
    "SkippedLesson",
    "CourseStructure",
    "CourseListItem",
    "Playlist",
    "DownloadedItem",
    "Session",
    "StoredCookie",
]
