"""API layer for catalog resources and their response shapes."""

from .catalog_api import CatalogAPI, ResolutionError
from .schemas import SchemaError, parse_chapter_details, parse_course_details, parse_lesson, parse_movie

__all__ = [
    "CatalogAPI",
    "ResolutionError",
    "SchemaError",
    "parse_course_details",
    "parse_chapter_details",
    "parse_lesson",
    "parse_movie",
]
