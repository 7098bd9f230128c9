from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import aiohttp
from dotenv import load_dotenv

from .api.catalog_api import CatalogAPI, ResolutionError
from .api.schemas import SchemaError
from .config import AppConfig, configure_logging, load_config
from .downloader.course_downloader import BulkDownloadError, CourseDownloader, CourseListError, load_course_list
from .downloader.m3u8_parser import PlaylistError, UnsupportedContentError
from .downloader.video_downloader import VideoDownloader
from .models import Chapter, DownloadedItem
from .utils.file_utils import index_width, pad_index
from .utils.http_client import HttpClient, HttpError, NetworkError
from .utils.session_store import MissingSessionError, SessionParseError, SessionStore

load_dotenv()

HANDLED_ERRORS = (
    MissingSessionError,
    SessionParseError,
    ResolutionError,
    SchemaError,
    HttpError,
    NetworkError,
    UnsupportedContentError,
    PlaylistError,
    BulkDownloadError,
    CourseListError,
    aiohttp.ClientError,
)


def parse_args(argv: Optional[List[str]] = None, config: Optional[AppConfig] = None) -> argparse.Namespace:
    config = config or load_config()
    parser = argparse.ArgumentParser(description="Download nnn course lessons (HLS -> .ts).")
    parser.add_argument("--session", default=config.session_path, help="Session file path")
    parser.add_argument("--output", default=config.output_dir, help="Directory to store downloaded media")
    parser.add_argument(
        "--log-level",
        default=config.log_level,
        choices=["silent", "error", "warn", "info", "debug"],
        help="Logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    download = subparsers.add_parser("download", help="Download lessons for a course")
    download.add_argument("--course-id", type=int, required=True, help="Course ID")
    download.add_argument("--chapter", type=int, action="append", default=[], help="Chapter ID to include (repeatable)")
    download.add_argument("--lesson-id", type=int, action="append", default=[], help="Lesson ID to include (repeatable)")
    download.add_argument(
        "--max-concurrency",
        type=int,
        default=config.max_concurrency,
        help="Max API concurrency when resolving lesson URLs",
    )
    download.add_argument("--first-lecture-only", action="store_true", help="Only download the first resolved lesson")

    download_all = subparsers.add_parser("download-all", help="Download every course listed in a course list file")
    download_all.add_argument(
        "--courses-file",
        required=True,
        help='JSON list of courses, e.g. [{"courseId": 1, "title": "..."}]',
    )
    download_all.add_argument("--max-concurrency", type=int, default=config.max_concurrency)

    resolve_first = subparsers.add_parser("resolve-first", help="Print the first lecture's stream URL as JSON")
    resolve_first.add_argument("--course-id", type=int, required=True, help="Course ID")

    chapters = subparsers.add_parser("chapters", help="List a course's chapters in download order")
    chapters.add_argument("--course-id", type=int, required=True, help="Course ID")

    return parser.parse_args(argv)


def print_chapters(course_title: Optional[str], chapters: List[Chapter]) -> None:
    """Writes the chapter table to stdout, with the folder name each chapter downloads into."""

    if not chapters:
        sys.stdout.write("No chapters found for this course.\n")
        return
    width = index_width(len(chapters))
    lines = [
        f"Course: {course_title or '(untitled)'}",
        f"{'Dir':<{max(width, 4)}} | {'Chapter ID':<10} | Title",
        "-" * 60,
    ]
    for index, chapter in enumerate(chapters, start=1):
        lines.append(f"{pad_index(index, width):<{max(width, 4)}} | {chapter.id!s:<10} | {chapter.title or ''}")
    sys.stdout.write("\n".join(lines) + "\n")


def print_summary(items: List[DownloadedItem]) -> None:
    fetched = sum(1 for item in items if not item.skipped)
    logging.info("%s file(s) downloaded, %s already present.", fetched, len(items) - fetched)


async def run(args: argparse.Namespace) -> None:
    session = SessionStore(args.session).require()

    async with HttpClient(session) as http_client:
        catalog = CatalogAPI(http_client)

        if args.command == "resolve-first":
            lecture = await catalog.resolve_first_lecture(args.course_id)
            sys.stdout.write(lecture.model_dump_json(indent=2) + "\n")
            logging.info("The `video_url` is the download-ready HLS (.m3u8) URL.")
            return

        if args.command == "chapters":
            course_title, chapters = await catalog.get_course_chapters(args.course_id)
            print_chapters(course_title, chapters)
            return

        downloader = CourseDownloader(catalog, VideoDownloader(http_client), args.output)

        if args.command == "download-all":
            courses = load_course_list(args.courses_file)
            print_summary(await downloader.download_all(courses, max_concurrency=args.max_concurrency))
            return

        items = await downloader.download_course(
            args.course_id,
            chapter_ids=args.chapter or None,
            lesson_ids=args.lesson_id or None,
            max_concurrency=args.max_concurrency,
            first_lecture_only=args.first_lecture_only,
        )
        print_summary(items)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        asyncio.run(run(args))
    except HANDLED_ERRORS as exc:
        logging.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
