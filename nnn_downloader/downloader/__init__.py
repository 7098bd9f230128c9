"""Download helpers for HLS playlists and whole courses."""

from .course_downloader import BulkDownloadError, CourseDownloader, CourseListError, load_course_list
from .m3u8_parser import PlaylistError, UnsupportedContentError, parse_playlist
from .video_downloader import VideoDownloader, download_playlist

__all__ = [
    "CourseDownloader",
    "BulkDownloadError",
    "CourseListError",
    "load_course_list",
    "VideoDownloader",
    "download_playlist",
    "parse_playlist",
    "PlaylistError",
    "UnsupportedContentError",
]
