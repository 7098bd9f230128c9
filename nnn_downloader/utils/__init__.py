"""Utility helpers for HTTP, sessions, and filesystem operations."""

from .file_utils import ensure_directory, sanitize_filename
from .http_client import HttpClient, HttpError, NetworkError, fetch_json_with_retry
from .session_store import SessionStore, build_cookie_header

__all__ = [
    "HttpClient",
    "HttpError",
    "NetworkError",
    "fetch_json_with_retry",
    "SessionStore",
    "build_cookie_header",
    "ensure_directory",
    "sanitize_filename",
]
