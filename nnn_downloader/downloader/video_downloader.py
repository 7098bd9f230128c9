"""Asynchronous downloader that streams HLS playlists into a single media file."""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Optional

import aiofiles
import aiohttp

from ..utils.file_utils import ensure_directory
from ..utils.http_client import HttpClient, HttpError
from .m3u8_parser import PlaylistError, UnsupportedContentError, parse_playlist, select_variant

OUTPUT_FILE_MODE = 0o644
CHUNK_SIZE = 1 << 16
PARTIAL_SUFFIX = ".part"
PROGRESS_LOG_EVERY = 100

ProgressCallback = Callable[[int, int], None]


async def fetch_playlist_text(
    session: aiohttp.ClientSession,
    url: str,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    async with session.get(url, headers=headers) as response:
        if not 200 <= response.status < 300:
            raise HttpError(response.status, url)
        return await response.text()


def _chmod_best_effort(path: str) -> None:
    if not os.path.exists(path):
        return
    try:
        os.chmod(path, OUTPUT_FILE_MODE)
    except OSError as exc:
        logging.debug("Could not chmod %s: %s", path, exc)


async def download_playlist(
    session: aiohttp.ClientSession,
    playlist_url: str,
    out_file_path: str,
    headers: Optional[Dict[str, str]] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> None:
    """Downloads every segment of ``playlist_url`` into ``out_file_path``.

    Master playlists are followed to their last variant. Segments are fetched
    one after another and written to ``<out_file_path>.part``, which only
    replaces the final path once every segment has been written. Any raised
    exception means the download is incomplete.
    """

    playlist = parse_playlist(await fetch_playlist_text(session, playlist_url, headers), playlist_url)
    if playlist.is_encrypted:
        raise UnsupportedContentError("Encrypted HLS streams are not supported.")

    media_url = playlist_url
    if playlist.is_master:
        media_url = select_variant(playlist)
        logging.debug("Master playlist with %s variants; using %s", len(playlist.variant_urls), media_url)
        playlist = parse_playlist(await fetch_playlist_text(session, media_url, headers), media_url)
        if playlist.is_encrypted:
            raise UnsupportedContentError("Encrypted HLS streams are not supported.")

    segment_urls = playlist.segment_urls
    if not segment_urls:
        raise PlaylistError(f"No segments found in HLS playlist {media_url}")

    ensure_directory(os.path.dirname(os.path.abspath(out_file_path)) or ".")
    partial_path = f"{out_file_path}{PARTIAL_SUFFIX}"
    segment_count = len(segment_urls)
    try:
        async with aiofiles.open(partial_path, "wb") as handle:
            for segment_index, segment_url in enumerate(segment_urls, start=1):
                if on_progress:
                    on_progress(segment_index, segment_count)
                async with session.get(segment_url, headers=headers) as response:
                    if not 200 <= response.status < 300:
                        raise PlaylistError(
                            f"Failed to fetch segment {segment_index}/{segment_count}: HTTP {response.status}"
                        )
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        await handle.write(chunk)
        os.replace(partial_path, out_file_path)
    except Exception:
        if os.path.exists(partial_path):
            os.remove(partial_path)
        raise
    finally:
        _chmod_best_effort(out_file_path)


def log_progress(segment_index: int, segment_count: int) -> None:
    if segment_index in (1, segment_count) or segment_index % PROGRESS_LOG_EVERY == 0:
        logging.info("HLS segments: %s/%s", segment_index, segment_count)


class VideoDownloader:
    """Downloads lesson streams with the session's media headers."""

    def __init__(self, http_client: HttpClient) -> None:
        self._http_client = http_client

    async def download(self, video_url: str, output_file: str) -> None:
        session = await self._http_client.get_session()
        await download_playlist(
            session,
            video_url,
            output_file,
            headers=self._http_client.media_headers(),
            on_progress=log_progress,
        )
        logging.info("Saved video to %s", output_file)
