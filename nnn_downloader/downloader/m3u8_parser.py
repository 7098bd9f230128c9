"""Tools for parsing m3u8 playlists into variant and segment URLs."""

from __future__ import annotations

from urllib.parse import urljoin

from ..models import Playlist

KEY_MARKER = "#EXT-X-KEY"
STREAM_INF_MARKER = "#EXT-X-STREAM-INF"


class UnsupportedContentError(RuntimeError):
    """Raised for streams that cannot be downloaded as-is (encrypted HLS)."""


class PlaylistError(RuntimeError):
    """Raised when a playlist or one of its segments cannot be used."""


def parse_playlist(text: str, base_url: str) -> Playlist:
    """Parses playlist text, resolving every URI against ``base_url``.

    A URI line that follows a stream-info tag is a variant; any other
    non-comment line is a media segment.
    """

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    variant_urls = []
    segment_urls = []
    is_encrypted = False
    index = 0
    while index < len(lines):
        line = lines[index]
        index += 1
        if line.startswith(KEY_MARKER):
            is_encrypted = True
            continue
        if line.startswith(STREAM_INF_MARKER):
            if index < len(lines) and not lines[index].startswith("#"):
                variant_urls.append(urljoin(base_url, lines[index]))
                index += 1
            continue
        if line.startswith("#"):
            continue
        segment_urls.append(urljoin(base_url, line))

    return Playlist(variant_urls=variant_urls, segment_urls=segment_urls, is_encrypted=is_encrypted)


def select_variant(playlist: Playlist) -> str:
    """Picks the last declared variant, which is usually the highest bandwidth."""

    if not playlist.variant_urls:
        raise PlaylistError("Playlist does not declare any variants")
    return playlist.variant_urls[-1]
