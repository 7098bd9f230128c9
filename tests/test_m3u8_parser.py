import pytest

from nnn_downloader.downloader.m3u8_parser import PlaylistError, parse_playlist, select_variant

BASE = "https://video.nnn.ed.nico/hls/1/master.m3u8"

MASTER = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=300000
low/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=800000
mid/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=1500000
https://cdn.nnn.ed.nico/high/index.m3u8
"""

MEDIA = """#EXTM3U
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
seg0.ts

#EXTINF:10.0,
/abs/seg1.ts
#EXT-X-ENDLIST
"""


def test_master_playlist_variants_are_resolved():
    playlist = parse_playlist(MASTER, BASE)

    assert playlist.is_master
    assert playlist.segment_urls == []
    assert playlist.variant_urls == [
        "https://video.nnn.ed.nico/hls/1/low/index.m3u8",
        "https://video.nnn.ed.nico/hls/1/mid/index.m3u8",
        "https://cdn.nnn.ed.nico/high/index.m3u8",
    ]
    assert select_variant(playlist) == "https://cdn.nnn.ed.nico/high/index.m3u8"


def test_media_playlist_segments_are_resolved():
    playlist = parse_playlist(MEDIA, "https://video.nnn.ed.nico/hls/1/mid/index.m3u8")

    assert not playlist.is_master
    assert not playlist.is_encrypted
    assert playlist.segment_urls == [
        "https://video.nnn.ed.nico/hls/1/mid/seg0.ts",
        "https://video.nnn.ed.nico/abs/seg1.ts",
    ]


def test_key_tag_marks_playlist_encrypted():
    text = '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="key.bin"\n#EXTINF:10,\nseg0.ts\n'

    assert parse_playlist(text, BASE).is_encrypted


def test_select_variant_requires_variants():
    with pytest.raises(PlaylistError):
        select_variant(parse_playlist(MEDIA, BASE))
