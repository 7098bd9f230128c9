import logging

import pytest

from nnn_downloader.main import main, print_chapters
from nnn_downloader.models import Chapter, Session
from nnn_downloader.utils.session_store import SessionStore


def test_chapter_table_matches_folder_width(capsys):
    print_chapters("Big course", [Chapter(id=i, title=f"Chapter {i}") for i in range(1, 121)])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Course: Big course"
    assert lines[3].startswith("001  | 1 ")
    assert lines[3].endswith("| Chapter 1")
    assert lines[-1].startswith("120  | 120 ")


def test_chapter_table_is_printed_when_logging_is_silenced(capsys):
    logging.disable(logging.CRITICAL)
    try:
        print_chapters(None, [Chapter(id=7, title="Only")])
    finally:
        logging.disable(logging.NOTSET)

    out = capsys.readouterr().out
    assert "Course: (untitled)" in out
    assert "01   | 7 " in out


def test_empty_chapter_table(capsys):
    print_chapters("C", [])

    assert capsys.readouterr().out == "No chapters found for this course.\n"


def test_bad_course_list_exits_with_status_one(tmp_path):
    session_path = str(tmp_path / "session.json")
    SessionStore(session_path).save(Session(saved_at="2024-01-01T00:00:00Z"))

    with pytest.raises(SystemExit) as info:
        main(
            [
                "--session",
                session_path,
                "--output",
                str(tmp_path / "out"),
                "--log-level",
                "error",
                "download-all",
                "--courses-file",
                str(tmp_path / "missing.json"),
            ]
        )

    assert info.value.code == 1
