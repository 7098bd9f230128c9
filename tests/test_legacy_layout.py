from nnn_downloader.utils.legacy_layout import (
    merge_directory,
    migrate_legacy_chapter_dir,
    migrate_legacy_course_dir,
    migrate_legacy_dir,
)


def test_legacy_dir_is_renamed_when_target_missing(tmp_path):
    legacy = tmp_path / "chapter-10"
    (legacy / "01").mkdir(parents=True)
    (legacy / "01" / "lesson-1.ts").write_bytes(b"data")

    assert migrate_legacy_dir(str(legacy), str(tmp_path / "01"))

    assert (tmp_path / "01" / "01" / "lesson-1.ts").read_bytes() == b"data"
    assert not legacy.exists()


def test_merge_never_overwrites_existing_files(tmp_path):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    (src / "01").mkdir(parents=True)
    (dst / "01").mkdir(parents=True)
    (src / "01" / "lesson-1.ts").write_bytes(b"legacy")
    (src / "01" / "lesson-2.ts").write_bytes(b"moved")
    (dst / "01" / "lesson-1.ts").write_bytes(b"current")

    assert not merge_directory(str(src), str(dst))

    assert (dst / "01" / "lesson-1.ts").read_bytes() == b"current"
    assert (dst / "01" / "lesson-2.ts").read_bytes() == b"moved"
    assert (src / "01" / "lesson-1.ts").read_bytes() == b"legacy"


def test_conflicting_legacy_dir_is_left_in_place(tmp_path):
    legacy = tmp_path / "chapter-10"
    current = tmp_path / "01"
    legacy.mkdir()
    current.mkdir()
    (legacy / "a.ts").write_bytes(b"legacy")
    (current / "a.ts").write_bytes(b"current")

    assert not migrate_legacy_dir(str(legacy), str(current))

    assert (legacy / "a.ts").exists()
    assert (current / "a.ts").read_bytes() == b"current"


def test_title_named_chapter_folder_is_migrated(tmp_path):
    (tmp_path / "Intro_ Part 1").mkdir()
    (tmp_path / "Intro_ Part 1" / "note.txt").write_text("hi")

    migrate_legacy_chapter_dir(str(tmp_path), 10, "01", "Intro: Part 1")

    assert (tmp_path / "01" / "note.txt").read_text() == "hi"
    assert not (tmp_path / "Intro_ Part 1").exists()


def test_numeric_titles_are_not_treated_as_legacy(tmp_path):
    (tmp_path / "02").mkdir()
    (tmp_path / "02" / "keep.ts").write_bytes(b"x")

    migrate_legacy_chapter_dir(str(tmp_path), 10, "01", "02")

    assert (tmp_path / "02" / "keep.ts").exists()
    assert not (tmp_path / "01").exists()


def test_course_folder_named_after_title_is_migrated(tmp_path):
    (tmp_path / "My Course" / "01").mkdir(parents=True)

    migrate_legacy_course_dir(str(tmp_path), str(tmp_path / "course-5"), "My Course")

    assert (tmp_path / "course-5" / "01").is_dir()
    assert not (tmp_path / "My Course").exists()
