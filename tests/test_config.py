import os

import pytest

from nnn_downloader.config import DEFAULT_MAX_CONCURRENCY, load_config, normalize_log_level
from nnn_downloader.main import parse_args


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("NNN_SESSION_PATH", "OUTPUT_DIR", "LOG_LEVEL", "MAX_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    config = load_config()

    assert config.session_path == os.path.join(str(tmp_path / "config"), "nnn-downloader", "session.json")
    assert config.output_dir == os.path.abspath("downloads")
    assert config.log_level == "info"
    assert config.max_concurrency == DEFAULT_MAX_CONCURRENCY


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("NNN_SESSION_PATH", str(tmp_path / "s.json"))
    clean_env.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    clean_env.setenv("LOG_LEVEL", "DEBUG")
    clean_env.setenv("MAX_CONCURRENCY", "2")

    config = load_config()

    assert config.session_path == str(tmp_path / "s.json")
    assert config.output_dir == str(tmp_path / "out")
    assert config.log_level == "debug"
    assert config.max_concurrency == 2


@pytest.mark.parametrize("value", ["0", "-3", "many"])
def test_invalid_concurrency_falls_back(clean_env, value):
    clean_env.setenv("MAX_CONCURRENCY", value)

    assert load_config().max_concurrency == DEFAULT_MAX_CONCURRENCY


def test_unknown_log_level_falls_back_to_info():
    assert normalize_log_level("verbose") == "info"
    assert normalize_log_level(" Warn ") == "warn"


def test_download_arguments(clean_env):
    args = parse_args(["--output", "/tmp/out", "download", "--course-id", "5", "--chapter", "1", "--chapter", "2"])

    assert args.command == "download"
    assert args.course_id == 5
    assert args.chapter == [1, 2]
    assert args.lesson_id == []
    assert args.output == "/tmp/out"
    assert args.max_concurrency == DEFAULT_MAX_CONCURRENCY
    assert not args.first_lecture_only
