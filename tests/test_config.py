"""Tests for subhls.config and the command line overrides."""

import pytest

from ass2hls import build_parser, settings_from_args
from subhls.config import Settings

ENV_NAMES = ["HLS_OUTPUT_PATH", "SEGMENT_DURATION", "HLS_LIST_SIZE", "QUEUE_POLICY", "SEGMENT_NAME_MILLIS",
             "MASTER_PLAYLIST", "SUBTITLE_LANGUAGE"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so values loaded from .env files are removed again on undo
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults(tmp_path):
    settings = Settings.from_env(str(tmp_path / "missing.env"))
    assert settings.segment_duration == 6.0
    assert settings.list_size == 5
    assert settings.policy == "gapfill"
    assert settings.master_path is None
    assert not settings.millis_names
    settings.validate()


def test_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SEGMENT_DURATION", "4")
    monkeypatch.setenv("HLS_LIST_SIZE", "8")
    monkeypatch.setenv("SEGMENT_NAME_MILLIS", "true")
    settings = Settings.from_env(str(tmp_path / "missing.env"))
    assert settings.segment_duration == 4.0
    assert settings.list_size == 8
    assert settings.millis_names


def test_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SUBTITLE_LANGUAGE=en\nQUEUE_POLICY=passthrough\n", encoding="utf-8")
    settings = Settings.from_env(str(env_file))
    assert settings.language == "en"
    assert settings.policy == "passthrough"


@pytest.mark.parametrize("field,value", [
    ("segment_duration", 0),
    ("list_size", 0),
    ("policy", "fifo"),
    ("idle_timeout", -1),
])
def test_validate_rejects(field, value):
    settings = Settings()
    setattr(settings, field, value)
    with pytest.raises(ValueError):
        settings.validate()


def test_cli_overrides_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("HLS_LIST_SIZE", "8")
    args = build_parser().parse_args([
        "-o", str(tmp_path / "sub" / "playlist.m3u8"),
        "-d", "2",
        "--policy", "passthrough",
        "--millis-names",
        "--env-file", str(tmp_path / "missing.env"),
    ])
    settings = settings_from_args(args)
    assert settings.output_path == str(tmp_path / "sub" / "playlist.m3u8")
    assert settings.output_dir == str(tmp_path / "sub")
    assert settings.segment_duration == 2.0
    assert settings.list_size == 8
    assert settings.policy == "passthrough"
    assert settings.millis_names
