"""Tests for settings loading."""

from pathlib import Path

import pytest

from settings import MissingCredentialError, Settings, load_settings


def test_missing_credential():
    with pytest.raises(MissingCredentialError):
        load_settings({})


def test_blank_credential():
    with pytest.raises(MissingCredentialError):
        load_settings({"OHGO_APIKEY": "   "})


def test_defaults():
    settings = load_settings({"OHGO_APIKEY": "abc"})

    assert settings == Settings(api_key="abc")
    assert settings.base_url == "https://publicapi.ohgo.com/api/v1"
    assert settings.timeout == 30.0
    assert settings.output_dir == Path("snapshots")


def test_overrides():
    settings = load_settings({
        "OHGO_APIKEY": "abc",
        "OHGO_BASE_URL": "https://api.example.test/v2",
        "OHGO_LOCATION_FORMAT": "text",
        "OHGO_OUTPUT_DIR": "/tmp/cams",
        "OHGO_TIMEOUT": "10",
        "OHGO_WORKERS": "4",
    })

    assert settings.base_url == "https://api.example.test/v2"
    assert settings.location_format == "text"
    assert settings.output_dir == Path("/tmp/cams")
    assert settings.timeout == 10.0
    assert settings.workers == 4


def test_bad_worker_count():
    with pytest.raises(ValueError):
        load_settings({"OHGO_APIKEY": "abc", "OHGO_WORKERS": "0"})


def test_reads_dotenv_file(tmp_path, monkeypatch):
    monkeypatch.setenv("OHGO_APIKEY", "")
    monkeypatch.delenv("OHGO_APIKEY")
    env_file = tmp_path / ".env"
    env_file.write_text("OHGO_APIKEY=from-dotenv\n")

    settings = load_settings(dotenv_path=str(env_file))

    assert settings.api_key == "from-dotenv"


@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_timeout(value):
    with pytest.raises(ValueError):
        load_settings({"OHGO_APIKEY": "abc", "OHGO_TIMEOUT": value})
