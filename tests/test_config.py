"""Tests for configuration loading, validation, and the entry point."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import harvest_portal_videos as hp
from portal_harvest import config
from portal_harvest.errors import ConfigurationError, TransportError
from portal_harvest.models import DEFAULT_RETRY_POLICY, ENV_COOKIE, ENV_DIRECTORY, HarvestSummary


def make_args(**overrides):
    defaults = {
        "cookie": "session=abc",
        "cookie_file": None,
        "dir": "videos",
        "page_size": 10,
        "limit": None,
        "retry_count": 3,
        "retry_delay": 0.05,
        "retry_backoff": 10.0,
        "timeout": 60.0,
        "base_url": "https://media.fhs.cuni.cz",
        "lang": "cs",
        "downloader": "ffmpeg",
        "ffmpeg": "ffmpeg",
        "error_log": None,
        "list_only": False,
        "check_session": False,
        "verbose": False,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_build_settings_produces_credential_and_policy():
    settings = config.build_settings(make_args(retry_count=5, retry_delay=1.0, retry_backoff=2.0))

    assert settings.credential.cookie == "session=abc"
    assert "session=abc" not in repr(settings.credential)
    assert settings.directory == Path("videos")
    assert settings.retry_policy.max_attempts == 5
    assert settings.retry_policy.delay_for(2) == pytest.approx(2.0)


def test_default_arguments_use_default_retry_policy(tmp_path):
    args = config.parse_args(["--config", str(tmp_path / "missing.json"), "--cookie", "c", "--dir", "out"])

    settings = config.build_settings(args)

    assert settings.retry_policy == DEFAULT_RETRY_POLICY
    assert settings.page_size == 10
    assert settings.downloader == "ffmpeg"


def test_missing_cookie_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="--cookie"):
        config.build_settings(make_args(cookie=None))


def test_missing_directory_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="--dir"):
        config.build_settings(make_args(dir=None))


def test_directory_is_optional_when_only_listing():
    settings = config.build_settings(make_args(dir=None, list_only=True))

    assert settings.list_only is True


def test_cookie_file_is_read_and_stripped(tmp_path):
    cookie_file = tmp_path / "cookie.txt"
    cookie_file.write_text("session=from-file\n", encoding="utf-8")

    settings = config.build_settings(make_args(cookie=None, cookie_file=str(cookie_file)))

    assert settings.credential.cookie == "session=from-file"


def test_unreadable_cookie_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="cookie file"):
        config.build_settings(make_args(cookie=None, cookie_file=str(tmp_path / "nope.txt")))


@pytest.mark.parametrize(
    "overrides",
    [
        {"retry_count": 0},
        {"retry_backoff": 0},
        {"page_size": 0},
        {"limit": 0},
        {"timeout": -5},
        {"timeout": 0},
        {"timeout": "soon"},
        {"downloader": "curl"},
    ],
)
def test_invalid_values_are_configuration_errors(overrides):
    with pytest.raises(ConfigurationError):
        config.build_settings(make_args(**overrides))


def test_environment_fills_missing_cookie_and_directory():
    args = make_args(cookie=None, dir=None)

    config.apply_environment_defaults(args, environ={ENV_COOKIE: "  session=env  ", ENV_DIRECTORY: "/data/videos"})

    assert args.cookie == "session=env"
    assert args.dir == "/data/videos"


def test_cli_values_take_precedence_over_environment():
    args = make_args(cookie="session=cli", dir="cli-dir")

    config.apply_environment_defaults(args, environ={ENV_COOKIE: "session=env", ENV_DIRECTORY: "env-dir"})

    assert args.cookie == "session=cli"
    assert args.dir == "cli-dir"


def test_cookie_file_takes_precedence_over_environment():
    args = make_args(cookie=None, cookie_file="cookie.txt")

    config.apply_environment_defaults(args, environ={ENV_COOKIE: "session=env"})

    assert args.cookie is None


def test_config_file_supplies_defaults(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"page_size": 25, "downloader": "yt-dlp", "dir": "from-config", "shiny": True}),
        encoding="utf-8",
    )

    args = config.parse_args(["--config", str(config_path), "--cookie", "c", "--dir", "from-cli"])

    assert args.page_size == 25
    assert args.downloader == "yt-dlp"
    assert args.dir == "from-cli"
    captured = capsys.readouterr()
    assert "Unknown config keys ignored: shiny" in captured.err
    assert f"Loaded configuration from {config_path}" in captured.out


def test_invalid_config_file_is_ignored(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text("{not json", encoding="utf-8")

    assert config.load_config_file(str(config_path)) == {}
    assert "Failed to parse config file" in capsys.readouterr().err


def test_negative_timeout_from_config_file_is_rejected(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"timeout": -5}), encoding="utf-8")

    args = config.parse_args(["--config", str(config_path), "--cookie", "c", "--dir", str(tmp_path)])

    with pytest.raises(ConfigurationError, match="Invalid timeout"):
        config.build_settings(args)


@pytest.mark.parametrize("value", ["0", "-3", "abc"])
def test_positive_int_rejects_bad_values(value):
    with pytest.raises(argparse.ArgumentTypeError):
        config.positive_int(value)


def test_main_without_cookie_exits_with_configuration_error(monkeypatch: pytest.MonkeyPatch, tmp_path, capsys):
    monkeypatch.delenv(ENV_COOKIE, raising=False)
    called = []
    monkeypatch.setattr(hp, "harvest_catalog", lambda *a, **k: called.append(a))

    code = hp.main(["--config", str(tmp_path / "missing.json"), "--dir", str(tmp_path / "out")])

    assert code == 2
    assert called == []
    assert not (tmp_path / "out").exists()
    assert "No cookie specified" in capsys.readouterr().err


def test_main_creates_directory_and_runs_harvest(monkeypatch: pytest.MonkeyPatch, tmp_path):
    captured = {}

    def fake_harvest(client, credential, directory, downloader, **kwargs):
        captured.update(client=client, credential=credential, directory=directory, downloader=downloader, **kwargs)
        return HarvestSummary(processed=1, downloaded=1)

    monkeypatch.setattr(hp, "harvest_catalog", fake_harvest)
    target = tmp_path / "nested" / "videos"

    code = hp.main([
        "--config", str(tmp_path / "missing.json"),
        "--cookie", "session=abc",
        "--dir", str(target),
        "--page-size", "20",
        "--base-url", "https://portal.test/",
    ])

    assert code == 0
    assert target.is_dir()
    assert captured["credential"].cookie == "session=abc"
    assert captured["directory"] == target
    assert captured["page_size"] == 20
    assert captured["client"].search_url == "https://portal.test/cs/MediaAjax/Search"
    assert captured["downloader"].name == "ffmpeg"


def test_main_reports_enumeration_failure_with_exit_code(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setattr(
        hp,
        "harvest_catalog",
        lambda *a, **k: HarvestSummary(processed=0, enumeration_error=TransportError("down")),
    )

    code = hp.main(["--config", str(tmp_path / "missing.json"), "--cookie", "c", "--dir", str(tmp_path)])

    assert code == 1


def test_main_check_session_delegates_to_health_check(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setattr(hp, "run_health_check", lambda client, credential, policy: 0)

    code = hp.main(["--config", str(tmp_path / "missing.json"), "--cookie", "c", "--check-session"])

    assert code == 0
