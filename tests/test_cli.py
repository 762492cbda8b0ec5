"""
Tests for the command-line interface.
"""

import logging

import pytest
from typer.testing import CliRunner

from reelcache import __version__
from reelcache.cli import app as cli_app
from reelcache.storage import ConfigManager

runner = CliRunner()


@pytest.fixture
def media_root(tmp_path, monkeypatch):
    """Points the CLI at a config file rooted in a temporary directory."""
    config_file = tmp_path / "conf" / "config.ini"
    ConfigManager(config_file).save_new_config(
        {
            "media_root": tmp_path / "media",
            "index_path": tmp_path / "dlindex.json",
            "playback_path": tmp_path / "videopersistance.json",
        }
    )
    monkeypatch.setattr(cli_app, "CONFIG_FILE", config_file)
    return tmp_path / "media"


def invoke(*args):
    return runner.invoke(cli_app.app, list(args))


def test_version():
    result = invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.fixture
def restore_log_levels():
    loggers = [logging.getLogger(), logging.getLogger("reelcache")]
    levels = [logger.level for logger in loggers]
    yield
    for logger, level in zip(loggers, levels):
        logger.setLevel(level)


@pytest.mark.parametrize(
    "flags,reelcache_level,root_debug",
    [
        ([], logging.INFO, False),
        (["-v"], logging.DEBUG, False),
        (["-vv"], logging.DEBUG, True),
    ],
)
def test_verbosity_flags(
    media_root, restore_log_levels, flags, reelcache_level, root_debug
):
    logging.getLogger().setLevel(logging.INFO)

    result = invoke(*flags, "index")

    assert result.exit_code == 0
    assert logging.getLogger("reelcache").level == reelcache_level
    assert (logging.getLogger().level == logging.DEBUG) is root_debug


def test_init_writes_default_config(tmp_path, monkeypatch):
    config_file = tmp_path / "fresh" / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", config_file)

    result = invoke("init", "--force")

    assert result.exit_code == 0
    assert "media_root" in config_file.read_text()


def test_show_config(media_root):
    result = invoke("--show-config")
    assert result.exit_code == 0
    assert "progress_interval" in result.output


def test_invalid_config_exits_with_error(tmp_path, monkeypatch):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[DEFAULT]\nmax_connections = 0\n")
    monkeypatch.setattr(cli_app, "CONFIG_FILE", config_file)

    result = invoke("index")

    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_position_set_and_get(media_root):
    result = invoke("position", "m/clip.mp4", "--set", "42.5")
    assert result.exit_code == 0
    assert "42.5s" in result.output

    result = invoke("position", "m/clip.mp4")
    assert result.exit_code == 0
    assert "42.5s" in result.output


def test_position_rejects_non_finite_time(media_root, tmp_path):
    result = invoke("position", "m/clip.mp4", "--set", "nan")
    assert result.exit_code == 2
    assert not (tmp_path / "videopersistance.json").exists()


def test_lookup_of_unknown_origin_fails(media_root):
    result = invoke("lookup", "https://site.example/movie/unknown")
    assert result.exit_code == 1
    assert "Not cached." in result.output


def test_empty_index(media_root):
    result = invoke("index")
    assert result.exit_code == 0
    assert "The cache index is empty." in result.output


def test_status_reports_readiness(media_root):
    result = invoke("status", "m/clip.mp4")
    assert result.exit_code == 0
    assert "missing" in result.output

    (media_root / "m").mkdir(parents=True)
    (media_root / "m" / "clip.mp4").write_bytes(b"\x00" * 16)

    result = invoke("status", "m/clip.mp4")
    assert result.exit_code == 0
    assert "ready" in result.output


def test_fetch_rejects_malformed_url(media_root):
    result = invoke(
        "fetch", "https://site.example/movie/x", "https://cdn.example.com/clip.mp4"
    )
    assert result.exit_code == 1
    assert "UnrecognizedURLShapeError" in result.output


def test_clean_partials(media_root):
    (media_root / "m").mkdir(parents=True)
    (media_root / "m" / "old.partial").write_bytes(b"x")

    result = invoke("clean-partials", "--force")

    assert result.exit_code == 0
    assert "Removed 1 partial files." in result.output
    assert not (media_root / "m" / "old.partial").exists()
