"""
Tests for the JSON-backed cache and playback indexes and the config manager.
"""

import json
import math

import pytest
from pydantic import ValidationError

from reelcache.exceptions import ConfigurationError
from reelcache.storage import CacheIndex, ConfigManager, PlaybackIndex


class TestCacheIndex:
    @pytest.mark.asyncio
    async def test_round_trip_through_reload(self, tmp_path):
        path = tmp_path / "dlindex.json"
        index = CacheIndex(path)
        await index.add("https://site/a", "media/m/a.mp4")
        await index.add("https://site/b", "media/t/show/b.mp4")

        reloaded = CacheIndex(path)
        assert await reloaded.lookup("https://site/a") == "media/m/a.mp4"
        assert await reloaded.lookup("https://site/b") == "media/t/show/b.mp4"
        assert len(reloaded) == 2

    @pytest.mark.asyncio
    async def test_persisted_format(self, tmp_path):
        path = tmp_path / "dlindex.json"
        await CacheIndex(path).add("https://site/a", "media/m/a.mp4")
        assert json.loads(path.read_text()) == [
            {"origin": "https://site/a", "path": "media/m/a.mp4"}
        ]

    @pytest.mark.asyncio
    async def test_add_replaces_existing_origin(self, tmp_path):
        index = CacheIndex(tmp_path / "dlindex.json")
        await index.add("https://site/a", "media/m/old.mp4")
        await index.add("https://site/a", "media/m/new.mp4")

        records = await index.records()
        assert [r.path for r in records] == ["media/m/new.mp4"]

    @pytest.mark.asyncio
    async def test_duplicate_rows_resolve_to_first(self, tmp_path):
        path = tmp_path / "dlindex.json"
        path.write_text(
            json.dumps(
                [
                    {"origin": "o", "path": "first.mp4"},
                    {"origin": "o", "path": "second.mp4"},
                ]
            )
        )
        assert await CacheIndex(path).lookup("o") == "first.mp4"

    @pytest.mark.asyncio
    async def test_missing_file_starts_empty(self, tmp_path):
        index = CacheIndex(tmp_path / "absent.json")
        assert len(index) == 0
        assert await index.lookup("anything") is None

    @pytest.mark.asyncio
    async def test_malformed_file_is_logged_not_fatal(self, tmp_path, caplog):
        path = tmp_path / "dlindex.json"
        path.write_text("{not json")
        index = CacheIndex(path)

        assert len(index) == 0
        assert "Failed to load index" in caplog.text
        await index.add("o", "p.mp4")
        assert await CacheIndex(path).lookup("o") == "p.mp4"

    @pytest.mark.asyncio
    async def test_write_failure_keeps_memory_state(self, tmp_path, caplog):
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        index = CacheIndex(blocked)

        await index.add("o", "p.mp4")

        assert await index.lookup("o") == "p.mp4"
        assert "Failed to write index" in caplog.text

    @pytest.mark.asyncio
    async def test_records_are_copies(self, tmp_path):
        index = CacheIndex(tmp_path / "dlindex.json")
        await index.add("o", "p.mp4")
        (await index.records())[0].path = "tampered.mp4"
        assert await index.lookup("o") == "p.mp4"


class TestPlaybackIndex:
    @pytest.mark.asyncio
    async def test_unknown_path_defaults_to_zero(self, tmp_path):
        assert await PlaybackIndex(tmp_path / "p.json").get("media/m/a.mp4") == 0.0

    @pytest.mark.asyncio
    async def test_update_keeps_one_entry_with_latest_time(self, tmp_path):
        path = tmp_path / "p.json"
        index = PlaybackIndex(path)
        await index.update("media/m/a.mp4", 12.5)
        await index.update("media/m/a.mp4", 99.0)

        records = await index.records()
        assert len(records) == 1
        assert records[0].time == 99.0
        assert await PlaybackIndex(path).get("media/m/a.mp4") == 99.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_time", [math.nan, math.inf, -math.inf])
    async def test_non_finite_time_is_rejected_and_file_stays_loadable(
        self, tmp_path, bad_time
    ):
        path = tmp_path / "p.json"
        index = PlaybackIndex(path)
        await index.update("media/m/keep.mp4", 42.0)

        with pytest.raises(ValidationError):
            await index.update("media/m/broken.mp4", bad_time)

        assert len(index) == 1
        reloaded = PlaybackIndex(path)
        assert await reloaded.get("media/m/keep.mp4") == 42.0
        assert await reloaded.get("media/m/broken.mp4") == 0.0


class TestConfigManager:
    def test_missing_file_yields_defaults(self, tmp_path):
        config = ConfigManager(tmp_path / "config.ini").load_config()
        assert config.progress_interval == 2.0
        assert config.speed_smoothing == 0.25
        assert config.media_root.as_posix() == "media"

    def test_saved_config_round_trips(self, tmp_path):
        manager = ConfigManager(tmp_path / "conf" / "config.ini")
        manager.save_new_config(
            {"media_root": tmp_path / "library", "origin_base": "https://site.example"}
        )

        config = manager.load_config()
        assert config.media_root == tmp_path / "library"
        assert config.origin_base == "https://site.example"
        assert config.read_timeout == 90.0

    def test_cli_options_override_file(self, tmp_path):
        manager = ConfigManager(tmp_path / "config.ini")
        manager.save_new_config()
        config = manager.load_config({"progress_interval": 0.5})
        assert config.progress_interval == 0.5

    def test_missing_keys_are_migrated(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[DEFAULT]\nmedia_root = videos\n")

        config = ConfigManager(path).load_config()

        assert config.media_root.as_posix() == "videos"
        assert "probe_timeout" in path.read_text()

    @pytest.mark.parametrize(
        "line",
        ["progress_interval = 0", "speed_smoothing = 1.5", "origin_base = ftp://x"],
    )
    def test_invalid_values_raise(self, tmp_path, line):
        path = tmp_path / "config.ini"
        path.write_text(f"[DEFAULT]\n{line}\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(path).load_config()
