"""
Tests for transfer admission and the in-flight registry.
"""

import asyncio

import pytest

from reelcache.core.admission import AdmissionOutcome, DownloadAdmission
from reelcache.core.in_flight import InFlightRegistry
from reelcache.storage import CacheIndex
from reelcache.utils.path import PathResolver

REMOTE = "https://cdn.example.com/X/m1/abc/clip.mp4"


class FakeLauncher:
    """Records launches and blocks each transfer until released."""

    def __init__(self):
        self.calls = []
        self.release = asyncio.Event()

    async def __call__(self, target, remote_url, origin):
        self.calls.append((target.key, remote_url, origin))
        await self.release.wait()
        return True


@pytest.fixture
def target(tmp_path):
    return PathResolver(tmp_path / "media").resolve(REMOTE)


@pytest.fixture
def registry():
    return InFlightRegistry()


@pytest.fixture
def cache_index(tmp_path):
    return CacheIndex(tmp_path / "dlindex.json")


class TestAdmit:
    @pytest.mark.asyncio
    async def test_concurrent_requests_launch_once(self, target, registry, cache_index):
        launcher = FakeLauncher()
        admission = DownloadAdmission(cache_index, registry, launcher)

        decisions = await asyncio.gather(
            *(admission.admit(target, f"origin-{i}", REMOTE) for i in range(5))
        )

        outcomes = [d.outcome for d in decisions]
        assert outcomes.count(AdmissionOutcome.START_NEW) == 1
        assert outcomes.count(AdmissionOutcome.ALREADY_IN_FLIGHT) == 4
        assert {str(d.reference) for d in decisions} == {
            f"USECACHESERVER/CachedVideo::{target.key}"
        }
        assert registry.remote_url(target.key) == REMOTE

        launcher.release.set()
        started = next(d for d in decisions if d.task is not None)
        assert await started.task is True
        assert len(launcher.calls) == 1

    @pytest.mark.asyncio
    async def test_existing_final_file_is_complete(self, target, registry, cache_index):
        target.final_path.write_bytes(b"done")
        launcher = FakeLauncher()
        admission = DownloadAdmission(cache_index, registry, launcher)

        decision = await admission.admit(target, "alias-origin", REMOTE)

        assert decision.outcome is AdmissionOutcome.ALREADY_COMPLETE
        assert decision.task is None
        assert launcher.calls == []
        assert await cache_index.lookup("alias-origin") == target.key

    @pytest.mark.asyncio
    async def test_existing_partial_file_is_in_flight(
        self, target, registry, cache_index
    ):
        target.partial_path.write_bytes(b"half")
        admission = DownloadAdmission(cache_index, registry, FakeLauncher())

        decision = await admission.admit(target, "origin", REMOTE)

        assert decision.outcome is AdmissionOutcome.ALREADY_IN_FLIGHT
        assert target.key not in registry


class TestInFlightRegistry:
    def test_complete_removes_entry(self, registry):
        registry.register("media/m/a.mp4", "https://x/a.mp4")
        assert "media/m/a.mp4" in registry

        registry.complete("media/m/a.mp4")

        assert "media/m/a.mp4" not in registry
        assert registry.remote_url("media/m/a.mp4") is None
        assert registry.failure("media/m/a.mp4") is None

    def test_failure_is_remembered_until_readmitted(self, registry):
        registry.register("media/m/a.mp4", "https://x/a.mp4")
        registry.fail("media/m/a.mp4", "boom")

        assert "media/m/a.mp4" not in registry
        assert registry.failure("media/m/a.mp4").reason == "boom"

        registry.register("media/m/a.mp4", "https://x/a.mp4")
        assert registry.failure("media/m/a.mp4") is None
        assert [e.final_path for e in registry.active()] == ["media/m/a.mp4"]
