from __future__ import annotations

import asyncio
import math
import os

import httpx
import numpy as np
import pytest

from studio.services.thumbnail_service import (
    NO_RESULT,
    CaptureResult,
    ThumbnailGenerator,
    effective_seek_target,
    frame_size,
    generate_thumbnail,
    normalize_timestamps,
    temporary_file,
)
from tests.fakes import FRAME, FakeOpener, remote_only_fails

URL = "https://cdn.example.com/videos/clip.mp4"


def _run(generator_kwargs, source=URL, timestamps=None, handler=None):
    """Run one generation; returns (result, list of HTTP requests seen)."""
    requests: list[httpx.Request] = []

    def default_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def recording(request: httpx.Request):
        requests.append(request)
        response = (handler or default_handler)(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    async def _go() -> CaptureResult:
        async with httpx.AsyncClient(transport=httpx.MockTransport(recording)) as client:
            generator = ThumbnailGenerator(http_client=client, **generator_kwargs)
            return await generator.generate(source, timestamps)

    return asyncio.run(_go()), requests


# --- timestamp handling ---------------------------------------------------


def test_normalize_defaults_to_seven_seconds_then_fallback():
    assert normalize_timestamps() == [7.0, 1.0]


def test_normalize_accepts_single_value():
    assert normalize_timestamps(12) == [12.0, 1.0]
    assert normalize_timestamps("4.5") == [4.5, 1.0]


def test_normalize_dedupes_and_keeps_one_trailing_fallback():
    assert normalize_timestamps([1.0, 7, 7.0, 4, 1, 12]) == [7.0, 4.0, 12.0, 1.0]


def test_normalize_is_idempotent():
    once = normalize_timestamps([3, 1, 3, 9])
    assert normalize_timestamps(once) == once
    assert once.count(1.0) == 1
    assert once[-1] == 1.0


def test_normalize_drops_invalid_values():
    assert normalize_timestamps([-2, math.nan, "abc", None, 5]) == [5.0, 1.0]
    assert normalize_timestamps([]) == [1.0]


def test_effective_seek_target_halves_short_videos():
    assert effective_seek_target(7, 3.0) == 1.5
    assert effective_seek_target(7, 12.0) == 7
    # Unknown duration keeps the requested point.
    assert effective_seek_target(7, 0.0) == 7


def test_frame_size_follows_native_aspect():
    assert frame_size(960, 1920, 1080) == (960, 540)
    assert frame_size(960, 1080, 1920) == (960, 1707)


def test_frame_size_defaults_to_sixteen_by_nine():
    assert frame_size(960, 0, 0) == (960, 540)


def test_temporary_file_is_removed_on_error():
    with pytest.raises(RuntimeError):
        with temporary_file(b"abc") as path:
            assert os.path.getsize(path) == 3
            raise RuntimeError("boom")
    assert not os.path.exists(path)


# --- phase A: direct capture ----------------------------------------------


def test_captures_at_first_candidate_without_fallback():
    opener = FakeOpener(duration=12.0)

    result, requests = _run({"opener": opener}, timestamps=[7])

    assert result
    assert result.image.startswith(b"\xff\xd8")
    assert (result.width, result.height) == (960, 540)
    assert result.timestamp == 7.0
    assert opener.seek_targets == [7.0]
    assert opener.opened == [URL]
    assert opener.released == [URL]
    assert opener.primed == [URL]
    assert requests == []


def test_short_video_seeks_to_half_duration():
    opener = FakeOpener(duration=3.0)

    result, requests = _run({"opener": opener}, timestamps=[7])

    assert result
    assert result.timestamp == 1.5
    assert opener.seek_targets == [1.5]
    assert requests == []


def test_failed_seek_moves_to_next_candidate():
    opener = FakeOpener(frames=lambda source, seconds: None if seconds == 7.0 else FRAME)

    result, _ = _run({"opener": opener}, timestamps=[7, 4])

    assert result.timestamp == 4.0
    assert opener.seek_targets == [7.0, 4.0]
    assert len(opener.released) == 2


def test_unencodable_frame_counts_as_candidate_failure():
    empty = np.zeros((0, 0, 3), dtype=np.uint8)
    opener = FakeOpener(frames=lambda source, seconds: empty if seconds == 7.0 else FRAME)

    result, _ = _run({"opener": opener}, timestamps=[7])

    assert result.timestamp == 1.0
    assert opener.seek_targets == [7.0, 1.0]


def test_capture_timeout_advances_to_next_candidate():
    opener = FakeOpener(delay=lambda source, seconds: 0.5 if seconds == 7.0 else 0)

    result, _ = _run({"opener": opener, "capture_timeout": 0.05}, timestamps=[7])

    assert result
    assert result.timestamp == 1.0
    # The timed-out attempt is torn down before the next one opens.
    assert opener.released == opener.opened == [URL, URL]
    assert opener.seek_targets == [7.0, 1.0]


def test_timed_out_attempts_release_their_handles_before_returning():
    opener = FakeOpener(delay=lambda source, seconds: 0.3)

    result, requests = _run({"opener": opener, "capture_timeout": 0.05}, timestamps=[7])

    assert not result
    assert len(requests) == 1
    assert opener.released == opener.opened == [URL, URL]


def test_partial_copy_outlives_a_timed_out_capture():
    opener = FakeOpener(open_fails=remote_only_fails, delay=lambda source, seconds: 0.3)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(206, content=b"\x00" * 100)

    result, _ = _run({"opener": opener, "capture_timeout": 0.05}, handler=handler)

    assert not result
    local = opener.opened[-1]
    assert opener.released == [local]
    assert opener.existed_at_release == {local: True}
    assert not os.path.exists(local)


def test_portrait_frames_keep_their_aspect():
    portrait = np.zeros((1920, 1080, 3), dtype=np.uint8)
    opener = FakeOpener(frames=lambda source, seconds: portrait)

    result, _ = _run({"opener": opener, "width": 480})

    assert (result.width, result.height) == (480, 853)


# --- phase B: partial fetch fallback ---------------------------------------


def test_blocked_host_falls_back_to_partial_fetch():
    opener = FakeOpener(open_fails=remote_only_fails)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(206, content=b"\x00" * 4096)

    result, requests = _run({"opener": opener}, timestamps=[7], handler=handler)

    assert result
    assert result.timestamp == 1.0
    assert len(requests) == 1
    assert requests[0].method == "GET"
    assert requests[0].headers["Range"] == "bytes=0-1999999"
    assert opener.opened[:2] == [URL, URL]
    local = opener.opened[2]
    assert local.endswith(".mp4")
    assert opener.seek_targets == [1.0]
    assert not os.path.exists(local)
    assert opener.released == [local]


def test_partial_fetch_always_uses_fallback_second():
    opener = FakeOpener(open_fails=remote_only_fails)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x00" * 100)

    result, _ = _run({"opener": opener}, timestamps=[30, 20, 10], handler=handler)

    assert result.timestamp == 1.0
    assert opener.opened.count(URL) == 4


def test_plain_ok_response_is_truncated_to_partial_size():
    opener = FakeOpener(open_fails=remote_only_fails)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x01" * 5000)

    result, requests = _run({"opener": opener, "partial_bytes": 1000}, handler=handler)

    assert result
    assert requests[0].headers["Range"] == "bytes=0-999"
    local = opener.opened[-1]
    assert opener.file_sizes[local] == 1000


@pytest.mark.parametrize("status_code", [404, 416, 500, 302])
def test_fallback_rejects_other_statuses(status_code):
    opener = FakeOpener(open_fails=remote_only_fails)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=b"\x00" * 100)

    result, requests = _run({"opener": opener}, handler=handler)

    assert result is NO_RESULT
    assert not result
    assert len(requests) == 1
    assert opener.opened == [URL, URL]
    assert opener.released == []


def test_fallback_fetch_timeout_gives_no_result():
    opener = FakeOpener(open_fails=remote_only_fails)

    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(206, content=b"\x00" * 100)

    result, _ = _run({"opener": opener, "fetch_timeout": 0.05}, handler=slow)

    assert not result
    assert opener.opened == [URL, URL]


def test_unreachable_source_never_raises():
    opener = FakeOpener(open_fails=lambda source: True)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    result, requests = _run({"opener": opener}, handler=handler)

    assert not result
    assert len(requests) == 1
    assert opener.released == []


def test_partial_bytes_without_decodable_frame_fail_quietly():
    opener = FakeOpener(open_fails=remote_only_fails, frames=lambda source, seconds: None)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(206, content=b"\x00" * 100)

    result, _ = _run({"opener": opener}, handler=handler)

    assert not result
    local = opener.opened[-1]
    assert not os.path.exists(local)
    assert opener.released == [local]


def test_local_source_skips_partial_fetch(tmp_path):
    source = tmp_path / "broken.mp4"
    source.write_bytes(b"not a video")
    opener = FakeOpener(open_fails=lambda s: True)

    result, requests = _run({"opener": opener}, source=str(source))

    assert not result
    assert requests == []
    assert opener.opened == [str(source), str(source)]


def test_generate_thumbnail_helper_passes_options(tmp_path):
    opener = FakeOpener(duration=20.0)
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"\x00")

    result = asyncio.run(generate_thumbnail(str(source), [15], opener=opener, width=320))

    assert result.timestamp == 15.0
    assert (result.width, result.height) == (320, 180)
