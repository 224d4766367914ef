"""Thumbnail generation from video frames.

Capture runs in two phases. Phase A opens the source directly and tries each
candidate timestamp in order, returning the first frame that decodes and
encodes. Phase B is entered only when every candidate failed: the first bytes
of a remote source are fetched with an HTTP range request into a temporary
file and a frame is captured from that partial copy at the fallback second.
Hosts that reject the decoder's own requests usually still answer a plain
ranged GET.

The generator never raises. Callers get a CaptureResult that is truthy when
an image was produced and falsy when no thumbnail could be generated.
"""
import asyncio
import logging
import math
import os
import tempfile
import threading
from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import urlparse

import cv2
import httpx
import numpy as np

from studio.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_ASPECT = 16 / 9
PARTIAL_CONTENT_OK = {200, 206}
VIDEO_SUFFIXES = {".mp4", ".m4v", ".mov", ".webm", ".mkv"}


@dataclass(frozen=True)
class CaptureResult:
    image: bytes | None = None
    width: int = 0
    height: int = 0
    timestamp: float | None = None

    def __bool__(self) -> bool:
        return self.image is not None


NO_RESULT = CaptureResult()


class CaptureAborted(Exception):
    """The attempt timed out; raised inside the worker thread to stop early."""


class VideoHandle(Protocol):
    """An opened decoding resource. The generator releases every handle it opens exactly once."""

    @property
    def duration(self) -> float:
        """Length in seconds, or 0 when the container does not report it."""
        ...

    def prime(self) -> None:
        ...

    def frame_at(self, seconds: float) -> np.ndarray | None:
        """Seek and decode one BGR frame. None when the seek cannot be satisfied."""
        ...

    def release(self) -> None:
        ...


VideoOpener = Callable[[str, float], VideoHandle]


class OpenCVVideo:
    """VideoHandle backed by ``cv2.VideoCapture`` with the FFmpeg backend."""

    def __init__(self, source: str, timeout: float):
        timeout_ms = int(timeout * 1000)
        self._cap = cv2.VideoCapture(
            source,
            cv2.CAP_FFMPEG,
            [cv2.CAP_PROP_OPEN_TIMEOUT_MSEC, timeout_ms, cv2.CAP_PROP_READ_TIMEOUT_MSEC, timeout_ms],
        )
        if not self._cap.isOpened():
            self._cap.release()
            raise IOError(f"cannot open video source {source}")

    @property
    def duration(self) -> float:
        fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        frames = self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        if fps <= 0 or frames <= 0:
            return 0.0
        return frames / fps

    def prime(self) -> None:
        # Decode one frame before seeking, otherwise some codecs hand back a black frame.
        self._cap.grab()

    def frame_at(self, seconds: float) -> np.ndarray | None:
        if not self._cap.set(cv2.CAP_PROP_POS_MSEC, seconds * 1000.0):
            return None
        ok, frame = self._cap.read()
        return frame if ok else None

    def release(self) -> None:
        self._cap.release()


def normalize_timestamps(
    candidates: float | Iterable[float] | None = None,
    fallback: float | None = None,
    default: float | None = None,
) -> list[float]:
    """Deduplicate candidate seconds in order and append the fallback second exactly once."""
    fallback = float(settings.THUMBNAIL_FALLBACK_SECOND if fallback is None else fallback)
    if candidates is None:
        candidates = [settings.THUMBNAIL_DEFAULT_SECOND if default is None else default]
    elif isinstance(candidates, (int, float, str)):
        candidates = [candidates]

    ordered: list[float] = []
    for value in candidates:
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(seconds) or seconds < 0:
            continue
        if seconds == fallback or seconds in ordered:
            continue
        ordered.append(seconds)
    ordered.append(fallback)
    return ordered


def effective_seek_target(candidate: float, duration: float) -> float:
    if 0 < duration < candidate:
        return duration / 2
    return candidate


def frame_size(width: int, native_width: int, native_height: int) -> tuple[int, int]:
    if native_width > 0 and native_height > 0:
        aspect = native_width / native_height
    else:
        aspect = DEFAULT_ASPECT
    return width, max(1, round(width / aspect))


def encode_jpeg(frame: np.ndarray, width: int, quality: int) -> tuple[bytes, int, int]:
    native_height, native_width = frame.shape[:2]
    size = frame_size(width, native_width, native_height)
    resized = cv2.resize(frame, size, interpolation=cv2.INTER_AREA)
    ok, buffer = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("frame could not be encoded as JPEG")
    return buffer.tobytes(), size[0], size[1]


def is_remote(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def _suffix_for(source: str) -> str:
    suffix = PurePosixPath(urlparse(source).path).suffix.lower()
    return suffix if suffix in VIDEO_SUFFIXES else ".mp4"


@contextmanager
def temporary_file(data: bytes, suffix: str = ".mp4"):
    """Materialize bytes as a temporary file that is removed on exit."""
    fd, path = tempfile.mkstemp(prefix="thumb-", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


class ThumbnailGenerator:
    def __init__(
        self,
        *,
        width: int | None = None,
        jpeg_quality: int | None = None,
        capture_timeout: float | None = None,
        fetch_timeout: float | None = None,
        partial_bytes: int | None = None,
        fallback_second: float | None = None,
        opener: VideoOpener = OpenCVVideo,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.width = width or settings.THUMBNAIL_WIDTH
        self.jpeg_quality = jpeg_quality or settings.THUMBNAIL_JPEG_QUALITY
        self.capture_timeout = capture_timeout or settings.THUMBNAIL_CAPTURE_TIMEOUT
        self.fetch_timeout = fetch_timeout or settings.THUMBNAIL_FETCH_TIMEOUT
        self.partial_bytes = partial_bytes or settings.THUMBNAIL_PARTIAL_BYTES
        self.fallback_second = float(
            settings.THUMBNAIL_FALLBACK_SECOND if fallback_second is None else fallback_second
        )
        self.opener = opener
        self.http_client = http_client

    async def generate(
        self,
        source: str,
        timestamps: float | Iterable[float] | None = None,
    ) -> CaptureResult:
        """Capture a JPEG thumbnail from ``source``. Never raises."""
        try:
            for seconds in normalize_timestamps(timestamps, fallback=self.fallback_second):
                result = await self._attempt(source, seconds)
                if result:
                    logger.info("[Thumbnails] Captured %s at %.2fs", source, result.timestamp)
                    return result
            logger.info("[Thumbnails] Direct capture failed for %s, trying partial fetch", source)
            return await self._partial_fallback(source)
        except Exception:
            logger.exception("[Thumbnails] Unexpected error while capturing %s", source)
            return NO_RESULT

    async def _attempt(self, source: str, seconds: float) -> CaptureResult:
        abort = threading.Event()
        worker = asyncio.ensure_future(asyncio.to_thread(self._capture, source, seconds, abort))
        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self.capture_timeout)
        except asyncio.TimeoutError:
            abort.set()
            logger.warning("[Thumbnails] Capture at %.2fs timed out for %s", seconds, source)
            # The handle is released before another attempt opens the source.
            await asyncio.gather(worker, return_exceptions=True)
        except Exception as e:
            logger.warning("[Thumbnails] Capture at %.2fs failed for %s: %s", seconds, source, e)
        return NO_RESULT

    def _capture(self, source: str, seconds: float, abort: threading.Event) -> CaptureResult:
        handle = self.opener(source, self.capture_timeout)
        try:
            _check(abort)
            target = effective_seek_target(seconds, handle.duration)
            handle.prime()
            _check(abort)
            frame = handle.frame_at(target)
            if frame is None:
                raise ValueError(f"seek to {target:.2f}s failed")
            _check(abort)
            image, width, height = encode_jpeg(frame, self.width, self.jpeg_quality)
        finally:
            handle.release()
        return CaptureResult(image=image, width=width, height=height, timestamp=target)

    async def _partial_fallback(self, source: str) -> CaptureResult:
        if not is_remote(source):
            logger.info("[Thumbnails] No partial fetch for local source %s", source)
            return NO_RESULT
        data = await self._fetch_prefix(source)
        if not data:
            return NO_RESULT
        try:
            with temporary_file(data, suffix=_suffix_for(source)) as path:
                # Only the header and first frames are present in the partial copy.
                result = await self._attempt(path, self.fallback_second)
        except OSError as e:
            logger.warning("[Thumbnails] Could not remove partial copy for %s: %s", source, e)
            return NO_RESULT
        if not result:
            logger.info("[Thumbnails] Partial copy of %s had no decodable frame", source)
        return result

    async def _fetch_prefix(self, url: str) -> bytes | None:
        try:
            return await asyncio.wait_for(self._read_range(url), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning("[Thumbnails] Range request timed out for %s", url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("[Thumbnails] Range request failed for %s: %s", url, e)
        return None

    async def _read_range(self, url: str) -> bytes | None:
        headers = {"Range": f"bytes=0-{self.partial_bytes - 1}"}
        async with self._client() as client:
            async with client.stream("GET", url, headers=headers) as response:
                if response.status_code not in PARTIAL_CONTENT_OK:
                    logger.warning("[Thumbnails] Range request for %s returned HTTP %s", url, response.status_code)
                    return None
                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) >= self.partial_bytes:
                        break
                return bytes(buffer[: self.partial_bytes])

    @asynccontextmanager
    async def _client(self):
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(follow_redirects=True, timeout=self.fetch_timeout) as client:
            yield client


def _check(abort: threading.Event) -> None:
    if abort.is_set():
        raise CaptureAborted()


async def generate_thumbnail(
    source: str,
    timestamps: float | Iterable[float] | None = None,
    **options,
) -> CaptureResult:
    return await ThumbnailGenerator(**options).generate(source, timestamps)
