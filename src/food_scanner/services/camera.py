"""Camera capture service.

One ``CameraService`` is built by the application container and shared by
everything that needs the camera, so at most one physical stream is open.
Starting a new stream always stops the previous one.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from PIL import Image

from food_scanner.domain.camera import (
    CameraDevice,
    CameraErrorInfo,
    CameraSettings,
    CapturedImage,
    FacingMode,
    StreamInfo,
)
from food_scanner.domain.errors import (
    CameraUnavailableError,
    DeviceError,
    FoodScannerError,
    NotActiveError,
    NotInitializedError,
    PermissionDeniedError,
)
from food_scanner.services.image_processing import (
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_WIDTH,
    DEFAULT_QUALITY,
    UNCOMPRESSED_QUALITY,
    compress_image,
    encode_jpeg,
)

_logger = logging.getLogger(__name__)

ERROR_DISPLAY_SECONDS = 5.0


class VideoStream(Protocol):
    """An open camera stream. Methods may block."""

    @property
    def is_active(self) -> bool:
        """Whether the stream still delivers frames."""

    def settings(self) -> CameraSettings:
        """Return the effective stream settings."""

    def read_frame(self) -> Image.Image:
        """Grab the current frame."""

    def stop(self) -> None:
        """Release the device."""


class CameraBackend(Protocol):
    """Device access layer.

    Implementations raise ``PermissionError`` when access is refused and
    ``OSError`` or ``RuntimeError`` for any other device failure.
    """

    def open_stream(self, settings: CameraSettings) -> VideoStream:
        """Open a stream matching the requested settings."""

    def list_devices(self) -> list[CameraDevice]:
        """Return available video inputs."""

    def permission_state(self) -> str:
        """Return ``granted``, ``denied`` or ``prompt``."""


class VideoSink(Protocol):
    """Preview target the running stream is attached to."""

    def bind(self, stream: VideoStream) -> None:
        """Attach a stream."""

    def unbind(self) -> None:
        """Detach the current stream."""


@dataclass
class PreviewSink(VideoSink):
    """Sink that keeps the bound stream for on-demand preview frames."""

    stream: VideoStream | None = None

    def bind(self, stream: VideoStream) -> None:
        self.stream = stream

    def unbind(self) -> None:
        self.stream = None

    async def snapshot(self) -> CapturedImage | None:
        """Encode the current frame, or None when nothing is bound."""
        stream = self.stream
        if stream is None or not stream.is_active:
            return None
        try:
            frame = await asyncio.to_thread(stream.read_frame)
        except (OSError, RuntimeError) as exc:
            raise DeviceError(f"Failed to read preview frame: {exc}") from exc
        return encode_jpeg(frame, UNCOMPRESSED_QUALITY)


@dataclass
class CameraService:
    """Owns the camera stream and turns frames into uploadable images."""

    backend: CameraBackend
    default_settings: CameraSettings = field(default_factory=CameraSettings)
    error_display_seconds: float = ERROR_DISPLAY_SECONDS
    clock: Callable[[], float] = time.monotonic
    _stream: VideoStream | None = field(default=None, init=False, repr=False)
    _sink: VideoSink | None = field(default=None, init=False, repr=False)
    _requested: CameraSettings | None = field(default=None, init=False, repr=False)
    _last_error: CameraErrorInfo | None = field(default=None, init=False, repr=False)

    def bind_sink(self, sink: VideoSink) -> None:
        """Attach the preview target streams are bound to."""
        self._sink = sink
        if self._stream is not None:
            sink.bind(self._stream)

    def unbind_sink(self) -> None:
        """Detach the preview target; the stream keeps running."""
        if self._sink is not None:
            self._sink.unbind()
        self._sink = None

    async def start(self, settings: CameraSettings | None = None) -> None:
        """Open a stream and return once its first frame is readable."""
        sink = self._sink
        if sink is None:
            raise self._record(CameraUnavailableError("Video sink not available"))
        requested = settings or self.default_settings
        if self._stream is not None:
            self.stop()
        self._last_error = None

        try:
            stream = await asyncio.to_thread(self.backend.open_stream, requested)
        except (OSError, RuntimeError) as exc:
            raise self._record(
                _map_backend_error(exc, "Failed to start camera")
            ) from exc

        sink.bind(stream)
        try:
            await asyncio.to_thread(stream.read_frame)
        except (OSError, RuntimeError) as exc:
            stream.stop()
            sink.unbind()
            raise self._record(DeviceError(f"Failed to load video: {exc}")) from exc

        self._stream = stream
        self._requested = requested
        _logger.info(
            "Camera started: facing_mode=%s device_id=%s",
            requested.facing_mode,
            requested.device_id,
        )

    def stop(self) -> None:
        """Release the stream and detach the sink. Safe to call repeatedly."""
        if self._stream is not None:
            self._stream.stop()
            self._stream = None
            _logger.info("Camera stopped")
        if self._sink is not None:
            self._sink.unbind()

    async def switch_camera(self) -> None:
        """Restart the stream with the opposite facing mode."""
        if not self.is_active():
            raise self._record(NotActiveError("Camera is not active"))
        base = self._requested or self.default_settings
        await self.start(
            replace(base, facing_mode=self._facing_mode().toggled(), device_id=None)
        )

    async def capture_image(
        self,
        max_width: int | None = None,
        max_height: int | None = None,
        quality: float | None = None,
    ) -> CapturedImage:
        """Grab the current frame as JPEG, compressed when any bound is given."""
        stream = self._stream
        if stream is None or not stream.is_active:
            raise self._record(NotInitializedError("Camera not initialized"))
        try:
            frame = await asyncio.to_thread(stream.read_frame)
        except (OSError, RuntimeError) as exc:
            raise self._record(DeviceError(f"Failed to capture image: {exc}")) from exc

        try:
            if max_width or max_height or quality:
                return compress_image(
                    frame,
                    max_width or DEFAULT_MAX_WIDTH,
                    max_height or DEFAULT_MAX_HEIGHT,
                    quality or DEFAULT_QUALITY,
                )
            return encode_jpeg(frame, UNCOMPRESSED_QUALITY)
        except FoodScannerError as exc:
            raise self._record(exc) from exc

    def is_active(self) -> bool:
        return self._stream is not None and self._stream.is_active

    def current_settings(self) -> CameraSettings | None:
        """Return the effective settings of the running stream."""
        if not self.is_active():
            return None
        return self._stream.settings()  # type: ignore[union-attr]

    def stream_info(self) -> StreamInfo:
        settings = self.current_settings()
        if settings is None:
            return StreamInfo(is_active=False)
        resolution = (
            (settings.width, settings.height)
            if settings.width and settings.height
            else None
        )
        return StreamInfo(
            is_active=True,
            device_id=settings.device_id,
            facing_mode=settings.facing_mode,
            resolution=resolution,
        )

    async def available_devices(self) -> list[CameraDevice]:
        """List video inputs."""
        try:
            return await asyncio.to_thread(self.backend.list_devices)
        except (OSError, RuntimeError) as exc:
            raise self._record(
                _map_backend_error(exc, "Failed to get camera devices")
            ) from exc

    def check_permissions(self) -> str:
        """Return the camera permission state, ``prompt`` when unknown."""
        try:
            return self.backend.permission_state()
        except (NotImplementedError, OSError):
            _logger.warning("Camera permission state unavailable", exc_info=True)
            return "prompt"

    async def request_permissions(self) -> bool:
        """Open and immediately close a probe stream."""
        try:
            probe = await asyncio.to_thread(
                self.backend.open_stream, CameraSettings(facing_mode=None)
            )
        except (OSError, RuntimeError):
            _logger.warning("Camera permission request failed", exc_info=True)
            return False
        probe.stop()
        return True

    def visible_error(self) -> CameraErrorInfo | None:
        """Return the last camera error until it expires."""
        error = self._last_error
        if error is None:
            return None
        if self.clock() - error.occurred_at >= self.error_display_seconds:
            self._last_error = None
            return None
        return error

    def clear_error(self) -> None:
        self._last_error = None

    def _facing_mode(self) -> FacingMode:
        settings = self.current_settings()
        if settings is not None and settings.facing_mode is not None:
            return settings.facing_mode
        return FacingMode.ENVIRONMENT

    def _record(self, error: FoodScannerError) -> FoodScannerError:
        _logger.warning("Camera error: %s", error)
        self._last_error = CameraErrorInfo(
            name=getattr(error, "name", type(error).__name__),
            message=str(error),
            occurred_at=self.clock(),
        )
        return error


def _map_backend_error(exc: Exception, message: str) -> FoodScannerError:
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(f"{message}: {exc}")
    return DeviceError(f"{message}: {exc}")
