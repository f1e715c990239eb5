"""OpenCV-backed camera access."""

import logging
import os
from dataclasses import dataclass, field

import cv2
from PIL import Image

from food_scanner.domain.camera import CameraDevice, CameraSettings, FacingMode
from food_scanner.services.camera import CameraBackend, VideoStream

_logger = logging.getLogger(__name__)

_MAX_PROBED_DEVICES = 4


@dataclass
class OpenCVVideoStream(VideoStream):
    """A ``cv2.VideoCapture`` wrapped as a video stream."""

    capture: cv2.VideoCapture
    device_index: int
    facing_mode: FacingMode | None = None
    _stopped: bool = field(default=False, init=False)

    @property
    def is_active(self) -> bool:
        return not self._stopped and self.capture.isOpened()

    def settings(self) -> CameraSettings:
        width = int(self.capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self.capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return CameraSettings(
            width=width,
            height=height,
            facing_mode=self.facing_mode,
            device_id=str(self.device_index),
            aspect_ratio=width / height if height else None,
        )

    def read_frame(self) -> Image.Image:
        ok, frame = self.capture.read()
        if not ok or frame is None:
            raise RuntimeError(f"Camera {self.device_index} returned no frame")
        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    def stop(self) -> None:
        if not self._stopped:
            self.capture.release()
            self._stopped = True


@dataclass
class OpenCVCameraBackend(CameraBackend):
    """Opens local cameras by index; facing mode selects the configured index."""

    rear_index: int = 0
    front_index: int = 1

    def open_stream(self, settings: CameraSettings) -> OpenCVVideoStream:
        index = self._resolve_index(settings)
        _check_device_access(index)
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"Camera {index} could not be opened")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, settings.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, settings.height)
        return OpenCVVideoStream(
            capture=capture,
            device_index=index,
            facing_mode=settings.facing_mode,
        )

    def list_devices(self) -> list[CameraDevice]:
        devices: list[CameraDevice] = []
        for index in range(_MAX_PROBED_DEVICES):
            capture = cv2.VideoCapture(index)
            try:
                if capture.isOpened():
                    devices.append(
                        CameraDevice(device_id=str(index), label=f"Camera {index}")
                    )
            finally:
                capture.release()
        return devices

    def permission_state(self) -> str:
        path = _device_path(self.rear_index)
        if not os.path.exists(path):
            raise NotImplementedError("No device node to inspect")
        return "granted" if os.access(path, os.R_OK) else "denied"

    def _resolve_index(self, settings: CameraSettings) -> int:
        if settings.device_id is not None:
            try:
                return int(settings.device_id)
            except ValueError as exc:
                raise RuntimeError(f"Unknown camera device {settings.device_id}") from exc
        if settings.facing_mode is FacingMode.USER:
            return self.front_index
        return self.rear_index


def _device_path(index: int) -> str:
    return f"/dev/video{index}"


def _check_device_access(index: int) -> None:
    """Raise PermissionError when the Linux device node is not readable."""
    path = _device_path(index)
    if os.path.exists(path) and not os.access(path, os.R_OK):
        _logger.warning("No read access to %s", path)
        raise PermissionError(f"Permission denied: {path}")
