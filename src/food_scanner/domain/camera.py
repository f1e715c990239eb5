"""Camera domain models."""

from dataclasses import dataclass
from enum import StrEnum


class FacingMode(StrEnum):
    """Which side of the device the camera faces."""

    USER = "user"
    ENVIRONMENT = "environment"

    def toggled(self) -> "FacingMode":
        """Return the opposite facing mode."""
        if self is FacingMode.USER:
            return FacingMode.ENVIRONMENT
        return FacingMode.USER


@dataclass(frozen=True)
class CameraSettings:
    """Requested or effective stream settings."""

    width: int = 1280
    height: int = 720
    facing_mode: FacingMode | None = FacingMode.ENVIRONMENT
    device_id: str | None = None
    aspect_ratio: float | None = None


@dataclass(frozen=True)
class CameraDevice:
    """A video input device."""

    device_id: str
    label: str
    kind: str = "videoinput"


@dataclass(frozen=True)
class CapturedImage:
    """An encoded frame ready to be sent for analysis."""

    data: bytes
    data_url: str
    width: int
    height: int
    size: int
    timestamp: int


@dataclass(frozen=True)
class StreamInfo:
    """Snapshot of the running stream."""

    is_active: bool
    device_id: str | None = None
    facing_mode: FacingMode | None = None
    resolution: tuple[int, int] | None = None


@dataclass(frozen=True)
class CameraErrorInfo:
    """Last camera failure as shown to the user."""

    name: str
    message: str
    occurred_at: float
