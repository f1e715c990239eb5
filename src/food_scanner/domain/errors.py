"""Error taxonomy for capture, analysis and comparison."""


class FoodScannerError(Exception):
    """Base class for application errors."""


class ConfigError(FoodScannerError):
    """Required LLM settings are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "LLM configuration missing: " + ", ".join(self.missing)
            if self.missing
            else "LLM configuration missing"
        )


class CameraError(FoodScannerError):
    """Recoverable camera failure."""

    name = "CameraError"


class CameraUnavailableError(CameraError):
    """No video sink is bound to receive the stream."""

    name = "CameraUnavailable"


class PermissionDeniedError(CameraError):
    """Camera access was refused."""

    name = "PermissionDenied"


class DeviceError(CameraError):
    """The camera device failed to open or deliver frames."""

    name = "DeviceError"


class NotActiveError(CameraError):
    """An operation needs a running stream."""

    name = "NotActive"


class NotInitializedError(CameraError):
    """Capture was requested before the camera was started."""

    name = "NotInitialized"


class EncodeError(FoodScannerError):
    """An image could not be decoded or re-encoded."""


class AnalysisError(FoodScannerError):
    """Base class for LLM call failures surfaced to the caller."""


class ApiError(AnalysisError):
    """The LLM endpoint answered with a non-2xx status or an empty body."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"OpenRouter API error: {status_code} - {body}")


class NetworkError(AnalysisError):
    """The request did not reach the LLM endpoint."""


class MalformedResponseError(FoodScannerError):
    """The model answered but its text holds no usable JSON."""
