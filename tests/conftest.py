"""Shared test fixtures."""

import json
from dataclasses import dataclass, field

import pytest
from PIL import Image

from food_scanner.config import Settings
from food_scanner.containers import AppContainer
from food_scanner.domain.camera import CameraDevice, CameraSettings
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.camera import CameraBackend, CameraService, PreviewSink
from food_scanner.services.chat import ChatClient, ChatMessage
from food_scanner.services.comparison import ComparisonService
from food_scanner.services.comparison_state import ComparisonController
from food_scanner.services.detection import DetectionController

APPLE_ANALYSIS = {
    "detected_food": "Red apple",
    "category": "unprocessed",
    "confidence": 0.92,
    "explanation": "A whole fresh fruit.",
    "nutritional_notes": "Good source of fibre",
    "preservation": {
        "has_problematic_preservatives": False,
        "preservative_types": [],
        "risk_level": "low",
        "simple_explanation": "No preservatives.",
    },
    "sugar": {
        "sugar_content": 10,
        "daily_percentage": 40,
        "is_excessive": False,
        "simple_explanation": "Natural fruit sugar.",
    },
}


@dataclass
class FakeChatClient(ChatClient):
    """Chat client returning queued replies and recording requests."""

    replies: list[str | Exception] = field(
        default_factory=lambda: [json.dumps(APPLE_ANALYSIS)]
    )
    requests: list[dict[str, object]] = field(default_factory=list)
    connected: bool = True
    closed: bool = False

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        max_tokens: int,
        temperature: float,
        top_p: float,
    ) -> str:
        self.requests.append(
            {
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "top_p": top_p,
            }
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def test_connection(self) -> bool:
        return self.connected

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeVideoStream:
    """In-memory stream yielding a solid-colour frame."""

    requested: CameraSettings
    frame_size: tuple[int, int] = (1280, 720)
    fail_reads: bool = False
    stopped: bool = False

    @property
    def is_active(self) -> bool:
        return not self.stopped

    def settings(self) -> CameraSettings:
        return CameraSettings(
            width=self.frame_size[0],
            height=self.frame_size[1],
            facing_mode=self.requested.facing_mode,
            device_id=self.requested.device_id or "fake-0",
        )

    def read_frame(self) -> Image.Image:
        if self.fail_reads:
            raise RuntimeError("no frame")
        return Image.new("RGB", self.frame_size, color=(200, 30, 30))

    def stop(self) -> None:
        self.stopped = True


@dataclass
class FakeCameraBackend(CameraBackend):
    """Camera backend recording every stream it opens."""

    frame_size: tuple[int, int] = (1280, 720)
    open_error: Exception | None = None
    fail_reads: bool = False
    permission: str | None = "granted"
    opened: list[FakeVideoStream] = field(default_factory=list)

    def open_stream(self, settings: CameraSettings) -> FakeVideoStream:
        if self.open_error is not None:
            raise self.open_error
        stream = FakeVideoStream(
            requested=settings,
            frame_size=self.frame_size,
            fail_reads=self.fail_reads,
        )
        self.opened.append(stream)
        return stream

    def list_devices(self) -> list[CameraDevice]:
        return [CameraDevice(device_id="fake-0", label="Fake camera")]

    def permission_state(self) -> str:
        if self.permission is None:
            raise NotImplementedError
        return self.permission


@dataclass
class FakeClock:
    now: float = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openrouter_api_key="test-key",
        openrouter_api_url="https://openrouter.test/api/v1/chat/completions",
        openrouter_model="test/vision-model",
    )


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def analysis_service(settings: Settings, chat_client: FakeChatClient) -> AnalysisService:
    return AnalysisService(client=chat_client, settings=settings)


@pytest.fixture
def camera_backend() -> FakeCameraBackend:
    return FakeCameraBackend()


@pytest.fixture
def camera_service(camera_backend: FakeCameraBackend) -> CameraService:
    service = CameraService(backend=camera_backend, clock=FakeClock())
    service.bind_sink(PreviewSink())
    return service


@pytest.fixture
def container(
    settings: Settings,
    chat_client: FakeChatClient,
    camera_service: CameraService,
) -> AppContainer:
    analysis_service = AnalysisService(client=chat_client, settings=settings)
    comparison_service = ComparisonService(analysis_service)
    preview_sink = PreviewSink()
    camera_service.bind_sink(preview_sink)

    async def close_resources() -> None:
        camera_service.stop()
        await chat_client.close()

    return AppContainer(
        settings=settings,
        camera_service=camera_service,
        preview_sink=preview_sink,
        analysis_service=analysis_service,
        comparison_service=comparison_service,
        detection_controller=DetectionController(analysis_service),
        comparison_controller=ComparisonController(comparison_service),
        close_resources=close_resources,
    )
