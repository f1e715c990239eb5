"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_scanner.adapters.openai_chat_client import OpenAIChatClient
from food_scanner.adapters.opencv_camera import OpenCVCameraBackend
from food_scanner.adapters.openrouter_client import HttpxOpenRouterClient
from food_scanner.config import Settings
from food_scanner.domain.camera import CameraSettings
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.camera import CameraBackend, CameraService, PreviewSink
from food_scanner.services.comparison import ComparisonService
from food_scanner.services.comparison_state import ComparisonController
from food_scanner.services.detection import DetectionController


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    camera_service: CameraService
    preview_sink: PreviewSink
    analysis_service: AnalysisService
    comparison_service: ComparisonService
    detection_controller: DetectionController
    comparison_controller: ComparisonController
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None, camera_backend: CameraBackend | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    client_factory = (
        OpenAIChatClient.create
        if resolved_settings.chat_backend == "openai"
        else HttpxOpenRouterClient.create
    )
    chat_client = client_factory(
        api_key=resolved_settings.openrouter_api_key,
        api_url=resolved_settings.openrouter_api_url,
        referer=resolved_settings.app_referer,
        title=resolved_settings.app_title,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    analysis_service = AnalysisService(client=chat_client, settings=resolved_settings)
    comparison_service = ComparisonService(analysis_service)
    camera_service = CameraService(
        backend=camera_backend
        or OpenCVCameraBackend(
            rear_index=resolved_settings.camera_rear_index,
            front_index=resolved_settings.camera_front_index,
        ),
        default_settings=CameraSettings(
            width=resolved_settings.camera_width,
            height=resolved_settings.camera_height,
        ),
    )
    preview_sink = PreviewSink()
    camera_service.bind_sink(preview_sink)

    async def close_resources() -> None:
        camera_service.stop()
        await chat_client.close()

    return AppContainer(
        settings=resolved_settings,
        camera_service=camera_service,
        preview_sink=preview_sink,
        analysis_service=analysis_service,
        comparison_service=comparison_service,
        detection_controller=DetectionController(analysis_service),
        comparison_controller=ComparisonController(comparison_service),
        close_resources=close_resources,
    )
