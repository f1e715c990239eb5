"""Tests for the detection controller."""

import asyncio
from dataclasses import dataclass, field

import httpx
import pytest
from PIL import Image

from food_scanner.adapters.openrouter_client import HttpxOpenRouterClient
from food_scanner.domain.camera import CapturedImage
from food_scanner.domain.detection import DetectionSettings, DetectionState
from food_scanner.domain.errors import ApiError
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.camera import CameraService
from food_scanner.services.detection import UNEXPECTED_ERROR, DetectionController
from food_scanner.services.image_processing import compress_image
from tests.conftest import FakeChatClient


@dataclass
class BlockingChatClient(FakeChatClient):
    """Chat client that holds each request until released."""

    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)

    async def complete(self, **kwargs):  # type: ignore[no-untyped-def, override]
        self.started.set()
        await self.release.wait()
        return await super().complete(**kwargs)


def _image() -> CapturedImage:
    return compress_image(Image.new("RGB", (320, 240)))


def test_analyze_image_stores_result(analysis_service: AnalysisService) -> None:
    controller = DetectionController(analysis_service)

    result = asyncio.run(controller.analyze_image(_image()))

    assert result is not None
    assert controller.state.result == result
    assert controller.state.is_detecting is False
    assert controller.state.error is None
    assert controller.state.processing_time_ms is not None
    assert controller.state.processing_time_ms >= 0


def test_analyze_image_sends_base64_payload(
    analysis_service: AnalysisService, chat_client: FakeChatClient
) -> None:
    image = _image()
    controller = DetectionController(analysis_service)

    asyncio.run(controller.analyze_image(image))

    user = chat_client.requests[0]["messages"][1]
    assert user["content"][1]["image_url"]["url"] == image.data_url


def test_analyze_image_failure_sets_error(settings) -> None:
    client = FakeChatClient(replies=[ApiError(500, "upstream")])
    controller = DetectionController(AnalysisService(client=client, settings=settings))

    result = asyncio.run(controller.analyze_image(_image()))

    assert result is None
    assert controller.state.result is None
    assert controller.state.is_detecting is False
    assert controller.state.error == "OpenRouter API error: 500 - upstream"


def test_analyze_image_without_payload_sets_error(
    analysis_service: AnalysisService, chat_client: FakeChatClient
) -> None:
    image = CapturedImage(
        data=b"",
        data_url="data:image/jpeg;base64,",
        width=0,
        height=0,
        size=0,
        timestamp=0,
    )
    controller = DetectionController(analysis_service)

    asyncio.run(controller.analyze_image(image))

    assert controller.state.error == "Failed to extract image data"
    assert chat_client.requests == []


def test_clear_result_drops_in_flight_response(settings) -> None:
    async def scenario() -> tuple[object, DetectionController]:
        client = BlockingChatClient()
        controller = DetectionController(
            AnalysisService(client=client, settings=settings)
        )
        task = asyncio.create_task(controller.analyze_image(_image()))
        await client.started.wait()
        assert controller.state.is_detecting is True
        controller.clear_result()
        client.release.set()
        return await task, controller

    result, controller = asyncio.run(scenario())

    assert result is None
    assert controller.state.result is None
    assert controller.state.is_detecting is False


def test_new_request_clears_previous_error(analysis_service: AnalysisService) -> None:
    controller = DetectionController(analysis_service)
    controller.state = DetectionState(error="old failure")

    asyncio.run(controller.analyze_image(_image()))

    assert controller.state.error is None


def test_clear_error_keeps_result(analysis_service: AnalysisService) -> None:
    controller = DetectionController(analysis_service)
    asyncio.run(controller.analyze_image(_image()))

    controller.clear_error()

    assert controller.state.result is not None


def test_capture_and_analyze_compresses_frame(
    analysis_service: AnalysisService, camera_service: CameraService
) -> None:
    controller = DetectionController(analysis_service)

    async def scenario():  # type: ignore[no-untyped-def]
        await camera_service.start()
        return await controller.capture_and_analyze(camera_service)

    image, result = asyncio.run(scenario())

    assert (image.width, image.height) == (800, 450)
    assert result is not None


def test_capture_and_analyze_without_compression(
    analysis_service: AnalysisService, camera_service: CameraService
) -> None:
    controller = DetectionController(analysis_service)
    controller.update_settings(enable_compression=False)

    async def scenario():  # type: ignore[no-untyped-def]
        await camera_service.start()
        return await controller.capture_and_analyze(camera_service)

    image, _ = asyncio.run(scenario())

    assert (image.width, image.height) == (1280, 720)


def test_update_settings_merges_changes(analysis_service: AnalysisService) -> None:
    controller = DetectionController(analysis_service)

    updated = controller.update_settings(max_width=400)

    assert updated == DetectionSettings(max_width=400)
    assert controller.settings is updated


def test_unexpected_failure_resets_detecting(settings) -> None:
    client = FakeChatClient(replies=[RuntimeError("client bug")])
    controller = DetectionController(AnalysisService(client=client, settings=settings))

    with pytest.raises(RuntimeError):
        asyncio.run(controller.analyze_image(_image()))

    assert controller.state.is_detecting is False
    assert controller.state.error == UNEXPECTED_ERROR


def test_redirect_loop_is_reported_as_error(settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("redirect loop", request=request)

    client = HttpxOpenRouterClient(
        api_key="key",
        api_url=settings.openrouter_api_url,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    controller = DetectionController(AnalysisService(client=client, settings=settings))

    result = asyncio.run(controller.analyze_image(_image()))

    assert result is None
    assert controller.state.is_detecting is False
    assert controller.state.error is not None
    assert "OpenRouter API request failed" in controller.state.error


def test_cancelled_analysis_resets_detecting(settings) -> None:
    async def scenario() -> DetectionController:
        client = BlockingChatClient()
        controller = DetectionController(
            AnalysisService(client=client, settings=settings)
        )
        task = asyncio.create_task(controller.analyze_image(_image()))
        await client.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.is_detecting is False
