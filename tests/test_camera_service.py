"""Tests for the camera service."""

import asyncio

import pytest

from food_scanner.domain.camera import CameraSettings, FacingMode
from food_scanner.domain.errors import (
    CameraUnavailableError,
    DeviceError,
    NotActiveError,
    NotInitializedError,
    PermissionDeniedError,
)
from food_scanner.services.camera import CameraService, PreviewSink
from tests.conftest import FakeCameraBackend, FakeClock


def _service(backend: FakeCameraBackend, clock: FakeClock | None = None) -> CameraService:
    service = CameraService(backend=backend, clock=clock or FakeClock())
    service.bind_sink(PreviewSink())
    return service


def test_start_without_sink_is_unavailable(camera_backend: FakeCameraBackend) -> None:
    service = CameraService(backend=camera_backend, clock=FakeClock())

    with pytest.raises(CameraUnavailableError):
        asyncio.run(service.start())

    assert camera_backend.opened == []
    error = service.visible_error()
    assert error is not None
    assert error.name == "CameraUnavailable"


def test_start_binds_stream_to_sink(camera_backend: FakeCameraBackend) -> None:
    sink = PreviewSink()
    service = CameraService(backend=camera_backend, clock=FakeClock())
    service.bind_sink(sink)

    asyncio.run(service.start())

    assert service.is_active()
    assert sink.stream is camera_backend.opened[0]
    info = service.stream_info()
    assert info.facing_mode is FacingMode.ENVIRONMENT
    assert info.resolution == (1280, 720)


def test_start_maps_permission_error() -> None:
    service = _service(FakeCameraBackend(open_error=PermissionError("denied")))

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.start())

    assert service.visible_error().name == "PermissionDenied"  # type: ignore[union-attr]
    assert not service.is_active()


def test_start_maps_device_failures() -> None:
    service = _service(FakeCameraBackend(open_error=RuntimeError("busy")))

    with pytest.raises(DeviceError, match="Failed to start camera: busy"):
        asyncio.run(service.start())


def test_start_fails_when_first_frame_unreadable() -> None:
    backend = FakeCameraBackend(fail_reads=True)
    service = _service(backend)

    with pytest.raises(DeviceError, match="Failed to load video"):
        asyncio.run(service.start())

    assert backend.opened[0].stopped is True
    assert not service.is_active()


def test_start_stops_previous_stream(
    camera_service: CameraService, camera_backend: FakeCameraBackend
) -> None:
    asyncio.run(camera_service.start())
    asyncio.run(camera_service.start(CameraSettings(facing_mode=FacingMode.USER)))

    first, second = camera_backend.opened
    assert first.stopped is True
    assert second.stopped is False
    assert camera_service.stream_info().facing_mode is FacingMode.USER


def test_stop_is_idempotent(
    camera_service: CameraService, camera_backend: FakeCameraBackend
) -> None:
    asyncio.run(camera_service.start())

    camera_service.stop()
    camera_service.stop()

    assert camera_backend.opened[0].stopped is True
    assert camera_service.stream_info().is_active is False
    assert camera_service.current_settings() is None


def test_switch_camera_toggles_facing_mode(
    camera_service: CameraService, camera_backend: FakeCameraBackend
) -> None:
    async def scenario() -> None:
        await camera_service.start()
        await camera_service.switch_camera()

    asyncio.run(scenario())

    assert camera_backend.opened[-1].requested.facing_mode is FacingMode.USER
    assert camera_backend.opened[0].stopped is True


def test_switch_camera_requires_active_stream(camera_service: CameraService) -> None:
    with pytest.raises(NotActiveError):
        asyncio.run(camera_service.switch_camera())


def test_capture_requires_started_camera(camera_service: CameraService) -> None:
    with pytest.raises(NotInitializedError):
        asyncio.run(camera_service.capture_image())

    assert camera_service.visible_error().name == "NotInitialized"  # type: ignore[union-attr]


def test_capture_compresses_when_bounds_given(camera_service: CameraService) -> None:
    async def scenario():  # type: ignore[no-untyped-def]
        await camera_service.start()
        return await camera_service.capture_image(
            max_width=800, max_height=600, quality=0.8
        )

    image = asyncio.run(scenario())

    assert (image.width, image.height) == (800, 450)
    assert image.data_url.startswith("data:image/jpeg;base64,")


def test_capture_keeps_native_resolution_by_default(
    camera_service: CameraService,
) -> None:
    async def scenario():  # type: ignore[no-untyped-def]
        await camera_service.start()
        return await camera_service.capture_image()

    image = asyncio.run(scenario())

    assert (image.width, image.height) == (1280, 720)


def test_visible_error_expires() -> None:
    clock = FakeClock()
    service = CameraService(backend=FakeCameraBackend(), clock=clock)
    with pytest.raises(CameraUnavailableError):
        asyncio.run(service.start())

    clock.now = 1004.0
    assert service.visible_error() is not None

    clock.now = 1005.0
    assert service.visible_error() is None


def test_clear_error(camera_service: CameraService) -> None:
    with pytest.raises(NotActiveError):
        asyncio.run(camera_service.switch_camera())

    camera_service.clear_error()

    assert camera_service.visible_error() is None


def test_successful_start_clears_previous_error(camera_service: CameraService) -> None:
    with pytest.raises(NotInitializedError):
        asyncio.run(camera_service.capture_image())

    asyncio.run(camera_service.start())

    assert camera_service.visible_error() is None


def test_check_permissions_defaults_to_prompt() -> None:
    service = _service(FakeCameraBackend(permission=None))

    assert service.check_permissions() == "prompt"


def test_check_permissions_reports_backend_state() -> None:
    assert _service(FakeCameraBackend(permission="denied")).check_permissions() == (
        "denied"
    )


def test_request_permissions_probes_device() -> None:
    backend = FakeCameraBackend()
    service = _service(backend)

    assert asyncio.run(service.request_permissions()) is True
    assert backend.opened[0].stopped is True
    assert not service.is_active()


def test_request_permissions_denied() -> None:
    service = _service(FakeCameraBackend(open_error=PermissionError("denied")))

    assert asyncio.run(service.request_permissions()) is False


def test_available_devices(camera_service: CameraService) -> None:
    devices = asyncio.run(camera_service.available_devices())

    assert [device.device_id for device in devices] == ["fake-0"]


def test_preview_sink_snapshot(camera_service: CameraService) -> None:
    sink = PreviewSink()
    camera_service.bind_sink(sink)
    assert asyncio.run(sink.snapshot()) is None

    asyncio.run(camera_service.start())
    snapshot = asyncio.run(sink.snapshot())

    assert snapshot is not None
    assert snapshot.data.startswith(b"\xff\xd8\xff")

    camera_service.unbind_sink()
    assert asyncio.run(sink.snapshot()) is None
    assert camera_service.is_active()


def test_preview_sink_maps_failed_read(
    camera_service: CameraService, camera_backend: FakeCameraBackend
) -> None:
    sink = PreviewSink()
    camera_service.bind_sink(sink)
    asyncio.run(camera_service.start())
    camera_backend.opened[0].fail_reads = True

    with pytest.raises(DeviceError, match="Failed to read preview frame"):
        asyncio.run(sink.snapshot())


def test_capture_treats_zero_bounds_as_unset(camera_service: CameraService) -> None:
    async def scenario():  # type: ignore[no-untyped-def]
        await camera_service.start()
        return await camera_service.capture_image(max_width=0, max_height=0, quality=0)

    image = asyncio.run(scenario())

    assert (image.width, image.height) == (1280, 720)
