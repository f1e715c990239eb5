"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from food_scanner.api.models import (
    AnalyzeRequest,
    CameraStartRequest,
    CapturedImageInfo,
    ComparisonResponse,
    DetectionResponse,
    ProductPayload,
    ProductView,
)
from food_scanner.app_logging import configure_logging
from food_scanner.config import missing_llm_settings
from food_scanner.containers import AppContainer
from food_scanner.domain.camera import CapturedImage
from food_scanner.domain.comparison import (
    AwaitingSecondProduct,
    ComparisonState,
    ShowingComparison,
)
from food_scanner.domain.errors import (
    CameraError,
    CameraUnavailableError,
    ConfigError,
    EncodeError,
    NotActiveError,
    NotInitializedError,
    PermissionDeniedError,
)
from food_scanner.domain.food import FoodAnalysisResult, FoodItem
from food_scanner.services.image_processing import captured_from_bytes, compress_image
from food_scanner.services.summaries import (
    comparison_summary,
    result_summary,
    share_text,
)

_CAMERA_ERROR_STATUS: dict[type[CameraError], int] = {
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    CameraUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    NotActiveError: status.HTTP_409_CONFLICT,
    NotInitializedError: status.HTTP_409_CONFLICT,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        missing = missing_llm_settings(app.state.container.settings)
        if missing:
            logger.warning("LLM configuration missing: %s", ", ".join(missing))
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": str(exc), "missing": exc.missing},
        )

    @app.exception_handler(CameraError)
    async def camera_error_handler(request: Request, exc: CameraError) -> JSONResponse:
        return JSONResponse(
            status_code=_CAMERA_ERROR_STATUS.get(
                type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            content={"error": str(exc), "name": exc.name},
        )

    @app.exception_handler(EncodeError)
    async def encode_error_handler(request: Request, exc: EncodeError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/config/status")
    async def config_status(request: Request) -> dict[str, object]:
        """Report which required LLM settings are missing."""
        state_container: AppContainer = request.app.state.container
        missing = missing_llm_settings(state_container.settings)
        return {"configured": not missing, "missing": missing}

    @app.post("/analyze")
    async def analyze(payload: AnalyzeRequest, request: Request) -> DetectionResponse:
        """Classify an uploaded image."""
        state_container: AppContainer = request.app.state.container
        _ensure_ready(state_container)
        image_bytes = _decode_image(payload)
        detection = state_container.detection_controller
        if payload.compress:
            image = compress_image(
                image_bytes,
                detection.settings.max_width,
                detection.settings.max_height,
                detection.settings.image_quality,
            )
        else:
            image = captured_from_bytes(image_bytes)
        await detection.analyze_image(image)
        return _detection_response(state_container, image)

    @app.post("/camera/start")
    async def camera_start(
        payload: CameraStartRequest, request: Request
    ) -> dict[str, object]:
        """Start the camera with optional overrides of the default settings."""
        camera = request.app.state.container.camera_service
        overrides = payload.model_dump(exclude_none=True)
        await camera.start(replace(camera.default_settings, **overrides))
        return _camera_status(request.app.state.container)

    @app.post("/camera/stop")
    async def camera_stop(request: Request) -> dict[str, object]:
        request.app.state.container.camera_service.stop()
        return _camera_status(request.app.state.container)

    @app.post("/camera/switch")
    async def camera_switch(request: Request) -> dict[str, object]:
        """Toggle between the front and rear camera."""
        await request.app.state.container.camera_service.switch_camera()
        return _camera_status(request.app.state.container)

    @app.get("/camera/status")
    async def camera_status(request: Request) -> dict[str, object]:
        return _camera_status(request.app.state.container)

    @app.get("/camera/devices")
    async def camera_devices(request: Request) -> dict[str, object]:
        devices = await request.app.state.container.camera_service.available_devices()
        return {
            "devices": [
                {"device_id": device.device_id, "label": device.label}
                for device in devices
            ]
        }

    @app.get("/camera/preview")
    async def camera_preview(request: Request) -> Response:
        """Return the current frame of the running stream as JPEG."""
        snapshot = await request.app.state.container.preview_sink.snapshot()
        if snapshot is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT)
        return Response(content=snapshot.data, media_type="image/jpeg")

    @app.post("/camera/capture")
    async def camera_capture(request: Request) -> DetectionResponse:
        """Capture a frame and classify it."""
        state_container: AppContainer = request.app.state.container
        _ensure_ready(state_container)
        image, _ = await state_container.detection_controller.capture_and_analyze(
            state_container.camera_service
        )
        return _detection_response(state_container, image)

    @app.get("/detection")
    async def detection_state(request: Request) -> DetectionResponse:
        return _detection_response(request.app.state.container)

    @app.post("/detection/clear")
    async def detection_clear(request: Request) -> DetectionResponse:
        detection = request.app.state.container.detection_controller
        detection.clear_result()
        detection.clear_error()
        return _detection_response(request.app.state.container)

    @app.get("/comparison")
    async def comparison_state(request: Request) -> ComparisonResponse:
        return _comparison_response(request.app.state.container)

    @app.post("/comparison/start")
    async def comparison_start(
        payload: ProductPayload, request: Request
    ) -> ComparisonResponse:
        """Hold a product and wait for a second one."""
        state_container: AppContainer = request.app.state.container
        analysis = _resolve_analysis(state_container, payload)
        state_container.comparison_controller.start_comparison(
            FoodItem.from_analysis(analysis), analysis
        )
        return _comparison_response(state_container)

    @app.post("/comparison/second")
    async def comparison_second(
        payload: ProductPayload, request: Request
    ) -> ComparisonResponse:
        """Add the second product and compare."""
        state_container: AppContainer = request.app.state.container
        controller = state_container.comparison_controller
        if controller.is_loading:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT)
        analysis = _resolve_analysis(state_container, payload)
        await controller.add_second_product(FoodItem.from_analysis(analysis), analysis)
        return _comparison_response(state_container)

    @app.post("/comparison/replace-first")
    async def comparison_replace_first(request: Request) -> ComparisonResponse:
        request.app.state.container.comparison_controller.replace_first_product()
        return _comparison_response(request.app.state.container)

    @app.post("/comparison/replace-second")
    async def comparison_replace_second(request: Request) -> ComparisonResponse:
        request.app.state.container.comparison_controller.replace_second_product()
        return _comparison_response(request.app.state.container)

    @app.post("/comparison/reset")
    async def comparison_reset(request: Request) -> ComparisonResponse:
        request.app.state.container.comparison_controller.reset_comparison()
        return _comparison_response(request.app.state.container)

    @app.post("/comparison/cancel")
    async def comparison_cancel(request: Request) -> ComparisonResponse:
        request.app.state.container.comparison_controller.cancel_comparison()
        return _comparison_response(request.app.state.container)

    @app.get("/results/summary")
    async def results_summary(request: Request) -> dict[str, str]:
        """Text export of the latest result and comparison."""
        state_container: AppContainer = request.app.state.container
        comparison = state_container.comparison_controller.state
        result = state_container.detection_controller.state.result
        if result is None and not isinstance(comparison, ShowingComparison):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        summary: dict[str, str] = {}
        if result is not None:
            summary["summary"] = result_summary(result)
            summary["share"] = share_text(result)
        if isinstance(comparison, ShowingComparison):
            summary["comparison"] = comparison_summary(comparison)
        return summary

    return app


def _ensure_ready(container: AppContainer) -> None:
    missing = missing_llm_settings(container.settings)
    if missing:
        raise ConfigError(missing)
    if container.detection_controller.state.is_detecting:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Analysis in progress"
        )


def _decode_image(payload: AnalyzeRequest) -> bytes:
    encoded = payload.image_base64
    if payload.data_url:
        _, _, encoded = payload.data_url.partition(",")
    try:
        return base64.b64decode(encoded or "", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base64 image"
        ) from exc


def _detection_response(
    container: AppContainer, image: CapturedImage | None = None
) -> DetectionResponse:
    state = container.detection_controller.state
    if state.error and image is not None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": state.error, "retry": True},
        )
    return DetectionResponse(
        is_detecting=state.is_detecting,
        result=state.result,
        error=state.error,
        processing_time_ms=state.processing_time_ms,
        image=(
            CapturedImageInfo(
                width=image.width,
                height=image.height,
                size=image.size,
                timestamp=image.timestamp,
            )
            if image is not None
            else None
        ),
    )


def _resolve_analysis(
    container: AppContainer, payload: ProductPayload
) -> FoodAnalysisResult:
    if payload.analysis is not None:
        return payload.analysis
    latest = container.detection_controller.state.result
    if latest is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No analysed product"
        )
    return latest


def _camera_status(container: AppContainer) -> dict[str, object]:
    camera = container.camera_service
    info = camera.stream_info()
    error = camera.visible_error()
    return {
        "is_active": info.is_active,
        "device_id": info.device_id,
        "facing_mode": info.facing_mode,
        "resolution": info.resolution,
        "permission": camera.check_permissions(),
        "error": {"name": error.name, "message": error.message} if error else None,
    }


def _product_view(item: FoodItem) -> ProductView:
    return ProductView(
        name=item.name,
        category=item.category,
        confidence=item.confidence,
        description=item.description,
        analysis=item.analysis,
    )


def _comparison_response(container: AppContainer) -> ComparisonResponse:
    controller = container.comparison_controller
    state: ComparisonState = controller.state
    response = ComparisonResponse(
        mode=state.mode, is_loading=controller.is_loading, error=controller.error
    )
    if isinstance(state, AwaitingSecondProduct):
        response.first_product = _product_view(state.first_product)
    elif isinstance(state, ShowingComparison):
        response.first_product = _product_view(state.first_product)
        response.second_product = _product_view(state.second_product)
        response.result = state.result
    return response
