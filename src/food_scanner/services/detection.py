"""Detection controller tracking one analysis request at a time."""

import logging
import time
from dataclasses import dataclass, field, replace

from food_scanner.domain.camera import CapturedImage
from food_scanner.domain.detection import DetectionSettings, DetectionState
from food_scanner.domain.errors import EncodeError, FoodScannerError
from food_scanner.domain.food import FoodAnalysisResult
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.camera import CameraService
from food_scanner.services.image_processing import extract_base64_from_data_url

_logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "Failed to analyze food. Please try again."


@dataclass
class DetectionController:
    """Runs analyses and keeps the state the UI renders."""

    analysis_service: AnalysisService
    settings: DetectionSettings = field(default_factory=DetectionSettings)
    state: DetectionState = field(default_factory=DetectionState)
    _generation: int = field(default=0, init=False, repr=False)

    async def analyze_image(self, image: CapturedImage) -> FoodAnalysisResult | None:
        """Analyse a captured image; returns None on failure or if superseded."""
        self._generation += 1
        generation = self._generation
        started = time.perf_counter()
        self.state = replace(
            self.state, is_detecting=True, error=None, processing_time_ms=None
        )

        try:
            base64_data = extract_base64_from_data_url(image.data_url)
            if not base64_data:
                raise EncodeError("Failed to extract image data")
            result = await self.analysis_service.analyze(base64_data)
        except FoodScannerError as exc:
            _logger.warning("Food detection failed: %s", exc)
            self._finish_with_error(generation, str(exc), started)
            return None
        except Exception:
            _logger.exception("Unexpected error during food detection")
            self._finish_with_error(generation, UNEXPECTED_ERROR, started)
            raise
        finally:
            # Cancellation skips both handlers above.
            if generation == self._generation and self.state.is_detecting:
                self.state = replace(self.state, is_detecting=False)

        if generation != self._generation:
            _logger.info("Dropping stale analysis result for %s", result.detected_food)
            return None
        self.state = DetectionState(
            result=result, processing_time_ms=_elapsed_ms(started)
        )
        return result

    async def capture_and_analyze(
        self, camera: CameraService
    ) -> tuple[CapturedImage, FoodAnalysisResult | None]:
        """Capture with the current compression settings, then analyse."""
        if self.settings.enable_compression:
            image = await camera.capture_image(
                max_width=self.settings.max_width,
                max_height=self.settings.max_height,
                quality=self.settings.image_quality,
            )
        else:
            image = await camera.capture_image()
        return image, await self.analyze_image(image)

    def update_settings(self, **changes: object) -> DetectionSettings:
        self.settings = replace(self.settings, **changes)  # type: ignore[arg-type]
        return self.settings

    def clear_result(self) -> None:
        """Hide the result; a response still in flight will not be shown."""
        self._generation += 1
        self.state = replace(
            self.state, is_detecting=False, result=None, processing_time_ms=None
        )

    def clear_error(self) -> None:
        self.state = replace(self.state, error=None)

    def _finish_with_error(self, generation: int, message: str, started: float) -> None:
        if generation == self._generation:
            self.state = DetectionState(
                error=message, processing_time_ms=_elapsed_ms(started)
            )


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)
