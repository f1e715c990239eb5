"""Detection controller state models."""

from dataclasses import dataclass

from food_scanner.domain.food import FoodAnalysisResult


@dataclass(frozen=True)
class DetectionSettings:
    """Compression applied to captures before analysis."""

    image_quality: float = 0.8
    max_width: int = 800
    max_height: int = 600
    enable_compression: bool = True


@dataclass(frozen=True)
class DetectionState:
    """Progress and outcome of the latest analysis request."""

    is_detecting: bool = False
    result: FoodAnalysisResult | None = None
    error: str | None = None
    processing_time_ms: int | None = None
