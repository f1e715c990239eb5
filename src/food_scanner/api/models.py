"""Request and response payloads for the HTTP API."""

from pydantic import BaseModel, Field, model_validator

from food_scanner.domain.camera import FacingMode
from food_scanner.domain.comparison import ComparisonResult
from food_scanner.domain.food import FoodAnalysisResult, FoodCategory


class AnalyzeRequest(BaseModel):
    """An image supplied by the client instead of the local camera."""

    image_base64: str | None = None
    data_url: str | None = None
    compress: bool = True

    @model_validator(mode="after")
    def require_image(self) -> "AnalyzeRequest":
        if not self.image_base64 and not self.data_url:
            raise ValueError("image_base64 or data_url is required")
        return self


class CameraStartRequest(BaseModel):
    facing_mode: FacingMode | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    device_id: str | None = None


class CapturedImageInfo(BaseModel):
    width: int
    height: int
    size: int
    timestamp: int


class DetectionResponse(BaseModel):
    is_detecting: bool
    result: FoodAnalysisResult | None = None
    error: str | None = None
    processing_time_ms: int | None = None
    image: CapturedImageInfo | None = None


class ProductPayload(BaseModel):
    """A product for the comparison workflow; defaults to the latest result."""

    analysis: FoodAnalysisResult | None = None


class ProductView(BaseModel):
    name: str
    category: FoodCategory
    confidence: float
    description: str | None = None
    analysis: FoodAnalysisResult


class ComparisonResponse(BaseModel):
    mode: str
    first_product: ProductView | None = None
    second_product: ProductView | None = None
    result: ComparisonResult | None = None
    is_loading: bool = False
    error: str | None = None
