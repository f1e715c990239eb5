"""Models for two-product comparisons."""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from food_scanner.domain.food import FoodItem

ProductIndex = Literal[0, 1]
MAX_KEY_DIFFERENCES = 3


class ComparisonMetrics(BaseModel):
    """Per-axis winners."""

    model_config = ConfigDict(frozen=True)

    processing_winner: ProductIndex
    sugar_winner: ProductIndex
    preservative_winner: ProductIndex


class ComparisonResult(BaseModel):
    """Verdict on which of two products is the healthier choice."""

    model_config = ConfigDict(frozen=True)

    winner: ProductIndex
    reasoning: str
    metrics: ComparisonMetrics
    health_scores: tuple[float, float]
    key_differences: list[str] = Field(default_factory=list)
    recommendation: str

    @field_validator("health_scores", mode="after")
    @classmethod
    def clamp_scores(cls, value: tuple[float, float]) -> tuple[float, float]:
        first, second = (max(0.0, min(100.0, score)) for score in value)
        return first, second

    @field_validator("key_differences", mode="after")
    @classmethod
    def limit_differences(cls, value: list[str]) -> list[str]:
        return value[:MAX_KEY_DIFFERENCES]


@dataclass(frozen=True)
class NormalMode:
    """No comparison in progress."""

    mode: Literal["normal"] = "normal"


@dataclass(frozen=True)
class AwaitingSecondProduct:
    """First product captured; waiting for the second."""

    first_product: FoodItem
    mode: Literal["awaiting-second-product"] = "awaiting-second-product"


@dataclass(frozen=True)
class ShowingComparison:
    """Both products captured and compared."""

    first_product: FoodItem
    second_product: FoodItem
    result: ComparisonResult
    mode: Literal["showing-comparison"] = "showing-comparison"


ComparisonState = NormalMode | AwaitingSecondProduct | ShowingComparison
