"""Food classification models.

The LLM answers with loosely typed JSON. These models accept that JSON as-is
and coerce it into a result that always satisfies the same invariants: the
category is one of the four NOVA groups and the confidence lies in [0, 1].
Optional health sub-analyses are repaired field by field instead of failing
the whole response.
"""

import math
from dataclasses import dataclass
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DAILY_SUGAR_LIMIT_G = 25.0


@dataclass(frozen=True)
class CategoryInfo:
    """Display metadata for a NOVA category."""

    label: str
    short_label: str
    description: str
    health_score: int
    rank: int
    examples: tuple[str, ...]


class FoodCategory(StrEnum):
    """NOVA processing level, ordered from least to most processed."""

    UNPROCESSED = "unprocessed"
    MINIMAL = "minimal"
    PROCESSED = "processed"
    UPF = "upf"

    @classmethod
    def normalize(cls, raw: str) -> "FoodCategory":
        """Map free-text model output onto a category; unknown text is processed."""
        normalized = raw.lower().strip()
        if any(key in normalized for key in ("unprocessed", "fresh", "natural")):
            return cls.UNPROCESSED
        if any(key in normalized for key in ("minimal", "lightly processed")):
            return cls.MINIMAL
        if any(key in normalized for key in ("ultra", "upf", "highly processed")):
            return cls.UPF
        return cls.PROCESSED

    @property
    def info(self) -> CategoryInfo:
        return CATEGORY_INFO[self]

    @property
    def rank(self) -> int:
        """Healthiness rank used by the rule-based comparison (higher is better)."""
        return CATEGORY_INFO[self].rank


CATEGORY_INFO: dict[FoodCategory, CategoryInfo] = {
    FoodCategory.UNPROCESSED: CategoryInfo(
        label="Unprocessed",
        short_label="Fresh",
        description="Fresh, whole foods in their natural state",
        health_score=10,
        rank=4,
        examples=("Fresh fruits", "Vegetables", "Raw nuts", "Fresh herbs"),
    ),
    FoodCategory.MINIMAL: CategoryInfo(
        label="Minimally Processed",
        short_label="Minimal",
        description="Foods processed for preservation or convenience",
        health_score=8,
        rank=3,
        examples=("Frozen vegetables", "Plain yogurt", "Canned beans", "Dried fruits"),
    ),
    FoodCategory.PROCESSED: CategoryInfo(
        label="Processed",
        short_label="Processed",
        description="Foods with added ingredients for flavor or preservation",
        health_score=5,
        rank=2,
        examples=("Cheese", "Bread", "Canned vegetables", "Smoked meats"),
    ),
    FoodCategory.UPF: CategoryInfo(
        label="Ultra-Processed (UPF)",
        short_label="UPF",
        description="Heavily processed foods with many additives",
        health_score=2,
        rank=1,
        examples=("Packaged snacks", "Soft drinks", "Ready meals", "Processed meats"),
    ),
}


class RiskLevel(StrEnum):
    """Preservative risk level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _to_number(value: object) -> float:
    """Cast to float, falling back to 0 for anything non-numeric."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _to_text(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class PreservationAnalysis(BaseModel):
    """Preservative assessment reported by the model."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    has_problematic_preservatives: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "has_problematic_preservatives", "hasProblematicPreservatives"
        ),
    )
    preservative_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preservative_types", "preservativeTypes"),
    )
    risk_level: RiskLevel = Field(
        default=RiskLevel.LOW,
        validation_alias=AliasChoices("risk_level", "riskLevel"),
    )
    simple_explanation: str = Field(
        default="",
        validation_alias=AliasChoices(
            "simple_explanation", "simpleExplanation", "explanation"
        ),
    )

    @field_validator("has_problematic_preservatives", mode="before")
    @classmethod
    def coerce_bool(cls, value: object) -> bool:
        return bool(value)

    @field_validator("preservative_types", mode="before")
    @classmethod
    def keep_strings(cls, value: object) -> list[str]:
        if not isinstance(value, list | tuple):
            return []
        return [item for item in value if isinstance(item, str)]

    @field_validator("risk_level", mode="before")
    @classmethod
    def known_risk_level(cls, value: object) -> RiskLevel:
        if isinstance(value, str):
            normalized = value.lower().strip()
            if normalized in {level.value for level in RiskLevel}:
                return RiskLevel(normalized)
        return RiskLevel.LOW

    @field_validator("simple_explanation", mode="before")
    @classmethod
    def coerce_text(cls, value: object) -> str:
        return _to_text(value)


class SugarAnalysis(BaseModel):
    """Sugar content measured against the 25 g daily limit for young children."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sugar_content: float = Field(
        default=0.0,
        validation_alias=AliasChoices("sugar_content", "sugarContent", "sugar_grams"),
    )
    daily_percentage: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "daily_percentage",
            "daily_limit_percentage",
            "dailyPercentageFor4To6YearOld",
        ),
    )
    is_excessive: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_excessive", "isExcessive"),
    )
    simple_explanation: str = Field(
        default="",
        validation_alias=AliasChoices(
            "simple_explanation", "simpleExplanation", "explanation"
        ),
    )

    @field_validator("sugar_content", "daily_percentage", mode="before")
    @classmethod
    def coerce_number(cls, value: object) -> float:
        return _to_number(value)

    @field_validator("is_excessive", mode="before")
    @classmethod
    def coerce_bool(cls, value: object) -> bool:
        return bool(value)

    @field_validator("simple_explanation", mode="before")
    @classmethod
    def coerce_text(cls, value: object) -> str:
        return _to_text(value)

    @property
    def recomputed_daily_percentage(self) -> float:
        """Percentage of the daily limit derived from the reported grams."""
        return self.sugar_content * 100 / DAILY_SUGAR_LIMIT_G


class FoodAnalysisResult(BaseModel):
    """Validated classification of a single photographed product."""

    model_config = ConfigDict(frozen=True)

    detected_food: str
    category: FoodCategory
    confidence: float
    explanation: str = "No explanation provided"
    nutritional_notes: str | None = None
    preservation: PreservationAnalysis | None = None
    sugar: SugarAnalysis | None = None

    @field_validator("detected_food", mode="before")
    @classmethod
    def require_label(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("detected_food must be a non-empty string")
        return value.strip()

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, value: object) -> FoodCategory:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("category must be a non-empty string")
        return FoodCategory.normalize(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: object) -> float:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError("confidence must be a number")
        if math.isnan(value):
            raise ValueError("confidence must be a number")
        return max(0.0, min(1.0, float(value)))

    @field_validator("explanation", mode="before")
    @classmethod
    def default_explanation(cls, value: object) -> str:
        return _to_text(value) or "No explanation provided"

    @field_validator("nutritional_notes", mode="before")
    @classmethod
    def optional_notes(cls, value: object) -> str | None:
        return _to_text(value) or None

    @field_validator("preservation", "sugar", mode="before")
    @classmethod
    def drop_non_objects(cls, value: object) -> object:
        if isinstance(value, dict | BaseModel):
            return value
        return None


FALLBACK_ANALYSIS = FoodAnalysisResult(
    detected_food="Unknown food item",
    category=FoodCategory.PROCESSED,
    confidence=0.1,
    explanation=(
        "Failed to analyze the image properly. "
        "Please try again with a clearer image."
    ),
)


@dataclass(frozen=True)
class FoodItem:
    """A product held by the comparison workflow."""

    name: str
    category: FoodCategory
    confidence: float
    analysis: FoodAnalysisResult
    description: str | None = None

    @classmethod
    def from_analysis(cls, analysis: FoodAnalysisResult) -> "FoodItem":
        """Build a product record from its analysis."""
        return cls(
            name=analysis.detected_food,
            category=analysis.category,
            confidence=analysis.confidence,
            analysis=analysis,
            description=analysis.explanation,
        )
