"""Plain-text renderings of results for copying and sharing."""

from dataclasses import dataclass

from food_scanner.domain.comparison import ShowingComparison
from food_scanner.domain.food import FoodAnalysisResult

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6


@dataclass(frozen=True)
class ConfidenceLevel:
    level: str
    description: str


def confidence_level(confidence: float) -> ConfidenceLevel:
    if confidence >= HIGH_CONFIDENCE:
        return ConfidenceLevel("high", "High confidence")
    if confidence >= MEDIUM_CONFIDENCE:
        return ConfidenceLevel("medium", "Medium confidence")
    return ConfidenceLevel("low", "Low confidence")


def format_confidence(confidence: float) -> str:
    return f"{round(confidence * 100)}%"


def format_duration(milliseconds: int) -> str:
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    return f"{milliseconds / 1000:.1f}s"


def result_summary(result: FoodAnalysisResult) -> str:
    """Multi-line summary suitable for the clipboard."""
    lines = [
        f"Food: {result.detected_food}",
        f"Category: {result.category.info.label}",
        f"Confidence: {format_confidence(result.confidence)}",
        f"Description: {result.explanation}",
    ]
    if result.nutritional_notes:
        lines.append(f"Notes: {result.nutritional_notes}")
    if result.sugar:
        lines.append(
            f"Sugar: {result.sugar.sugar_content:g}g per serving "
            f"({result.sugar.daily_percentage:g}% of a child's daily limit)"
        )
    if result.preservation:
        lines.append(f"Preservatives: {result.preservation.risk_level.value} risk")
    return "\n".join(lines)


def share_text(result: FoodAnalysisResult) -> str:
    """One-line summary for share sheets."""
    return (
        f"{result.detected_food} - {result.category.info.label} "
        f"({format_confidence(result.confidence)} confidence)"
    )


def comparison_summary(state: ShowingComparison) -> str:
    products = (state.first_product, state.second_product)
    winner = products[state.result.winner]
    first_score, second_score = state.result.health_scores
    lines = [
        f"Better choice: {winner.name}",
        f"{products[0].name}: {first_score:g}/100",
        f"{products[1].name}: {second_score:g}/100",
        f"Why: {state.result.reasoning}",
        *(f"- {difference}" for difference in state.result.key_differences),
        f"Recommendation: {state.result.recommendation}",
    ]
    return "\n".join(lines)
