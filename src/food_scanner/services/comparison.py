"""Two-product health comparison."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from food_scanner.domain.comparison import ComparisonMetrics, ComparisonResult
from food_scanner.domain.errors import FoodScannerError
from food_scanner.domain.food import FoodAnalysisResult
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.json_extraction import extract_json_object

_logger = logging.getLogger(__name__)

SCORE_PER_RANK = 25

_RESPONSE_TEMPLATE = """Please provide a JSON response with:
{
    "winner": (0 for Product 1, 1 for Product 2),
    "reasoning": "Brief explanation why this product is healthier",
    "processing_winner": (0 or 1 - which has better processing level),
    "sugar_winner": (0 or 1 - which has better sugar content),
    "preservative_winner": (0 or 1 - which has better preservative profile),
    "health_scores": [score1, score2] (0-100 scale for each product),
    "key_differences": ["difference 1", "difference 2", "difference 3"] \
(max 3 key differences),
    "recommendation": "Clear action recommendation for the shopper"
}

Focus on practical shopping advice and be concise but helpful."""


@dataclass
class ComparisonService:
    """Asks the LLM which of two analysed products is healthier."""

    analysis_service: AnalysisService

    async def compare(
        self, first: FoodAnalysisResult, second: FoodAnalysisResult
    ) -> ComparisonResult:
        """Compare two products; any failure yields the rule-based verdict."""
        prompt = build_comparison_prompt(first, second)
        try:
            content = await self.analysis_service.analyze_text(prompt)
            return parse_comparison(content)
        except (FoodScannerError, ValidationError) as exc:
            _logger.warning("Falling back to rule-based comparison: %s", exc)
            return fallback_comparison(first, second)


def build_comparison_prompt(
    first: FoodAnalysisResult, second: FoodAnalysisResult
) -> str:
    """Embed both analyses and the expected JSON shape in one prompt."""
    return (
        "Compare these two food products for health and help a shopper "
        "decide which is better:\n\n"
        f"{_describe_product(1, first)}\n\n"
        f"{_describe_product(2, second)}\n\n"
        f"{_RESPONSE_TEMPLATE}\n"
    )


def parse_comparison(content: str) -> ComparisonResult:
    """Validate the model's comparison JSON.

    Raises ``MalformedResponseError`` or ``ValidationError``.
    """
    raw = extract_json_object(content)
    metrics = ComparisonMetrics.model_validate(
        {
            "processing_winner": raw.get("processing_winner"),
            "sugar_winner": raw.get("sugar_winner"),
            "preservative_winner": raw.get("preservative_winner"),
        }
    )
    return ComparisonResult.model_validate(
        {
            "winner": raw.get("winner"),
            "reasoning": raw.get("reasoning"),
            "metrics": metrics,
            "health_scores": raw.get("health_scores"),
            "key_differences": raw.get("key_differences") or [],
            "recommendation": raw.get("recommendation"),
        }
    )


def fallback_comparison(
    first: FoodAnalysisResult, second: FoodAnalysisResult
) -> ComparisonResult:
    """Rank products by NOVA category alone; ties favour the first product."""
    first_score = first.category.rank * SCORE_PER_RANK
    second_score = second.category.rank * SCORE_PER_RANK
    winner = 0 if first_score >= second_score else 1
    better, worse = (first, second) if winner == 0 else (second, first)
    return ComparisonResult(
        winner=winner,
        reasoning=(
            f"{better.detected_food} is less processed than {worse.detected_food}"
        ),
        metrics=ComparisonMetrics(
            processing_winner=winner,
            sugar_winner=0,
            preservative_winner=0,
        ),
        health_scores=(first_score, second_score),
        key_differences=[
            f"Processing level: {first.category.value} vs {second.category.value}"
        ],
        recommendation=f"Choose {better.detected_food} for a healthier option.",
    )


def _describe_product(number: int, product: FoodAnalysisResult) -> str:
    if product.sugar:
        sugar = (
            f"{product.sugar.sugar_content:g}g per serving "
            f"({product.sugar.daily_percentage:g}% of daily limit for 4-6 year "
            f"olds), {product.sugar.simple_explanation}"
        )
    else:
        sugar = "Not analyzed"
    if product.preservation:
        preservation = (
            f"{product.preservation.risk_level.value} risk, "
            f"{product.preservation.simple_explanation}"
        )
    else:
        preservation = "Not analyzed"
    return "\n".join(
        [
            f"PRODUCT {number}: {product.detected_food}",
            f"- Category: {product.category.value}",
            f"- Confidence: {round(product.confidence * 100)}%",
            f"- Explanation: {product.explanation}",
            f"- Nutritional Notes: {product.nutritional_notes or 'None'}",
            f"- Sugar Analysis: {sugar}",
            f"- Preservation: {preservation}",
        ]
    )
