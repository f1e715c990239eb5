"""Food image classification via a multimodal LLM."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from food_scanner.config import Settings, missing_llm_settings
from food_scanner.domain.errors import ConfigError, MalformedResponseError
from food_scanner.domain.food import (
    DAILY_SUGAR_LIMIT_G,
    FALLBACK_ANALYSIS,
    FoodAnalysisResult,
)
from food_scanner.services.chat import ChatClient, system_message, user_message
from food_scanner.services.json_extraction import extract_json_object

_logger = logging.getLogger(__name__)

MAX_TOKENS = 500
TEMPERATURE = 0.1
TOP_P = 0.9
SUGAR_PERCENTAGE_TOLERANCE = 5.0

_NOVA_PROMPT = """You are an expert food nutritionist and image recognition \
specialist. Your task is to analyze food images and classify them according \
to the NOVA food classification system.

NOVA Classification System:
1. **Unprocessed**: Fresh, whole foods in their natural state (fruits, \
vegetables, nuts, seeds, fresh meat, fish)
2. **Minimally Processed**: Foods processed only for preservation, safety, or \
convenience (frozen vegetables, dried fruits, plain yogurt, canned beans)
3. **Processed**: Foods with added salt, sugar, oil, or other substances \
(cheese, bread, canned vegetables in brine, smoked meats)
4. **Ultra-Processed (UPF)**: Formulated from industrial ingredients with \
additives (packaged snacks, soft drinks, ready meals, processed meats with \
preservatives)
"""

_HEALTH_CHECKS_PROMPT = f"""
Also assess, in plain language a parent can understand:
- Preservatives: whether the product relies on problematic preservatives, \
which kinds (e.g. chemical, salt, sugar), and a risk level of low, medium or \
high.
- Sugar: grams of sugar per serving and the percentage of the \
{DAILY_SUGAR_LIMIT_G:g} g daily added-sugar limit for a 4-6 year old child, \
and whether that amount is excessive.
"""

_BASE_FORMAT = """
You must respond with a JSON object in this exact format:
{
  "detected_food": "specific food name",
  "category": "unprocessed|minimal|processed|upf",
  "confidence": 0.85,
  "explanation": "Brief explanation of why this food fits this category",
  "nutritional_notes": "Optional additional nutritional information"
}

Be precise, scientific, and always provide a confidence score between 0 and 1."""

_EXTENDED_FORMAT = """
You must respond with a JSON object in this exact format:
{
  "detected_food": "specific food name",
  "category": "unprocessed|minimal|processed|upf",
  "confidence": 0.85,
  "explanation": "Brief explanation of why this food fits this category",
  "nutritional_notes": "Optional additional nutritional information",
  "preservation": {
    "has_problematic_preservatives": false,
    "preservative_types": ["salt"],
    "risk_level": "low|medium|high",
    "simple_explanation": "One sentence for a parent"
  },
  "sugar": {
    "sugar_content": 12.0,
    "daily_percentage": 48,
    "is_excessive": false,
    "simple_explanation": "One sentence for a parent"
  }
}

Be precise, scientific, and always provide a confidence score between 0 and 1."""

USER_PROMPT = (
    "Please analyze this food image and classify it according to the NOVA "
    "system. Identify the specific food item and determine its processing "
    "level. Consider all visible ingredients and preparation methods. Respond "
    "only with the JSON format specified in the system prompt."
)


def build_system_prompt(include_health_checks: bool) -> str:
    """Return the classification instructions sent as the system message."""
    if include_health_checks:
        return _NOVA_PROMPT + _HEALTH_CHECKS_PROMPT + _EXTENDED_FORMAT
    return _NOVA_PROMPT + _BASE_FORMAT


@dataclass
class AnalysisService:
    """Builds prompts, calls the LLM and validates its classification."""

    client: ChatClient
    settings: Settings

    async def analyze(self, image_base64: str) -> FoodAnalysisResult:
        """Classify a base64-encoded JPEG.

        Unparseable model output yields ``FALLBACK_ANALYSIS``; only
        configuration and transport failures raise.
        """
        self._ensure_configured()
        content = await self.client.complete(
            model=self.settings.openrouter_model,
            messages=[
                system_message(
                    build_system_prompt(self.settings.include_health_checks)
                ),
                user_message(USER_PROMPT, image_base64),
            ],
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
            top_p=TOP_P,
        )
        return parse_analysis(content)

    async def analyze_text(self, prompt: str) -> str:
        """Send a text-only prompt and return the raw answer."""
        self._ensure_configured()
        return await self.client.complete(
            model=self.settings.openrouter_model,
            messages=[user_message(prompt)],
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
            top_p=TOP_P,
        )

    async def test_connection(self) -> bool:
        """Return whether the endpoint is reachable with the configured key."""
        if missing_llm_settings(self.settings):
            return False
        return await self.client.test_connection()

    def _ensure_configured(self) -> None:
        missing = missing_llm_settings(self.settings)
        if missing:
            raise ConfigError(missing)


def parse_analysis(content: str) -> FoodAnalysisResult:
    """Turn model text into a result, substituting the fallback on failure."""
    try:
        raw = extract_json_object(content)
        result = FoodAnalysisResult.model_validate(raw)
    except (MalformedResponseError, ValidationError) as exc:
        _logger.warning("Failed to parse analysis response: %s", exc)
        return FALLBACK_ANALYSIS
    _warn_on_sugar_mismatch(result)
    return result


def _warn_on_sugar_mismatch(result: FoodAnalysisResult) -> None:
    """Log when the reported sugar percentage disagrees with the grams."""
    sugar = result.sugar
    if sugar is None:
        return
    expected = sugar.recomputed_daily_percentage
    if abs(expected - sugar.daily_percentage) > SUGAR_PERCENTAGE_TOLERANCE:
        _logger.warning(
            "Sugar percentage mismatch for %s: reported=%.1f expected=%.1f",
            result.detected_food,
            sugar.daily_percentage,
            expected,
        )
