"""State machine for comparing two products captured one after another."""

import logging
from dataclasses import dataclass, field

from food_scanner.domain.comparison import (
    AwaitingSecondProduct,
    ComparisonMetrics,
    ComparisonResult,
    ComparisonState,
    NormalMode,
    ShowingComparison,
)
from food_scanner.domain.food import FoodAnalysisResult, FoodItem
from food_scanner.services.comparison import ComparisonService

_logger = logging.getLogger(__name__)

MISSING_FIRST_PRODUCT = "First product data is missing"
SECOND_PRODUCT_PRESENT = "Replace the second product before adding another"
COMPARISON_FAILED = "Failed to compare products. Please try again."

UNAVAILABLE_COMPARISON = ComparisonResult(
    winner=0,
    reasoning="Unable to perform detailed comparison",
    metrics=ComparisonMetrics(
        processing_winner=0, sugar_winner=0, preservative_winner=0
    ),
    health_scores=(50, 50),
    key_differences=["Comparison temporarily unavailable"],
    recommendation="Try comparing again or choose based on processing level",
)


@dataclass
class ComparisonController:
    """normal -> awaiting-second-product -> showing-comparison.

    Every transition replaces ``state`` with a new variant; ``error`` holds
    the last local failure and is cleared by any successful transition.
    """

    comparison_service: ComparisonService
    state: ComparisonState = field(default_factory=NormalMode)
    is_loading: bool = False
    error: str | None = None
    _generation: int = field(default=0, init=False, repr=False)

    def start_comparison(
        self, first_product: FoodItem, first_analysis: FoodAnalysisResult
    ) -> ComparisonState:
        """Hold the first product and wait for the second."""
        self._invalidate_pending()
        self.state = AwaitingSecondProduct(
            first_product=_with_analysis(first_product, first_analysis)
        )
        self.error = None
        return self.state

    async def add_second_product(
        self, second_product: FoodItem, second_analysis: FoodAnalysisResult
    ) -> ComparisonResult | None:
        """Compare against the held first product and show the verdict."""
        state = self.state
        if isinstance(state, ShowingComparison):
            self.error = SECOND_PRODUCT_PRESENT
            return None
        if not isinstance(state, AwaitingSecondProduct):
            self.error = MISSING_FIRST_PRODUCT
            return None

        self._generation += 1
        generation = self._generation
        self.is_loading = True
        self.error = None
        second = _with_analysis(second_product, second_analysis)
        error = None
        try:
            result = await self.comparison_service.compare(
                state.first_product.analysis, second_analysis
            )
        except Exception:
            _logger.exception("Error generating comparison")
            error = COMPARISON_FAILED
            result = UNAVAILABLE_COMPARISON
        finally:
            if generation == self._generation:
                self.is_loading = False

        if generation != self._generation:
            _logger.info("Dropping comparison finished after the workflow moved on")
            return None
        self.error = error
        self.state = ShowingComparison(
            first_product=state.first_product,
            second_product=second,
            result=result,
        )
        return result

    def replace_first_product(self) -> ComparisonState:
        return self._reset()

    def replace_second_product(self) -> ComparisonState:
        """Keep the first product and wait for a new second one."""
        self._invalidate_pending()
        first_product = _first_product(self.state)
        if first_product is not None:
            self.state = AwaitingSecondProduct(first_product=first_product)
        self.error = None
        return self.state

    def reset_comparison(self) -> ComparisonState:
        return self._reset()

    def cancel_comparison(self) -> ComparisonState:
        return self._reset()

    def _reset(self) -> ComparisonState:
        self._invalidate_pending()
        self.state = NormalMode()
        self.error = None
        return self.state

    def _invalidate_pending(self) -> None:
        """Make any comparison still in flight drop its result."""
        self._generation += 1
        self.is_loading = False


def _first_product(state: ComparisonState) -> FoodItem | None:
    if isinstance(state, AwaitingSecondProduct | ShowingComparison):
        return state.first_product
    return None


def _with_analysis(item: FoodItem, analysis: FoodAnalysisResult) -> FoodItem:
    if item.analysis is analysis:
        return item
    return FoodItem(
        name=item.name,
        category=item.category,
        confidence=item.confidence,
        analysis=analysis,
        description=item.description,
    )
