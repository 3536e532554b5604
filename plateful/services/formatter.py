from __future__ import annotations

import logging
import re
from typing import Optional

from plateful.services.decoding import decode_model
from plateful.services.errors import FormatError
from plateful.services.gemini_client import LLMClient
from plateful.services.prompts import build_format_prompt
from plateful.services.recipe_models import AI_ESTIMATE_LABEL, RecipeData, RecipeNutrition
from plateful.services.types import DietaryProfile

logger = logging.getLogger(__name__)

FORMAT_MAX_TOKENS = 4096
DEFAULT_MAX_SOURCE_CHARS = 8000

NUTRITION_FACT_PATTERN = re.compile(
    r"\b\d+(?:\.\d+)?\s*k?cal(?:ories)?\b|\bcalories\W{0,4}\d",
    re.IGNORECASE,
)


def source_has_nutrition(text: str) -> bool:
    return bool(NUTRITION_FACT_PATTERN.search(text or ""))


def _placeholder_nutrition() -> RecipeNutrition:
    return RecipeNutrition(calories_per_portion=f"Not available {AI_ESTIMATE_LABEL}", estimated=True)


class RecipeFormatter:
    def __init__(
        self,
        llm: LLMClient,
        max_source_chars: int = DEFAULT_MAX_SOURCE_CHARS,
        max_tokens: int = FORMAT_MAX_TOKENS,
    ) -> None:
        self._llm = llm
        self.max_source_chars = max_source_chars
        self._max_tokens = max_tokens

    def _label_nutrition(self, recipe: RecipeData, text: str) -> Optional[RecipeNutrition]:
        if recipe.nutrition is None:
            return _placeholder_nutrition()
        if recipe.nutrition.estimated or not source_has_nutrition(text):
            return recipe.nutrition.labeled_as_estimate()
        return recipe.nutrition

    def format(
        self,
        text: str,
        source_url: str,
        profile: Optional[DietaryProfile] = None,
        image_url: Optional[str] = None,
    ) -> RecipeData:
        """
        Structure raw page text into ``RecipeData``.

        Raises ``FormatError`` when the model output does not decode into a
        complete recipe. Nutrition not backed by the source text is always
        labeled as an AI estimate.
        """
        prompt = build_format_prompt(text[: self.max_source_chars], source_url, profile)
        response = self._llm.complete(prompt, self._max_tokens)
        recipe = decode_model(response, RecipeData).unwrap(
            lambda detail: FormatError(source_url, detail)
        )

        recipe = recipe.model_copy(
            update={
                "sourceUrl": source_url,
                "imageUrl": recipe.imageUrl or image_url,
                "nutrition": self._label_nutrition(recipe, text),
                "substitutions": None,
            }
        )
        logger.info(
            "format.ok url=%s title=%s ingredients=%d steps=%d",
            source_url,
            recipe.title,
            len(recipe.ingredients),
            len(recipe.instructions),
        )
        return recipe
