from __future__ import annotations

import pytest

from plateful.app.domain.models import GenerationResult, Recipe
from plateful.app.schemas.recipes import GenerateRecipeResponse
from plateful.services.recipe_models import RecipeData
from plateful.services.types import CandidateSource, Certainty, Intent, IntentStatus

from stubs import recipe_json

URL = "https://cooking.example.com/a"


def _recipe() -> Recipe:
    return Recipe(
        id="recipe-1",
        user_id="user-1",
        source_url_lower=URL,
        recipe_data=RecipeData.model_validate_json(recipe_json()),
    )


class TestGenerateRecipeResponse:
    def test_from_result(self) -> None:
        intent = Intent("Kung Pao Chicken", "Kung Pao Chicken recipe", IntentStatus.FULLY_REFINED, Certainty.HIGH, "")
        result = GenerationResult(
            recipe=_recipe(),
            intent=intent,
            candidate=CandidateSource(title="Kung Pao", url=URL, snippet=None),
        )

        response = GenerateRecipeResponse.from_result(result)

        assert response.intent.certaintyLevel == "high"
        assert response.searchResult.url == URL
        assert response.recipe.recipeID == "recipe-1"

    def test_edit_result_is_rejected(self) -> None:
        result = GenerationResult(recipe=_recipe(), intent=None, candidate=None)
        with pytest.raises(ValueError):
            GenerateRecipeResponse.from_result(result)
