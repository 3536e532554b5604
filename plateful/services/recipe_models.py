# plateful/services/recipe_models.py
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

AI_ESTIMATE_LABEL = "(estimated by AI)"


def _stringify_scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _clean_lines(value: list[str]) -> list[str]:
    lines = [item.strip() for item in value if item and item.strip()]
    if not lines:
        raise ValueError("must contain at least one non-empty entry")
    return lines


class RecipeNutrition(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    calories_per_portion: str = Field(min_length=1)
    protein: Optional[str] = None
    carbs: Optional[str] = None
    fat: Optional[str] = None
    estimated: bool = False

    @field_validator("calories_per_portion", "protein", "carbs", "fat", mode="before")
    @classmethod
    def coerce_numbers(cls, value: Any) -> Any:
        return _stringify_scalar(value)

    def labeled_as_estimate(self) -> "RecipeNutrition":
        def label(value: Optional[str]) -> Optional[str]:
            if value is None or AI_ESTIMATE_LABEL in value:
                return value
            return f"{value} {AI_ESTIMATE_LABEL}"

        return RecipeNutrition(
            calories_per_portion=label(self.calories_per_portion) or "",
            protein=label(self.protein),
            carbs=label(self.carbs),
            fat=label(self.fat),
            estimated=True,
        )


class IngredientSubstitution(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    original: str = Field(min_length=1)
    substituted: str = Field(min_length=1)
    reason: str
    originalIngredient: str = Field(min_length=1)
    substitutedIngredient: str = Field(min_length=1)


class RecipeData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: Optional[str] = None
    portions: str = Field(min_length=1)
    ingredients: list[str]
    instructions: list[str]
    nutrition: Optional[RecipeNutrition] = None
    sourceUrl: str = ""
    imageUrl: Optional[str] = None
    substitutions: Optional[list[IngredientSubstitution]] = None

    @field_validator("portions", mode="before")
    @classmethod
    def coerce_portions(cls, value: Any) -> Any:
        return _stringify_scalar(value)

    @field_validator("ingredients", "instructions")
    @classmethod
    def non_empty_lines(cls, value: list[str]) -> list[str]:
        return _clean_lines(value)
