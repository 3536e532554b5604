from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, field_validator

from plateful.services.constraints import check
from plateful.services.decoding import decode_model
from plateful.services.errors import SubstitutionError
from plateful.services.gemini_client import LLMClient
from plateful.services.prompts import build_substitution_prompt
from plateful.services.recipe_models import IngredientSubstitution, RecipeData
from plateful.services.types import DietaryProfile, DisallowedMatch

logger = logging.getLogger(__name__)

SUBSTITUTION_MAX_TOKENS = 4096


class RecheckPolicy(str, Enum):
    """What to do when a substituted recipe still looks unsafe."""

    WARN = "warn"
    REJECT = "reject"


class SubstitutionPayload(BaseModel):
    substitutions: list[IngredientSubstitution]
    modifiedIngredients: list[str]
    modifiedInstructions: list[str]

    @field_validator("modifiedIngredients", "modifiedInstructions")
    @classmethod
    def non_empty_lines(cls, value: list[str]) -> list[str]:
        lines = [item.strip() for item in value if item and item.strip()]
        if not lines:
            raise ValueError("must contain at least one non-empty entry")
        return lines


def _is_addressed(match: DisallowedMatch, substitutions: Sequence[IngredientSubstitution]) -> bool:
    ingredient = match.ingredient.casefold()
    for substitution in substitutions:
        if substitution.original.casefold() in ingredient:
            return True
        if ingredient in substitution.originalIngredient.casefold():
            return True
    return False


def find_recheck_problems(
    disallowed: Sequence[DisallowedMatch],
    payload: SubstitutionPayload,
    profile: DietaryProfile,
) -> list[str]:
    problems: list[str] = []

    for match in disallowed:
        if not _is_addressed(match, payload.substitutions):
            problems.append(f'"{match.ingredient}" ({match.reason}) has no substitution entry')

    for substitution in payload.substitutions:
        for leftover in check([substitution.substitutedIngredient], profile):
            problems.append(
                f'replacement "{leftover.ingredient}" is itself disallowed ({leftover.reason})'
            )

    for leftover in check(payload.modifiedIngredients, profile):
        problems.append(f'"{leftover.ingredient}" still disallowed ({leftover.reason})')

    return problems


class SubstitutionEngine:
    def __init__(
        self,
        llm: LLMClient,
        policy: RecheckPolicy = RecheckPolicy.WARN,
        max_tokens: int = SUBSTITUTION_MAX_TOKENS,
    ) -> None:
        self._llm = llm
        self.policy = RecheckPolicy(policy)
        self._max_tokens = max_tokens

    def substitute(
        self,
        recipe: RecipeData,
        disallowed: Sequence[DisallowedMatch],
        profile: DietaryProfile,
    ) -> RecipeData:
        if not disallowed:
            return recipe

        logger.info("substitute.start url=%s disallowed=%d", recipe.sourceUrl, len(disallowed))
        prompt = build_substitution_prompt(recipe, disallowed, profile)
        response = self._llm.complete(prompt, self._max_tokens)
        payload = decode_model(response, SubstitutionPayload).unwrap(
            lambda detail: SubstitutionError(recipe.sourceUrl, detail)
        )

        problems = find_recheck_problems(disallowed, payload, profile)
        if problems and self.policy is RecheckPolicy.REJECT:
            raise SubstitutionError(recipe.sourceUrl, "; ".join(problems))
        for problem in problems:
            logger.warning("substitute.recheck_miss url=%s problem=%s", recipe.sourceUrl, problem)

        if len(payload.modifiedIngredients) != len(recipe.ingredients):
            logger.warning(
                "substitute.count_changed url=%s before=%d after=%d",
                recipe.sourceUrl,
                len(recipe.ingredients),
                len(payload.modifiedIngredients),
            )

        logger.info("substitute.ok url=%s substitutions=%d", recipe.sourceUrl, len(payload.substitutions))
        return recipe.model_copy(
            update={
                "ingredients": payload.modifiedIngredients,
                "instructions": payload.modifiedInstructions,
                "substitutions": payload.substitutions,
            }
        )
