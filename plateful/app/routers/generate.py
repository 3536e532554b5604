from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from plateful.app.deps import get_recipe_generator
from plateful.app.routers.errors import run_mapped
from plateful.app.schemas.recipes import GenerateRecipeRequest, GenerateRecipeResponse
from plateful.app.services.recipe_generation import RecipeGenerator

log = logging.getLogger(__name__)
router = APIRouter(tags=["generate"])


@router.post(
    "/generate-recipe",
    response_model=GenerateRecipeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_recipe(
    body: GenerateRecipeRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
) -> GenerateRecipeResponse:
    log.info("generate.request conversation=%s user=%s", body.conversationID, body.userID)
    result = await run_mapped(
        "generate",
        generator.generate,
        body.conversationID or "",
        body.userID or "",
    )
    return GenerateRecipeResponse.from_result(result)
