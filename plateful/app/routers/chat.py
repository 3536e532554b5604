from __future__ import annotations

from fastapi import APIRouter, Depends, status

from plateful.app.deps import get_recipe_generator
from plateful.app.routers.errors import run_mapped
from plateful.app.schemas.recipes import (
    LoadRecipeRequest,
    LoadRecipeResponse,
    RecipeResponse,
    SaveEditedRecipeRequest,
    SaveEditedRecipeResponse,
)
from plateful.app.services.recipe_generation import RecipeGenerator

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/load-recipe", response_model=LoadRecipeResponse)
async def load_recipe(
    body: LoadRecipeRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
) -> LoadRecipeResponse:
    message = await run_mapped(
        "edit.load",
        generator.start_editing,
        body.conversationID or "",
        body.userID or "",
        body.recipeID or "",
    )
    return LoadRecipeResponse(success=True, message=message.content)


@router.post(
    "/save-edited-recipe",
    response_model=SaveEditedRecipeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_edited_recipe(
    body: SaveEditedRecipeRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
) -> SaveEditedRecipeResponse:
    result = await run_mapped(
        "edit.save",
        generator.save_edited_recipe,
        body.conversationID or "",
        body.userID or "",
        body.recipeID,
    )
    return SaveEditedRecipeResponse(recipe=RecipeResponse.from_domain(result.recipe))
