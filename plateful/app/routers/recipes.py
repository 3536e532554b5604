from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from plateful.app.deps import get_recipe_repository
from plateful.app.domain.errors import InvalidRequestError, RecipeNotFoundError
from plateful.app.domain.models import Recipe
from plateful.app.infra.db.base import RecipeRepository
from plateful.app.routers.errors import run_mapped
from plateful.app.schemas.recipes import RecipeListResponse, RecipeResponse, UpdateRecipeRequest

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _get_owned(repo: RecipeRepository, recipe_id: str, user_id: Optional[str]) -> Recipe:
    if not user_id:
        raise InvalidRequestError("userID required")
    recipe = repo.get(recipe_id, user_id)
    if recipe is None:
        raise RecipeNotFoundError(recipe_id)
    return recipe


def _set_saved(repo: RecipeRepository, recipe_id: str, user_id: Optional[str], is_saved: Optional[bool]) -> Recipe:
    if not user_id or is_saved is None:
        raise InvalidRequestError("userID and isSaved required")
    return repo.update(recipe_id, user_id, {"is_saved": is_saved})


@router.get("/user/{user_id}", response_model=RecipeListResponse)
async def list_user_recipes(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    repo: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeListResponse:
    recipes = await run_mapped("recipes.list", repo.list_for_user, user_id, limit, offset)
    return RecipeListResponse(
        recipes=[RecipeResponse.from_domain(recipe) for recipe in recipes],
        count=len(recipes),
    )


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    user_id: Optional[str] = Query(default=None, alias="userID"),
    repo: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeResponse:
    recipe = await run_mapped("recipes.get", _get_owned, repo, recipe_id, user_id)
    return RecipeResponse.from_domain(recipe)


@router.patch("/{recipe_id}", response_model=RecipeResponse)
async def update_recipe(
    recipe_id: str,
    body: UpdateRecipeRequest,
    repo: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeResponse:
    recipe = await run_mapped("recipes.update", _set_saved, repo, recipe_id, body.userID, body.isSaved)
    return RecipeResponse.from_domain(recipe)
