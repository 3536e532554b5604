from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from plateful.app.domain.models import GenerationResult, Recipe
from plateful.services.recipe_models import RecipeData
from plateful.services.types import CandidateSource, Intent

# Request fields are optional; routes reject missing ones with 400.


class GenerateRecipeRequest(BaseModel):
    conversationID: Optional[str] = None
    userID: Optional[str] = None


class LoadRecipeRequest(BaseModel):
    conversationID: Optional[str] = None
    userID: Optional[str] = None
    recipeID: Optional[str] = None


class SaveEditedRecipeRequest(BaseModel):
    conversationID: Optional[str] = None
    userID: Optional[str] = None
    recipeID: Optional[str] = None


class UpdateRecipeRequest(BaseModel):
    userID: Optional[str] = None
    isSaved: Optional[bool] = None


class RecipeResponse(BaseModel):
    id: str
    recipeID: str
    userID: str
    sourceUrlLower: str
    conversationID: Optional[str] = None
    recipeData: RecipeData
    isSaved: bool = False
    hasSubstitutions: bool = False
    isEdited: bool = False
    originalRecipeID: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_domain(cls, recipe: Recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            recipeID=recipe.recipe_id,
            userID=recipe.user_id,
            sourceUrlLower=recipe.source_url_lower,
            conversationID=recipe.conversation_id,
            recipeData=recipe.recipe_data,
            isSaved=recipe.is_saved,
            hasSubstitutions=recipe.has_substitutions,
            isEdited=recipe.is_edited,
            originalRecipeID=recipe.original_recipe_id,
            createdAt=recipe.created_at,
            updatedAt=recipe.updated_at,
        )


class IntentResponse(BaseModel):
    dish: str
    searchQuery: str
    status: str
    certaintyLevel: str
    explanation: str

    @classmethod
    def from_domain(cls, intent: Intent) -> "IntentResponse":
        return cls(**intent.to_dict())


class SearchResultResponse(BaseModel):
    title: str
    url: str
    snippet: Optional[str] = None

    @classmethod
    def from_domain(cls, candidate: CandidateSource) -> "SearchResultResponse":
        return cls(title=candidate.title, url=candidate.url, snippet=candidate.snippet)


class GenerateRecipeResponse(BaseModel):
    recipe: RecipeResponse
    intent: IntentResponse
    searchResult: SearchResultResponse
    attemptedUrls: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerateRecipeResponse":
        if result.intent is None or result.candidate is None:
            raise ValueError("generation result has no intent or winning candidate")
        return cls(
            recipe=RecipeResponse.from_domain(result.recipe),
            intent=IntentResponse.from_domain(result.intent),
            searchResult=SearchResultResponse.from_domain(result.candidate),
            attemptedUrls=result.attempted_urls,
        )


class LoadRecipeResponse(BaseModel):
    success: bool = True
    message: str


class SaveEditedRecipeResponse(BaseModel):
    recipe: RecipeResponse


class RecipeListResponse(BaseModel):
    recipes: list[RecipeResponse]
    count: int
