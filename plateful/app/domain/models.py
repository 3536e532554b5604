# plateful/app/domain/models.py
"""
Domain models for conversations, messages and persisted recipes.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from plateful.services.errors import CandidateStageError
from plateful.services.recipe_models import RecipeData
from plateful.services.types import CandidateSource, Intent


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_recipe_id() -> str:
    return f"recipe-{uuid4().hex}"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationStatus(str, Enum):
    """Lifecycle of a conversation as it moves towards a recipe."""
    EXPLORING = "exploring"
    DECIDED = "decided"
    EDITING_RECIPE = "editing_recipe"
    RECIPE_FOUND = "recipe_found"


@dataclass
class ChatMessage:
    conversation_id: str
    index: int
    role: MessageRole
    content: str
    timestamp: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class Conversation:
    conversation_id: str
    user_id: str
    status: ConversationStatus = ConversationStatus.EXPLORING
    decided_dish: Optional[str] = None
    search_query: Optional[str] = None
    editing_recipe_id: Optional[str] = None
    recipe_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Recipe:
    """
    A recipe persisted for one user.

    ``source_url_lower`` together with ``user_id`` is the dedup key for
    generated recipes. Edited copies carry ``original_recipe_id`` and are
    never matched by the dedup lookup.
    """
    id: str
    user_id: str
    source_url_lower: str
    recipe_data: RecipeData
    conversation_id: Optional[str] = None
    is_saved: bool = False
    has_substitutions: bool = False
    is_edited: bool = False
    original_recipe_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def recipe_id(self) -> str:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipeID": self.recipe_id,
            "userID": self.user_id,
            "recipeNameLower": self.recipe_data.title.lower(),
            "sourceUrlLower": self.source_url_lower,
            "conversationID": self.conversation_id,
            "recipeData": self.recipe_data.model_dump(mode="json", exclude_none=True),
            "isSaved": self.is_saved,
            "hasSubstitutions": self.has_substitutions,
            "isEdited": self.is_edited,
            "originalRecipeID": self.original_recipe_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class CandidateAttempt:
    """What happened to one candidate: a finished recipe or the error of the stage that failed."""
    candidate: CandidateSource
    recipe: Optional[RecipeData] = None
    error: Optional[CandidateStageError] = None
    substituted: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.recipe is not None

    @property
    def failed_stage(self) -> Optional[str]:
        return self.error.stage if self.error is not None else None


@dataclass
class GenerationResult:
    """Outcome of a successful pipeline run."""
    recipe: Recipe
    intent: Optional[Intent]
    candidate: Optional[CandidateSource]
    attempts: list[CandidateAttempt] = field(default_factory=list)
    created: bool = True

    @property
    def attempted_urls(self) -> list[str]:
        return [attempt.candidate.url for attempt in self.attempts]
