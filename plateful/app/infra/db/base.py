# plateful/app/infra/db/base.py
"""
Abstract repositories consumed by the recipe generation pipeline.
Implementations can be swapped for in-memory doubles in tests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from plateful.app.domain.models import ChatMessage, Conversation, MessageRole, Recipe
from plateful.services.types import DietaryProfile


class MessageRepository(ABC):
    """
    Append-only chat message storage.

    Implementations:
    - SupabaseMessageRepository: ``chat_messages`` table
    """

    @abstractmethod
    def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        """Return every message of the conversation ordered by index."""
        pass

    @abstractmethod
    def append_message(self, conversation_id: str, role: MessageRole, content: str) -> ChatMessage:
        """
        Append a message after the current last one.

        The index is the current maximum plus one. Two concurrent appends to
        the same conversation may observe the same maximum.
        """
        pass


class ConversationRepository(ABC):

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[Conversation]:
        pass

    @abstractmethod
    def update(self, conversation_id: str, patch: Mapping[str, Any]) -> Conversation:
        """
        Apply ``patch`` (keys are Conversation field names) and return the
        updated conversation.

        Raises:
            ConversationNotFoundError: if the conversation does not exist
        """
        pass


class ProfileRepository(ABC):

    @abstractmethod
    def get(self, user_id: str) -> Optional[DietaryProfile]:
        pass


class RecipeRepository(ABC):
    """
    Per-user recipe storage.

    The dedup key is (user_id, source_url_lower). Lookups by that key only
    consider generated recipes, never edited copies.
    """

    @abstractmethod
    def find_by_user_and_source_url(self, user_id: str, source_url_lower: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def create(self, recipe: Recipe) -> Recipe:
        pass

    @abstractmethod
    def update(self, recipe_id: str, user_id: str, patch: Mapping[str, Any]) -> Recipe:
        """
        Apply ``patch`` (keys are Recipe field names) to the user's recipe.

        Raises:
            RecipeNotFoundError: if the recipe does not exist for the user
        """
        pass

    @abstractmethod
    def get(self, recipe_id: str, user_id: Optional[str] = None) -> Optional[Recipe]:
        pass

    @abstractmethod
    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Recipe]:
        """Most recently created first."""
        pass
