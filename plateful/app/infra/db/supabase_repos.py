from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

import httpx
from supabase import Client

from plateful.app.domain.errors import ConversationNotFoundError, RecipeNotFoundError, RepositoryError
from plateful.app.domain.models import (
    ChatMessage,
    Conversation,
    ConversationStatus,
    MessageRole,
    Recipe,
    utc_now,
)
from plateful.app.infra.db.base import (
    ConversationRepository,
    MessageRepository,
    ProfileRepository,
    RecipeRepository,
)
from plateful.services.recipe_models import RecipeData
from plateful.services.types import DietaryProfile

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (ConnectionError, TimeoutError, httpx.HTTPError)

_CONVERSATION_COLUMNS = frozenset({"status", "decided_dish", "search_query", "editing_recipe_id", "recipe_id"})

_RECIPE_COLUMNS = frozenset({"conversation_id", "recipe_data", "is_saved", "has_substitutions"})


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _row_to_message(row: Mapping[str, Any]) -> ChatMessage:
    return ChatMessage(
        id=_safe_str(row.get("id")),
        conversation_id=str(row["conversation_id"]),
        index=int(row.get("message_index") or 0),
        role=MessageRole(str(row["role"])),
        content=str(row.get("content") or ""),
        timestamp=_parse_datetime(row.get("created_at")),
    )


def _row_to_conversation(row: Mapping[str, Any]) -> Conversation:
    return Conversation(
        conversation_id=str(row["id"]),
        user_id=str(row["user_id"]),
        status=ConversationStatus(str(row.get("status") or ConversationStatus.EXPLORING.value)),
        decided_dish=_safe_str(row.get("decided_dish")),
        search_query=_safe_str(row.get("search_query")),
        editing_recipe_id=_safe_str(row.get("editing_recipe_id")),
        recipe_id=_safe_str(row.get("recipe_id")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_profile(row: Mapping[str, Any]) -> DietaryProfile:
    macros = row.get("daily_macro_targets")
    return DietaryProfile(
        likes=_str_list(row.get("likes")),
        dislikes=_str_list(row.get("dislikes")),
        allergens=_str_list(row.get("allergens")),
        restrictions=_str_list(row.get("restrictions")),
        cooking_proficiency=_safe_str(row.get("cooking_proficiency")),
        daily_macro_targets=dict(macros) if isinstance(macros, dict) else None,
    )


def _row_to_recipe(row: Mapping[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        source_url_lower=str(row.get("source_url_lower") or ""),
        recipe_data=RecipeData.model_validate(row.get("recipe_data") or {}),
        conversation_id=_safe_str(row.get("conversation_id")),
        is_saved=bool(row.get("is_saved")),
        has_substitutions=bool(row.get("has_substitutions")),
        is_edited=bool(row.get("is_edited")),
        original_recipe_id=_safe_str(row.get("original_recipe_id")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    return {
        "id": recipe.id,
        "user_id": recipe.user_id,
        "source_url_lower": recipe.source_url_lower,
        "recipe_name_lower": recipe.recipe_data.title.lower(),
        "conversation_id": recipe.conversation_id,
        "recipe_data": recipe.recipe_data.model_dump(mode="json", exclude_none=True),
        "is_saved": recipe.is_saved,
        "has_substitutions": recipe.has_substitutions,
        "is_edited": recipe.is_edited,
        "original_recipe_id": recipe.original_recipe_id,
    }


def _patch_to_row(patch: Mapping[str, Any], columns: frozenset[str]) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for key, value in patch.items():
        if key not in columns:
            raise ValueError(f"Unsupported patch field: {key}")
        if isinstance(value, ConversationStatus):
            value = value.value
        elif isinstance(value, RecipeData):
            value = value.model_dump(mode="json", exclude_none=True)
        row[key] = value
    row["updated_at"] = utc_now().isoformat()
    return row


class SupabaseMessageRepository(MessageRepository):
    TABLE_NAME = "chat_messages"

    def __init__(self, client: Client):
        self._client = client

    def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("conversation_id", conversation_id)
                .order("message_index")
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error listing messages: %s", error)
            raise RepositoryError("list_messages", str(error)) from error

        return [_row_to_message(row) for row in (result.data or [])]

    def _next_index(self, conversation_id: str) -> int:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("message_index")
            .eq("conversation_id", conversation_id)
            .order("message_index", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return 0
        return int(result.data[0].get("message_index") or 0) + 1

    def append_message(self, conversation_id: str, role: MessageRole, content: str) -> ChatMessage:
        try:
            row = {
                "conversation_id": conversation_id,
                "message_index": self._next_index(conversation_id),
                "role": role.value,
                "content": content,
            }
            result = self._client.table(self.TABLE_NAME).insert(row).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Network error appending message: %s", error)
            raise RepositoryError("append_message", str(error)) from error

        if not result.data:
            raise RepositoryError("append_message", "insert returned no row")
        return _row_to_message(result.data[0])


class SupabaseConversationRepository(ConversationRepository):
    TABLE_NAME = "chat_conversations"

    def __init__(self, client: Client):
        self._client = client

    def get(self, conversation_id: str) -> Optional[Conversation]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("id", conversation_id)
                .limit(1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error getting conversation: %s", error)
            raise RepositoryError("get_conversation", str(error)) from error

        return _row_to_conversation(result.data[0]) if result.data else None

    def update(self, conversation_id: str, patch: Mapping[str, Any]) -> Conversation:
        row = _patch_to_row(patch, _CONVERSATION_COLUMNS)
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .update(row)
                .eq("id", conversation_id)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error updating conversation: %s", error)
            raise RepositoryError("update_conversation", str(error)) from error

        if not result.data:
            raise ConversationNotFoundError(conversation_id)
        return _row_to_conversation(result.data[0])


class SupabaseProfileRepository(ProfileRepository):
    TABLE_NAME = "food_profiles"

    def __init__(self, client: Client):
        self._client = client

    def get(self, user_id: str) -> Optional[DietaryProfile]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error getting profile: %s", error)
            raise RepositoryError("get_profile", str(error)) from error

        return _row_to_profile(result.data[0]) if result.data else None


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client):
        self._client = client

    def find_by_user_and_source_url(self, user_id: str, source_url_lower: str) -> Optional[Recipe]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("user_id", user_id)
                .eq("source_url_lower", source_url_lower)
                .is_("original_recipe_id", "null")
                .order("created_at")
                .limit(1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error looking up recipe by source: %s", error)
            raise RepositoryError("find_recipe", str(error)) from error

        return _row_to_recipe(result.data[0]) if result.data else None

    def create(self, recipe: Recipe) -> Recipe:
        try:
            result = self._client.table(self.TABLE_NAME).insert(_recipe_to_row(recipe)).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Network error creating recipe: %s", error)
            raise RepositoryError("create_recipe", str(error)) from error

        if not result.data:
            raise RepositoryError("create_recipe", "insert returned no row")
        created = _row_to_recipe(result.data[0])
        logger.info("Created recipe: id=%s, user=%s", created.id, created.user_id)
        return created

    def update(self, recipe_id: str, user_id: str, patch: Mapping[str, Any]) -> Recipe:
        row = _patch_to_row(patch, _RECIPE_COLUMNS)
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .update(row)
                .eq("id", recipe_id)
                .eq("user_id", user_id)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error updating recipe: %s", error)
            raise RepositoryError("update_recipe", str(error)) from error

        if not result.data:
            raise RecipeNotFoundError(recipe_id)
        return _row_to_recipe(result.data[0])

    def get(self, recipe_id: str, user_id: Optional[str] = None) -> Optional[Recipe]:
        try:
            query = self._client.table(self.TABLE_NAME).select("*").eq("id", recipe_id)

            if user_id:
                query = query.eq("user_id", user_id)

            result = query.limit(1).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Network error getting recipe: %s", error)
            raise RepositoryError("get_recipe", str(error)) from error

        return _row_to_recipe(result.data[0]) if result.data else None

    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Recipe]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Network error listing recipes for user: %s", error)
            raise RepositoryError("list_recipes", str(error)) from error

        return [_row_to_recipe(row) for row in (result.data or [])]
