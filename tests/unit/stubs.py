from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from types import SimpleNamespace
from typing import Any, Mapping, Optional, Sequence, Union

from plateful.app.domain.errors import ConversationNotFoundError, RecipeNotFoundError
from plateful.app.domain.models import (
    ChatMessage,
    Conversation,
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
from plateful.app.services.recipe_generation import RecipeGenerator
from plateful.services.fetcher import FetchResult
from plateful.services.formatter import RecipeFormatter
from plateful.services.gemini_client import GeminiClient, LLMClient
from plateful.services.intent import IntentExtractor
from plateful.services.scraper import RecipeScraper
from plateful.services.search import CandidateSearchProvider
from plateful.services.substitution import RecheckPolicy, SubstitutionEngine
from plateful.services.types import DietaryProfile

Scripted = Union[str, Exception]


class FakeLLM:
    """Returns scripted responses in call order and records every prompt."""

    def __init__(self, complete: Sequence[Scripted] = (), search: Sequence[Scripted] = ()) -> None:
        self.complete_responses = list(complete)
        self.search_responses = list(search)
        self.complete_prompts: list[str] = []
        self.search_prompts: list[str] = []

    @staticmethod
    def _next(queue: list[Scripted], kind: str) -> str:
        if not queue:
            raise AssertionError(f"unexpected {kind} call")
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def complete(self, prompt: str, max_tokens: int) -> str:
        self.complete_prompts.append(prompt)
        return self._next(self.complete_responses, "complete")

    def search(self, prompt: str, max_tokens: int) -> str:
        self.search_prompts.append(prompt)
        return self._next(self.search_responses, "search")


class FakeFetcher:
    def __init__(self, pages: Mapping[str, Union[FetchResult, Exception]]) -> None:
        self.pages = dict(pages)
        self.calls: list[str] = []

    def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            return FetchResult(html="", status=404)
        if isinstance(page, Exception):
            raise page
        return page


class InMemoryMessageRepository(MessageRepository):
    def __init__(self) -> None:
        self.messages: dict[str, list[ChatMessage]] = {}

    def add(self, conversation_id: str, role: MessageRole, content: str) -> ChatMessage:
        return self.append_message(conversation_id, role, content)

    def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        return sorted(self.messages.get(conversation_id, []), key=lambda message: message.index)

    def append_message(self, conversation_id: str, role: MessageRole, content: str) -> ChatMessage:
        existing = self.messages.setdefault(conversation_id, [])
        index = max((message.index for message in existing), default=-1) + 1
        message = ChatMessage(
            conversation_id=conversation_id,
            index=index,
            role=role,
            content=content,
            timestamp=utc_now(),
        )
        existing.append(message)
        return message


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self) -> None:
        self.conversations: dict[str, Conversation] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def add(self, conversation: Conversation) -> None:
        self.conversations[conversation.conversation_id] = conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self.conversations.get(conversation_id)

    def update(self, conversation_id: str, patch: Mapping[str, Any]) -> Conversation:
        current = self.conversations.get(conversation_id)
        if current is None:
            raise ConversationNotFoundError(conversation_id)
        self.updates.append((conversation_id, dict(patch)))
        updated = replace(current, updated_at=utc_now(), **patch)
        self.conversations[conversation_id] = updated
        return updated


class InMemoryProfileRepository(ProfileRepository):
    def __init__(self, profiles: Optional[dict[str, DietaryProfile]] = None) -> None:
        self.profiles = dict(profiles or {})

    def get(self, user_id: str) -> Optional[DietaryProfile]:
        return self.profiles.get(user_id)


class InMemoryRecipeRepository(RecipeRepository):
    def __init__(self) -> None:
        self.recipes: dict[str, Recipe] = {}

    def find_by_user_and_source_url(self, user_id: str, source_url_lower: str) -> Optional[Recipe]:
        for recipe in self.recipes.values():
            if (
                recipe.user_id == user_id
                and recipe.source_url_lower == source_url_lower
                and recipe.original_recipe_id is None
            ):
                return recipe
        return None

    def create(self, recipe: Recipe) -> Recipe:
        now = utc_now()
        stored = replace(recipe, created_at=now, updated_at=now)
        self.recipes[stored.id] = stored
        return stored

    def update(self, recipe_id: str, user_id: str, patch: Mapping[str, Any]) -> Recipe:
        current = self.recipes.get(recipe_id)
        if current is None or current.user_id != user_id:
            raise RecipeNotFoundError(recipe_id)
        updated = replace(current, updated_at=utc_now(), **patch)
        self.recipes[recipe_id] = updated
        return updated

    def get(self, recipe_id: str, user_id: Optional[str] = None) -> Optional[Recipe]:
        recipe = self.recipes.get(recipe_id)
        if recipe is None or (user_id and recipe.user_id != user_id):
            return None
        return recipe

    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Recipe]:
        owned = [recipe for recipe in self.recipes.values() if recipe.user_id == user_id]
        owned.sort(key=lambda recipe: recipe.created_at or utc_now(), reverse=True)
        return owned[offset : offset + limit]


@dataclass
class Harness:
    """A RecipeGenerator wired to in-memory stores, a scripted LLM and fake pages."""

    llm: LLMClient
    fetcher: FakeFetcher
    messages: InMemoryMessageRepository = field(default_factory=InMemoryMessageRepository)
    conversations: InMemoryConversationRepository = field(default_factory=InMemoryConversationRepository)
    profiles: InMemoryProfileRepository = field(default_factory=InMemoryProfileRepository)
    recipes: InMemoryRecipeRepository = field(default_factory=InMemoryRecipeRepository)
    policy: RecheckPolicy = RecheckPolicy.WARN

    def generator(self) -> RecipeGenerator:
        return RecipeGenerator(
            messages=self.messages,
            conversations=self.conversations,
            profiles=self.profiles,
            recipes=self.recipes,
            intent_extractor=IntentExtractor(self.llm),
            search_provider=CandidateSearchProvider(self.llm, blocked_domains=["allrecipes.com"]),
            scraper=RecipeScraper(self.fetcher),
            formatter=RecipeFormatter(self.llm),
            substitution=SubstitutionEngine(self.llm, policy=self.policy),
        )

    def start_conversation(self, conversation_id: str, user_id: str, *user_messages: str) -> None:
        self.conversations.add(Conversation(conversation_id=conversation_id, user_id=user_id))
        for content in user_messages:
            self.messages.add(conversation_id, MessageRole.USER, content)


def intent_json(
    dish: str,
    status: str = "fully_refined",
    certainty: str = "high",
    query: Optional[str] = None,
) -> str:
    return json.dumps(
        {
            "dish": dish,
            "searchQuery": query or f"{dish} recipe",
            "status": status,
            "certaintyLevel": certainty,
            "explanation": f"You want {dish}.",
        }
    )


def search_json(*urls: str) -> str:
    return json.dumps(
        [{"title": f"Recipe {i + 1}", "url": url, "snippet": "A recipe"} for i, url in enumerate(urls)]
    )


def recipe_json(
    title: str = "Kung Pao Chicken",
    ingredients: Sequence[str] = ("1 lb chicken thighs", "2 tbsp soy sauce", "1 tbsp chili flakes"),
    instructions: Sequence[str] = ("Dice the chicken.", "Stir fry everything."),
    nutrition: Optional[dict[str, Any]] = None,
) -> str:
    payload: dict[str, Any] = {
        "title": title,
        "description": "A quick stir fry.",
        "portions": "4 servings",
        "ingredients": list(ingredients),
        "instructions": list(instructions),
    }
    if nutrition is not None:
        payload["nutrition"] = nutrition
    return json.dumps(payload)


def html_page(text: str, head: str = "") -> FetchResult:
    return FetchResult(html=f"<html><head>{head}</head><body><p>{text}</p></body></html>", status=200)


LONG_TEXT = "Stir fry the chicken with peppers and peanuts until glossy. " * 25
SHORT_TEXT = "Too short."


class ScriptedGenAIModels:
    """Stands in for ``genai.Client().models``: scripted replies, recorded calls."""

    def __init__(self, responses: Sequence[Union[str, Exception]]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, model: str, contents: str, config: Any) -> SimpleNamespace:
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(text=response)


def scripted_gemini(*responses: Union[str, Exception]) -> tuple[GeminiClient, ScriptedGenAIModels]:
    client = GeminiClient(api_key="test-key")
    models = ScriptedGenAIModels(responses)
    client._client = SimpleNamespace(models=models)
    return client, models
