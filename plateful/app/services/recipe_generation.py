# plateful/app/services/recipe_generation.py
"""
Recipe generation pipeline.

Turns a stored conversation into one persisted, constraint-checked recipe:
intent extraction, candidate search, then per candidate scrape, format,
constraint check and (when needed) substitution, falling back to the next
candidate on any stage failure. The winning recipe is deduplicated per user
by its lower-cased source URL.

Every collaborator is passed to ``RecipeGenerator`` explicitly.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional, Sequence

from plateful.app.domain.errors import (
    AllCandidatesExhaustedError,
    ConversationNotFoundError,
    InvalidRequestError,
    NoCandidatesError,
    NoMessagesError,
    OffTopicError,
    RecipeNotFoundError,
)
from plateful.app.domain.models import (
    CandidateAttempt,
    ChatMessage,
    Conversation,
    ConversationStatus,
    GenerationResult,
    MessageRole,
    Recipe,
    new_recipe_id,
)
from plateful.app.infra.db.base import (
    ConversationRepository,
    MessageRepository,
    ProfileRepository,
    RecipeRepository,
)
from plateful.app.services.fallback import iter_candidate_attempts, run_until_success
from plateful.services import constraints
from plateful.services.errors import (
    CandidateStageError,
    FormatError,
    LLMConfigurationError,
    RateLimitedError,
    ServiceError,
    SubstitutionError,
)
from plateful.services.formatter import RecipeFormatter
from plateful.services.intent import IntentExtractor, format_transcript
from plateful.services.prompts import render_recipe_as_source
from plateful.services.recipe_models import RecipeData
from plateful.services.scraper import RecipeScraper
from plateful.services.search import CandidateSearchProvider
from plateful.services.substitution import SubstitutionEngine
from plateful.services.types import CandidateSource, DietaryProfile, DisallowedMatch, IntentStatus

logger = logging.getLogger(__name__)

ConstraintCheck = Callable[[Sequence[str], Optional[DietaryProfile]], list[DisallowedMatch]]

EDIT_WELCOME_MESSAGE = 'I\'ve loaded your recipe "{title}". How would you like to modify it?'


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise InvalidRequestError(f"{' and '.join(missing)} required")


class RecipeGenerator:
    def __init__(
        self,
        messages: MessageRepository,
        conversations: ConversationRepository,
        profiles: ProfileRepository,
        recipes: RecipeRepository,
        intent_extractor: IntentExtractor,
        search_provider: CandidateSearchProvider,
        scraper: RecipeScraper,
        formatter: RecipeFormatter,
        substitution: SubstitutionEngine,
        site_heuristics: bool = True,
        constraint_check: ConstraintCheck = constraints.check,
    ) -> None:
        self._messages = messages
        self._conversations = conversations
        self._profiles = profiles
        self._recipes = recipes
        self._intent = intent_extractor
        self._search = search_provider
        self._scraper = scraper
        self._formatter = formatter
        self._substitution = substitution
        self._site_heuristics = site_heuristics
        self._check = constraint_check

    def _load_messages(self, conversation_id: str) -> list[ChatMessage]:
        messages = self._messages.list_messages(conversation_id)
        if not messages:
            raise NoMessagesError(conversation_id)
        return messages

    def _load_profile(self, user_id: str) -> DietaryProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            logger.info("generate.no_profile user=%s", user_id)
            return DietaryProfile()
        return profile

    def _update_conversation_if_present(self, conversation_id: str, patch: Mapping[str, Any]) -> None:
        if self._conversations.get(conversation_id) is None:
            logger.warning("generate.conversation_missing conversation=%s", conversation_id)
            return
        self._conversations.update(conversation_id, patch)

    def _make_safe(self, recipe: RecipeData, profile: DietaryProfile) -> tuple[RecipeData, bool]:
        """Run the constraint check and substitute when anything is disallowed."""
        disallowed = self._check(recipe.ingredients, profile)
        if not disallowed:
            return recipe, False

        logger.info(
            "generate.disallowed url=%s matches=%s",
            recipe.sourceUrl,
            ", ".join(f"{match.ingredient} ({match.reason})" for match in disallowed),
        )
        return self._substitution.substitute(recipe, disallowed, profile), True

    def _attempt(self, candidate: CandidateSource, profile: DietaryProfile) -> CandidateAttempt:
        url = candidate.url
        outcome = self._scraper.scrape(url, site_heuristics=self._site_heuristics)
        if not outcome.ok:
            return self._failed(candidate, outcome.error)

        content = outcome.unwrap()
        stage_error: type[CandidateStageError] = FormatError
        try:
            recipe = self._formatter.format(content.text, url, profile, content.image_url)
            stage_error = SubstitutionError
            recipe, substituted = self._make_safe(recipe, profile)
        except CandidateStageError as error:
            return self._failed(candidate, error)
        except (RateLimitedError, LLMConfigurationError):
            raise
        except ServiceError as error:
            return self._failed(candidate, stage_error(url, str(error)))

        logger.info("generate.candidate_ok url=%s substituted=%s", url, substituted)
        return CandidateAttempt(candidate=candidate, recipe=recipe, substituted=substituted)

    def _failed(self, candidate: CandidateSource, error: Optional[CandidateStageError]) -> CandidateAttempt:
        logger.warning(
            "generate.candidate_fail url=%s stage=%s error=%s",
            candidate.url,
            error.stage if error else "unknown",
            error,
        )
        return CandidateAttempt(candidate=candidate, error=error)

    def _persist(
        self,
        candidate: CandidateSource,
        recipe_data: RecipeData,
        substituted: bool,
        user_id: str,
        conversation_id: str,
    ) -> tuple[Recipe, bool]:
        source_url_lower = candidate.url.lower()

        existing = self._recipes.find_by_user_and_source_url(user_id, source_url_lower)
        if existing is not None:
            logger.info("generate.dedup_hit recipe=%s url=%s", existing.id, source_url_lower)
            if not existing.conversation_id:
                existing = self._recipes.update(existing.id, user_id, {"conversation_id": conversation_id})
            return existing, False

        recipe = Recipe(
            id=new_recipe_id(),
            user_id=user_id,
            source_url_lower=source_url_lower,
            recipe_data=recipe_data,
            conversation_id=conversation_id,
            has_substitutions=substituted,
        )
        return self._recipes.create(recipe), True

    def generate(self, conversation_id: str, user_id: str) -> GenerationResult:
        _require(conversationID=conversation_id, userID=user_id)
        t0 = time.time()
        logger.info("generate.start conversation=%s user=%s", conversation_id, user_id)

        messages = self._load_messages(conversation_id)
        profile = self._load_profile(user_id)

        intent = self._intent.extract(messages, profile)
        if intent.status is IntentStatus.OFF_TOPIC:
            logger.info("generate.off_topic conversation=%s", conversation_id)
            raise OffTopicError(intent)

        self._update_conversation_if_present(
            conversation_id,
            {
                "status": ConversationStatus.DECIDED,
                "decided_dish": intent.dish,
                "search_query": intent.search_query,
            },
        )

        candidates = self._search.search(intent.search_query, profile)
        if not candidates:
            logger.info("generate.no_candidates query=%s", intent.search_query)
            raise NoCandidatesError(intent.search_query)

        attempts = iter_candidate_attempts(candidates, lambda candidate: self._attempt(candidate, profile))
        winner, history = run_until_success(attempts)
        if winner is None or winner.recipe is None:
            attempted_urls = [attempt.candidate.url for attempt in history]
            last_error = history[-1].error if history else None
            logger.error(
                "generate.exhausted conversation=%s attempted=%d last_error=%s",
                conversation_id,
                len(attempted_urls),
                last_error,
            )
            raise AllCandidatesExhaustedError(attempted_urls, last_error)

        recipe, created = self._persist(winner.candidate, winner.recipe, winner.substituted, user_id, conversation_id)
        self._update_conversation_if_present(
            conversation_id,
            {"status": ConversationStatus.RECIPE_FOUND, "recipe_id": recipe.id},
        )

        dt = time.time() - t0
        logger.info(
            "generate.ok conversation=%s recipe=%s created=%s attempts=%d dt=%.2fs",
            conversation_id,
            recipe.id,
            created,
            len(history),
            dt,
        )
        return GenerationResult(
            recipe=recipe,
            intent=intent,
            candidate=winner.candidate,
            attempts=history,
            created=created,
        )

    def _require_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def _require_recipe(self, recipe_id: str, user_id: str) -> Recipe:
        recipe = self._recipes.get(recipe_id, user_id)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def start_editing(self, conversation_id: str, user_id: str, recipe_id: str) -> ChatMessage:
        """
        Put the conversation into editing mode for one of the user's recipes
        and post an assistant message inviting changes.
        """
        _require(conversationID=conversation_id, recipeID=recipe_id, userID=user_id)
        self._require_conversation(conversation_id)
        recipe = self._require_recipe(recipe_id, user_id)

        self._conversations.update(
            conversation_id,
            {"status": ConversationStatus.EDITING_RECIPE, "editing_recipe_id": recipe.id},
        )
        message = self._messages.append_message(
            conversation_id,
            MessageRole.ASSISTANT,
            EDIT_WELCOME_MESSAGE.format(title=recipe.recipe_data.title),
        )
        logger.info("edit.start conversation=%s recipe=%s", conversation_id, recipe.id)
        return message

    def save_edited_recipe(
        self,
        conversation_id: str,
        user_id: str,
        recipe_id: Optional[str] = None,
    ) -> GenerationResult:
        """
        Save the edits discussed in the conversation as a new recipe.

        The original recipe is left untouched; the copy points back to it
        through ``original_recipe_id``.
        """
        _require(conversationID=conversation_id, userID=user_id)
        t0 = time.time()
        conversation = self._require_conversation(conversation_id)

        target_id = recipe_id or conversation.editing_recipe_id
        if not target_id:
            raise InvalidRequestError("No recipe being edited in this conversation")
        original = self._require_recipe(target_id, user_id)

        messages = self._load_messages(conversation_id)
        profile = self._load_profile(user_id)

        source_url = original.recipe_data.sourceUrl or original.source_url_lower
        content = render_recipe_as_source(original.recipe_data, format_transcript(messages))
        edited = self._formatter.format(content, source_url, profile, original.recipe_data.imageUrl)
        edited, substituted = self._make_safe(edited, profile)

        recipe = self._recipes.create(
            Recipe(
                id=new_recipe_id(),
                user_id=user_id,
                source_url_lower=original.source_url_lower,
                recipe_data=edited,
                conversation_id=conversation_id,
                is_saved=True,
                has_substitutions=substituted,
                is_edited=True,
                original_recipe_id=original.id,
            )
        )
        self._conversations.update(
            conversation_id,
            {
                "status": ConversationStatus.RECIPE_FOUND,
                "recipe_id": recipe.id,
                "editing_recipe_id": None,
            },
        )

        dt = time.time() - t0
        logger.info(
            "edit.saved conversation=%s original=%s recipe=%s dt=%.2fs",
            conversation_id,
            original.id,
            recipe.id,
            dt,
        )
        return GenerationResult(recipe=recipe, intent=None, candidate=None, created=True)
