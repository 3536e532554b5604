# plateful/app/deps.py
"""
FastAPI dependencies. Clients are created lazily on first use so the app
imports without a configured environment; a missing backend answers 503.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from supabase import Client, create_client

from plateful.app.config import Settings, get_settings
from plateful.app.domain.errors import ServiceUnavailableError
from plateful.app.infra.db.base import RecipeRepository
from plateful.app.infra.db.supabase_repos import (
    SupabaseConversationRepository,
    SupabaseMessageRepository,
    SupabaseProfileRepository,
    SupabaseRecipeRepository,
)
from plateful.app.services.recipe_generation import RecipeGenerator
from plateful.services.fetcher import WebFetcher
from plateful.services.formatter import RecipeFormatter
from plateful.services.gemini_client import GeminiClient, LLMClient
from plateful.services.intent import IntentExtractor
from plateful.services.scraper import RecipeScraper
from plateful.services.search import CandidateSearchProvider
from plateful.services.substitution import RecheckPolicy, SubstitutionEngine

logger = logging.getLogger(__name__)

_client: Optional[Client] = None
_llm: Optional[LLMClient] = None


def _unavailable(component: str) -> HTTPException:
    error = ServiceUnavailableError(component)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail={"error": str(error)})


def get_supabase(settings: Settings = Depends(get_settings)) -> Client:
    global _client
    if not settings.supabase_configured:
        logger.error("deps.unavailable component=supabase")
        raise _unavailable("Recipe store")
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_llm_client(settings: Settings = Depends(get_settings)) -> LLMClient:
    global _llm
    if not settings.llm_configured:
        logger.error("deps.unavailable component=llm")
        raise _unavailable("LLM service")
    if _llm is None:
        _llm = GeminiClient(
            api_key=settings.GEMINI_API_KEY.get_secret_value(),
            model_name=settings.GEMINI_MODEL,
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        )
    return _llm


def get_recipe_repository(supa: Client = Depends(get_supabase)) -> RecipeRepository:
    return SupabaseRecipeRepository(supa)


def build_recipe_generator(settings: Settings, supa: Client, llm: LLMClient) -> RecipeGenerator:
    return RecipeGenerator(
        messages=SupabaseMessageRepository(supa),
        conversations=SupabaseConversationRepository(supa),
        profiles=SupabaseProfileRepository(supa),
        recipes=SupabaseRecipeRepository(supa),
        intent_extractor=IntentExtractor(llm),
        search_provider=CandidateSearchProvider(
            llm,
            blocked_domains=settings.SEARCH_BLOCKED_DOMAINS,
            max_candidates=settings.SEARCH_MAX_CANDIDATES,
        ),
        scraper=RecipeScraper(
            WebFetcher(timeout=settings.SCRAPE_TIMEOUT_SECONDS),
            min_chars=settings.SCRAPE_MIN_CHARS,
        ),
        formatter=RecipeFormatter(llm, max_source_chars=settings.FORMATTER_MAX_SOURCE_CHARS),
        substitution=SubstitutionEngine(llm, policy=RecheckPolicy(settings.SUBSTITUTION_RECHECK_POLICY)),
        site_heuristics=settings.SCRAPE_SITE_HEURISTICS,
    )


def get_recipe_generator(
    settings: Settings = Depends(get_settings),
    supa: Client = Depends(get_supabase),
    llm: LLMClient = Depends(get_llm_client),
) -> RecipeGenerator:
    return build_recipe_generator(settings, supa, llm)
