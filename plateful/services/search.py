from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence
from urllib.parse import urlparse

from plateful.services.decoding import decode_json
from plateful.services.gemini_client import LLMClient
from plateful.services.prompts import build_search_prompt
from plateful.services.types import CandidateSource, DietaryProfile

logger = logging.getLogger(__name__)

SEARCH_MAX_TOKENS = 2048
DEFAULT_MAX_CANDIDATES = 5
URL_PATTERN = re.compile(r"https?://[^\s<>\"'{}|\\^`\[\]]+")


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def is_blocked(url: str, blocked_domains: Iterable[str]) -> bool:
    host = _host(url)
    if not host:
        return True
    for domain in blocked_domains:
        normalized = domain.strip().lower()
        if normalized.startswith("www."):
            normalized = normalized[4:]
        if normalized and (host == normalized or host.endswith("." + normalized)):
            return True
    return False


def _entries_from_payload(payload: Any) -> list[dict]:
    if isinstance(payload, dict):
        for key in ("candidates", "results", "recipes"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            payload = [payload]
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def _candidates_from_entries(entries: Sequence[dict]) -> list[CandidateSource]:
    candidates: list[CandidateSource] = []
    for entry in entries:
        url = _clean_str(entry.get("url"))
        title = _clean_str(entry.get("title"))
        if not url or not title:
            continue
        candidates.append(CandidateSource(title=title, url=url, snippet=_clean_str(entry.get("snippet"))))
    return candidates


def _candidates_from_text(text: str, query: str) -> list[CandidateSource]:
    return [
        CandidateSource(title=query, url=match.rstrip(".,;)"), snippet="Recipe found via web search")
        for match in URL_PATTERN.findall(text or "")
    ]


class CandidateSearchProvider:
    def __init__(
        self,
        llm: LLMClient,
        blocked_domains: Sequence[str] = (),
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        max_tokens: int = SEARCH_MAX_TOKENS,
    ) -> None:
        self._llm = llm
        self.blocked_domains = tuple(blocked_domains)
        self.max_candidates = max(1, max_candidates)
        self._max_tokens = max_tokens

    def _filter(self, candidates: Iterable[CandidateSource]) -> list[CandidateSource]:
        seen: set[str] = set()
        kept: list[CandidateSource] = []
        for candidate in candidates:
            if not candidate.url.lower().startswith(("http://", "https://")):
                continue
            if is_blocked(candidate.url, self.blocked_domains):
                logger.info("search.blocked url=%s", candidate.url)
                continue
            key = candidate.url.lower()
            if key in seen:
                continue
            seen.add(key)
            kept.append(candidate)
            if len(kept) == self.max_candidates:
                break
        return kept

    def search(self, query: str, profile: Optional[DietaryProfile] = None) -> list[CandidateSource]:
        prompt = build_search_prompt(query, profile, self.blocked_domains, self.max_candidates)
        response = self._llm.search(prompt, self._max_tokens)

        decoded = decode_json(response)
        if decoded.is_ok:
            candidates = _candidates_from_entries(_entries_from_payload(decoded.value))
        else:
            logger.warning("search.unstructured_response query=%s error=%s", query, decoded.error)
            candidates = _candidates_from_text(response, query)

        filtered = self._filter(candidates)
        logger.info("search.done query=%s candidates=%d", query, len(filtered))
        return filtered
