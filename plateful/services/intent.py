from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from plateful.services.decoding import decode_model
from plateful.services.errors import ParseError
from plateful.services.gemini_client import LLMClient
from plateful.services.prompts import build_intent_prompt
from plateful.services.types import DietaryProfile, Intent, IntentStatus, certainty_for

logger = logging.getLogger(__name__)

INTENT_MAX_TOKENS = 512


class IntentPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    dish: str = Field(min_length=1)
    searchQuery: str = Field(min_length=1)
    status: IntentStatus
    certaintyLevel: Optional[str] = None
    explanation: Optional[str] = None


def _message_field(message: Any, name: str) -> str:
    if isinstance(message, Mapping):
        value = message.get(name)
    else:
        value = getattr(message, name, None)
    if isinstance(value, Enum):
        value = value.value
    return str(value or "").strip()


def format_transcript(messages: Sequence[Any]) -> str:
    lines: list[str] = []
    for message in messages:
        content = _message_field(message, "content")
        if not content:
            continue
        role = _message_field(message, "role").lower()
        speaker = "User" if role == "user" else "AI"
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


class IntentExtractor:
    def __init__(self, llm: LLMClient, max_tokens: int = INTENT_MAX_TOKENS) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    def extract(
        self,
        messages: Sequence[Any],
        profile: Optional[DietaryProfile] = None,
    ) -> Intent:
        if not messages:
            raise ValueError("Intent extraction needs at least one message.")

        prompt = build_intent_prompt(format_transcript(messages), profile)
        response = self._llm.complete(prompt, self._max_tokens)
        payload = decode_model(response, IntentPayload).unwrap(ParseError)

        certainty = certainty_for(payload.status)
        if payload.certaintyLevel and payload.certaintyLevel.lower() != certainty.value:
            logger.info(
                "intent.certainty_corrected status=%s model=%s corrected=%s",
                payload.status.value,
                payload.certaintyLevel,
                certainty.value,
            )

        intent = Intent(
            dish=payload.dish,
            search_query=payload.searchQuery,
            status=payload.status,
            certainty=certainty,
            explanation=payload.explanation or payload.dish,
        )
        logger.info(
            "intent.extracted dish=%s status=%s certainty=%s",
            intent.dish,
            intent.status.value,
            intent.certainty.value,
        )
        return intent
