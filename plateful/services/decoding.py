# plateful/services/decoding.py
"""
Strict decoding of model output.

Model responses are treated as untrusted text: code fences are stripped, the
outermost JSON value is located, parsed and validated against a pydantic
model. The result is a tagged ``Decoded`` value carrying either the validated
object or the reason it was rejected, never a partially valid object.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class Decoded(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Decoded[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: str) -> "Decoded[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self, raise_error: Callable[[str], Exception]) -> T:
        if self.error is not None:
            raise raise_error(self.error)
        return self.value  # type: ignore[return-value]


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text or "").strip()


def _find_json_span(text: str) -> Optional[str]:
    starts = [idx for idx in (text.find("{"), text.find("[")) if idx != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start : end + 1]


def decode_json(text: str) -> Decoded[Any]:
    cleaned = strip_code_fences(text)
    if not cleaned:
        return Decoded.fail("empty response")

    try:
        return Decoded.ok(json.loads(cleaned))
    except json.JSONDecodeError:
        pass

    span = _find_json_span(cleaned)
    if span is None:
        return Decoded.fail("no JSON value found in response")
    try:
        return Decoded.ok(json.loads(span))
    except json.JSONDecodeError as error:
        return Decoded.fail(f"invalid JSON: {error.msg}")


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(piece) for piece in item.get("loc", ())) or "<root>"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def validate_payload(payload: Any, model: Type[M]) -> Decoded[M]:
    if not isinstance(payload, dict):
        return Decoded.fail(f"expected a JSON object, got {type(payload).__name__}")
    try:
        return Decoded.ok(model.model_validate(payload))
    except ValidationError as error:
        return Decoded.fail(_describe_validation_error(error))


def decode_model(text: str, model: Type[M]) -> Decoded[M]:
    raw = decode_json(text)
    if not raw.is_ok:
        return Decoded.fail(raw.error or "invalid JSON")
    return validate_payload(raw.value, model)
