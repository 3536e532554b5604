# plateful/app/routers/errors.py
"""Translation of pipeline and service errors into HTTP responses."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from plateful.app.domain.errors import (
    AllCandidatesExhaustedError,
    InvalidRequestError,
    NoCandidatesError,
    NotFoundError,
    OffTopicError,
    RepositoryError,
    ServiceUnavailableError,
)
from plateful.services.errors import (
    CandidateStageError,
    LLMConfigurationError,
    ParseError,
    RateLimitedError,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

OFF_TOPIC_MESSAGE = (
    "This conversation isn't about cooking or recipes. "
    "Please ask about a dish or cuisine you'd like to make."
)
NO_CANDIDATES_MESSAGE = "No recipe pages were found for this dish. Try describing it differently."
EXHAUSTED_MESSAGE = "Could not build a recipe from any of the sources found. Please try again."


def http_error_for(exc: Exception) -> Optional[HTTPException]:
    """Return the HTTP error for a known failure, or ``None`` for unexpected ones."""
    if isinstance(exc, OffTopicError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Off-topic conversation",
                "message": OFF_TOPIC_MESSAGE,
                "intent": exc.intent.to_dict(),
            },
        )
    if isinstance(exc, InvalidRequestError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(exc)})
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"error": str(exc)})
    if isinstance(exc, NoCandidatesError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "No candidates found", "message": NO_CANDIDATES_MESSAGE, "query": exc.query},
        )
    if isinstance(exc, AllCandidatesExhaustedError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "All candidates exhausted",
                "message": EXHAUSTED_MESSAGE,
                "attemptedUrls": exc.attempted_urls,
                "lastError": str(exc.last_error) if exc.last_error else None,
            },
        )
    if isinstance(exc, RateLimitedError):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail={"error": str(exc)})
    if isinstance(exc, (ServiceUnavailableError, LLMConfigurationError, RepositoryError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail={"error": str(exc)})
    if isinstance(exc, (CandidateStageError, ParseError)):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Recipe processing failed", "lastError": str(exc)},
        )
    return None


async def run_mapped(event: str, func: Callable[..., T], *args: Any) -> T:
    """Run a blocking pipeline call off the event loop, mapping its failures to HTTP errors."""
    t0 = time.time()
    try:
        return await run_in_threadpool(func, *args)
    except Exception as exc:
        dt = time.time() - t0
        http_error = http_error_for(exc)
        if http_error is None:
            log.exception("%s.fail dt=%.2fs", event, dt)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "Internal server error"},
            ) from exc
        log.warning("%s.rejected status=%d error=%s dt=%.2fs", event, http_error.status_code, exc, dt)
        raise http_error from exc
