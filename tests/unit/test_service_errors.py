from __future__ import annotations

import pytest

from plateful.services.errors import (
    CandidateStageError,
    ContentTooShortError,
    FormatError,
    LLMConfigurationError,
    NetworkTimeoutError,
    ParseError,
    RateLimitedError,
    ScrapeError,
    ScrapeForbiddenError,
    ScrapeNetworkError,
    ScrapeNotFoundError,
    ServiceError,
    SubstitutionError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)


class TestRateLimitedError:
    def test_rate_limited(self) -> None:
        error = RateLimitedError("Too many requests")
        assert "Too many requests" in str(error)
        assert isinstance(error, ServiceError)


class TestLLMConfigurationError:
    def test_is_service_error(self) -> None:
        assert isinstance(LLMConfigurationError("Missing key"), ServiceError)


class TestNetworkTimeoutError:
    def test_timeout_with_url_and_seconds(self) -> None:
        error = NetworkTimeoutError("https://example.com/recipe", 15.0)
        assert "https://example.com/recipe" in str(error)
        assert "15" in str(error)
        assert error.url == "https://example.com/recipe"
        assert error.timeout_seconds == 15.0


class TestParseError:
    def test_keeps_detail(self) -> None:
        error = ParseError("missing field dish")
        assert error.detail == "missing field dish"
        assert "Malformed model output" in str(error)


class TestCandidateStageErrors:
    @pytest.mark.parametrize(
        ("error_type", "stage"),
        [
            (ScrapeError, "scrape"),
            (ScrapeForbiddenError, "scrape"),
            (ScrapeNotFoundError, "scrape"),
            (ScrapeNetworkError, "scrape"),
            (FormatError, "format"),
            (SubstitutionError, "substitute"),
        ],
    )
    def test_stage_and_message(self, error_type: type, stage: str) -> None:
        error = error_type("https://example.com/r", "boom")
        assert isinstance(error, CandidateStageError)
        assert error.stage == stage
        assert error.url == "https://example.com/r"
        assert error.detail == "boom"
        assert str(error) == f"{stage} failed for https://example.com/r: boom"

    def test_content_too_short(self) -> None:
        error = ContentTooShortError("https://example.com/r", 120, 200)
        assert isinstance(error, ScrapeError)
        assert error.length == 120
        assert error.min_chars == 200
        assert "120 < 200" in str(error)
