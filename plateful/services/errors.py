from __future__ import annotations


class ServiceError(Exception):
    pass


class LLMConfigurationError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class ParseError(ServiceError):
    def __init__(self, detail: str):
        super().__init__(f"Malformed model output: {detail}")
        self.detail = detail


class CandidateStageError(ServiceError):
    """Failure of one pipeline stage for a single candidate source."""

    stage = "candidate"

    def __init__(self, url: str, detail: str):
        super().__init__(f"{self.stage} failed for {url}: {detail}")
        self.url = url
        self.detail = detail


class ScrapeError(CandidateStageError):
    stage = "scrape"


class ScrapeForbiddenError(ScrapeError):
    pass


class ScrapeNotFoundError(ScrapeError):
    pass


class ScrapeNetworkError(ScrapeError):
    pass


class ContentTooShortError(ScrapeError):
    def __init__(self, url: str, length: int, min_chars: int):
        super().__init__(url, f"content too short ({length} < {min_chars} chars)")
        self.length = length
        self.min_chars = min_chars


class FormatError(CandidateStageError):
    stage = "format"


class SubstitutionError(CandidateStageError):
    stage = "substitute"
