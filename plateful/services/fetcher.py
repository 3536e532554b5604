from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from plateful.services.errors import NetworkTimeoutError, ScrapeNetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
MAX_REDIRECTS = 5

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Referer": "https://www.google.com/",
}


@dataclass(frozen=True)
class FetchResult:
    html: str
    status: int


class Fetcher(Protocol):
    def fetch(self, url: str) -> FetchResult: ...


class WebFetcher:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self._client = client

    def _get(self, client: httpx.Client, url: str) -> FetchResult:
        response = client.get(url, headers=BROWSER_HEADERS)
        return FetchResult(html=response.text, status=response.status_code)

    def fetch(self, url: str) -> FetchResult:
        try:
            if self._client is not None:
                return self._get(self._client, url)
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
            ) as client:
                return self._get(client, url)
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(url, self.timeout) from error
        except httpx.HTTPError as error:
            raise ScrapeNetworkError(url, f"request failed: {error}") from error
        except httpx.InvalidURL as error:
            raise ScrapeNetworkError(url, f"invalid url: {error}") from error
