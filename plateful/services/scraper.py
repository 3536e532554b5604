from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from plateful.services.errors import (
    ContentTooShortError,
    NetworkTimeoutError,
    ScrapeError,
    ScrapeForbiddenError,
    ScrapeNetworkError,
    ScrapeNotFoundError,
)
from plateful.services.fetcher import Fetcher, FetchResult
from plateful.services.types import ScrapedContent

logger = logging.getLogger(__name__)

DEFAULT_MIN_CHARS = 200
SELECTOR_MIN_CHARS = 300
WHITESPACE_PATTERN = re.compile(r"\s+")

FORBIDDEN_STATUSES = {401, 403, 429}
NOT_FOUND_STATUSES = {404, 410}

BOILERPLATE_SELECTORS = (
    "script, style, nav, header, footer, noscript, .advertisement, .ads, .ad, "
    ".sidebar, .comments, .social-share, .related, .newsletter"
)

RECIPE_CONTAINER_SELECTORS = (
    '[itemtype*="Recipe"]',
    ".recipe",
    ".recipe-content",
    ".recipe-body",
    ".recipe-instructions",
    ".recipe-ingredients",
    ".recipe-details",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".content-wrapper",
    'article[class*="recipe"]',
    'main[class*="recipe"]',
    "article",
    "main",
)

RECIPE_IMAGE_SELECTORS = (
    "img.recipe-image",
    'img[itemprop="image"]',
    ".recipe img",
    ".recipe-header img",
    ".recipe-content img",
    "article img",
    "main img",
)


@dataclass(frozen=True)
class ScrapeOutcome:
    content: Optional[ScrapedContent] = None
    error: Optional[ScrapeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ScrapedContent:
        if self.error is not None:
            raise self.error
        return self.content  # type: ignore[return-value]


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _is_recipe_node(node: dict) -> bool:
    types = [t.lower() for t in _as_list(node.get("@type")) if isinstance(t, str)]
    return "recipe" in types


def _walk_recipe_nodes(data: Any) -> Iterable[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _walk_recipe_nodes(item)
    elif isinstance(data, dict):
        if _is_recipe_node(data):
            yield data
        for item in _as_list(data.get("@graph")):
            yield from _walk_recipe_nodes(item)


def find_jsonld_recipe(soup: BeautifulSoup) -> Optional[dict]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue
        for node in _walk_recipe_nodes(data):
            return node
    return None


def _image_from_jsonld(value: Any) -> Optional[str]:
    for item in _as_list(value):
        if isinstance(item, str) and item.strip():
            return item.strip()
        if isinstance(item, dict):
            url = item.get("url") or item.get("contentUrl")
            if isinstance(url, str) and url.strip():
                return url.strip()
    return None


def _absolute(url: str, page_url: str) -> str:
    return url if url.startswith(("http://", "https://")) else urljoin(page_url, url)


def extract_image_url(soup: BeautifulSoup, page_url: str, recipe_node: Optional[dict]) -> Optional[str]:
    if recipe_node is not None:
        image = _image_from_jsonld(recipe_node.get("image"))
        if image:
            return _absolute(image, page_url)

    for attrs in ({"property": "og:image"}, {"name": "twitter:image"}):
        meta = soup.find("meta", attrs=attrs)
        content = meta.get("content") if meta else None
        if content:
            return _absolute(content.strip(), page_url)

    for selector in RECIPE_IMAGE_SELECTORS:
        img = soup.select_one(selector)
        if img is None:
            continue
        src = img.get("src") or img.get("data-src")
        if src:
            return _absolute(src.strip(), page_url)

    return None


def _collapse(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text or "").strip()


def _jsonld_as_text(node: dict) -> str:
    return json.dumps(node, indent=2, ensure_ascii=False)


def _text_from_selectors(soup: BeautifulSoup) -> Optional[str]:
    for selector in RECIPE_CONTAINER_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = _collapse(element.get_text(" "))
        if len(text) > SELECTOR_MIN_CHARS:
            logger.debug("scrape.selector_hit selector=%s", selector)
            return text
    return None


def _body_text(soup: BeautifulSoup) -> str:
    body = soup.body or soup
    return _collapse(body.get_text(" "))


def _status_error(url: str, status: int) -> Optional[ScrapeError]:
    if status == 200:
        return None
    if status in FORBIDDEN_STATUSES:
        return ScrapeForbiddenError(url, f"access forbidden ({status}) - site is blocking scrapers")
    if status in NOT_FOUND_STATUSES:
        return ScrapeNotFoundError(url, f"recipe page not found ({status})")
    if status >= 500:
        return ScrapeNetworkError(url, f"server error ({status})")
    return ScrapeNetworkError(url, f"unexpected HTTP status {status}")


class RecipeScraper:
    def __init__(self, fetcher: Fetcher, min_chars: int = DEFAULT_MIN_CHARS) -> None:
        self._fetcher = fetcher
        self.min_chars = min_chars

    def _extract(self, html: str, url: str, site_heuristics: bool) -> ScrapedContent:
        soup = BeautifulSoup(html, "html.parser")

        # JSON-LD and images must be read before boilerplate (scripts) is removed.
        recipe_node = find_jsonld_recipe(soup)
        image_url = extract_image_url(soup, url, recipe_node)

        for element in soup.select(BOILERPLATE_SELECTORS):
            element.extract()

        text: Optional[str] = None
        if site_heuristics:
            if recipe_node is not None:
                jsonld_text = _jsonld_as_text(recipe_node)
                if len(jsonld_text) >= self.min_chars:
                    text = jsonld_text
            if text is None:
                text = _text_from_selectors(soup)
        if text is None:
            text = _body_text(soup)

        return ScrapedContent(text=text, image_url=image_url)

    def scrape(self, url: str, site_heuristics: bool = True) -> ScrapeOutcome:
        """
        Fetch ``url`` and extract recipe text plus an optional image.

        HTTP and network failures are returned as an outcome carrying a typed
        ``ScrapeError`` instead of being raised, so the caller can move
        on to the next candidate.
        """
        try:
            result: FetchResult = self._fetcher.fetch(url)
        except NetworkTimeoutError as error:
            return self._failure(ScrapeNetworkError(url, str(error)))
        except ScrapeError as error:
            return self._failure(error)

        status_error = _status_error(url, result.status)
        if status_error is not None:
            return self._failure(status_error)

        content = self._extract(result.html, url, site_heuristics)
        if len(content.text) < self.min_chars:
            return self._failure(ContentTooShortError(url, len(content.text), self.min_chars))

        logger.info("scrape.ok url=%s chars=%d image=%s", url, len(content.text), bool(content.image_url))
        return ScrapeOutcome(content=content)

    def _failure(self, error: ScrapeError) -> ScrapeOutcome:
        logger.warning("scrape.fail url=%s error=%s", error.url, error.detail)
        return ScrapeOutcome(error=error)
