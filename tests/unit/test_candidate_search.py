from __future__ import annotations

import json

import pytest

from plateful.services.search import CandidateSearchProvider, is_blocked
from plateful.services.types import DietaryProfile

from stubs import FakeLLM, search_json


class TestIsBlocked:
    @pytest.mark.parametrize(
        ("url", "blocked"),
        [
            ("https://www.allrecipes.com/recipe/1", True),
            ("https://allrecipes.com/recipe/1", True),
            ("https://m.allrecipes.com/recipe/1", True),
            ("https://notallrecipes.com/recipe/1", False),
            ("https://example.com/allrecipes.com", False),
        ],
    )
    def test_host_and_subdomain_matching(self, url: str, blocked: bool) -> None:
        assert is_blocked(url, ["allrecipes.com"]) is blocked


class TestCandidateSearchProvider:
    def test_keeps_order_and_filters_blocked_domains(self) -> None:
        llm = FakeLLM(
            search=[
                search_json(
                    "https://cooking.example.com/a",
                    "https://www.foodnetwork.com/b",
                    "https://cooking.example.com/c",
                )
            ]
        )
        provider = CandidateSearchProvider(llm, blocked_domains=["foodnetwork.com"])

        candidates = provider.search("kung pao chicken")

        assert [c.url for c in candidates] == ["https://cooking.example.com/a", "https://cooking.example.com/c"]
        assert "foodnetwork.com" in llm.search_prompts[0]

    def test_caps_and_dedupes(self) -> None:
        llm = FakeLLM(
            search=[
                search_json(
                    "https://a.example.com/1",
                    "https://A.example.com/1",
                    "https://b.example.com/2",
                    "https://c.example.com/3",
                )
            ]
        )
        candidates = CandidateSearchProvider(llm, max_candidates=2).search("soup")
        assert [c.url for c in candidates] == ["https://a.example.com/1", "https://b.example.com/2"]

    def test_accepts_wrapped_payloads(self) -> None:
        payload = json.dumps({"results": [{"title": "Soup", "url": "https://a.example.com/soup"}]})
        candidates = CandidateSearchProvider(FakeLLM(search=[payload])).search("soup")
        assert candidates[0].title == "Soup"
        assert candidates[0].snippet is None

    def test_falls_back_to_urls_in_prose(self) -> None:
        response = "Try https://a.example.com/soup, or https://b.example.com/stew."
        candidates = CandidateSearchProvider(FakeLLM(search=[response])).search("soup")
        assert [c.url for c in candidates] == ["https://a.example.com/soup", "https://b.example.com/stew"]
        assert candidates[0].title == "soup"

    def test_no_results_is_an_empty_list(self) -> None:
        assert CandidateSearchProvider(FakeLLM(search=["[]"])).search("soup") == []
        assert CandidateSearchProvider(FakeLLM(search=["Nothing found."])).search("soup") == []

    def test_entries_without_url_or_title_are_dropped(self) -> None:
        payload = json.dumps([{"title": "No url"}, {"url": "https://a.example.com/x"}, {"title": "ok", "url": "ftp://x"}])
        assert CandidateSearchProvider(FakeLLM(search=[payload])).search("x") == []

    def test_profile_biases_the_query_wording(self) -> None:
        llm = FakeLLM(search=["[]"])
        CandidateSearchProvider(llm).search("brownies", DietaryProfile(allergens=["nuts"], restrictions=["gluten"]))
        assert "allergen-free: nuts" in llm.search_prompts[0]
        assert "without: gluten" in llm.search_prompts[0]
