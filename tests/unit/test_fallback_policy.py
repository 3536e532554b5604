from __future__ import annotations

from plateful.app.domain.models import CandidateAttempt
from plateful.app.services.fallback import (
    Continue,
    Stop,
    decide,
    iter_candidate_attempts,
    run_until_success,
)
from plateful.services.errors import ContentTooShortError, FormatError
from plateful.services.recipe_models import RecipeData
from plateful.services.types import CandidateSource

RECIPE = RecipeData(
    title="Pad Thai",
    portions="2 servings",
    ingredients=["200g rice noodles"],
    instructions=["Soak the noodles."],
)


def _candidate(name: str) -> CandidateSource:
    return CandidateSource(title=name, url=f"https://example.com/{name}")


def _failure(name: str) -> CandidateAttempt:
    return CandidateAttempt(
        candidate=_candidate(name),
        error=ContentTooShortError(f"https://example.com/{name}", 10, 200),
    )


def _success(name: str) -> CandidateAttempt:
    return CandidateAttempt(candidate=_candidate(name), recipe=RECIPE)


class TestDecide:
    def test_empty_history_continues(self) -> None:
        assert decide([]) == Continue()

    def test_failed_last_attempt_continues(self) -> None:
        assert decide([_failure("a"), _failure("b")]) == Continue()

    def test_success_stops_with_that_attempt(self) -> None:
        winner = _success("b")
        decision = decide([_failure("a"), winner])
        assert isinstance(decision, Stop)
        assert decision.winner is winner

    def test_attempt_with_error_is_not_a_success(self) -> None:
        attempt = CandidateAttempt(
            candidate=_candidate("a"),
            recipe=RECIPE,
            error=FormatError("https://example.com/a", "bad"),
        )
        assert attempt.succeeded is False
        assert attempt.failed_stage == "format"
        assert decide([attempt]) == Continue()


class TestCandidateAttempts:
    def test_runs_lazily_and_stops_at_first_success(self) -> None:
        ran: list[str] = []
        outcomes = {"a": _failure("a"), "b": _success("b"), "c": _success("c")}

        def run(candidate: CandidateSource) -> CandidateAttempt:
            ran.append(candidate.title)
            return outcomes[candidate.title]

        attempts = iter_candidate_attempts([_candidate(n) for n in "abc"], run)
        assert ran == []

        winner, history = run_until_success(attempts)

        assert winner is outcomes["b"]
        assert history == [outcomes["a"], outcomes["b"]]
        assert ran == ["a", "b"]

    def test_exhaustion_returns_full_history_in_order(self) -> None:
        attempts = iter_candidate_attempts(
            [_candidate(n) for n in "abc"],
            lambda candidate: _failure(candidate.title),
        )

        winner, history = run_until_success(attempts)

        assert winner is None
        assert [attempt.candidate.title for attempt in history] == ["a", "b", "c"]

    def test_iteration_restarts_from_the_first_candidate(self) -> None:
        attempts = iter_candidate_attempts(
            [_candidate(n) for n in "ab"],
            lambda candidate: _failure(candidate.title),
        )

        first = [attempt.candidate.title for attempt in attempts]
        second = [attempt.candidate.title for attempt in attempts]

        assert first == second == ["a", "b"]
        assert len(attempts) == 2
