# plateful/app/services/fallback.py
"""
Candidate fallback policy.

The stage calls that scrape, format and substitute a candidate live in the
orchestrator. This module only decides, from the attempts made so far,
whether to try the next candidate or stop with a winner.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Union

from plateful.app.domain.models import CandidateAttempt
from plateful.services.types import CandidateSource

RunCandidate = Callable[[CandidateSource], CandidateAttempt]


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Stop:
    winner: CandidateAttempt


Decision = Union[Continue, Stop]


def decide(history: Sequence[CandidateAttempt]) -> Decision:
    """Stop on the first attempt that completed every stage."""
    if history and history[-1].succeeded:
        return Stop(history[-1])
    return Continue()


class CandidateAttempts:
    """
    Lazy sequence of attempt outcomes, one per candidate in search order.

    ``run`` is only called when the next attempt is pulled, so breaking out
    of the iteration leaves the remaining candidates untouched. Iterating
    again starts over from the first candidate.
    """

    def __init__(self, candidates: Sequence[CandidateSource], run: RunCandidate) -> None:
        self._candidates = list(candidates)
        self._run = run

    def __iter__(self) -> Iterator[CandidateAttempt]:
        for candidate in self._candidates:
            yield self._run(candidate)

    def __len__(self) -> int:
        return len(self._candidates)


def iter_candidate_attempts(candidates: Sequence[CandidateSource], run: RunCandidate) -> CandidateAttempts:
    return CandidateAttempts(candidates, run)


def run_until_success(
    attempts: CandidateAttempts,
) -> tuple[Optional[CandidateAttempt], list[CandidateAttempt]]:
    history: list[CandidateAttempt] = []
    for attempt in attempts:
        history.append(attempt)
        decision = decide(history)
        if isinstance(decision, Stop):
            return decision.winner, history
    return None, history
