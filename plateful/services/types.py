from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class IntentStatus(str, Enum):
    OFF_TOPIC = "off_topic"
    KITCHEN_UTILITY = "kitchen_utility"
    BROAD_CATEGORY = "broad_category"
    DISH_TYPE = "dish_type"
    SPECIFIC_DISH = "specific_dish"
    FULLY_REFINED = "fully_refined"


class Certainty(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_CERTAINTY_BY_STATUS = {
    IntentStatus.BROAD_CATEGORY: Certainty.LOW,
    IntentStatus.DISH_TYPE: Certainty.LOW,
    IntentStatus.SPECIFIC_DISH: Certainty.MEDIUM,
    IntentStatus.FULLY_REFINED: Certainty.HIGH,
}


def certainty_for(status: IntentStatus) -> Certainty:
    return _CERTAINTY_BY_STATUS.get(status, Certainty.LOW)


@dataclass(frozen=True)
class Intent:
    dish: str
    search_query: str
    status: IntentStatus
    certainty: Certainty
    explanation: str

    def to_dict(self) -> dict[str, str]:
        return {
            "dish": self.dish,
            "searchQuery": self.search_query,
            "status": self.status.value,
            "certaintyLevel": self.certainty.value,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class CandidateSource:
    title: str
    url: str
    snippet: Optional[str] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}


@dataclass(frozen=True)
class ScrapedContent:
    text: str
    image_url: Optional[str] = None


@dataclass
class DietaryProfile:
    likes: list[str] = field(default_factory=list)
    dislikes: list[str] = field(default_factory=list)
    allergens: list[str] = field(default_factory=list)
    restrictions: list[str] = field(default_factory=list)
    cooking_proficiency: Optional[str] = None
    daily_macro_targets: Optional[dict[str, float]] = None

    @property
    def has_constraints(self) -> bool:
        return bool(self.allergens or self.restrictions)

    def preference_lines(self) -> list[str]:
        lines: list[str] = []
        if self.likes:
            lines.append(f"Likes: {', '.join(self.likes)}")
        if self.dislikes:
            lines.append(f"Dislikes: {', '.join(self.dislikes)}")
        if self.allergens:
            lines.append(f"Allergens to avoid: {', '.join(self.allergens)}")
        if self.restrictions:
            lines.append(f"Dietary restrictions: {', '.join(self.restrictions)}")
        if self.cooking_proficiency:
            lines.append(f"Cooking proficiency: {self.cooking_proficiency}")
        return lines


@dataclass(frozen=True)
class DisallowedMatch:
    ingredient: str
    reason: str
