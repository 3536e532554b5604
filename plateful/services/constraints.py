# plateful/services/constraints.py
"""Allergen and restriction matching over ingredient lines."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from plateful.services.types import DietaryProfile, DisallowedMatch

# Member ingredients of allergen groups that never contain the group's name.
# Members must not be substrings of unrelated ingredients ("egg" in
# "eggplant", "butter" in "butternut squash"), so dairy, eggs and gluten are
# matched literally.
ALLERGEN_FAMILIES: Mapping[str, tuple[str, ...]] = {
    "shellfish": ("shrimp", "prawn", "crab", "lobster", "scallop", "mussel", "clam", "oyster", "crawfish"),
    "fish": ("salmon", "tuna", "anchovy", "sardine", "tilapia", "halibut", "trout"),
    "nuts": ("almond", "walnut", "pecan", "cashew", "pistachio", "hazelnut", "peanut"),
}

Terms = list[tuple[str, str]]


def _folded_terms(
    values: Iterable[str],
    families: Optional[Mapping[str, Sequence[str]]],
) -> Terms:
    # Each entry is (text to look for, profile term as written). Blank profile
    # entries are skipped.
    terms: Terms = []
    for value in values:
        written = (value or "").strip()
        folded = written.casefold()
        if not folded:
            continue
        terms.append((folded, written))
        for member in (families or {}).get(folded, ()):
            terms.append((member.casefold(), written))
    return terms


def _first_match(ingredient_folded: str, terms: Terms) -> Optional[str]:
    for needle, reported in terms:
        if needle in ingredient_folded:
            return reported
    return None


def check(
    ingredients: Sequence[str],
    profile: Optional[DietaryProfile],
    families: Optional[Mapping[str, Sequence[str]]] = ALLERGEN_FAMILIES,
) -> list[DisallowedMatch]:
    """
    Flag every ingredient whose case-folded text contains an allergen or a
    restriction. Allergens are checked first; each ingredient is reported once
    with the first matching reason.

    Matching is plain substring containment, with no word boundaries. An
    allergen that names a group (``shellfish``) also matches the group's
    members listed in ``families``; pass ``families=None`` for literal
    matching only.
    """
    if profile is None or not profile.has_constraints:
        return []

    allergens = _folded_terms(profile.allergens, families)
    restrictions = _folded_terms(profile.restrictions, None)
    if not allergens and not restrictions:
        return []

    matches: list[DisallowedMatch] = []
    for ingredient in ingredients:
        folded = ingredient.casefold()

        allergen = _first_match(folded, allergens)
        if allergen is not None:
            matches.append(DisallowedMatch(ingredient=ingredient, reason=f"allergy: {allergen}"))
            continue

        restriction = _first_match(folded, restrictions)
        if restriction is not None:
            matches.append(
                DisallowedMatch(ingredient=ingredient, reason=f"restriction: {restriction}")
            )

    return matches
