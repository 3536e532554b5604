from __future__ import annotations

import itertools

from plateful.services.constraints import check
from plateful.services.types import DietaryProfile, DisallowedMatch

INGREDIENTS = [
    "2 cups whole milk",
    "1 cup crushed Peanuts",
    "200g peanut butter",
    "3 eggs",
    "1 tbsp soy sauce",
    "Salt",
    "",
]
TERMS = ["milk", "PEANUT", "soy", "egg", "butter", "xyz"]


def _expected(ingredient: str, allergens: list[str], restrictions: list[str]) -> str | None:
    folded = ingredient.casefold()
    for term in allergens:
        if term.casefold() in folded:
            return f"allergy: {term}"
    for term in restrictions:
        if term.casefold() in folded:
            return f"restriction: {term}"
    return None


class TestLiteralMatching:
    def test_flags_iff_casefolded_substring_with_allergen_precedence(self) -> None:
        for allergen_count, restriction_count in itertools.product(range(3), range(3)):
            for allergens in itertools.combinations(TERMS, allergen_count):
                for restrictions in itertools.combinations(TERMS, restriction_count):
                    profile = DietaryProfile(allergens=list(allergens), restrictions=list(restrictions))

                    matches = check(INGREDIENTS, profile, families=None)

                    expected = [
                        DisallowedMatch(ingredient=ingredient, reason=reason)
                        for ingredient in INGREDIENTS
                        if (reason := _expected(ingredient, list(allergens), list(restrictions)))
                    ]
                    assert matches == expected, (allergens, restrictions)

    def test_each_ingredient_reported_once(self) -> None:
        profile = DietaryProfile(allergens=["peanut", "butter"], restrictions=["peanut"])
        matches = check(["200g peanut butter"], profile, families=None)
        assert matches == [DisallowedMatch("200g peanut butter", "allergy: peanut")]

    def test_no_word_boundaries(self) -> None:
        profile = DietaryProfile(restrictions=["ham"])
        matches = check(["1 tsp garam masala", "2 slices of ham", "graham crackers"], profile)
        assert [match.ingredient for match in matches] == ["2 slices of ham", "graham crackers"]

    def test_blank_entries_are_ignored(self) -> None:
        profile = DietaryProfile(allergens=["", "  "], restrictions=[""])
        assert check(["rice"], profile) == []

    def test_no_profile(self) -> None:
        assert check(["shrimp"], None) == []


class TestAllergenFamilies:
    def test_shellfish_covers_shrimp(self) -> None:
        profile = DietaryProfile(allergens=["Shellfish"])
        matches = check(["2 lbs shrimp", "1 onion"], profile)
        assert matches == [DisallowedMatch("2 lbs shrimp", "allergy: Shellfish")]

    def test_restrictions_are_not_expanded(self) -> None:
        profile = DietaryProfile(restrictions=["dairy"])
        assert check(["1 cup milk"], profile) == []

    def test_family_matching_can_be_disabled(self) -> None:
        profile = DietaryProfile(allergens=["shellfish"])
        assert check(["2 lbs shrimp"], profile, families=None) == []

    def test_nut_members_are_flagged(self) -> None:
        profile = DietaryProfile(allergens=["nuts"])
        matches = check(["1/2 cup sliced almonds", "1 tsp nutmeg"], profile)
        assert matches == [DisallowedMatch("1/2 cup sliced almonds", "allergy: nuts")]

    def test_lookalike_ingredients_are_not_flagged(self) -> None:
        profile = DietaryProfile(allergens=["eggs", "dairy", "gluten"])
        ingredients = ["1 eggplant", "2 cups butternut squash", "1/2 tsp cream of tartar", "1 cup almond flour"]
        assert check(ingredients, profile) == []

    def test_reason_keeps_profile_spelling(self) -> None:
        profile = DietaryProfile(allergens=[" Peanut "], restrictions=["Pork"])
        matches = check(["peanut oil", "pork belly"], profile)
        assert [match.reason for match in matches] == ["allergy: Peanut", "restriction: Pork"]
