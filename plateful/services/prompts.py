# plateful/services/prompts.py
from __future__ import annotations

import json
from typing import Optional, Sequence

from plateful.services.recipe_models import RecipeData
from plateful.services.types import DietaryProfile, DisallowedMatch

INTENT_PROMPT = """You are analyzing a conversation about food and meal planning. Based on the conversation below, determine the user's intent and categorize it into one of six levels.{profile_context}

Conversation:
{conversation}

Respond with a JSON object in this exact format:
{{
  "dish": "Specific dish name OR broad category OR 'Kitchen utility question' OR 'Not food-related'",
  "searchQuery": "concise web search query for finding a recipe OR 'Not applicable'",
  "status": "off_topic" | "kitchen_utility" | "broad_category" | "dish_type" | "specific_dish" | "fully_refined",
  "certaintyLevel": "low" | "medium" | "high",
  "explanation": "Short summary with core details like 'Chinese food with onions, noodles'"
}}

INTENT LEVELS:
- off_topic: not about cooking, food, recipes or the kitchen (cement, sports, weather)
- kitchen_utility: kitchen questions without recipe intent (unit conversions, "what is braising?")
- broad_category: cuisine type or flavor profile (Chinese food, spicy, comfort food)
- dish_type: general dish type without a named recipe (Thai chicken stir-fry, pasta dishes)
- specific_dish: the user named a dish (Kung Pao Chicken, lasagna, pad thai)
- fully_refined: the user named a dish AND gave preferences (spicy Kung Pao Chicken, gluten-free lasagna)

Be conservative: only use specific_dish when a dish is explicitly named, and only use fully_refined when a named dish comes with preferences. Clarifying questions from the assistant do not raise the level.

Keep the explanation short and about the food only.
Return ONLY the JSON object, no other text."""

INTENT_PROFILE_CONTEXT = """

USER FOOD PREFERENCES:
{preferences}

When writing the explanation, mention preferences that align with the dish being discussed."""

SEARCH_PROMPT = """Search for: {query}{restrictions_note}

Find up to {max_candidates} specific recipe page URLs (not homepages or category listings) from reliable cooking websites. Each page must contain ingredients and instructions.
Do not use these domains: {blocked_domains}.

Return ONLY a JSON array ordered from best to worst match, with this structure:
[
  {{"title": "Recipe title", "url": "Full URL to the recipe page", "snippet": "Brief description"}}
]
No other text."""

FORMAT_PROMPT = """You are a recipe formatter. Extract and structure the recipe in the scraped web content below.

RULES:
1. Do NOT generate or invent recipes
2. Extract ONLY information present in the source content
3. Remove ads, stories, commentary and irrelevant text
4. If the serving count is missing, estimate it and mark it "(estimated by AI)"
5. If nutrition data is missing, estimate it and mark every value "(estimated by AI)"
6. Calories MUST be per portion, not total
7. Keep ingredients and instructions concise, one entry per ingredient or step{profile_context}

Scraped content from {source_url}:
---
{content}
---

Return a JSON object with this EXACT structure:
{{
  "title": "Recipe name",
  "description": "Brief description of the dish",
  "portions": "4 servings",
  "ingredients": ["ingredient 1", "ingredient 2"],
  "instructions": ["step 1", "step 2"],
  "nutrition": {{
    "calories_per_portion": "XXX kcal",
    "protein": "XXg",
    "carbs": "XXg",
    "fat": "XXg"
  }},
  "sourceUrl": "{source_url}"
}}

Return ONLY the JSON object, no other text."""

FORMAT_PROFILE_CONTEXT = """

The reader's preferences, for wording of the description only (do not alter the recipe):
{preferences}"""

SUBSTITUTION_PROMPT = """You are a culinary expert making a recipe safe for someone with dietary restrictions.

RECIPE:
Title: {title}
Description: {description}

Ingredients:
{ingredients}

Instructions:
{instructions}

USER'S DIETARY RESTRICTIONS:
{constraints}

DETECTED DISALLOWED INGREDIENTS:
{disallowed}

For each disallowed ingredient, choose a safe substitute that keeps a similar texture, flavor or function, suits the dish and cuisine, and does NOT contain any of the user's allergens or restrictions. Keep quantities and measurements where possible and keep the ingredient order.

Return a JSON object with this EXACT structure:
{{
  "substitutions": [
    {{
      "original": "peanuts",
      "substituted": "almonds",
      "reason": "allergy: peanuts",
      "originalIngredient": "1 cup crushed peanuts",
      "substitutedIngredient": "1 cup crushed almonds"
    }}
  ],
  "modifiedIngredients": ["full ingredient list with substitutions applied"],
  "modifiedInstructions": ["full instruction list with ingredient references updated"]
}}

Return ONLY the JSON object, no other text."""


def _numbered(lines: Sequence[str]) -> str:
    return "\n".join(f"{index}. {line}" for index, line in enumerate(lines, start=1))


def build_intent_prompt(conversation: str, profile: Optional[DietaryProfile]) -> str:
    profile_context = ""
    if profile is not None:
        lines = profile.preference_lines()
        if lines:
            profile_context = INTENT_PROFILE_CONTEXT.format(preferences="\n".join(lines))
    return INTENT_PROMPT.format(profile_context=profile_context, conversation=conversation)


def build_search_prompt(
    query: str,
    profile: Optional[DietaryProfile],
    blocked_domains: Sequence[str],
    max_candidates: int,
) -> str:
    restrictions_note = ""
    if profile is not None:
        notes: list[str] = []
        if profile.allergens:
            notes.append(f"allergen-free: {', '.join(profile.allergens)}")
        if profile.restrictions:
            notes.append(f"without: {', '.join(profile.restrictions)}")
        if notes:
            restrictions_note = f"\n\nPrefer recipes that are {', '.join(notes)}."
    return SEARCH_PROMPT.format(
        query=query,
        restrictions_note=restrictions_note,
        max_candidates=max_candidates,
        blocked_domains=", ".join(blocked_domains) or "none",
    )


def build_format_prompt(content: str, source_url: str, profile: Optional[DietaryProfile]) -> str:
    profile_context = ""
    if profile is not None:
        lines = profile.preference_lines()
        if lines:
            profile_context = FORMAT_PROFILE_CONTEXT.format(preferences="\n".join(lines))
    return FORMAT_PROMPT.format(
        profile_context=profile_context,
        source_url=source_url,
        content=content,
    )


def build_substitution_prompt(
    recipe: RecipeData,
    disallowed: Sequence[DisallowedMatch],
    profile: DietaryProfile,
) -> str:
    constraints: list[str] = []
    if profile.allergens:
        constraints.append(f"Allergens (MUST AVOID): {', '.join(profile.allergens)}")
    if profile.restrictions:
        constraints.append(f"Restrictions (MUST AVOID): {', '.join(profile.restrictions)}")
    return SUBSTITUTION_PROMPT.format(
        title=recipe.title,
        description=recipe.description or "",
        ingredients=_numbered(recipe.ingredients),
        instructions=_numbered(recipe.instructions),
        constraints="\n".join(constraints),
        disallowed="\n".join(
            f'{index}. "{match.ingredient}" - {match.reason}'
            for index, match in enumerate(disallowed, start=1)
        ),
    )


def render_recipe_as_source(recipe: RecipeData, transcript: str) -> str:
    """Synthetic scraped content for editing an existing recipe."""
    original = json.dumps(
        recipe.model_dump(exclude={"substitutions"}, exclude_none=True),
        indent=2,
        ensure_ascii=False,
    )
    return (
        "## ORIGINAL RECIPE\n"
        f"{original}\n\n"
        "## REQUESTED CHANGES (conversation, oldest first)\n"
        f"{transcript}\n\n"
        "Apply the requested changes to the original recipe. Keep everything the "
        "conversation does not ask to change."
    )
