"""Prompt templates for the text-generation proxy.

Pure, stateless rendering of the three prompt families sent to the proxy:
- Recipe generation / adaptation (build_recipe_prompt)
- Free-text search interpretation (build_interpretation_prompt)
- Search results summary (build_summary_prompt)

Each builder returns a PromptPair(system, user) that the caller hands to
TextGenerationClient unchanged.
"""

from typing import NamedTuple, Sequence

from pantry_chef.models.models import Cuisine, Diet, Recipe, RecipePrompt

MAX_SUMMARY_TITLES = 5
DIETARY_KEYWORDS = ("vegan", "gluten")


class PromptPair(NamedTuple):
    system: str
    user: str


RECIPE_SYSTEM_PROMPT = """You are an expert chef helping home cooks. Respond with a JSON payload containing:
- title (string)
- description (string)
- servings (integer, optional)
- ingredients (array of strings)
- steps (array of strings, each a concise instruction)
- dietaryNotes (array of short strings)
Keep instructions clear, actionable, and sized for a home kitchen."""


SUMMARY_SYSTEM_PROMPT = """You are a culinary assistant summarizing recipe search results.
Provide a short paragraph (1-3 sentences) highlighting variety and dietary notes.
Avoid Markdown and return plain text only."""


def _numbered(items: Sequence[str]) -> list[str]:
    return [f"{index}. {item}" for index, item in enumerate(items, start=1)]


def build_recipe_prompt(prompt: RecipePrompt) -> PromptPair:
    """Render the recipe generation prompt.

    The user prompt lists the available ingredients, then (when adapting) the
    recipe being adapted, then either every follow-up request so far or a
    generic "create one recipe" request.

    Args:
        prompt: Ingredients, optional previous recipe and the cumulative follow-up notes.

    Returns:
        PromptPair with the fixed chef system prompt and the rendered user prompt.
    """
    lines = ["Available ingredients:"]
    lines.extend(_numbered(prompt.ingredients))

    previous = prompt.previous_recipe
    if previous is not None:
        lines.append("\nCurrent recipe to adapt:")
        lines.append(f"Title: {previous.title}")
        lines.append(f"Description: {previous.description}")
        lines.append(f"Ingredients: {', '.join(previous.ingredients)}")
        lines.append(f"Steps: {' | '.join(previous.steps)}")

    if prompt.follow_up_notes:
        lines.append("\nFollow-up requests:")
        lines.extend(_numbered(prompt.follow_up_notes))
    else:
        lines.append(
            "\nRequest: Create one recipe with a short description, ingredient list, "
            "and step-by-step instructions."
        )

    lines.append("\nReturn only the JSON payload, without Markdown. JSON only, no prose.")
    return PromptPair(system=RECIPE_SYSTEM_PROMPT, user="\n".join(lines))


def build_interpretation_prompt(query: str) -> PromptPair:
    """Render the prompt translating a free-text search into search parameters.

    Cuisine and diet values are restricted to the enumerations the search API
    accepts, so the reply can be decoded straight into RecipeSearchParameters.
    """
    cuisines = ", ".join(cuisine.value for cuisine in Cuisine)
    diets = ", ".join(f'"{diet.value}"' if " " in diet.value else diet.value for diet in Diet)
    system = f"""You translate natural-language recipe searches into API-friendly parameters.
Return a JSON object with:
- query: short keyword-based search phrase
- cuisine: one of {cuisines} (optional)
- diet: one of {diets} (optional)
Do not return Markdown or prose. JSON only."""
    return PromptPair(system=system, user=f"User query: {query}")


def dietary_context(recipes: Sequence[Recipe]) -> list[str]:
    """Ingredient lines that mention a dietary keyword (case-insensitive)."""
    return [
        ingredient
        for recipe in recipes
        for ingredient in recipe.ingredients
        if any(keyword in ingredient.lower() for keyword in DIETARY_KEYWORDS)
    ]


def build_summary_prompt(recipes: Sequence[Recipe]) -> PromptPair:
    titles = ", ".join(recipe.title for recipe in recipes[:MAX_SUMMARY_TITLES])
    diets = dietary_context(recipes)
    diet_notes = f"notes: {', '.join(diets)}" if diets else "no explicit dietary tags"
    user = f"Summarize these recipes: {titles}. Dietary context: {diet_notes}."
    return PromptPair(system=SUMMARY_SYSTEM_PROMPT, user=user)
