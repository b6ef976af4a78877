"""Free-text search interpretation.

Turns a search box query such as "spicy vegan curry" into structured
RecipeSearchParameters. The text-generation proxy is used when configured;
otherwise, and on any remote failure, a deterministic keyword heuristic
produces the parameters. Errors never reach the caller.
"""

from typing import Callable, Optional

from pantry_chef.clients.text_generation import TextGenerationClient
from pantry_chef.models.models import Cuisine, Diet, RecipeSearchParameters
from pantry_chef.prompts.prompts import build_interpretation_prompt
from pantry_chef.utils.config import ConfigurationProvider, TextGenerationConfig
from pantry_chef.utils.errors import MissingConfiguration
from pantry_chef.utils.fallback import with_fallback
from pantry_chef.utils.logger import logger

DEFAULT_QUERY = "trending recipes"
DEFAULT_MAX_RESULTS = 10

# Evaluated in order, first match wins
CUISINE_KEYWORDS: list[tuple[tuple[str, ...], Cuisine]] = [
    (("italian", "pasta"), Cuisine.ITALIAN),
    (("mexican", "taco"), Cuisine.MEXICAN),
    (("indian", "curry"), Cuisine.INDIAN),
    (("sushi", "ramen"), Cuisine.JAPANESE),
    (("thai",), Cuisine.THAI),
    (("mediterranean",), Cuisine.MEDITERRANEAN),
    (("french",), Cuisine.FRENCH),
    (("chinese", "stir fry"), Cuisine.CHINESE),
    (("bbq",), Cuisine.AMERICAN),
]

DIET_KEYWORDS: list[tuple[tuple[str, ...], Diet]] = [
    (("vegan",), Diet.VEGAN),
    (("vegetarian",), Diet.VEGETARIAN),
    (("gluten",), Diet.GLUTEN_FREE),
    (("dairy free", "lactose"), Diet.DAIRY_FREE),
    (("keto", "ketogenic"), Diet.KETOGENIC),
    (("paleo",), Diet.PALEO),
]


def _first_match(text: str, table):
    for keywords, value in table:
        if any(keyword in text for keyword in keywords):
            return value
    return None


def heuristic_parameters(query: str) -> RecipeSearchParameters:
    """Deterministic keyword interpretation of a search query.

    Args:
        query: Raw or trimmed search text.

    Returns:
        RecipeSearchParameters with cuisine/diet from the keyword tables, the
        query passed through unchanged (or "trending recipes" when blank) and
        max_results fixed at 10.
    """
    lowercase = query.lower()
    return RecipeSearchParameters(
        query=query if query.strip() else DEFAULT_QUERY,
        cuisine=_first_match(lowercase, CUISINE_KEYWORDS),
        diet=_first_match(lowercase, DIET_KEYWORDS),
        max_results=DEFAULT_MAX_RESULTS,
    )


class QueryInterpreter:
    """Interpret search queries with the proxy, falling back to heuristics."""

    def __init__(
        self,
        provider: Optional[ConfigurationProvider] = None,
        client_factory: Optional[Callable[[TextGenerationConfig], TextGenerationClient]] = None,
    ) -> None:
        self.provider = provider or ConfigurationProvider()
        self.client_factory = client_factory or TextGenerationClient

    async def _interpret_remote(self, query: str) -> RecipeSearchParameters:
        settings = self.provider.load_text_generation_config()
        if settings is None:
            raise MissingConfiguration("GPT_PROXY_URL")

        prompt = build_interpretation_prompt(query)
        client = self.client_factory(settings)
        return await client.generate(prompt.system, prompt.user, RecipeSearchParameters, "parameters")

    async def interpret(self, query: str) -> RecipeSearchParameters:
        """Interpret a free-text query. Never raises.

        Blank queries skip the proxy entirely.
        """
        normalized = query.strip()
        if not normalized:
            return heuristic_parameters(normalized)

        parameters = await with_fallback(
            lambda: self._interpret_remote(normalized),
            lambda: heuristic_parameters(normalized),
            "Query interpretation",
        )
        logger.debug(f"Interpreted '{normalized}' as {parameters.model_dump(mode='json')}")
        return parameters
