"""Recipe search flow: filters or interpreted query -> search -> summary.

Without a configured search API the built-in sample catalog is searched
instead, so the flow works offline end to end.
"""

from typing import Callable, Optional

from pantry_chef.clients.recipe_search import RecipeSearchClient
from pantry_chef.models.models import Cuisine, Diet, Recipe, RecipeCategory, RecipeSearchParameters
from pantry_chef.models.sample_data import SAMPLE_RECIPES
from pantry_chef.services.query_interpreter import QueryInterpreter
from pantry_chef.services.results_summarizer import ResultsSummarizer
from pantry_chef.utils.config import ConfigurationProvider, SearchConfig
from pantry_chef.utils.errors import PantryChefError
from pantry_chef.utils.logger import logger

FILTER_DEFAULT_QUERY = "popular recipes"
FILTER_MAX_RESULTS = 12


def search_sample_catalog(
    parameters: RecipeSearchParameters,
    catalog: Optional[list[Recipe]] = None,
) -> list[Recipe]:
    """Search the local catalog by case-insensitive title/subtitle match.

    A blank query matches everything. When a cuisine filter is set the
    results are presented as dinner recipes.
    """
    source = SAMPLE_RECIPES if catalog is None else catalog
    needle = parameters.query.strip().lower()

    matches = [
        recipe
        for recipe in source
        if not needle or needle in recipe.title.lower() or needle in recipe.subtitle.lower()
    ]

    if parameters.cuisine is not None:
        matches = [recipe.model_copy(update={"category": RecipeCategory.DINNER}) for recipe in matches]

    return matches[: parameters.max_results]


class RecipeSearchCoordinator:
    """State holder for one search screen.

    Attributes:
        results: Recipes from the last search (cleared on failure).
        summary: Summary of the last results, if any.
        error_message: Message of the last failed search.
        last_parameters: Parameters of the last search.
    """

    def __init__(
        self,
        provider: Optional[ConfigurationProvider] = None,
        interpreter: Optional[QueryInterpreter] = None,
        summarizer: Optional[ResultsSummarizer] = None,
        client_factory: Optional[Callable[[SearchConfig], RecipeSearchClient]] = None,
    ) -> None:
        self.provider = provider or ConfigurationProvider()
        self.interpreter = interpreter or QueryInterpreter(self.provider)
        self.summarizer = summarizer or ResultsSummarizer(self.provider)
        self.client_factory = client_factory or RecipeSearchClient

        self.results: list[Recipe] = []
        self.summary: Optional[str] = None
        self.error_message: Optional[str] = None
        self.is_loading: bool = False
        self.last_parameters: Optional[RecipeSearchParameters] = None

    async def search_with_filters(
        self,
        text: str,
        cuisine: Optional[Cuisine] = None,
        diet: Optional[Diet] = None,
    ) -> list[Recipe]:
        """Search with the explicit filter controls, without interpretation."""
        query = text.strip()
        parameters = RecipeSearchParameters(
            query=query or FILTER_DEFAULT_QUERY,
            cuisine=cuisine,
            diet=diet,
            max_results=FILTER_MAX_RESULTS,
        )
        return await self.perform_search(parameters)

    async def interpret_and_search(
        self,
        text: str,
        cuisine: Optional[Cuisine] = None,
        diet: Optional[Diet] = None,
    ) -> list[Recipe]:
        """Interpret free text, letting explicitly selected filters win."""
        interpreted = await self.interpreter.interpret(text)
        parameters = interpreted.model_copy(
            update={
                "cuisine": cuisine or interpreted.cuisine,
                "diet": diet or interpreted.diet,
            }
        )
        return await self.perform_search(parameters)

    async def _fetch(self, parameters: RecipeSearchParameters) -> list[Recipe]:
        settings = self.provider.load_search_config()
        if settings is None:
            logger.info("RECIPE_API_KEY not configured, searching the sample catalog")
            return search_sample_catalog(parameters)
        return await self.client_factory(settings).search(parameters)

    async def perform_search(self, parameters: RecipeSearchParameters) -> list[Recipe]:
        """Run a search and summarize it. Failures clear results and set error_message."""
        self.is_loading = True
        self.error_message = None
        self.summary = None
        self.last_parameters = parameters

        try:
            self.results = await self._fetch(parameters)
            self.summary = await self.summarizer.summarize(self.results)
        except PantryChefError as e:
            logger.warning(f"Recipe search failed: {e}")
            self.error_message = str(e)
            self.results = []
        finally:
            self.is_loading = False

        return self.results
