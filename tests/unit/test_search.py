"""Unit tests for query interpretation, results summary and the search flow."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from pantry_chef.clients.recipe_search import RecipeSearchClient
from pantry_chef.models.models import Cuisine, Diet, Recipe, RecipeCategory, RecipeSearchParameters
from pantry_chef.models.sample_data import SAMPLE_RECIPES
from pantry_chef.services.query_interpreter import QueryInterpreter, heuristic_parameters
from pantry_chef.services.results_summarizer import ResultsSummarizer, extract_summary, heuristic_summary
from pantry_chef.services.search_coordinator import (
    FILTER_DEFAULT_QUERY,
    FILTER_MAX_RESULTS,
    RecipeSearchCoordinator,
    search_sample_catalog,
)
from pantry_chef.utils.config import ConfigurationProvider, SearchConfig, TextGenerationConfig
from pantry_chef.utils.errors import InvalidResponse, RequestFailed, TransportError

PROXY = TextGenerationConfig(proxy_url="https://proxy.test")
SEARCH = SearchConfig(api_key="key")


def make_recipe(title: str) -> Recipe:
    return Recipe(
        title=title,
        subtitle="",
        category=RecipeCategory.DINNER,
        description="",
        ingredients=["salt"],
        instructions=["Cook."],
    )


def make_client_factory(**methods) -> MagicMock:
    client = MagicMock()
    for name, mock in methods.items():
        setattr(client, name, mock)
    return MagicMock(return_value=client)


class TestHeuristicParameters:
    def test_keyword_order(self):
        params = heuristic_parameters("spicy italian pasta vegan")

        assert params.cuisine == Cuisine.ITALIAN
        assert params.diet == Diet.VEGAN
        assert params.query == "spicy italian pasta vegan"
        assert params.max_results == 10

    def test_empty_query(self):
        params = heuristic_parameters("")

        assert params.query == "trending recipes"
        assert params.cuisine is None
        assert params.diet is None

    def test_first_cuisine_in_table_wins(self):
        # "curry" (indian) precedes "thai" in the keyword table
        assert heuristic_parameters("thai curry").cuisine == Cuisine.INDIAN

    @pytest.mark.parametrize(
        "query,cuisine",
        [("ramen night", Cuisine.JAPANESE), ("beef stir fry", Cuisine.CHINESE), ("bbq ribs", Cuisine.AMERICAN)],
    )
    def test_cuisine_keywords(self, query, cuisine):
        assert heuristic_parameters(query).cuisine == cuisine

    @pytest.mark.parametrize(
        "query,diet",
        [
            ("Gluten bread", Diet.GLUTEN_FREE),
            ("lactose intolerant", Diet.DAIRY_FREE),
            ("keto snacks", Diet.KETOGENIC),
            ("paleo bowl", Diet.PALEO),
        ],
    )
    def test_diet_keywords(self, query, diet):
        assert heuristic_parameters(query).diet == diet


class TestQueryInterpreter:
    @pytest.mark.asyncio
    async def test_unconfigured_uses_heuristic_without_client(self):
        factory = MagicMock()
        interpreter = QueryInterpreter(ConfigurationProvider.static(), factory)

        params = await interpreter.interpret("vegan tacos")

        assert params.cuisine == Cuisine.MEXICAN
        assert params.diet == Diet.VEGAN
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_query_skips_remote(self):
        factory = MagicMock()
        interpreter = QueryInterpreter(ConfigurationProvider.static(text_generation=PROXY), factory)

        params = await interpreter.interpret("   ")

        assert params.query == "trending recipes"
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_remote_result_used(self):
        remote = RecipeSearchParameters(query="chickpea curry", cuisine=Cuisine.INDIAN, max_results=6)
        generate = AsyncMock(return_value=remote)
        interpreter = QueryInterpreter(
            ConfigurationProvider.static(text_generation=PROXY), make_client_factory(generate=generate)
        )

        params = await interpreter.interpret("  something with chickpeas  ")

        assert params == remote
        args = generate.call_args.args
        assert args[1] == "User query: something with chickpeas"
        assert args[2] is RecipeSearchParameters
        assert args[3] == "parameters"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RequestFailed(500), InvalidResponse(), TransportError("refused")])
    async def test_remote_failure_falls_back(self, error):
        interpreter = QueryInterpreter(
            ConfigurationProvider.static(text_generation=PROXY),
            make_client_factory(generate=AsyncMock(side_effect=error)),
        )

        params = await interpreter.interpret("spicy italian pasta vegan")

        assert params == heuristic_parameters("spicy italian pasta vegan")


class TestResultsSummarizer:
    def test_heuristic_summary_uses_first_three_titles(self):
        results = [make_recipe(t) for t in ("A", "B", "C", "D")]

        assert heuristic_summary(results) == "Top picks: A, B, C."

    def test_extract_summary_envelope(self):
        assert extract_summary(json.dumps({"summary": "  Great mix.  "})) == "Great mix."

    def test_extract_summary_plain_text(self):
        assert extract_summary("  A varied set of dinners.\n") == "A varied set of dinners."

    def test_extract_summary_empty(self):
        assert extract_summary("   ") is None

    @pytest.mark.asyncio
    async def test_empty_results_no_summary(self):
        factory = MagicMock()
        summarizer = ResultsSummarizer(ConfigurationProvider.static(text_generation=PROXY), factory)

        assert await summarizer.summarize([]) is None
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_uses_heuristic(self):
        summarizer = ResultsSummarizer(ConfigurationProvider.static())

        assert await summarizer.summarize([make_recipe("Soup")]) == "Top picks: Soup."

    @pytest.mark.asyncio
    async def test_remote_summary(self):
        complete = AsyncMock(return_value=json.dumps({"summary": "Cozy soups for every diet."}))
        summarizer = ResultsSummarizer(
            ConfigurationProvider.static(text_generation=PROXY), make_client_factory(complete=complete)
        )

        assert await summarizer.summarize([make_recipe("Soup")]) == "Cozy soups for every diet."

    @pytest.mark.asyncio
    async def test_blank_remote_summary_falls_back(self):
        summarizer = ResultsSummarizer(
            ConfigurationProvider.static(text_generation=PROXY),
            make_client_factory(complete=AsyncMock(return_value="  ")),
        )

        assert await summarizer.summarize([make_recipe("Soup")]) == "Top picks: Soup."

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back(self):
        summarizer = ResultsSummarizer(
            ConfigurationProvider.static(text_generation=PROXY),
            make_client_factory(complete=AsyncMock(side_effect=RequestFailed(502))),
        )

        assert await summarizer.summarize([make_recipe("Soup"), make_recipe("Stew")]) == "Top picks: Soup, Stew."


class TestSampleCatalogSearch:
    def test_blank_query_matches_everything(self):
        assert search_sample_catalog(RecipeSearchParameters(query=" ")) == SAMPLE_RECIPES

    def test_title_match_case_insensitive(self):
        results = search_sample_catalog(RecipeSearchParameters(query="BERRY"))

        assert [r.title for r in results] == ["Summer Berry Salad"]

    def test_cuisine_filter_presents_as_dinner(self):
        results = search_sample_catalog(RecipeSearchParameters(query="salad", cuisine=Cuisine.FRENCH))

        assert results[0].category == RecipeCategory.DINNER

    def test_max_results(self):
        assert len(search_sample_catalog(RecipeSearchParameters(query="", max_results=1))) == 1


class TestRecipeSearchCoordinator:
    @pytest.mark.asyncio
    async def test_filters_without_query_use_default(self):
        search = AsyncMock(return_value=[make_recipe("Lasagna")])
        coordinator = RecipeSearchCoordinator(
            ConfigurationProvider.static(search=SEARCH), client_factory=make_client_factory(search=search)
        )

        results = await coordinator.search_with_filters("  ", cuisine=Cuisine.ITALIAN)

        params = search.call_args.args[0]
        assert params.query == FILTER_DEFAULT_QUERY
        assert params.cuisine == Cuisine.ITALIAN
        assert params.max_results == FILTER_MAX_RESULTS
        assert [r.title for r in results] == ["Lasagna"]
        assert coordinator.summary == "Top picks: Lasagna."

    @pytest.mark.asyncio
    async def test_explicit_filters_override_interpretation(self):
        search = AsyncMock(return_value=[])
        coordinator = RecipeSearchCoordinator(
            ConfigurationProvider.static(search=SEARCH), client_factory=make_client_factory(search=search)
        )

        await coordinator.interpret_and_search("italian vegan pasta", diet=Diet.PALEO)

        params = search.call_args.args[0]
        assert params.cuisine == Cuisine.ITALIAN
        assert params.diet == Diet.PALEO
        assert coordinator.summary is None

    @pytest.mark.asyncio
    async def test_unconfigured_search_uses_sample_catalog(self):
        coordinator = RecipeSearchCoordinator(ConfigurationProvider.static())

        results = await coordinator.interpret_and_search("chicken")

        assert [r.title for r in results] == ["Herb Roasted Chicken"]
        assert coordinator.summary == "Top picks: Herb Roasted Chicken."
        assert coordinator.error_message is None

    @pytest.mark.asyncio
    async def test_search_failure_clears_results(self):
        search = AsyncMock(side_effect=RequestFailed(401))
        coordinator = RecipeSearchCoordinator(
            ConfigurationProvider.static(search=SEARCH), client_factory=make_client_factory(search=search)
        )
        coordinator.results = [make_recipe("Old")]

        results = await coordinator.search_with_filters("soup")

        assert results == []
        assert coordinator.error_message == "The server responded with status code 401."
        assert coordinator.is_loading is False

    @pytest.mark.asyncio
    async def test_unmappable_provider_result_sets_error(self):
        response = MagicMock(status=200)
        response.text = AsyncMock(return_value=json.dumps({"results": [{"id": 1, "title": "   "}]}))
        request_context = MagicMock()
        request_context.__aenter__ = AsyncMock(return_value=response)
        request_context.__aexit__ = AsyncMock(return_value=False)
        session = MagicMock()
        session.get.return_value = request_context
        coordinator = RecipeSearchCoordinator(
            ConfigurationProvider.static(search=SEARCH),
            client_factory=lambda settings: RecipeSearchClient(settings, session=session),
        )

        results = await coordinator.perform_search(RecipeSearchParameters(query="soup"))

        assert results == []
        assert coordinator.error_message == "The recipe service returned an unexpected response."
