"""HTTP client for the third-party recipe search API (Spoonacular complexSearch).

Builds one GET request per search and maps the provider-specific result
schema onto the canonical Recipe model. The provider never supplies a
category, so one is inferred from the cuisine tags.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import aiohttp
from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, ValidationError

from pantry_chef.models.models import Recipe, RecipeCategory, RecipeSearchParameters
from pantry_chef.utils.config import SearchConfig, config
from pantry_chef.utils.errors import InvalidResponse, RequestFailed, TransportError
from pantry_chef.utils.logger import logger

SUBTITLE_SEPARATOR = " • "
SUBTITLE_PLACEHOLDER = "Tap to view details"
DESCRIPTION_PLACEHOLDER = "A web recipe found for your search query."
INGREDIENTS_PLACEHOLDER = ["Ingredients available on the source page."]
INSTRUCTIONS_PLACEHOLDER = ["Open the source recipe for full instructions."]


def strip_html(text: str) -> str:
    """Render a provider summary as plain text.

    Text on either side of a tag (including <br> and block tags) is kept
    apart by one space; entities are decoded and whitespace collapsed.
    """
    plain = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    return " ".join(plain.split())


class _ExtendedIngredient(BaseModel):
    model_config = ConfigDict(extra="ignore")

    original: Optional[str] = None


class _InstructionStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: Optional[int] = None
    step: str


class _AnalyzedInstruction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    steps: Optional[List[_InstructionStep]] = None


class SpoonacularResult(BaseModel):
    """One entry of the provider's `results` array (only the fields we map)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    summary: Optional[str] = None
    readyInMinutes: Optional[int] = None
    servings: Optional[int] = None
    cuisines: Optional[List[str]] = None
    diets: Optional[List[str]] = None
    extendedIngredients: Optional[List[_ExtendedIngredient]] = None
    analyzedInstructions: Optional[List[_AnalyzedInstruction]] = None

    def subtitle(self) -> str:
        parts = [
            self.cuisines[0] if self.cuisines else None,
            self.diets[0] if self.diets else None,
            f"Ready in {self.readyInMinutes} min" if self.readyInMinutes is not None else None,
            f"Serves {self.servings}" if self.servings is not None else None,
        ]
        joined = SUBTITLE_SEPARATOR.join(part for part in parts if part)
        return joined if joined.strip() else SUBTITLE_PLACEHOLDER

    def category(self) -> RecipeCategory:
        if any("dessert" in cuisine.lower() for cuisine in self.cuisines or []):
            return RecipeCategory.DESSERT
        return RecipeCategory.DINNER

    def to_recipe(self) -> Recipe:
        description = strip_html(self.summary) if self.summary else ""
        ingredients = [
            item.original.strip()
            for item in self.extendedIngredients or []
            if item.original and item.original.strip()
        ]
        first_instruction = (self.analyzedInstructions or [None])[0]
        instructions = [step.step for step in (first_instruction.steps or [])] if first_instruction else []

        return Recipe(
            title=self.title,
            subtitle=self.subtitle(),
            category=self.category(),
            description=description or DESCRIPTION_PLACEHOLDER,
            ingredients=ingredients or list(INGREDIENTS_PLACEHOLDER),
            instructions=instructions or list(INSTRUCTIONS_PLACEHOLDER),
        )


class SpoonacularSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: List[SpoonacularResult]


def build_query_params(api_key: str, parameters: RecipeSearchParameters) -> dict[str, str]:
    """Query string for a complexSearch call. Cuisine and diet only when set."""
    params = {
        "apiKey": api_key,
        "query": parameters.query,
        "number": str(parameters.max_results),
        "addRecipeInformation": "true",
    }
    if parameters.cuisine is not None:
        params["cuisine"] = parameters.cuisine.value
    if parameters.diet is not None:
        params["diet"] = parameters.diet.value
    return params


class RecipeSearchClient:
    """Search the configured recipe API.

    Args:
        settings: API key and base URL.
        session: Optional shared aiohttp session (a per-call session otherwise).
        timeout_seconds: Total timeout per call (default: HTTP_TIMEOUT_SECONDS).
    """

    def __init__(
        self,
        settings: SearchConfig,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.settings = settings
        self._session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or config.HTTP_TIMEOUT_SECONDS)

    @asynccontextmanager
    async def _client_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def search(self, parameters: RecipeSearchParameters) -> list[Recipe]:
        """Run one search and map every result to a Recipe.

        Args:
            parameters: Structured search parameters.

        Returns:
            Mapped recipes, in provider order.

        Raises:
            RequestFailed: Non-2xx status.
            TransportError: No HTTP response.
            InvalidResponse: Body does not match the provider schema.
        """
        params = build_query_params(self.settings.api_key, parameters)
        logger.info(
            f"Recipe search: query='{parameters.query}', cuisine={params.get('cuisine')}, "
            f"diet={params.get('diet')}, number={parameters.max_results}"
        )

        try:
            async with self._client_session() as session:
                async with session.get(self.settings.base_url, params=params, timeout=self.timeout) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if not 200 <= status < 300:
            logger.warning(f"Recipe search responded with status {status}")
            raise RequestFailed(status)

        try:
            decoded = SpoonacularSearchResponse.model_validate_json(body)
            recipes = [result.to_recipe() for result in decoded.results]
        except ValidationError as e:
            raise InvalidResponse("The recipe service returned an unexpected response.") from e

        logger.info(f"Recipe search returned {len(recipes)} results")
        return recipes
