"""Recipe generation and the follow-up (adaptation) loop.

Two layers:

1. RecipeOrchestrator: stateless operations. generate / regenerate /
   follow_up each build a RecipePrompt, render it with the prompt builder and
   send it to the text-generation proxy. The adaptation history is an explicit
   input: follow_up receives every prior note and resends all of them, plus
   the new one, on every call.

2. RecipeSession: the stateful owner used by an interactive front-end. It
   runs the per-request state machine

       Idle -> Loading -> Success(recipe) | Failed(message)

   and is ready for the next request whatever the outcome. Failures are kept
   as a human-readable message and never replace the current recipe.

Fallback policy:
- No proxy configured: a deterministic mock recipe is produced locally.
- Proxy configured: remote errors propagate (RecipeOrchestrator) or become
  the session's failure state (RecipeSession). There is no retry and no mock
  fallback once a proxy is configured.

Overlapping requests:
Every request started by a RecipeSession takes a new request token. Only the
response belonging to the most recent token is applied; a slower, superseded
response is discarded and logged.
"""

from typing import Awaitable, Callable, Iterable, Optional, Sequence, Union

from pantry_chef.clients.text_generation import TextGenerationClient
from pantry_chef.models.models import (
    GeneratedRecipe,
    GenerationOutcome,
    GenerationStatus,
    RecipePrompt,
)
from pantry_chef.pipeline.ingredient_parser import parse_ingredients
from pantry_chef.prompts.prompts import build_recipe_prompt
from pantry_chef.utils.config import ConfigurationProvider, TextGenerationConfig
from pantry_chef.utils.errors import (
    IngredientValidationError,
    NoActiveRecipeError,
    PantryChefError,
)
from pantry_chef.utils.logger import logger

EMPTY_INGREDIENTS_MESSAGE = "Add at least one ingredient to get a recipe."
EMPTY_NOTE_MESSAGE = "Describe the change you would like before sending a follow-up."

MOCK_PLACEHOLDER_INGREDIENT = "1 tsp curiosity"
MOCK_STEPS = [
    "Prep the ingredients listed above and preheat your oven to 375°F (190°C).",
    "Sauté aromatics in a skillet, then fold in the highlighted ingredients.",
    "Transfer to an oven-safe dish, bake until golden and fragrant, and serve warm.",
]
MOCK_DIETARY_NOTES = ["Customizable", "AI-generated"]
FOLLOW_UPS_APPLIED_NOTE = "Follow-ups applied"


def clean_ingredients(ingredients: Iterable[str]) -> list[str]:
    """Trim each ingredient and drop the empty ones, keeping order."""
    return [item.strip() for item in ingredients if item and item.strip()]


def mock_recipe(prompt: RecipePrompt) -> GeneratedRecipe:
    """Deterministic recipe used when no text-generation proxy is configured.

    Each follow-up note adds one "Adjustment requested: <note>" step, and any
    follow-up at all adds the "Follow-ups applied" dietary note.
    """
    notes = list(prompt.follow_up_notes)
    dietary_notes = list(MOCK_DIETARY_NOTES)
    if notes:
        dietary_notes.append(FOLLOW_UPS_APPLIED_NOTE)

    return GeneratedRecipe(
        title="AI Pantry Creation",
        description="A chef-crafted idea based on the ingredients you provided.",
        servings=2,
        ingredients=list(prompt.ingredients) or [MOCK_PLACEHOLDER_INGREDIENT],
        steps=MOCK_STEPS + [f"Adjustment requested: {note}" for note in notes],
        dietary_notes=dietary_notes,
    )


class RecipeOrchestrator:
    """Build recipe prompts and resolve them to GeneratedRecipe values.

    Args:
        provider: Source of the proxy configuration, consulted on every request.
        client_factory: Builds a TextGenerationClient for a configuration.
    """

    def __init__(
        self,
        provider: Optional[ConfigurationProvider] = None,
        client_factory: Optional[Callable[[TextGenerationConfig], TextGenerationClient]] = None,
    ) -> None:
        self.provider = provider or ConfigurationProvider()
        self.client_factory = client_factory or TextGenerationClient

    async def request(self, prompt: RecipePrompt) -> GeneratedRecipe:
        """Resolve one prompt, remotely when configured, else with the mock.

        Raises:
            RequestFailed, TransportError, InvalidResponse: From the proxy call.
        """
        settings = self.provider.load_text_generation_config()
        if settings is None:
            logger.info("GPT_PROXY_URL not configured, using local mock recipe")
            return mock_recipe(prompt)

        pair = build_recipe_prompt(prompt)
        client = self.client_factory(settings)
        recipe = await client.generate(pair.system, pair.user, GeneratedRecipe, "recipe")
        logger.info(
            f"Generated recipe '{recipe.title}' ({len(recipe.ingredients)} ingredients, "
            f"{len(recipe.steps)} steps, {len(prompt.follow_up_notes)} follow-ups)"
        )
        return recipe

    async def generate(self, ingredients: Iterable[str]) -> GeneratedRecipe:
        """Generate a fresh recipe.

        Raises:
            IngredientValidationError: If no ingredient is left after trimming
                (raised before any network call).
        """
        cleaned = clean_ingredients(ingredients)
        if not cleaned:
            raise IngredientValidationError(EMPTY_INGREDIENTS_MESSAGE)
        return await self.request(RecipePrompt(ingredients=cleaned))

    async def regenerate(
        self,
        ingredients: Iterable[str],
        previous_recipe: Optional[GeneratedRecipe] = None,
    ) -> GeneratedRecipe:
        """Generate again, reusing the previous recipe's ingredients when none are given."""
        cleaned = clean_ingredients(ingredients)
        if not cleaned and previous_recipe is not None:
            return await self.request(RecipePrompt(ingredients=list(previous_recipe.ingredients)))
        return await self.generate(cleaned)

    async def follow_up(
        self,
        note: str,
        current_recipe: Optional[GeneratedRecipe],
        prior_notes: Sequence[str],
    ) -> tuple[GeneratedRecipe, list[str]]:
        """Adapt the current recipe with the full follow-up history.

        Args:
            note: The new follow-up request.
            current_recipe: Recipe being adapted; its ingredients are the context.
            prior_notes: Every follow-up already applied, oldest first.

        Returns:
            (adapted recipe, prior_notes + [note]).

        Raises:
            IngredientValidationError: Blank note.
            NoActiveRecipeError: No current recipe (no network call is made).
        """
        cleaned_note = note.strip()
        if not cleaned_note:
            raise IngredientValidationError(EMPTY_NOTE_MESSAGE)
        if current_recipe is None:
            raise NoActiveRecipeError()

        notes = [*prior_notes, cleaned_note]
        prompt = RecipePrompt(
            ingredients=list(current_recipe.ingredients),
            previous_recipe=current_recipe,
            follow_up_notes=notes,
        )
        return await self.request(prompt), notes


class RecipeSession:
    """Interactive recipe session: current recipe, follow-up history and request state."""

    def __init__(self, orchestrator: Optional[RecipeOrchestrator] = None) -> None:
        self.orchestrator = orchestrator or RecipeOrchestrator()
        self.ingredients_text: str = ""
        self.follow_up_text: str = ""
        self.recipe: Optional[GeneratedRecipe] = None
        self.follow_ups: list[str] = []
        self.status: GenerationStatus = GenerationStatus.IDLE
        self.error_message: Optional[str] = None
        self._request_token = 0

    @property
    def is_loading(self) -> bool:
        return self.status == GenerationStatus.LOADING

    def outcome(self) -> GenerationOutcome:
        return GenerationOutcome(
            status=self.status,
            recipe=self.recipe,
            follow_ups=list(self.follow_ups),
            error_message=self.error_message,
        )

    def _resolve_ingredients(self, ingredients: Union[str, Iterable[str], None]) -> list[str]:
        if ingredients is None:
            return parse_ingredients(self.ingredients_text)
        if isinstance(ingredients, str):
            return parse_ingredients(ingredients)
        return clean_ingredients(ingredients)

    def _fail_locally(self, message: str) -> GenerationOutcome:
        self.status = GenerationStatus.FAILED
        self.error_message = message
        return self.outcome()

    async def _run(
        self,
        operation: Callable[[], Awaitable[tuple[GeneratedRecipe, list[str]]]],
    ) -> GenerationOutcome:
        self._request_token += 1
        token = self._request_token
        self.status = GenerationStatus.LOADING
        self.error_message = None
        log_extra = {"request_id": token}

        try:
            recipe, notes = await operation()
        except PantryChefError as e:
            if token != self._request_token:
                logger.info(f"Discarding failure of superseded request {token}: {e}", extra=log_extra)
                return self.outcome()
            logger.warning(f"Recipe request {token} failed: {e}", extra=log_extra)
            self.status = GenerationStatus.FAILED
            self.error_message = str(e)
            return self.outcome()

        if token != self._request_token:
            logger.info(
                f"Discarding response of superseded request {token} (latest is {self._request_token})",
                extra=log_extra,
            )
            return self.outcome()

        self.recipe = recipe
        self.follow_ups = notes
        self.status = GenerationStatus.SUCCESS
        return self.outcome()

    async def generate(self, ingredients: Union[str, Iterable[str], None] = None) -> GenerationOutcome:
        """Generate from the given ingredients, or from ingredients_text when omitted."""
        resolved = self._resolve_ingredients(ingredients)
        if not resolved:
            return self._fail_locally(EMPTY_INGREDIENTS_MESSAGE)

        async def _operation():
            return await self.orchestrator.generate(resolved), []

        return await self._run(_operation)

    async def regenerate(self, ingredients: Union[str, Iterable[str], None] = None) -> GenerationOutcome:
        resolved = self._resolve_ingredients(ingredients)
        if not resolved and self.recipe is None:
            return self._fail_locally(EMPTY_INGREDIENTS_MESSAGE)
        previous = self.recipe

        async def _operation():
            return await self.orchestrator.regenerate(resolved, previous), []

        return await self._run(_operation)

    async def follow_up(self, note: Optional[str] = None) -> GenerationOutcome:
        """Send a follow-up (note, or follow_up_text when omitted). Blank notes are ignored."""
        text = (note if note is not None else self.follow_up_text).strip()
        if not text:
            return self.outcome()
        if self.recipe is None:
            return self._fail_locally(str(NoActiveRecipeError()))

        current = self.recipe
        prior = list(self.follow_ups)
        self.follow_up_text = ""

        async def _operation():
            return await self.orchestrator.follow_up(text, current, prior)

        return await self._run(_operation)
