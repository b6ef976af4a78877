#!/usr/bin/env python3
"""Ad hoc runner for Pantry Chef.

Run the recipe flows directly from the terminal.

Usage:
    python query.py generate "eggs, milk, spinach"
    python query.py followup --ingredients "eggs, milk" "make it spicy" "no dairy"
    python query.py search "spicy vegan curry"
    python query.py search --cuisine italian --diet vegetarian --filters-only "pasta"
    python query.py image images/fridge.jpg
    python query.py speech recordings/list.wav
    python query.py --debug generate "eggs, milk"  # Show full JSON outcome

Features:
- Recipe generation with the text-generation proxy (or the local mock when
  GPT_PROXY_URL is not set)
- Follow-up loop: every note is applied on top of the previous recipe
- Recipe search with query interpretation and a results summary (sample
  catalog when RECIPE_API_KEY is not set)
- Ingredient capture from a photo or a recorded audio clip (needs GEMINI_API_KEY)
- Debug mode to display the full JSON outcome
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from pantry_chef.models.models import Cuisine, Diet, GeneratedRecipe, GenerationOutcome, GenerationStatus, Recipe
from pantry_chef.pipeline.ingredient_pipeline import IngredientExtractionPipeline
from pantry_chef.providers.gemini_speech import AudioClipCapture, GeminiAudioFileSpeechProvider
from pantry_chef.providers.gemini_vision import GeminiImageProvider
from pantry_chef.services.recipe_orchestrator import RecipeSession
from pantry_chef.services.search_coordinator import RecipeSearchCoordinator
from pantry_chef.utils.errors import MissingConfiguration
from pantry_chef.utils.logger import logger

console = Console()

SPEECH_TIMEOUT_SECONDS = 60.0

USAGE = """Usage: python query.py [--debug] <command> [options] ARGS

Commands:
  generate "INGREDIENTS"                          Generate a recipe
  followup --ingredients "INGREDIENTS" "NOTE"...  Generate, then apply each follow-up note
  search [--cuisine C] [--diet D] [--filters-only] "QUERY"
                                                  Search recipes and summarize the results
  image PATH [--generate]                         Extract ingredients from a JPEG/PNG photo
  speech PATH [--generate]                        Transcribe ingredients from an audio clip
"""


def recipe_markdown(recipe: GeneratedRecipe, follow_ups: Optional[list[str]] = None) -> str:
    """Render a generated recipe as markdown."""
    lines = [f"# {recipe.title}"]
    if recipe.description:
        lines += ["", recipe.description]
    if recipe.servings:
        lines += ["", f"**Serves:** {recipe.servings}"]
    lines += ["", "## Ingredients", *[f"- {item}" for item in recipe.ingredients]]
    lines += ["", "## Steps", *[f"{idx}. {step}" for idx, step in enumerate(recipe.steps, start=1)]]
    if recipe.dietary_notes:
        lines += ["", f"*{' · '.join(recipe.dietary_notes)}*"]
    if follow_ups:
        lines += ["", "## Follow-ups applied", *[f"{idx}. {note}" for idx, note in enumerate(follow_ups, start=1)]]
    return "\n".join(lines)


def print_outcome(outcome: GenerationOutcome, debug: bool = False) -> None:
    if debug:
        print_debug(outcome.model_dump(mode="json", by_alias=True))

    if outcome.status == GenerationStatus.FAILED:
        console.print(f"[red]✗ {outcome.error_message}[/red]")
        return
    if outcome.recipe is not None:
        console.print(Markdown(recipe_markdown(outcome.recipe, outcome.follow_ups)))


def print_debug(data) -> None:
    console.print("[bold cyan]Debug Mode: Full Response[/bold cyan]")
    console.print("[dim]" + "=" * 60 + "[/dim]")
    console.print_json(data=data)
    console.print("[dim]" + "=" * 60 + "[/dim]")
    console.print()


def print_results(results: list[Recipe], summary: Optional[str]) -> None:
    table = Table(title="Recipes")
    table.add_column("Title", style="bold")
    table.add_column("Details")
    table.add_column("Category")
    for recipe in results:
        table.add_row(recipe.title, recipe.subtitle, recipe.category.display_name)
    console.print(table)
    if summary:
        console.print(f"\n[green]{summary}[/green]")


def print_ingredients(pipeline: IngredientExtractionPipeline) -> None:
    if pipeline.recognized_text:
        console.print("[bold]Text found:[/bold]")
        console.print(pipeline.recognized_text)
    if pipeline.recognized_ingredients:
        console.print("[bold]Recognized:[/bold] " + ", ".join(c.display_text for c in pipeline.recognized_ingredients))
    if pipeline.parsed_ingredients:
        console.print("[bold]Ingredients:[/bold] " + ", ".join(pipeline.parsed_ingredients))
    else:
        console.print("[yellow]No ingredients found[/yellow]")


async def run_generate(ingredients: str, debug: bool = False) -> None:
    session = RecipeSession()
    print_outcome(await session.generate(ingredients), debug)


async def run_followup(ingredients: str, notes: list[str], debug: bool = False) -> None:
    session = RecipeSession()
    outcome = await session.generate(ingredients)
    for note in notes:
        if outcome.status == GenerationStatus.FAILED:
            break
        logger.info(f"Applying follow-up: {note}")
        outcome = await session.follow_up(note)
    print_outcome(outcome, debug)


async def run_search(
    query: str,
    cuisine: Optional[Cuisine] = None,
    diet: Optional[Diet] = None,
    filters_only: bool = False,
    debug: bool = False,
) -> None:
    coordinator = RecipeSearchCoordinator()
    if filters_only:
        await coordinator.search_with_filters(query, cuisine, diet)
    else:
        await coordinator.interpret_and_search(query, cuisine, diet)

    if debug and coordinator.last_parameters is not None:
        print_debug(coordinator.last_parameters.model_dump(mode="json", by_alias=True))

    if coordinator.error_message:
        console.print(f"[red]✗ {coordinator.error_message}[/red]")
        return
    if not coordinator.results:
        console.print("[yellow]No recipes found[/yellow]")
        return
    print_results(coordinator.results, coordinator.summary)


async def run_image(image_path: Path, generate: bool = False, debug: bool = False) -> None:
    pipeline = IngredientExtractionPipeline(image_provider=GeminiImageProvider())
    logger.info(f"Loading image: {image_path.name}...")
    status = await pipeline.process_image(image_path.read_bytes())
    console.print(f"[dim]{status}[/dim]")
    pipeline.commit_recognized()
    print_ingredients(pipeline)

    if generate and pipeline.parsed_ingredients:
        await run_generate(pipeline.raw_text, debug)


async def run_speech(clip_path: Path, generate: bool = False, debug: bool = False) -> None:
    pipeline = IngredientExtractionPipeline(
        speech_provider=GeminiAudioFileSpeechProvider(),
        audio=AudioClipCapture(clip_path.read_bytes()),
    )
    await pipeline.request_speech_authorization()
    await pipeline.start_recording()
    if pipeline.speech is not None:
        await pipeline.speech.wait_for_transcript(SPEECH_TIMEOUT_SECONDS)
    pipeline.stop_recording()

    if pipeline.speech_error:
        console.print(f"[red]✗ {pipeline.speech_error}[/red]")
    print_ingredients(pipeline)

    if generate and pipeline.parsed_ingredients:
        await run_generate(pipeline.raw_text, debug)


def _take_value(args: list[str], flag: str) -> str:
    if not args:
        print(f"Error: {flag} flag requires a value")
        sys.exit(1)
    return args.pop(0)


def _parse_enum(enum_type, value: str):
    normalized = value.strip().lower().replace("-", " ").replace("_", " ")
    try:
        return enum_type(normalized)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        print(f"Error: unknown {enum_type.__name__.lower()} '{value}'. Choose one of: {choices}")
        sys.exit(1)


def _require_file(path_arg: Optional[str], kind: str) -> Path:
    if not path_arg:
        print(f"Error: No {kind} path provided")
        sys.exit(1)
    path = Path(path_arg)
    if not path.exists():
        console.print(f"[red]✗ Error: {kind.capitalize()} file not found: {path_arg}[/red]")
        sys.exit(1)
    return path


def main(argv: list[str]) -> None:
    args = list(argv)
    debug_mode = False
    while args and args[0].startswith("--"):
        flag = args.pop(0)
        if flag == "--debug":
            debug_mode = True
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    if not args:
        print(USAGE)
        sys.exit(1)

    command = args.pop(0)
    cuisine = diet = None
    filters_only = generate = False
    ingredients = None
    positional: list[str] = []

    while args:
        arg = args.pop(0)
        if arg == "--cuisine":
            cuisine = _parse_enum(Cuisine, _take_value(args, arg))
        elif arg == "--diet":
            diet = _parse_enum(Diet, _take_value(args, arg))
        elif arg == "--filters-only":
            filters_only = True
        elif arg == "--generate":
            generate = True
        elif arg == "--ingredients":
            ingredients = _take_value(args, arg)
        elif arg == "--debug":
            debug_mode = True
        elif arg.startswith("--"):
            print(f"Unknown flag: {arg}")
            sys.exit(1)
        else:
            positional.append(arg)

    try:
        if command == "generate":
            if not positional:
                print('Error: No ingredients provided. Example: python query.py generate "eggs, milk"')
                sys.exit(1)
            asyncio.run(run_generate(" ".join(positional), debug_mode))
        elif command == "followup":
            if ingredients is None or not positional:
                print('Error: followup needs --ingredients "..." and at least one note')
                sys.exit(1)
            asyncio.run(run_followup(ingredients, positional, debug_mode))
        elif command == "search":
            asyncio.run(run_search(" ".join(positional), cuisine, diet, filters_only, debug_mode))
        elif command == "image":
            image_path = _require_file(positional[0] if positional else None, "image")
            asyncio.run(run_image(image_path, generate, debug_mode))
        elif command == "speech":
            clip_path = _require_file(positional[0] if positional else None, "audio")
            asyncio.run(run_speech(clip_path, generate, debug_mode))
        else:
            print(f"Unknown command: {command}")
            print(USAGE)
            sys.exit(1)
    except MissingConfiguration as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Query execution failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
