"""Short natural-language summaries of recipe search results."""

import json
from typing import Callable, Optional, Sequence

from pantry_chef.clients.text_generation import TextGenerationClient
from pantry_chef.models.models import Recipe
from pantry_chef.prompts.prompts import build_summary_prompt
from pantry_chef.utils.config import ConfigurationProvider, TextGenerationConfig
from pantry_chef.utils.errors import MissingConfiguration
from pantry_chef.utils.fallback import with_fallback

HEURISTIC_TITLE_COUNT = 3


def heuristic_summary(results: Sequence[Recipe]) -> str:
    highlights = ", ".join(recipe.title for recipe in results[:HEURISTIC_TITLE_COUNT])
    return f"Top picks: {highlights}."


def extract_summary(body: str) -> Optional[str]:
    """Read a proxy reply as a {"summary": ...} envelope, else as plain text.

    Returns None when neither yields any text.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        data = None

    if isinstance(data, dict) and isinstance(data.get("summary"), str):
        return data["summary"].strip() or None

    return body.strip() or None


class ResultsSummarizer:
    """Summarize results with the proxy, falling back to a title list."""

    def __init__(
        self,
        provider: Optional[ConfigurationProvider] = None,
        client_factory: Optional[Callable[[TextGenerationConfig], TextGenerationClient]] = None,
    ) -> None:
        self.provider = provider or ConfigurationProvider()
        self.client_factory = client_factory or TextGenerationClient

    async def _summarize_remote(self, results: Sequence[Recipe]) -> Optional[str]:
        settings = self.provider.load_text_generation_config()
        if settings is None:
            raise MissingConfiguration("GPT_PROXY_URL")

        prompt = build_summary_prompt(results)
        body = await self.client_factory(settings).complete(prompt.system, prompt.user)
        return extract_summary(body)

    async def summarize(self, results: Sequence[Recipe]) -> Optional[str]:
        """Summarize a result list. Returns None for no results, never raises."""
        if not results:
            return None

        return await with_fallback(
            lambda: self._summarize_remote(results),
            lambda: heuristic_summary(results),
            "Results summary",
        )
