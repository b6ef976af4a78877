"""Ingredient text parsing and recognized-candidate deduplication."""

import re
from typing import Iterable

from pantry_chef.models.models import RecognizedIngredient

# comma, newline, semicolon, bullet, tab
INGREDIENT_DELIMITERS = ",\n;•\t"
_DELIMITER_RE = re.compile(f"[{re.escape(INGREDIENT_DELIMITERS)}]")


def parse_ingredients(raw_text: str) -> list[str]:
    """Split a raw ingredient buffer into a clean, ordered list.

    Pieces are trimmed, empty pieces dropped, and exact duplicates removed
    keeping the first occurrence.

    Example:
        >>> parse_ingredients("Egg, milk\\nEgg")
        ['Egg', 'milk']
    """
    pieces = (piece.strip() for piece in _DELIMITER_RE.split(raw_text or ""))
    return list(dict.fromkeys(piece for piece in pieces if piece))


def deduplicate_recognized(candidates: Iterable[RecognizedIngredient]) -> list[RecognizedIngredient]:
    """Keep the highest-confidence candidate per case-insensitive name.

    Returns:
        One candidate per lower-cased name, sorted by descending confidence.
        Ties keep the candidate seen first.
    """
    best: dict[str, RecognizedIngredient] = {}
    for candidate in candidates:
        key = candidate.name.lower()
        current = best.get(key)
        if current is None or candidate.confidence > current.confidence:
            best[key] = candidate
    return sorted(best.values(), key=lambda candidate: candidate.confidence, reverse=True)
