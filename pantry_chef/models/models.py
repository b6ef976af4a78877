"""Data models and schemas for Pantry Chef.

Defines Pydantic models for the values that flow between the clients, the
services and the ingredient pipeline. All models use Pydantic v2; value types
are frozen so a new generation or search always produces a fresh instance.
Wire names used by the text-generation proxy (camelCase) are accepted through
aliases, Python code uses snake_case.
"""

import uuid
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Cuisine(str, Enum):
    """Closed set of cuisines understood by the recipe search API."""

    AMERICAN = "american"
    ITALIAN = "italian"
    MEXICAN = "mexican"
    INDIAN = "indian"
    CHINESE = "chinese"
    FRENCH = "french"
    MEDITERRANEAN = "mediterranean"
    JAPANESE = "japanese"
    THAI = "thai"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class Diet(str, Enum):
    """Closed set of diets understood by the recipe search API.

    Values are the wire values sent in the `diet` query parameter.
    """

    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    GLUTEN_FREE = "gluten free"
    DAIRY_FREE = "dairy free"
    PALEO = "paleo"
    KETOGENIC = "ketogenic"

    @property
    def display_name(self) -> str:
        return self.value.title()


class RecipeCategory(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    DESSERT = "dessert"
    SEASONAL = "seasonal"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class SpeechState(str, Enum):
    """Speech capture states owned by the ingredient pipeline."""

    IDLE = "idle"
    REQUESTING = "requesting"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RECORDING = "recording"
    ERROR = "error"

    @property
    def label(self) -> str:
        """Human-readable status shown next to the microphone control."""
        return _SPEECH_STATE_LABELS[self]


_SPEECH_STATE_LABELS = {
    SpeechState.IDLE: "Idle",
    SpeechState.REQUESTING: "Requesting Permission",
    SpeechState.AUTHORIZED: "Ready",
    SpeechState.DENIED: "Permission Denied",
    SpeechState.RECORDING: "Listening",
    SpeechState.ERROR: "Error",
}


class GenerationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


class GeneratedRecipe(BaseModel):
    """Recipe produced by the text-generation proxy or the local mock.

    Ingredients and steps must be non-empty: a payload without them is not a
    usable recipe and fails validation (the client reports it as an invalid
    response).
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, populate_by_name=True)

    id: Annotated[uuid.UUID, Field(default_factory=uuid.uuid4, description="Identity of this generation")]
    title: Annotated[str, Field(min_length=1, description="Recipe name")]
    description: Annotated[str, Field(default="", description="Short description")]
    servings: Annotated[Optional[int], Field(None, description="Number of servings")]
    ingredients: Annotated[
        List[str], Field(min_length=1, description="Ingredient lines, in the order they should be shown")
    ]
    steps: Annotated[List[str], Field(min_length=1, description="Concise, ordered instructions")]
    dietary_notes: Annotated[
        List[str],
        Field(default_factory=list, alias="dietaryNotes", description="Short dietary notes (e.g. 'Vegetarian')"),
    ]


class RecipePrompt(BaseModel):
    """Input for one generation request. Built per request, never persisted."""

    model_config = ConfigDict(frozen=True)

    ingredients: List[str]
    previous_recipe: Optional[GeneratedRecipe] = None
    follow_up_notes: List[str] = Field(default_factory=list)


class RecipeSearchParameters(BaseModel):
    """Structured search request, produced by the interpreter or the filter controls."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, populate_by_name=True)

    query: Annotated[str, Field(description="Keyword-based search phrase")]
    cuisine: Annotated[Optional[Cuisine], Field(None, description="Optional cuisine filter")]
    diet: Annotated[Optional[Diet], Field(None, description="Optional diet filter")]
    max_results: Annotated[int, Field(10, gt=0, alias="maxResults", description="Number of results to request")]

    @field_validator("max_results", mode="before")
    @classmethod
    def default_max_results(cls, v):
        """Treat an explicit null from the proxy like an unset value."""
        return 10 if v is None else v


class Recipe(BaseModel):
    """Canonical search result, from the sample catalog or the search API."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: Annotated[uuid.UUID, Field(default_factory=uuid.uuid4)]
    title: Annotated[str, Field(min_length=1)]
    subtitle: str
    category: RecipeCategory
    description: str
    ingredients: List[str]
    instructions: List[str]


class RecognizedIngredient(BaseModel):
    """Ingredient candidate suggested by image classification."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: Annotated[str, Field(min_length=1)]
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    source: Annotated[str, Field(description="Where the label came from, e.g. 'Whole photo' or 'Region 2'")]

    @property
    def display_text(self) -> str:
        return f"{self.name} {int(self.confidence * 100)}%"


class ClassificationLabel(BaseModel):
    """Raw label returned by an image provider for one classification call."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    label: Annotated[str, Field(min_length=1)]
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]


class BoundingBox(BaseModel):
    """Region of an image in normalized coordinates (origin top-left, 0.0 - 1.0)."""

    model_config = ConfigDict(frozen=True)

    x: Annotated[float, Field(ge=0.0, le=1.0)]
    y: Annotated[float, Field(ge=0.0, le=1.0)]
    width: Annotated[float, Field(gt=0.0, le=1.0)]
    height: Annotated[float, Field(gt=0.0, le=1.0)]

    def to_pixels(self, image_width: int, image_height: int) -> tuple[int, int, int, int]:
        """Convert to a (left, top, right, bottom) pixel box clamped to the image."""
        left = int(self.x * image_width)
        top = int(self.y * image_height)
        right = min(image_width, max(left + 1, int((self.x + self.width) * image_width)))
        bottom = min(image_height, max(top + 1, int((self.y + self.height) * image_height)))
        return left, top, right, bottom


class GenerationOutcome(BaseModel):
    """Snapshot of a recipe session after a generation request settles."""

    status: GenerationStatus
    recipe: Optional[GeneratedRecipe] = None
    follow_ups: List[str] = Field(default_factory=list)
    error_message: Optional[str] = None
