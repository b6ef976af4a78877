"""Ingredient extraction pipeline.

Three capture modes feed one raw-text buffer:
- typed text (set_raw_text)
- speech transcripts (each partial replaces the buffer)
- photos (OCR text is appended, classified candidates are committed on request)

The parsed ingredient list is always re-derived from the buffer with
parse_ingredients after a mutation, never patched by hand.

No method raises for a provider failure. Failures become the speech error or
the vision status message, and the buffer keeps its previous content.
"""

import asyncio
from typing import Iterable, Optional

from pantry_chef.models.models import RecognizedIngredient, SpeechState
from pantry_chef.pipeline.image_analysis import ImageAnalyzer, detect_image_type, exceeds_size_limit
from pantry_chef.pipeline.ingredient_parser import parse_ingredients
from pantry_chef.pipeline.speech import SpeechCapture
from pantry_chef.providers.base import AudioCapture, ImageProvider, SpeechProvider
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityError
from pantry_chef.utils.logger import logger

PROCESSING_IMAGE_MESSAGE = "Processing image…"
UNREADABLE_IMAGE_MESSAGE = "Unable to read image."
IMAGE_TOO_LARGE_MESSAGE = "Image is too large. Maximum size is {limit}MB."
TEXT_EXTRACTED_MESSAGE = "Extracted text from image."
NO_TEXT_MESSAGE = "No text detected in image."
INGREDIENTS_IDENTIFIED_MESSAGE = "Identified possible ingredients."
SPEECH_UNAVAILABLE_MESSAGE = "Speech capture is not available."
VISION_UNAVAILABLE_MESSAGE = "Image analysis is not available."


def _failure_detail(error: Exception) -> str:
    return error.error if isinstance(error, CapabilityError) else str(error)


class IngredientExtractionPipeline:
    """Owner of the ingredient capture state for one interactive session.

    Args:
        speech_provider: Speech recognition capability. Speech operations
            report SPEECH_UNAVAILABLE_MESSAGE when missing.
        audio: Audio input used with speech_provider.
        image_provider: Image capability. process_image reports
            VISION_UNAVAILABLE_MESSAGE when missing.
        analyzer: Pre-built ImageAnalyzer, overrides image_provider.
    """

    def __init__(
        self,
        speech_provider: Optional[SpeechProvider] = None,
        audio: Optional[AudioCapture] = None,
        image_provider: Optional[ImageProvider] = None,
        analyzer: Optional[ImageAnalyzer] = None,
    ) -> None:
        self.raw_text: str = ""
        self.parsed_ingredients: list[str] = []
        self.vision_status_message: Optional[str] = None
        self.recognized_text: str = ""
        self.recognized_ingredients: list[RecognizedIngredient] = []

        self.speech: Optional[SpeechCapture] = None
        if speech_provider is not None and audio is not None:
            self.speech = SpeechCapture(speech_provider, audio, self._apply_transcript)

        self.analyzer = analyzer
        if self.analyzer is None and image_provider is not None:
            self.analyzer = ImageAnalyzer(image_provider)

        self._speech_unavailable_error: Optional[str] = None

    # Raw buffer

    def _reparse(self) -> None:
        self.parsed_ingredients = parse_ingredients(self.raw_text)

    def set_raw_text(self, text: str) -> list[str]:
        """Replace the buffer (typing) and re-parse."""
        self.raw_text = text
        self._reparse()
        return self.parsed_ingredients

    def _append_line(self, text: str) -> None:
        if self.raw_text:
            self.raw_text += "\n"
        self.raw_text += text
        self._reparse()

    def reset(self) -> None:
        """Clear the buffer, recognition results and messages."""
        self.raw_text = ""
        self.parsed_ingredients = []
        self.recognized_text = ""
        self.recognized_ingredients = []
        self.vision_status_message = None
        self._speech_unavailable_error = None
        if self.speech is not None:
            self.speech.error = None

    # Speech

    @property
    def speech_state(self) -> SpeechState:
        return self.speech.state if self.speech is not None else SpeechState.IDLE

    @property
    def speech_error(self) -> Optional[str]:
        if self.speech is None:
            return self._speech_unavailable_error
        return self.speech.error

    def _apply_transcript(self, transcript: str) -> None:
        self.raw_text = transcript
        self._reparse()

    async def request_speech_authorization(self) -> SpeechState:
        if self.speech is None:
            self._speech_unavailable_error = SPEECH_UNAVAILABLE_MESSAGE
            return self.speech_state
        return await self.speech.request_authorization()

    async def start_recording(self) -> SpeechState:
        if self.speech is None:
            self._speech_unavailable_error = SPEECH_UNAVAILABLE_MESSAGE
            return self.speech_state
        return await self.speech.start()

    def stop_recording(self) -> SpeechState:
        if self.speech is None:
            return self.speech_state
        return self.speech.stop(SpeechState.AUTHORIZED)

    # Image

    async def _run_text_recognition(self, image: bytes) -> None:
        try:
            text = await self.analyzer.recognize_text(image)
        except Exception as e:
            logger.warning(f"OCR failed: {e}")
            self.vision_status_message = f"OCR failed: {_failure_detail(e)}"
            return

        self.recognized_text = text
        if text:
            self._append_line(text)
            self.vision_status_message = TEXT_EXTRACTED_MESSAGE
        else:
            self.vision_status_message = NO_TEXT_MESSAGE

    async def _run_classification(self, image: bytes) -> None:
        try:
            candidates = await self.analyzer.classify(image)
        except Exception as e:
            logger.warning(f"Classification failed: {e}")
            self.vision_status_message = f"Classification failed: {_failure_detail(e)}"
            return

        if candidates:
            self.recognized_ingredients = candidates
            self.vision_status_message = INGREDIENTS_IDENTIFIED_MESSAGE

    async def process_image(self, image: bytes) -> Optional[str]:
        """OCR and classify a JPEG/PNG photo.

        OCR text is appended to the buffer. Classified candidates are stored in
        recognized_ingredients until commit_recognized is called.

        Returns:
            The final vision status message.
        """
        if self.analyzer is None:
            self.vision_status_message = VISION_UNAVAILABLE_MESSAGE
            return self.vision_status_message

        self.vision_status_message = PROCESSING_IMAGE_MESSAGE
        self.recognized_text = ""
        self.recognized_ingredients = []

        if detect_image_type(image) is None:
            self.vision_status_message = UNREADABLE_IMAGE_MESSAGE
            return self.vision_status_message
        if exceeds_size_limit(image):
            self.vision_status_message = IMAGE_TOO_LARGE_MESSAGE.format(limit=config.MAX_IMAGE_SIZE_MB)
            return self.vision_status_message

        await asyncio.gather(self._run_text_recognition(image), self._run_classification(image))
        return self.vision_status_message

    def commit_recognized(self, names: Optional[Iterable[str]] = None) -> list[str]:
        """Append recognized candidates to the buffer, one per line.

        Args:
            names: Names to commit (case-insensitive). None commits every candidate.

        Returns:
            The committed names, in recognized order.
        """
        if names is None:
            selected = [candidate.name for candidate in self.recognized_ingredients]
        else:
            wanted = {name.strip().lower() for name in names}
            selected = [
                candidate.name for candidate in self.recognized_ingredients if candidate.name.lower() in wanted
            ]

        if selected:
            self._append_line("\n".join(selected))
            logger.info(f"Committed {len(selected)} recognized ingredients")
        return selected
