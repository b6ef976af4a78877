"""Gemini-backed image provider: OCR, food classification and salient regions.

Each capability is one Gemini vision call returning JSON. Responses are parsed
leniently (Gemini sometimes wraps the JSON in prose) and validated with
Pydantic. Region classification crops the region with Pillow and classifies
the crop.
"""

import asyncio
import json
import re
from io import BytesIO
from typing import List, Optional, Type, TypeVar

import filetype
from google import genai
from google.genai import types
from PIL import Image
from pydantic import BaseModel

from pantry_chef.models.models import BoundingBox, ClassificationLabel
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityError, MissingConfiguration
from pantry_chef.utils.fallback import safe_execute_sync
from pantry_chef.utils.logger import logger

PayloadT = TypeVar("PayloadT", bound=BaseModel)

OCR_PROMPT = (
    "Read all printed or handwritten text in this image, such as a shopping list or a label. "
    'Return ONLY valid JSON with a \'lines\' list of strings, one per text line, top to bottom. '
    'Example: {"lines": ["2 eggs", "milk"]}. Return {"lines": []} when there is no text.'
)

CLASSIFY_PROMPT = (
    "Identify the food items and ingredients visible in this image. "
    "Return ONLY valid JSON with a 'labels' list of objects with 'label' (short ingredient name) "
    "and 'confidence' (0.0-1.0), most confident first, at most {max_labels} entries. "
    'Example: {{"labels": [{{"label": "tomato", "confidence": 0.92}}, {{"label": "basil", "confidence": 0.61}}]}}'
)

SALIENCY_PROMPT = (
    "Find the distinct food items in this image that would be worth identifying separately. "
    "Return ONLY valid JSON with a 'regions' list of bounding boxes with 'x', 'y', 'width' and 'height' "
    "normalized to 0.0-1.0 (origin top-left), most prominent first, at most {max_regions} entries. "
    'Example: {{"regions": [{{"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}}]}}'
)


class TextLinesPayload(BaseModel):
    lines: List[str] = []


class LabelsPayload(BaseModel):
    labels: List[ClassificationLabel] = []


class RegionsPayload(BaseModel):
    regions: List[BoundingBox] = []


def mime_type_for(image_bytes: bytes) -> str:
    """Return the detected MIME type of an image (JPEG, PNG, WebP, HEIC, ...).

    Raises:
        CapabilityError: If the bytes are not a recognizable image.
    """
    kind = filetype.guess(image_bytes)
    if kind is None or not kind.mime.startswith("image/"):
        raise CapabilityError("Image analysis", "Unable to determine image format")
    return kind.mime


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Compress image for API transmission using Pillow.

    Uses JPEG format with quality=85 + optimize + progressive. Resizes
    oversized images and converts color modes to RGB. Only compresses when
    the image is at least COMPRESS_IMG_THRESHOLD_KB.

    Args:
        image_bytes: Raw image bytes to compress
        max_width: Maximum image width in pixels

    Returns:
        Compressed image bytes (or original if below threshold or compression fails)
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(
            f"Image size {size_kb:.1f}KB below compression threshold "
            f"({config.COMPRESS_IMG_THRESHOLD_KB}KB), skipping compression"
        )
        return image_bytes

    def _compress():
        img = _to_rgb(Image.open(BytesIO(image_bytes)))

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed_bytes = output.getvalue()
        logger.debug(f"Image compressed: {size_kb:.1f}KB → {len(compressed_bytes) / 1024:.1f}KB")
        return compressed_bytes

    return safe_execute_sync(_compress, "Image compression", log_level="warning", default_return=image_bytes)


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA", "P"):
        rgb_img = Image.new("RGB", img.size, (255, 255, 255))
        if img.mode == "RGBA":
            rgb_img.paste(img, mask=img.split()[-1])
        else:
            rgb_img.paste(img)
        return rgb_img
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def crop_region(image_bytes: bytes, region: BoundingBox) -> bytes:
    """Crop a normalized region out of the image and encode it as JPEG."""
    img = Image.open(BytesIO(image_bytes))
    cropped = _to_rgb(img.crop(region.to_pixels(img.width, img.height)))
    output = BytesIO()
    cropped.save(output, format="JPEG", quality=90)
    return output.getvalue()


def parse_gemini_response(response_text: Optional[str], payload_model: Type[PayloadT]) -> Optional[PayloadT]:
    """Parse JSON from a Gemini response into payload_model.

    Tries a direct JSON parse, then extracts the first {...} block from
    surrounding text. Returns None when neither yields a valid payload.
    """
    if not response_text:
        return None

    def _parse_json_direct():
        return json.loads(response_text)

    def _parse_json_regex():
        json_match = re.search(r"\{.*\}", response_text, re.DOTALL)
        if json_match:
            return json.loads(json_match.group())
        return None

    parsed = safe_execute_sync(_parse_json_direct, "Direct JSON parse", log_level="debug")
    if not isinstance(parsed, dict):
        parsed = safe_execute_sync(_parse_json_regex, "Regex JSON extraction", log_level="debug")

    if not isinstance(parsed, dict):
        logger.warning("Failed to parse JSON from Gemini response")
        return None

    return safe_execute_sync(
        lambda: payload_model.model_validate(parsed),
        f"Validate {payload_model.__name__}",
        log_level="warning",
    )


class GeminiImageProvider:
    """ImageProvider implemented with Gemini vision calls.

    Args:
        api_key: Gemini API key. Defaults to GEMINI_API_KEY.
        model: Vision model name. Defaults to IMAGE_DETECTION_MODEL.
        client: Pre-built genai.Client (tests inject a mock).

    Raises:
        MissingConfiguration: No client and no API key.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.model = model or config.IMAGE_DETECTION_MODEL
        if client is None:
            key = api_key or config.GEMINI_API_KEY
            if not key:
                raise MissingConfiguration("GEMINI_API_KEY")
            client = genai.Client(api_key=key)
        self.client = client

    def _prepare(self, image_bytes: bytes) -> bytes:
        return compress_image(image_bytes) if config.COMPRESS_IMG else image_bytes

    async def _call(self, capability: str, prompt: str, image_bytes: bytes, payload_model: Type[PayloadT]) -> PayloadT:
        try:
            image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type_for(image_bytes))
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[prompt, image_part],
            )
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError(capability, str(e)) from e

        payload = parse_gemini_response(response.text, payload_model)
        if payload is None:
            raise CapabilityError(capability, "The vision model returned an unexpected response.")
        return payload

    async def recognize_text(self, image: bytes) -> list[str]:
        payload = await self._call("Text recognition", OCR_PROMPT, self._prepare(image), TextLinesPayload)
        return payload.lines

    async def classify(self, image: bytes, region: Optional[BoundingBox] = None) -> list[ClassificationLabel]:
        if region is not None:
            try:
                image = await asyncio.to_thread(crop_region, image, region)
            except Exception as e:
                raise CapabilityError("Classification", f"Unable to crop region: {e}") from e
        else:
            image = self._prepare(image)

        prompt = CLASSIFY_PROMPT.format(max_labels=config.MAX_CLASSIFICATION_LABELS)
        payload = await self._call("Classification", prompt, image, LabelsPayload)
        return payload.labels

    async def detect_salient_regions(self, image: bytes) -> list[BoundingBox]:
        prompt = SALIENCY_PROMPT.format(max_regions=config.MAX_SALIENT_REGIONS)
        payload = await self._call("Saliency", prompt, self._prepare(image), RegionsPayload)
        return payload.regions
