"""Image analysis for ingredient capture: OCR and food classification.

Classification fans out over the whole photo plus up to MAX_SALIENT_REGIONS
salient regions. Region calls run concurrently and are joined with
asyncio.gather(return_exceptions=True): a failed region is logged and
dropped, the remaining regions still count. A failed whole-photo call fails
the classification.
"""

import asyncio
from typing import Optional

import filetype

from pantry_chef.models.models import BoundingBox, ClassificationLabel, RecognizedIngredient
from pantry_chef.pipeline.ingredient_parser import deduplicate_recognized
from pantry_chef.providers.base import ImageProvider
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityError
from pantry_chef.utils.fallback import safe_execute_async
from pantry_chef.utils.logger import logger

WHOLE_PHOTO_SOURCE = "Whole photo"
SUPPORTED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"})


def region_source(index: int) -> str:
    """Source label for the 1-based region index."""
    return f"Region {index}"


def detect_image_type(image_bytes: bytes) -> Optional[str]:
    """MIME type of a photo the vision providers can read, or None.

    The type comes from the magic bytes, not the file name.
    """
    kind = filetype.guess(image_bytes) if image_bytes else None
    if kind is None or kind.mime not in SUPPORTED_IMAGE_TYPES:
        logger.info(f"Rejected photo of type {kind.mime if kind else 'unknown'}")
        return None
    return kind.mime


def exceeds_size_limit(image_bytes: bytes) -> bool:
    limit_bytes = config.MAX_IMAGE_SIZE_MB * 1024 * 1024
    if len(image_bytes) <= limit_bytes:
        return False
    logger.info(f"Rejected photo of {len(image_bytes) / (1024 * 1024):.1f}MB, limit is {config.MAX_IMAGE_SIZE_MB}MB")
    return True


def filter_labels(
    labels: list[ClassificationLabel],
    source: str,
    min_confidence: float,
    max_labels: int,
) -> list[RecognizedIngredient]:
    """Keep labels above the confidence floor, best first, capped at max_labels."""
    kept = sorted(
        (label for label in labels if label.confidence > min_confidence),
        key=lambda label: label.confidence,
        reverse=True,
    )[:max_labels]

    if len(kept) < len(labels):
        logger.debug(
            f"{source}: filtered labels {len(labels)} → {len(kept)} "
            f"(floor: {min_confidence}, cap: {max_labels})"
        )

    return [RecognizedIngredient(name=label.label, confidence=label.confidence, source=source) for label in kept]


class ImageAnalyzer:
    """Run OCR and classification for one photo against an ImageProvider.

    Args:
        provider: Image capability.
        min_confidence: Labels at or below this confidence are dropped.
        max_labels: Maximum labels kept per classification call.
        max_regions: Maximum salient regions classified in addition to the whole photo.
    """

    def __init__(
        self,
        provider: ImageProvider,
        min_confidence: Optional[float] = None,
        max_labels: Optional[int] = None,
        max_regions: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.min_confidence = config.MIN_CLASSIFICATION_CONFIDENCE if min_confidence is None else min_confidence
        self.max_labels = config.MAX_CLASSIFICATION_LABELS if max_labels is None else max_labels
        self.max_regions = config.MAX_SALIENT_REGIONS if max_regions is None else max_regions

    async def recognize_text(self, image: bytes) -> str:
        """OCR the photo. Returns the recognized lines joined with newlines.

        Raises:
            CapabilityError: When the provider fails.
        """
        try:
            lines = await self.provider.recognize_text(image)
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError("Text recognition", str(e)) from e
        return "\n".join(line.strip() for line in lines if line and line.strip())

    async def _classify(self, image: bytes, region: Optional[BoundingBox], source: str) -> list[RecognizedIngredient]:
        labels = await self.provider.classify(image, region)
        return filter_labels(labels, source, self.min_confidence, self.max_labels)

    async def _salient_regions(self, image: bytes) -> list[BoundingBox]:
        if self.max_regions == 0:
            return []
        regions = await safe_execute_async(
            self.provider.detect_salient_regions(image),
            "Salient region detection unavailable",
            log_level="debug",
            default_return=[],
        )
        return list(regions or [])[: self.max_regions]

    async def _classify_regions(self, image: bytes) -> list[RecognizedIngredient]:
        regions = await self._salient_regions(image)
        if not regions:
            return []

        results = await asyncio.gather(
            *(self._classify(image, region, region_source(idx)) for idx, region in enumerate(regions, start=1)),
            return_exceptions=True,
        )

        candidates: list[RecognizedIngredient] = []
        for idx, result in enumerate(results, start=1):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Classification of {region_source(idx)} failed, dropping it: {result}",
                    extra={"capability": "Classification", "source": region_source(idx)},
                )
                continue
            candidates.extend(result)
        return candidates

    async def classify(self, image: bytes) -> list[RecognizedIngredient]:
        """Classify the whole photo and its salient regions.

        Returns:
            Deduplicated candidates (highest confidence per name), best first.

        Raises:
            CapabilityError: When the whole-photo classification fails.
        """
        whole, regions = await asyncio.gather(
            self._classify(image, None, WHOLE_PHOTO_SOURCE),
            self._classify_regions(image),
            return_exceptions=True,
        )

        if isinstance(whole, BaseException):
            if isinstance(whole, CapabilityError):
                raise whole
            raise CapabilityError("Classification", str(whole)) from whole
        if isinstance(regions, BaseException):
            logger.warning(f"Region classification failed: {regions}")
            regions = []

        candidates = deduplicate_recognized([*whole, *regions])
        logger.info(f"Classified image: {len(candidates)} candidate ingredients")
        return candidates
