"""Capability provider interfaces consumed by the ingredient pipeline.

Speech transcription, audio capture and image analysis are platform
capabilities. The pipeline only depends on these protocols; concrete
providers live next to this module (Gemini-backed and scripted).
"""

from enum import Enum
from typing import AsyncIterator, Callable, Optional, Protocol, runtime_checkable

from pantry_chef.models.models import BoundingBox, ClassificationLabel


class AuthorizationStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


AudioBufferConsumer = Callable[[bytes], None]


@runtime_checkable
class AudioCapture(Protocol):
    """Exclusive audio input resource (session + input tap + engine)."""

    @property
    def is_running(self) -> bool: ...

    def activate(self) -> None:
        """Claim the audio session for recording. Raises CapabilityError."""
        ...

    def deactivate(self) -> None:
        """Release the audio session. Raises CapabilityError."""
        ...

    def install_tap(self, consumer: AudioBufferConsumer) -> None: ...

    def remove_tap(self) -> None: ...

    def start(self) -> None:
        """Start delivering buffers to the installed tap. Raises CapabilityError."""
        ...

    def stop(self) -> None: ...


@runtime_checkable
class TranscriptionHandle(Protocol):
    """One streaming transcription: audio in, partial transcripts out."""

    def append(self, buffer: bytes) -> None: ...

    def end_audio(self) -> None: ...

    def cancel(self) -> None: ...

    def results(self) -> AsyncIterator[str]:
        """Partial transcripts, each one the best full transcription so far.

        Raises CapabilityError while iterating on recognition failure.
        """
        ...


@runtime_checkable
class SpeechProvider(Protocol):
    async def request_authorization(self) -> AuthorizationStatus: ...

    def start_transcription(self, locale: str, prefer_on_device: bool) -> TranscriptionHandle:
        """Allocate a streaming transcription. Raises CapabilityError."""
        ...


@runtime_checkable
class ImageProvider(Protocol):
    async def recognize_text(self, image: bytes) -> list[str]:
        """OCR lines found in the image, top candidate per line."""
        ...

    async def classify(self, image: bytes, region: Optional[BoundingBox] = None) -> list[ClassificationLabel]:
        """Food labels for the whole image, or for one region of it."""
        ...

    async def detect_salient_regions(self, image: bytes) -> list[BoundingBox]:
        """Best-effort saliency pass. Any exception means saliency is unavailable."""
        ...
