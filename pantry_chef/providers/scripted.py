"""Deterministic in-memory capability providers.

Used by the tests. Each provider replays what it was constructed with and
records the calls made to it.
"""

import asyncio
from typing import AsyncIterator, Optional, Sequence, Union

from pantry_chef.models.models import BoundingBox, ClassificationLabel
from pantry_chef.providers.base import AudioBufferConsumer, AuthorizationStatus
from pantry_chef.utils.errors import CapabilityError

Scripted = Union[Exception, list]


class ScriptedAudioCapture:
    """Audio input that pushes fixed buffers into the tap when started.

    Args:
        buffers: Buffers delivered to the tap on start().
        fail_on: Name of a method ("activate", "install_tap", "start", "deactivate")
            that raises.
    """

    def __init__(self, buffers: Sequence[bytes] = (b"\x00" * 1024,), fail_on: Optional[str] = None) -> None:
        self.buffers = list(buffers)
        self.fail_on = fail_on
        self.active = False
        self.running = False
        self.consumer: Optional[AudioBufferConsumer] = None
        self.calls: list[str] = []

    @property
    def is_running(self) -> bool:
        return self.running

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise CapabilityError("Audio", f"{name} failed")

    def activate(self) -> None:
        self._maybe_fail("activate")
        self.active = True

    def deactivate(self) -> None:
        self.active = False
        self._maybe_fail("deactivate")

    def install_tap(self, consumer: AudioBufferConsumer) -> None:
        self._maybe_fail("install_tap")
        if self.consumer is not None:
            raise CapabilityError("Audio", "a tap is already installed")
        self.consumer = consumer

    def remove_tap(self) -> None:
        self.calls.append("remove_tap")
        self.consumer = None

    def start(self) -> None:
        self._maybe_fail("start")
        self.running = True
        for buffer in self.buffers:
            if self.consumer is not None:
                self.consumer(buffer)

    def stop(self) -> None:
        self.calls.append("stop")
        self.running = False


class ScriptedTranscription:
    """Transcription handle replaying partial transcripts.

    After the script is exhausted the stream stays open until end_audio() or
    cancel(), like a live recognizer waiting for more speech.
    """

    def __init__(self, transcripts: Sequence[str], error: Optional[Exception] = None) -> None:
        self.transcripts = list(transcripts)
        self.error = error
        self.received: list[bytes] = []
        self.ended = False
        self.cancelled = False
        self._closed = asyncio.Event()

    def append(self, buffer: bytes) -> None:
        self.received.append(buffer)

    def end_audio(self) -> None:
        self.ended = True
        self._closed.set()

    def cancel(self) -> None:
        self.cancelled = True
        self._closed.set()

    async def results(self) -> AsyncIterator[str]:
        for transcript in self.transcripts:
            await asyncio.sleep(0)
            yield transcript
        if self.error is not None:
            raise self.error
        await self._closed.wait()


class ScriptedSpeechProvider:
    """Speech provider with a fixed authorization verdict and transcript script."""

    def __init__(
        self,
        status: Union[AuthorizationStatus, str, Exception] = AuthorizationStatus.GRANTED,
        transcripts: Sequence[str] = (),
        error: Optional[Exception] = None,
        start_error: Optional[Exception] = None,
    ) -> None:
        self.status = status
        self.transcripts = list(transcripts)
        self.error = error
        self.start_error = start_error
        self.handles: list[ScriptedTranscription] = []
        self.authorization_requests = 0

    async def request_authorization(self) -> AuthorizationStatus:
        self.authorization_requests += 1
        await asyncio.sleep(0)
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    def start_transcription(self, locale: str, prefer_on_device: bool) -> ScriptedTranscription:
        if self.start_error is not None:
            raise self.start_error
        handle = ScriptedTranscription(self.transcripts, self.error)
        self.handles.append(handle)
        return handle


class ScriptedImageProvider:
    """Image provider returning fixed OCR lines, labels and regions.

    Args:
        text_lines: OCR result, or an exception to raise.
        whole_labels: Whole-photo labels, or an exception to raise.
        region_labels: One entry per region (labels or an exception).
        regions: Salient regions, or an exception meaning saliency is unavailable.
    """

    def __init__(
        self,
        text_lines: Optional[Scripted] = None,
        whole_labels: Optional[Scripted] = None,
        region_labels: Optional[Sequence[Scripted]] = None,
        regions: Union[Exception, Sequence[BoundingBox], None] = None,
    ) -> None:
        self.text_lines = [] if text_lines is None else text_lines
        self.whole_labels = [] if whole_labels is None else whole_labels
        self.region_labels = list(region_labels or [])
        if regions is None:
            regions = [
                BoundingBox(x=0.0, y=0.0, width=0.5, height=0.5),
                BoundingBox(x=0.5, y=0.0, width=0.5, height=0.5),
                BoundingBox(x=0.0, y=0.5, width=0.5, height=0.5),
                BoundingBox(x=0.5, y=0.5, width=0.5, height=0.5),
            ][: len(self.region_labels)]
        self.regions = regions
        self.classified_regions: list[Optional[BoundingBox]] = []

    @staticmethod
    def _replay(value: Scripted):
        if isinstance(value, Exception):
            raise value
        return list(value)

    async def recognize_text(self, image: bytes) -> list[str]:
        await asyncio.sleep(0)
        return self._replay(self.text_lines)

    async def classify(self, image: bytes, region: Optional[BoundingBox] = None) -> list[ClassificationLabel]:
        self.classified_regions.append(region)
        await asyncio.sleep(0)
        if region is None:
            return self._replay(self.whole_labels)
        index = list(self.regions).index(region)
        if index >= len(self.region_labels):
            return []
        return self._replay(self.region_labels[index])

    async def detect_salient_regions(self, image: bytes) -> list[BoundingBox]:
        await asyncio.sleep(0)
        return self._replay(self.regions)
