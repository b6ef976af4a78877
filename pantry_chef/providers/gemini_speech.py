"""Gemini-backed speech provider for recorded audio clips.

AudioClipCapture plays a recorded clip (WAV, MP3, OGG, FLAC, M4A) into the
input tap in chunks, the way a microphone delivers buffers. The transcription
handle collects those buffers and, once they stop arriving, sends the whole
recording to Gemini. Each transcript is the full transcription of the audio
received so far.
"""

import asyncio
from typing import AsyncIterator, Optional

import filetype
from google import genai
from google.genai import types

from pantry_chef.providers.base import AudioBufferConsumer, AuthorizationStatus
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityError, MissingConfiguration
from pantry_chef.utils.logger import logger

TRANSCRIBE_PROMPT = (
    "Transcribe this audio recording verbatim. The speaker is listing cooking ingredients "
    "and the language is {locale}. Return only the transcript text, without commentary."
)

CLIP_CHUNK_BYTES = 32 * 1024
DEBOUNCE_SECONDS = 0.5


def audio_mime_type(audio_bytes: bytes) -> str:
    """Detect the MIME type of an audio clip from its magic bytes.

    Raises:
        CapabilityError: If the bytes are not a recognizable audio format.
    """
    kind = filetype.guess(audio_bytes)
    if kind is None or not kind.mime.startswith("audio/"):
        raise CapabilityError("Speech recognition", f"Unsupported audio format: {kind}")
    return kind.mime


class AudioClipCapture:
    """AudioCapture that replays a recorded clip into the tap."""

    def __init__(self, clip: bytes, chunk_size: int = CLIP_CHUNK_BYTES) -> None:
        self.clip = clip
        self.chunk_size = chunk_size
        self.active = False
        self._running = False
        self._consumer: Optional[AudioBufferConsumer] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def activate(self) -> None:
        if not self.clip:
            raise CapabilityError("Audio", "The audio clip is empty.")
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def install_tap(self, consumer: AudioBufferConsumer) -> None:
        self._consumer = consumer

    def remove_tap(self) -> None:
        self._consumer = None

    def start(self) -> None:
        if not self.active:
            raise CapabilityError("Audio", "The audio session is not active.")
        self._running = True
        if self._consumer is None:
            return
        for offset in range(0, len(self.clip), self.chunk_size):
            self._consumer(self.clip[offset : offset + self.chunk_size])

    def stop(self) -> None:
        self._running = False


class GeminiTranscription:
    """Transcription handle that re-transcribes the buffered audio when it settles."""

    def __init__(
        self,
        client: genai.Client,
        model: str,
        locale: str,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.client = client
        self.model = model
        self.locale = locale
        self.debounce_seconds = debounce_seconds
        self._buffer = bytearray()
        self._new_audio = asyncio.Event()
        self._ended = False
        self._cancelled = False

    def append(self, buffer: bytes) -> None:
        if self._ended or self._cancelled:
            return
        self._buffer.extend(buffer)
        self._new_audio.set()

    def end_audio(self) -> None:
        self._ended = True
        self._new_audio.set()

    def cancel(self) -> None:
        self._cancelled = True
        self._new_audio.set()

    async def _transcribe(self, audio_bytes: bytes) -> str:
        try:
            audio_part = types.Part.from_bytes(data=audio_bytes, mime_type=audio_mime_type(audio_bytes))
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[TRANSCRIBE_PROMPT.format(locale=self.locale), audio_part],
            )
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError("Speech recognition", str(e)) from e
        return (response.text or "").strip()

    async def results(self) -> AsyncIterator[str]:
        transcribed_bytes = 0
        while not self._cancelled:
            await self._new_audio.wait()
            self._new_audio.clear()
            if not self._ended:
                await asyncio.sleep(self.debounce_seconds)
            if self._cancelled:
                return

            if len(self._buffer) > transcribed_bytes:
                transcribed_bytes = len(self._buffer)
                logger.debug(f"Transcribing {transcribed_bytes} bytes of audio")
                transcript = await self._transcribe(bytes(self._buffer))
                if transcript and not self._cancelled:
                    yield transcript

            if self._ended:
                return


class GeminiAudioFileSpeechProvider:
    """SpeechProvider transcribing recorded audio with Gemini.

    Args:
        api_key: Gemini API key. Defaults to GEMINI_API_KEY.
        model: Transcription model. Defaults to SPEECH_TRANSCRIPTION_MODEL.
        client: Pre-built genai.Client (tests inject a mock).
        debounce_seconds: Quiet period before buffered audio is transcribed.

    Raises:
        MissingConfiguration: No client and no API key.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[genai.Client] = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.model = model or config.SPEECH_TRANSCRIPTION_MODEL
        self.debounce_seconds = debounce_seconds
        if client is None:
            key = api_key or config.GEMINI_API_KEY
            if not key:
                raise MissingConfiguration("GEMINI_API_KEY")
            client = genai.Client(api_key=key)
        self.client = client

    async def request_authorization(self) -> AuthorizationStatus:
        # A configured API key is the only consent this provider needs
        return AuthorizationStatus.GRANTED

    def start_transcription(self, locale: str, prefer_on_device: bool) -> GeminiTranscription:
        if prefer_on_device:
            logger.debug(f"On-device recognition not available, transcribing with {self.model}")
        return GeminiTranscription(self.client, self.model, locale, self.debounce_seconds)
