"""Speech capture state machine.

States: idle, requesting, authorized, denied, recording, error.

    idle --request_authorization--> requesting
    requesting --> authorized | denied | idle (undetermined) | error
    authorized --start--> recording
    idle --start--> requesting (start redirects into an authorization request)
    recording --stop--> authorized
    recording --failure--> error

Stopping always tears down the capture resources in the same order (stop the
audio input, end the transcription audio, cancel the transcription consumer,
remove the input tap, release the audio session) before the state changes,
whatever the current state is.
"""

import asyncio
from typing import Callable, Optional

from pantry_chef.models.models import SpeechState
from pantry_chef.providers.base import AudioCapture, AuthorizationStatus, SpeechProvider, TranscriptionHandle
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityDenied
from pantry_chef.utils.fallback import safe_execute_sync
from pantry_chef.utils.logger import logger

SPEECH_REQUIRED_MESSAGE = "Speech access is required to transcribe your voice."
UNKNOWN_AUTHORIZATION_MESSAGE = "Unknown authorization status."


class SpeechCapture:
    """Capture speech into a transcript callback.

    Args:
        provider: Speech recognition capability.
        audio: Exclusive audio input resource.
        on_transcript: Called with every partial transcript. Each partial is
            the full best transcription so far, so consumers overwrite.
        locale: Recognition locale.
        prefer_on_device: Ask the provider for on-device recognition.
    """

    def __init__(
        self,
        provider: SpeechProvider,
        audio: AudioCapture,
        on_transcript: Callable[[str], None],
        locale: Optional[str] = None,
        prefer_on_device: Optional[bool] = None,
    ) -> None:
        self.provider = provider
        self.audio = audio
        self.on_transcript = on_transcript
        self.locale = locale or config.SPEECH_LOCALE
        self.prefer_on_device = config.SPEECH_PREFER_ON_DEVICE if prefer_on_device is None else prefer_on_device

        self.state: SpeechState = SpeechState.IDLE
        self.error: Optional[str] = None
        self.has_audio_tap: bool = False
        self.audio_active: bool = False

        self._handle: Optional[TranscriptionHandle] = None
        self._consumer: Optional[asyncio.Task] = None
        self._transcript_received = asyncio.Event()
        self._settled = asyncio.Event()

    async def request_authorization(self) -> SpeechState:
        self.state = SpeechState.REQUESTING
        try:
            status = await self.provider.request_authorization()
        except Exception as e:
            logger.warning(f"Speech authorization request failed: {e}")
            self.state = SpeechState.ERROR
            self.error = str(e)
            return self.state

        if status == AuthorizationStatus.GRANTED:
            self.state = SpeechState.AUTHORIZED
            self.error = None
        elif status == AuthorizationStatus.DENIED:
            self.state = SpeechState.DENIED
            self.error = str(CapabilityDenied())
        elif status == AuthorizationStatus.UNDETERMINED:
            self.state = SpeechState.IDLE
        else:
            self.state = SpeechState.ERROR
            self.error = UNKNOWN_AUTHORIZATION_MESSAGE

        logger.info(f"Speech authorization resolved to {self.state.value}")
        return self.state

    async def start(self) -> SpeechState:
        """Start recording.

        Only allowed from authorized or idle. From idle this requests
        authorization instead and does not record; call start again once
        authorized.
        """
        if self.state not in (SpeechState.AUTHORIZED, SpeechState.IDLE):
            self.error = SPEECH_REQUIRED_MESSAGE
            return self.state

        if self.state == SpeechState.IDLE:
            return await self.request_authorization()

        self.stop(SpeechState.AUTHORIZED)
        self._transcript_received.clear()
        self._settled.clear()

        try:
            self.audio.activate()
            self.audio_active = True
        except Exception as e:
            self._finish_with_error(f"Audio session configuration failed: {e}")
            return self.state

        try:
            self._handle = self.provider.start_transcription(self.locale, self.prefer_on_device)
        except Exception as e:
            self._finish_with_error(f"Unable to create recognition request: {e}")
            return self.state

        if not self.has_audio_tap:
            try:
                self.audio.install_tap(self._handle.append)
            except Exception as e:
                self._finish_with_error(f"Unable to install audio tap: {e}")
                return self.state
            self.has_audio_tap = True

        self.state = SpeechState.RECORDING
        self.error = None
        self._consumer = asyncio.create_task(self._consume(self._handle))

        try:
            self.audio.start()
        except Exception as e:
            self._finish_with_error(f"Audio engine failed to start: {e}")

        return self.state

    async def _consume(self, handle: TranscriptionHandle) -> None:
        try:
            async for transcript in handle.results():
                self.on_transcript(transcript)
                self._transcript_received.set()
                self._settled.set()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._finish_with_error(str(e))
        else:
            self._settled.set()

    async def wait_for_transcript(self, timeout: float) -> bool:
        """Wait for the first transcript of the current recording.

        Returns early, with False, when the recording ends without one
        (recognition error, stream closed, or stop).
        """
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return self._transcript_received.is_set()

    def stop(self, target_state: SpeechState = SpeechState.AUTHORIZED) -> SpeechState:
        """Release every capture resource, then move to target_state."""
        if self.audio.is_running:
            safe_execute_sync(self.audio.stop, "Stop audio input")

        handle, self._handle = self._handle, None
        if handle is not None:
            safe_execute_sync(handle.end_audio, "End transcription audio")
            safe_execute_sync(handle.cancel, "Cancel transcription")

        consumer, self._consumer = self._consumer, None
        if consumer is not None and consumer is not asyncio.current_task():
            consumer.cancel()

        if self.has_audio_tap:
            safe_execute_sync(self.audio.remove_tap, "Remove audio tap")
            self.has_audio_tap = False

        try:
            self.audio.deactivate()
        except Exception as e:
            self.error = f"Audio session deactivation failed: {e}"
        self.audio_active = False

        self._settled.set()
        self.state = target_state
        return self.state

    def _finish_with_error(self, message: str) -> None:
        logger.warning(f"Speech capture failed: {message}", extra={"capability": "Speech recognition"})
        self.error = message
        self.stop(SpeechState.ERROR)
