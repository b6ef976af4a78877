"""Unit tests for the Gemini image and speech providers with a mocked client."""

import json
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from PIL import Image

from pantry_chef.models.models import BoundingBox, SpeechState
from pantry_chef.pipeline.speech import SpeechCapture
from pantry_chef.providers.gemini_speech import (
    AudioClipCapture,
    GeminiAudioFileSpeechProvider,
    audio_mime_type,
)
from pantry_chef.providers.gemini_vision import (
    GeminiImageProvider,
    LabelsPayload,
    compress_image,
    crop_region,
    mime_type_for,
    parse_gemini_response,
)
from pantry_chef.utils.config import config
from pantry_chef.utils.errors import CapabilityError, MissingConfiguration

WAV_BYTES = b"RIFF" + b"\x24\x00\x00\x00" + b"WAVE" + b"fmt " + b"\x00" * 64


def png_image(width: int = 100, height: int = 80, mode: str = "RGB", fmt: str = "PNG") -> bytes:
    output = BytesIO()
    Image.new(mode, (width, height)).save(output, format=fmt)
    return output.getvalue()


def mock_client(*texts) -> MagicMock:
    client = MagicMock()
    client.models.generate_content.side_effect = [MagicMock(text=text) for text in texts]
    return client


class TestHelpers:
    def test_mime_type_for(self):
        assert mime_type_for(png_image()) == "image/png"

    def test_mime_type_passes_webp_through(self):
        assert mime_type_for(png_image(fmt="WEBP")) == "image/webp"

    def test_mime_type_unknown(self):
        with pytest.raises(CapabilityError):
            mime_type_for(b"plain text")

    def test_parse_direct_json(self):
        payload = parse_gemini_response('{"labels": [{"label": "egg", "confidence": 0.9}]}', LabelsPayload)

        assert payload.labels[0].label == "egg"

    def test_parse_json_wrapped_in_prose(self):
        text = 'Here you go:\n```json\n{"labels": [{"label": "leek", "confidence": 0.5}]}\n```'

        assert parse_gemini_response(text, LabelsPayload).labels[0].label == "leek"

    @pytest.mark.parametrize("text", [None, "", "no json here", '{"labels": [{"label": "x", "confidence": 7}]}'])
    def test_parse_invalid(self, text):
        assert parse_gemini_response(text, LabelsPayload) is None

    def test_small_image_not_compressed(self):
        image = png_image()

        assert compress_image(image) is image

    def test_large_image_compressed(self, monkeypatch):
        monkeypatch.setattr(config, "COMPRESS_IMG_THRESHOLD_KB", 0)
        image = png_image(2048, 1024, "RGBA")

        compressed = compress_image(image)

        result = Image.open(BytesIO(compressed))
        assert result.format == "JPEG"
        assert result.width == 1024

    def test_crop_region(self):
        cropped = crop_region(png_image(100, 80), BoundingBox(x=0.5, y=0.5, width=0.5, height=0.5))

        result = Image.open(BytesIO(cropped))
        assert result.size == (50, 40)

    def test_audio_mime_type(self):
        assert audio_mime_type(WAV_BYTES).startswith("audio/")

    def test_audio_mime_type_rejects_images(self):
        with pytest.raises(CapabilityError, match="Unsupported audio format"):
            audio_mime_type(png_image())


class TestGeminiImageProvider:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", "")

        with pytest.raises(MissingConfiguration):
            GeminiImageProvider()

    @pytest.mark.asyncio
    async def test_recognize_text(self):
        client = mock_client(json.dumps({"lines": ["2 eggs", "milk"]}))
        provider = GeminiImageProvider(model="vision-model", client=client)

        assert await provider.recognize_text(png_image()) == ["2 eggs", "milk"]
        assert client.models.generate_content.call_args.kwargs["model"] == "vision-model"

    @pytest.mark.asyncio
    async def test_classify_whole_photo(self):
        client = mock_client(json.dumps({"labels": [{"label": "tomato", "confidence": 0.8}]}))
        provider = GeminiImageProvider(client=client)

        labels = await provider.classify(png_image())

        assert [(label.label, label.confidence) for label in labels] == [("tomato", 0.8)]

    @pytest.mark.asyncio
    async def test_webp_sent_with_its_own_mime_type(self):
        client = mock_client(json.dumps({"lines": []}))
        provider = GeminiImageProvider(client=client)

        await provider.recognize_text(png_image(fmt="WEBP"))

        part = client.models.generate_content.call_args.kwargs["contents"][1]
        assert part.inline_data.mime_type == "image/webp"

    @pytest.mark.asyncio
    async def test_classify_region_sends_crop(self):
        client = mock_client(json.dumps({"labels": []}))
        provider = GeminiImageProvider(client=client)

        await provider.classify(png_image(100, 80), BoundingBox(x=0.0, y=0.0, width=0.5, height=0.5))

        part = client.models.generate_content.call_args.kwargs["contents"][1]
        assert part.inline_data.mime_type == "image/jpeg"
        assert Image.open(BytesIO(part.inline_data.data)).size == (50, 40)

    @pytest.mark.asyncio
    async def test_detect_salient_regions(self):
        client = mock_client(json.dumps({"regions": [{"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}]}))
        provider = GeminiImageProvider(client=client)

        regions = await provider.detect_salient_regions(png_image())

        assert regions == [BoundingBox(x=0.1, y=0.2, width=0.3, height=0.4)]

    @pytest.mark.asyncio
    async def test_unexpected_response(self):
        provider = GeminiImageProvider(client=mock_client("I cannot help with that."))

        with pytest.raises(CapabilityError, match="unexpected response"):
            await provider.recognize_text(png_image())

    @pytest.mark.asyncio
    async def test_client_error_wrapped(self):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("quota exceeded")
        provider = GeminiImageProvider(client=client)

        with pytest.raises(CapabilityError) as exc_info:
            await provider.classify(png_image())

        assert exc_info.value.capability == "Classification"
        assert exc_info.value.error == "quota exceeded"


class TestGeminiSpeech:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", "")

        with pytest.raises(MissingConfiguration):
            GeminiAudioFileSpeechProvider()

    def test_empty_clip_cannot_activate(self):
        with pytest.raises(CapabilityError):
            AudioClipCapture(b"").activate()

    def test_clip_delivered_in_chunks(self):
        chunks: list[bytes] = []
        capture = AudioClipCapture(b"abcdefghij", chunk_size=4)
        capture.install_tap(chunks.append)
        capture.activate()

        capture.start()

        assert chunks == [b"abcd", b"efgh", b"ij"]
        assert capture.is_running

    @pytest.mark.asyncio
    async def test_clip_transcribed_through_speech_capture(self):
        client = mock_client("  eggs, milk, flour  ")
        provider = GeminiAudioFileSpeechProvider(model="speech-model", client=client, debounce_seconds=0)
        transcripts: list[str] = []
        capture = SpeechCapture(provider, AudioClipCapture(WAV_BYTES, chunk_size=16), transcripts.append)

        await capture.request_authorization()
        assert await capture.start() == SpeechState.RECORDING
        assert await capture.wait_for_transcript(2.0) is True
        capture.stop()

        assert transcripts == ["eggs, milk, flour"]
        part = client.models.generate_content.call_args.kwargs["contents"][1]
        assert part.inline_data.data == WAV_BYTES

    @pytest.mark.asyncio
    async def test_unsupported_clip_moves_to_error(self):
        provider = GeminiAudioFileSpeechProvider(client=mock_client("unused"), debounce_seconds=0)
        capture = SpeechCapture(provider, AudioClipCapture(b"not audio at all"), lambda _: None)

        await capture.request_authorization()
        await capture.start()
        assert await capture.wait_for_transcript(0.2) is False

        assert capture.state == SpeechState.ERROR
        assert "Unsupported audio format" in capture.error
