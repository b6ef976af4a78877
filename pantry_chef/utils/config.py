"""Configuration management for Pantry Chef.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults

Two layers live here:
- Config: application settings (logging, timeouts, vision/speech tuning),
  resolved once at import and validated immediately.
- ConfigurationProvider: remote endpoint settings (text-generation proxy and
  recipe search API), resolved at call time so a missing endpoint is a normal
  value (None) rather than an error.
"""

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


DEFAULT_RECIPE_API_URL = "https://api.spoonacular.com/recipes/complexSearch"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _is_http_url(value: Optional[str]) -> bool:
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Logging: LOG_LEVEL is read by the logger directly, LOG_TYPE selects "text" or "json"
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_TYPE: str = os.getenv("LOG_TYPE", "text").lower()
        # Total timeout (seconds) for a single call to the proxy or the search API
        self.HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
        # Gemini API key: only required when the Gemini-backed capability providers are used
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Image Detection Model: vision model used for OCR, classification and salient regions
        # Default: gemini-2.5-flash-lite (fast, cost-effective for images)
        self.IMAGE_DETECTION_MODEL: str = os.getenv("IMAGE_DETECTION_MODEL", "gemini-2.5-flash-lite")
        # Speech Transcription Model: model used to transcribe recorded audio clips
        self.SPEECH_TRANSCRIPTION_MODEL: str = os.getenv("SPEECH_TRANSCRIPTION_MODEL", "gemini-2.5-flash-lite")
        # Maximum image size (in MB) that can be processed. Default: 5 MB
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Image Compression: Enable/disable image compression before sending to the vision model
        self.COMPRESS_IMG: bool = _env_flag("COMPRESS_IMG", "true")
        # Image Compression Threshold: Only compress if image size is above this (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))
        # Minimum confidence (0.0 - 1.0) for a classification label to be suggested. Default: 0.18
        self.MIN_CLASSIFICATION_CONFIDENCE: float = float(os.getenv("MIN_CLASSIFICATION_CONFIDENCE", "0.18"))
        # Maximum labels kept per classification call (whole photo or one region). Default: 8
        self.MAX_CLASSIFICATION_LABELS: int = int(os.getenv("MAX_CLASSIFICATION_LABELS", "8"))
        # Maximum salient regions classified in addition to the whole photo. Default: 4
        self.MAX_SALIENT_REGIONS: int = int(os.getenv("MAX_SALIENT_REGIONS", "4"))
        # Speech settings passed to the transcription provider
        self.SPEECH_LOCALE: str = os.getenv("SPEECH_LOCALE", "en-US")
        self.SPEECH_PREFER_ON_DEVICE: bool = _env_flag("SPEECH_PREFER_ON_DEVICE", "true")

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any value is out of its allowed range.
        """
        if self.LOG_TYPE not in ("text", "json"):
            raise ValueError(f"LOG_TYPE must be 'text' or 'json', got: {self.LOG_TYPE}")
        if self.HTTP_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"HTTP_TIMEOUT_SECONDS must be positive, got: {self.HTTP_TIMEOUT_SECONDS}"
            )
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError(f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}")
        if not (0.0 <= self.MIN_CLASSIFICATION_CONFIDENCE <= 1.0):
            raise ValueError(
                "MIN_CLASSIFICATION_CONFIDENCE must be between 0.0 and 1.0, "
                f"got: {self.MIN_CLASSIFICATION_CONFIDENCE}"
            )
        if self.MAX_CLASSIFICATION_LABELS < 1:
            raise ValueError(
                f"MAX_CLASSIFICATION_LABELS must be at least 1, got: {self.MAX_CLASSIFICATION_LABELS}"
            )
        if self.MAX_SALIENT_REGIONS < 0:
            raise ValueError(f"MAX_SALIENT_REGIONS must be 0 or more, got: {self.MAX_SALIENT_REGIONS}")


@dataclass(frozen=True)
class TextGenerationConfig:
    """Endpoint settings for the text-generation proxy."""

    proxy_url: str
    api_token: Optional[str] = None


@dataclass(frozen=True)
class SearchConfig:
    """Endpoint settings for the third-party recipe search API."""

    api_key: str
    base_url: str = DEFAULT_RECIPE_API_URL


def load_text_generation_config() -> Optional[TextGenerationConfig]:
    """Resolve the text-generation proxy settings from the environment.

    Returns:
        TextGenerationConfig when GPT_PROXY_URL holds an http(s) URL, None otherwise.
        GPT_PROXY_TOKEN is optional; an empty token is treated as absent.
    """
    proxy_url = os.getenv("GPT_PROXY_URL", "").strip()
    if not _is_http_url(proxy_url):
        return None
    token = os.getenv("GPT_PROXY_TOKEN", "").strip() or None
    return TextGenerationConfig(proxy_url=proxy_url, api_token=token)


def load_search_config() -> Optional[SearchConfig]:
    """Resolve the recipe search API settings from the environment.

    Returns:
        SearchConfig when RECIPE_API_KEY is set, None otherwise. RECIPE_API_URL
        overrides the default Spoonacular endpoint when it holds a valid URL.
    """
    api_key = os.getenv("RECIPE_API_KEY", "").strip()
    if not api_key:
        return None
    base_url = os.getenv("RECIPE_API_URL", "").strip()
    if _is_http_url(base_url):
        return SearchConfig(api_key=api_key, base_url=base_url)
    return SearchConfig(api_key=api_key)


class ConfigurationProvider:
    """Injectable source of remote endpoint settings.

    The default implementation reads the environment on every call. Tests pass
    explicit configs instead.
    """

    def __init__(
        self,
        text_generation: Optional[TextGenerationConfig] = None,
        search: Optional[SearchConfig] = None,
        use_environment: bool = True,
    ) -> None:
        self._text_generation = text_generation
        self._search = search
        self._use_environment = use_environment

    @classmethod
    def static(
        cls,
        text_generation: Optional[TextGenerationConfig] = None,
        search: Optional[SearchConfig] = None,
    ) -> "ConfigurationProvider":
        """Build a provider that never consults the environment."""
        return cls(text_generation=text_generation, search=search, use_environment=False)

    def load_text_generation_config(self) -> Optional[TextGenerationConfig]:
        if self._text_generation is not None or not self._use_environment:
            return self._text_generation
        return load_text_generation_config()

    def load_search_config(self) -> Optional[SearchConfig]:
        if self._search is not None or not self._use_environment:
            return self._search
        return load_search_config()


# Create module-level config instance and validate immediately
config = Config()
config.validate()
