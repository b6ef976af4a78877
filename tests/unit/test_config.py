"""Unit tests for configuration management."""

import pytest

from pantry_chef.utils.config import (
    DEFAULT_RECIPE_API_URL,
    Config,
    ConfigurationProvider,
    SearchConfig,
    TextGenerationConfig,
    load_search_config,
    load_text_generation_config,
)

TUNING_VARS = [
    "LOG_TYPE",
    "HTTP_TIMEOUT_SECONDS",
    "MAX_IMAGE_SIZE_MB",
    "COMPRESS_IMG",
    "COMPRESS_IMG_THRESHOLD_KB",
    "MIN_CLASSIFICATION_CONFIDENCE",
    "MAX_CLASSIFICATION_LABELS",
    "MAX_SALIENT_REGIONS",
    "IMAGE_DETECTION_MODEL",
    "SPEECH_TRANSCRIPTION_MODEL",
    "SPEECH_LOCALE",
    "SPEECH_PREFER_ON_DEVICE",
]


class TestConfigInitialization:
    """Test Config class initialization and environment variable loading."""

    def test_config_loads_default_values(self, monkeypatch):
        """Test that Config uses default values when env vars not set."""
        for name in TUNING_VARS:
            monkeypatch.delenv(name, raising=False)

        config = Config()

        assert config.LOG_TYPE == "text"
        assert config.HTTP_TIMEOUT_SECONDS == 30.0
        assert config.MAX_IMAGE_SIZE_MB == 5
        assert config.COMPRESS_IMG is True
        assert config.COMPRESS_IMG_THRESHOLD_KB == 300
        assert config.MIN_CLASSIFICATION_CONFIDENCE == 0.18
        assert config.MAX_CLASSIFICATION_LABELS == 8
        assert config.MAX_SALIENT_REGIONS == 4
        assert config.IMAGE_DETECTION_MODEL == "gemini-2.5-flash-lite"
        assert config.SPEECH_TRANSCRIPTION_MODEL == "gemini-2.5-flash-lite"
        assert config.SPEECH_LOCALE == "en-US"
        assert config.SPEECH_PREFER_ON_DEVICE is True

    def test_config_loads_from_environment(self, monkeypatch):
        """Test that Config loads values from environment variables."""
        monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("MAX_IMAGE_SIZE_MB", "10")
        monkeypatch.setenv("MIN_CLASSIFICATION_CONFIDENCE", "0.4")
        monkeypatch.setenv("MAX_CLASSIFICATION_LABELS", "3")
        monkeypatch.setenv("MAX_SALIENT_REGIONS", "0")
        monkeypatch.setenv("IMAGE_DETECTION_MODEL", "vision-model")
        monkeypatch.setenv("SPEECH_LOCALE", "fr-FR")
        monkeypatch.setenv("GEMINI_API_KEY", "test_gemini_key")

        config = Config()

        assert config.HTTP_TIMEOUT_SECONDS == 12.5
        assert config.MAX_IMAGE_SIZE_MB == 10
        assert config.MIN_CLASSIFICATION_CONFIDENCE == 0.4
        assert config.MAX_CLASSIFICATION_LABELS == 3
        assert config.MAX_SALIENT_REGIONS == 0
        assert config.IMAGE_DETECTION_MODEL == "vision-model"
        assert config.SPEECH_LOCALE == "fr-FR"
        assert config.GEMINI_API_KEY == "test_gemini_key"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False)])
    def test_boolean_flags(self, monkeypatch, raw, expected):
        """Test that boolean flags accept the usual spellings."""
        monkeypatch.setenv("COMPRESS_IMG", raw)
        monkeypatch.setenv("SPEECH_PREFER_ON_DEVICE", raw)

        config = Config()

        assert config.COMPRESS_IMG is expected
        assert config.SPEECH_PREFER_ON_DEVICE is expected

    def test_config_converts_numeric_types(self, monkeypatch):
        """Test that Config properly converts numeric environment variables."""
        monkeypatch.setenv("MAX_IMAGE_SIZE_MB", "20")
        monkeypatch.setenv("MIN_CLASSIFICATION_CONFIDENCE", "0.95")

        config = Config()

        assert isinstance(config.MAX_IMAGE_SIZE_MB, int)
        assert isinstance(config.MIN_CLASSIFICATION_CONFIDENCE, float)
        assert isinstance(config.HTTP_TIMEOUT_SECONDS, float)


class TestConfigValidation:
    """Test Config validation logic."""

    def test_validate_succeeds_with_defaults(self, monkeypatch):
        for name in TUNING_VARS:
            monkeypatch.delenv(name, raising=False)

        Config().validate()  # Should not raise

    def test_validate_does_not_require_api_keys(self, monkeypatch):
        """Every remote integration is optional."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GPT_PROXY_URL", raising=False)
        monkeypatch.delenv("RECIPE_API_KEY", raising=False)

        Config().validate()  # Should not raise

    @pytest.mark.parametrize(
        "name,value",
        [
            ("LOG_TYPE", "xml"),
            ("HTTP_TIMEOUT_SECONDS", "0"),
            ("MAX_IMAGE_SIZE_MB", "0"),
            ("MIN_CLASSIFICATION_CONFIDENCE", "1.5"),
            ("MIN_CLASSIFICATION_CONFIDENCE", "-0.1"),
            ("MAX_CLASSIFICATION_LABELS", "0"),
            ("MAX_SALIENT_REGIONS", "-1"),
        ],
    )
    def test_validate_rejects_out_of_range_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        config = Config()
        with pytest.raises(ValueError, match=name):
            config.validate()


class TestEndpointConfig:
    """Test resolution of the remote endpoint settings."""

    def test_text_generation_absent_without_url(self, monkeypatch):
        monkeypatch.delenv("GPT_PROXY_URL", raising=False)

        assert load_text_generation_config() is None

    def test_text_generation_absent_with_invalid_url(self, monkeypatch):
        monkeypatch.setenv("GPT_PROXY_URL", "not a url")

        assert load_text_generation_config() is None

    def test_text_generation_with_token(self, monkeypatch):
        monkeypatch.setenv("GPT_PROXY_URL", "https://proxy.example.com/chat")
        monkeypatch.setenv("GPT_PROXY_TOKEN", "secret")

        assert load_text_generation_config() == TextGenerationConfig(
            proxy_url="https://proxy.example.com/chat", api_token="secret"
        )

    def test_text_generation_blank_token_is_absent(self, monkeypatch):
        monkeypatch.setenv("GPT_PROXY_URL", "https://proxy.example.com/chat")
        monkeypatch.setenv("GPT_PROXY_TOKEN", "   ")

        settings = load_text_generation_config()

        assert settings is not None
        assert settings.api_token is None

    def test_search_absent_without_key(self, monkeypatch):
        monkeypatch.delenv("RECIPE_API_KEY", raising=False)

        assert load_search_config() is None

    def test_search_uses_default_url(self, monkeypatch):
        monkeypatch.setenv("RECIPE_API_KEY", "key")
        monkeypatch.delenv("RECIPE_API_URL", raising=False)

        assert load_search_config() == SearchConfig(api_key="key", base_url=DEFAULT_RECIPE_API_URL)

    def test_search_url_override(self, monkeypatch):
        monkeypatch.setenv("RECIPE_API_KEY", "key")
        monkeypatch.setenv("RECIPE_API_URL", "http://localhost:9000/search")

        assert load_search_config().base_url == "http://localhost:9000/search"


class TestConfigurationProvider:
    """Test the injectable endpoint provider."""

    def test_static_provider_ignores_environment(self, monkeypatch):
        monkeypatch.setenv("GPT_PROXY_URL", "https://proxy.example.com")
        monkeypatch.setenv("RECIPE_API_KEY", "key")

        provider = ConfigurationProvider.static()

        assert provider.load_text_generation_config() is None
        assert provider.load_search_config() is None

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.delenv("GPT_PROXY_URL", raising=False)
        settings = TextGenerationConfig(proxy_url="https://proxy.test")

        provider = ConfigurationProvider(text_generation=settings)

        assert provider.load_text_generation_config() is settings

    def test_environment_read_on_every_call(self, monkeypatch):
        provider = ConfigurationProvider()
        monkeypatch.delenv("RECIPE_API_KEY", raising=False)
        assert provider.load_search_config() is None

        monkeypatch.setenv("RECIPE_API_KEY", "late-key")
        assert provider.load_search_config().api_key == "late-key"
