"""Unit tests for the best-effort execution helpers."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from pantry_chef.utils.errors import CapabilityError, MissingConfiguration, RequestFailed
from pantry_chef.utils.fallback import safe_execute_async, safe_execute_sync, with_fallback


class TestSafeExecute:
    def test_sync_success(self):
        assert safe_execute_sync(lambda: 42, "answer") == 42

    def test_sync_failure_returns_default(self):
        def boom():
            raise ValueError("bad")

        assert safe_execute_sync(boom, "boom", default_return="fallback") == "fallback"

    def test_capability_failure_logged_with_context(self, caplog):
        def classify():
            raise CapabilityError("Classification", "quota exceeded")

        with caplog.at_level(logging.WARNING, logger="pantry_chef"):
            assert safe_execute_sync(classify, "Classify region 2") is None

        record = caplog.records[-1]
        assert record.getMessage() == "Classify region 2: Classification failed: quota exceeded"
        assert record.capability == "Classification"

    def test_log_level_respected(self, caplog):
        def boom():
            raise ValueError("bad")

        with caplog.at_level(logging.DEBUG, logger="pantry_chef"):
            safe_execute_sync(boom, "Direct JSON parse", log_level="debug")

        assert caplog.records[-1].levelno == logging.DEBUG
        assert not hasattr(caplog.records[-1], "capability")

    @pytest.mark.asyncio
    async def test_async_failure_returns_default(self):
        async def boom():
            raise RuntimeError("down")

        assert await safe_execute_async(boom(), "boom", log_level="debug", default_return=[]) == []

    @pytest.mark.asyncio
    async def test_async_success(self):
        async def ok():
            return "ok"

        assert await safe_execute_async(ok(), "ok") == "ok"


class TestWithFallback:
    @pytest.mark.asyncio
    async def test_remote_result_wins(self):
        fallback = MagicMock(return_value="local")

        assert await with_fallback(AsyncMock(return_value="remote"), fallback, "op") == "remote"
        fallback.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "remote",
        [
            AsyncMock(side_effect=MissingConfiguration("GPT_PROXY_URL")),
            AsyncMock(side_effect=RequestFailed(500)),
            AsyncMock(return_value=None),
        ],
    )
    async def test_fallback_used(self, remote):
        assert await with_fallback(remote, lambda: "local", "op") == "local"
