"""Best-effort execution helpers.

- safe_execute_async / safe_execute_sync run one step that may fail without
  failing its caller (a region classification, a teardown step, an image
  compression), log the failure and hand back a default.
- with_fallback runs a remote stage and resolves every failure of it to a
  local result. The query interpreter and the results summarizer use it.

Failures raised as CapabilityError are logged with the capability as
context, so "Classification" or "Speech recognition" problems can be
filtered in JSON logs.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pantry_chef.utils.errors import CapabilityError, MissingConfiguration
from pantry_chef.utils.logger import logger

T = TypeVar("T")

LOG_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    extra = {"capability": exception.capability} if isinstance(exception, CapabilityError) else None
    logger.log(LOG_LEVELS.get(log_level, logging.WARNING), f"{operation_name}: {exception}", extra=extra)


async def safe_execute_async(
    coro: Awaitable[T],
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
):
    """Await coro; on failure log it under operation_name and return default_return.

    Args:
        coro: Awaitable to run.
        operation_name: Label for the log line (e.g. "Salient region detection").
        log_level: "debug", "info", "warning" or "error".
        default_return: Result used when coro raises.
    """
    try:
        return await coro
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return


def safe_execute_sync(
    func: Callable[[], T],
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
):
    """Synchronous counterpart of safe_execute_async for a zero-argument callable."""
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return


async def with_fallback(
    remote: Callable[[], Awaitable[Optional[T]]],
    fallback: Callable[[], T],
    operation_name: str,
) -> T:
    """Return remote(), or fallback() when the remote stage fails or yields None.

    The remote callable is only invoked here, so an unconfigured endpoint
    (raising MissingConfiguration) costs no I/O and is logged at debug level.

    Args:
        remote: Zero-argument coroutine function performing the remote call.
        fallback: Zero-argument function producing the deterministic result.
        operation_name: Label for the log line.
    """
    try:
        result = await remote()
    except MissingConfiguration as e:
        logger.debug(f"{operation_name}: {e} Using local fallback.")
        return fallback()
    except Exception as e:
        _log_error(f"{operation_name} failed, using local fallback", e, "warning")
        return fallback()

    if result is None:
        logger.debug(f"{operation_name}: empty remote result, using local fallback")
        return fallback()
    return result
