"""
Fire-and-forget background work, detached from the request/response cycle.

Work submitted here outlives the request that scheduled it. There is no
cancellation and no retry; exceptions are logged by a done-callback.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from app.core.settings import settings
from typing import Callable
import logging

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(
    max_workers=settings.BACKGROUND_WORKERS,
    thread_name_prefix="background"
)


def _log_failure(name: str, future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error(f"⚠️ Background task {name} failed: {exc}", exc_info=exc)


def run_in_background(fn: Callable, *args, **kwargs) -> Future:
    """Schedule fn(*args, **kwargs) on the background pool and return its future."""
    name = getattr(fn, "__name__", repr(fn))
    future = _executor.submit(fn, *args, **kwargs)
    future.add_done_callback(lambda f: _log_failure(name, f))
    return future


def shutdown(wait: bool = False) -> None:
    """Stop accepting work. In-flight tasks are not interrupted."""
    _executor.shutdown(wait=wait)
