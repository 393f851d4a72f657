"""
Fire-and-forget jobs for non-critical side effects (welcome emails, invoice emails).

A detached job never raises to whoever scheduled it: failures go to the log as
"background_job_failed" and are not retried.
"""
import functools
import threading
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


def detached(name: str, func: Callable) -> Callable:
    """Wrap func so any exception is logged under `name` and swallowed."""

    @functools.wraps(func)
    def _run(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.warning("background_job_failed", job=name, error=str(e))
            return None
        logger.info("background_job_done", job=name)
        return result

    return _run


def run_detached(name: str, func: Callable, *args, **kwargs) -> threading.Thread:
    """Start a detached job on a daemon thread; returns the thread for callers that want to join."""
    thread = threading.Thread(
        target=detached(name, func),
        args=args,
        kwargs=kwargs,
        daemon=True,
        name=f"job-{name}",
    )
    thread.start()
    return thread
