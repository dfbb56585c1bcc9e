# forumutils/log_helpers.py
"""
Helper functions for common logging scenarios in the forum pipeline.

Usage:
    from forumutils.log_helpers import job_context, log_job_outcome

    with job_context(queue="moderation", attempt=2, message_id="..."):
        ...
        log_job_outcome("moderation", "ack", duration=0.21)
"""

import time
from collections.abc import Callable
from contextlib import contextmanager
from functools import wraps
from typing import Any

from structlog.contextvars import bind_contextvars, unbind_contextvars

from .logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# JOB CONTEXT
# =============================================================================


@contextmanager
def job_context(**context: Any):
    """
    Bind job fields (queue, attempt, message_id, ...) to every log entry
    written while the job is being handled.
    """
    bind_contextvars(**context)
    try:
        yield
    finally:
        unbind_contextvars(*context.keys())


def log_job_outcome(
    queue: str,
    outcome: str,
    attempt: int | None = None,
    duration: float | None = None,
    error: Exception | None = None,
    **extra_context: Any,
) -> None:
    """
    Log how a queue job ended (ack, retry or dead_letter).

    Example:
        log_job_outcome("webhooks", "retry", attempt=2, error=exc)
    """
    context = {
        "queue": queue,
        "job_outcome": outcome,
    }

    if attempt is not None:
        context["attempt"] = attempt

    if duration is not None:
        context["duration_seconds"] = round(duration, 4)

    if error:
        context["exception_type"] = type(error).__name__
        context["exception_message"] = str(error)

    context.update(extra_context)

    if outcome == "dead_letter":
        logger.error("job_finished", **context)
    elif outcome == "retry":
        logger.warning("job_finished", **context)
    else:
        logger.info("job_finished", **context)


# =============================================================================
# WEBHOOK LOGGING
# =============================================================================


def log_webhook_delivery(
    event: str,
    url: str,
    success: bool,
    attempts: int,
    status_code: int | None = None,
    error: str | None = None,
) -> None:
    """Log the final outcome of one outbound webhook delivery."""
    context = {
        "webhook_event": event,
        "webhook_url": url,
        "webhook_success": success,
        "attempts": attempts,
    }
    if status_code is not None:
        context["status_code"] = status_code
    if error:
        context["failure_reason"] = error

    if success:
        logger.info("webhook_delivered", **context)
    else:
        logger.warning("webhook_delivery_failed", **context)


# =============================================================================
# DECORATORS
# =============================================================================


def log_api_view(func: Callable) -> Callable:
    """
    Decorator for API view methods to log requests with timing.

    Example:
        class ThreadSummaryAPI(APIView):
            @log_api_view
            def get(self, request, thread_id):
                ...
    """

    @wraps(func)
    def wrapper(self, request, *args, **kwargs):
        view_logger = get_logger(f"{func.__module__}.{self.__class__.__name__}")
        start_time = time.time()

        view_logger.info(
            "api_view_started",
            view_method=func.__name__.upper(),
            request_path=request.path,
        )

        try:
            response = func(self, request, *args, **kwargs)
        except Exception as e:
            view_logger.error(
                "api_view_failed",
                view_method=func.__name__.upper(),
                exception_type=type(e).__name__,
                exception_message=str(e),
                duration_seconds=round(time.time() - start_time, 4),
                exc_info=True,
            )
            raise

        view_logger.info(
            "api_view_completed",
            view_method=func.__name__.upper(),
            status_code=response.status_code,
            duration_seconds=round(time.time() - start_time, 4),
        )
        return response

    return wrapper


# =============================================================================
# ERROR TRACKING
# =============================================================================


def log_exception(
    exception: Exception,
    context: dict[str, Any] | None = None,
    level: str = "error",
    logger_name: str | None = None,
) -> None:
    """
    Log an exception with full context.

    Example:
        try:
            channel.to_user(user_id, "notification:new", data)
        except Exception as e:
            log_exception(e, context={"user_id": user_id}, level="warning")
    """
    exc_logger = get_logger(logger_name or __name__)

    log_context = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
    }
    if context:
        log_context.update(context)

    getattr(exc_logger, level)("exception", **log_context, exc_info=True)


__all__ = [
    "job_context",
    "log_api_view",
    "log_exception",
    "log_job_outcome",
    "log_webhook_delivery",
]
