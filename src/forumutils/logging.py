# forumutils/logging.py
"""
Structured logging for the web process and the pipeline workers.

structlog renders every entry: coloured key/value lines when DEBUG is on,
one JSON object per line otherwise. Records from plain ``logging`` loggers
(Django, Celery, kombu and the services that use ``logging.getLogger``)
go through the same processor chain via ``ProcessorFormatter``.

Context sources:
- StructlogMiddleware: request_id, method, path and the user of an API call
- CeleryLogger: task name, id and retry count of a beat task
- forumutils.log_helpers.job_context: queue, attempt and delivery tag of a job

Usage:
    from forumutils.logging import get_logger

    logger = get_logger(__name__)
    logger.info("post_moderated", post_id=12, recommendation="review")
"""

import logging
import logging.config
import uuid
from datetime import datetime, timezone
from pathlib import Path

import structlog
from django.conf import settings
from structlog.types import EventDict, Processor

# Keys printed first in JSON output, in this order
LEADING_KEYS = ("timestamp", "level", "logger", "message", "queue", "attempt", "request_id")

PIPELINE_LOGGERS = ("forum.pipeline", "forum.workers")


def _json_output() -> bool:
    return not getattr(settings, "DEBUG", False)


def _level() -> str:
    level = str(getattr(settings, "LOG_LEVEL", "INFO")).upper()
    return level if level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL") else "INFO"


def _log_dir() -> Path:
    path = Path(getattr(settings, "LOG_DIR", Path(settings.BASE_DIR) / "logs"))
    path.mkdir(parents=True, exist_ok=True)
    return path


# =============================================================================
# PROCESSORS
# =============================================================================


def add_service_fields(logger, name: str, event_dict: EventDict) -> EventDict:
    """Tag entries with the app and the environment."""
    event_dict.setdefault("app", "forum")
    event_dict.setdefault("environment", getattr(settings, "ENVIRONMENT", "unknown"))
    return event_dict


def utc_timestamp(logger, name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def event_to_message(logger, name: str, event_dict: EventDict) -> EventDict:
    event_dict["message"] = event_dict.pop("event", "")
    return event_dict


def drop_traceback_below_error(logger, name: str, event_dict: EventDict) -> EventDict:
    """Retry warnings carry exc_info; only errors keep the traceback in JSON."""
    if event_dict.get("level") not in ("error", "critical"):
        event_dict.pop("exc_info", None)
        event_dict.pop("exception", None)
    return event_dict


def leading_keys_first(logger, name: str, event_dict: EventDict) -> EventDict:
    ordered = {key: event_dict.pop(key) for key in LEADING_KEYS if key in event_dict}
    ordered.update(event_dict)
    return ordered


def shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_service_fields,
        utc_timestamp,
        structlog.processors.StackInfoRenderer(),
    ]


def renderer_chain() -> list[Processor]:
    """Final processors, applied once per record by ProcessorFormatter."""
    if _json_output():
        return [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            drop_traceback_below_error,
            structlog.processors.format_exc_info,
            event_to_message,
            leading_keys_first,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback),
    ]


# =============================================================================
# CONFIGURATION
# =============================================================================


def get_logging_config() -> dict:
    """
    dictConfig for the stdlib side.

    Console output uses the structlog formatter. Files are JSON written by
    python-json-logger: ``forum.log`` for everything, ``pipeline.log`` for
    the queue workers and ``errors.log`` for errors only.
    """
    log_dir = _log_dir()
    level = _level()

    def rotating(filename: str, handler_level: str, backups: int) -> dict:
        return {
            "level": handler_level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_dir / filename,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": backups,
            "formatter": "json_file",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": renderer_chain(),
                "foreign_pre_chain": shared_processors(),
            },
            "json_file": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(threadName)s %(message)s",
            },
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "structlog", "level": level},
            "app_file": rotating("forum.log", "DEBUG", 5),
            "pipeline_file": rotating("pipeline.log", "INFO", 10),
            "error_file": rotating("errors.log", "ERROR", 10),
        },
        "loggers": {
            "django": {"handlers": ["console", "app_file"], "level": level, "propagate": False},
            "django.request": {"handlers": ["console", "error_file"], "level": "WARNING", "propagate": False},
            "celery": {"handlers": ["console", "app_file"], "level": "INFO", "propagate": False},
            "kombu": {"handlers": ["console", "pipeline_file"], "level": "WARNING", "propagate": False},
            "forum": {"handlers": ["console", "app_file", "error_file"], "level": level, "propagate": False},
            **{
                name: {
                    "handlers": ["console", "pipeline_file", "error_file"],
                    "level": "INFO",
                    "propagate": False,
                }
                for name in PIPELINE_LOGGERS
            },
        },
        "root": {"handlers": ["console", "app_file"], "level": level},
    }


def configure_logging() -> None:
    """Install the stdlib handlers and structlog; called from ForumConfig.ready()."""
    logging.config.dictConfig(get_logging_config())
    structlog.configure(
        processors=[
            *shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# =============================================================================
# CONTEXT
# =============================================================================


class StructlogMiddleware:
    """
    Binds request context for the duration of one API request and logs
    its completion.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            request_method=request.method,
            request_path=request.path,
        )
        request.request_id = request_id

        response = self.get_response(request)

        user = getattr(request, "user", None)
        get_logger("forum.request").info(
            "request_completed",
            status_code=response.status_code,
            user_id=getattr(user, "user_id", None) if user and user.is_authenticated else None,
        )
        response["X-Request-ID"] = request_id
        return response


class CeleryLogger:
    """
    Logger for Celery beat tasks, bound to the running task.

    Usage:
        logger = CeleryLogger.get_logger(__name__)
        logger.info("notification_purge_completed", deleted=12)
    """

    @staticmethod
    def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
        from celery import current_task

        logger = get_logger(name)
        if current_task and current_task.request.id:
            return logger.bind(
                task_name=current_task.name,
                task_id=current_task.request.id,
                task_retries=current_task.request.retries,
            )
        return logger


__all__ = [
    "CeleryLogger",
    "StructlogMiddleware",
    "configure_logging",
    "get_logger",
    "get_logging_config",
]
