"""System checks for the pipeline settings (run by ``manage.py check``)."""

from django.conf import settings
from django.core.checks import Error, Tags, Warning, register

from forum.pipeline.queues import DEFAULT_CONCURRENCY


@register(Tags.security)
def check_webhook_secret(app_configs=None, **kwargs):
    if getattr(settings, "WEBHOOK_SECRET", ""):
        return []
    return [
        Warning(
            "WEBHOOK_SECRET is empty; inbound webhooks cannot be verified.",
            hint="Set a WEBHOOK_SECRET environment variable.",
            obj="settings",
            id="forum.W001",
        )
    ]


@register()
def check_pipeline_settings(app_configs=None, **kwargs):
    errors = []

    concurrency = getattr(settings, "PIPELINE_QUEUE_CONCURRENCY", {})
    for name, value in concurrency.items():
        if name not in DEFAULT_CONCURRENCY:
            errors.append(
                Error(
                    f"Unknown pipeline queue {name!r} in PIPELINE_QUEUE_CONCURRENCY.",
                    hint=f"Known queues: {', '.join(DEFAULT_CONCURRENCY)}.",
                    obj="settings",
                    id="forum.E001",
                )
            )
        elif not isinstance(value, int) or value < 1:
            errors.append(
                Error(
                    f"Concurrency for {name!r} must be a positive integer.",
                    obj="settings",
                    id="forum.E002",
                )
            )

    if getattr(settings, "PIPELINE_MAX_ATTEMPTS", 3) < 1:
        errors.append(
            Error(
                "PIPELINE_MAX_ATTEMPTS must be at least 1.",
                obj="settings",
                id="forum.E003",
            )
        )

    if getattr(settings, "ENVIRONMENT", "") == "production" and settings.DEBUG:
        errors.append(
            Warning(
                "DEBUG is enabled in production.",
                hint="Set DEBUG=False in production.",
                obj="settings",
                id="forum.W002",
            )
        )

    return errors
