# forum/apps.py
"""
Django app configuration for the forum application.

Configures structured logging on startup and owns the pipeline runtime
used by the web process.
"""

import threading

from django.apps import AppConfig, apps


class ForumConfig(AppConfig):
    """Configuration for the forum Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "forum"
    verbose_name = "Forum"

    _runtime = None
    _runtime_lock = threading.Lock()

    def ready(self) -> None:
        from forum import checks  # noqa: F401

        self._configure_structured_logging()

    def _configure_structured_logging(self) -> None:
        from django.conf import settings

        if getattr(settings, "USE_STRUCTURED_LOGGING", True):
            from forumutils.logging import configure_logging

            configure_logging()

    def get_runtime(self):
        """
        Pipeline runtime for request handlers, started on first use.

        Workers build their own runtime in run_pipeline_workers.
        """
        if self._runtime is None:
            with self._runtime_lock:
                if self._runtime is None:
                    from forum.pipeline.runtime import PipelineRuntime

                    runtime = PipelineRuntime.from_settings()
                    runtime.start()
                    self._runtime = runtime
        return self._runtime

    def set_runtime(self, runtime) -> None:
        """Replace the web runtime (stopping the current one)."""
        with self._runtime_lock:
            if self._runtime is not None and self._runtime is not runtime:
                self._runtime.stop()
            self._runtime = runtime


def get_runtime():
    return apps.get_app_config("forum").get_runtime()
