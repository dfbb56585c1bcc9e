# forum/pipeline/errors.py
"""
Error taxonomy for the queue pipeline.

- MalformedJobError: the payload can never be processed; dead-lettered at once
- ScoringError: the content scorer failed; transient, goes through broker retry
- SideEffectError / SideEffectResult: best-effort work after the primary
  write failed; logged and audited but never fails the job

Any other exception escaping a handler is treated as transient
infrastructure failure (database, cache, broker) and retried by the consumer.
"""

from dataclasses import dataclass


class PipelineError(Exception):
    """Base class for pipeline errors."""


class MalformedJobError(PipelineError):
    """Raised when a job payload is missing fields or has the wrong shape."""


class ScoringError(PipelineError):
    """Raised when the moderation or summary scorer cannot produce a result."""


class SideEffectError(PipelineError):
    """A best-effort side effect failed after the primary write succeeded."""

    def __init__(self, side_effect: str, message: str):
        self.side_effect = side_effect
        self.message = message
        super().__init__(f"{side_effect}: {message}")


@dataclass(frozen=True)
class SideEffectResult:
    """Outcome of one best-effort side effect."""

    side_effect: str
    ok: bool
    error: SideEffectError | None = None

    @classmethod
    def success(cls, side_effect: str) -> "SideEffectResult":
        return cls(side_effect=side_effect, ok=True)

    @classmethod
    def failure(cls, side_effect: str, exc: Exception) -> "SideEffectResult":
        return cls(
            side_effect=side_effect,
            ok=False,
            error=SideEffectError(side_effect, str(exc) or type(exc).__name__),
        )
