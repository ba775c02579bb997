"""
Domain error taxonomy.

Services raise these; the FastAPI exception handlers in kavach.main turn
them into HTTP responses. Each error carries a small context dict
(report_id, zone_id, ...) that callers may enrich before re-raising.
"""

from typing import Any, Dict, Optional


class KavachError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def with_context(self, **context: Any) -> "KavachError":
        """Add context keys without overwriting ones already set closer to the failure."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "context": self.context}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class InvalidInput(KavachError, ValueError):
    """Caller supplied data the engine cannot act on (missing geometry, bad transition)."""

    status_code = 400


class NotFound(KavachError, LookupError):
    """Referenced report or zone does not exist."""

    status_code = 404


class StoreFailure(KavachError):
    """Underlying persistence operation failed."""

    status_code = 500


class ConcurrencyConflict(StoreFailure):
    """Optimistic write collision on a zone row."""

    status_code = 409
