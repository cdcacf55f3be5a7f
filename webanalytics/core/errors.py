# ==============================================================================
# Domain Errors
# ==============================================================================
"""
Exception taxonomy shared by the core, the stores and the services.

- ValidationError: malformed goal conditions or event fields
- NotFoundError: unknown goal or website
- StorageConflict: uniqueness constraint hit (duplicate conversion)
- TransientStoreError: connectivity problems and timeouts
- MatcherError: a goal condition could not be evaluated (e.g. bad regex)
"""


class AnalyticsError(Exception):
    """Base class for all webanalytics errors."""


class ValidationError(AnalyticsError):
    """Input rejected before it reached matching or persistence."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        if not self.errors:
            return self.args[0]
        return f"{self.args[0]}: {'; '.join(self.errors)}"

    @classmethod
    def from_pydantic(cls, exc, message: str = "Validation failed") -> "ValidationError":
        """Build from a pydantic ValidationError, one entry per failing field."""
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
            for err in exc.errors()
        ]
        return cls(message, errors)


class NotFoundError(AnalyticsError):
    """Referenced goal or website does not exist (or is not accessible)."""


class StorageConflict(AnalyticsError):
    """Insert rejected by a uniqueness constraint."""


class TransientStoreError(AnalyticsError):
    """Store unreachable or timed out."""


class MatcherError(AnalyticsError):
    """A goal condition could not be evaluated."""
