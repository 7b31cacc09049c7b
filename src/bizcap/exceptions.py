"""Bizcap exception hierarchy.

All exceptions inherit from BizcapError and carry a three-part structure:
message (what happened), detail (technical context), suggestion (what to do next).
"""


class BizcapError(Exception):
    """Base exception for all Bizcap errors."""

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.detail:
            parts.append(f"Detail: {self.detail}")
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " | ".join(parts)


class StorageUnavailableError(BizcapError):
    """Raised when the relational store cannot be reached or a query fails."""

    def __init__(
        self,
        message: str = "Storage is unavailable",
        detail: str | None = None,
        suggestion: str | None = "Check database connectivity and retry the operation",
    ) -> None:
        super().__init__(message, detail, suggestion)


class ValidationError(BizcapError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str = "Validation error",
        detail: str | None = None,
        suggestion: str | None = "Check input format and required fields",
    ) -> None:
        super().__init__(message, detail, suggestion)

