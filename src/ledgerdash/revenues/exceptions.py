"""
Revenue aggregation exceptions.

A missing aggregate row for a period is a normal branch and never raises;
these exceptions cover malformed input and persistence failures.
"""

from typing import Any


class RevenueError(Exception):
    """
    Base revenue error with context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "REVENUE_ERROR"
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured logs and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class RevenueValidationError(RevenueError):
    """Malformed period, template or aggregate values."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            "REVENUE_VALIDATION_ERROR",
            context=context,
            recovery_hint="Check the invoice date and the aggregate values being written",
        )


class RevenueStoreError(RevenueError):
    """The aggregate store failed to read or write a row."""

    def __init__(
        self,
        message: str,
        operation: str,
        period: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        context: dict[str, Any] = {"operation": operation}
        if period:
            context["period"] = period
        if cause is not None:
            context["cause"] = str(cause)
        super().__init__(
            message,
            "REVENUE_STORE_ERROR",
            context=context,
            recovery_hint="Run a full recalculation for the affected period once the store recovers",
        )


class RevenueNotFoundError(RevenueError):
    """An aggregate row addressed by id does not exist."""

    def __init__(self, message: str, revenue_id: str | None = None) -> None:
        context = {"revenue_id": revenue_id} if revenue_id else {}
        super().__init__(
            message,
            "REVENUE_NOT_FOUND",
            context=context,
            recovery_hint="Look the row up by period; it may have been deleted when its count reached zero",
        )
