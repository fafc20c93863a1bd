"""Reconciler Exceptions."""

from typing import Any

# Codes PostgREST (PGRST*) or Postgres (SQLSTATE) return when the queried
# column, table or embedded relationship does not exist.
ABSENCE_CODES = frozenset(
    {
        "42703",  # undefined_column
        "42P01",  # undefined_table
        "PGRST200",  # relationship not found in schema cache
        "PGRST204",  # column not found in schema cache
        "PGRST205",  # table not found in schema cache
    }
)


class ReconcilerError(Exception):
    """Base class for all reconciler errors."""


class TransportError(ReconcilerError):
    """
    Raised when the remote store cannot be reached or trusted.

    Covers network failures, timeouts, authentication rejections and any
    response a probe cannot interpret. Always fatal for the current run.
    """


class StoreError(ReconcilerError):
    """Raised when the store answers a request with a non-success status."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        details: Any = None,
        hint: str | None = None,
    ):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        super().__init__(str(self))

    def __str__(self) -> str:
        code = f" {self.code}" if self.code else ""
        return f"HTTP {self.status_code}{code}: {self.message}"

    @property
    def is_absence(self) -> bool:
        """True when the error means the probed column/table/relation is missing."""
        if self.code in ABSENCE_CODES:
            return True
        return self.status_code == 404 and not self.code


class UnknownTargetError(ReconcilerError):
    """Raised when a target name (selected or declared as dependency) is not in the catalog."""


class DependencyCycleError(ReconcilerError):
    """Raised when target dependencies form a cycle."""
