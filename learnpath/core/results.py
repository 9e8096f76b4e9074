"""Tagged success/failure result returned by public operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from learnpath.core.exceptions import ProgressionError


T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a progression operation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is
    meaningful. ``value`` may legitimately be ``None`` for operations that
    only mutate state.
    """

    success: bool
    value: T | None = None
    error: ProgressionError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Outcome[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: ProgressionError) -> "Outcome[T]":
        return cls(success=False, error=error)

    @property
    def code(self) -> str | None:
        """Error code of a failed outcome (``None`` on success)."""
        return self.error.code if self.error else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    def unwrap(self) -> T:
        """Return the value, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
