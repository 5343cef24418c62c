from __future__ import annotations


class KidsMenuError(Exception):
    """Base class for domain errors."""


class MigrationError(KidsMenuError):
    """Legacy import failed; the surrounding transaction has been rolled back."""

    def __init__(self, message: str, *, table: str | None = None, expected: int | None = None, actual: int | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.expected = expected
        self.actual = actual

    @classmethod
    def count_mismatch(cls, table: str, expected: int, actual: int) -> "MigrationError":
        return cls(
            f"Row count mismatch in {table}: expected {expected}, found {actual}",
            table=table,
            expected=expected,
            actual=actual,
        )


class TokenGenerationError(KidsMenuError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"Failed to generate a unique token after {attempts} attempts")
        self.attempts = attempts


class MealCreationError(KidsMenuError):
    pass


class SharedMenuNotFoundError(KidsMenuError):
    pass
