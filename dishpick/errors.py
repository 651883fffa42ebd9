from __future__ import annotations


class DishpickError(Exception):
    """Base exception for the recommendation engine."""


class IntentValidationError(DishpickError):
    """Raised when guest answers are malformed and cannot be folded into an intent."""

    def __init__(self, message: str, question: str | None = None) -> None:
        super().__init__(message)
        self.question = question


class CatalogUnavailable(DishpickError):
    """Raised when the venue catalog cannot be fetched or holds no items."""


class ItemScoringAnomaly(DishpickError):
    """Raised for a single catalog item whose data cannot be scored."""

    def __init__(self, item_id: str, message: str) -> None:
        super().__init__(f"item {item_id!r}: {message}")
        self.item_id = item_id


class PersistenceFailure(DishpickError):
    """Raised when the session/event write fails."""
