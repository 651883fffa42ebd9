from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..intent.models import IntentVector, QuestionAnswer


class ItemKind(str, Enum):
    food = "food"
    drink = "drink"


class MenuItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    category: str = ""
    kind: ItemKind = ItemKind.food
    tags: frozenset[str] = frozenset()
    popularity: float = Field(default=0.0, ge=0.0)
    push: bool = False
    unavailable: bool = False
    out_of_stock: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        # Catalog rows may carry tags as "mood_comfort,flavor_umami".
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set, frozenset)):
            return [
                t.strip().lower() if isinstance(t, str) else t
                for t in value
                if not (isinstance(t, str) and not t.strip())
            ]
        return value

    @property
    def is_orderable(self) -> bool:
        return not (self.unavailable or self.out_of_stock)


@dataclass(frozen=True)
class ScoredItem:
    item: MenuItem
    position: int
    score: float = 0.0
    excluded: bool = False
    matched: tuple[tuple[str, str], ...] = ()
    reason: str | None = None

    @property
    def matched_axes(self) -> dict[str, str]:
        return dict(self.matched)


class RecommendationStatus(str, Enum):
    ok = "ok"
    empty_catalog = "empty_catalog"
    all_excluded = "all_excluded"


@dataclass
class RecommendationResult:
    picks: list[ScoredItem]
    upsell: ScoredItem | None
    status: RecommendationStatus
    intent: IntentVector
    variant: str | None = None
    response_time_ms: float = 0.0
    skipped_items: list[str] = field(default_factory=list)


# ── API models ──────────────────────────────────────────────────────────


class RecommendationRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    answers: list[QuestionAnswer] = Field(default_factory=list)


class RecommendationItem(BaseModel):
    id: str
    name: str
    price: float
    reason: str
    tags: list[str]
    score: float


class UpsellItem(BaseModel):
    id: str
    name: str
    price: float
    reason: str


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem]
    upsell: UpsellItem | None = None
    status: RecommendationStatus
    variant: str | None = None
    needs_confirmation: bool = False
    unresolved_constraints: list[str] = Field(default_factory=list)


class FeedbackRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    item_id: str = Field(..., min_length=1)
    is_positive: bool
    variant: str | None = None


class FeedbackResponse(BaseModel):
    status: str
    total_feedback: int


class ClickRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    item_id: str = Field(..., min_length=1)
    rank: int | None = Field(default=None, ge=0)
