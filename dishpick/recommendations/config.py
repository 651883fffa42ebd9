from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    if raw.lower() in ("none", "off"):
        return None
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineConfig:
    # Ranking
    top_k: int = _env_int("DISHPICK_TOP_K", 3)
    diversity_max_per_category: int | None = _env_int("DISHPICK_DIVERSITY_MAX", None)

    # Food scoring
    popularity_weight: float = _env_float("DISHPICK_POPULARITY_WEIGHT", 0.01)
    axis_bonus: float = _env_float("DISHPICK_AXIS_BONUS", 3.0)
    axis_bonus_overrides: dict[str, float] = field(
        default_factory=lambda: {"mood": 5.0, "portion": 4.0, "price": 2.0}
    )
    push_bonus: float = _env_float("DISHPICK_PUSH_BONUS", 2.0)

    # Drink pairing
    upsell_popularity_weight: float = 0.1
    upsell_intent_bonus: float = 10.0
    upsell_flavor_bonus: float = 5.0
    upsell_push_bonus: float = 5.0

    # Collaborators
    catalog_timeout: float = _env_float("DISHPICK_CATALOG_TIMEOUT", 2.0)
    persistence_timeout: float = _env_float("DISHPICK_PERSISTENCE_TIMEOUT", 2.0)

    debug: bool = _env_bool("DISHPICK_DEBUG", False)

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {self.top_k}")
        if self.diversity_max_per_category is not None and self.diversity_max_per_category < 1:
            raise ValueError(
                f"diversity_max_per_category must be at least 1 or None, "
                f"got {self.diversity_max_per_category}"
            )
        weights = {
            "popularity_weight": self.popularity_weight,
            "axis_bonus": self.axis_bonus,
            "push_bonus": self.push_bonus,
            "upsell_popularity_weight": self.upsell_popularity_weight,
            "upsell_intent_bonus": self.upsell_intent_bonus,
            "upsell_flavor_bonus": self.upsell_flavor_bonus,
            "upsell_push_bonus": self.upsell_push_bonus,
            **{f"axis_bonus_overrides[{k!r}]": v for k, v in self.axis_bonus_overrides.items()},
        }
        for name, value in weights.items():
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")
        for name in ("catalog_timeout", "persistence_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    def bonus_for(self, axis: str) -> float:
        return self.axis_bonus_overrides.get(axis, self.axis_bonus)


@dataclass(frozen=True)
class RateLimitConfig:
    limit: int = _env_int("DISHPICK_RATE_LIMIT", 10)
    window_seconds: float = _env_float("DISHPICK_RATE_WINDOW", 60.0)

    def __post_init__(self) -> None:
        if self.limit is None or self.limit < 1:
            raise ValueError(f"limit must be at least 1, got {self.limit}")
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")


DEFAULT_ENGINE_CONFIG = EngineConfig()
DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig()
