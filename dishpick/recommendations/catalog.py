from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import TimeoutError as FuturesTimeout
from pathlib import Path
from typing import Any, Protocol

import pandas as pd
from pydantic import ValidationError

from ..concurrency import run_with_timeout
from ..errors import CatalogUnavailable, ItemScoringAnomaly
from .models import MenuItem

logger = logging.getLogger(__name__)

_PROCESSED_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"
_MENU_CSV = _PROCESSED_DIR / "menu_items.csv"

_BOOL_COLUMNS = ("push", "unavailable", "out_of_stock")


class CatalogStore(Protocol):
    def fetch_items(self, venue_id: str) -> list[dict[str, Any]]:
        """Return the current raw item rows for *venue_id*."""
        ...


class CsvCatalogStore:
    """Menu catalog backed by a CSV file with one row per item.

    The file is re-read on every fetch so operators' edits show up on the
    next request.
    """

    def __init__(self, path: Path = _MENU_CSV) -> None:
        self.path = Path(path)

    def _load(self) -> pd.DataFrame:
        df = pd.read_csv(self.path, dtype={"venue_id": str, "id": str})

        # Pre-parse flags and fill gaps so rows validate cleanly
        for col in _BOOL_COLUMNS:
            if col in df.columns:
                df[col] = df[col].fillna(False).astype(str).str.strip().str.lower().isin(
                    ["true", "1", "yes"]
                )
        if "popularity" in df.columns:
            df["popularity"] = pd.to_numeric(df["popularity"], errors="coerce").fillna(0.0)
        # A blank price means the item is included with the meal.
        if "price" in df.columns:
            df["price"] = df["price"].fillna(0)
        for col in ("tags", "category"):
            if col in df.columns:
                df[col] = df[col].fillna("")
        df = df.astype(object).where(df.notna(), None)
        return df

    def fetch_items(self, venue_id: str) -> list[dict[str, Any]]:
        df = self._load()
        rows = df.loc[df["venue_id"] == venue_id]
        return [
            {k: v for k, v in row.items() if k != "venue_id"}
            for row in rows.to_dict(orient="records")
        ]

    def venue_ids(self) -> list[str]:
        return sorted(self._load()["venue_id"].dropna().unique().tolist())


class InMemoryCatalogStore:
    def __init__(self, venues: Mapping[str, Iterable[Mapping[str, Any]]] | None = None) -> None:
        self._venues: dict[str, list[dict[str, Any]]] = {
            venue: [dict(row) for row in rows] for venue, rows in (venues or {}).items()
        }

    def set_items(self, venue_id: str, rows: Iterable[Mapping[str, Any]]) -> None:
        self._venues[venue_id] = [dict(row) for row in rows]

    def fetch_items(self, venue_id: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self._venues.get(venue_id, [])]


def fetch_snapshot(store: CatalogStore, venue_id: str, timeout: float) -> list[dict[str, Any]]:
    """Fetch one catalog snapshot with a timeout.

    Raises CatalogUnavailable when the store fails, is too slow, or has no
    items for the venue.
    """
    try:
        rows = run_with_timeout(store.fetch_items, timeout, venue_id)
    except FuturesTimeout as exc:
        raise CatalogUnavailable(f"catalog fetch for {venue_id!r} timed out after {timeout}s") from exc
    except Exception as exc:
        raise CatalogUnavailable(f"catalog fetch for {venue_id!r} failed: {exc}") from exc
    if not rows:
        raise CatalogUnavailable(f"no catalog items for venue {venue_id!r}")
    return list(rows)


def _parse_item(row: Any, position: int) -> MenuItem:
    if isinstance(row, MenuItem):
        return row
    item_id = str(row.get("id", f"#{position}")) if isinstance(row, Mapping) else f"#{position}"
    try:
        return MenuItem.model_validate(row)
    except ValidationError as exc:
        raise ItemScoringAnomaly(item_id, f"malformed catalog row: {exc.errors()[0]['msg']}") from exc


def parse_items(rows: Iterable[Any]) -> tuple[list[MenuItem], list[str]]:
    """Validate raw rows into MenuItems, skipping (and logging) malformed ones."""
    items: list[MenuItem] = []
    skipped: list[str] = []
    for position, row in enumerate(rows):
        try:
            items.append(_parse_item(row, position))
        except ItemScoringAnomaly as exc:
            logger.warning("Skipping catalog item: %s", exc)
            skipped.append(exc.item_id)
    return items, skipped
