from __future__ import annotations

import threading
import time
from typing import Any

_lock = threading.Lock()
_feedback: list[dict[str, Any]] = []


def record_feedback(
    session_id: str,
    item_id: str,
    is_positive: bool,
    variant: str | None = None,
) -> None:
    with _lock:
        _feedback.append({
            "session_id": session_id,
            "item_id": item_id,
            "is_positive": is_positive,
            "variant": variant,
            "timestamp": time.time(),
        })


def get_feedback() -> list[dict[str, Any]]:
    with _lock:
        return list(_feedback)


def clear_feedback() -> None:
    with _lock:
        _feedback.clear()
