from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

T = TypeVar("T")

# Shared by the catalog fetch and the persistence write; scoring never uses it.
_io_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="dishpick-io")


def run_with_timeout(fn: Callable[..., T], timeout: float, *args: Any, **kwargs: Any) -> T:
    """Run *fn* on the I/O pool and wait at most *timeout* seconds.

    Raises ``concurrent.futures.TimeoutError`` when the call is too slow; the
    worker is left to finish on its own.
    """
    future = _io_pool.submit(fn, *args, **kwargs)
    return future.result(timeout=timeout)
