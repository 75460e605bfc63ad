from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)


def run_indexed_tasks(
    tasks: List[Tuple[int, Callable[[], Any]]],
    *,
    max_workers: int,
) -> List[Tuple[int, Optional[Any]]]:
    """Run ``tasks`` on a bounded pool and return results sorted by index.

    A task that raises yields ``None``; the remaining tasks keep running.
    """
    if not tasks:
        return []
    if max_workers <= 1 or len(tasks) == 1:
        return [(index, _guarded(index, task)) for index, task in tasks]

    results: dict[int, Any] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(_guarded, index, task): index for index, task in tasks
        }
        for future in as_completed(future_to_index):
            results[future_to_index[future]] = future.result()

    return [(index, results[index]) for index in sorted(results)]


def _guarded(index: int, task: Callable[[], Any]) -> Optional[Any]:
    try:
        return task()
    except Exception:
        LOGGER.warning("Lookup task %d failed", index, exc_info=True)
        return None
