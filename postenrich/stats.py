"""Per-pass counters exposed on ProcessingResult for observability."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, fields
from typing import Dict


@dataclass
class PassStats:
    images_seen: int = 0
    dimensions_injected: int = 0
    unresolved: int = 0
    probes: int = 0
    probe_failures: int = 0
    lightboxed: int = 0
    linked: int = 0
    embeds_replaced: int = 0
    embed_failures: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def bump(self, name: str, by: int = 1) -> None:
        # Probes and embeds may run on worker threads
        with self._lock:
            setattr(self, name, getattr(self, name) + by)

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name[0] != "_"}
