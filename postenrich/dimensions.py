"""
Image dimension resolution.

`DefaultDimensionResolver` chains three sources in a fixed priority order:

  1. caller-supplied size hints (exact URL match)
  2. dimensions recorded on the matching attachment
  3. the remote prober, only when crawling is enabled and the probe target is
     an http(s) URL; each target is probed at most once per resolver

A resolver instance is scoped to a single processing pass.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Mapping, Optional

from .domain import Attachment, ImageSize
from .interfaces import DimensionResolver, ImageProber
from .options import ProcessorConfig
from .stats import PassStats
from .uri import UriValidity, is_valid_image_uri, probe_target

LOGGER = logging.getLogger(__name__)


def scale_to_fit(size: ImageSize, max_dimension: int) -> ImageSize:
    """Proportionally shrink ``size`` so neither side exceeds ``max_dimension``."""
    if max_dimension <= 0 or not size.exceeds(max_dimension):
        return size
    ratio = min(max_dimension / size.width, max_dimension / size.height)
    return ImageSize(max(1, int(size.width * ratio)), max(1, int(size.height * ratio)))


class DefaultDimensionResolver(DimensionResolver):
    def __init__(
        self,
        lookup: Callable[[str], Optional[Attachment]],
        prober: Optional[ImageProber],
        config: Optional[ProcessorConfig] = None,
        stats: Optional[PassStats] = None,
    ):
        self._lookup = lookup
        self._prober = prober
        self._config = config or ProcessorConfig()
        self._stats = stats or PassStats()
        self._size_cache: Dict[str, Optional[ImageSize]] = {}
        # One lock per probe target; distinct sources can share a target
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def resolve(
        self, url: str, size_hints: Mapping[str, ImageSize]
    ) -> Optional[ImageSize]:
        hint = size_hints.get(url)
        if hint is not None:
            return hint

        attachment = self._lookup(url)
        if attachment is not None and attachment.size is not None:
            LOGGER.debug("Using recorded size %s for %s", attachment.size, url)
            return attachment.size

        return self._probe(url)

    def _probe(self, url: str) -> Optional[ImageSize]:
        if not self._config.crawl_images or self._prober is None:
            return None
        target = probe_target(url, self._config.base_url, self._config.probe_scheme)
        validity = is_valid_image_uri(target)
        if not validity:
            if validity is UriValidity.INDETERMINATE:
                LOGGER.debug("Not probing unparseable image URI %r", target)
            return None
        with self._locks_guard:
            lock = self._locks.setdefault(target, threading.Lock())
        with lock:
            if target not in self._size_cache:
                self._size_cache[target] = self._probe_once(target)
            return self._size_cache[target]

    def _probe_once(self, target: str) -> Optional[ImageSize]:
        self._stats.bump("probes")
        size: Optional[ImageSize] = None
        try:
            size = self._prober.probe_size(target)
        except Exception as exc:
            self._stats.bump("probe_failures")
            LOGGER.warning("Probing %s failed: %s", target, exc)
        if size is not None and (size.width <= 0 or size.height <= 0):
            size = None
        return size
