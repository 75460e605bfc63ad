"""
Processing configuration for the post enrichment pass.

Centralizes behavior flags so callers can tune defaults without touching
core logic. A config is immutable and passed explicitly to each call; there
is no process-wide settings object. `ProcessorConfig.from_env` is a
convenience for services that keep these flags in environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple

from .domain import ImageSize

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(raw: str, default: bool) -> bool:
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    return default


@dataclass(frozen=True)
class ProcessorConfig:
    # Logging/debug: print pass statistics to the console
    debug: bool = False

    # Probe remote images for their dimensions
    crawl_images: bool = False

    # Images are scaled (via attributes) to fit within this box
    display_max_dimension: int = 690

    # Natural sizes above this get a lightbox or link treatment
    oversized_threshold: int = 690

    # Site base URL used to absolutize root-relative image sources
    base_url: str = ""

    # Scheme used to probe protocol-relative (bucket) URLs
    probe_scheme: str = "http"

    # Attachments whose filename matches this pattern were pasted from the clipboard
    placeholder_filename_pattern: str = r"^blob(\.png)?$"
    pasted_image_filename: str = "pasted image"

    # Links matching one of these patterns are replaced by embed markup
    embeddable_url_patterns: Tuple[str, ...] = (
        r"^https?://(?:www\.|m\.)?youtube\.com/(?:watch\?.*v=|shorts/|live/)[\w-]{11}",
        r"^https?://youtu\.be/[\w-]{11}",
        r"^https?://(?:www\.|player\.)?vimeo\.com/(?:video/)?\d+",
    )

    # Link behavior for images converted to plain links
    link_target_blank: bool = True
    link_rel: str = "noopener noreferrer"

    # External lookups
    max_workers: int = 1
    request_timeout: float = 10.0

    @classmethod
    def from_env(
        cls, prefix: str = "POSTENRICH_", environ: Optional[Mapping[str, str]] = None
    ) -> "ProcessorConfig":
        """Build a config from ``{prefix}{FIELD_NAME}`` environment variables.

        Unset or unparsable values keep the dataclass default. Tuple fields
        take one entry per line.
        """
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                kwargs[f.name] = _env_bool(raw, default)
            elif isinstance(default, int):
                try:
                    kwargs[f.name] = int(raw)
                except ValueError:
                    pass
            elif isinstance(default, float):
                try:
                    kwargs[f.name] = float(raw)
                except ValueError:
                    pass
            elif isinstance(default, tuple):
                # One entry per line; commas are legal inside regexes
                entries = (p.strip() for p in raw.splitlines())
                kwargs[f.name] = tuple(p for p in entries if p)
            else:
                kwargs[f.name] = raw
        return cls(**kwargs)


def _coerce_size(value: Any) -> Optional[ImageSize]:
    if isinstance(value, ImageSize):
        return value
    w = h = None
    if isinstance(value, Mapping):
        w, h = value.get("width"), value.get("height")
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        w, h = value
    try:
        wi, hi = int(w), int(h)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if wi <= 0 or hi <= 0:
        return None
    return ImageSize(wi, hi)


def parse_size_hints(hints: Optional[Mapping[str, Any]]) -> Dict[str, ImageSize]:
    """Normalize caller size hints; entries that are not a usable size are dropped."""
    out: Dict[str, ImageSize] = {}
    for url, value in (hints or {}).items():
        size = _coerce_size(value)
        if url and size is not None:
            out[url] = size
    return out


@dataclass(frozen=True)
class ProcessOptions:
    """Per-pass options: size hints and the embed cache-invalidation flag."""

    size_hints: Mapping[str, Any] = field(default_factory=dict)
    invalidate_embeds: bool = False

    def hints(self) -> Dict[str, ImageSize]:
        return parse_size_hints(self.size_hints)
