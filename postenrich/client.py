"""
HTTP implementations of the external collaborators.

  - HttpImageProber: reads just enough of a remote image to learn its size
  - OEmbedService: resolves embeddable URLs to markup through oEmbed providers

Both raise the errors defined here; the enrichment pass catches them and
degrades to "leave the element untouched".
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Tuple

import requests
from PIL import ImageFile
from pydantic import ValidationError
from tinyhtml import h

from .domain import ImageSize
from .interfaces import EmbedService, ImageProber
from .models import OEmbedResponse

LOGGER = logging.getLogger(__name__)


# ------------------------------- Errors --------------------------------------


class EnrichmentError(Exception):
    """Base error for external lookups made during enrichment."""


class ProbeError(EnrichmentError):
    """The image could not be fetched or its header could not be parsed."""


class EmbedError(EnrichmentError):
    """Catch-all embedding provider error."""

    def __init__(self, message: str, payload: Optional[object] = None):
        super().__init__(message)
        self.payload = payload


class EmbedRateLimited(EmbedError):
    """429 Too Many Requests."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


# ------------------------------- Prober --------------------------------------


class HttpImageProber(ImageProber):
    """Streams an image until Pillow has parsed its header.

    At most ``max_bytes`` are read; most formats expose their size in the
    first few hundred bytes.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = 10.0,
        chunk_size: int = 1024,
        max_bytes: int = 256 * 1024,
    ):
        self._session = session or requests.Session()
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._max_bytes = max_bytes

    def probe_size(self, url: str) -> Optional[ImageSize]:
        LOGGER.info("Probing image size of %s", url)
        try:
            resp = self._session.get(url, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ProbeError(f"GET {url} failed: {exc}") from exc
        try:
            code = getattr(resp, "status_code", 0)
            if code >= 400:
                raise ProbeError(f"HTTP {code} for {url}")
            return self._parse(resp, url)
        finally:
            resp.close()

    def _parse(self, resp, url: str) -> Optional[ImageSize]:
        parser = ImageFile.Parser()
        read = 0
        try:
            for chunk in resp.iter_content(chunk_size=self._chunk_size):
                if not chunk:
                    continue
                parser.feed(chunk)
                read += len(chunk)
                if parser.image is not None:
                    w, h_ = parser.image.size
                    LOGGER.debug("Parsed %dx%d from %d bytes of %s", w, h_, read, url)
                    return ImageSize(int(w), int(h_))
                if read >= self._max_bytes:
                    break
        except requests.RequestException as exc:
            raise ProbeError(f"Reading {url} failed: {exc}") from exc
        except (OSError, SyntaxError, ValueError) as exc:
            raise ProbeError(f"Unparseable image header at {url}: {exc}") from exc
        LOGGER.debug("No image header found in first %d bytes of %s", read, url)
        return None


# ------------------------------- oEmbed --------------------------------------

_DEFAULT_PROVIDERS: Tuple[Tuple[str, str], ...] = (
    (
        r"^https?://(?:www\.|m\.)?(?:youtube\.com/(?:watch|shorts/|live/)|youtu\.be/)",
        "https://www.youtube.com/oembed",
    ),
    (r"^https?://(?:www\.|player\.)?vimeo\.com/", "https://vimeo.com/api/oembed.json"),
)


class OEmbedService(EmbedService):
    """oEmbed-backed embedding service with an in-memory result cache.

    ``invalidate=True`` bypasses the cache and refreshes it.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        providers: Tuple[Tuple[str, str], ...] = _DEFAULT_PROVIDERS,
        timeout: float = 10.0,
    ):
        self._session = session or requests.Session()
        self._providers = [(re.compile(p), endpoint) for p, endpoint in providers]
        self._timeout = timeout
        self._cache: Dict[str, Optional[str]] = {}

    def endpoint_for(self, url: str) -> Optional[str]:
        for pattern, endpoint in self._providers:
            if pattern.match(url):
                return endpoint
        return None

    def embed(self, url: str, document_id: int, invalidate: bool) -> Optional[str]:
        if not invalidate and url in self._cache:
            return self._cache[url]
        endpoint = self.endpoint_for(url)
        if endpoint is None:
            LOGGER.debug("No oEmbed provider for %s", url)
            return None
        LOGGER.info("Fetching oEmbed for %s (document %s)", url, document_id)
        payload = self._get(endpoint, url)
        markup = self._markup(payload)
        self._cache[url] = markup
        return markup

    def _get(self, endpoint: str, url: str) -> OEmbedResponse:
        try:
            resp = self._session.get(
                endpoint,
                params={"url": url, "format": "json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise EmbedError(f"GET {endpoint} failed: {exc}") from exc
        code = getattr(resp, "status_code", 0)
        if code == 429:
            retry_after = None
            try:
                hdr = resp.headers.get("Retry-After")
                if hdr:
                    retry_after = float(hdr)
            except (TypeError, ValueError):
                retry_after = None
            LOGGER.warning("oEmbed provider rate-limited. Retry after: %s", retry_after)
            raise EmbedRateLimited("HTTP 429: rate limited", retry_after=retry_after)
        if code >= 400:
            raise EmbedError(f"HTTP {code}", payload=getattr(resp, "text", None))
        try:
            return OEmbedResponse.model_validate(resp.json())
        except ValueError as exc:
            # ValidationError is a ValueError; so is a JSON decode failure
            kind = "schema" if isinstance(exc, ValidationError) else "JSON"
            raise EmbedError(
                f"Invalid oEmbed {kind} response", payload=getattr(resp, "text", None)
            ) from exc

    @staticmethod
    def _markup(payload: OEmbedResponse) -> Optional[str]:
        if payload.html:
            return payload.html
        if payload.type == "photo" and payload.url:
            attrs = {"src": payload.url, "alt": payload.title or ""}
            if payload.width and payload.height:
                attrs["width"] = str(payload.width)
                attrs["height"] = str(payload.height)
            return h("img", **attrs).render()
        return None
