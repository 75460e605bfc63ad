"""
In-memory AttachmentStore implementation.

Answers:
  - find_by_url(url)                -> Optional[Attachment]
  - attachment_ids_for(document_id) -> List[int]
  - set_document_attachments(document_id, ids)

URLs are matched exactly first, then scheme-insensitively so that
``https://bucket/x.png`` and ``//bucket/x.png`` resolve to the same upload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .domain import Attachment
from .interfaces import AttachmentStore
from .uri import absolutize, is_root_relative

LOGGER = logging.getLogger(__name__)


def _scheme_less(url: str) -> str:
    for prefix in ("https:", "http:"):
        if url.startswith(prefix + "//"):
            return url[len(prefix) :]
    return url


@dataclass
class InMemoryAttachmentStore(AttachmentStore):
    _by_url: Dict[str, Attachment] = field(default_factory=dict)
    _by_scheme_less: Dict[str, Attachment] = field(default_factory=dict)
    _links: Dict[int, List[int]] = field(default_factory=dict)
    base_url: str = ""

    def add(self, attachment: Attachment) -> Attachment:
        self._by_url[attachment.url] = attachment
        self._by_scheme_less[_scheme_less(attachment.url)] = attachment
        if self.base_url and is_root_relative(attachment.url):
            absolute = absolutize(attachment.url, self.base_url)
            self._by_scheme_less[_scheme_less(absolute)] = attachment
        return attachment

    def extend(self, attachments: Iterable[Attachment]) -> None:
        for a in attachments:
            self.add(a)

    def find_by_url(self, url: str) -> Optional[Attachment]:
        if not url:
            return None
        hit = self._by_url.get(url)
        if hit is None:
            hit = self._by_scheme_less.get(_scheme_less(url))
        return hit

    def attachment_ids_for(self, document_id: int) -> List[int]:
        return list(self._links.get(document_id, []))

    def set_document_attachments(
        self, document_id: int, attachment_ids: Sequence[int]
    ) -> None:
        seen: set[int] = set()
        merged: List[int] = []
        for aid in attachment_ids:
            if aid not in seen:
                seen.add(aid)
                merged.append(aid)
        LOGGER.debug("Document %s now references attachments %s", document_id, merged)
        self._links[document_id] = merged
