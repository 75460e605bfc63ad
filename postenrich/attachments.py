"""
Reverse index between a document and the attachments its HTML references.

One `AttachmentLinker` lives for exactly one processing pass: it caches store
lookups per URL, records which attachments the pass saw, and on `commit`
prunes entries left over from earlier passes so the document holds exactly
one entry per attachment referenced by the final HTML.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from .domain import Attachment, Document
from .interfaces import AttachmentStore
from .options import ProcessorConfig
from .uri import url_basename

LOGGER = logging.getLogger(__name__)


class AttachmentLinker:
    def __init__(
        self, store: AttachmentStore, config: Optional[ProcessorConfig] = None
    ):
        self._store = store
        self._config = config or ProcessorConfig()
        self._placeholder = re.compile(
            self._config.placeholder_filename_pattern, re.IGNORECASE
        )
        self._lookups: Dict[str, Optional[Attachment]] = {}
        self._referenced: List[Attachment] = []

    def lookup(self, url: str) -> Optional[Attachment]:
        """Attachment uploaded at ``url``, or ``None``. Cached for the pass."""
        if not url:
            return None
        if url not in self._lookups:
            hit = self._store.find_by_url(url)
            base = self._config.base_url.rstrip("/")
            if hit is None and base and url.startswith(base + "/"):
                # Sources absolutized by an earlier pass
                hit = self._store.find_by_url(url[len(base) :])
            self._lookups[url] = hit
        return self._lookups[url]

    def link(self, document: Document, url: str) -> Optional[Attachment]:
        attachment = self.lookup(url)
        if attachment is None:
            return None
        if not any(a.id == attachment.id for a in self._referenced):
            self._referenced.append(attachment)
        if not document.has_attachment(attachment):
            LOGGER.debug(
                "Linking attachment %s to document %s", attachment.id, document.id
            )
            document.attachments.append(attachment)
        return attachment

    def commit(self, document: Document) -> bool:
        """Drop stale associations and persist the index; True when it changed."""
        before = [a.id for a in document.attachments]
        document.attachments[:] = list(self._referenced)
        after = [a.id for a in document.attachments]
        stored = self._store.attachment_ids_for(document.id)
        if after != stored:
            self._store.set_document_attachments(document.id, after)
        changed = before != after or after != stored
        if changed:
            LOGGER.info(
                "Attachment index for document %s: %d → %d entries",
                document.id,
                len(before),
                len(after),
            )
        return changed

    def filename_for(self, attachment: Optional[Attachment], fallback_url: str) -> str:
        if attachment is None:
            return url_basename(fallback_url)
        name = attachment.original_filename or ""
        if not name:
            return url_basename(attachment.url or fallback_url)
        if self._placeholder.match(name):
            return self._config.pasted_image_filename
        return name
