"""
Collaborator seams for the enrichment pass.

The processor never performs I/O itself; it only calls these interfaces:
  - AttachmentStore: document ↔ attachment associations and attachment records
  - ImageProber: remote image dimension probing
  - EmbedService: URL → rich embed markup
  - DimensionResolver: the single-method strategy used by ImageEnricher,
    substitutable in tests
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Protocol, Sequence

from .domain import Attachment, ImageSize


class AttachmentStore(Protocol):
    """Read/write access to attachment records and their document links."""

    def find_by_url(self, url: str) -> Optional[Attachment]: ...

    def attachment_ids_for(self, document_id: int) -> List[int]: ...

    def set_document_attachments(
        self, document_id: int, attachment_ids: Sequence[int]
    ) -> None: ...


class ImageProber(Protocol):
    def probe_size(self, url: str) -> Optional[ImageSize]: ...


class EmbedService(Protocol):
    def embed(self, url: str, document_id: int, invalidate: bool) -> Optional[str]: ...


class DimensionResolver(Protocol):
    def resolve(
        self, url: str, size_hints: Mapping[str, ImageSize]
    ) -> Optional[ImageSize]: ...
