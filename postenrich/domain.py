# postenrich/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int

    def exceeds(self, limit: int) -> bool:
        return self.width > limit or self.height > limit

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Attachment:
    """An uploaded binary referenced by URL from a document's markup."""

    id: int
    url: str
    original_filename: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    filesize: Optional[int] = None

    @property
    def size(self) -> Optional[ImageSize]:
        """Recorded dimensions, or ``None`` until both sides are known."""
        if self.width and self.height and self.width > 0 and self.height > 0:
            return ImageSize(int(self.width), int(self.height))
        return None


@dataclass
class Document:
    """A post whose rendered HTML is enriched in place."""

    id: int
    raw: str = ""
    html: str = ""
    attachments: List[Attachment] = field(default_factory=list)
    post_number: int = 1
    image_url: Optional[str] = None

    def has_attachment(self, attachment: Attachment) -> bool:
        return any(
            a.id == attachment.id or a.url == attachment.url for a in self.attachments
        )
