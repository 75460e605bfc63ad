"""Public API for post-render HTML enrichment."""

from .attachments import AttachmentLinker
from .client import (
    EmbedError,
    EmbedRateLimited,
    EnrichmentError,
    HttpImageProber,
    OEmbedService,
    ProbeError,
)
from .dimensions import DefaultDimensionResolver, scale_to_fit
from .domain import Attachment, Document, ImageSize
from .options import ProcessOptions, ProcessorConfig, parse_size_hints
from .processor import PassState, PostProcessor, ProcessingResult
from .stats import PassStats
from .store import InMemoryAttachmentStore
from .uri import UriValidity, is_valid_image_uri

__all__ = [
    "PostProcessor",
    "ProcessingResult",
    "PassState",
    "PassStats",
    "ProcessOptions",
    "ProcessorConfig",
    "parse_size_hints",
    "Document",
    "Attachment",
    "ImageSize",
    "AttachmentLinker",
    "DefaultDimensionResolver",
    "scale_to_fit",
    "InMemoryAttachmentStore",
    "HttpImageProber",
    "OEmbedService",
    "EnrichmentError",
    "ProbeError",
    "EmbedError",
    "EmbedRateLimited",
    "UriValidity",
    "is_valid_image_uri",
]
