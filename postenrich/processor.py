"""
Post-render enrichment pass.

`PostProcessor.process(document, options)` runs one strictly sequential pass
over a document's rendered HTML:

    CREATED → EMBEDS_PROCESSED → IMAGES_PROCESSED → SERIALIZED

Embeds are resolved first so images inside freshly inserted embed markup are
left alone. The tree is serialized once, at the end. The result is dirty when
any step mutated the tree or the serialized output differs from the parsed
input; a clean pass hands back the original HTML string untouched.

All pass-scoped caches (dimensions, attachment lookups, embeds) live on the
`_Pass` object, so concurrent passes over different documents share nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.table import Table

from .attachments import AttachmentLinker
from .dimensions import DefaultDimensionResolver
from .domain import Document
from .embeds import EmbedEnricher
from .html import parse, serialize
from .images import ImageEnricher
from .interfaces import AttachmentStore, DimensionResolver, EmbedService, ImageProber
from .options import ProcessOptions, ProcessorConfig
from .stats import PassStats

console = Console(stderr=True)

LOGGER = logging.getLogger(__name__)


class PassState(str, Enum):
    CREATED = "created"
    EMBEDS_PROCESSED = "embeds_processed"
    IMAGES_PROCESSED = "images_processed"
    SERIALIZED = "serialized"


class PassStateError(RuntimeError):
    """A pass step was run out of order."""


@dataclass
class ProcessingResult:
    html: str
    dirty: bool
    attachments_changed: bool = False
    image_url: Optional[str] = None
    stats: PassStats = field(default_factory=PassStats)


class _Pass:
    def __init__(
        self,
        document: Document,
        options: ProcessOptions,
        config: ProcessorConfig,
        linker: AttachmentLinker,
        embeds: EmbedEnricher,
        images: ImageEnricher,
        stats: PassStats,
    ):
        self.document = document
        self.options = options
        self.config = config
        self.linker = linker
        self.embeds = embeds
        self.images = images
        self.stats = stats
        self.state = PassState.CREATED
        self.dirty = False
        self.original = document.html or ""
        self.soup = parse(self.original)
        self.baseline = serialize(self.soup)

    def _require(self, expected: PassState) -> None:
        if self.state is not expected:
            raise PassStateError(
                f"step needs state {expected.value}, pass is {self.state.value}"
            )

    def _advance(self, expected: PassState, to: PassState) -> None:
        LOGGER.debug(
            "Document %s: %s → %s", self.document.id, expected.value, to.value
        )
        self.state = to

    def process_embeds(self) -> None:
        self._require(PassState.CREATED)
        changed = self.embeds.apply(
            self.soup, self.document.id, self.options.invalidate_embeds
        )
        self.dirty = self.dirty or changed
        self._advance(PassState.CREATED, PassState.EMBEDS_PROCESSED)

    def process_images(self) -> None:
        self._require(PassState.EMBEDS_PROCESSED)
        changed = self.images.apply(
            self.soup,
            self.document,
            self.options.hints(),
        )
        self.dirty = self.dirty or changed
        self._advance(PassState.EMBEDS_PROCESSED, PassState.IMAGES_PROCESSED)

    def finish(self) -> ProcessingResult:
        self._require(PassState.IMAGES_PROCESSED)
        html = serialize(self.soup)
        self.dirty = self.dirty or html != self.baseline
        self._advance(PassState.IMAGES_PROCESSED, PassState.SERIALIZED)

        attachments_changed = self.linker.commit(self.document)
        image_url = self.images.first_src
        if self.document.post_number == 1 and image_url:
            self.document.image_url = image_url

        if self.dirty:
            self.document.html = html
        else:
            html = self.original
        return ProcessingResult(
            html=html,
            dirty=self.dirty,
            attachments_changed=attachments_changed,
            image_url=image_url,
            stats=self.stats,
        )


class PostProcessor:
    """Enriches rendered post HTML with embeds, image sizes and overlays."""

    def __init__(
        self,
        store: AttachmentStore,
        embed_service: Optional[EmbedService] = None,
        prober: Optional[ImageProber] = None,
        config: Optional[ProcessorConfig] = None,
        resolver: Optional[DimensionResolver] = None,
    ):
        self._store = store
        self._embed_service = embed_service
        self._prober = prober
        self._config = config or ProcessorConfig()
        self._resolver = resolver

    def process(
        self,
        document: Document,
        options: Optional[ProcessOptions] = None,
        config: Optional[ProcessorConfig] = None,
    ) -> ProcessingResult:
        p = self._start(document, options or ProcessOptions(), config or self._config)
        p.process_embeds()
        p.process_images()
        result = p.finish()

        LOGGER.info(
            "Processed document %s: dirty=%s attachments_changed=%s",
            document.id,
            result.dirty,
            result.attachments_changed,
        )
        if p.config.debug:
            self._print_stats(document, result)
        return result

    def _start(
        self, document: Document, options: ProcessOptions, config: ProcessorConfig
    ) -> _Pass:
        stats = PassStats()
        linker = AttachmentLinker(self._store, config)
        resolver = self._resolver or DefaultDimensionResolver(
            linker.lookup, self._prober, config, stats
        )
        return _Pass(
            document,
            options,
            config,
            linker,
            EmbedEnricher(self._embed_service, config, stats),
            ImageEnricher(resolver, linker, config, stats),
            stats,
        )

    @staticmethod
    def _print_stats(document: Document, result: ProcessingResult) -> None:
        console.rule(f"document {document.id}")
        table = Table("counter", "value")
        for name, value in result.stats.as_dict().items():
            table.add_row(name, str(value))
        table.add_row("dirty", str(result.dirty))
        console.print(table)
