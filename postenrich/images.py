"""
Image enrichment for rendered post HTML.

For every ``<img>`` in document order:
  - absolutize root-relative sources (protocol-relative sources stay verbatim)
  - keep the document's attachment index in sync
  - inject missing width/height, scaled to the display maximum
  - oversized images get exactly one treatment: a lightbox overlay when they
    are a known upload, a plain link to the original otherwise

Images inside embed (onebox) markup, whether inserted by this pass or by an
earlier one, and images inside quotes are skipped. Images already inside a
link are never wrapped.
The overlay metadata panel is built with tinyhtml and grafted into the tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag
from rich.filesize import decimal
from tinyhtml import h

from .attachments import AttachmentLinker
from .concurrency import run_indexed_tasks
from .dimensions import scale_to_fit
from .domain import Attachment, Document, ImageSize
from .embeds import in_onebox
from .html import has_ancestor, has_class, parse_fragment
from .interfaces import DimensionResolver
from .options import ProcessorConfig
from .stats import PassStats
from .uri import absolutize

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageContext:
    src: str
    natural: ImageSize
    attachment: Optional[Attachment]
    in_link: bool


def _pixels(value) -> Optional[int]:
    """Integer pixel count of a width/height attribute, ``None`` for ``50%`` etc."""
    try:
        n = int(str(value).strip().removesuffix("px"))
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


class ImageEnricher:
    def __init__(
        self,
        resolver: DimensionResolver,
        linker: AttachmentLinker,
        config: Optional[ProcessorConfig] = None,
        stats: Optional[PassStats] = None,
    ):
        self._resolver = resolver
        self._linker = linker
        self._config = config or ProcessorConfig()
        self._stats = stats or PassStats()
        self.first_src: Optional[str] = None

    # ------------------------------------------------------------------ walk

    def images(self, soup: BeautifulSoup) -> List[Tag]:
        return [
            img
            for img in soup.find_all("img")
            if not in_onebox(img)
            and not has_ancestor(img, lambda p: has_class(p, "quote"))
        ]

    def apply(
        self,
        soup: BeautifulSoup,
        document: Document,
        size_hints: Mapping[str, ImageSize],
    ) -> bool:
        """Mutate ``soup`` in place; True when the markup changed."""
        images = self.images(soup)
        if not images:
            return False

        changed = False
        hints = dict(size_hints)
        srcs: List[str] = []
        for img in images:
            self._stats.bump("images_seen")
            src = img.get("src")
            if not src:
                continue
            absolute = absolutize(src, self._config.base_url)
            if absolute != src:
                img["src"] = absolute
                changed = True
                if src in hints:
                    hints.setdefault(absolute, hints[src])
            if absolute not in srcs:
                srcs.append(absolute)
        sizes = self._resolve_all(srcs, hints)

        for img in images:
            src = img.get("src")
            if not src:
                continue
            if self.first_src is None:
                self.first_src = src
            attachment = self._linker.link(document, src)
            natural = sizes.get(src)
            if natural is None:
                self._stats.bump("unresolved")
                LOGGER.debug("No dimensions for %s; leaving it untouched", src)
                continue
            ctx = ImageContext(
                src=src,
                natural=natural,
                attachment=attachment,
                in_link=has_ancestor(img, lambda p: p.name == "a"),
            )
            changed |= self._inject_dimensions(img, ctx)
            changed |= self._classify(soup, img, ctx)
        return changed

    def _resolve_all(
        self, srcs: List[str], size_hints: Mapping[str, ImageSize]
    ) -> Dict[str, Optional[ImageSize]]:
        tasks = [
            (i, (lambda u=src: self._resolver.resolve(u, size_hints)))
            for i, src in enumerate(srcs)
        ]
        results = run_indexed_tasks(tasks, max_workers=self._config.max_workers)
        return {srcs[i]: size for i, size in results}

    # -------------------------------------------------------------- mutation

    def _inject_dimensions(self, img: Tag, ctx: ImageContext) -> bool:
        width, height = img.get("width"), img.get("height")
        if width and height:
            return False
        natural = ctx.natural
        display = scale_to_fit(natural, self._config.display_max_dimension)
        explicit_w, explicit_h = _pixels(width), _pixels(height)
        if explicit_w:
            # Keep the aspect ratio of the side the author chose
            img["height"] = str(max(1, explicit_w * natural.height // natural.width))
        elif explicit_h:
            img["width"] = str(max(1, explicit_h * natural.width // natural.height))
        else:
            if not width:
                img["width"] = str(display.width)
            if not height:
                img["height"] = str(display.height)
        self._stats.bump("dimensions_injected")
        return True

    def _classify(self, soup: BeautifulSoup, img: Tag, ctx: ImageContext) -> bool:
        if not ctx.natural.exceeds(self._config.oversized_threshold):
            return False
        if ctx.in_link:
            return False
        if ctx.attachment is not None:
            self._lightbox(soup, img, ctx)
            self._stats.bump("lightboxed")
        else:
            self._link(soup, img, ctx)
            self._stats.bump("linked")
        return True

    def _link(self, soup: BeautifulSoup, img: Tag, ctx: ImageContext) -> None:
        attrs = {"href": ctx.src}
        if self._config.link_target_blank:
            attrs["target"] = "_blank"
        if self._config.link_rel:
            attrs["rel"] = self._config.link_rel
        img.wrap(soup.new_tag("a", attrs=attrs))
        LOGGER.debug(
            "Converted oversized image %s (%s) to a link", ctx.src, ctx.natural
        )

    def _lightbox(self, soup: BeautifulSoup, img: Tag, ctx: ImageContext) -> None:
        wrapper = soup.new_tag("a", attrs={"href": ctx.src, "class": "lightbox"})
        a = img.wrap(wrapper)
        for node in parse_fragment(self.overlay_markup(ctx)):
            a.append(node)
        LOGGER.debug("Lightboxed %s (%s)", ctx.src, ctx.natural)

    def overlay_markup(self, ctx: ImageContext) -> str:
        filename = self._linker.filename_for(ctx.attachment, ctx.src)
        informations = str(ctx.natural)
        if ctx.attachment is not None and ctx.attachment.filesize:
            informations += f" | {decimal(ctx.attachment.filesize)}"
        return h("div", **{"class": "meta"})(
            h("span", **{"class": "filename"})(filename),
            h("span", **{"class": "informations"})(informations),
            h("span", **{"class": "expand"})(),
        ).render()
