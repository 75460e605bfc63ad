"""
Replace standalone embeddable links with rich embed ("onebox") markup.

A link is a candidate when it carries the ``onebox`` class or is the only
content of its paragraph, is not already inside onebox markup, and its href
matches one of the configured embeddable URL patterns. The embed service is
called once per distinct URL per pass. Its markup is inserted as returned,
except that each top-level element gains the ``onebox-result`` class. That
marker survives serialization, so later passes still recognize embed output
and leave it alone.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .concurrency import run_indexed_tasks
from .html import has_ancestor, has_class, meaningful_children, parse_fragment
from .interfaces import EmbedService
from .options import ProcessorConfig
from .stats import PassStats

LOGGER = logging.getLogger(__name__)

ONEBOX_CLASSES = ("onebox", "onebox-result")
EMBED_MARKER_CLASS = "onebox-result"


def in_onebox(tag: Tag) -> bool:
    """True for embed output: the tag or one of its ancestors is onebox markup."""
    if has_class(tag, EMBED_MARKER_CLASS):
        return True
    return has_ancestor(tag, lambda p: has_class(p, *ONEBOX_CLASSES))


class EmbedEnricher:
    def __init__(
        self,
        service: Optional[EmbedService],
        config: Optional[ProcessorConfig] = None,
        stats: Optional[PassStats] = None,
    ):
        self._service = service
        self._config = config or ProcessorConfig()
        self._stats = stats or PassStats()
        self._patterns = [re.compile(p) for p in self._config.embeddable_url_patterns]

    def is_embeddable(self, url: str) -> bool:
        return any(p.match(url) for p in self._patterns)

    def candidates(self, soup: BeautifulSoup) -> List[Tag]:
        found: List[Tag] = []
        for a in soup.find_all("a", href=True):
            if in_onebox(a) or not self.is_embeddable(a["href"]):
                continue
            if has_class(a, "onebox") or self._sole_paragraph_child(a):
                found.append(a)
        return found

    @staticmethod
    def _sole_paragraph_child(a: Tag) -> bool:
        parent = a.parent
        if not isinstance(parent, Tag) or parent.name != "p":
            return False
        return list(meaningful_children(parent)) == [a]

    def apply(self, soup: BeautifulSoup, document_id: int, invalidate: bool) -> bool:
        """Mutate ``soup`` in place; True when at least one link was replaced."""
        links = self.candidates(soup)
        if not links or self._service is None:
            return False

        urls: List[str] = []
        for a in links:
            if a["href"] not in urls:
                urls.append(a["href"])
        fetched = self._fetch_all(urls, document_id, invalidate)

        changed = False
        for a in links:
            markup = fetched.get(a["href"])
            if not markup:
                continue
            self._replace(a, markup)
            self._stats.bump("embeds_replaced")
            changed = True
        return changed

    def _fetch_all(
        self, urls: List[str], document_id: int, invalidate: bool
    ) -> Dict[str, Optional[str]]:
        tasks = [
            (i, (lambda u=url: self._fetch(u, document_id, invalidate)))
            for i, url in enumerate(urls)
        ]
        results = run_indexed_tasks(tasks, max_workers=self._config.max_workers)
        return {urls[i]: markup for i, markup in results}

    def _fetch(self, url: str, document_id: int, invalidate: bool) -> Optional[str]:
        try:
            markup = self._service.embed(url, document_id, invalidate)
        except Exception as exc:
            self._stats.bump("embed_failures")
            LOGGER.warning("Embedding %s failed: %s", url, exc)
            return None
        if not markup or not markup.strip():
            self._stats.bump("embed_failures")
            LOGGER.debug("No embed markup for %s", url)
            return None
        return markup

    def _replace(self, a: Tag, markup: str) -> None:
        href = a.get("href")
        target = a if not self._sole_paragraph_child(a) else a.parent
        nodes = parse_fragment(markup)
        anchor = target
        for node in nodes:
            anchor.insert_after(node)
            anchor = node
            if isinstance(node, Tag):
                _mark(node)
        target.decompose()
        LOGGER.debug("Replaced %s with %d embed node(s)", href, len(nodes))


def _mark(node: Tag) -> None:
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if EMBED_MARKER_CLASS not in classes:
        node["class"] = [*classes, EMBED_MARKER_CLASS]
