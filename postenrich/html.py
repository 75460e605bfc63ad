"""
Parsing and serialization of rendered post HTML.

The pass mutates a BeautifulSoup tree and serializes it exactly once. Output
keeps void elements in HTML form (``<img src="...">``, not ``<img/>``) and
only escapes the characters XML requires. Attributes keep their source order
so untouched tags serialize back to their input.
"""

from __future__ import annotations

from typing import Iterable, List

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

_PARSER = "html.parser"


class _SourceOrderFormatter(HTMLFormatter):
    # The stock formatter sorts attributes by name
    def attributes(self, tag):
        if tag.attrs is None:
            return []
        return list(tag.attrs.items())


OUTPUT_FORMATTER = _SourceOrderFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", _PARSER)


def parse_fragment(html: str) -> List:
    """Top-level nodes of an HTML fragment, detached and ready to insert."""
    soup = BeautifulSoup(html, _PARSER)
    return [node.extract() for node in list(soup.contents)]


def serialize(soup: BeautifulSoup) -> str:
    return soup.decode(formatter=OUTPUT_FORMATTER)


def has_class(tag: Tag, *names: str) -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(name in classes for name in names)


def has_ancestor(tag: Tag, predicate) -> bool:
    for parent in tag.parents:
        if isinstance(parent, Tag) and predicate(parent):
            return True
    return False


def meaningful_children(tag: Tag) -> Iterable:
    for child in tag.children:
        if isinstance(child, NavigableString) and not child.strip():
            continue
        yield child
