"""Walks script paths over a tree, with support for wildcards and qualifiers.

A path is a series of ``/``-separated segments. A segment is one of:

- ``@name``: an attribute of the current element (always the last segment)
- ``*``: every child element
- ``name``: the first child element called ``name``
- ``name[n]``: the n-th (0-based) child element called ``name``
- ``name[*]``: every child element called ``name``
- ``//name``: every descendant element called ``name``

Paths that do not match anything are not errors; they simply resolve to no
targets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.script.tree import BaseTree, Match

_WHITESPACE_RE = re.compile(r"\s")
_INDEX_RE = re.compile(r"[0-9]+")

NULL = "null"


@dataclass
class PathElement:
    """One step along a path: the parent node and the path from it onward."""

    node: Any
    path: str
    segment: str = field(init=False)

    def __post_init__(self) -> None:
        self.path = _WHITESPACE_RE.sub("", self.path)
        segment = self.path[1:] if self.path.startswith("/") else self.path
        k = segment.find("/", 1)
        self.segment = segment[:k] if k != -1 else segment

    @property
    def remaining_path(self) -> str:
        """The path after the segment, starting with '/' or empty."""
        rest = self.path
        if rest.startswith("//"):
            rest = rest[2:]
        elif rest.startswith("/"):
            rest = rest[1:]
        k = rest.find("/")
        return rest[k:] if k != -1 else ""

    @property
    def segment_name(self) -> str:
        name = self.segment[1:] if self.segment.startswith("/") else self.segment
        k = name.find("[")
        if k == -1:
            return name.replace("]", "")
        return name[:k]

    @property
    def qualifier(self) -> str:
        """Text between '[' and ']', or the empty string."""
        k = self.segment.find("[")
        if k == -1:
            return ""
        kk = self.segment.find("]")
        if kk < k:
            return ""
        return self.segment[k + 1 : kk].strip()

    @property
    def attribute_name(self) -> str:
        return self.segment[1:]

    @property
    def is_end(self) -> bool:
        return self.segment == ""

    @property
    def is_attribute(self) -> bool:
        return self.segment.startswith("@")

    @property
    def is_wildcard(self) -> bool:
        return self.segment == "*"

    @property
    def is_descendant(self) -> bool:
        return self.segment.startswith("/")


def _select(matches: list[Any], qualifier: str, keep_all: bool) -> list[Any]:
    if not qualifier:
        return matches if keep_all else matches[:1]
    if "*" in qualifier:
        return matches
    if not _INDEX_RE.fullmatch(qualifier):
        return []
    index = int(qualifier)
    return [matches[index]] if index < len(matches) else []


def candidates(tree: BaseTree, pe: PathElement) -> list[Any]:
    """Elements matching the segment of *pe*, in document order."""
    node = pe.node
    if pe.is_attribute or pe.is_end:
        return []
    if tree.is_document(node):
        return _document_candidates(tree, pe)
    if pe.is_wildcard:
        return tree.children(node)
    name = pe.segment_name
    if pe.is_descendant:
        return _select(tree.descendants(node, name), pe.qualifier, keep_all=True)
    named = [child for child in tree.children(node) if tree.has_name(child, name)]
    return _select(named, pe.qualifier, keep_all=False)


def _document_candidates(tree: BaseTree, pe: PathElement) -> list[Any]:
    root = tree.root
    if pe.is_wildcard:
        return [root]
    name = pe.segment_name
    if pe.is_descendant:
        found = [root] if name == "*" or tree.has_name(root, name) else []
        found.extend(tree.descendants(root, name))
        return _select(found, pe.qualifier, keep_all=True)
    if tree.has_name(root, name):
        return _select([root], pe.qualifier, keep_all=False)
    # The segment does not name the root element: anchor the path at the root.
    return candidates(tree, PathElement(root, pe.path))


def _anchor(tree: BaseTree, pe: PathElement) -> PathElement:
    if tree.is_document(pe.node) and (pe.is_attribute or pe.is_end):
        return PathElement(tree.root, pe.path)
    return pe


def _create(tree: BaseTree, pe: PathElement) -> Any | None:
    if pe.is_wildcard or "*" in pe.qualifier or pe.segment_name in ("", "*"):
        Log.debug(f"Not creating wildcard segment '{pe.segment}'")
        return None
    parent = tree.root if tree.is_document(pe.node) else pe.node
    return tree.create_child(parent, pe.segment_name)


def resolve(tree: BaseTree, node: Any, path: str, required: bool = False) -> list[Match]:
    """Resolve *path* from *node* into its targets.

    When *required* is set, a missing element along the path is created as
    a child of the last element reached, and resolution continues into it.
    """
    pe = _anchor(tree, PathElement(node, path))
    if pe.is_attribute:
        return [Match(pe.node, pe.attribute_name)]
    if pe.is_end:
        return [Match(pe.node)]

    found = candidates(tree, pe)
    if not found:
        if not required:
            return []
        created = _create(tree, pe)
        if created is None:
            return []
        return resolve(tree, created, pe.remaining_path, required)

    matches: list[Match] = []
    for child in found:
        matches.extend(resolve(tree, child, pe.remaining_path, required))
    return matches


def first_value(tree: BaseTree, node: Any, path: str) -> str:
    """Value at the end of *path*, taking the first match at every step.

    Returns:
        The element text or attribute value, or "null" if the path does not
        resolve.
    """
    pe = _anchor(tree, PathElement(node, path))
    if pe.is_attribute:
        value = tree.get_attribute(pe.node, pe.attribute_name)
        return NULL if value is None else value
    if pe.is_end:
        return tree.text(pe.node)
    found = candidates(tree, pe)
    if not found:
        return NULL
    return first_value(tree, found[0], pe.remaining_path)


def value_of(tree: BaseTree, match: Match) -> str:
    if match.is_attribute:
        return tree.get_attribute(match.node, match.attribute) or ""
    return tree.text(match.node)


def exists(tree: BaseTree, match: Match) -> bool:
    if match.is_attribute:
        return tree.has_attribute(match.node, match.attribute)
    return True


def set_value(tree: BaseTree, match: Match, value: str) -> None:
    if match.is_attribute:
        tree.set_attribute(match.node, match.attribute, value)
    else:
        tree.set_text(match.node, value)


def remove_match(tree: BaseTree, match: Match) -> None:
    if match.is_attribute:
        tree.remove_attribute(match.node, match.attribute)
    else:
        tree.remove(match.node)
