from __future__ import annotations

import copy
import io
from pathlib import Path
from typing import Any

from lxml import etree

from ctp_anonymizer.script.exceptions import ScriptError
from ctp_anonymizer.script.tree import BaseTree


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def _is_element(node: Any) -> bool:
    # Comments and processing instructions have a callable tag.
    return isinstance(node.tag, str)


class XmlTree(BaseTree):
    """lxml-backed document tree.

    Direct text of an element is its ``text`` plus the ``tail`` of each of
    its children, which is how lxml stores the text nodes a DOM keeps as
    separate children.
    """

    def __init__(self, document: etree._ElementTree) -> None:
        self._document = document

    @classmethod
    def from_bytes(cls, data: bytes) -> XmlTree:
        return cls(etree.parse(io.BytesIO(data), _parser()))

    @classmethod
    def from_string(cls, text: str) -> XmlTree:
        return cls.from_bytes(text.encode("utf-8"))

    @classmethod
    def from_file(cls, path: Path) -> XmlTree:
        return cls.from_bytes(Path(path).read_bytes())

    def to_bytes(self) -> bytes:
        encoding = self._document.docinfo.encoding or "UTF-8"
        return etree.tostring(self._document, xml_declaration=True, encoding=encoding)

    @property
    def document(self) -> etree._ElementTree:
        return self._document

    @property
    def root(self) -> etree._Element:
        return self._document.getroot()

    def is_document(self, node: Any) -> bool:
        return isinstance(node, etree._ElementTree)

    def children(self, node: Any) -> list[Any]:
        if self.is_document(node):
            return [self.root]
        return [child for child in node if _is_element(child)]

    def has_name(self, node: Any, name: str) -> bool:
        return _qualified_name(node) == name

    def descendants(self, node: Any, name: str) -> list[Any]:
        if self.is_document(node):
            node = self.root
        return [
            child
            for child in node.iterdescendants()
            if _is_element(child) and (name == "*" or _qualified_name(child) == name)
        ]

    def text(self, node: Any) -> str:
        parts = [node.text or ""]
        parts.extend(child.tail or "" for child in node)
        return "".join(parts)

    def set_text(self, node: Any, value: str) -> None:
        node.text = None
        for child in node:
            child.tail = None
        if len(node):
            node[-1].tail = value
        else:
            node.text = value

    def get_attribute(self, node: Any, name: str) -> str | None:
        return node.get(name)

    def set_attribute(self, node: Any, name: str, value: str) -> None:
        node.set(name, value)

    def remove_attribute(self, node: Any, name: str) -> None:
        node.attrib.pop(name, None)

    def create_child(self, node: Any, name: str) -> Any | None:
        return etree.SubElement(node, _resolve_tag(node, name))

    def remove(self, node: Any) -> None:
        parent = node.getparent()
        if parent is None:
            raise ScriptError(f"Cannot remove the root element <{_qualified_name(node)}>")
        # The text following the element belongs to the parent.
        if node.tail:
            previous = node.getprevious()
            if previous is not None:
                previous.tail = (previous.tail or "") + node.tail
            else:
                parent.text = (parent.text or "") + node.tail
        parent.remove(node)

    def copy(self) -> XmlTree:
        return XmlTree(copy.deepcopy(self._document))

    def replace_with(self, other: BaseTree) -> None:
        root = self.root
        source = other.root
        tail = root.tail
        root.clear()
        root.tag = source.tag
        root.attrib.update(source.attrib)
        root.text = source.text
        root.extend(list(source))
        root.tail = tail


def _qualified_name(node: Any) -> str:
    localname = etree.QName(node).localname
    return f"{node.prefix}:{localname}" if node.prefix else localname


def _resolve_tag(node: Any, name: str) -> str:
    prefix, sep, localname = name.partition(":")
    if not sep:
        namespace = node.nsmap.get(None)
        return f"{{{namespace}}}{name}" if namespace else name
    namespace = node.nsmap.get(prefix)
    return f"{{{namespace}}}{localname}" if namespace else localname
