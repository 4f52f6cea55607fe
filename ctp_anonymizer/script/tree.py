from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Match:
    """A resolved path target: an element, or one attribute of it."""

    node: Any
    attribute: str | None = None

    @property
    def is_attribute(self) -> bool:
        return self.attribute is not None


class BaseTree(ABC):
    """Contract for the mutable trees an anonymizer script walks.

    Nodes are opaque handles owned by the backend. Only element-like nodes
    are ever handed out; text content and attributes are reached through
    the accessor methods.
    """

    @property
    @abstractmethod
    def document(self) -> Any:
        """The node script paths are resolved from."""

    @property
    @abstractmethod
    def root(self) -> Any:
        """The top element of the tree."""

    def is_document(self, node: Any) -> bool:
        """True if *node* is a document node sitting above the root element."""
        return False

    @abstractmethod
    def children(self, node: Any) -> list[Any]:
        """Child elements of *node* in document order."""

    @abstractmethod
    def has_name(self, node: Any, name: str) -> bool:
        """True if *node* is addressed by the segment *name*."""

    def descendants(self, node: Any, name: str) -> list[Any]:
        """Descendant elements of *node* named *name* ('*' for all), in document order."""
        found: list[Any] = []
        for child in self.children(node):
            if name == "*" or self.has_name(child, name):
                found.append(child)
            found.extend(self.descendants(child, name))
        return found

    @abstractmethod
    def text(self, node: Any) -> str:
        """Concatenated direct text content of *node*."""

    @abstractmethod
    def set_text(self, node: Any, value: str) -> None:
        """Replace the direct text content of *node*, keeping child elements."""

    @abstractmethod
    def get_attribute(self, node: Any, name: str) -> str | None:
        """Value of attribute *name*, or None if it is absent."""

    @abstractmethod
    def set_attribute(self, node: Any, name: str, value: str) -> None:
        """Set or create attribute *name*."""

    @abstractmethod
    def remove_attribute(self, node: Any, name: str) -> None:
        """Remove attribute *name* if present."""

    def has_attribute(self, node: Any, name: str) -> bool:
        return self.get_attribute(node, name) is not None

    @abstractmethod
    def create_child(self, node: Any, name: str) -> Any | None:
        """Append a new empty element *name* to *node*.

        Returns:
            The new node, or None if the backend cannot create it.
        """

    @abstractmethod
    def remove(self, node: Any) -> None:
        """Detach *node* and its subtree from its parent."""

    @abstractmethod
    def copy(self) -> BaseTree:
        """Deep copy used as the working tree of an anonymization pass."""

    @abstractmethod
    def replace_with(self, other: BaseTree) -> None:
        """Take over the content of *other* in place."""
