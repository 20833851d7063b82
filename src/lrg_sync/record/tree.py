"""Immutable labeled tree for LRG documents.

A node is a name, an attribute mapping, text content and an ordered tuple
of children. Queries take a slash-separated path of child names relative to
the node and an optional attribute filter, which is either a mapping of
required attribute values or a predicate over the candidate node.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Optional, Union

AttributeFilter = Union[Mapping[str, str], Callable[["RecordNode"], bool], None]


@dataclass(frozen=True)
class RecordNode:
    """One element of a record document.

    Attributes:
        name: Element name (e.g. "transcript")
        attributes: Read-only attribute mapping
        text: Stripped text content ("" when the element has none)
        children: Child nodes in document order
    """
    name: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    text: str = ""
    children: tuple["RecordNode", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def content(self) -> str:
        return self.text

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Attribute value or default."""
        return self.attributes.get(key, default)

    def _iter_path(self, parts: list[str]) -> Iterator["RecordNode"]:
        if not parts:
            yield self
            return
        head, rest = parts[0], parts[1:]
        for child in self.children:
            if child.name == head:
                yield from child._iter_path(rest)

    def iter_find(self, path: str, attrs: AttributeFilter = None) -> Iterator["RecordNode"]:
        """Yield nodes under ``path`` that satisfy ``attrs``, in document order."""
        parts = [p for p in path.strip("/").split("/") if p]
        for node in self._iter_path(parts):
            if _matches(node, attrs):
                yield node

    def find(self, path: str, attrs: AttributeFilter = None) -> Optional["RecordNode"]:
        """First matching node, or None when nothing matches."""
        return next(self.iter_find(path, attrs), None)

    def find_all(self, path: str, attrs: AttributeFilter = None) -> list["RecordNode"]:
        """All matching nodes (possibly empty)."""
        return list(self.iter_find(path, attrs))

    def find_text(self, path: str, attrs: AttributeFilter = None) -> Optional[str]:
        node = self.find(path, attrs)
        return node.text if node is not None else None


def _matches(node: RecordNode, attrs: AttributeFilter) -> bool:
    if attrs is None:
        return True
    if callable(attrs):
        return bool(attrs(node))
    return all(node.attributes.get(k) == str(v) for k, v in attrs.items())
