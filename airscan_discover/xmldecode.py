"""
Streaming XML decoder that flattens a document into path-addressed elements.

Every element is recorded with its full path from the root, written as
``/prefix:Local/prefix:Local/...``. Namespace URIs are rewritten into short
prefixes through a caller-supplied table, so protocol code can compare paths
without caring which prefixes a peer happened to declare. A namespace that
is not in the table (or no namespace at all) becomes ``-``.

Elements live in an arena (:class:`XMLDocument`) and refer to each other by
index only, which keeps the tree free of reference cycles.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, List, Mapping, Optional, Sequence, Tuple, Union, overload
import xml.etree.ElementTree as ET

import defusedxml.ElementTree as DET

from .exceptions import MalformedXML

UNKNOWN_PREFIX = "-"
_CHUNK_SIZE = 8192


@dataclass
class XMLElement:
    """A single decoded element.

    - index: position of this element in the owning document
    - path: full, prefix-normalized path from the root
    - text: the element's own character data, stripped
    - parent: index of the parent element, None for the root
    - children: indices of all descendants (children, their children and
      so on) in document order
    """
    index: int
    path: str
    text: str = ""
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)


class XMLDocument(Sequence[XMLElement]):
    """Read-only, document-ordered arena of decoded elements."""

    def __init__(self, elements: List[XMLElement]):
        self._elements = elements

    @overload
    def __getitem__(self, index: int) -> XMLElement: ...
    @overload
    def __getitem__(self, index: slice) -> Sequence[XMLElement]: ...

    def __getitem__(self, index):
        return self._elements[index]

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[XMLElement]:
        return iter(self._elements)

    def parent_of(self, elem: XMLElement) -> Optional[XMLElement]:
        if elem.parent is None:
            return None
        return self._elements[elem.parent]

    def children_of(self, elem: XMLElement) -> List[XMLElement]:
        """Returns all descendants of elem, in document order."""
        return [self._elements[i] for i in elem.children]

    def find_all(self, path: str) -> List[XMLElement]:
        return [e for e in self._elements if e.path == path]

    def text_of(self, path: str) -> str:
        """Returns the text of the last element at path, or '' if there is none."""
        text = ""
        for elem in self._elements:
            if elem.path == path:
                text = elem.text
        return text


def _split_tag(tag: str) -> Tuple[str, str]:
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        return uri, local
    return "", tag


def _last_text(node: ET.Element) -> str:
    """Last non-blank character data run directly inside node."""
    text = ""
    runs = [node.text] + [child.tail for child in node]
    for run in runs:
        if run is not None and run.strip():
            text = run.strip()
    return text


def _chunks(source: Union[bytes, bytearray, BinaryIO]) -> Iterator[bytes]:
    if isinstance(source, (bytes, bytearray)):
        yield bytes(source)
        return
    while True:
        chunk = source.read(_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


def decode(namespaces: Mapping[str, str], source: Union[bytes, bytearray, BinaryIO]) -> XMLDocument:
    """
    Parses an XML document into an XMLDocument.

    Raises MalformedXML if the input is not a well-formed document.
    """
    elements: List[XMLElement] = []
    stack: List[Tuple[XMLElement, int]] = []
    path = ""

    # Peer input is untrusted: DTDs, entity declarations and external
    # references are refused by the defused expat parser
    parser = ET.XMLPullParser(
        events=("start", "end"),
        _parser=DET.DefusedXMLParser(target=ET.TreeBuilder(), forbid_dtd=True),
    )

    def _drain() -> None:
        nonlocal path
        for event, node in parser.read_events():
            if event == "start":
                uri, local = _split_tag(node.tag)
                prefix = namespaces.get(uri, UNKNOWN_PREFIX) if uri else UNKNOWN_PREFIX
                parent_len = len(path)
                path = f"{path}/{prefix}:{local}"
                parent = stack[-1][0] if stack else None
                elem = XMLElement(
                    index=len(elements),
                    path=path,
                    parent=parent.index if parent is not None else None,
                )
                elements.append(elem)
                for ancestor, _ in stack:
                    ancestor.children.append(elem.index)
                stack.append((elem, parent_len))
            elif event == "end":
                elem, parent_len = stack.pop()
                elem.text = _last_text(node)
                path = path[:parent_len]

    try:
        for chunk in _chunks(source):
            parser.feed(chunk)
            _drain()
        parser.close()
        _drain()
    except (ET.ParseError, DET.ParseError) as e:
        raise MalformedXML(str(e)) from e
    except (ValueError, LookupError) as e:
        # DTD or entity refused, or an encoding expat cannot handle
        raise MalformedXML(f"{type(e).__name__}: {e}") from e

    return XMLDocument(elements)
