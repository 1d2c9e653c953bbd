import io

import pytest

from airscan_discover.exceptions import MalformedXML
from airscan_discover.xmldecode import UNKNOWN_PREFIX, decode

NS = {
    "urn:test:a": "a",
    "urn:test:b": "b",
}

DOC = b"""<?xml version="1.0"?>
<a:Root xmlns:a="urn:test:a" xmlns:x="urn:test:b">
  <a:First>  one  </a:First>
  <x:Second>
    <a:Inner>inner text</a:Inner>
    <x:Empty/>
  </x:Second>
  <a:Third/>
</a:Root>
"""


def test_paths_follow_ancestors_in_document_order():
    doc = decode(NS, DOC)
    assert [e.path for e in doc] == [
        "/a:Root",
        "/a:Root/a:First",
        "/a:Root/b:Second",
        "/a:Root/b:Second/a:Inner",
        "/a:Root/b:Second/b:Empty",
        "/a:Root/a:Third",
    ]


def test_text_is_trimmed_and_whitespace_only_is_empty():
    doc = decode(NS, DOC)
    texts = {e.path: e.text for e in doc}
    assert texts["/a:Root/a:First"] == "one"
    assert texts["/a:Root/b:Second/a:Inner"] == "inner text"
    assert texts["/a:Root/b:Second"] == ""
    assert texts["/a:Root/b:Second/b:Empty"] == ""
    assert texts["/a:Root"] == ""


def test_parent_and_children_are_arena_indices():
    doc = decode(NS, DOC)
    root, first, second, inner, empty, third = doc
    assert root.parent is None
    assert doc.parent_of(root) is None
    assert doc.parent_of(inner) is second
    assert inner.parent == second.index
    # children include grandchildren, in document order
    assert doc.children_of(root) == [first, second, inner, empty, third]
    assert doc.children_of(second) == [inner, empty]
    assert doc.children_of(third) == []


def test_unknown_and_missing_namespace_use_placeholder():
    doc = decode(NS, b'<Root><u:Child xmlns:u="urn:other">x</u:Child></Root>')
    assert [e.path for e in doc] == [
        f"/{UNKNOWN_PREFIX}:Root",
        f"/{UNKNOWN_PREFIX}:Root/{UNKNOWN_PREFIX}:Child",
    ]
    assert doc[1].text == "x"


def test_default_namespace_is_resolved():
    doc = decode(NS, b'<Root xmlns="urn:test:b"><Child>v</Child></Root>')
    assert [e.path for e in doc] == ["/b:Root", "/b:Root/b:Child"]


def test_last_text_run_wins_in_mixed_content():
    doc = decode(NS, b"<r>first<c/>second<c/>  </r>")
    assert doc[0].text == "second"


def test_decodes_from_stream():
    doc = decode(NS, io.BytesIO(DOC))
    assert len(doc) == 6
    assert doc.text_of("/a:Root/a:First") == "one"


def test_text_of_and_find_all():
    doc = decode(NS, b'<a:r xmlns:a="urn:test:a"><a:v>1</a:v><a:v>2</a:v></a:r>')
    assert [e.text for e in doc.find_all("/a:r/a:v")] == ["1", "2"]
    assert doc.text_of("/a:r/a:v") == "2"
    assert doc.text_of("/a:r/a:missing") == ""


@pytest.mark.parametrize("data", [
    b"",
    b"<a><b></a>",
    b"<a><b>",
    b"<a>\xff\xfe</a>",
    b"not xml at all",
])
def test_malformed_input_raises(data):
    with pytest.raises(MalformedXML):
        decode(NS, data)


def test_malformed_xml_is_a_value_error():
    with pytest.raises(ValueError):
        decode(NS, b"<unclosed")


@pytest.mark.parametrize("encoding", ["shift_jis", "gb2312", "x-bogus"])
def test_unsupported_encoding_declaration_raises(encoding):
    data = f'<?xml version="1.0" encoding="{encoding}"?><a>x</a>'.encode("ascii")
    with pytest.raises(MalformedXML):
        decode(NS, data)


def test_entity_expansion_is_refused():
    data = (
        b'<?xml version="1.0"?>'
        b'<!DOCTYPE a [<!ENTITY x "xxxxxxxxxx"><!ENTITY y "&x;&x;&x;&x;">]>'
        b'<a>&y;</a>'
    )
    with pytest.raises(MalformedXML):
        decode(NS, data)


def test_doctype_is_refused():
    with pytest.raises(MalformedXML):
        decode(NS, b'<?xml version="1.0"?><!DOCTYPE a SYSTEM "http://example.com/a.dtd"><a/>')
