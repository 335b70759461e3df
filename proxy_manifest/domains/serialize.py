"""Render manifest and descriptor documents to normalized XML bytes.

Output shape, shared by both files:

- ``<?xml version="1.0" encoding="UTF-8" standalone="yes"?>`` and a newline
- the body, four spaces of indent per nesting level
- a trailing newline

Empty elements are always self-closed (``<SharedFlows/>``); an explicit
empty pair such as ``<Spec></Spec>`` left over from the input is collapsed.
"""
from __future__ import annotations

import copy

from lxml import etree

from proxy_manifest.errors import SerializationError

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
INDENT = "    "


def collapse_empty_elements(element: etree._Element) -> etree._Element:
    """Drop empty text from childless elements in place so they serialize self-closed.

    Only elements are touched; comment and processing-instruction text is left as is.
    """
    for el in element.iter(etree.Element):
        if el.text == "" and len(el) == 0:
            el.text = None
    return element


def render_element(element: etree._Element) -> bytes:
    """Serialize ``element`` with the declaration header. The input tree is not modified."""
    try:
        el = copy.deepcopy(element)
        el.tail = None
        collapse_empty_elements(el)
        etree.indent(el, space=INDENT)
        body = etree.tostring(el, encoding="unicode")
    except (ValueError, TypeError, etree.SerialisationError) as e:
        raise SerializationError(f"cannot serialize <{getattr(element, 'tag', '?')}>: {e}") from e
    return (XML_DECLARATION + "\n" + body + "\n").encode("utf-8")


def render(document) -> bytes:
    """Render a ManifestDocument or ProxyDescriptor (anything with ``to_element()``)."""
    try:
        element = document.to_element()
    except (ValueError, TypeError) as e:
        raise SerializationError(f"cannot encode {type(document).__name__}: {e}") from e
    return render_element(element)


__all__ = ["XML_DECLARATION", "INDENT", "collapse_empty_elements", "render_element", "render"]
