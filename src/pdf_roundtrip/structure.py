"""Read-only helpers over qpdf's JSON v2 document text.

Used for display only; the text sent back to qpdf is never checked here.
"""

import json
from typing import Any

OBJECT_KEY_PREFIX = "obj:"


def parse(text: str) -> dict[str, Any]:
    return json.loads(text)


def objects(doc: dict[str, Any]) -> dict[str, Any]:
    """Return the ``obj:N G R`` / ``trailer`` section of a JSON v2 document."""
    sections = doc.get("qpdf")
    if not isinstance(sections, list) or len(sections) < 2 or not isinstance(sections[1], dict):
        return {}
    return sections[1]


def _object_value(entry: Any) -> Any:
    if not isinstance(entry, dict):
        return None
    if "value" in entry:
        return entry["value"]
    stream = entry.get("stream")
    if isinstance(stream, dict):
        return stream.get("dict")
    return None


def page_count(doc: dict[str, Any]) -> int | None:
    objs = objects(doc)
    if not objs:
        return None
    trailer = _object_value(objs.get("trailer"))
    if isinstance(trailer, dict) and isinstance(trailer.get("/Root"), str):
        root = _object_value(objs.get(f"{OBJECT_KEY_PREFIX}{trailer['/Root']}"))
        if isinstance(root, dict) and isinstance(root.get("/Pages"), str):
            pages = _object_value(objs.get(f"{OBJECT_KEY_PREFIX}{root['/Pages']}"))
            if isinstance(pages, dict) and isinstance(pages.get("/Count"), int):
                return pages["/Count"]
    return sum(
        1
        for key, entry in objs.items()
        if key.startswith(OBJECT_KEY_PREFIX)
        and isinstance(_object_value(entry), dict)
        and _object_value(entry).get("/Type") == "/Page"
    )


def summarize(text: str) -> dict[str, Any] | None:
    """Headline facts about the document, or None if the text is not JSON."""
    try:
        doc = parse(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(doc, dict):
        return None
    header = {}
    sections = doc.get("qpdf")
    if isinstance(sections, list) and sections and isinstance(sections[0], dict):
        header = sections[0]
    objs = objects(doc)
    return {
        "json_version": header.get("jsonversion"),
        "pdf_version": header.get("pdfversion"),
        "object_count": sum(1 for key in objs if key.startswith(OBJECT_KEY_PREFIX)),
        "page_count": page_count(doc),
        "has_trailer": "trailer" in objs,
    }
