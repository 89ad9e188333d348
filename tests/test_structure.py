import json

from pdf_roundtrip.structure import page_count, parse, summarize


def make_doc(objects: dict) -> dict:
    return {"qpdf": [{"jsonversion": 2, "pdfversion": "1.7"}, objects]}


THREE_PAGES = make_doc(
    {
        "obj:1 0 R": {"value": {"/Type": "/Catalog", "/Pages": "2 0 R"}},
        "obj:2 0 R": {"value": {"/Type": "/Pages", "/Count": 3, "/Kids": ["3 0 R", "4 0 R", "5 0 R"]}},
        "obj:3 0 R": {"value": {"/Type": "/Page", "/Parent": "2 0 R"}},
        "obj:4 0 R": {"value": {"/Type": "/Page", "/Parent": "2 0 R"}},
        "obj:5 0 R": {"value": {"/Type": "/Page", "/Parent": "2 0 R"}},
        "obj:6 0 R": {"stream": {"dict": {"/Length": 0}, "data": ""}},
        "trailer": {"value": {"/Root": "1 0 R", "/Size": 7}},
    }
)


def test_summarize_reports_headline_facts() -> None:
    summary = summarize(json.dumps(THREE_PAGES))

    assert summary == {
        "json_version": 2,
        "pdf_version": "1.7",
        "object_count": 6,
        "page_count": 3,
        "has_trailer": True,
    }


def test_page_count_follows_the_page_tree() -> None:
    doc = make_doc(
        {
            "obj:1 0 R": {"value": {"/Type": "/Catalog", "/Pages": "2 0 R"}},
            "obj:2 0 R": {"value": {"/Type": "/Pages", "/Count": 12, "/Kids": []}},
            "trailer": {"value": {"/Root": "1 0 R"}},
        }
    )
    assert page_count(doc) == 12


def test_page_count_falls_back_to_counting_pages() -> None:
    doc = make_doc(
        {
            "obj:3 0 R": {"value": {"/Type": "/Page"}},
            "obj:4 0 R": {"value": {"/Type": "/Page"}},
            "obj:5 0 R": {"value": {"/Type": "/Font"}},
        }
    )
    assert page_count(doc) == 2


def test_page_count_is_none_without_objects() -> None:
    assert page_count({"qpdf": [{"jsonversion": 2}]}) is None
    assert page_count({}) is None


def test_summarize_rejects_non_json() -> None:
    assert summarize('{"qpdf": [') is None
    assert summarize("[1, 2, 3]") is None


def test_parse_returns_the_document() -> None:
    assert parse(json.dumps(THREE_PAGES)) == THREE_PAGES


def test_summarize_returns_none_for_nesting_too_deep_to_parse() -> None:
    assert summarize("[" * 100_000) is None
