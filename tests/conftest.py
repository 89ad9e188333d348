"""Shared fixtures: an in-memory stand-in for qpdf.

FakeEngine understands the same two argument vectors the gateway sends to
qpdf. Its "PDF" is ``%PDF-fake`` followed by the canonical JSON of the object
table, so PDF -> JSON -> PDF round trips are lossless and deterministic.
"""

import base64
import json
from typing import Sequence

import pytest

from pdf_roundtrip.conversion.interfaces import structural_export_args

FAKE_MAGIC = b"%PDF-fake\n"
BLANK_PDF = b"%PDF-1.7\n% one blank page\n%%EOF\n"


def _blank_objects(blob: bytes) -> dict[str, object]:
    return {
        "obj:1 0 R": {"value": {"/Type": "/Catalog", "/Pages": "2 0 R"}},
        "obj:2 0 R": {"value": {"/Type": "/Pages", "/Count": 1, "/Kids": ["3 0 R"]}},
        "obj:3 0 R": {
            "value": {
                "/Type": "/Page",
                "/Parent": "2 0 R",
                "/MediaBox": [0, 0, 612, 792],
                "/Contents": "4 0 R",
            }
        },
        "obj:4 0 R": {"stream": {"dict": {}, "data": base64.b64encode(blob).decode("ascii")}},
        "trailer": {"value": {"/Root": "1 0 R", "/Size": 5}},
    }


class FakeEngine:
    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.scopes: set[str] = set()
        self.calls: list[list[str]] = []
        self.last_stderr = ""
        self.closed = False
        self.skip_output = False
        self.force_exit_code: int | None = None

    # EngineHandle
    def invoke(self, argv: Sequence[str]) -> int:
        argv = list(argv)
        self.calls.append(argv)
        self.last_stderr = ""
        if self.force_exit_code is not None:
            self.last_stderr = "forced failure"
            return self.force_exit_code
        if argv[0] == "--json-output":
            in_path, out_path = argv[-2], argv[-1]
            if argv != structural_export_args(in_path, out_path):
                return self._fail("unexpected export arguments")
            return self._export(in_path, out_path)
        if argv[0] == "--json-input" and len(argv) == 3:
            return self._import(argv[1], argv[2])
        return self._fail(f"unknown arguments {argv}")

    def write_file(self, path: str, data: bytes) -> None:
        scope = path.rsplit("/", 1)[0]
        if "/" in path and scope not in self.scopes:
            raise FileNotFoundError(path)
        self.files[path] = bytes(data)

    def read_file(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def remove_file(self, path: str) -> None:
        self.files.pop(path, None)

    def make_scope(self, path: str) -> None:
        if path in self.scopes:
            raise FileExistsError(path)
        self.scopes.add(path)

    def close(self) -> None:
        self.closed = True

    # engine behaviour
    def _fail(self, message: str) -> int:
        self.last_stderr = message
        return 2

    def _export(self, in_path: str, out_path: str) -> int:
        if in_path not in self.files:
            return self._fail(f"{in_path}: can't find file")
        data = self.files[in_path]
        if data.startswith(FAKE_MAGIC):
            objects = json.loads(data[len(FAKE_MAGIC):])
        elif data.startswith(b"%PDF-"):
            objects = _blank_objects(data)
        else:
            return self._fail(f"{in_path}: not a PDF file")
        doc = {"qpdf": [{"jsonversion": 2, "pdfversion": "1.7"}, objects]}
        if not self.skip_output:
            self.files[out_path] = json.dumps(doc, indent=2, sort_keys=True).encode("utf-8")
        return 0

    def _import(self, in_path: str, out_path: str) -> int:
        try:
            doc = json.loads(self.files[in_path])
            objects = doc["qpdf"][1]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            return self._fail(f"{in_path}: JSON error: {e}")
        if not self.skip_output:
            self.files[out_path] = FAKE_MAGIC + json.dumps(objects, sort_keys=True).encode("utf-8")
        return 0


class CountingFactory:
    def __init__(self, engine: FakeEngine | None = None, error: Exception | None = None) -> None:
        self.engine = engine or FakeEngine()
        self.error = error
        self.calls = 0

    def __call__(self) -> FakeEngine:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.engine


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def factory(fake_engine: FakeEngine) -> CountingFactory:
    return CountingFactory(fake_engine)
