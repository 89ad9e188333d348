import os
from functools import partial
from urllib.parse import quote

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from pdf_roundtrip import __version__
from pdf_roundtrip.conversion import (
    ConversionGateway,
    EngineFactory,
    EngineLoader,
    Failure,
    FailureReason,
    InvalidTransition,
)
from pdf_roundtrip.conversion.adapters import QpdfEngine
from pdf_roundtrip.logging_config import setup_logging
from pdf_roundtrip.structure import summarize
from pdf_roundtrip.workflow import DocumentWorkflow, Empty, Regenerated

app = FastAPI(
    title="PDF JSON Round-Trip Service",
    version=os.getenv("PDF_ROUNDTRIP_VERSION", __version__),
    description=(
        "Converts a PDF into qpdf's lossless JSON representation for editing "
        "and rebuilds the PDF from the edited JSON."
    ),
)

# Global configuration defaults
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "50"))
ALLOWED_MIME = set(os.getenv("ALLOWED_MIME", "application/pdf").split(","))
QPDF_BINARY = os.getenv("QPDF_BINARY") or None
STAGING_DIR = os.getenv("STAGING_DIR") or None
ENGINE_TIMEOUT_SEC = float(os.getenv("ENGINE_TIMEOUT_SEC", "0")) or None

# Replaced in tests with an in-memory engine
ENGINE_FACTORY: EngineFactory = partial(
    QpdfEngine.locate, QPDF_BINARY, staging_dir=STAGING_DIR, timeout=ENGINE_TIMEOUT_SEC
)

LOADER: EngineLoader | None = None
WORKFLOW: DocumentWorkflow | None = None

FAILURE_STATUS = {
    FailureReason.CONVERSION_FAILED: 422,
    FailureReason.ENGINE_UNAVAILABLE: 503,
    FailureReason.STAGING_VIOLATION: 500,
    FailureReason.INTERNAL_ERROR: 500,
}


def _workflow() -> DocumentWorkflow:
    assert WORKFLOW is not None
    return WORKFLOW


def _session_body(workflow: DocumentWorkflow) -> dict[str, object]:
    state = workflow.state
    text = workflow.text
    binary = workflow.binary
    return {
        "state": state.name,
        "filename": workflow.filename,
        "has_document": binary is not None,
        "text_length": len(text) if text is not None else 0,
        "size_bytes": len(binary) if binary is not None else 0,
        "summary": summarize(text) if text is not None else None,
    }


def _raise_failure(outcome: Failure) -> None:
    detail: dict[str, object] = {"code": outcome.reason.value, "message": outcome.message}
    if outcome.exit_code is not None:
        detail["exit_code"] = outcome.exit_code
    if outcome.detail:
        detail["engine_output"] = outcome.detail
    raise HTTPException(status_code=FAILURE_STATUS[outcome.reason], detail=detail)


def _attachment_disposition(filename: str) -> str:
    # Header values must be latin-1; the real name goes in filename* (RFC 6266)
    stem = filename.rsplit(".", 1)[0].replace("\r", "").replace("\n", "")
    fallback = stem.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "") or "document"
    return f"attachment; filename=\"{fallback}-edited.pdf\"; filename*=UTF-8''{quote(stem, safe='')}-edited.pdf"


def _conflict(e: InvalidTransition) -> HTTPException:
    return HTTPException(status_code=409, detail={"code": "invalid_state", "message": str(e)})


@app.on_event("startup")
async def _startup() -> None:
    setup_logging(LOG_LEVEL)
    # The engine itself loads lazily on the first conversion
    global LOADER, WORKFLOW
    LOADER = EngineLoader(ENGINE_FACTORY)
    WORKFLOW = DocumentWorkflow(ConversionGateway(LOADER))


@app.on_event("shutdown")
async def _shutdown() -> None:
    global LOADER, WORKFLOW
    if LOADER is not None:
        await LOADER.aclose()
    LOADER = None
    WORKFLOW = None


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/session")
async def get_session() -> JSONResponse:
    return JSONResponse(content=_session_body(_workflow()))


@app.delete("/session")
async def reset_session() -> JSONResponse:
    workflow = _workflow()
    workflow.reset()
    return JSONResponse(content=_session_body(workflow))


@app.post("/session/document")
async def upload_document(file: UploadFile = File(...)) -> JSONResponse:
    """Convert an uploaded PDF to JSON and start editing it.

    Accepts multipart/form-data with a single required part named "file".
    Replaces whatever document was loaded before, but only if conversion succeeds.
    """
    ct = (file.content_type or "").strip().lower()
    fn = (file.filename or "").lower()
    # Some clients label PDFs as application/octet-stream; trust the extension then
    if ct and ALLOWED_MIME and ct not in ALLOWED_MIME and not fn.endswith(".pdf"):
        raise HTTPException(
            status_code=415,
            detail={"code": "unsupported_media_type", "message": f"content-type {file.content_type} not allowed"},
        )

    chunks: list[bytes] = []
    size_bytes = 0
    CHUNK = 1024 * 1024
    max_bytes = MAX_UPLOAD_MB * 1024 * 1024
    while True:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        size_bytes += len(chunk)
        if size_bytes > max_bytes:
            raise HTTPException(
                status_code=413,
                detail={"code": "payload_too_large", "message": f"upload exceeds {MAX_UPLOAD_MB} MB"},
            )
        chunks.append(chunk)

    workflow = _workflow()
    outcome = await workflow.load(b"".join(chunks), filename=file.filename or "upload.pdf")
    if isinstance(outcome, Failure):
        _raise_failure(outcome)
    return JSONResponse(content=_session_body(workflow))


@app.get("/session/structure", response_class=PlainTextResponse)
async def get_structure() -> PlainTextResponse:
    text = _workflow().text
    if text is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "no document loaded"})
    return PlainTextResponse(content=text, media_type="application/json")


@app.put("/session/structure")
async def put_structure(request: Request) -> JSONResponse:
    """Replace the JSON text with the request body, verbatim."""
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail={"code": "bad_encoding", "message": "body must be UTF-8"})
    workflow = _workflow()
    try:
        workflow.edit(text)
    except InvalidTransition as e:
        raise _conflict(e)
    return JSONResponse(content=_session_body(workflow))


@app.post("/session/regenerate")
async def regenerate() -> JSONResponse:
    workflow = _workflow()
    try:
        outcome = await workflow.regenerate()
    except InvalidTransition as e:
        raise _conflict(e)
    if isinstance(outcome, Failure):
        _raise_failure(outcome)
    return JSONResponse(content=_session_body(workflow))


@app.get("/session/document")
async def get_document() -> Response:
    workflow = _workflow()
    state = workflow.state
    if not isinstance(state, Regenerated):
        message = "no document loaded" if isinstance(state, Empty) else "PDF not regenerated since the last edit"
        raise HTTPException(status_code=404, detail={"code": "not_ready", "message": message})
    headers = {"Content-Disposition": _attachment_disposition(workflow.filename or "document.pdf")}
    return Response(content=state.binary, media_type="application/pdf", headers=headers)


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("pdf_roundtrip.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
