import base64
import io
import os

import requests
import streamlit as st
import streamlit.components.v1 as components

API_BASE = os.getenv("PDF_ROUNDTRIP_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("PDF_ROUNDTRIP_UI_TIMEOUT", "300"))
EDITOR_HEIGHT = int(os.getenv("PDF_ROUNDTRIP_UI_EDITOR_HEIGHT", "640"))


def _error_message(resp: requests.Response) -> str:
    try:
        detail = resp.json().get("detail")
    except ValueError:
        return f"{resp.status_code} {resp.text}"
    if isinstance(detail, dict):
        msg = f"{detail.get('message', '')}"
        if "exit_code" in detail:
            msg += f" (exit code {detail['exit_code']})"
        if detail.get("engine_output"):
            msg += f"\n\n{detail['engine_output']}"
        return msg
    return f"{resp.status_code} {detail}"


def _call(method: str, path: str, **kwargs) -> requests.Response | None:
    try:
        resp = requests.request(method, f"{API_BASE}{path}", timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        st.session_state["error"] = f"Failed to connect to API: {e}"
        return None
    if resp.status_code != 200:
        st.session_state["error"] = _error_message(resp)
        return None
    st.session_state.pop("error", None)
    return resp


def _refresh(sync_editor: bool = True) -> None:
    """Pull the session state from the API into st.session_state.

    Pass sync_editor=False once the editor widget has been drawn in this run.
    """
    resp = _call("GET", "/session")
    if resp is None:
        return
    session = resp.json()
    st.session_state["session"] = session
    if session["state"] == "empty":
        st.session_state.pop("pdf_json", None)
        st.session_state.pop("pdf_bytes", None)
        return
    text_resp = _call("GET", "/session/structure")
    if text_resp is not None:
        st.session_state["pdf_json"] = text_resp.text
        if sync_editor:
            st.session_state["editor"] = text_resp.text
    if session["has_document"]:
        doc_resp = _call("GET", "/session/document")
        if doc_resp is not None:
            st.session_state["pdf_bytes"] = doc_resp.content
    else:
        st.session_state.pop("pdf_bytes", None)


def _upload(uploaded_file: io.BytesIO) -> None:
    files = {"file": (uploaded_file.name, uploaded_file.getvalue(), uploaded_file.type or "application/pdf")}
    if _call("POST", "/session/document", files=files) is not None:
        _refresh()


def _update_pdf(text: str) -> None:
    resp = _call(
        "PUT",
        "/session/structure",
        data=text.encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )
    if resp is None:
        return
    # Keep the edit even if regeneration fails, so the user can fix it
    st.session_state["pdf_json"] = text
    st.session_state.pop("pdf_bytes", None)
    if _call("POST", "/session/regenerate") is not None:
        _refresh(sync_editor=False)


def _restart() -> None:
    _call("DELETE", "/session")
    for key in ["session", "pdf_json", "pdf_bytes", "editor", "error"]:
        st.session_state.pop(key, None)
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _render_preview(pdf_bytes: bytes) -> None:
    b64 = base64.b64encode(pdf_bytes).decode("ascii")
    components.html(
        f'<iframe src="data:application/pdf;base64,{b64}" width="100%" height="{EDITOR_HEIGHT}" '
        'style="border: none;"></iframe>',
        height=EDITOR_HEIGHT + 10,
    )


def main() -> None:
    st.set_page_config(page_title="PDF JSON Editor", page_icon="📄", layout="wide")
    st.title("📄 PDF JSON Editor")
    st.caption(f"API base: {API_BASE}")

    if "session" not in st.session_state:
        _refresh()
    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0

    col1, col2, col3 = st.columns([3, 1, 1])
    with col1:
        uploaded = st.file_uploader(
            "Upload PDF",
            type=["pdf"],
            key=f"uploader-{st.session_state['upload_key']}",
        )
    with col2:
        if uploaded and st.button("Convert to JSON", type="primary"):
            with st.spinner("Converting PDF to JSON..."):
                _upload(uploaded)
    with col3:
        if st.button("Restart", type="secondary"):
            _restart()
            st.rerun()

    if err := st.session_state.get("error"):
        st.error(err)

    session = st.session_state.get("session") or {}
    if summary := session.get("summary"):
        st.caption(
            f"{session.get('filename') or 'document'}: "
            f"{summary.get('page_count')} page(s), {summary.get('object_count')} objects, "
            f"JSON v{summary.get('json_version')}"
        )

    left, right = st.columns(2)
    with left:
        if "pdf_json" in st.session_state:
            text = st.text_area("JSON", key="editor", height=EDITOR_HEIGHT, label_visibility="collapsed")
            if st.button("Update PDF", type="primary"):
                with st.spinner("Rebuilding PDF..."):
                    _update_pdf(text)
                st.rerun()
    with right:
        pdf_bytes = st.session_state.get("pdf_bytes")
        if pdf_bytes:
            _render_preview(pdf_bytes)
            stem = (session.get("filename") or "document.pdf").rsplit(".", 1)[0]
            st.download_button(
                label="Download PDF",
                data=pdf_bytes,
                file_name=f"{stem}-edited.pdf",
                mime="application/pdf",
            )
        elif "pdf_json" in st.session_state:
            st.info("Edit the JSON and press Update PDF to rebuild the document.")


if __name__ == "__main__":
    main()
