"""
PDF JSON Round-Trip Service package.

Converts a PDF into qpdf's lossless JSON form for editing, then rebuilds the
PDF from the edited JSON. The FastAPI application lives in
`pdf_roundtrip.webapi` and the Streamlit editor in `pdf_roundtrip.streamlit_app`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
