"""Ingest stage — issue PDF validation, metadata, and region rendering.

Public API
----------
- :func:`ingest_pdf` — open + validate an issue PDF, return :class:`IssueMeta`
- :func:`render_region` — render a page region to a PIL Image at a given DPI
- :func:`image_to_base64_png` — encode a rendered region for the page dump
- :class:`IssueMeta` — issue-level metadata container
- :class:`PageInfo` — per-page dimensions
- :class:`IngestError` — raised on validation failures
"""

from .ingest import (
    IngestError,
    IssueMeta,
    PageInfo,
    check_extractable,
    image_to_base64_png,
    ingest_pdf,
    render_region,
)

__all__ = [
    "IngestError",
    "IssueMeta",
    "PageInfo",
    "check_extractable",
    "image_to_base64_png",
    "ingest_pdf",
    "render_region",
]
