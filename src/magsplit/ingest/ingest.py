"""Ingest stage — issue PDF validation, page metadata, and region rendering.

Centralises PDF validation and image rendering so that the decode stage
and runner scripts share one definition of "a readable issue".

Public API
----------
- :func:`ingest_pdf` — open + validate an issue PDF, return :class:`IssueMeta`
- :func:`render_region` — render a page region to a PIL Image at a given DPI
- :func:`image_to_base64_png` — encode a PIL Image as base64 PNG text
- :class:`IssueMeta` — issue-level metadata container
- :class:`PageInfo` — per-page dimensions and image count
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pdfplumber
from PIL import Image

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class PageInfo:
    """Dimension metadata for a single issue page."""

    number: int  # 1-based physical page number
    width: float  # points
    height: float  # points
    image_count: int = 0

    def to_dict(self) -> dict:
        """Serialize page info to a JSON-compatible dict."""
        return {
            "number": self.number,
            "width": round(self.width, 3),
            "height": round(self.height, 3),
            "image_count": self.image_count,
        }


@dataclass
class IssueMeta:
    """Issue-level metadata returned by :func:`ingest_pdf`.

    Does **not** keep the ``pdfplumber.PDF`` handle open; decoding reopens
    the file from ``path``.
    """

    path: Path
    num_pages: int
    pages: List[PageInfo] = field(default_factory=list)
    file_size_bytes: int = 0
    pdf_metadata: dict = field(default_factory=dict)  # PDF info dict

    @property
    def name(self) -> str:
        """Issue name: the file stem, used for output paths."""
        return self.path.stem

    @property
    def image_count(self) -> int:
        return sum(p.image_count for p in self.pages)

    def to_dict(self) -> dict:
        """Serialize issue metadata to a JSON-compatible dict."""
        d: dict = {
            "path": str(self.path),
            "name": self.name,
            "num_pages": self.num_pages,
            "file_size_bytes": self.file_size_bytes,
        }
        if self.pdf_metadata:
            d["pdf_metadata"] = self.pdf_metadata
        d["pages"] = [p.to_dict() for p in self.pages]
        return d


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when an issue PDF cannot be read."""


def _validate_pdf_path(pdf_path: Path) -> None:
    """Raise :class:`IngestError` for missing / empty / wrong-extension files."""
    if not pdf_path.exists():
        raise IngestError(f"File not found: {pdf_path}")
    if not pdf_path.is_file():
        raise IngestError(f"Not a file: {pdf_path}")
    if pdf_path.stat().st_size == 0:
        raise IngestError(f"Empty file: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise IngestError(f"Not a PDF (suffix={pdf_path.suffix!r}): {pdf_path}")


def _coerce_metadata(raw: Optional[dict]) -> dict:
    """Flatten the PDF info dict to ``str -> str`` (values may be bytes)."""
    out = {}
    for k, v in (raw or {}).items():
        if isinstance(v, bytes):
            v = v.decode("utf-8", errors="replace")
        out[str(k)] = str(v) if v is not None else ""
    return out


def check_extractable(pdf: Any, pdf_path: Path | str) -> None:
    """Raise :class:`IngestError` when the document forbids text extraction."""
    # pdfminer sets is_extractable = False on password-protected documents.
    doc = getattr(pdf, "doc", None)
    if doc is not None and getattr(doc, "is_extractable", True) is False:
        raise IngestError(
            f"PDF is password-protected or encrypted "
            f"(text extraction not permitted): {pdf_path}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def ingest_pdf(pdf_path: Path | str) -> IssueMeta:
    """Open and validate an issue PDF, returning an :class:`IssueMeta`.

    1. Path validation (exists, non-empty, ``.pdf`` extension).
    2. Open with pdfplumber, refuse encrypted documents.
    3. Read page count, per-page dimensions and embedded-image counts.
    4. Extract PDF-level metadata (author, title, producer, etc.).

    Raises
    ------
    IngestError
        When the file is missing, empty, encrypted, or cannot be opened.
    """
    pdf_path = Path(pdf_path)
    _validate_pdf_path(pdf_path)

    try:
        with pdfplumber.open(pdf_path) as pdf:
            check_extractable(pdf, pdf_path)
            pages = [
                PageInfo(
                    number=i + 1,
                    width=float(pg.width),
                    height=float(pg.height),
                    image_count=len(pg.images or []),
                )
                for i, pg in enumerate(pdf.pages)
            ]
            pdf_metadata = _coerce_metadata(pdf.metadata)
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot open PDF {pdf_path.name}: {exc}") from exc

    file_size = pdf_path.stat().st_size
    meta = IssueMeta(
        path=pdf_path.resolve(),
        num_pages=len(pages),
        pages=pages,
        file_size_bytes=file_size,
        pdf_metadata=pdf_metadata,
    )
    log.info(
        "Ingested %s: %d pages, %d images, %.1f KB",
        pdf_path.name,
        meta.num_pages,
        meta.image_count,
        file_size / 1024,
    )
    return meta


def render_region(
    pdf_page: Any,
    bbox: Tuple[float, float, float, float],
    resolution: int = 150,
) -> Image.Image:
    """Render the ``(x0, top, x1, bottom)`` region of an open page to RGB.

    The box is clipped to the page first; pdfplumber refuses crops that
    stick out of the page.
    """
    x0, top, x1, bottom = bbox
    w, h = float(pdf_page.width), float(pdf_page.height)
    clipped = (
        max(0.0, min(w, x0)),
        max(0.0, min(h, top)),
        max(0.0, min(w, x1)),
        max(0.0, min(h, bottom)),
    )
    if clipped[2] <= clipped[0] or clipped[3] <= clipped[1]:
        raise ValueError(f"Degenerate image region {bbox}")
    img = pdf_page.crop(clipped).to_image(resolution=resolution).original.copy()
    # pdfplumber may return RGBA
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def image_to_base64_png(img: Image.Image) -> str:
    """Encode *img* as PNG and return the base64 text."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")
