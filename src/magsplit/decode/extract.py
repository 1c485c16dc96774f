"""Page decoding — PDF text layer and embedded images to :class:`Page` records.

Each pdfplumber page becomes one :class:`~magsplit.models.Page`:

- words from ``extract_words`` become :class:`PageFragment` objects with
  ``y`` flipped into PDF user space (``height - top``)
- ``extract_text`` supplies the raw fallback text
- :func:`magsplit.layout.linearize` picks the page text
- embedded images are recorded with an issue-wide ordinal drawn from an
  ``itertools.count`` passed in by the caller

Image failures are logged and skipped; they never fail the page.
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Iterator, List, Optional

import pdfplumber

from ..config import SplitConfig
from ..ingest import IngestError, check_extractable, image_to_base64_png, render_region
from ..layout import linearize
from ..models import Page, PageFragment, PageImage

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_extract_words_kwargs(cfg: SplitConfig) -> dict[str, Any]:
    """Build ``pdfplumber.Page.extract_words`` keyword arguments."""
    return {
        "x_tolerance": cfg.x_tolerance,
        "y_tolerance": cfg.y_tolerance,
    }


def _word_to_fragment(
    w: dict, number: int, page_h: float
) -> Optional[PageFragment]:
    """Convert a pdfplumber word dict → PageFragment; ``None`` for junk."""
    text = w.get("text", "")
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        x = float(w.get("x0", 0.0))
        top = float(w.get("top", 0.0))
    except (TypeError, ValueError):
        return None
    return PageFragment(x=x, y=page_h - top, text=text, page=number)


def _image_payload(
    pdf_page: Any, bbox: tuple, cfg: SplitConfig
) -> Optional[str]:
    if not cfg.embed_image_data:
        return None
    img = render_region(pdf_page, bbox, resolution=cfg.image_resolution)
    return image_to_base64_png(img)


def extract_images(
    pdf_page: Any,
    number: int,
    cfg: SplitConfig,
    image_seq: Iterator[int],
) -> List[PageImage]:
    """Record the embedded images of one page.

    Ordinals come from *image_seq* only for images that were recorded, so
    the issue-wide numbering has no gaps.
    """
    out: List[PageImage] = []
    for raw in pdf_page.images or []:
        try:
            bbox = (
                float(raw["x0"]),
                float(raw["top"]),
                float(raw["x1"]),
                float(raw["bottom"]),
            )
            srcsize = raw.get("srcsize") or (0, 0)
            payload = _image_payload(pdf_page, bbox, cfg)
        except Exception as exc:
            log.warning(
                "Page %d: could not extract image %s: %s",
                number,
                raw.get("name", "?") if isinstance(raw, dict) else "?",
                exc,
            )
            continue
        img = PageImage(
            index=next(image_seq),
            page=number,
            name=str(raw.get("name", "")),
            width=int(srcsize[0]),
            height=int(srcsize[1]),
            bbox=bbox,
            base64=payload,
        )
        log.debug(
            "Page %d: image %d (%dx%d)", number, img.index, img.width, img.height
        )
        out.append(img)
    return out


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_page(
    pdf_page: Any,
    number: int,
    cfg: SplitConfig | None = None,
    image_seq: Iterator[int] | None = None,
) -> Page:
    """Decode one open pdfplumber page into a :class:`Page`.

    Parameters
    ----------
    pdf_page : pdfplumber.page.Page
        An open page object.
    number : int
        1-based physical page number.
    cfg : SplitConfig, optional
    image_seq : iterator of int, optional
        Issue-wide image ordinal generator; a fresh ``count(1)`` when
        omitted.

    Returns
    -------
    Page
    """
    if cfg is None:
        cfg = SplitConfig()
    if image_seq is None:
        image_seq = itertools.count(1)

    page_h = float(pdf_page.height)
    words = pdf_page.extract_words(**_build_extract_words_kwargs(cfg))
    fragments = []
    for w in words:
        frag = _word_to_fragment(w, number, page_h)
        if frag is not None:
            fragments.append(frag)

    if not fragments:
        log.warning(
            "Page %d: zero words extracted (blank or image-only page)", number
        )

    raw_text = pdf_page.extract_text() or ""
    text = linearize(fragments, raw_text, cfg)

    images: List[PageImage] = []
    if cfg.extract_images:
        images = extract_images(pdf_page, number, cfg, image_seq)

    return Page(number=number, text=text, fragments=fragments, images=images)


def extract_pages(
    pdf_path: Path | str, cfg: SplitConfig | None = None
) -> List[Page]:
    """Decode every page of an issue PDF, in physical order.

    Raises
    ------
    IngestError
        When the file cannot be opened or forbids text extraction.
    """
    if cfg is None:
        cfg = SplitConfig()

    image_seq = itertools.count(1)
    try:
        with pdfplumber.open(pdf_path) as pdf:
            check_extractable(pdf, pdf_path)
            pages = [
                extract_page(pg, i + 1, cfg, image_seq)
                for i, pg in enumerate(pdf.pages)
            ]
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(
            f"Cannot decode PDF {Path(pdf_path).name}: {exc}"
        ) from exc

    log.info(
        "Decoded %s: %d pages, %d images",
        Path(pdf_path).name,
        len(pages),
        sum(len(p.images) for p in pages),
    )
    return pages
