"""Shared test fixtures for magsplit."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from magsplit.catalogue import DEFAULT_PROFILE, PublicationProfile
from magsplit.config import SplitConfig
from magsplit.models import Page, PageFragment

# ── Helpers ────────────────────────────────────────────────────────────


def make_fragment(x: float, y: float, text: str = "w", page: int = 0) -> PageFragment:
    """Create a PageFragment with sane defaults."""
    return PageFragment(x=x, y=y, text=text, page=page)


def make_page(number: int, text: str = "", images=None) -> Page:
    """Create a Page carrying already linearized text."""
    return Page(number=number, text=text, images=list(images or []))


def make_column(
    x: float, top: float, lines: list[str], leading: float = 12.0
) -> list[PageFragment]:
    """One fragment per line, stacked downwards from *top* at *x*."""
    return [make_fragment(x, top - i * leading, text) for i, text in enumerate(lines)]


def body_text(title: str, sentences: int = 4) -> str:
    """Article body: *title* on the first line, then filler prose."""
    filler = "\n".join(
        f"dies ist der {i}. satz des artikels mit etwas text."
        for i in range(sentences)
    )
    return f"{title}\n{filler}"


def make_mock_pdf_page(
    words: list[dict] | None = None,
    text: str = "",
    width: float = 595.0,
    height: float = 842.0,
    images: list[dict] | None = None,
) -> MagicMock:
    """A MagicMock shaped like a pdfplumber Page."""
    page = MagicMock(width=width, height=height)
    page.extract_words.return_value = list(words or [])
    page.extract_text.return_value = text
    page.images = list(images or [])
    return page


def make_mock_pdf(pages: list[MagicMock], metadata: dict | None = None) -> MagicMock:
    """A MagicMock shaped like an open pdfplumber PDF (context manager)."""
    pdf = MagicMock()
    pdf.pages = pages
    pdf.metadata = metadata or {}
    pdf.doc.is_extractable = True
    pdf.__enter__ = MagicMock(return_value=pdf)
    pdf.__exit__ = MagicMock(return_value=False)
    return pdf


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> SplitConfig:
    """Return a default SplitConfig."""
    return SplitConfig()


@pytest.fixture
def profile() -> PublicationProfile:
    """Return the default publication profile."""
    return DEFAULT_PROFILE


@pytest.fixture
def toc_issue() -> list[Page]:
    """A small issue: TOC on page 1, articles on pages 14 and 22."""
    return [
        make_page(1, "INHALT 14 Saure Grüsse  22 Der Herr des Mythenkreuzes"),
        make_page(14, body_text("Saure Grüsse aus dem Wallis")),
        make_page(15, "fortsetzung des ersten artikels mit weiterem text"),
        make_page(22, body_text("Ein Leben am Berg")),
    ]
