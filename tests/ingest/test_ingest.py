"""Tests for magsplit.ingest — PDF validation, metadata, and rendering."""

from __future__ import annotations

import base64
import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_mock_pdf, make_mock_pdf_page
from PIL import Image

from magsplit.ingest import (
    IngestError,
    IssueMeta,
    PageInfo,
    check_extractable,
    image_to_base64_png,
    ingest_pdf,
    render_region,
)

# ── PageInfo / IssueMeta unit tests ────────────────────────────────────


class TestPageInfo:
    def test_to_dict(self):
        p = PageInfo(number=2, width=595.2756, height=841.8898, image_count=3)
        d = p.to_dict()
        assert d == {
            "number": 2,
            "width": 595.276,
            "height": 841.89,
            "image_count": 3,
        }


class TestIssueMeta:
    def test_name_is_stem(self):
        meta = IssueMeta(path=Path("/issues/heft_2019_03.pdf"), num_pages=0)
        assert meta.name == "heft_2019_03"

    def test_image_count_sums_pages(self):
        meta = IssueMeta(
            path=Path("x.pdf"),
            num_pages=2,
            pages=[PageInfo(1, 100, 200, 2), PageInfo(2, 100, 200, 1)],
        )
        assert meta.image_count == 3

    def test_to_dict_keys(self):
        meta = IssueMeta(
            path=Path("test.pdf"),
            num_pages=1,
            pages=[PageInfo(1, 595, 842)],
            file_size_bytes=12345,
        )
        d = meta.to_dict()
        assert d["path"] == "test.pdf"
        assert d["name"] == "test"
        assert d["num_pages"] == 1
        assert d["file_size_bytes"] == 12345
        assert len(d["pages"]) == 1
        assert "pdf_metadata" not in d


# ── Validation tests ──────────────────────────────────────────────────


class TestValidation:
    def test_missing_file(self, tmp_path):
        with pytest.raises(IngestError, match="not found"):
            ingest_pdf(tmp_path / "nonexistent.pdf")

    def test_directory_not_file(self, tmp_path):
        d = tmp_path / "subdir.pdf"
        d.mkdir()
        with pytest.raises(IngestError, match="Not a file"):
            ingest_pdf(d)

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty.pdf"
        f.write_bytes(b"")
        with pytest.raises(IngestError, match="Empty file"):
            ingest_pdf(f)

    def test_wrong_extension(self, tmp_path):
        f = tmp_path / "data.txt"
        f.write_text("hello")
        with pytest.raises(IngestError, match="Not a PDF"):
            ingest_pdf(f)

    def test_corrupt_pdf(self, tmp_path):
        """A file with .pdf extension but invalid contents."""
        f = tmp_path / "corrupt.pdf"
        f.write_bytes(b"this is not a pdf file at all")
        with pytest.raises(IngestError, match="Cannot open PDF"):
            ingest_pdf(f)


# ── ingest_pdf with mock pdfplumber ───────────────────────────────────


class TestIngestPdf:
    def _make_fake_pdf(self, tmp_path):
        f = tmp_path / "heft.pdf"
        # Minimal header so the extension and size checks pass
        f.write_bytes(b"%PDF-1.4\n%%EOF")
        return f

    def test_basic_ingest(self, tmp_path):
        pdf_path = self._make_fake_pdf(tmp_path)
        mock_pdf = make_mock_pdf(
            [
                make_mock_pdf_page(width=595.0, height=842.0, images=[{}, {}]),
                make_mock_pdf_page(width=420.0, height=595.0),
            ],
            metadata={"Title": "Heft 3", "Producer": b"InDesign"},
        )

        with patch("magsplit.ingest.ingest.pdfplumber.open", return_value=mock_pdf):
            meta = ingest_pdf(pdf_path)

        assert meta.num_pages == 2
        assert [p.number for p in meta.pages] == [1, 2]
        assert meta.pages[1].width == 420.0
        assert meta.pages[0].image_count == 2
        assert meta.image_count == 2
        assert meta.pdf_metadata == {"Title": "Heft 3", "Producer": "InDesign"}
        assert meta.file_size_bytes == pdf_path.stat().st_size
        assert meta.name == "heft"

    def test_ingest_no_metadata(self, tmp_path):
        pdf_path = self._make_fake_pdf(tmp_path)
        mock_pdf = make_mock_pdf([make_mock_pdf_page()])
        mock_pdf.metadata = None

        with patch("magsplit.ingest.ingest.pdfplumber.open", return_value=mock_pdf):
            meta = ingest_pdf(pdf_path)

        assert meta.pdf_metadata == {}

    def test_encrypted_pdf_refused(self, tmp_path):
        pdf_path = self._make_fake_pdf(tmp_path)
        mock_pdf = make_mock_pdf([make_mock_pdf_page()])
        mock_pdf.doc.is_extractable = False

        with patch("magsplit.ingest.ingest.pdfplumber.open", return_value=mock_pdf):
            with pytest.raises(IngestError, match="password-protected"):
                ingest_pdf(pdf_path)

    def test_open_failure_wrapped(self, tmp_path):
        pdf_path = self._make_fake_pdf(tmp_path)
        with patch(
            "magsplit.ingest.ingest.pdfplumber.open",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(IngestError, match="Cannot open PDF heft.pdf: boom"):
                ingest_pdf(pdf_path)

    def test_logs_summary(self, tmp_path, caplog):
        pdf_path = self._make_fake_pdf(tmp_path)
        mock_pdf = make_mock_pdf([make_mock_pdf_page()])
        with patch("magsplit.ingest.ingest.pdfplumber.open", return_value=mock_pdf):
            with caplog.at_level("INFO", logger="magsplit.ingest.ingest"):
                ingest_pdf(pdf_path)
        assert "Ingested heft.pdf: 1 pages" in caplog.text


class TestCheckExtractable:
    def test_allows_plain_document(self):
        check_extractable(make_mock_pdf([]), "x.pdf")

    def test_missing_doc_attribute(self):
        check_extractable(object(), "x.pdf")


# ── Rendering ─────────────────────────────────────────────────────────


def _renderable_page(width=595.0, height=842.0, mode="RGBA"):
    page = MagicMock(width=width, height=height)
    page.crop.return_value.to_image.return_value.original = Image.new(
        mode, (20, 10), "red"
    )
    return page


class TestRenderRegion:
    def test_returns_rgb_image(self):
        page = _renderable_page()
        img = render_region(page, (10, 20, 110, 70), resolution=72)
        assert img.mode == "RGB"
        assert img.size == (20, 10)
        page.crop.assert_called_once_with((10.0, 20.0, 110.0, 70.0))
        page.crop.return_value.to_image.assert_called_once_with(resolution=72)

    def test_bbox_clipped_to_page(self):
        page = _renderable_page(width=100.0, height=100.0)
        render_region(page, (-5, -5, 150, 80))
        page.crop.assert_called_once_with((0.0, 0.0, 100.0, 80.0))

    def test_degenerate_bbox_raises(self):
        page = _renderable_page(width=100.0, height=100.0)
        with pytest.raises(ValueError, match="Degenerate"):
            render_region(page, (120, 10, 200, 50))


class TestImageToBase64:
    def test_png_roundtrip(self):
        img = Image.new("RGB", (4, 3), "blue")
        data = base64.b64decode(image_to_base64_png(img))
        assert data.startswith(b"\x89PNG")
        assert Image.open(io.BytesIO(data)).size == (4, 3)
