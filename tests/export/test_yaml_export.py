"""Tests for magsplit.export — filenames, page dumps, article records."""

from __future__ import annotations

import pytest
import yaml
from conftest import make_page

from magsplit.export import (
    SUMMARY_FILENAME,
    generate_filename,
    load_articles,
    load_issue_pages,
    title_slug,
    write_articles,
    write_issue_pages,
)
from magsplit.models import ArticleCandidate, PageImage


def _cand(title, start, content="text", pages=None):
    return ArticleCandidate(
        title=title,
        start_page=start,
        end_page=start,
        content=content,
        pages=pages if pages is not None else [start],
    )


class TestFilenames:
    def test_slug(self):
        assert title_slug("Saure Grüsse aus dem Wallis") == "saure_gr_sse_aus_dem_wallis"

    def test_slug_trims_edges(self):
        assert title_slug("  «Heimweh!»  ") == "heimweh"

    def test_slug_capped(self):
        assert len(title_slug("wort " * 30)) <= 50

    def test_zero_padded_page(self):
        assert generate_filename(_cand("Der Uhrmacher", 7), 0) == (
            "007_der_uhrmacher.yaml"
        )

    def test_empty_slug_falls_back_to_index(self):
        assert generate_filename(_cand("«»", 112), 3) == "112_article_3.yaml"


class TestWriteArticles:
    def test_files_and_summary(self, tmp_path):
        cands = [
            _cand("Saure Grüsse", 14, "Inhalt eins", [14, 15]),
            _cand("Ein Leben am Berg", 22, "Inhalt zwei"),
        ]
        written = write_articles(cands, tmp_path / "heft_articles")

        assert [p.name for p in written] == [
            "014_saure_gr_sse.yaml",
            "022_ein_leben_am_berg.yaml",
        ]
        record = yaml.safe_load(written[0].read_text(encoding="utf-8"))
        assert list(record) == ["title", "start_page", "end_page", "pages", "content"]
        assert record["title"] == "Saure Grüsse"
        assert record["pages"] == [14, 15]

        summary = yaml.safe_load(
            (tmp_path / "heft_articles" / SUMMARY_FILENAME).read_text(encoding="utf-8")
        )
        assert summary == [
            {
                "title": "Saure Grüsse",
                "start_page": 14,
                "pages": [14, 15],
                "filename": "014_saure_gr_sse.yaml",
            },
            {
                "title": "Ein Leben am Berg",
                "start_page": 22,
                "pages": [22],
                "filename": "022_ein_leben_am_berg.yaml",
            },
        ]

    def test_umlauts_written_verbatim(self, tmp_path):
        written = write_articles([_cand("Grüsse", 1)], tmp_path)
        assert "Grüsse" in written[0].read_text(encoding="utf-8")

    def test_empty_list_writes_empty_summary(self, tmp_path):
        assert write_articles([], tmp_path / "leer") == []
        summary = (tmp_path / "leer" / SUMMARY_FILENAME).read_text(encoding="utf-8")
        assert yaml.safe_load(summary) == []

    def test_load_articles_in_summary_order(self, tmp_path):
        cands = [_cand("B", 30), _cand("A", 4)]
        write_articles(cands, tmp_path)
        loaded = load_articles(tmp_path)
        assert [(c.title, c.start_page) for c in loaded] == [("B", 30), ("A", 4)]


class TestPageDump:
    def test_roundtrip(self, tmp_path):
        img = PageImage(index=1, page=2, name="Im1", width=80, height=60)
        pages = [make_page(1, "Inhalt\n14 Saure Grüsse"), make_page(2, "", [img])]
        path = write_issue_pages(pages, tmp_path / "out" / "heft.yaml")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["pages"][0] == {"page": 1, "text": "Inhalt\n14 Saure Grüsse"}

        loaded = load_issue_pages(path)
        assert [(p.number, p.text) for p in loaded] == [
            (1, "Inhalt\n14 Saure Grüsse"),
            (2, ""),
        ]
        assert loaded[1].images[0].name == "Im1"

    @pytest.mark.parametrize("content", ["- 1\n- 2\n", "seiten: []\n", ""])
    def test_not_a_dump(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValueError, match="not a page dump"):
            load_issue_pages(path)
