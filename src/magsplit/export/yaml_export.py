"""Export module: YAML page dumps and per-article records.

Two artefacts per issue:

``<issue>.yaml``
    The page dump: ``{"pages": [{"page", "text", "images"?}, ...]}``.
    It can be read back with :func:`load_issue_pages` to re-segment an
    issue without decoding the PDF again.

``<issue>_articles/``
    One ``NNN_title_slug.yaml`` per article plus ``summary.yaml``.

Usage from the pipeline::

    from magsplit.export import write_articles, write_issue_pages
    write_issue_pages(pages, out_root / f"{stem}.yaml")
    write_articles(candidates, out_root / f"{stem}_articles")
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from ..models import ArticleCandidate, Page

log = logging.getLogger(__name__)

SUMMARY_FILENAME = "summary.yaml"

_RE_SLUG = re.compile(r"[^a-z0-9]+")
_SLUG_MAX_LEN = 50


def _dump(data: Any, path: Path) -> Path:
    """Write *data* as UTF-8 YAML, keeping umlauts and key order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(
            data,
            fh,
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )
    return path


# ── Filenames ──────────────────────────────────────────────────────────


def title_slug(title: str) -> str:
    """Lowercase, non-alphanumeric runs to ``_``, capped, edges trimmed."""
    slug = _RE_SLUG.sub("_", (title or "").lower())[:_SLUG_MAX_LEN]
    return slug.strip("_")


def generate_filename(candidate: ArticleCandidate, index: int) -> str:
    """``NNN_title_slug.yaml`` for *candidate*; ``NNN_article_<index>.yaml``
    when the title has no usable characters."""
    slug = title_slug(candidate.title) or f"article_{index}"
    return f"{candidate.start_page:03d}_{slug}.yaml"


# ── Writers ────────────────────────────────────────────────────────────


def write_issue_pages(pages: Sequence[Page], out_path: Path) -> Path:
    """Write the issue page dump to *out_path*."""
    out_path = Path(out_path)
    _dump({"pages": [p.to_dict() for p in pages]}, out_path)
    log.info("Wrote page dump %s (%d pages)", out_path.name, len(pages))
    return out_path


def write_articles(
    candidates: Sequence[ArticleCandidate],
    out_dir: Path,
) -> List[Path]:
    """Write one YAML per article and the ``summary.yaml`` index.

    Returns the article file paths in candidate order.  Files are
    overwritten; nothing else in *out_dir* is touched.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    summary: List[Dict[str, Any]] = []
    written: List[Path] = []
    for idx, cand in enumerate(candidates):
        filename = generate_filename(cand, idx)
        written.append(_dump(cand.to_dict(), out_dir / filename))
        summary.append(cand.to_summary_dict(filename))
        log.debug("  Saved: %s", filename)

    _dump(summary, out_dir / SUMMARY_FILENAME)
    log.info("Saved %d articles to %s", len(candidates), out_dir)
    return written


# ── Readers ────────────────────────────────────────────────────────────


def load_issue_pages(path: Path) -> List[Page]:
    """Read a page dump written by :func:`write_issue_pages`.

    Raises
    ------
    ValueError
        When the file is not a page dump.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict) or not isinstance(data.get("pages"), list):
        raise ValueError(f"{path} is not a page dump (missing 'pages' list)")
    return [Page.from_dict(d) for d in data["pages"]]


def load_articles(out_dir: Path) -> List[ArticleCandidate]:
    """Read back the articles listed in ``summary.yaml``, in summary order."""
    out_dir = Path(out_dir)
    with open(out_dir / SUMMARY_FILENAME, "r", encoding="utf-8") as fh:
        summary = yaml.safe_load(fh) or []
    articles = []
    for row in summary:
        with open(out_dir / row["filename"], "r", encoding="utf-8") as fh:
            articles.append(ArticleCandidate.from_dict(yaml.safe_load(fh)))
    return articles
