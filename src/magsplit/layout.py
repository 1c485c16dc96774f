"""Layout reconstruction — reading order from positioned text fragments.

A page arrives as a bag of :class:`~magsplit.models.PageFragment` objects
(x, y, text).  :func:`linearize` turns that bag into line-by-line text:

1. Decide single- vs two-column (:func:`is_two_column`).
2. Group each column's fragments into lines by vertical proximity and
   order them top-to-bottom, left-to-right (:func:`group_lines`).
3. Gate the result with :func:`looks_reasonable`; on failure fall back to
   the decoder's raw text, and finally to an empty string.

Known limitation: a two-column page is read as the full left column
followed by the full right column.  Headlines spanning both columns, boxes
and three-column layouts are not handled.

Nothing here raises for malformed input; fragments with missing text or
non-numeric coordinates are dropped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import SplitConfig
from .models import Page, PageFragment

log = logging.getLogger(__name__)

_RE_WS = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _clean_fragments(fragments: Iterable[object]) -> List[PageFragment]:
    """Return usable fragments with float coordinates and non-blank text."""
    out: List[PageFragment] = []
    for frag in fragments or ():
        try:
            x = float(frag.x)  # type: ignore[attr-defined]
            y = float(frag.y)  # type: ignore[attr-defined]
            text = frag.text  # type: ignore[attr-defined]
        except (AttributeError, TypeError, ValueError):
            continue
        if x != x or y != y:  # NaN
            continue
        if not isinstance(text, str) or not text.strip():
            continue
        out.append(PageFragment(x=x, y=y, text=_RE_WS.sub(" ", text.strip())))
    return out


def _split_columns(
    fragments: Sequence[PageFragment],
) -> Tuple[List[PageFragment], List[PageFragment]]:
    """Partition fragments left/right of the horizontal midpoint."""
    xs = [f.x for f in fragments]
    mid = (min(xs) + max(xs)) / 2.0
    left = [f for f in fragments if f.x < mid]
    right = [f for f in fragments if f.x >= mid]
    return left, right


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_two_column(
    fragments: Sequence[PageFragment],
    cfg: SplitConfig | None = None,
) -> bool:
    """Classify a page as two-column.

    Fragments strictly left of ``mid - column_margin`` and strictly right
    of ``mid + column_margin`` are counted; both counts must reach
    ``min_column_fragments`` and the horizontal spread must exceed
    ``min_column_width``.
    """
    if cfg is None:
        cfg = SplitConfig()
    if not fragments:
        return False

    xs = [f.x for f in fragments]
    lo, hi = min(xs), max(xs)
    if hi - lo <= cfg.min_column_width:
        return False

    mid = (lo + hi) / 2.0
    n_left = sum(1 for x in xs if x < mid - cfg.column_margin)
    n_right = sum(1 for x in xs if x > mid + cfg.column_margin)
    return (
        n_left >= cfg.min_column_fragments and n_right >= cfg.min_column_fragments
    )


def group_lines(
    fragments: Sequence[PageFragment],
    line_tolerance: float = 3.0,
) -> List[List[PageFragment]]:
    """Group fragments into lines, top of page first.

    Fragments are visited by descending ``y`` then ascending ``x``; a
    fragment joins the current line when its ``y`` is within
    *line_tolerance* of the line's first fragment.  Each line is returned
    sorted by ``x``.
    """
    ordered = sorted(fragments, key=lambda f: (-f.y, f.x))
    lines: List[List[PageFragment]] = []
    anchor_y: Optional[float] = None
    for frag in ordered:
        if anchor_y is not None and abs(anchor_y - frag.y) < line_tolerance:
            lines[-1].append(frag)
        else:
            lines.append([frag])
            anchor_y = frag.y
    return [sorted(line, key=lambda f: f.x) for line in lines]


def lines_to_text(lines: Sequence[Sequence[PageFragment]]) -> str:
    """Join each line's fragments with a space and the lines with newlines."""
    return "\n".join(" ".join(f.text for f in line) for line in lines)


def looks_reasonable(text: str, cfg: SplitConfig | None = None) -> bool:
    """Heuristic gate against degenerate linearizations.

    Rejects empty text, pages with more than ``min_lines_for_ratio`` lines
    where over ``short_line_ratio`` of them are at most
    ``short_line_max_len`` characters long, and pages that are nothing but
    digits beyond ``digit_only_max_len`` characters.
    """
    if cfg is None:
        cfg = SplitConfig()
    if not text or not text.strip():
        return False

    lines = [ln.strip() for ln in text.split("\n") if ln.strip()]
    if len(lines) > cfg.min_lines_for_ratio:
        short = sum(1 for ln in lines if len(ln) <= cfg.short_line_max_len)
        if short / len(lines) > cfg.short_line_ratio:
            return False

    squashed = _RE_WS.sub("", text)
    if squashed.isdigit() and len(squashed) > cfg.digit_only_max_len:
        return False

    return True


def linearize(
    fragments: Iterable[object],
    fallback_text: str = "",
    cfg: SplitConfig | None = None,
) -> str:
    """Reconstruct reading-order text from positioned fragments.

    Parameters
    ----------
    fragments : iterable of PageFragment
        Positioned runs for one page; may be empty or noisy.
    fallback_text : str
        Unordered text the decoder extracted directly, used when the
        reconstruction is empty or fails :func:`looks_reasonable`.
    cfg : SplitConfig, optional

    Returns
    -------
    str
        The reconstruction, the fallback text, or ``""``.
    """
    if cfg is None:
        cfg = SplitConfig()

    frags = _clean_fragments(fragments)
    text = ""
    if frags:
        if is_two_column(frags, cfg):
            left, right = _split_columns(frags)
            text = "\n\n".join(
                lines_to_text(group_lines(col, cfg.line_tolerance))
                for col in (left, right)
            )
        else:
            text = lines_to_text(group_lines(frags, cfg.line_tolerance))

    if looks_reasonable(text, cfg):
        return text

    if fallback_text and looks_reasonable(fallback_text, cfg):
        log.debug(
            "linearize: reconstruction rejected (%d fragments), using raw text",
            len(frags),
        )
        return fallback_text

    if frags or fallback_text:
        log.debug("linearize: no usable text from %d fragments", len(frags))
    return ""


def fill_page_text(
    pages: Iterable[Page], cfg: SplitConfig | None = None
) -> List[Page]:
    """Linearize pages that carry fragments but no text.

    Pages that already have text are returned as they are; filled pages are
    copies, the inputs are not modified.
    """
    out: List[Page] = []
    for page in pages:
        if not (page.text or "").strip() and page.fragments:
            page = replace(page, text=linearize(page.fragments, "", cfg))
            log.debug(
                "fill_page_text: page %d linearized from %d fragments",
                page.number,
                len(page.fragments),
            )
        out.append(page)
    return out
