"""Article segmentation: TOC / header anchors, page bounds, title refinement.

Turns an issue's ordered pages into page-bounded
:class:`~magsplit.models.ArticleCandidate` records:

    collect TOC entries  ->  (none?) detect section headers
    -> dedupe + sort     ->  bound pages and accumulate content
    -> refine titles     ->  drop empty candidates

Every publication-specific literal (rubric names, TOC markers, title
regexes, stopword lists) comes from a
:class:`~magsplit.catalogue.PublicationProfile`.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from .catalogue import PublicationProfile, get_profile
from .config import SplitConfig
from .models import ArticleCandidate, Page, TocEntry

logger = logging.getLogger("magsplit.segment")

# "07 Yoshimi Takano" / "14 Saure Grüsse  22 Der Herr des Mythenkreuzes".
# Titles may run into each other when the TOC was linearized without line
# breaks, so the title stops where the next number or capital begins.
_RE_TOC_NUM_TITLE = re.compile(
    r"(\d{1,3})\s+([A-Za-zÄÖÜäöü][^\d]{3,50})(?=\s+\d|\s+[A-Z]|$)",
    re.MULTILINE,
)
# "Saure Grüsse aus dem Wallis 14"
_RE_TOC_TITLE_NUM = re.compile(
    r"([A-Za-zÄÖÜäöü][^\d]{5,50})\s+(\d{1,3})(?=\s|$)",
    re.MULTILINE,
)

_RE_TRAILING_PAGE = re.compile(r"\d{1,3}\s*$", re.MULTILINE)
_RE_WS = re.compile(r"\s+")
_RE_COMMA_LIST = re.compile(r",\s*")
_RE_NOT_ALNUM = re.compile(r"[^a-z0-9]")

_QUOTE_CHARS = ('"', "«", "»", "„", "“", "”")
_RE_STARTS_UPPER = re.compile(r"^[A-ZÄÖÜ]")
_RE_STARTS_DIGIT = re.compile(r"^\d")

# Capitalized-run heuristic only looks at the opening lines of an article.
_CAPITALIZED_RUN_LINES = 6


def _resolve(
    profile: PublicationProfile | None, cfg: SplitConfig | None
) -> tuple:
    if cfg is None:
        cfg = SplitConfig()
    if profile is None:
        profile = get_profile(cfg.profile)
    return profile, cfg


# ---------------------------------------------------------------------------
# TOC titles
# ---------------------------------------------------------------------------


def clean_toc_title(title: str, profile: PublicationProfile | None = None) -> str:
    """Strip trailing page numbers, captured rubric names and a glued TOC
    marker, then collapse whitespace."""
    if profile is None:
        profile = get_profile(SplitConfig().profile)
    title = _RE_TRAILING_PAGE.sub("", title).strip()
    title = profile.strip_section_suffix(title)
    title = profile.strip_toc_marker(title)
    return _RE_WS.sub(" ", title).strip()


def split_toc_title(title: str, min_len: int = 3) -> List[str]:
    """Split a comma list ("Müller, Schmidt") into single titles."""
    parts = (part.strip() for part in _RE_COMMA_LIST.split(title))
    return [part for part in parts if len(part) >= min_len]


def similar_title(a: Optional[str], b: Optional[str]) -> bool:
    """Textual similarity used to merge duplicate entries.

    Both titles are lowercased and reduced to ``[a-z0-9]``; they are similar
    when the reduced forms are equal or one contains the other.  A title
    that reduces to nothing is never similar to anything.
    """
    if a is None or b is None:
        return False
    ka = _RE_NOT_ALNUM.sub("", a.lower())
    kb = _RE_NOT_ALNUM.sub("", b.lower())
    if not ka or not kb:
        return False
    return ka == kb or ka in kb or kb in ka


def dedupe_entries(
    entries: Iterable[TocEntry], by_page: bool = True
) -> List[TocEntry]:
    """Drop duplicate anchors and sort by page.

    With *by_page* the first entry per page survives.  Otherwise an entry is
    only dropped when an earlier kept entry has a similar title, so distinct
    pieces listed on the same page stay separate.
    """
    kept: List[TocEntry] = []
    if by_page:
        seen = set()
        for entry in entries:
            if entry.page in seen:
                continue
            seen.add(entry.page)
            kept.append(entry)
    else:
        for entry in entries:
            if any(similar_title(k.title, entry.title) for k in kept):
                continue
            kept.append(entry)
    return sorted(kept, key=lambda e: e.page)


def _toc_candidates(text: str, profile: PublicationProfile) -> List[tuple]:
    """Raw ``(page, title)`` matches from one TOC page, number-first ones first."""
    out = []
    for m in _RE_TOC_NUM_TITLE.finditer(text):
        out.append((int(m.group(1)), m.group(2).strip()))
    for m in _RE_TOC_TITLE_NUM.finditer(text):
        title = m.group(1).strip()
        if profile.is_section_header(title):
            continue
        out.append((int(m.group(2)), title))
    return out


def collect_toc_entries(
    pages: Sequence[Page],
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> List[TocEntry]:
    """Scrape ``(page, title)`` pairs from every page carrying a TOC marker.

    Returns entries in discovery order, without fallback or deduplication.
    """
    profile, cfg = _resolve(profile, cfg)
    entries: List[TocEntry] = []

    for page in pages:
        text = page.text or ""
        if not profile.is_toc_page(text):
            continue
        logger.debug("collect_toc_entries: TOC marker on page %d", page.number)

        for page_num, raw in _toc_candidates(text, profile):
            title = clean_toc_title(raw, profile)
            if len(title) < cfg.min_title_len or page_num == 0:
                logger.debug(
                    "  rejected TOC match %r -> page %d", raw[:40], page_num
                )
                continue
            for single in split_toc_title(title, cfg.min_title_len):
                entries.append(TocEntry(page=page_num, title=single, source="toc"))

    return entries


def detect_headers(
    pages: Sequence[Page],
    profile: PublicationProfile | None = None,
) -> List[TocEntry]:
    """Anchor an entry on every line that is one of the profile's rubric names.

    The line itself (whitespace collapsed) becomes the placeholder title.
    """
    if profile is None:
        profile = get_profile(SplitConfig().profile)
    entries: List[TocEntry] = []
    for page in pages:
        for line in page.lines():
            if profile.is_section_header(line):
                entries.append(
                    TocEntry(
                        page=page.number,
                        title=_RE_WS.sub(" ", line).strip(),
                        source="header",
                    )
                )
    return entries


def detect_toc_entries(
    pages: Sequence[Page],
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> List[TocEntry]:
    """Article anchors for an issue, preferring the table of contents.

    Falls back to :func:`detect_headers` when no page carries a TOC marker
    or the TOC yields no usable entry.  The result is deduplicated and sorted
    by page.
    """
    profile, cfg = _resolve(profile, cfg)
    entries = collect_toc_entries(pages, profile, cfg)
    if not entries:
        logger.debug("detect_toc_entries: no TOC entries, using section headers")
        entries = detect_headers(pages, profile)
    return dedupe_entries(entries, by_page=cfg.dedupe_by_page)


# ---------------------------------------------------------------------------
# Bounding
# ---------------------------------------------------------------------------


def is_new_article_start(
    text: str,
    profile: PublicationProfile | None = None,
    scan_lines: int = 5,
) -> bool:
    """True when one of the first *scan_lines* lines mentions a rubric name."""
    if not text:
        return False
    if profile is None:
        profile = get_profile(SplitConfig().profile)
    head = text.split("\n")[:scan_lines]
    return any(profile.contains_section_header(line.strip()) for line in head)


def _successor_start(entries: Sequence[TocEntry], i: int) -> Optional[int]:
    # Entries sharing a start page (similarity dedupe) share one range.
    start = entries[i].page
    for entry in entries[i + 1 :]:
        if entry.page > start:
            return entry.page
    return None


def bound_entries(
    entries: Sequence[TocEntry],
    pages: Sequence[Page],
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> List[ArticleCandidate]:
    """Assign each anchor a page range and accumulate its text.

    Entry *i* covers ``[p_i, p_next - 1]``, or ``[p_i, p_i + K]`` with
    ``K = max_article_pages`` when nothing follows.  A page past the start
    stops the walk early when its opening lines carry a rubric name and a
    successor already starts at or before it; that check runs before the
    range check.
    """
    profile, cfg = _resolve(profile, cfg)
    ordered = sorted(entries, key=lambda e: e.page)
    by_number: Dict[int, Page] = {}
    for page in pages:
        by_number.setdefault(page.number, page)
    numbers = sorted(by_number)

    candidates: List[ArticleCandidate] = []
    for i, entry in enumerate(ordered):
        successor = _successor_start(ordered, i)
        if successor is not None:
            end_page = successor - 1
        else:
            end_page = entry.page + cfg.max_article_pages

        texts: List[str] = []
        touched: List[int] = []
        stopped_at: Optional[int] = None
        for num in numbers:
            if num < entry.page:
                continue
            text = by_number[num].text or ""
            if (
                num > entry.page
                and successor is not None
                and num >= successor
                and is_new_article_start(text, profile, cfg.header_scan_lines)
            ):
                stopped_at = num
                break
            if num > end_page:
                break
            texts.append(text)
            touched.append(num)

        if stopped_at is not None:
            end_page = min(end_page, stopped_at - 1)

        candidates.append(
            ArticleCandidate(
                title=entry.title,
                start_page=entry.page,
                end_page=end_page,
                content="\n".join(texts),
                pages=touched,
                source=entry.source,
            )
        )

    return candidates


def refine_candidates(
    candidates: Sequence[ArticleCandidate],
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> List[ArticleCandidate]:
    """Replace each title with one found in its body when that is non-trivial."""
    profile, cfg = _resolve(profile, cfg)
    for cand in candidates:
        refined = refine_title(cand.content, cand.title, profile, cfg)
        if refined and len(refined) > 2 and refined != cand.title:
            logger.debug(
                "refine: page %d %r -> %r", cand.start_page, cand.title, refined
            )
            cand.title = refined
    return list(candidates)


def drop_empty(candidates: Iterable[ArticleCandidate]) -> List[ArticleCandidate]:
    """Remove candidates whose content is whitespace only."""
    return [c for c in candidates if not c.is_empty()]


def bound_and_extract(
    entries: Sequence[TocEntry],
    pages: Sequence[Page],
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> List[ArticleCandidate]:
    """Bound, refine (when ``cfg.refine_titles``) and filter article candidates."""
    profile, cfg = _resolve(profile, cfg)
    candidates = bound_entries(entries, pages, profile, cfg)
    if cfg.refine_titles:
        candidates = refine_candidates(candidates, profile, cfg)
    return drop_empty(candidates)


# ---------------------------------------------------------------------------
# Title refinement
# ---------------------------------------------------------------------------


def normalize_title(
    title: str,
    profile: PublicationProfile | None = None,
    max_len: int = 60,
) -> str:
    """Collapse whitespace, drop one leading definite article, cap the length."""
    if profile is None:
        profile = get_profile(SplitConfig().profile)
    title = _RE_WS.sub(" ", title).strip()
    if profile.definite_articles:
        articles = "|".join(re.escape(a) for a in profile.definite_articles)
        title = re.sub(rf"^(?:{articles})\s+", "", title, count=1, flags=re.I)
    if len(title) > max_len:
        title = title[: max_len - 3] + "..."
    return title


def _starts_with_stopword(line: str, profile: PublicationProfile) -> bool:
    parts = line.split(None, 1)
    if len(parts) < 2:
        return False
    return parts[0].lower() in profile.leading_stopwords


def _title_from_first_lines(
    lines: Sequence[str], profile: PublicationProfile
) -> Optional[str]:
    for line in lines:
        if profile.is_section_header(line):
            continue
        if len(line) > 80:
            continue
        if any(q in line for q in _QUOTE_CHARS):
            continue
        if _RE_STARTS_DIGIT.match(line):
            continue
        if _starts_with_stopword(line, profile):
            continue
        if _RE_STARTS_UPPER.match(line) and 3 <= len(line) <= 60:
            if 1 <= len(line.split()) <= 10:
                return line
    return None


def _title_from_patterns(
    content: str, lines: Sequence[str], profile: PublicationProfile
) -> Optional[str]:
    for pattern in profile.title_patterns:
        title = pattern.extract(content, lines)
        if title:
            logger.debug("refine: pattern %s matched %r", pattern.name, title)
            return title
    return None


def _title_from_capitalized_run(
    lines: Sequence[str], profile: PublicationProfile
) -> Optional[str]:
    for line in lines[:_CAPITALIZED_RUN_LINES]:
        words = line.split()
        if not 2 <= len(words) <= 6:
            continue
        if all(
            _RE_STARTS_UPPER.match(w) or w.lower() in profile.connectives
            for w in words
        ):
            return line
    return None


def refine_title(
    content: str,
    fallback_title: str,
    profile: PublicationProfile | None = None,
    cfg: SplitConfig | None = None,
) -> str:
    """Find a better title for an article in its own body text.

    Strategies, first accepted result wins:

    1. the first plausible title line (skipping rubric names, long lines,
       quotes, lines opening with a digit or a lowercase function word);
    2. the profile's structural title patterns, in order;
    3. a 2-6 word line among the first six whose words are all capitalized
       or connectives.

    Each result goes through :func:`normalize_title` and is accepted only
    when longer than two characters.  Bodies shorter than
    ``cfg.title_min_content_chars`` and bodies where nothing is accepted
    keep *fallback_title*.
    """
    profile, cfg = _resolve(profile, cfg)
    stripped = (content or "").strip()
    if len(stripped) < cfg.title_min_content_chars:
        return fallback_title

    lines = [ln.strip() for ln in stripped.split("\n") if ln.strip()]
    if not lines:
        return fallback_title

    strategies = (
        lambda: _title_from_first_lines(lines, profile),
        lambda: _title_from_patterns(stripped, lines, profile),
        lambda: _title_from_capitalized_run(lines, profile),
    )
    for strategy in strategies:
        raw = strategy()
        if not raw:
            continue
        title = normalize_title(raw, profile, cfg.max_title_len)
        if len(title) > 2:
            return title

    return fallback_title
