"""Publication profiles: section-header tokens and title-extraction rules.

Every magazine prints its own recurring rubric names atop each article and
lays out its table of contents in its own way.  Those hand-tuned lists live
here as data so that segmentation logic never carries publication literals.

A :class:`PublicationProfile` bundles:

- ``toc_markers`` — words that identify a table-of-contents page
- ``section_headers`` — the rubric catalogue (one :class:`SectionHeader`
  per token, matched case-insensitively with flexible whitespace)
- ``title_patterns`` — ordered structural regexes used by title refinement
- word lists for the title heuristics (leading stopwords, connectives,
  definite articles)

Profiles are registered in :data:`PROFILES` and selected by name through
``SplitConfig.profile``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

_FLAGS = re.IGNORECASE | re.UNICODE


def _token_body(token: str) -> str:
    """Regex body for *token*: escaped words joined by flexible whitespace."""
    return r"\s+".join(re.escape(part) for part in token.split())


@dataclass(frozen=True)
class SectionHeader:
    """One recurring rubric name (e.g. ``Einreise``)."""

    token: str
    line_regex: re.Pattern
    search_regex: re.Pattern

    def matches_line(self, line: str) -> bool:
        """True when the whole (stripped) line is this rubric name."""
        return bool(self.line_regex.match(line.strip()))

    def found_in(self, text: str) -> bool:
        """True when the rubric name occurs in *text* as a standalone word run."""
        return bool(self.search_regex.search(text))


def section_header(token: str) -> SectionHeader:
    """Build a :class:`SectionHeader` for *token*."""
    body = _token_body(token)
    return SectionHeader(
        token=token,
        line_regex=re.compile(rf"^{body}$", _FLAGS),
        search_regex=re.compile(rf"(?<!\w){body}(?!\w)", _FLAGS),
    )


@dataclass(frozen=True)
class TitlePattern:
    """A structural title-extraction rule.

    When ``group`` is ``None`` the regex only recognises a bare rubric line;
    the title is then looked for in the following lines with
    ``follow_regex``.
    """

    name: str
    regex: re.Pattern
    group: Optional[int] = 1
    min_len: int = 0
    max_len: int = 50
    follow_regex: Optional[re.Pattern] = None
    transform: Optional[Callable[[str], str]] = None
    reject: Optional[re.Pattern] = None

    def extract(self, content: str, lines: Sequence[str]) -> Optional[str]:
        """Return the raw title this rule finds in *content*, or ``None``."""
        m = self.regex.search(content)
        if not m:
            return None

        if self.group is None:
            if self.follow_regex is None:
                return None
            for line in lines[1:4]:
                if self.follow_regex.match(line) and self._fits(line):
                    return line
            return None

        title = (m.group(self.group) or "").strip()
        if self.transform is not None:
            title = self.transform(title)
        if self.reject is not None and self.reject.match(title):
            return None
        return title if self._fits(title) else None

    def _fits(self, title: str) -> bool:
        return self.min_len <= len(title) <= self.max_len


@dataclass(frozen=True)
class PublicationProfile:
    """Everything segmentation needs to know about one publication."""

    name: str
    toc_markers: Tuple[str, ...]
    section_headers: Tuple[SectionHeader, ...]
    title_patterns: Tuple[TitlePattern, ...]
    leading_stopwords: FrozenSet[str]
    connectives: FrozenSet[str]
    definite_articles: Tuple[str, ...]
    toc_regex: re.Pattern
    toc_prefix_regex: re.Pattern
    section_suffix_regex: re.Pattern

    def is_toc_page(self, text: str) -> bool:
        """True when *text* carries a table-of-contents marker."""
        return bool(self.toc_regex.search(text))

    def strip_toc_marker(self, title: str) -> str:
        """Drop a TOC marker word glued to the start of *title*."""
        return self.toc_prefix_regex.sub("", title)

    def header_for_line(self, line: str) -> Optional[SectionHeader]:
        """Return the rubric that *line* consists of, if any."""
        for header in self.section_headers:
            if header.matches_line(line):
                return header
        return None

    def is_section_header(self, line: str) -> bool:
        """True when *line* is exactly one of the rubric names."""
        return self.header_for_line(line) is not None

    def contains_section_header(self, line: str) -> bool:
        """True when *line* mentions any rubric name."""
        return any(h.found_in(line) for h in self.section_headers)

    def strip_section_suffix(self, title: str) -> str:
        """Cut a rubric name (and everything after it) off the end of *title*."""
        return self.section_suffix_regex.sub("", title)


def make_profile(
    name: str,
    toc_markers: Sequence[str],
    section_tokens: Sequence[str],
    title_patterns: Sequence[TitlePattern],
    leading_stopwords: Sequence[str],
    connectives: Sequence[str],
    definite_articles: Sequence[str],
) -> PublicationProfile:
    """Compile a :class:`PublicationProfile` from plain token lists."""
    markers = "|".join(_token_body(m) for m in toc_markers)
    # Longest tokens first so "Bretter der Heimat" wins over shorter overlaps.
    tokens = sorted(section_tokens, key=len, reverse=True)
    suffix = "|".join(_token_body(t) for t in tokens)
    return PublicationProfile(
        name=name,
        toc_markers=tuple(toc_markers),
        section_headers=tuple(section_header(t) for t in section_tokens),
        title_patterns=tuple(title_patterns),
        leading_stopwords=frozenset(w.lower() for w in leading_stopwords),
        connectives=frozenset(w.lower() for w in connectives),
        definite_articles=tuple(definite_articles),
        toc_regex=re.compile(rf"(?<!\w)(?:{markers})(?!\w)", _FLAGS),
        toc_prefix_regex=re.compile(rf"^\s*(?:{markers})(?!\w)\s*", _FLAGS),
        section_suffix_regex=re.compile(
            rf"\s*(?:{suffix}).*$", _FLAGS | re.MULTILINE
        ),
    )


# ---------------------------------------------------------------------------
# Default profile: German-language Swiss magazine
# ---------------------------------------------------------------------------

_UPPER = "A-ZÄÖÜ"
_LOWER = "a-zäöüß"

_DEFAULT_SECTION_TOKENS: List[str] = [
    "Editorial",
    "Einreise",
    "Fundstücke",
    "Alltagswunder",
    "Gedankengang",
    "Culinaria Helvetica",
    "Einwanderer",
    "Spezialist",
    "Schwerpunkt",
    "Alternatives Reisen",
    "Helvetarien",
    "Avantgarde",
    "Herkunft",
    "Bretter der Heimat",
    "Angewandt",
    "Es war einmal",
    "Kunststücke",
    "Ausreise",
    "Kinderreport",
    "Gemeindeportrait",
]


def _capitalize_words(text: str) -> str:
    return " ".join(w.capitalize() for w in text.split())


def _title_rx(pattern: str) -> re.Pattern:
    # Rubric tokens inside these patterns carry their own (?i:...) group;
    # the capitalisation checks on the title part stay case-sensitive.
    return re.compile(pattern, re.UNICODE | re.MULTILINE | re.DOTALL)


_DEFAULT_TITLE_PATTERNS: List[TitlePattern] = [
    # Interview opener: Einreise «quote» Name Surname, 34, aus Bern
    TitlePattern(
        name="interview_person",
        regex=_title_rx(
            rf"(?i:Einreise)\s+«.+?»\s+"
            rf"([{_UPPER}][{_LOWER}]+(?:[ \t]+[{_UPPER}{_LOWER}][{_LOWER}]+)*)"
            rf",?\s*\d+,?\s*[{_LOWER}]"
        ),
        max_len=40,
        transform=_capitalize_words,
        reject=re.compile(r"^(?:Text|Bild|Foto)\b"),
    ),
    # Alltagswunder Nasse Kleidung Text: ...
    TitlePattern(
        name="rubric_colon_title",
        regex=_title_rx(
            rf"(?i:Alltagswunder)\s+([{_UPPER}][{_UPPER}{_LOWER} \t]+?)"
            r"(?:[ \t]+Text:|$)"
        ),
        min_len=3,
    ),
    # Der Herr des Mythenkreuzes
    TitlePattern(
        name="definite_article_phrase",
        regex=_title_rx(
            rf"\b([Dd](?:er|ie)[ \t]+[{_UPPER}][{_LOWER}]+"
            rf"(?:[ \t]+[{_LOWER}]+)*(?:[ \t]+[{_UPPER}][{_LOWER}]+)*)"
        ),
    ),
    TitlePattern(
        name="einwanderer_title",
        regex=_title_rx(
            rf"(?i:Einwanderer)\s+([{_UPPER}][{_LOWER} \t]+?)(?:[ \t]+Text:|$)"
        ),
        min_len=3,
    ),
    # Bare rubric line; the title sits on one of the next lines.
    TitlePattern(
        name="spezialist_bare",
        regex=_title_rx(r"(?i:Spezialist)[ \t]*\d*[ \t]*$"),
        group=None,
        min_len=3,
        follow_regex=re.compile(rf"^[{_UPPER}][{_UPPER}{_LOWER} ]+$"),
    ),
    TitlePattern(
        name="gedankengang_title",
        regex=_title_rx(
            rf"(?i:Gedankengang)\s+([{_UPPER}][{_LOWER} \t]+?)(?:\s|$)"
        ),
        min_len=3,
    ),
]

DEFAULT_PROFILE = make_profile(
    name="default",
    toc_markers=["Inhalt", "Inhaltsverzeichnis"],
    section_tokens=_DEFAULT_SECTION_TOKENS,
    title_patterns=_DEFAULT_TITLE_PATTERNS,
    leading_stopwords=[
        "der", "die", "das", "ein", "eine", "und", "oder",
        "mit", "von", "zu", "in", "auf", "an", "im", "am",
    ],
    connectives=[
        "und", "oder", "von", "zu", "im", "am",
        "der", "die", "das", "ein", "eine",
    ],
    definite_articles=["der", "die", "das"],
)

PROFILES: Dict[str, PublicationProfile] = {DEFAULT_PROFILE.name: DEFAULT_PROFILE}


def get_profile(name: str) -> PublicationProfile:
    """Return the registered profile called *name*."""
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"Unknown publication profile {name!r} (known: {sorted(PROFILES)})"
        ) from None
