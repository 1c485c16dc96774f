from dataclasses import dataclass

from .catalogue import PROFILES


class ConfigValidationError(ValueError):
    """Raised when a SplitConfig field has an invalid value."""


def _check_range(name: str, value: float, lo: float, hi: float) -> None:
    if not (lo <= value <= hi):
        raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


@dataclass
class SplitConfig:
    """Tunables for page linearization and article segmentation."""

    # ── Layout reconstruction ──────────────────────────────────────────
    # Dead zone (layout units) either side of the page midpoint when counting
    # fragments per column.
    column_margin: float = 10.0
    # Minimum fragments on each side of the midpoint for a two-column page.
    min_column_fragments: int = 10
    # Minimum horizontal spread (max x - min x) for a two-column page.
    min_column_width: float = 200.0
    # Fragments whose y differs by less than this share a line.
    line_tolerance: float = 3.0

    # ── Linearization sanity gate ──────────────────────────────────────
    # Lines at or below this length count as "short" (fragment garbage).
    short_line_max_len: int = 2
    # Reject when more than this fraction of lines is short.
    short_line_ratio: float = 0.7
    # The short-line ratio only applies to pages with more lines than this.
    min_lines_for_ratio: int = 5
    # Digit-only pages longer than this are stray page-number extractions.
    digit_only_max_len: int = 20

    # ── Decoding (pdfplumber) ──────────────────────────────────────────
    x_tolerance: float = 3.0
    y_tolerance: float = 3.0
    # Record embedded images per page.
    extract_images: bool = True
    # Render DPI for embedded image payloads.
    image_resolution: int = 150
    # Store a base64 PNG of each image region (off = metadata only).
    embed_image_data: bool = True

    # ── Segmentation ───────────────────────────────────────────────────
    # Publication profile name (see magsplit.catalogue.PROFILES).
    profile: str = "default"
    # Look for a table of contents first; off = header detection only.
    use_toc: bool = True
    # Replace TOC/header titles with titles found in the article body.
    refine_titles: bool = True
    # Keep one entry per start page; off = merge only similar titles.
    dedupe_by_page: bool = True
    # Page cap (K) for the last article of an issue.
    max_article_pages: int = 20
    # Leading lines of a page scanned for a section-header token.
    header_scan_lines: int = 5
    # Shortest accepted TOC title.
    min_title_len: int = 3
    # Refined titles are truncated with an ellipsis beyond this length.
    max_title_len: int = 60
    # Shorter article bodies keep their detected title.
    title_min_content_chars: int = 50

    def __post_init__(self) -> None:
        """Validate field ranges to catch misconfiguration early."""
        _check_range("short_line_ratio", self.short_line_ratio, 0.0, 1.0)

        for name in (
            "min_column_width",
            "line_tolerance",
            "x_tolerance",
            "y_tolerance",
        ):
            _check_positive(name, getattr(self, name))

        for name in (
            "column_margin",
            "short_line_max_len",
            "digit_only_max_len",
            "title_min_content_chars",
        ):
            _check_non_negative(name, getattr(self, name))

        for name in (
            "min_column_fragments",
            "min_lines_for_ratio",
            "image_resolution",
            "header_scan_lines",
            "min_title_len",
        ):
            val = getattr(self, name)
            if val < 1:
                raise ConfigValidationError(f"{name}={val} must be >= 1")

        _check_non_negative("max_article_pages", self.max_article_pages)

        # Room for at least one character before the ellipsis.
        if self.max_title_len < 4:
            raise ConfigValidationError(
                f"max_title_len={self.max_title_len} must be >= 4"
            )

        if self.profile not in PROFILES:
            raise ConfigValidationError(
                f"profile={self.profile!r} must be one of {sorted(PROFILES)}"
            )
