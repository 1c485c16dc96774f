"""Magazine issue splitting: PDF pages to reading-order text to articles.

Frequently-used symbols are re-exported here for convenience.
For specialised imports (segmentation helpers, publication profiles,
YAML readers, etc.) import directly from the relevant submodule — e.g.::

    from magsplit.segment import refine_title, similar_title
    from magsplit.catalogue import make_profile, PROFILES
    from magsplit.export import load_issue_pages
"""

# ── Core models & config ──────────────────────────────────────────────

from .catalogue import PublicationProfile, get_profile
from .config import ConfigValidationError, SplitConfig
from .decode import extract_page, extract_pages
from .export import generate_filename, write_articles, write_issue_pages
from .ingest import IngestError, IssueMeta, ingest_pdf
from .layout import linearize, looks_reasonable
from .models import ArticleCandidate, Page, PageFragment, PageImage, TocEntry
from .pipeline import (
    IssueResult,
    SegmentResult,
    StageResult,
    run_batch,
    run_dump,
    run_dump_batch,
    run_issue,
    segment_pages,
)
from .segment import (
    bound_and_extract,
    detect_headers,
    detect_toc_entries,
    refine_title,
)

__all__ = [
    # Models & config
    "SplitConfig",
    "ConfigValidationError",
    "PageFragment",
    "PageImage",
    "Page",
    "TocEntry",
    "ArticleCandidate",
    "PublicationProfile",
    "get_profile",
    # Layout
    "linearize",
    "looks_reasonable",
    # Segmentation
    "detect_toc_entries",
    "detect_headers",
    "bound_and_extract",
    "refine_title",
    # Pipeline
    "IssueResult",
    "SegmentResult",
    "StageResult",
    "segment_pages",
    "run_issue",
    "run_dump",
    "run_dump_batch",
    "run_batch",
    # Ingest / decode
    "IngestError",
    "IssueMeta",
    "ingest_pdf",
    "extract_page",
    "extract_pages",
    # Export
    "generate_filename",
    "write_articles",
    "write_issue_pages",
]
