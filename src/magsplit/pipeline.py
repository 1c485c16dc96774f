"""Pipeline stage infrastructure and issue orchestration.

Provides a canonical pipeline contract for one magazine issue:

    ingest → decode → collect_toc → detect_headers → bound_extract
           → refine_titles → filter_empty → export

``detect_headers`` is the alternate edge taken only when ``collect_toc``
found no usable entry (or is disabled with ``use_toc=False``).

Every stage produces a :class:`StageResult` that is kept on the issue
result.  Gating logic is centralised in :func:`gate` so that the library
entry points and the batch script behave identically.

:func:`segment_pages` runs the segmentation states on already decoded
pages without any file I/O; :func:`run_issue` adds ingest, decode and
export around it, and :func:`run_batch` processes many issues, recording
per-issue I/O failures instead of aborting.
"""

from __future__ import annotations

import hashlib
import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, List, Optional

import yaml

from .catalogue import get_profile
from .config import SplitConfig
from .decode import extract_pages
from .export import load_issue_pages, write_articles, write_issue_pages
from .ingest import IngestError, IssueMeta, ingest_pdf
from .layout import fill_page_text
from .models import ArticleCandidate, Page, TocEntry
from .segment import (
    bound_entries,
    collect_toc_entries,
    dedupe_entries,
    detect_headers,
    drop_empty,
    refine_candidates,
)

logger = logging.getLogger("magsplit.pipeline")

# ── Skip reasons (exhaustive enumeration) ──────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    disabled_by_config = "disabled_by_config"
    no_pages = "no_pages"
    no_entries = "no_entries"
    not_applicable = "not_applicable"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    enabled: bool = False
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "enabled": self.enabled,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.inputs:
            d["inputs"] = self.inputs
        if self.outputs:
            d["outputs"] = self.outputs
        if self.error is not None:
            d["error"] = self.error
        return d


# ── Canonical gating function ──────────────────────────────────────────

# Ordered stage names: the canonical pipeline sequence.
STAGE_ORDER: List[str] = [
    "ingest",
    "decode",
    "collect_toc",
    "detect_headers",
    "bound_extract",
    "refine_titles",
    "filter_empty",
    "export",
]


def gate(
    stage: str,
    cfg: SplitConfig,
    inputs: Dict[str, Any] | None = None,
) -> tuple[bool, Optional[str]]:
    """Decide whether *stage* should run.

    Parameters
    ----------
    stage : str
        One of :data:`STAGE_ORDER`.
    cfg : SplitConfig
        Effective configuration for the run.
    inputs : dict, optional
        Lightweight metadata about upstream outputs (e.g.
        ``{"pages": 84, "toc_entries": 0}``).

    Returns
    -------
    (should_run, skip_reason)
        *should_run* is ``True`` when the stage should execute.
        When ``False``, *skip_reason* explains why.
    """
    if inputs is None:
        inputs = {}

    # Stages that always run unconditionally.
    if stage in ("ingest", "decode", "filter_empty", "export"):
        return True, None

    if stage == "collect_toc":
        if not cfg.use_toc:
            return False, SkipReason.disabled_by_config.value
        if inputs.get("pages", 1) == 0:
            return False, SkipReason.no_pages.value
        return True, None

    if stage == "detect_headers":
        # Alternate edge: only when the TOC produced nothing.
        if inputs.get("toc_entries", 0) > 0:
            return False, SkipReason.not_applicable.value
        if inputs.get("pages", 1) == 0:
            return False, SkipReason.no_pages.value
        return True, None

    if stage == "bound_extract":
        if inputs.get("entries", 1) == 0:
            return False, SkipReason.no_entries.value
        return True, None

    if stage == "refine_titles":
        if not cfg.refine_titles:
            return False, SkipReason.disabled_by_config.value
        if inputs.get("candidates", 1) == 0:
            return False, SkipReason.no_entries.value
        return True, None

    # Unknown stage: not applicable.
    return False, SkipReason.not_applicable.value


# ── Stage context manager ──────────────────────────────────────────────


@contextmanager
def run_stage(
    stage: str,
    cfg: SplitConfig,
    inputs: Dict[str, Any] | None = None,
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with gating + timing.

    Usage::

        with run_stage("collect_toc", cfg, {"pages": len(pages)}) as sr:
            if sr.ran:
                # … do the work …
                sr.counts["entries"] = 12
                sr.status = "success"

    The yielded :class:`StageResult` has ``ran=True`` only when
    :func:`gate` approves the stage. The caller should check ``sr.ran``
    before doing any work. Timing is handled automatically.
    """
    should_run, skip_reason = gate(stage, cfg, inputs)

    sr = StageResult(stage=stage)
    if stage == "collect_toc":
        sr.enabled = cfg.use_toc
    elif stage == "refine_titles":
        sr.enabled = cfg.refine_titles
    else:
        sr.enabled = True

    if inputs:
        sr.inputs = inputs

    if not should_run:
        sr.ran = False
        sr.status = "skipped"
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        # If the caller didn't explicitly set status, mark success if no error.
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        # Re-raise so the outer handler can decide fallback policy.
        raise
    finally:
        elapsed = time.perf_counter() - t0
        sr.duration_ms = int(elapsed * 1000)


# ── Input fingerprint (determinism aid) ────────────────────────────────


def input_fingerprint(pdf_path: Path, cfg: SplitConfig) -> str:
    """Compute a reproducibility fingerprint for an issue run.

    Uses file size + mtime (fast) rather than full content hash.
    """
    pdf_path = Path(pdf_path)
    stat = pdf_path.stat()
    parts = [
        str(pdf_path.resolve()),
        str(stat.st_size),
        str(stat.st_mtime_ns),
        str(sorted(vars(cfg).items())),
    ]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


# ── Segmentation state machine ─────────────────────────────────────────


@dataclass
class SegmentResult:
    """Outcome of :func:`segment_pages` for one issue."""

    entries: List[TocEntry] = field(default_factory=list)
    candidates: List[ArticleCandidate] = field(default_factory=list)
    stages: Dict[str, StageResult] = field(default_factory=dict)
    # Stage names that actually ran, in order.
    path: List[str] = field(default_factory=list)

    @property
    def used_toc(self) -> bool:
        return any(e.source == "toc" for e in self.entries)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for YAML/JSON output."""
        return {
            "path": list(self.path),
            "anchors": "toc" if self.used_toc else "header",
            "entries": len(self.entries),
            "articles": len(self.candidates),
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
        }


def segment_pages(
    pages: List[Page],
    cfg: SplitConfig | None = None,
) -> SegmentResult:
    """Partition an issue's pages into article candidates.

    Runs ``collect_toc → (found?) → bound_extract → refine_titles →
    filter_empty``, taking the ``detect_headers`` edge when the TOC yields
    nothing.  Pages that carry fragments but no text are linearized
    first.  Performs no file I/O; running it twice on the same pages
    gives identical candidates.
    """
    if cfg is None:
        cfg = SplitConfig()
    pages = fill_page_text(pages, cfg)
    profile = get_profile(cfg.profile)
    res = SegmentResult()

    def _record(sr: StageResult) -> None:
        res.stages[sr.stage] = sr
        if sr.ran:
            res.path.append(sr.stage)

    toc: List[TocEntry] = []
    with run_stage("collect_toc", cfg, {"pages": len(pages)}) as sr:
        if sr.ran:
            toc = collect_toc_entries(pages, profile, cfg)
            sr.counts = {"entries": len(toc)}
    _record(sr)

    entries = toc
    with run_stage(
        "detect_headers", cfg, {"pages": len(pages), "toc_entries": len(toc)}
    ) as sr:
        if sr.ran:
            entries = detect_headers(pages, profile)
            sr.counts = {"entries": len(entries)}
    _record(sr)

    res.entries = dedupe_entries(entries, by_page=cfg.dedupe_by_page)

    candidates: List[ArticleCandidate] = []
    with run_stage("bound_extract", cfg, {"entries": len(res.entries)}) as sr:
        if sr.ran:
            candidates = bound_entries(res.entries, pages, profile, cfg)
            sr.counts = {
                "entries_raw": len(entries),
                "candidates": len(candidates),
            }
    _record(sr)

    with run_stage("refine_titles", cfg, {"candidates": len(candidates)}) as sr:
        if sr.ran:
            before = [c.title for c in candidates]
            candidates = refine_candidates(candidates, profile, cfg)
            sr.counts = {
                "refined": sum(
                    1 for b, c in zip(before, candidates) if b != c.title
                )
            }
    _record(sr)

    with run_stage("filter_empty", cfg) as sr:
        kept = drop_empty(candidates)
        sr.counts = {"dropped": len(candidates) - len(kept)}
        candidates = kept
    _record(sr)

    res.candidates = candidates
    logger.debug(
        "segment_pages: %s -> %d articles", " → ".join(res.path), len(candidates)
    )
    return res


# ── Issue-level result ─────────────────────────────────────────────────


@dataclass
class IssueResult:
    """Aggregated result for one issue run."""

    pdf_path: Optional[Path] = None
    meta: Optional[IssueMeta] = None
    pages: List[Page] = field(default_factory=list)
    segment: Optional[SegmentResult] = None
    stages: Dict[str, StageResult] = field(default_factory=dict)
    page_dump: Optional[Path] = None
    articles_dir: Optional[Path] = None
    fingerprint: Optional[str] = None
    error: Optional[Dict[str, str]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def articles(self) -> List[ArticleCandidate]:
        return self.segment.candidates if self.segment else []

    def to_summary_dict(self) -> Dict[str, Any]:
        """Serialize issue result to a summary dict."""
        d: Dict[str, Any] = {
            "pdf": str(self.pdf_path) if self.pdf_path else None,
            "status": "success" if self.ok else "failed",
            "pages": len(self.pages),
            "articles": len(self.articles),
        }
        if self.fingerprint:
            d["fingerprint"] = self.fingerprint
        if self.articles_dir is not None:
            d["articles_dir"] = str(self.articles_dir)
        if self.error is not None:
            d["error"] = self.error
        stages = {n: sr.to_dict() for n, sr in self.stages.items()}
        if self.segment is not None:
            stages.update(
                {n: sr.to_dict() for n, sr in self.segment.stages.items()}
            )
        d["stages"] = stages
        return d


def _export(
    ir: IssueResult,
    out_root: Path,
    stem: str,
    cfg: SplitConfig,
    write_pages: bool = True,
) -> None:
    with run_stage("export", cfg) as sr:
        out_root.mkdir(parents=True, exist_ok=True)
        if write_pages:
            ir.page_dump = write_issue_pages(ir.pages, out_root / f"{stem}.yaml")
            sr.outputs["page_dump"] = str(ir.page_dump)
        ir.articles_dir = out_root / f"{stem}_articles"
        files = write_articles(ir.articles, ir.articles_dir)
        sr.outputs["articles_dir"] = str(ir.articles_dir)
        sr.counts = {"articles": len(files)}
    ir.stages["export"] = sr


def run_issue(
    pdf_path: Path,
    out_root: Path,
    cfg: SplitConfig | None = None,
) -> IssueResult:
    """Ingest, decode, segment and export one issue PDF.

    Writes ``<out_root>/<stem>.yaml`` (page dump) and
    ``<out_root>/<stem>_articles/`` (one YAML per article plus
    ``summary.yaml``).  Output is written once, after segmentation
    completes; re-running overwrites it.

    Raises
    ------
    IngestError
        When the PDF cannot be validated or decoded.
    OSError
        When the output cannot be written.
    """
    if cfg is None:
        cfg = SplitConfig()
    pdf_path = Path(pdf_path)
    out_root = Path(out_root)

    ir = IssueResult(pdf_path=pdf_path)

    with run_stage("ingest", cfg) as sr:
        ir.meta = ingest_pdf(pdf_path)
        ir.fingerprint = input_fingerprint(pdf_path, cfg)
        sr.counts = {"pages": ir.meta.num_pages, "images": ir.meta.image_count}
    ir.stages["ingest"] = sr

    with run_stage("decode", cfg) as sr:
        ir.pages = extract_pages(pdf_path, cfg)
        sr.counts = {
            "pages": len(ir.pages),
            "fragments": sum(len(p.fragments) for p in ir.pages),
            "images": sum(len(p.images) for p in ir.pages),
            "empty_pages": sum(1 for p in ir.pages if not p.text.strip()),
        }
    ir.stages["decode"] = sr

    ir.segment = segment_pages(ir.pages, cfg)
    _export(ir, out_root, pdf_path.stem, cfg)

    logger.info(
        "run_issue %s: %d pages, %d articles",
        pdf_path.name,
        len(ir.pages),
        len(ir.articles),
    )
    return ir


def run_dump(
    dump_path: Path,
    out_root: Path | None = None,
    cfg: SplitConfig | None = None,
) -> IssueResult:
    """Re-segment an existing page dump without touching the PDF.

    Articles go to ``<out_root>/<stem>_articles/`` where *out_root*
    defaults to the dump's directory.  The dump itself is not rewritten.
    """
    if cfg is None:
        cfg = SplitConfig()
    dump_path = Path(dump_path)
    out_root = Path(out_root) if out_root is not None else dump_path.parent

    ir = IssueResult(pdf_path=None)
    with run_stage("decode", cfg) as sr:
        ir.pages = load_issue_pages(dump_path)
        sr.counts = {"pages": len(ir.pages)}
        sr.inputs = {"page_dump": str(dump_path)}
    ir.stages["decode"] = sr
    ir.page_dump = dump_path

    ir.segment = segment_pages(ir.pages, cfg)
    _export(ir, out_root, dump_path.stem, cfg, write_pages=False)

    logger.info(
        "run_dump %s: %d pages, %d articles",
        dump_path.name,
        len(ir.pages),
        len(ir.articles),
    )
    return ir


def run_batch(
    pdf_paths: Iterable[Path],
    out_root: Path,
    cfg: SplitConfig | None = None,
) -> List[IssueResult]:
    """Process several issues; one unreadable issue does not stop the rest.

    Per-issue :class:`IngestError` and :class:`OSError` are logged and
    recorded on that issue's :class:`IssueResult` (``error`` set,
    ``ok`` false).  Other exceptions propagate.
    """
    if cfg is None:
        cfg = SplitConfig()

    results: List[IssueResult] = []
    for pdf_path in pdf_paths:
        pdf_path = Path(pdf_path)
        try:
            ir = run_issue(pdf_path, out_root, cfg)
        except (IngestError, OSError) as exc:
            logger.error("run_batch %s failed: %s", pdf_path.name, exc)
            ir = IssueResult(
                pdf_path=pdf_path,
                error={"type": type(exc).__name__, "message": str(exc)},
            )
        results.append(ir)

    failed = sum(1 for r in results if not r.ok)
    logger.info(
        "run_batch: %d issues, %d failed, %d articles",
        len(results),
        failed,
        sum(len(r.articles) for r in results),
    )
    return results


def run_dump_batch(
    dump_paths: Iterable[Path],
    out_root: Path | None = None,
    cfg: SplitConfig | None = None,
) -> List[IssueResult]:
    """Re-segment several page dumps; one unreadable dump does not stop the rest.

    Per-dump :class:`ValueError` (not a page dump), :class:`OSError` and
    ``yaml.YAMLError`` are logged and recorded on that dump's
    :class:`IssueResult`.  Other exceptions propagate.
    """
    if cfg is None:
        cfg = SplitConfig()

    results: List[IssueResult] = []
    for dump_path in dump_paths:
        dump_path = Path(dump_path)
        try:
            ir = run_dump(dump_path, out_root, cfg)
        except (ValueError, OSError, yaml.YAMLError) as exc:
            logger.error("run_dump_batch %s failed: %s", dump_path.name, exc)
            ir = IssueResult(
                page_dump=dump_path,
                error={"type": type(exc).__name__, "message": str(exc)},
            )
        results.append(ir)

    logger.info(
        "run_dump_batch: %d dumps, %d failed, %d articles",
        len(results),
        sum(1 for r in results if not r.ok),
        sum(len(r.articles) for r in results),
    )
    return results
