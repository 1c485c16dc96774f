"""
Batch entry point: split magazine issue PDFs into per-article YAML files.
Usage:
    python scripts/run_issue_batch.py magazines/ --out-root out
    python scripts/run_issue_batch.py issue_01.pdf issue_02.pdf --no-images
    python scripts/run_issue_batch.py out/issue_01.yaml --from-dump
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
import argparse
import logging
from typing import List

from magsplit import SplitConfig, run_batch, run_dump_batch


def _collect_inputs(paths: List[Path], suffix: str) -> List[Path]:
    """Expand directories to their ``*<suffix>`` files, sorted by name."""
    out: List[Path] = []
    for p in paths:
        if p.is_dir():
            out.extend(sorted(q for q in p.iterdir() if q.suffix.lower() == suffix))
        else:
            out.append(p)
    return out


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Split magazine issue PDFs into article records"
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="Issue PDFs or directories of PDFs (page dumps with --from-dump)",
    )
    parser.add_argument(
        "--out-root",
        type=Path,
        default=Path("out"),
        help="Directory for page dumps and *_articles folders",
    )
    parser.add_argument(
        "--from-dump",
        action="store_true",
        default=False,
        help="Re-segment existing page dump YAML files instead of PDFs",
    )
    parser.add_argument(
        "--no-toc",
        action="store_true",
        default=False,
        help="Skip table-of-contents detection; anchor on section headers only",
    )
    parser.add_argument(
        "--no-refine",
        action="store_true",
        default=False,
        help="Keep TOC/header titles instead of refining them from article text",
    )
    parser.add_argument(
        "--merge-similar",
        action="store_true",
        default=False,
        help="Keep same-page TOC entries unless their titles are similar",
    )
    parser.add_argument(
        "--no-images", action="store_true", default=False, help="Skip image extraction"
    )
    parser.add_argument(
        "--image-metadata-only",
        action="store_true",
        default=False,
        help="Record images without the base64 PNG payload",
    )
    parser.add_argument(
        "--image-resolution", type=int, default=150, help="Image render DPI"
    )
    parser.add_argument(
        "--max-article-pages",
        type=int,
        default=20,
        help="Page cap for the last article of an issue",
    )
    parser.add_argument("--profile", default="default", help="Publication profile")
    parser.add_argument("-v", "--verbose", action="store_true", default=False)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = SplitConfig(
        profile=args.profile,
        use_toc=not args.no_toc,
        refine_titles=not args.no_refine,
        dedupe_by_page=not args.merge_similar,
        extract_images=not args.no_images,
        embed_image_data=not args.image_metadata_only,
        image_resolution=args.image_resolution,
        max_article_pages=args.max_article_pages,
    )

    if args.from_dump:
        results = run_dump_batch(
            _collect_inputs(args.inputs, ".yaml"), args.out_root, cfg
        )
    else:
        results = run_batch(_collect_inputs(args.inputs, ".pdf"), args.out_root, cfg)

    for ir in results:
        name = ir.pdf_path.name if ir.pdf_path else ir.page_dump.name
        if ir.ok:
            print(f"{name}: {len(ir.articles)} articles -> {ir.articles_dir}")
        else:
            print(f"{name}: FAILED ({ir.error['message']})")

    return 0 if all(ir.ok for ir in results) else 1


if __name__ == "__main__":
    sys.exit(main())
