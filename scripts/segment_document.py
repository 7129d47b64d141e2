#!/usr/bin/env python3
"""Segment one extracted document into clauses.

Reads the extraction artifacts (concatenated text + ``pages.jsonl``), runs
the segmentation engine and writes the run's artifacts:

    <out-dir>/<document-id>/segments/clauses.jsonl   (completed)
    <out-dir>/<document-id>/segments/preview.json    (needs review)

With ``--db`` the run is also recorded in a DuckDB store, and a document
already segmented at the same ``--segmentation-version`` is skipped.

Exit codes:
    0  completed (or already segmented)
    2  input error (missing file, bad pages.jsonl, bad option)
    3  segmented, but needs human review

Usage::

    python3 scripts/segment_document.py --text doc/concatenated.txt \\
        --pages doc/pages.jsonl --document-id doc-42 --out-dir artifacts/
    python3 scripts/segment_document.py ... --ocr-used --ocr-confidence 0.55 --db seg.duckdb
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from clauseseg.canvas import canvas_stats, normalize_canvas
from clauseseg.config import ALL_CLAUSE_END_MODES, SegmentationConfig
from clauseseg.pipeline import run_segmentation
from clauseseg.seg_store import SegmentationStore
from clauseseg.serialize import (
    dumps_result,
    load_pages_jsonl,
    load_text,
    write_clauses_jsonl,
    write_review_preview,
)

log = logging.getLogger("segment_document")

EXIT_OK = 0
EXIT_INPUT_ERROR = 2
EXIT_NEEDS_REVIEW = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Segment an extracted document into clauses",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--text", required=True, help="Concatenated document text file")
    parser.add_argument("--pages", required=True, help="pages.jsonl with per-page char_count")
    parser.add_argument("--document-id", required=True, help="Stable document identifier")
    parser.add_argument(
        "--ocr-used", action="store_true",
        help="Text came from OCR (applies the OCR score penalty)",
    )
    parser.add_argument(
        "--ocr-confidence", type=float, default=None,
        help="Mean OCR confidence in [0, 1] (default: 1.0)",
    )
    parser.add_argument(
        "--segmentation-version", default=None,
        help="Version tag recorded with the run (default: seg-v1.0)",
    )
    parser.add_argument(
        "--clause-end-mode", choices=ALL_CLAUSE_END_MODES, default=None,
        help="How clause ends are found (default: next_accepted)",
    )
    parser.add_argument("--out-dir", default=None, help="Artifact output root")
    parser.add_argument("--db", default=None, help="Segmentation DuckDB store")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    text_path = Path(args.text)
    pages_path = Path(args.pages)
    for path in (text_path, pages_path):
        if not path.exists():
            print(f"Error: input not found: {path}", file=sys.stderr)
            return EXIT_INPUT_ERROR

    try:
        config = SegmentationConfig.from_options(
            segmentation_version=args.segmentation_version,
            ocr_used=args.ocr_used,
            ocr_confidence=args.ocr_confidence,
            clause_end_mode=args.clause_end_mode,
        )
        pages = load_pages_jsonl(pages_path)
        # UnicodeDecodeError is a ValueError
        text = load_text(text_path)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    log.debug("canvas: %s", canvas_stats(text, normalize_canvas(text)))

    store = SegmentationStore(args.db) if args.db else None
    try:
        if store is not None:
            existing = store.find_finished_run(args.document_id, config.segmentation_version)
            if existing is not None:
                print(
                    f"Already segmented: {args.document_id} "
                    f"({config.segmentation_version}) run={existing['run_id']} "
                    f"status={existing['status']}"
                )
                return EXIT_OK

        run_id = (
            store.create_run(
                args.document_id,
                config.segmentation_version,
                text_key=str(text_path),
                pages_key=str(pages_path),
            )
            if store is not None
            else None
        )

        result = run_segmentation(text, pages, config)

        preview_key: str | None = None
        if args.out_dir:
            segments_dir = Path(args.out_dir) / args.document_id / "segments"
            if result.needs_review:
                preview_key = str(write_review_preview(segments_dir / "preview.json", result))
                log.info("review preview written: %s", preview_key)
            else:
                clauses_path = write_clauses_jsonl(segments_dir / "clauses.jsonl", result.clauses)
                log.info("clauses written: %s", clauses_path)

        if store is not None and run_id is not None:
            status = store.record_result(run_id, result, preview_key=preview_key)
            log.info("run %s recorded as %s", run_id, status)
    finally:
        if store is not None:
            store.close()

    if args.json:
        sys.stdout.write(dumps_result(result, pretty=True).decode("utf-8") + "\n")

    if result.needs_review:
        log.warning(
            "%s needs review: %s", args.document_id, ", ".join(result.review_reasons),
        )
        return EXIT_NEEDS_REVIEW
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
