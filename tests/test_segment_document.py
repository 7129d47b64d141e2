"""Tests for scripts/segment_document.py."""
from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from clauseseg.seg_store import SegmentationStore
from scripts.segment_document import (
    EXIT_INPUT_ERROR,
    EXIT_NEEDS_REVIEW,
    EXIT_OK,
    build_parser,
    main,
)

TEXT = "1. DEFINITIONS\n\nFoo.\n\n2. TERM\n\nBar."


def _inputs(tmp_path: Path, pages: str | None = None) -> tuple[Path, Path]:
    text_path = tmp_path / "concatenated.txt"
    text_path.write_text(TEXT, encoding="utf-8")
    pages_path = tmp_path / "pages.jsonl"
    pages_path.write_text(
        pages if pages is not None else f'{{"page": 1, "char_count": {len(TEXT)}}}\n',
        encoding="utf-8",
    )
    return text_path, pages_path


def _argv(text_path: Path, pages_path: Path, *extra: str) -> list[str]:
    return [
        "--text", str(text_path),
        "--pages", str(pages_path),
        "--document-id", "doc-1",
        *extra,
    ]


# ── Parser ───────────────────────────────────────────────────────────


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(
            ["--text", "t", "--pages", "p", "--document-id", "d"],
        )
        assert args.ocr_used is False
        assert args.ocr_confidence is None
        assert args.clause_end_mode is None
        assert args.db is None

    def test_rejects_unknown_end_mode(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(
                ["--text", "t", "--pages", "p", "--document-id", "d",
                 "--clause-end-mode", "nearest"],
            )


# ── main ─────────────────────────────────────────────────────────────


class TestMain:
    def test_completed_writes_clauses(self, tmp_path: Path) -> None:
        text_path, pages_path = _inputs(tmp_path)
        out = tmp_path / "out"
        rc = main(_argv(text_path, pages_path, "--out-dir", str(out)))
        assert rc == EXIT_OK
        clauses = out / "doc-1" / "segments" / "clauses.jsonl"
        rows = [orjson.loads(line) for line in clauses.read_bytes().splitlines()]
        assert [r["ordinal"] for r in rows] == [1, 2]
        assert not (out / "doc-1" / "segments" / "preview.json").exists()

    def test_needs_review_writes_preview(self, tmp_path: Path) -> None:
        text_path, pages_path = _inputs(tmp_path)
        out = tmp_path / "out"
        rc = main(_argv(
            text_path, pages_path,
            "--out-dir", str(out), "--ocr-used", "--ocr-confidence", "0.5",
        ))
        assert rc == EXIT_NEEDS_REVIEW
        preview = orjson.loads((out / "doc-1" / "segments" / "preview.json").read_bytes())
        assert "low_ocr_confidence" in preview["review_reasons"]
        assert not (out / "doc-1" / "segments" / "clauses.jsonl").exists()

    def test_json_output(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        text_path, pages_path = _inputs(tmp_path)
        assert main(_argv(text_path, pages_path, "--json")) == EXIT_OK
        data = orjson.loads(capsys.readouterr().out)
        assert data["metrics"]["accepted_count"] == 1
        assert data["needs_review"] is False

    def test_missing_input(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _, pages_path = _inputs(tmp_path)
        rc = main(_argv(tmp_path / "missing.txt", pages_path))
        assert rc == EXIT_INPUT_ERROR
        assert "input not found" in capsys.readouterr().err

    def test_bad_pages_row(self, tmp_path: Path) -> None:
        text_path, pages_path = _inputs(tmp_path, pages='{"page": 1}\n')
        assert main(_argv(text_path, pages_path)) == EXIT_INPUT_ERROR

    def test_non_numeric_char_count(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        text_path, pages_path = _inputs(tmp_path, pages='{"page": 1, "char_count": "abc"}\n')
        db = tmp_path / "seg.duckdb"
        rc = main(_argv(text_path, pages_path, "--db", str(db)))
        assert rc == EXIT_INPUT_ERROR
        assert "char_count" in capsys.readouterr().err
        assert not db.exists()

    def test_text_not_utf8(self, tmp_path: Path) -> None:
        text_path, pages_path = _inputs(tmp_path)
        text_path.write_bytes(b"1. TERM\n\n\xff\xfe body")
        db = tmp_path / "seg.duckdb"
        assert main(_argv(text_path, pages_path, "--db", str(db))) == EXIT_INPUT_ERROR
        assert not db.exists()

    def test_bad_ocr_confidence(self, tmp_path: Path) -> None:
        text_path, pages_path = _inputs(tmp_path)
        rc = main(_argv(text_path, pages_path, "--ocr-used", "--ocr-confidence", "1.5"))
        assert rc == EXIT_INPUT_ERROR

    def test_db_records_and_skips_rerun(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        text_path, pages_path = _inputs(tmp_path)
        db = tmp_path / "seg.duckdb"
        assert main(_argv(text_path, pages_path, "--db", str(db))) == EXIT_OK
        capsys.readouterr()

        assert main(_argv(text_path, pages_path, "--db", str(db))) == EXIT_OK
        assert "Already segmented: doc-1" in capsys.readouterr().out

        with SegmentationStore(db) as store:
            run = store.find_finished_run("doc-1", "seg-v1.0")
            assert run is not None
            assert run["status"] == "completed"
            assert run["text_key"] == str(text_path)
            assert len(store.get_clauses(run["run_id"])) == 2

    def test_new_version_segments_again(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        text_path, pages_path = _inputs(tmp_path)
        db = tmp_path / "seg.duckdb"
        assert main(_argv(text_path, pages_path, "--db", str(db))) == EXIT_OK
        rc = main(_argv(
            text_path, pages_path, "--db", str(db), "--segmentation-version", "seg-v1.1",
        ))
        assert rc == EXIT_OK
        assert "Already segmented" not in capsys.readouterr().out
