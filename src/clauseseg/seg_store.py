"""DuckDB persistence for segmentation runs.

Caller-side adapter: the engine returns a ``SegmentationResult`` and this
store records it. Tables:

* ``segmentation_runs``      — one row per run, status + metrics + artifact keys
* ``clauses``                — one row per clause, unique on (run_id, ordinal)
* ``segmentation_anomalies`` — anomalies in detection order
* ``segmentation_events``    — the run's audit trail

A run is finished once its status is ``completed`` or ``needs_review``;
``find_finished_run`` is the idempotency check callers use before running
the same document and version again.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any
from uuid import uuid4

import duckdb
import orjson

from clauseseg.seg_types import SegmentationResult

SCHEMA_VERSION = "1.0.0"

STATUS_STARTED = "started"
STATUS_COMPLETED = "completed"
STATUS_NEEDS_REVIEW = "needs_review"
FINISHED_STATUSES = (STATUS_COMPLETED, STATUS_NEEDS_REVIEW)

_VERSION_RE = re.compile(r"seg-v(\d+)\.(\d+)\.(\d+)")


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS segmentation_runs (
    run_id VARCHAR PRIMARY KEY,
    document_id VARCHAR NOT NULL,
    segmentation_version VARCHAR NOT NULL,
    segmentation_major INTEGER NOT NULL,
    segmentation_minor INTEGER NOT NULL,
    segmentation_patch INTEGER NOT NULL,
    status VARCHAR NOT NULL DEFAULT 'started',
    text_key VARCHAR,
    pages_key VARCHAR,
    preview_key VARCHAR,
    candidate_count INTEGER,
    accepted_count INTEGER,
    suppressed_count INTEGER,
    mean_conf_boundary DOUBLE,
    ocr_used BOOLEAN,
    review_reasons VARCHAR NOT NULL DEFAULT '[]',
    created_at VARCHAR NOT NULL,
    updated_at VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS clauses (
    run_id VARCHAR NOT NULL,
    ordinal INTEGER NOT NULL,
    number_label VARCHAR,
    number_label_normalized VARCHAR,
    heading_text VARCHAR,
    start_char INTEGER NOT NULL,
    end_char INTEGER NOT NULL,
    start_page INTEGER NOT NULL,
    end_page INTEGER NOT NULL,
    detected_style VARCHAR NOT NULL,
    confidence_boundary DOUBLE NOT NULL,
    confidence_heading DOUBLE NOT NULL,
    anomaly_flags VARCHAR NOT NULL DEFAULT '[]',
    text_snippet VARCHAR NOT NULL DEFAULT '',
    PRIMARY KEY (run_id, ordinal)
);

CREATE TABLE IF NOT EXISTS segmentation_anomalies (
    run_id VARCHAR NOT NULL,
    seq INTEGER NOT NULL,
    anomaly_type VARCHAR NOT NULL,
    at INTEGER NOT NULL,
    severity VARCHAR NOT NULL,
    description VARCHAR NOT NULL,
    PRIMARY KEY (run_id, seq)
);

CREATE TABLE IF NOT EXISTS segmentation_events (
    run_id VARCHAR NOT NULL,
    seq INTEGER NOT NULL,
    event_type VARCHAR NOT NULL,
    event_level VARCHAR NOT NULL,
    detail VARCHAR NOT NULL,
    created_at VARCHAR NOT NULL,
    PRIMARY KEY (run_id, seq)
)
"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _to_dict(cols: list[str], row: tuple[Any, ...]) -> dict[str, Any]:
    return dict(zip(cols, row, strict=True))


def generate_run_id(prefix: str = "seg") -> str:
    """Compact run id suitable for artifact naming."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}_{ts}_{uuid4().hex[:8]}"


def parse_segmentation_version(version: str) -> tuple[int, int, int]:
    """``"seg-v1.2.3"`` -> ``(1, 2, 3)``; anything else -> ``(1, 0, 0)``."""
    m = _VERSION_RE.search(version)
    if not m:
        return (1, 0, 0)
    return (int(m.group(1)), int(m.group(2)), int(m.group(3)))


# ---------------------------------------------------------------------------
# SegmentationStore
# ---------------------------------------------------------------------------

class SegmentationStore:
    """Read/write interface to a segmentation DuckDB file."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = duckdb.connect(str(self._db_path))
        self._create_schema()

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.execute(
            "INSERT INTO _schema_version (table_name, version) VALUES (?, ?) "
            "ON CONFLICT DO NOTHING",
            ["segmentation", SCHEMA_VERSION],
        )

    def __enter__(self) -> SegmentationStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    # ─── Runs ─────────────────────────────────────────────────────

    def create_run(
        self,
        document_id: str,
        segmentation_version: str,
        *,
        run_id: str | None = None,
        text_key: str | None = None,
        pages_key: str | None = None,
    ) -> str:
        run_id = run_id or generate_run_id()
        major, minor, patch = parse_segmentation_version(segmentation_version)
        now = _now()
        self._conn.execute(
            "INSERT INTO segmentation_runs "
            "(run_id, document_id, segmentation_version, segmentation_major, "
            " segmentation_minor, segmentation_patch, status, text_key, pages_key, "
            " created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                run_id, document_id, segmentation_version, major, minor, patch,
                STATUS_STARTED, text_key, pages_key, now, now,
            ],
        )
        return run_id

    def find_finished_run(
        self,
        document_id: str,
        segmentation_version: str,
    ) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT * FROM segmentation_runs "
            "WHERE document_id = ? AND segmentation_version = ? "
            "AND status IN (?, ?) ORDER BY created_at LIMIT 1",
            [document_id, segmentation_version, *FINISHED_STATUSES],
        ).fetchone()
        if row is None:
            return None
        cols = [d[0] for d in self._conn.description]
        return _to_dict(cols, row)

    def get_run(self, run_id: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT * FROM segmentation_runs WHERE run_id = ?", [run_id],
        ).fetchone()
        if row is None:
            return None
        cols = [d[0] for d in self._conn.description]
        run = _to_dict(cols, row)
        run["review_reasons"] = orjson.loads(run["review_reasons"])
        return run

    def record_result(
        self,
        run_id: str,
        result: SegmentationResult,
        *,
        preview_key: str | None = None,
    ) -> str:
        """Persist a finished result and return the run's new status.

        Completed runs store their clauses; runs that need review store
        only the preview key. Metrics, anomalies and events are stored
        either way.
        """
        if self.get_run(run_id) is None:
            raise KeyError(f"Unknown segmentation run: {run_id}")

        status = STATUS_NEEDS_REVIEW if result.needs_review else STATUS_COMPLETED
        metrics = result.metrics
        self._conn.execute("BEGIN TRANSACTION")
        try:
            self._conn.execute(
                "UPDATE segmentation_runs SET status = ?, preview_key = ?, "
                "candidate_count = ?, accepted_count = ?, suppressed_count = ?, "
                "mean_conf_boundary = ?, ocr_used = ?, review_reasons = ?, "
                "updated_at = ? WHERE run_id = ?",
                [
                    status,
                    preview_key if result.needs_review else None,
                    metrics.candidate_count,
                    metrics.accepted_count,
                    metrics.suppressed_count,
                    metrics.mean_conf_boundary,
                    metrics.ocr_used,
                    orjson.dumps(list(result.review_reasons)).decode("utf-8"),
                    _now(),
                    run_id,
                ],
            )
            if not result.needs_review:
                self._insert_clauses(run_id, result)
            self._insert_anomalies(run_id, result)
            self._insert_events(run_id, result)
            self._conn.execute("COMMIT")
        except duckdb.Error:
            self._conn.execute("ROLLBACK")
            raise
        return status

    def _insert_clauses(self, run_id: str, result: SegmentationResult) -> None:
        rows = [
            [
                run_id, c.ordinal, c.number_label, c.number_label_normalized,
                c.heading_text, c.start_char, c.end_char, c.start_page, c.end_page,
                c.detected_style, c.confidence_boundary, c.confidence_heading,
                orjson.dumps(list(c.anomaly_flags)).decode("utf-8"), c.text_snippet,
            ]
            for c in result.clauses
        ]
        if rows:
            self._conn.executemany(
                "INSERT INTO clauses VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT DO NOTHING",
                rows,
            )

    def _insert_anomalies(self, run_id: str, result: SegmentationResult) -> None:
        rows = [
            [run_id, seq, a.type, a.at, a.severity, a.description]
            for seq, a in enumerate(result.anomalies, start=1)
        ]
        if rows:
            self._conn.executemany(
                "INSERT INTO segmentation_anomalies VALUES (?, ?, ?, ?, ?, ?)", rows,
            )

    def _insert_events(self, run_id: str, result: SegmentationResult) -> None:
        rows = []
        for seq, event in enumerate(result.events, start=1):
            level = "warning" if event.detail.get("severity") == "high" else "info"
            rows.append([
                run_id,
                seq,
                event.event,
                level,
                orjson.dumps(dict(event.detail), option=orjson.OPT_SORT_KEYS).decode("utf-8"),
                event.timestamp.isoformat(),
            ])
        if rows:
            self._conn.executemany(
                "INSERT INTO segmentation_events VALUES (?, ?, ?, ?, ?, ?)", rows,
            )

    # ─── Reads ────────────────────────────────────────────────────

    def _fetch_all(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        rows = self._conn.execute(sql, params).fetchall()
        cols = [d[0] for d in self._conn.description]
        return [_to_dict(cols, row) for row in rows]

    def get_clauses(self, run_id: str) -> list[dict[str, Any]]:
        clauses = self._fetch_all(
            "SELECT * FROM clauses WHERE run_id = ? ORDER BY ordinal", [run_id],
        )
        for clause in clauses:
            clause["anomaly_flags"] = orjson.loads(clause["anomaly_flags"])
        return clauses

    def get_anomalies(self, run_id: str) -> list[dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM segmentation_anomalies WHERE run_id = ? ORDER BY seq",
            [run_id],
        )

    def get_events(self, run_id: str) -> list[dict[str, Any]]:
        events = self._fetch_all(
            "SELECT * FROM segmentation_events WHERE run_id = ? ORDER BY seq",
            [run_id],
        )
        for event in events:
            event["detail"] = orjson.loads(event["detail"])
        return events
