"""
submissions/store.py -- SQLAlchemy Core persistence layer for Submissions.

Uses SQLAlchemy Core (not ORM) so the dataclass in submissions/models.py
remains the authoritative domain representation.

Pattern: Repository + Data Mapper. SubmissionStore is the repository;
_row_to_submission is the mapper. The workflow never touches SQL directly.

Single-writer rule: both mutations are one guarded UPDATE whose WHERE clause
includes status = 'pending'. The "pending-only" rule therefore acts as an
optimistic lock -- of two concurrent reviews of the same submission, exactly
one UPDATE matches a row and the other sees rowcount 0. The store lock makes
each method a single critical section on top of that.

Usage:
    store = SubmissionStore()
    sub = store.insert(Submission(title=..., description=..., data_type=DataType.species, submitted_by=uid))
    store.transition(sub.id, SubmissionStatus.approved, reviewer_id, "looks good")
    store.close()
"""

import json
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, or_, select
from sqlalchemy.engine import Engine

from core.db import MEMORY_DB_URL, make_engine
from submissions.models import DataType, Submission, SubmissionStatus

# Columns the content-update path may write. Everything else (id, submitter,
# timestamps, status, review fields) is immutable through update_content().
CONTENT_FIELDS = frozenset({"title", "description", "data_type", "data", "attachments"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_submissions = Table(
    "submissions",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),  # insertion order
    Column("id", String(32), nullable=False, unique=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("data_type", String(30), nullable=False),
    Column("submitted_by", String(32), nullable=False),
    Column("submitted_at", String(32), nullable=False),
    Column("status", String(30), nullable=False, server_default="pending"),
    Column("reviewed_by", String(32)),
    Column("reviewed_at", String(32)),
    Column("review_notes", Text),
    Column("data", Text, nullable=False),  # JSON object serialized as text
    Column("attachments", Text, nullable=False),  # JSON array of URLs
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_content(fields: dict[str, Any]) -> dict[str, Any]:
    values = dict(fields)
    if "data_type" in values:
        values["data_type"] = DataType(values["data_type"]).value
    if "data" in values:
        values["data"] = json.dumps(values["data"])
    if "attachments" in values:
        values["attachments"] = json.dumps(list(values["attachments"] or []))
    return values


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SubmissionStore:
    def __init__(self, db_url: str = MEMORY_DB_URL) -> None:
        self.engine: Engine = make_engine(db_url)
        self._lock = threading.Lock()
        metadata.create_all(self.engine)

    def insert(self, submission: Submission) -> Submission:
        """Store a new submission and return it with id and submitted_at filled in.

        A caller-provided id or submitted_at is kept (seed data uses this);
        otherwise a fresh uuid4 hex and the current UTC time are assigned.
        """
        sub_id = submission.id or uuid.uuid4().hex
        submitted_at = submission.submitted_at or _now_iso()
        with self._lock, self.engine.begin() as conn:
            conn.execute(
                _submissions.insert().values(
                    id=sub_id,
                    title=submission.title,
                    description=submission.description,
                    data_type=DataType(submission.data_type).value,
                    submitted_by=submission.submitted_by,
                    submitted_at=submitted_at,
                    status=SubmissionStatus(submission.status).value,
                    reviewed_by=submission.reviewed_by,
                    reviewed_at=submission.reviewed_at,
                    review_notes=submission.review_notes,
                    data=json.dumps(submission.data),
                    attachments=json.dumps(list(submission.attachments)),
                )
            )
            row = conn.execute(_submissions.select().where(_submissions.c.id == sub_id)).fetchone()
        return _row_to_submission(row)

    def get(self, submission_id: str) -> Optional[Submission]:
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(_submissions.select().where(_submissions.c.id == submission_id)).fetchone()
        return _row_to_submission(row) if row is not None else None

    def list_all(self) -> list[Submission]:
        """Return every submission in insertion order."""
        with self._lock, self.engine.connect() as conn:
            rows = conn.execute(_submissions.select().order_by(_submissions.c.seq)).fetchall()
        return [_row_to_submission(r) for r in rows]

    def list_visible_to(self, account_id: str) -> list[Submission]:
        """Return submissions owned by account_id plus every approved submission."""
        with self._lock, self.engine.connect() as conn:
            rows = conn.execute(
                _submissions.select()
                .where(
                    or_(
                        _submissions.c.submitted_by == account_id,
                        _submissions.c.status == SubmissionStatus.approved.value,
                    )
                )
                .order_by(_submissions.c.seq)
            ).fetchall()
        return [_row_to_submission(r) for r in rows]

    def list_by_status(self, status: SubmissionStatus) -> list[Submission]:
        with self._lock, self.engine.connect() as conn:
            rows = conn.execute(
                _submissions.select()
                .where(_submissions.c.status == SubmissionStatus(status).value)
                .order_by(_submissions.c.seq)
            ).fetchall()
        return [_row_to_submission(r) for r in rows]

    def count_by_status(self) -> dict[str, int]:
        """Return {status: count} with every status present (zero when empty)."""
        counts = {s.value: 0 for s in SubmissionStatus}
        with self._lock, self.engine.connect() as conn:
            rows = conn.execute(
                select(_submissions.c.status, func.count()).group_by(_submissions.c.status)
            ).fetchall()
        for status, n in rows:
            counts[status] = n
        return counts

    def update_content(self, submission_id: str, submitter_id: str, fields: dict[str, Any]) -> bool:
        """Overwrite content fields of a pending submission owned by submitter_id.

        Keys outside CONTENT_FIELDS are dropped. Returns False when no row
        matched (unknown id, different submitter, or no longer pending).
        """
        values = _encode_content({k: v for k, v in fields.items() if k in CONTENT_FIELDS})
        if not values:
            return self._is_pending_owned_by(submission_id, submitter_id)
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(
                _submissions.update()
                .where(
                    (_submissions.c.id == submission_id)
                    & (_submissions.c.submitted_by == submitter_id)
                    & (_submissions.c.status == SubmissionStatus.pending.value)
                )
                .values(**values)
            )
        return result.rowcount > 0

    def transition(
        self,
        submission_id: str,
        status: SubmissionStatus,
        reviewer_id: str,
        notes: Optional[str],
    ) -> bool:
        """Move a pending submission to a terminal status.

        Returns False when the submission is unknown or already reviewed; the
        stored review fields are left untouched in that case.
        """
        if not SubmissionStatus(status).is_terminal:
            raise ValueError("transition target must be a terminal status")
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(
                _submissions.update()
                .where(
                    (_submissions.c.id == submission_id) & (_submissions.c.status == SubmissionStatus.pending.value)
                )
                .values(
                    status=SubmissionStatus(status).value,
                    reviewed_by=reviewer_id,
                    reviewed_at=_now_iso(),
                    review_notes=notes,
                )
            )
        return result.rowcount > 0

    def _is_pending_owned_by(self, submission_id: str, submitter_id: str) -> bool:
        sub = self.get(submission_id)
        return sub is not None and sub.submitted_by == submitter_id and sub.status is SubmissionStatus.pending

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_submission(row) -> Submission:
    return Submission(
        id=row.id,
        title=row.title,
        description=row.description,
        data_type=DataType(row.data_type),
        submitted_by=row.submitted_by,
        submitted_at=row.submitted_at,
        status=SubmissionStatus(row.status),
        reviewed_by=row.reviewed_by,
        reviewed_at=row.reviewed_at,
        review_notes=row.review_notes,
        data=json.loads(row.data),
        attachments=json.loads(row.attachments),
    )
