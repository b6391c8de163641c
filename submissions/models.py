"""
submissions/models.py -- Domain dataclasses and enums for the approval workflow.

These are pure data containers. Visibility rules and state transitions live in
submissions/workflow.py; persistence lives in submissions/store.py.

State machine:
    pending --approve--> approved   (terminal)
    pending --reject---> rejected   (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from core.errors import ValidationError


class SubmissionStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not SubmissionStatus.pending


class DataType(str, Enum):
    observation = "observation"
    sensor = "sensor"
    species = "species"
    other = "other"

    @classmethod
    def parse(cls, value: str | DataType) -> DataType:
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(d.value for d in cls)
            raise ValidationError(f"dataType must be one of: {allowed}.") from None


class ReviewAction(str, Enum):
    approve = "approve"
    reject = "reject"

    @property
    def outcome(self) -> SubmissionStatus:
        return SubmissionStatus.approved if self is ReviewAction.approve else SubmissionStatus.rejected


@dataclass
class Submission:
    """A unit of researcher-submitted data awaiting government review.

    id, submitted_by and submitted_at never change after creation.
    reviewed_by / reviewed_at / review_notes are set together, once, by the
    terminal transition. id is "" before the record is written to the store.
    """

    title: str
    description: str
    data_type: DataType
    submitted_by: str  # Account.id
    data: dict[str, Any] = field(default_factory=dict)
    attachments: list[str] = field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.pending
    id: str = ""
    submitted_at: str = ""  # ISO 8601, set by store on insert
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    review_notes: Optional[str] = None
