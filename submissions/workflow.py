"""
submissions/workflow.py -- Approval workflow: visibility rules and transitions.

ApprovalWorkflow is the only writer of the SubmissionStore. It owns three
rules the store cannot express on its own:

  Confidentiality: a researcher sees only their own submissions plus approved
      ones. Government accounts see everything.
  Ownership: only the original submitter may edit a submission, and only
      while it is pending.
  At-most-once review: a submission leaves pending exactly once. A second
      review fails with InvalidState and leaves the first review intact.

Role checks for the route itself (who may create, who may review) are done by
auth.dependencies.require_role before the workflow is reached; the workflow
enforces row-level rules only.

No domain events are emitted; review() is where one would be published.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from auth.models import Account, Role
from core.errors import Forbidden, InvalidState, NotFound, ValidationError
from submissions.models import DataType, ReviewAction, Submission, SubmissionStatus
from submissions.store import CONTENT_FIELDS, SubmissionStore

logger = logging.getLogger("oceanos.submissions")


def _can_view(account: Account, submission: Submission) -> bool:
    if account.role is Role.government:
        return True
    return submission.submitted_by == account.id or submission.status is SubmissionStatus.approved


def _check_payload(data: Any) -> dict[str, Any]:
    # Structurally parseable only: any JSON object is accepted, nothing deeper.
    # Form clients may send the object as a JSON string.
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            raise ValidationError("data is not valid JSON.") from None
    if not isinstance(data, dict):
        raise ValidationError("data must be a JSON object.")
    return data


def _check_attachments(attachments: Any) -> list[str]:
    if attachments is None:
        return []
    if not isinstance(attachments, list) or not all(isinstance(a, str) for a in attachments):
        raise ValidationError("attachments must be a list of URL strings.")
    return attachments


class ApprovalWorkflow:
    def __init__(self, store: SubmissionStore) -> None:
        self.store = store

    def create(
        self,
        submitter: Account,
        title: str,
        description: str,
        data_type: str | DataType,
        data: Any,
        attachments: Optional[list[str]] = None,
    ) -> Submission:
        """Create a pending submission owned by submitter.

        Unknown data types are rejected with ValidationError rather than
        stored verbatim.
        """
        submission = self.store.insert(
            Submission(
                title=title,
                description=description,
                data_type=DataType.parse(data_type),
                submitted_by=submitter.id,
                data=_check_payload(data),
                attachments=_check_attachments(attachments),
            )
        )
        logger.info("Submission %s created by %s (%s)", submission.id, submitter.id, submission.data_type.value)
        return submission

    def list(self, account: Account) -> list[Submission]:
        if account.role is Role.government:
            return self.store.list_all()
        return self.store.list_visible_to(account.id)

    def list_pending(self) -> list[Submission]:
        return self.store.list_by_status(SubmissionStatus.pending)

    def get(self, account: Account, submission_id: str) -> Submission:
        submission = self.store.get(submission_id)
        if submission is None:
            raise NotFound("Submission not found.")
        if not _can_view(account, submission):
            raise Forbidden()
        return submission

    def update(self, account: Account, submission_id: str, fields: dict[str, Any]) -> Submission:
        """Edit a pending submission's content.

        Only title, description, data_type, data and attachments are written;
        id, submitter, timestamps and status are ignored whatever the caller
        sends. Checks run NotFound -> Forbidden -> InvalidState.
        """
        current = self.store.get(submission_id)
        if current is None:
            raise NotFound("Submission not found.")
        if current.submitted_by != account.id:
            raise Forbidden("Can only update your own submissions.")
        if current.status is not SubmissionStatus.pending:
            raise InvalidState("Cannot update reviewed submissions.")

        changes = {k: v for k, v in fields.items() if k in CONTENT_FIELDS}
        if "data_type" in changes:
            changes["data_type"] = DataType.parse(changes["data_type"])
        if "data" in changes:
            changes["data"] = _check_payload(changes["data"])
        if "attachments" in changes:
            changes["attachments"] = _check_attachments(changes["attachments"])

        if not self.store.update_content(submission_id, account.id, changes):
            # Reviewed between the read above and the guarded write.
            raise InvalidState("Cannot update reviewed submissions.")
        logger.info("Submission %s updated by %s (%s)", submission_id, account.id, ", ".join(sorted(changes)) or "no changes")
        return self.store.get(submission_id)

    def review(
        self,
        reviewer: Account,
        submission_id: str,
        action: str | ReviewAction,
        notes: Optional[str] = None,
    ) -> Submission:
        """Approve or reject a pending submission.

        The store's guarded UPDATE makes this at-most-once: whichever reviewer
        loses a race gets InvalidState, and the winner's reviewer, timestamp
        and notes are never overwritten.
        """
        try:
            parsed = ReviewAction(action)
        except ValueError:
            raise ValidationError("action must be one of: approve, reject.") from None
        if self.store.get(submission_id) is None:
            raise NotFound("Submission not found.")
        if not self.store.transition(submission_id, parsed.outcome, reviewer.id, notes):
            logger.warning("Review of %s by %s rejected: already reviewed", submission_id, reviewer.id)
            raise InvalidState("Submission has already been reviewed.")
        logger.info("Submission %s %s by %s", submission_id, parsed.outcome.value, reviewer.id)
        return self.store.get(submission_id)
