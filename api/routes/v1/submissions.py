"""
api/routes/v1/submissions.py -- Data submission and approval workflow routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET  /submissions                -- list, filtered per role
  GET  /submissions/pending        -- government review queue
  POST /submissions                -- create (researcher or government)
  GET  /submissions/{id}           -- detail (row-level visibility)
  PUT  /submissions/{id}           -- edit content (owner, pending only)
  POST /submissions/{id}/review    -- approve / reject (government)

Role gates run as dependencies (auth.dependencies.require_role); row-level
rules (visibility, ownership, pending-only) are enforced by ApprovalWorkflow.
"""

from fastapi import APIRouter, Depends, Request

from api.models import (
    ListMeta,
    ReviewRequest,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionOut,
    SubmissionResponse,
    SubmissionUpdate,
)
from auth.dependencies import get_current_account, require_role
from auth.models import Account, Role
from submissions.models import Submission
from submissions.workflow import ApprovalWorkflow

# Auth policy:
# - GET  /submissions:             any authenticated account (row filtering in workflow)
# - GET  /submissions/pending:     government only
# - POST /submissions:             researcher or government
# - GET  /submissions/{id}:        any authenticated account (row check in workflow)
# - PUT  /submissions/{id}:        any authenticated account; workflow requires ownership
# - POST /submissions/{id}/review: government only
router = APIRouter()

_can_submit = require_role(Role.researcher, Role.government)
_can_review = require_role(Role.government)


def _list_response(items: list[Submission]) -> SubmissionListResponse:
    return SubmissionListResponse(
        submissions=[SubmissionOut.from_submission(s) for s in items],
        meta=ListMeta(total=len(items)),
    )


@router.get("/submissions", response_model=SubmissionListResponse)
def list_submissions(request: Request, account: Account = Depends(get_current_account)) -> SubmissionListResponse:
    """Government sees every submission; researchers see their own plus approved ones."""
    workflow: ApprovalWorkflow = request.app.state.workflow
    return _list_response(workflow.list(account))


@router.get("/submissions/pending", response_model=SubmissionListResponse)
def list_pending(request: Request, account: Account = Depends(_can_review)) -> SubmissionListResponse:
    """Return the review queue (status=pending) in submission order."""
    workflow: ApprovalWorkflow = request.app.state.workflow
    return _list_response(workflow.list_pending())


@router.post("/submissions", response_model=SubmissionResponse, status_code=201)
def create_submission(
    request: Request,
    body: SubmissionCreate,
    account: Account = Depends(_can_submit),
) -> SubmissionResponse:
    workflow: ApprovalWorkflow = request.app.state.workflow
    created = workflow.create(
        submitter=account,
        title=body.title,
        description=body.description,
        data_type=body.data_type,
        data=body.data,
        attachments=body.attachments,
    )
    return SubmissionResponse(
        submission=SubmissionOut.from_submission(created),
        message="Submission created successfully. Awaiting government approval.",
    )


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    request: Request,
    submission_id: str,
    account: Account = Depends(get_current_account),
) -> SubmissionResponse:
    workflow: ApprovalWorkflow = request.app.state.workflow
    return SubmissionResponse(submission=SubmissionOut.from_submission(workflow.get(account, submission_id)))


@router.put("/submissions/{submission_id}", response_model=SubmissionResponse)
def update_submission(
    request: Request,
    submission_id: str,
    body: SubmissionUpdate,
    account: Account = Depends(get_current_account),
) -> SubmissionResponse:
    """Edit a pending submission. Only fields present (and non-null) in the body are changed."""
    workflow: ApprovalWorkflow = request.app.state.workflow
    updated = workflow.update(account, submission_id, body.model_dump(exclude_unset=True, exclude_none=True))
    return SubmissionResponse(
        submission=SubmissionOut.from_submission(updated),
        message="Submission updated successfully",
    )


@router.post("/submissions/{submission_id}/review", response_model=SubmissionResponse)
def review_submission(
    request: Request,
    submission_id: str,
    body: ReviewRequest,
    account: Account = Depends(_can_review),
) -> SubmissionResponse:
    """Approve or reject a pending submission. A reviewed submission cannot be reviewed again."""
    workflow: ApprovalWorkflow = request.app.state.workflow
    reviewed = workflow.review(account, submission_id, body.action, body.notes)
    return SubmissionResponse(
        submission=SubmissionOut.from_submission(reviewed),
        message=f"Submission {reviewed.status.value} successfully",
    )
