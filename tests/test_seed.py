"""
tests/test_seed.py -- Demo data loaded at startup when SEED_DEMO_DATA is on.
"""

from __future__ import annotations

from auth.gateway import AuthGateway
from auth.models import Role
from submissions.models import SubmissionStatus
from submissions.seed import DEMO_ACCOUNTS, seed_demo_data
from submissions.workflow import ApprovalWorkflow


def test_seed_creates_accounts_that_can_log_in(users, submission_store, gateway: AuthGateway) -> None:
    seed_demo_data(users, submission_store)
    assert users.count() == len(DEMO_ACCOUNTS)
    session = gateway.login("gov@example.com", "government-demo")
    assert session.account.role is Role.government


def test_seed_submissions_cover_both_outcomes(users, submission_store) -> None:
    seed_demo_data(users, submission_store)
    assert submission_store.count_by_status() == {"pending": 1, "approved": 1, "rejected": 0}
    approved = submission_store.list_by_status(SubmissionStatus.approved)[0]
    assert approved.reviewed_by == users.find_by_email("gov@example.com").id


def test_second_researcher_sees_own_and_approved_only(users, submission_store, workflow: ApprovalWorkflow) -> None:
    seed_demo_data(users, submission_store)
    second = users.find_by_email("researcher2@lab.org")
    visible = workflow.list(second)
    assert [s.title for s in visible] == ["Water Quality Sensor Data"]


def test_reseeding_reuses_accounts(users, submission_store) -> None:
    seed_demo_data(users, submission_store)
    seed_demo_data(users, submission_store)
    assert users.count() == len(DEMO_ACCOUNTS)
    assert len(submission_store.list_all()) == 4
