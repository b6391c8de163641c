"""
submissions/seed.py -- Demo accounts and sample submissions for local use.

Loaded by the API lifespan when SEED_DEMO_DATA is true (the default). All data
is in-memory, so the seed runs on every start and disappears on shutdown.

Demo credentials (local development only):
    gov@example.com            / government-demo   (government)
    researcher@university.edu  / researcher-demo   (researcher)
    researcher2@lab.org        / researcher-demo   (researcher)
"""

from __future__ import annotations

import logging

from auth.models import Account, Role
from auth.store import UserStore
from submissions.models import DataType, Submission, SubmissionStatus
from submissions.store import SubmissionStore

logger = logging.getLogger("oceanos.submissions")

DEMO_ACCOUNTS: list[tuple[Account, str]] = [
    (
        Account(
            email="gov@example.com",
            name="Fisheries Directorate",
            role=Role.government,
            organization="Ministry of Earth Sciences",
        ),
        "government-demo",
    ),
    (
        Account(
            email="researcher@university.edu",
            name="Dr. Asha Menon",
            role=Role.researcher,
            organization="Coastal Ecology Lab",
        ),
        "researcher-demo",
    ),
    (
        Account(
            email="researcher2@lab.org",
            name="Dr. Kiran Rao",
            role=Role.researcher,
            organization="Marine Sensor Network",
        ),
        "researcher-demo",
    ),
]


def seed_demo_data(users: UserStore, submissions: SubmissionStore) -> None:
    """Create demo accounts and one pending plus one approved submission.

    Accounts that already exist are reused, so calling this twice against the
    same stores adds only the sample submissions again.
    """
    accounts: dict[str, Account] = {}
    for account, secret in DEMO_ACCOUNTS:
        existing = users.find_by_email(account.email)
        accounts[account.email] = existing or users.create(account, secret)

    gov = accounts["gov@example.com"]
    first = accounts["researcher@university.edu"]
    second = accounts["researcher2@lab.org"]

    submissions.insert(
        Submission(
            title="Coral Reef Species Observation",
            description="New species identification in reef section A-7",
            data_type=DataType.species,
            submitted_by=first.id,
            submitted_at="2024-03-15T10:30:00+00:00",
            data={
                "species": "Acropora cervicornis",
                "location": {"lat": -16.2839, "lng": 145.7781},
                "depth": 15,
                "temperature": 26.5,
                "observations": "Healthy colony with active polyp extension",
            },
            attachments=["/uploads/coral-sample-1.jpg", "/uploads/coral-sample-2.jpg"],
        )
    )
    submissions.insert(
        Submission(
            title="Water Quality Sensor Data",
            description="Monthly pH and salinity measurements from monitoring station B-12",
            data_type=DataType.sensor,
            submitted_by=second.id,
            submitted_at="2024-03-10T14:15:00+00:00",
            status=SubmissionStatus.approved,
            reviewed_by=gov.id,
            reviewed_at="2024-03-11T09:00:00+00:00",
            review_notes="Data validated and meets quality standards",
            data={
                "stationId": "B-12",
                "measurements": [
                    {"date": "2024-03-01", "pH": 8.1, "salinity": 35.2, "temperature": 24.8},
                    {"date": "2024-03-02", "pH": 8.0, "salinity": 35.1, "temperature": 25.1},
                ],
            },
        )
    )
    logger.info("Demo data seeded (%d accounts, 2 submissions)", len(accounts))
