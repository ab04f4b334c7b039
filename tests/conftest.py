from datetime import datetime, timezone

import pytest

from submission_review.errors import ModerationUnavailable
from submission_review.models import ModerationVerdict, SubmissionHistoryRecord, SubmissionInput
from submission_review.settings import Settings

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

LONG_DESCRIPTION = (
    "I ran 100 metres in 10.9 seconds at the district athletics meet, timed electronically "
    "and witnessed by two coaches from my school."
)
DRIVE_LINK = "https://drive.google.com/file/d/abc123/view"


class FakeHistory:
    def __init__(self, recent=None, statuses=None, error=None):
        self.recent = [
            r if isinstance(r, SubmissionHistoryRecord)
            else SubmissionHistoryRecord(id=str(i), title=r, created_at=FIXED_NOW.isoformat())
            for i, r in enumerate(recent or [])
        ]
        self.statuses = list(statuses or [])
        self.error = error
        self.calls = []

    async def fetch_recent_submissions(self, author_id, now):
        self.calls.append(("recent", author_id, now))
        if self.error:
            raise self.error
        return self.recent

    async def fetch_submission_statuses(self, author_id):
        self.calls.append(("statuses", author_id))
        if self.error:
            raise self.error
        return self.statuses


class FakeModerator:
    def __init__(self, verdict=None, unavailable=False):
        self.verdict = verdict
        self.unavailable = unavailable
        self.texts = []

    async def moderate(self, text):
        self.texts.append(text)
        if self.unavailable or self.verdict is None:
            raise ModerationUnavailable("moderation returned status 503")
        return self.verdict


@pytest.fixture
def settings():
    return Settings(
        moderation_api_key="test-key",
        moderation_api_url="https://moderation.test/v1/chat/completions",
        supabase_url="https://store.test",
        supabase_key="service-key",
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def clean_verdict():
    return ModerationVerdict(hasInappropriateContent=False, hasSpam=False, contentQuality="high")


@pytest.fixture
def good_submission():
    return SubmissionInput(
        title="Fastest 100m sprint in district",
        description=LONG_DESCRIPTION,
        googleDriveLink=DRIVE_LINK,
        userId="user-1",
    )
