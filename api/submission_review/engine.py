import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog

from .errors import InputError, ModerationUnavailable
from .history_client import SubmissionHistory, SupabaseHistoryClient
from .moderation_client import ChatModerationClient, Moderator
from .models import (
    AssessmentDetails,
    AssessmentResult,
    FlagCode,
    ModerationVerdict,
    SubmissionHistoryRecord,
    SubmissionInput,
)
from .scoring import FlagSet, build_suggestions, clamp, decide_action, round_score, title_similarity
from .settings import Settings

logger = structlog.get_logger(__name__)

MIN_DESCRIPTION_LENGTH = 100
MIN_TITLE_LENGTH = 10
DUPLICATE_SIMILARITY = 0.8
FREQUENT_SUBMISSIONS = 3
MIN_HISTORY_FOR_REJECTION_RATE = 2
REJECTION_RATE_LIMIT = 0.7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RiskAssessmentEngine:
    """
    Scores one record submission for fraud risk and content quality and
    recommends approve / review / reject.

    Stateless between calls: the only I/O is the two history reads and the
    moderation call, all behind injected collaborators.
    """

    def __init__(
        self,
        settings: Settings,
        history: Optional[SubmissionHistory] = None,
        moderator: Optional[Moderator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.history = history or SupabaseHistoryClient(settings)
        self.moderator = moderator or ChatModerationClient(settings)
        self.clock = clock

    async def assess(self, submission: SubmissionInput) -> AssessmentResult:
        self.settings.require_moderation_key()
        self._validate_input(submission)

        text = f"Title: {submission.title}\nDescription: {submission.description}"
        log = logger.bind(author_id=submission.author_id)
        log.info("assessment_started", text_length=len(text))

        tasks = [
            asyncio.ensure_future(self.history.fetch_recent_submissions(submission.author_id, self.clock())),
            asyncio.ensure_future(self.history.fetch_submission_statuses(submission.author_id)),
            asyncio.ensure_future(self._moderate(text)),
        ]
        try:
            recent, statuses, verdict = await asyncio.gather(*tasks)
        except BaseException:
            # a failed read must not leave the other calls running after the response
            for task in tasks:
                task.cancel()
            raise

        flags = FlagSet()
        fraud_score = 0.0
        quality_score = 1.0

        # content completeness
        if len(submission.description) < MIN_DESCRIPTION_LENGTH:
            flags.add(FlagCode.SHORT_DESCRIPTION)
            quality_score -= 0.2
        if len(submission.title) < MIN_TITLE_LENGTH:
            flags.add(FlagCode.SHORT_TITLE)
            quality_score -= 0.1

        # evidence
        evidence = submission.evidence_url.strip()
        if not evidence:
            flags.add(FlagCode.MISSING_EVIDENCE)
            fraud_score += 0.3
            quality_score -= 0.3
        elif self.settings.trusted_evidence_domain.lower() not in evidence.lower():
            flags.add(FlagCode.INVALID_EVIDENCE_LINK)
            fraud_score += 0.2

        # recent activity
        if self._has_duplicate(submission.title, recent):
            flags.add(FlagCode.DUPLICATE_SUBMISSION)
            fraud_score += 0.3
        if len(recent) >= FREQUENT_SUBMISSIONS:
            flags.add(FlagCode.HIGH_SUBMISSION_FREQUENCY)
            fraud_score += 0.2

        if len(statuses) > MIN_HISTORY_FOR_REJECTION_RATE:
            rejection_rate = sum(1 for s in statuses if s == "rejected") / len(statuses)
            if rejection_rate > REJECTION_RATE_LIMIT:
                flags.add(FlagCode.HIGH_REJECTION_HISTORY)
                fraud_score += 0.2

        if verdict is not None:
            if verdict.hasInappropriateContent:
                flags.add(FlagCode.INAPPROPRIATE_CONTENT)
                fraud_score += 0.5
            if verdict.hasSpam:
                flags.add(FlagCode.SPAM_DETECTED)
                fraud_score += 0.4
            if verdict.contentQuality == "low":
                flags.add(FlagCode.LOW_QUALITY_CONTENT)
                quality_score -= 0.2

        fraud_score = clamp(fraud_score)
        quality_score = clamp(quality_score)
        action = decide_action(fraud_score, flags)

        result = AssessmentResult(
            fraudScore=round_score(fraud_score),
            contentQualityScore=round_score(quality_score),
            flags=flags.as_list(),
            recommendedAction=action,
            suggestions=build_suggestions(flags),
            details=AssessmentDetails(
                textLength=len(text),
                flagCount=len(flags),
                timestamp=_iso_timestamp(self.clock()),
            ),
        )
        log.info(
            "assessment_complete",
            fraud_score=result.fraudScore,
            content_quality_score=result.contentQualityScore,
            flags=[f.value for f in result.flags],
            action=result.recommendedAction.value,
            moderated=verdict is not None,
        )
        return result

    @staticmethod
    def _validate_input(submission: SubmissionInput) -> None:
        missing = [
            name for name, value in (
                ("title", submission.title),
                ("description", submission.description),
                ("userId", submission.author_id),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise InputError(f"Missing required field(s): {', '.join(missing)}")

    @staticmethod
    def _has_duplicate(title: str, recent: List[SubmissionHistoryRecord]) -> bool:
        return any(title_similarity(title, r.title) > DUPLICATE_SIMILARITY for r in recent)

    async def _moderate(self, text: str) -> Optional[ModerationVerdict]:
        try:
            return await self.moderator.moderate(text)
        except ModerationUnavailable as e:
            logger.warning("moderation_skipped", reason=e.message)
            return None
