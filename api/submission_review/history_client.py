from datetime import datetime, timedelta
from typing import List, Optional, Protocol

import httpx
import structlog
from pydantic import ValidationError

from .errors import UpstreamError
from .models import SubmissionHistoryRecord
from .settings import Settings

logger = structlog.get_logger(__name__)

RECENT_WINDOW = timedelta(days=7)
RECENT_LIMIT = 10


class SubmissionHistory(Protocol):
    async def fetch_recent_submissions(self, author_id: str, now: datetime) -> List[SubmissionHistoryRecord]: ...

    async def fetch_submission_statuses(self, author_id: str) -> List[Optional[str]]: ...


class SupabaseHistoryClient:
    """
    Reads an author's past submissions from the `records` table through the
    store's REST interface. Both reads are mandatory: any failure is an
    UpstreamError and aborts the assessment.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    async def _select(self, params: dict) -> list:
        base_url, key = self._settings.require_data_store()
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.get(f"{base_url}/rest/v1/records", params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("history_query_failed", error=repr(e), select=params.get("select"))
            raise UpstreamError(f"Record store unreachable: {e!r}") from e

        if resp.status_code >= 300:
            logger.error("history_query_failed", status=resp.status_code, select=params.get("select"))
            raise UpstreamError(f"Record store query failed with status {resp.status_code}")

        try:
            rows = resp.json()
        except ValueError as e:
            raise UpstreamError("Record store returned a non-JSON body") from e
        if not isinstance(rows, list):
            raise UpstreamError("Record store returned an unexpected payload")
        return rows

    async def fetch_recent_submissions(self, author_id: str, now: datetime) -> List[SubmissionHistoryRecord]:
        since = (now - RECENT_WINDOW).isoformat()
        rows = await self._select({
            "select": "id,title,created_at",
            "user_id": f"eq.{author_id}",
            "created_at": f"gte.{since}",
            "order": "created_at.desc",
            "limit": str(RECENT_LIMIT),
        })
        try:
            records = [SubmissionHistoryRecord.model_validate(r) for r in rows]
        except ValidationError as e:
            raise UpstreamError("Record store returned malformed submissions") from e
        # the store enforces the limit; keep the cap even if it does not
        return records[:RECENT_LIMIT]

    async def fetch_submission_statuses(self, author_id: str) -> List[Optional[str]]:
        rows = await self._select({"select": "status", "user_id": f"eq.{author_id}"})
        return [r.get("status") if isinstance(r, dict) else None for r in rows]
