import json
from typing import Iterator, Optional, Protocol

import httpx
import structlog

from .errors import ModerationUnavailable
from .models import ModerationVerdict
from .settings import Settings

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a content moderator for a student records platform. Analyze submissions for "
    "inappropriate content, spam, or quality issues. Respond with a JSON object containing: "
    '{ "hasInappropriateContent": boolean, "hasSpam": boolean, '
    '"contentQuality": "high"|"medium"|"low", "concerns": string[] }'
)


class Moderator(Protocol):
    async def moderate(self, text: str) -> ModerationVerdict: ...


def _top_level_braces(text: str) -> Iterator[int]:
    """Offsets of every `{` that is not nested inside an earlier, still open brace."""
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == "{":
            if depth == 0:
                yield i
            depth += 1
        elif ch == "}":
            if depth:
                depth -= 1
        elif ch == '"' and depth:
            in_string = True


def extract_json_object(text: str) -> Optional[dict]:
    """
    Pull the first JSON object out of a free-text model reply.
    Models often wrap the object in prose or code fences, so each top-level
    `{` is tried in order until one decodes to a complete object. Braces
    nested in a truncated object are never candidates.
    """
    decoder = json.JSONDecoder()
    for idx in _top_level_braces(text):
        try:
            obj, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def _reply_content(data) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class ChatModerationClient:
    """Moderation through an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    def _build_request(self, text: str) -> dict:
        return {
            "model": self._settings.moderation_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
        }

    async def moderate(self, text: str) -> ModerationVerdict:
        headers = {
            "Authorization": f"Bearer {self._settings.require_moderation_key()}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._settings.moderation_api_url, json=self._build_request(text), headers=headers
                )
        except httpx.HTTPError as e:
            raise ModerationUnavailable(f"moderation request failed: {e!r}") from e

        if not resp.is_success:
            raise ModerationUnavailable(f"moderation returned status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ModerationUnavailable("moderation returned a non-JSON body") from e

        parsed = extract_json_object(_reply_content(data))
        if parsed is None:
            raise ModerationUnavailable("no JSON object in moderation reply")

        # every field is normalized, so a decoded object always yields a verdict
        verdict = ModerationVerdict.model_validate(parsed)

        logger.info("moderation_verdict", **verdict.model_dump())
        return verdict
