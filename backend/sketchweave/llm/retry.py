"""Predicate-driven retry around the text-generation collaborator.

A raised error and a response the validator rejects both count as a failed
attempt. Attempts are separated by a fixed delay (none after the last). When
every attempt fails, the last response received is still returned; the last
error is raised only if no response ever arrived.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Callable
from typing import Any

from sketchweave.config import settings
from sketchweave.llm.client import GenerationResponse, TextGenerator

logger = logging.getLogger(__name__)

Validator = Callable[[str], bool]
RetryCallback = Callable[[int, str], None]

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def not_empty(content: str) -> bool:
    """Non-blank, and not a bare ``[]`` or ``{}``."""
    trimmed = content.strip()
    return bool(trimmed) and trimmed not in ("[]", "{}")


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def is_json(content: str) -> bool:
    try:
        json.loads(content.strip())
    except ValueError:
        return False
    return True


def extract_json_array(content: str) -> list | None:
    """First JSON array found in ``content``: whole text, fenced block, then any ``[...]`` span."""
    trimmed = content.strip()
    candidates = [trimmed]
    if m := _CODE_BLOCK_RE.search(content):
        candidates.append(m.group(1).strip())
    if m := _ARRAY_RE.search(content):
        candidates.append(m.group(0))

    for candidate in candidates:
        parsed = _loads(candidate)
        if isinstance(parsed, list):
            return parsed
    return None


def contains_json_array(content: str) -> bool:
    parsed = extract_json_array(content)
    return bool(parsed)


def has_keys(*keys: str) -> Validator:
    """Validator: content is a JSON object carrying every one of ``keys``."""

    def validator(content: str) -> bool:
        parsed = _loads(content.strip())
        return isinstance(parsed, dict) and all(k in parsed for k in keys)

    return validator


# ---------------------------------------------------------------------------
# Retry loop
# ---------------------------------------------------------------------------


def _preview(content: str, limit: int = 50) -> str:
    return content[:limit] + ("..." if len(content) > limit else "")


async def send_with_retry(
    client: TextGenerator,
    messages: list[dict[str, str]],
    system: str | None = None,
    *,
    max_retries: int | None = None,
    retry_delay: float | None = None,
    validator: Validator = not_empty,
    on_retry: RetryCallback | None = None,
) -> GenerationResponse:
    """Call ``client.generate`` until ``validator`` accepts the content.

    ``retry_delay`` is in seconds; both knobs default to the configured
    ``ai_max_retries`` / ``ai_retry_delay_ms``.
    """
    attempts = max(1, settings.ai_max_retries if max_retries is None else max_retries)
    delay = settings.ai_retry_delay_ms / 1000 if retry_delay is None else retry_delay

    last_response: GenerationResponse | None = None
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        logger.debug("Generation attempt %d/%d", attempt, attempts)
        try:
            response = await client.generate(messages, system)
        except Exception as e:
            last_error = e
            reason = str(e)
            logger.warning("Generation attempt %d failed: %s", attempt, reason)
        else:
            last_response = response
            if validator(response.content):
                logger.debug("Response validated on attempt %d", attempt)
                return response
            reason = f'Response validation failed on attempt {attempt}: "{_preview(response.content)}"'
            logger.warning("%s", reason)

        if on_retry is not None:
            on_retry(attempt, reason)
        if attempt < attempts and delay > 0:
            await asyncio.sleep(delay)

    if last_response is not None:
        logger.warning("All %d attempts failed validation, returning last response", attempts)
        return last_response

    raise last_error
