"""
Agent output interpreter for storyloop.

Extracts the structured result block from free-form agent output:

    ```json:storyloop-output
    {"status": "success", "storyId": "US-001", "nextAction": "continue"}
    ```

A missing or malformed block is not an error; it yields structured=None
and callers treat that as an implicit failure.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from storyloop.lib.constants import OUTPUT_MARKER
from storyloop.lib.validate import ValidationError, validate

logger = logging.getLogger(__name__)

OUTPUT_BLOCK_RE = re.compile(r"```" + re.escape(OUTPUT_MARKER) + r"\s*(.*?)```", re.DOTALL)

MISSING_DETAILS_ERROR = "reported failure without details"
NO_OUTPUT_ERROR = "no structured output received"


class OutputStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class NextAction(Enum):
    CONTINUE = "continue"
    COMPLETE = "complete"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class StructuredResult:
    status: OutputStatus
    story_id: str
    next_action: NextAction
    files_changed: tuple[str, ...] = ()
    learnings: tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class ParsedOutput:
    structured: Optional[StructuredResult]
    raw_output: str = field(repr=False)


def _parse_block(content: str) -> StructuredResult | None:
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"Structured output block is not valid JSON: {e}")
        return None

    try:
        validate(data, "output")
    except ValidationError as e:
        logger.warning(f"Structured output block rejected: {e}")
        return None

    return StructuredResult(
        status=OutputStatus(data["status"]),
        story_id=data["storyId"],
        next_action=NextAction(data["nextAction"]),
        files_changed=tuple(data.get("filesChanged", [])),
        learnings=tuple(data.get("learnings", [])),
        error=data.get("error"),
    )


def interpret(raw_text: str) -> ParsedOutput:
    """Parse agent output. Only the first marker block is considered."""
    match = OUTPUT_BLOCK_RE.search(raw_text)
    if not match:
        logger.debug("No structured output block found")
        return ParsedOutput(structured=None, raw_output=raw_text)
    return ParsedOutput(structured=_parse_block(match.group(1).strip()), raw_output=raw_text)


def is_success(parsed: ParsedOutput) -> bool:
    return parsed.structured is not None and parsed.structured.status == OutputStatus.SUCCESS


def is_complete(parsed: ParsedOutput) -> bool:
    return parsed.structured is not None and parsed.structured.next_action == NextAction.COMPLETE


def is_blocked(parsed: ParsedOutput) -> bool:
    return parsed.structured is not None and parsed.structured.next_action == NextAction.BLOCKED


def error_message(parsed: ParsedOutput) -> str | None:
    """Best-effort error text for a failed iteration."""
    structured = parsed.structured
    if structured is None:
        return NO_OUTPUT_ERROR
    if structured.error:
        return structured.error
    if structured.status == OutputStatus.FAILURE:
        return MISSING_DETAILS_ERROR
    return None


def story_id(parsed: ParsedOutput) -> str | None:
    return parsed.structured.story_id if parsed.structured else None


def learnings(parsed: ParsedOutput) -> list[str]:
    return list(parsed.structured.learnings) if parsed.structured else []


def files_changed(parsed: ParsedOutput) -> list[str]:
    return list(parsed.structured.files_changed) if parsed.structured else []
