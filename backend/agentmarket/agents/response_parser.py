"""
Agent response parsing and validation.

WHAT: Turn raw backend text into a strictly typed ParsedMessage
WHY: Models wrap JSON in fences, leak reasoning blocks and mistype fields
HOW: Strip noise, parse JSON (outermost-brace fallback), coerce each field, degrade on failure
"""

import json
import math
import re
from typing import Any, Optional

from ..core.models import MessageRole
from ..models.negotiation import ParsedMessage, UserPrompt
from ..utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_STATUS = "Processing response..."

_THINK_BLOCK = re.compile(r"<think(?:ing)?>.*?</think(?:ing)?>\s*", re.DOTALL | re.IGNORECASE)
_STRAY_THINK_TAG = re.compile(r"</?think(?:ing)?>\s*", re.IGNORECASE)
_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_FLOOR_QUESTION = re.compile(
    r"\b(?:minimum|lowest|floor|bottom line)\b.*\b(?:price|amount|figure|accept|take|go)\b",
    re.IGNORECASE,
)

_ROLE_SIDE = {
    MessageRole.BUYER_AGENT: "buyer",
    MessageRole.SELLER_AGENT: "seller",
}


def strip_noise(raw: str) -> str:
    """Remove reasoning blocks and markdown code fences."""
    text = _THINK_BLOCK.sub("", raw)
    text = _STRAY_THINK_TAG.sub("", text)
    text = _FENCE.sub("", text)
    return text.strip()


def _load_object(text: str) -> Optional[dict]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def coerce_price(value: Any) -> Optional[float]:
    """A finite, non-boolean number, else None. Numeric strings are not accepted."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _coerce_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [_coerce_str(v) for v in value if v is not None]


def _prompt_kind(value: dict, side: str, question: str) -> str:
    """Only a seller can ask for a floor; an untagged seller question counts if it asks for one."""
    if side != "seller":
        return "question"
    kind = value.get("kind")
    if kind is None:
        return "min_price" if _FLOOR_QUESTION.search(question) else "question"
    return "min_price" if kind == "min_price" else "question"


def _coerce_user_prompt(value: Any, side: str) -> Optional[UserPrompt]:
    if not isinstance(value, dict):
        return None
    choices = value.get("choices")
    question = _coerce_str(value.get("question"))
    return UserPrompt(
        # An agent may only ever address its own human
        target=side,
        question=question,
        choices=_coerce_str_list(choices) if isinstance(choices, list) else None,
        kind=_prompt_kind(value, side, question),
    )


def fallback_message(raw: str) -> ParsedMessage:
    """The degraded message used whenever raw output cannot be interpreted."""
    return ParsedMessage(
        answer=raw,
        status_message=FALLBACK_STATUS,
        price_proposal=None,
        concessions=[],
        user_prompt=None,
    )


def parse_agent_response(raw: str, role: MessageRole) -> ParsedMessage:
    """
    Parse one agent turn. Bad model output never raises.

    Args:
        raw: Backend output text
        role: The acting agent role; decides the forced user_prompt target

    Returns:
        ParsedMessage, or the fallback message when the text is not a JSON object
    """
    side = _ROLE_SIDE.get(role)
    if side is None:
        raise ValueError(f"Cannot parse agent output for role {role}")

    data = _load_object(strip_noise(raw or ""))
    if data is None:
        logger.warning(f"Unparseable {role.value} output, using fallback ({len(raw or '')} chars)")
        return fallback_message(raw or "")

    return ParsedMessage(
        answer=_coerce_str(data.get("answer")),
        status_message=_coerce_str(data.get("status_message")),
        price_proposal=coerce_price(data.get("price_proposal")),
        concessions=_coerce_str_list(data.get("concessions")),
        user_prompt=_coerce_user_prompt(data.get("user_prompt"), side),
    )
