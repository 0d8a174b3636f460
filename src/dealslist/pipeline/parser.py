"""
Deal response parser: raw model text → validated Deal records.

The model is told to return a bare JSON array, but in practice it also
returns fenced blocks, single objects, or prose around the JSON. Parsing
degrades instead of failing:

1. strip ```json / ``` fences and surrounding whitespace
2. json.loads the whole text; an object becomes a one-element list
3. otherwise json.loads the span from the first '[' to the last ']'
4. otherwise the output yields no deals

Each item is validated field-by-field into a Deal; items that are not JSON
objects are dropped.

Also holds the system-email pre-filter that skips account/security mail
before any model call is spent on it.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..models.deal import Deal

logger = structlog.get_logger(__name__)

_FENCE_JSON_RE = re.compile(r'```json', re.IGNORECASE)
_FENCE_RE = re.compile(r'```')
_ARRAY_SPAN_RE = re.compile(r'\[.*\]', re.DOTALL)

SYSTEM_EMAIL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'was granted access to your Google Account', re.IGNORECASE),
    re.compile(r'important changes to your Google Account', re.IGNORECASE),
    re.compile(r'verify your email address', re.IGNORECASE),
    re.compile(r'reset your password', re.IGNORECASE),
    re.compile(r'security alert', re.IGNORECASE),
    re.compile(r'Welcome to', re.IGNORECASE),
    re.compile(r'Thank you for signing up', re.IGNORECASE),
)


class OutputKind(str, Enum):
    """Shape of the model output after parsing."""

    SINGLE = 'single'  # One JSON object
    ARRAY = 'array'  # A JSON array (possibly recovered from surrounding text)
    UNPARSABLE = 'unparsable'


@dataclass
class ParsedOutput:
    """Model output classified by shape, with the raw JSON items."""

    kind: OutputKind
    items: list[Any] = field(default_factory=list)
    recovered: bool = False  # True when the array came from the bracket fallback


def is_system_email(email_content: str) -> bool:
    """True for account/security/onboarding mail that never contains deals."""
    return any(pattern.search(email_content or '') for pattern in SYSTEM_EMAIL_PATTERNS)


def strip_code_fences(output: str) -> str:
    """Remove markdown code fences and surrounding whitespace."""
    cleaned = _FENCE_JSON_RE.sub('', output or '')
    cleaned = _FENCE_RE.sub('', cleaned)
    return cleaned.strip()


def _classify_value(value: Any, recovered: bool = False) -> ParsedOutput:
    if isinstance(value, list):
        return ParsedOutput(kind=OutputKind.ARRAY, items=value, recovered=recovered)
    if isinstance(value, dict):
        return ParsedOutput(kind=OutputKind.SINGLE, items=[value], recovered=recovered)
    return ParsedOutput(kind=OutputKind.UNPARSABLE)


def classify_model_output(output: str) -> ParsedOutput:
    """
    Parse model output into SINGLE, ARRAY or UNPARSABLE.

    Never raises for malformed output, including JSON nested too deeply
    to decode.
    """
    cleaned = strip_code_fences(output)
    if not cleaned:
        return ParsedOutput(kind=OutputKind.UNPARSABLE)

    try:
        return _classify_value(json.loads(cleaned))
    except (json.JSONDecodeError, RecursionError):
        pass

    match = _ARRAY_SPAN_RE.search(cleaned)
    if match is None:
        return ParsedOutput(kind=OutputKind.UNPARSABLE)

    try:
        return _classify_value(json.loads(match.group(0)), recovered=True)
    except (json.JSONDecodeError, RecursionError):
        return ParsedOutput(kind=OutputKind.UNPARSABLE)


def validate_deals(items: list[Any]) -> list[Deal]:
    """Validate raw JSON items into Deals, dropping anything that is not an object."""
    deals: list[Deal] = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug('deal_parser.non_object_item', item_type=type(item).__name__)
            continue
        try:
            deals.append(Deal.model_validate(item))
        except PydanticValidationError as e:
            logger.warning('deal_parser.invalid_item', error=str(e))
    return deals


def parse_deal_response(output: str) -> list[Deal]:
    """
    Turn raw model text into Deals.

    Args:
        output: Assistant text from the extraction call

    Returns:
        Deals in the order the model listed them; [] when nothing could be parsed
    """
    parsed = classify_model_output(output)

    if parsed.kind is OutputKind.UNPARSABLE:
        logger.warning(
            'deal_parser.unparsable_output',
            preview=strip_code_fences(output)[:300],
        )
        return []

    if parsed.recovered:
        logger.info('deal_parser.recovered_array', item_count=len(parsed.items))

    return validate_deals(parsed.items)
