"""
Email text sanitizer.

Turns the text of a promotional email into something worth sending to the
model: markup removed, common footer boilerplate deleted, whitespace
normalized, and the whole thing capped in length.

The boilerplate patterns are heuristics. They delete the matched span only,
not the surrounding line, so fragments of a footer sentence can survive.
Pass a different pattern set to sanitize_email_content() to tune them.
"""

import re
from typing import Iterable, Pattern

MAX_CONTENT_LENGTH = 4000

BOILERPLATE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'(?:Â)?©\s*\d{4}.*?All Rights Reserved\.?', re.IGNORECASE),
    re.compile(r'unsubscribe', re.IGNORECASE),
    re.compile(r'privacy policy', re.IGNORECASE),
    re.compile(r'terms\s*(?:&|&amp;)\s*conditions', re.IGNORECASE),
    re.compile(r'add [^ ]+@[^ ]+ to your safe sender list', re.IGNORECASE),
    re.compile(r'if.*?email was forwarded to you', re.IGNORECASE),
)

_TAG_RE = re.compile(r'<[^>]*>')
_LINE_ENDING_RE = re.compile(r'\r\n?')
_BLANK_RUN_RE = re.compile(r'\n\s*\n\s*\n+')
_HORIZONTAL_SPACE_RE = re.compile(r'[ \t]+')


def strip_boilerplate(text: str, patterns: Iterable[Pattern[str]] = BOILERPLATE_PATTERNS) -> str:
    """Delete every match of each boilerplate pattern, in pattern order."""
    for pattern in patterns:
        text = pattern.sub('', text)
    return text


def normalize_whitespace(text: str) -> str:
    """Unify line endings, collapse blank-line runs to one blank line and space runs to one space."""
    text = _LINE_ENDING_RE.sub('\n', text)
    text = _BLANK_RUN_RE.sub('\n\n', text)
    text = _HORIZONTAL_SPACE_RE.sub(' ', text)
    return text.strip()


def sanitize_email_content(
    raw_text: str,
    patterns: Iterable[Pattern[str]] = BOILERPLATE_PATTERNS,
    max_length: int = MAX_CONTENT_LENGTH,
) -> str:
    """
    Sanitize email text for deal extraction.

    Steps, in order: replace tags with a space, normalize whitespace,
    delete boilerplate matches, normalize again, truncate to max_length.
    A deletion can join text into a new tag or boilerplate match, so the
    steps before truncation repeat until the text stops changing; applying
    the sanitizer twice therefore gives the same result as applying it once.

    Args:
        raw_text: Text extracted from the email parts
        patterns: Boilerplate patterns to delete
        max_length: Hard cap on the result length (no truncation marker)

    Returns:
        Sanitized text, at most max_length characters
    """
    if not raw_text:
        return ''

    patterns = tuple(patterns)
    text = raw_text
    while True:
        cleaned = normalize_whitespace(_TAG_RE.sub(' ', text))
        cleaned = normalize_whitespace(strip_boilerplate(cleaned, patterns))
        if cleaned == text:
            break
        text = cleaned

    if len(text) > max_length:
        # Re-trim so a cut landing on whitespace does not leave a trailing gap
        text = text[:max_length].rstrip()
    return text
