"""
Text extraction from Gmail message part trees.

A Gmail message payload is a tree of MIME parts. Each node may carry an
encoded body (url-safe base64 in body.data) and a list of child parts; both
are visited. Text parts are decoded, HTML parts reduced to their visible
text, and the fragments joined in depth-first order.
"""

import base64
import binascii
from typing import Any

import structlog
from bs4 import BeautifulSoup

from .sanitizer import MAX_CONTENT_LENGTH, sanitize_email_content

logger = structlog.get_logger(__name__)

# Real mail nests a handful of levels (mixed > alternative > related > ...)
MAX_PART_DEPTH = 50

FRAGMENT_SEPARATOR = '\n\n'


def decode_body_data(data: str) -> str:
    """
    Decode a Gmail body.data value into text.

    Gmail uses url-safe base64 without padding. Invalid UTF-8 sequences are
    replaced rather than rejected.
    """
    if not data:
        return ''
    normalized = data.replace('-', '+').replace('_', '/')
    normalized += '=' * (-len(normalized) % 4)
    try:
        raw = base64.b64decode(normalized)
    except (binascii.Error, ValueError):
        logger.warning('mail_extractor.invalid_base64', length=len(data))
        return ''
    return raw.decode('utf-8', errors='replace')


def html_to_text(html: str) -> str:
    """Visible text of an HTML document, tags collapsed."""
    return BeautifulSoup(html, 'html.parser').get_text()


def _collect_fragments(part: dict[str, Any], fragments: list[str], depth: int) -> None:
    if depth > MAX_PART_DEPTH:
        logger.warning('mail_extractor.max_depth_exceeded', max_depth=MAX_PART_DEPTH)
        return

    mime_type = part.get('mimeType') or ''
    body = part.get('body') or {}
    data = body.get('data')

    if mime_type.startswith('text/') and data:
        decoded = decode_body_data(data)
        if mime_type == 'text/html':
            fragments.append(html_to_text(decoded))
        else:
            fragments.append(decoded)

    children = part.get('parts')
    if isinstance(children, list):
        for child in children:
            if isinstance(child, dict):
                _collect_fragments(child, fragments, depth + 1)


def extract_text(payload: dict[str, Any] | None) -> str:
    """
    Concatenate the text of every text/* part in a payload tree.

    Args:
        payload: Gmail message payload (root MIME part), or None

    Returns:
        Fragments joined with a blank line, in depth-first order; '' when
        there is no text part
    """
    if not payload:
        return ''
    fragments: list[str] = []
    _collect_fragments(payload, fragments, depth=0)
    return FRAGMENT_SEPARATOR.join(fragments)


def extract_text_from_message(
    message: dict[str, Any],
    max_length: int = MAX_CONTENT_LENGTH,
) -> str:
    """
    Extract and sanitize the text of a Gmail message resource.

    Args:
        message: Gmail message resource (format='full')
        max_length: Cap applied by the sanitizer

    Returns:
        Sanitized plain text ready for deal extraction
    """
    combined = extract_text(message.get('payload'))
    return sanitize_email_content(combined, max_length=max_length)


def build_text_message(message_id: str, content: str) -> dict[str, Any]:
    """
    Wrap already-fetched text as a one-part Gmail message resource.

    Lets text that arrived through the API be run through the same
    extraction and sanitizing path as mail fetched from Gmail.
    """
    data = base64.urlsafe_b64encode(content.encode('utf-8')).decode('ascii').rstrip('=')
    return {
        'id': message_id,
        'payload': {
            'mimeType': 'multipart/mixed',
            'parts': [{'mimeType': 'text/plain', 'body': {'data': data}}],
        },
    }
