"""Text sanitization for user-submitted chat bodies."""

from __future__ import annotations

import re

from parlor.core.settings import settings

_SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JAVASCRIPT_URL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)


def sanitize_body(text: str | None, max_length: int | None = None) -> str:
    """Strip script tags, ``javascript:`` URLs and inline handlers, then truncate.

    Args:
        text: Raw body submitted by the client. ``None`` is treated as empty.
        max_length: Truncation limit; defaults to the configured message length.

    Returns:
        The cleaned body, possibly empty.
    """
    if not text:
        return ""
    limit = settings.chat_message_max_length if max_length is None else max_length
    cleaned = text
    # Removing one pattern can splice another together; repeat until stable.
    while True:
        previous = cleaned
        cleaned = _SCRIPT_TAG_RE.sub("", cleaned)
        cleaned = _JAVASCRIPT_URL_RE.sub("", cleaned)
        cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
        if cleaned == previous:
            break
    return cleaned.strip()[:limit]


def preview(text: str, length: int) -> str:
    """Shorten ``text`` to ``length`` characters, marking the cut with an ellipsis."""
    if len(text) > length:
        return text[:length] + "..."
    return text
