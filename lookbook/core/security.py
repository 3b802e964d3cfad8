"""
Security Utilities
==================

Hygiene for the two kinds of text that cross the service boundary:
user-supplied prompt fragments going out, and error messages coming back
(which may echo the Gemini API key).
"""

import re
import logging

logger = logging.getLogger(__name__)


# Phrases that try to override the fixed stage instructions the fragment is spliced into
OVERRIDE_PHRASES = re.compile(
    r"(ignore|disregard|forget)\s+(all\s+)?(the\s+)?(previous|prior|above)(\s+instructions)?",
    re.IGNORECASE,
)

WHITESPACE = re.compile(r"\s+")

# Gemini credentials surface as AIza keys, ?key= on file URIs, the
# x-goog-api-key header, or an env assignment in a config dump.
SECRET_PATTERNS = [
    (re.compile(r"AIza[A-Za-z0-9_\-]{35}"), "AIza***REDACTED***"),
    (re.compile(r"([?&]key=)[^&\s\"']+", re.IGNORECASE), r"\1***REDACTED***"),
    (
        re.compile(r"(x-goog-api-key['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.IGNORECASE),
        r"\1***REDACTED***",
    ),
    (re.compile(r"\b([A-Z][A-Z0-9_]*_API_KEY)=\S+"), r"\1=***REDACTED***"),
]


def sanitize_prompt(prompt: str, max_length: int = 500) -> str:
    """
    Clean a user fragment before it is interpolated into a stage prompt.

    Control characters are dropped, override phrases removed and runs of
    whitespace folded to one space, since every fragment lands inside a
    single line of the template.

    Args:
        prompt: Background, lighting, neon text or motion text from the caller
        max_length: Longest fragment kept; the rest is cut off

    Returns:
        The cleaned fragment, possibly empty
    """
    if not prompt:
        return ""

    cleaned = "".join(char for char in prompt if char.isprintable() or char.isspace())
    cleaned = OVERRIDE_PHRASES.sub("", cleaned)
    cleaned = WHITESPACE.sub(" ", cleaned).strip()

    if len(cleaned) > max_length:
        logger.warning(f"Prompt fragment cut from {len(cleaned)} to {max_length} characters")
        cleaned = cleaned[:max_length].rstrip()

    return cleaned


def redact_api_key(text: str) -> str:
    """Mask every Gemini credential form in ``text`` before it is logged or raised."""
    if not text:
        return text

    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text
