"""
Input sanitization helpers shared by the HTTP functions.

Tags are stripped before escaping, so markup disappears but its text content
survives in escaped form.
"""

import re

_TAG_RE = re.compile(r"<[^>]*>")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_EMAIL_STRIP_RE = re.compile(r"[<>\"']")

_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)


def strip_tags(value: str) -> str:
    """Remove HTML tags and trim. For values stored as plain text."""
    if not value:
        return ""
    return _TAG_RE.sub("", value).strip()


def sanitize_input(value: str) -> str:
    """Strip HTML tags, trim, then HTML-escape the remaining text."""
    text = strip_tags(value)
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def sanitize_text_content(value: str) -> str:
    """Like sanitize_input, but line by line so line breaks are preserved."""
    if not value:
        return ""
    return "\n".join(sanitize_input(line) for line in value.split("\n"))


def sanitize_email(value: str) -> str:
    """Return a cleaned, lower-cased email address, or "" if it is not one."""
    if not value:
        return ""
    email = _EMAIL_STRIP_RE.sub("", value).strip().lower()
    if not _EMAIL_RE.match(email):
        return ""
    return email
