"""Input sanitization for user-entered text."""

import bleach


def sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def normalize_email(value):
    return str(value or "").strip().lower()
