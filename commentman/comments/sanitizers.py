"""Content sanitization for comment text.

Every special HTML character is encoded so stored text cannot run as
markup or script when it is rendered. Encoding starts from the unescaped
form, which makes it idempotent: already-sanitized text comes out the
same instead of being encoded twice.
"""

import html
from collections.abc import Iterable


# Formatting tags that may be re-enabled in messages (basic formatting only)
ALLOWED_TAGS = frozenset({"b", "i", "em", "strong", "code", "pre"})


def sanitize_text(value: str | None) -> str | None:
    """Encode HTML special characters, quotes included."""
    if value is None:
        return None
    return html.escape(html.unescape(value), quote=True)


def sanitize_message(
    value: str | None,
    allowed_tags: Iterable[str] = (),
) -> str | None:
    """Sanitize a comment body.

    Escapes everything, then re-enables the bare opening and closing
    forms of the requested formatting tags. Tags with attributes stay
    escaped.

    Args:
        value: Raw or already-sanitized message
        allowed_tags: Subset of ALLOWED_TAGS to keep as markup

    Raises:
        ValueError: If a tag outside ALLOWED_TAGS is requested
    """
    tags = {tag.lower() for tag in allowed_tags}
    unknown = tags - ALLOWED_TAGS
    if unknown:
        msg = f"Tags not allowed in messages: {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    escaped = sanitize_text(value)
    if escaped is None:
        return None

    for tag in sorted(tags):
        escaped = escaped.replace(f"&lt;{tag}&gt;", f"<{tag}>")
        escaped = escaped.replace(f"&lt;/{tag}&gt;", f"</{tag}>")

    return escaped
