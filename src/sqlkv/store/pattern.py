"""
Glob to SQL LIKE translation for key listing.

Supports '*' (any sequence, including empty) and '?' (exactly one
character). The LIKE wildcards '%' and '_' and the escape character are
escaped so they match themselves. Everything else is literal.
"""

from __future__ import annotations

LIKE_ESCAPE = "\\"

# str.translate works in a single pass, so an escaped character is never
# rewritten a second time.
_GLOB_TO_LIKE = str.maketrans(
    {
        LIKE_ESCAPE: LIKE_ESCAPE * 2,
        "%": LIKE_ESCAPE + "%",
        "_": LIKE_ESCAPE + "_",
        "*": "%",
        "?": "_",
    }
)


def glob_to_like(pattern: str) -> str:
    """Convert a Redis-style glob pattern to a LIKE expression.

    The result must be used with ``ESCAPE '\\'``.

    Examples:
        >>> glob_to_like("user:*")
        'user:%'
        >>> glob_to_like("50%off")
        '50\\\\%off'
    """
    return pattern.translate(_GLOB_TO_LIKE)
