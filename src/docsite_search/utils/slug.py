"""Heading anchor slugs shared by the index builder and the page renderer.

The renderer assigns ``id`` attributes to heading elements and the index
builder writes the same ids into ``href`` fragments, so both must call
:func:`slugify`. Any divergence breaks deep links without an error.

Example:
    >>> slugify("Getting Started")
    'getting-started'
    >>> slugify("Установка и настройка")
    'установка-и-настройка'
    >>> slugify("API: v2 / Beta")
    'api-v2-beta'
"""

import re


# Latin letters, Cyrillic letters (including ё), ASCII digits, whitespace and hyphens survive
_DISALLOWED_PATTERN = re.compile(r"[^a-zа-яё0-9\s-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_HYPHEN_RUN_PATTERN = re.compile(r"-+")


def slugify(text: str) -> str:
    """Convert heading text to its anchor id.

    Args:
        text: Visible heading text

    Returns:
        Lowercase slug with whitespace collapsed to single hyphens
    """
    slug = _DISALLOWED_PATTERN.sub("", text.lower())
    slug = _WHITESPACE_PATTERN.sub("-", slug)
    slug = _HYPHEN_RUN_PATTERN.sub("-", slug)
    return slug.strip()
