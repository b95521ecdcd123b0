"""YAML front matter handling for Markdown/MDX content pages.

Pages may open with a ``---`` delimited YAML block. The block is metadata for
the site generator, not page prose, so it is split off before titles,
headings and excerpts are extracted.

Example page with front matter:
    ---
    description: Installing the toolkit
    sidebar_position: 2
    ---
    # Getting Started

    This guide begins...
"""

import re
from typing import Any

import yaml


DELIMITER = "---"

_FRONT_MATTER_PATTERN = re.compile(
    rf"^\ufeff?{re.escape(DELIMITER)}[ \t]*\r?\n(.*?)\r?\n{re.escape(DELIMITER)}[ \t]*(?:\r?\n|$)",
    re.DOTALL,
)


def parse_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML front matter from page content.

    Args:
        content: Full page content including front matter

    Returns:
        Tuple of (front_matter_dict, body)
        If no front matter found, returns (empty dict, original content)

    Example:
        >>> metadata, body = parse_front_matter("---\\ndescription: Intro\\n---\\n# Content")
        >>> metadata["description"]
        'Intro'
        >>> body
        '# Content'
    """
    match = _FRONT_MATTER_PATTERN.match(content)
    if not match:
        return {}, content

    body = content[match.end() :]

    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        # Invalid YAML still delimits a metadata block; drop it from the body
        return {}, body

    if not isinstance(metadata, dict):
        return {}, body

    return metadata, body


def strip_front_matter(content: str) -> str:
    """Return the page body without its front matter block."""
    return parse_front_matter(content)[1]
