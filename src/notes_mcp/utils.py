"""Utility functions for the Notes MCP server."""
from typing import Iterable, List


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents SQL LIKE pattern injection where user input containing
    '%' or '_' could match unintended patterns.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\_name'
    """
    # Use str.translate() for single-pass efficiency
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def clean_tag_names(tags: Iterable[str]) -> List[str]:
    """Strip tag names, drop blanks and duplicates, keep first-seen order.

    Example:
        >>> clean_tag_names([" work ", "", "home", "work"])
        ['work', 'home']
    """
    cleaned = (tag.strip() for tag in tags if tag is not None)
    return list(dict.fromkeys(tag for tag in cleaned if tag))
