"""
Input validation functions for widget transfer.

Provides validation for sidebar ids, widget types, and MIME type strings
so documents and tool arguments are checked before they reach the merger.
"""

import re

_SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_\-.]*$")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Sidebar id")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_sidebar_id(sidebar_id: str) -> tuple[bool, str]:
    """
    Validate a sidebar id.

    Args:
        sidebar_id: The sidebar slug to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Must be a slug: letters, digits, '_', '-', '.'; no leading '-' or '.'
    """
    if not sidebar_id or not sidebar_id.strip():
        return (
            False,
            format_validation_error("Sidebar id", "cannot be empty"),
        )

    if not _SLUG_PATTERN.match(sidebar_id):
        return (
            False,
            format_validation_error(
                "Sidebar id", f"'{sidebar_id}' is not a valid slug"
            ),
        )

    return (True, "")


def validate_widget_type(widget_type: str) -> tuple[bool, str]:
    """
    Validate a widget type identifier.

    Args:
        widget_type: The widget type to validate (e.g., "recent-posts")

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty
        - Must be a slug (same rules as sidebar ids)
    """
    if not widget_type or not widget_type.strip():
        return (
            False,
            format_validation_error("Widget type", "cannot be empty"),
        )

    if not _SLUG_PATTERN.match(widget_type):
        return (
            False,
            format_validation_error(
                "Widget type", f"'{widget_type}' is not a valid slug"
            ),
        )

    return (True, "")


def normalize_mime_type(mime_type: str | None) -> str:
    """
    Reduce a MIME type to its lower-cased ``type/subtype`` part.

    Parameters such as ``; charset=utf-8`` are dropped.

    Args:
        mime_type: Raw Content-Type value (may be None)

    Returns:
        Normalized MIME type, or "" when none was given
    """
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()
