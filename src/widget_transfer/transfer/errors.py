"""Exception taxonomy for the widget transfer engine.

Hierarchy::

    WidgetTransferError
    ├── RegistryUnavailable        -- registry could not be read
    ├── DocumentValidationError    -- inbound document rejected
    │   ├── UntrustedContent
    │   ├── MalformedDocument
    │   ├── UnsupportedFormatVersion
    │   └── DanglingReference
    └── WriteBackError             -- committing a plan failed

Validation failures always reject the whole document.  Non-fatal conditions
(unregistered sidebars, unsupported widget types) are reported as
``MergeWarning`` records on the plan, never raised.
"""

from __future__ import annotations


class WidgetTransferError(Exception):
    """Base class for all engine errors."""


class RegistryUnavailable(WidgetTransferError):
    """The widget registry could not be enumerated."""


class DocumentValidationError(WidgetTransferError):
    """An inbound document failed validation.

    Attributes:
        error_type: Short machine-readable category, used by the MCP layer.
    """

    error_type = "validation_error"


class UntrustedContent(DocumentValidationError):
    """Claimed MIME type or sniffed content is not an accepted encoding."""

    error_type = "untrusted_content"


class MalformedDocument(DocumentValidationError):
    """The document could not be parsed into the export document shape."""

    error_type = "malformed_document"


class UnsupportedFormatVersion(DocumentValidationError):
    """The document's ``formatVersion`` is not one this engine reads."""

    error_type = "unsupported_format_version"


class DanglingReference(DocumentValidationError):
    """A sidebar references a widget missing from the ``widgets`` array."""

    error_type = "dangling_reference"

    def __init__(
        self, sidebar_id: str, widget_type: str, legacy_index: int
    ) -> None:
        self.sidebar_id = sidebar_id
        self.widget_type = widget_type
        self.legacy_index = legacy_index
        super().__init__(
            f"Sidebar '{sidebar_id}' references widget "
            f"{widget_type}-{legacy_index}, which is not in the document"
        )


class WriteBackError(WidgetTransferError):
    """Committing a write-back plan to the registry failed.

    Attributes:
        target: The bucket or sidebar whose write failed
            (``"bucket:<type>"`` or ``"sidebar:<id>"``).
        completed: Writes that succeeded before the failure, in order.
    """

    def __init__(
        self,
        message: str,
        target: str,
        completed: list[str] | None = None,
    ) -> None:
        self.target = target
        self.completed = list(completed or [])
        super().__init__(message)
