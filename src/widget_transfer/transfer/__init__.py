"""Widget data import/export engine.

Public API for moving widget configuration between installations of a
content-management host through a portable, versioned JSON document.

Architecture
------------
Imports are **content-matched, not index-matched**.  Widget indices are
local to one installation, so an incoming widget is matched against the
live widgets of the same sidebar by a fingerprint of its type and
settings.  Matches keep their live index; everything else is allocated a
fresh one.  Live widgets the document drops are parked in the inactive
bucket, never deleted, which makes repeated imports of the same document
safe.

Modules:

- ``models``      -- ``WidgetRef``, ``WidgetInstance``, ``Sidebar``,
  ``RegistrySnapshot``, ``ExportDocument``, ``WriteBackPlan``,
  ``ImportSummary``: core data contracts.
- ``fingerprint`` -- canonical settings encoding and content hashes.
- ``reader``      -- ``RegistryReader``: snapshot the live registry.
- ``exporter``    -- ``Exporter``: deterministic document serialisation.
- ``validator``   -- ``DocumentValidator``: MIME gate, parse, version
  upgrade, referential integrity.
- ``merger``      -- ``merge()``: compute the write-back plan.
- ``applier``     -- ``WriteBackApplier``: commit a plan.
- ``hooks``       -- ``TransferHooks``: caller transformations.
- ``reporter``    -- Human-readable and JSON summaries.
- ``service``     -- ``WidgetTransfer``: export/import orchestration.
- ``errors``      -- Exception taxonomy.

Usage example
-------------
::

    from widget_transfer.core import JsonFileRegistry
    from widget_transfer.transfer import WidgetTransfer, format_import_summary

    source = WidgetTransfer(JsonFileRegistry("old-site.json"))
    payload = source.export()

    target = WidgetTransfer(JsonFileRegistry("new-site.json"))

    # Preview first
    preview = target.import_document(payload, "application/json", dry_run=True)
    print(format_import_summary(preview))

    summary = target.import_document(payload, "application/json")
    print(format_import_summary(summary))
"""

from .applier import WriteBackApplier
from .errors import (
    DanglingReference,
    DocumentValidationError,
    MalformedDocument,
    RegistryUnavailable,
    UnsupportedFormatVersion,
    UntrustedContent,
    WidgetTransferError,
    WriteBackError,
)
from .exporter import FORMAT_VERSION, Exporter
from .fingerprint import fingerprint
from .hooks import TransferHooks
from .merger import merge
from .models import (
    ExportDocument,
    ImportSummary,
    MergeWarning,
    RegistrySnapshot,
    Sidebar,
    WidgetAction,
    WidgetInstance,
    WidgetRef,
    WriteBackPlan,
)
from .reader import RegistryReader
from .reporter import (
    format_dry_run_preview,
    format_import_summary,
    summary_to_json,
)
from .service import WidgetTransfer
from .validator import DocumentValidator, validate_document

__all__ = [
    "FORMAT_VERSION",
    "DanglingReference",
    "DocumentValidationError",
    "DocumentValidator",
    "ExportDocument",
    "Exporter",
    "ImportSummary",
    "MalformedDocument",
    "MergeWarning",
    "RegistryReader",
    "RegistrySnapshot",
    "RegistryUnavailable",
    "Sidebar",
    "TransferHooks",
    "UnsupportedFormatVersion",
    "UntrustedContent",
    "WidgetAction",
    "WidgetInstance",
    "WidgetRef",
    "WidgetTransfer",
    "WidgetTransferError",
    "WriteBackApplier",
    "WriteBackError",
    "WriteBackPlan",
    "fingerprint",
    "format_dry_run_preview",
    "format_import_summary",
    "merge",
    "summary_to_json",
    "validate_document",
]
