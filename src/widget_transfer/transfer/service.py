"""Caller-facing orchestration of export and import.

``WidgetTransfer`` wires the reader, hooks, exporter, validator, merger and
applier together:

Export::

    registry -> snapshot -> before_export hooks -> Exporter -> bytes

Import::

    bytes -> DocumentValidator -> before_import hooks
          -> merge(fresh snapshot) -> WriteBackPlan -> WriteBackApplier

Every step before the applier is free of side effects, so a failure there
leaves the registry untouched and a dry run only stops short of applying.
Calls are synchronous and must not overlap on the same registry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from ..config_schema import TransferConfig
from ..core.registry import WidgetRegistry
from .applier import WriteBackApplier
from .exporter import DEFAULT_GENERATOR_VERSION, Exporter
from .hooks import TransferHooks
from .merger import merge
from .models import ExportDocument, ImportSummary, WriteBackPlan
from .reader import RegistryReader
from .validator import DocumentValidator

logger = logging.getLogger(__name__)


class WidgetTransfer:
    """Export from and import into one widget registry.

    Args:
        registry: The host registry collaborator.
        hooks: Optional transformation hooks.
        config: Transfer settings (MIME allow-list, size limit, generator
            version, inactive-bucket export).
    """

    def __init__(
        self,
        registry: WidgetRegistry,
        hooks: TransferHooks | None = None,
        config: TransferConfig | None = None,
    ) -> None:
        self.registry = registry
        self.hooks = hooks or TransferHooks()
        self.config = config or TransferConfig()

        self.reader = RegistryReader(registry)
        self.exporter = Exporter(
            generator_version=self.config.generator_version
            or DEFAULT_GENERATOR_VERSION,
            include_inactive=self.config.include_inactive,
        )
        self.validator = DocumentValidator(
            allowed_mime_types=self.config.allowed_mime_types,
            max_bytes=self.config.max_document_bytes,
        )
        self.applier = WriteBackApplier(registry)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export(self) -> bytes:
        """Serialise the current registry state.

        Raises:
            RegistryUnavailable: If the registry cannot be read.
        """
        snapshot = self.hooks.apply_export(self.reader.snapshot())
        return self.exporter.serialize(snapshot)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def validate(self, raw: bytes, mime_type: str) -> ExportDocument:
        """Validate *raw* without touching the registry.

        Raises:
            DocumentValidationError: If the document is rejected.
        """
        return self.validator.validate(raw, mime_type)

    def plan_import(
        self,
        raw: bytes,
        mime_type: str,
        selected_sidebar_ids: Iterable[str] | None = None,
    ) -> WriteBackPlan:
        """Validate *raw* and compute its plan against a fresh snapshot.

        Raises:
            DocumentValidationError: If the document is rejected.
            RegistryUnavailable: If the registry cannot be read.
        """
        document = self.hooks.apply_import(self.validate(raw, mime_type))
        # Hooks may rewrite refs; the merger needs every ref resolvable
        self.validator.check_references(document)
        snapshot = self.reader.snapshot()
        return merge(snapshot, document, selected_sidebar_ids)

    def import_document(
        self,
        raw: bytes,
        mime_type: str,
        selected_sidebar_ids: Iterable[str] | None = None,
        dry_run: bool = False,
    ) -> ImportSummary:
        """Import *raw* into the registry.

        Args:
            raw: Uploaded document bytes.
            mime_type: MIME type claimed by the uploader.
            selected_sidebar_ids: Sidebars to import; ``None`` means all.
            dry_run: Compute and report the plan without writing.

        Returns:
            What the import did, or would do for a dry run.

        Raises:
            DocumentValidationError: If the document is rejected.
            RegistryUnavailable: If the registry cannot be read.
            WriteBackError: If committing the plan fails part-way.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        plan = self.plan_import(raw, mime_type, selected_sidebar_ids)

        if dry_run:
            logger.info("Dry run: plan discarded without writing")
            return ImportSummary.from_plan(
                plan,
                dry_run=True,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
            )

        if plan.is_empty:
            logger.info("Registry already up to date -- nothing to write")
        return self.applier.apply(plan, started_at=started_at)
