"""Injectable transformation hooks.

Callers register pure functions that rewrite data on its way through the
engine:

- ``before_export(snapshot) -> snapshot`` runs after the registry is read
  and before the document is built.
- ``before_import(document) -> document`` runs after validation and before
  merging.

Hooks run in registration order, each receiving the previous hook's result.
A hook that raises aborts the operation; nothing has been written yet at
either point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .models import ExportDocument, RegistrySnapshot

logger = logging.getLogger(__name__)

ExportHook = Callable[[RegistrySnapshot], RegistrySnapshot]
ImportHook = Callable[[ExportDocument], ExportDocument]


@dataclass
class TransferHooks:
    """Ordered hook lists for export and import."""

    before_export: list[ExportHook] = field(default_factory=list)
    before_import: list[ImportHook] = field(default_factory=list)

    def add_export_hook(self, hook: ExportHook) -> None:
        self.before_export.append(hook)

    def add_import_hook(self, hook: ImportHook) -> None:
        self.before_import.append(hook)

    def apply_export(self, snapshot: RegistrySnapshot) -> RegistrySnapshot:
        for hook in self.before_export:
            logger.debug("Running export hook %r", hook)
            snapshot = hook(snapshot)
        return snapshot

    def apply_import(self, document: ExportDocument) -> ExportDocument:
        for hook in self.before_import:
            logger.debug("Running import hook %r", hook)
            document = hook(document)
        return document
