"""Exporter: serialise a registry snapshot to the portable document.

Output is UTF-8 JSON and deterministic -- the same snapshot always yields
the same bytes:

* top-level keys are always ``formatVersion``, ``generatorVersion``,
  ``sidebars``, ``widgets`` in that order;
* sidebars keep registry order and widgets appear in first-reference order;
* settings keep their key order and pass through ``canonicalize()``, the
  normaliser the merger's fingerprints are built on.

Empty sidebars are exported so an import can recreate empty placements.
"""

from __future__ import annotations

import json
import logging

from .. import __version__
from .fingerprint import canonicalize
from .models import (
    MISSING_WIDGET,
    ExportDocument,
    RegistrySnapshot,
    Sidebar,
    SidebarRef,
    WidgetInstance,
    is_missing,
)

logger = logging.getLogger(__name__)

#: Current document format major version.
FORMAT_VERSION = 2

DEFAULT_GENERATOR_VERSION = f"widget-transfer/{__version__}"


def encode_document(document: ExportDocument) -> bytes:
    """Encode *document* as deterministic, indented UTF-8 JSON."""
    payload = document.model_dump(by_alias=True, mode="json")
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


class Exporter:
    """Build and serialise export documents.

    Args:
        generator_version: Producer identifier written to the document.
        include_inactive: Export the inactive-widgets pseudo-sidebar too.
    """

    def __init__(
        self,
        generator_version: str = DEFAULT_GENERATOR_VERSION,
        include_inactive: bool = True,
    ) -> None:
        self.generator_version = generator_version
        self.include_inactive = include_inactive

    def build_document(self, snapshot: RegistrySnapshot) -> ExportDocument:
        """Convert *snapshot* into an ``ExportDocument``."""
        sidebars: list[Sidebar] = []
        widgets: dict[tuple[str, int], WidgetInstance] = {}

        for sidebar in snapshot.sidebars:
            if sidebar.is_inactive and not self.include_inactive:
                continue
            refs: list[SidebarRef] = []
            for ref in sidebar.widget_refs:
                if is_missing(ref):
                    refs.append(MISSING_WIDGET)
                    continue
                instance = snapshot.get_instance(ref)
                if instance is None:
                    logger.warning(
                        "Widget %s in sidebar %s has no settings; "
                        "exporting placeholder",
                        ref.widget_id,
                        sidebar.id,
                    )
                    refs.append(MISSING_WIDGET)
                    continue
                refs.append(ref)
                if ref.key not in widgets:
                    widgets[ref.key] = WidgetInstance(
                        type=instance.type,
                        legacy_index=instance.legacy_index,
                        settings=canonicalize(instance.settings),
                    )
            sidebars.append(
                Sidebar(
                    id=sidebar.id,
                    name=sidebar.name or sidebar.id,
                    widget_refs=refs,
                )
            )

        return ExportDocument(
            format_version=FORMAT_VERSION,
            generator_version=self.generator_version,
            sidebars=sidebars,
            widgets=list(widgets.values()),
        )

    def serialize(self, snapshot: RegistrySnapshot) -> bytes:
        """Serialise *snapshot* to document bytes."""
        document = self.build_document(snapshot)
        logger.info(
            "Exporting %d sidebars, %d widgets",
            len(document.sidebars),
            len(document.widgets),
        )
        return encode_document(document)
