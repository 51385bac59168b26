"""Registry reader: snapshot the live widget registry.

``RegistryReader.snapshot()`` enumerates every sidebar (inactive bucket
included) and every widget bucket, in the host's native order, and returns
a frozen ``RegistrySnapshot``.  Nothing is written.

Host-native widget ids (``"<type>-<index>"``) are parsed into ``WidgetRef``
values.  A reference that cannot be parsed, or whose instance is absent
from its bucket, is read as the missing-widget placeholder so downstream
code never sees a dangling reference.

Any exception raised by the registry while reading is surfaced as
``RegistryUnavailable``; the reader does not retry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..core.registry import WidgetRegistry
from .errors import RegistryUnavailable
from .models import (
    MISSING_WIDGET,
    RegistrySnapshot,
    Sidebar,
    SidebarRef,
    WidgetRef,
)

logger = logging.getLogger(__name__)


class RegistryReader:
    """Read a ``WidgetRegistry`` into a ``RegistrySnapshot``.

    Args:
        registry: The host registry collaborator.
    """

    def __init__(self, registry: WidgetRegistry) -> None:
        self.registry = registry

    def snapshot(self) -> RegistrySnapshot:
        """Take a point-in-time snapshot of the registry.

        Returns:
            The snapshot.

        Raises:
            RegistryUnavailable: If the registry cannot be enumerated.
        """
        try:
            widget_types = self.registry.list_widget_types()
            buckets = {
                widget_type: self.registry.get_bucket(widget_type)
                for widget_type in widget_types
            }
            sidebar_rows = [
                (sidebar_id, name, self.registry.get_sidebar(sidebar_id))
                for sidebar_id, name in self.registry.list_sidebars()
            ]
            registered = self.registry.registered_sidebar_ids()
            available = self.registry.available_widget_types()
        except Exception as exc:
            logger.error("Failed to read widget registry: %s", exc)
            raise RegistryUnavailable(
                f"Widget registry could not be read: {exc}"
            ) from exc

        sidebars = [
            Sidebar(
                id=sidebar_id,
                name=name,
                widget_refs=[
                    self._resolve(sidebar_id, widget_id, buckets)
                    for widget_id in widget_ids
                ],
            )
            for sidebar_id, name, widget_ids in sidebar_rows
        ]

        snapshot = RegistrySnapshot(
            sidebars=sidebars,
            buckets=buckets,
            registered_sidebar_ids=registered,
            available_widget_types=available,
            taken_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.debug(
            "Snapshot: %d sidebars, %d widget types",
            len(sidebars),
            len(buckets),
        )
        return snapshot

    @staticmethod
    def _resolve(
        sidebar_id: str,
        widget_id: str,
        buckets: dict[str, dict[int, dict]],
    ) -> SidebarRef:
        """Turn a host-native id into a ref, or the missing placeholder."""
        if widget_id == MISSING_WIDGET:
            return MISSING_WIDGET
        try:
            ref = WidgetRef.from_widget_id(widget_id)
        except ValueError:
            logger.warning(
                "Unparseable widget id %r in sidebar %s", widget_id, sidebar_id
            )
            return MISSING_WIDGET
        if ref.legacy_index not in buckets.get(ref.type, {}):
            logger.debug(
                "Widget %s in sidebar %s has no settings -- missing",
                widget_id,
                sidebar_id,
            )
            return MISSING_WIDGET
        return ref
