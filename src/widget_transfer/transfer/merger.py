"""Importer/merger: reconcile an incoming document with a live snapshot.

``merge()`` is pure.  It reads a ``RegistrySnapshot`` and a validated
``ExportDocument`` and returns a ``WriteBackPlan``; nothing is written
until the plan is applied.

Per selected sidebar, in document order:

1. **Unknown sidebar** -- created with the incoming order; every widget is
   allocated as a new instance.
2. **Known sidebar** -- each incoming widget is fingerprinted and matched
   against the live sidebar's *unclaimed* widgets of the same type.  A match
   reuses the live index (each live widget is claimed at most once); no
   match allocates ``max(index) + 1`` in the type's bucket.  Freed indices
   below the maximum are never reused.
3. **Rebuild** -- the sidebar takes the incoming order.  Live widgets the
   document no longer references move to the inactive bucket; nothing is
   deleted.  When the sidebar being merged is the inactive bucket itself,
   its leftovers stay at the end of it.
4. **Placeholders** -- ``"missing-widget"`` entries keep their position.

Importing unchanged data therefore matches everything and yields an empty
plan, which is what makes repeated imports safe.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from typing import Any

from .fingerprint import instance_fingerprint
from .models import (
    INACTIVE_SIDEBAR_ID,
    MISSING_WIDGET,
    ExportDocument,
    MergeWarning,
    RegistrySnapshot,
    Sidebar,
    SidebarRef,
    SidebarWrite,
    WarningCode,
    WidgetAction,
    WidgetInstance,
    WidgetOutcome,
    WidgetRef,
    WriteBackPlan,
    is_missing,
)

logger = logging.getLogger(__name__)


def merge(
    snapshot: RegistrySnapshot,
    document: ExportDocument,
    selected_sidebar_ids: Iterable[str] | None = None,
) -> WriteBackPlan:
    """Compute the write-back plan for importing *document*.

    Args:
        snapshot: Live registry state the plan is based on.
        document: Validated incoming document.
        selected_sidebar_ids: Sidebars to import; ``None`` imports every
            sidebar in the document.

    Returns:
        The plan.  Discarding it has no side effects.
    """
    return Merger(snapshot).merge(document, selected_sidebar_ids)


class Merger:
    """Single-use merge state for one snapshot.

    Args:
        snapshot: Live registry state.
    """

    def __init__(self, snapshot: RegistrySnapshot) -> None:
        self.snapshot = snapshot
        self._new_instances: dict[str, dict[int, dict[str, Any]]] = {}
        self._next_index: dict[str, int] = {}
        self._writes: dict[str, SidebarWrite] = {}
        self._moved: list[WidgetRef] = []
        self._outcomes: list[WidgetOutcome] = []
        self._warnings: list[MergeWarning] = []

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def merge(
        self,
        document: ExportDocument,
        selected_sidebar_ids: Iterable[str] | None = None,
    ) -> WriteBackPlan:
        widgets = document.widget_map()
        selected = self._select(document, selected_sidebar_ids)

        for sidebar in document.sidebars:
            if sidebar.id not in selected:
                continue
            live = self.snapshot.get_sidebar(sidebar.id)
            if live is None:
                self._create_sidebar(sidebar, widgets)
            else:
                self._merge_sidebar(sidebar, live, widgets)
            self._check_registered(sidebar)

        self._flush_inactive()

        plan = WriteBackPlan(
            new_instances=self._new_instances,
            sidebar_writes=list(self._writes.values()),
            outcomes=self._outcomes,
            warnings=self._warnings,
            snapshot_taken_at=self.snapshot.taken_at,
        )
        logger.info(
            "Merge plan: %d created, %d reused, %d moved to inactive, "
            "%d sidebars created, %d warnings",
            plan.count(WidgetAction.CREATED),
            plan.count(WidgetAction.REUSED),
            plan.count(WidgetAction.MOVED_INACTIVE),
            len(plan.sidebars_created),
            len(plan.warnings),
        )
        return plan

    # ------------------------------------------------------------------
    # Sidebars
    # ------------------------------------------------------------------

    @staticmethod
    def _select(
        document: ExportDocument,
        selected_sidebar_ids: Iterable[str] | None,
    ) -> set[str]:
        available = {s.id for s in document.sidebars}
        if selected_sidebar_ids is None:
            return available
        selected = set(selected_sidebar_ids)
        for sidebar_id in sorted(selected - available):
            logger.warning(
                "Selected sidebar %s is not in the document -- ignored",
                sidebar_id,
            )
        return selected & available

    def _create_sidebar(
        self,
        sidebar: Sidebar,
        widgets: dict[tuple[str, int], WidgetInstance],
    ) -> None:
        refs = [
            self._resolve(sidebar.id, ref, widgets, candidates=None)
            for ref in sidebar.widget_refs
        ]
        self._writes[sidebar.id] = SidebarWrite(
            sidebar_id=sidebar.id,
            name=sidebar.name or sidebar.id,
            refs=refs,
            created=True,
        )
        logger.debug(
            "Sidebar %s created with %d entries", sidebar.id, len(refs)
        )

    def _merge_sidebar(
        self,
        sidebar: Sidebar,
        live: Sidebar,
        widgets: dict[tuple[str, int], WidgetInstance],
    ) -> None:
        candidates = self._live_candidates(live)
        refs = [
            self._resolve(sidebar.id, ref, widgets, candidates)
            for ref in sidebar.widget_refs
        ]

        claimed = {r.key for r in refs if not is_missing(r)}
        leftovers: list[WidgetRef] = []
        for ref in live.widget_refs:
            if is_missing(ref) or ref.key in claimed:
                continue
            if ref not in leftovers:
                leftovers.append(ref)

        if live.is_inactive:
            refs.extend(leftovers)
        else:
            for ref in leftovers:
                self._move_to_inactive(sidebar.id, ref)

        if refs == live.widget_refs:
            logger.debug("Sidebar %s unchanged", sidebar.id)
            return
        self._writes[sidebar.id] = SidebarWrite(
            sidebar_id=sidebar.id,
            name=live.name or sidebar.id,
            refs=refs,
            created=False,
        )

    def _live_candidates(
        self, live: Sidebar
    ) -> dict[tuple[str, str], deque[WidgetRef]]:
        """Group a live sidebar's widgets by ``(type, fingerprint)``."""
        candidates: dict[tuple[str, str], deque[WidgetRef]] = defaultdict(
            deque
        )
        seen: set[tuple[str, int]] = set()
        for ref in live.widget_refs:
            if is_missing(ref) or ref.key in seen:
                continue
            seen.add(ref.key)
            instance = self.snapshot.get_instance(ref)
            if instance is None:
                continue
            candidates[(ref.type, instance_fingerprint(instance))].append(ref)
        return candidates

    def _check_registered(self, sidebar: Sidebar) -> None:
        if sidebar.id == INACTIVE_SIDEBAR_ID:
            return
        if sidebar.id in self.snapshot.registered_sidebar_ids:
            return
        message = (
            f"Sidebar '{sidebar.id}' is not registered on this site; "
            "its widgets were stored but will not be displayed"
        )
        logger.warning(message)
        self._warnings.append(
            MergeWarning(
                code=WarningCode.SIDEBAR_NOT_REGISTERED,
                sidebar_id=sidebar.id,
                message=message,
            )
        )

    # ------------------------------------------------------------------
    # Widgets
    # ------------------------------------------------------------------

    def _resolve(
        self,
        sidebar_id: str,
        ref: SidebarRef,
        widgets: dict[tuple[str, int], WidgetInstance],
        candidates: dict[tuple[str, str], deque[WidgetRef]] | None,
    ) -> SidebarRef:
        """Map one incoming reference to its live reference."""
        if is_missing(ref):
            self._outcomes.append(
                WidgetOutcome(
                    sidebar_id=sidebar_id, action=WidgetAction.PLACEHOLDER
                )
            )
            return MISSING_WIDGET

        instance = widgets[ref.key]

        if not self.snapshot.supports_type(instance.type):
            message = f"Site does not support widget type '{instance.type}'"
            logger.warning("%s (sidebar %s)", message, sidebar_id)
            self._warnings.append(
                MergeWarning(
                    code=WarningCode.WIDGET_TYPE_UNSUPPORTED,
                    sidebar_id=sidebar_id,
                    message=message,
                    widget_type=instance.type,
                )
            )
            self._outcomes.append(
                WidgetOutcome(
                    sidebar_id=sidebar_id,
                    action=WidgetAction.SKIPPED,
                    widget_type=instance.type,
                    source_index=instance.legacy_index,
                    title=instance.title,
                    message=message,
                )
            )
            return MISSING_WIDGET

        if candidates is not None:
            pool = candidates.get((instance.type, instance_fingerprint(instance)))
            if pool:
                match = pool.popleft()
                logger.debug(
                    "%s matches live %s in %s",
                    ref.widget_id,
                    match.widget_id,
                    sidebar_id,
                )
                self._outcomes.append(
                    WidgetOutcome(
                        sidebar_id=sidebar_id,
                        action=WidgetAction.REUSED,
                        widget_type=instance.type,
                        source_index=instance.legacy_index,
                        target_index=match.legacy_index,
                        title=instance.title,
                    )
                )
                return match

        new_ref = self._allocate(instance)
        logger.debug(
            "%s allocated as %s in %s",
            ref.widget_id,
            new_ref.widget_id,
            sidebar_id,
        )
        self._outcomes.append(
            WidgetOutcome(
                sidebar_id=sidebar_id,
                action=WidgetAction.CREATED,
                widget_type=instance.type,
                source_index=instance.legacy_index,
                target_index=new_ref.legacy_index,
                title=instance.title,
            )
        )
        return new_ref

    def _allocate(self, instance: WidgetInstance) -> WidgetRef:
        """Reserve the next unused index in the instance's bucket."""
        widget_type = instance.type
        if widget_type not in self._next_index:
            existing = self.snapshot.buckets.get(widget_type, {})
            self._next_index[widget_type] = max(existing, default=0) + 1
        index = self._next_index[widget_type]
        self._next_index[widget_type] = index + 1
        self._new_instances.setdefault(widget_type, {})[index] = dict(
            instance.settings
        )
        return WidgetRef(type=widget_type, legacy_index=index)

    def _move_to_inactive(self, sidebar_id: str, ref: WidgetRef) -> None:
        instance = self.snapshot.get_instance(ref)
        logger.debug(
            "%s no longer in %s -- moving to inactive",
            ref.widget_id,
            sidebar_id,
        )
        self._moved.append(ref)
        self._outcomes.append(
            WidgetOutcome(
                sidebar_id=sidebar_id,
                action=WidgetAction.MOVED_INACTIVE,
                widget_type=ref.type,
                target_index=ref.legacy_index,
                title=instance.title if instance else "",
            )
        )

    def _flush_inactive(self) -> None:
        """Append widgets moved out of active sidebars to the inactive bucket."""
        if not self._moved:
            return
        pending = self._writes.get(INACTIVE_SIDEBAR_ID)
        live = self.snapshot.get_sidebar(INACTIVE_SIDEBAR_ID)
        if pending is not None:
            base = list(pending.refs)
        elif live is not None:
            base = list(live.widget_refs)
        else:
            base = []

        refs: list[SidebarRef] = base
        for ref in self._moved:
            if ref not in refs:
                refs.append(ref)

        self._writes[INACTIVE_SIDEBAR_ID] = SidebarWrite(
            sidebar_id=INACTIVE_SIDEBAR_ID,
            name=live.name if live else "Inactive Widgets",
            refs=refs,
            created=live is None and pending is None,
        )
