"""Write-back applier: commit a ``WriteBackPlan`` to the registry.

Buckets are written first, then sidebars, so a sidebar never references an
instance that has not been stored yet.  Each affected bucket is read fresh
and written exactly once, with only the plan's new indices added; unrelated
instances and untouched buckets are never rewritten.

There is no rollback.  A failed write raises ``WriteBackError`` naming the
failing target and listing the writes that completed before it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..core.registry import WidgetRegistry
from .errors import WriteBackError
from .models import (
    MISSING_WIDGET,
    ImportSummary,
    SidebarRef,
    SidebarWrite,
    WriteBackPlan,
    is_missing,
)

logger = logging.getLogger(__name__)


def _native_ref(ref: SidebarRef) -> str:
    return MISSING_WIDGET if is_missing(ref) else ref.widget_id


class WriteBackApplier:
    """Apply plans to a ``WidgetRegistry``.

    Args:
        registry: The host registry collaborator.
    """

    def __init__(self, registry: WidgetRegistry) -> None:
        self.registry = registry

    def apply(
        self, plan: WriteBackPlan, started_at: str = ""
    ) -> ImportSummary:
        """Commit *plan*.

        Args:
            plan: Plan computed by the merger.
            started_at: Timestamp recorded on the summary; defaults to now.

        Returns:
            Summary of the committed import.

        Raises:
            WriteBackError: If a registry write fails, or an allocated index
                was taken by someone else after the snapshot.
        """
        started_at = started_at or datetime.now(timezone.utc).isoformat()
        completed: list[str] = []

        for widget_type, additions in plan.new_instances.items():
            self._write_bucket(widget_type, additions, completed)

        for write in plan.sidebar_writes:
            self._write_sidebar(write, completed)

        logger.info(
            "Write-back complete: %d buckets, %d sidebars",
            len(plan.new_instances),
            len(plan.sidebar_writes),
        )
        return ImportSummary.from_plan(
            plan,
            dry_run=False,
            writes=completed,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    def _write_bucket(
        self,
        widget_type: str,
        additions: dict[int, dict],
        completed: list[str],
    ) -> None:
        target = f"bucket:{widget_type}"
        try:
            bucket = self.registry.get_bucket(widget_type)
        except Exception as exc:
            raise WriteBackError(
                f"Could not read bucket '{widget_type}': {exc}",
                target,
                completed,
            ) from exc

        taken = sorted(set(additions) & set(bucket))
        if taken:
            raise WriteBackError(
                f"Bucket '{widget_type}' changed since the snapshot; "
                f"indices {taken} are already in use",
                target,
                completed,
            )

        bucket.update(additions)
        try:
            self.registry.replace_bucket(widget_type, bucket)
        except Exception as exc:
            raise WriteBackError(
                f"Could not write bucket '{widget_type}': {exc}",
                target,
                completed,
            ) from exc
        completed.append(target)
        logger.debug(
            "Bucket %s: added indices %s", widget_type, sorted(additions)
        )

    def _write_sidebar(
        self, write: SidebarWrite, completed: list[str]
    ) -> None:
        target = f"sidebar:{write.sidebar_id}"
        refs = [_native_ref(ref) for ref in write.refs]
        try:
            self.registry.replace_sidebar(
                write.sidebar_id,
                refs,
                name=write.name if write.created else None,
            )
        except Exception as exc:
            raise WriteBackError(
                f"Could not write sidebar '{write.sidebar_id}': {exc}",
                target,
                completed,
            ) from exc
        completed.append(target)
        logger.debug("Sidebar %s: %s", write.sidebar_id, refs)
