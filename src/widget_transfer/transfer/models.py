"""Pydantic models for the widget transfer engine.

Defines the data contracts shared by every transfer module:

- ``WidgetRef``: ``(type, legacy_index)`` address of a widget instance.
- ``WidgetInstance``: one configured widget and its opaque settings.
- ``Sidebar``: a named display region holding ordered widget references.
- ``RegistrySnapshot``: point-in-time copy of the live registry.
- ``ExportDocument``: the portable, versioned document.
- ``WidgetAction`` / ``WidgetOutcome``: per-widget merge decisions.
- ``MergeWarning``: non-fatal conditions found while merging.
- ``SidebarWrite`` / ``WriteBackPlan``: the mutations an import will make.
- ``ImportSummary``: what an import did (or would do, for a dry run).

All models are frozen (immutable).  Document field names use the camelCase
aliases of the portable format (``legacyIndex``, ``widgetRefs``,
``formatVersion``, ``generatorVersion``); Python code uses the snake_case
names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field

from ..core.registry import INACTIVE_SIDEBAR_ID, MISSING_WIDGET

__all__ = [
    "INACTIVE_SIDEBAR_ID",
    "MISSING_WIDGET",
    "ExportDocument",
    "ImportSummary",
    "MergeWarning",
    "RegistrySnapshot",
    "Sidebar",
    "SidebarRef",
    "SidebarWrite",
    "WarningCode",
    "WidgetAction",
    "WidgetInstance",
    "WidgetOutcome",
    "WidgetRef",
    "WriteBackPlan",
    "is_missing",
]

_MODEL_CONFIG = {"frozen": True, "populate_by_name": True}


class WidgetRef(BaseModel):
    """Address of a widget instance within its type's bucket.

    Attributes:
        type: Widget kind, e.g. ``"text"`` or ``"recent-posts"``.
        legacy_index: Numeric slot within the type's bucket.
    """

    type: str
    legacy_index: int = Field(alias="legacyIndex")

    model_config = _MODEL_CONFIG

    @property
    def key(self) -> tuple[str, int]:
        """``(type, legacy_index)`` tuple, used as a dict key."""
        return (self.type, self.legacy_index)

    @property
    def widget_id(self) -> str:
        """Host-native id, e.g. ``"recent-posts-3"``."""
        return f"{self.type}-{self.legacy_index}"

    @classmethod
    def from_widget_id(cls, widget_id: str) -> WidgetRef:
        """Parse a host-native ``"<type>-<index>"`` id.

        Widget types may themselves contain hyphens, so the index is taken
        from the last segment only.

        Raises:
            ValueError: If *widget_id* has no numeric ``-<index>`` suffix.
        """
        widget_type, sep, index = widget_id.rpartition("-")
        if not sep or not widget_type or not index.isdigit():
            raise ValueError(f"Invalid widget id: {widget_id!r}")
        return cls(type=widget_type, legacy_index=int(index))


#: An entry of a sidebar's ordered reference list.
SidebarRef = Union[WidgetRef, Literal["missing-widget"]]


def is_missing(ref: SidebarRef) -> bool:
    """Return ``True`` if *ref* is the missing-widget placeholder."""
    return isinstance(ref, str) and ref == MISSING_WIDGET


class WidgetInstance(BaseModel):
    """One configured content block.

    Attributes:
        type: Widget kind.
        legacy_index: Slot the instance occupied at export time.  Not stable
            across installations.
        settings: Option name to value mapping, passed through verbatim.
    """

    type: str
    legacy_index: int = Field(alias="legacyIndex")
    settings: dict[str, Any] = Field(default_factory=dict)

    model_config = _MODEL_CONFIG

    @property
    def ref(self) -> WidgetRef:
        return WidgetRef(type=self.type, legacy_index=self.legacy_index)

    @property
    def title(self) -> str:
        """Human label from ``settings["title"]``, or ``""``."""
        title = self.settings.get("title")
        return title if isinstance(title, str) else ""


class Sidebar(BaseModel):
    """A named display region.

    Attributes:
        id: Stable slug, unique within an installation.
        name: Human label, informational only.
        widget_refs: Ordered references; order is display order.
    """

    id: str
    name: str = ""
    widget_refs: list[SidebarRef] = Field(
        default_factory=list, alias="widgetRefs"
    )

    model_config = _MODEL_CONFIG

    @property
    def is_inactive(self) -> bool:
        return self.id == INACTIVE_SIDEBAR_ID


class RegistrySnapshot(BaseModel):
    """Point-in-time value copy of the live widget registry.

    Attributes:
        sidebars: Every sidebar in host order, inactive bucket included.
        buckets: Widget type to ``{index: settings}`` mapping.
        registered_sidebar_ids: Sidebars the host actually displays.
        available_widget_types: Widget types the host supports, or
            ``None`` when the host does not restrict types.
        taken_at: ISO 8601 timestamp of the snapshot.
    """

    sidebars: list[Sidebar] = []
    buckets: dict[str, dict[int, dict[str, Any]]] = {}
    registered_sidebar_ids: list[str] = []
    available_widget_types: list[str] | None = None
    taken_at: str = ""

    model_config = {"frozen": True}

    def get_sidebar(self, sidebar_id: str) -> Sidebar | None:
        """Return the sidebar named *sidebar_id*, or ``None``."""
        for sidebar in self.sidebars:
            if sidebar.id == sidebar_id:
                return sidebar
        return None

    def get_instance(self, ref: WidgetRef) -> WidgetInstance | None:
        """Resolve *ref* against the buckets, or ``None`` if absent."""
        settings = self.buckets.get(ref.type, {}).get(ref.legacy_index)
        if settings is None:
            return None
        return WidgetInstance(
            type=ref.type,
            legacy_index=ref.legacy_index,
            settings=settings,
        )

    def supports_type(self, widget_type: str) -> bool:
        if self.available_widget_types is None:
            return True
        return widget_type in self.available_widget_types


class ExportDocument(BaseModel):
    """The portable export/import document.

    Attributes:
        format_version: Document format major version.
        generator_version: Free-form producer identifier.
        sidebars: Exported sidebars in registry order.
        widgets: Every instance referenced by ``sidebars``.
    """

    format_version: int = Field(alias="formatVersion")
    generator_version: str = Field(default="", alias="generatorVersion")
    sidebars: list[Sidebar] = Field(default_factory=list)
    widgets: list[WidgetInstance] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    def widget_map(self) -> dict[tuple[str, int], WidgetInstance]:
        """Index ``widgets`` by ``(type, legacy_index)``."""
        return {(w.type, w.legacy_index): w for w in self.widgets}

    def get_sidebar(self, sidebar_id: str) -> Sidebar | None:
        for sidebar in self.sidebars:
            if sidebar.id == sidebar_id:
                return sidebar
        return None


# ---------------------------------------------------------------------------
# Merge results
# ---------------------------------------------------------------------------


class WidgetAction(str, Enum):
    """What the merger decided for one widget."""

    CREATED = "created"
    REUSED = "reused"
    MOVED_INACTIVE = "moved_inactive"
    SKIPPED = "skipped"
    PLACEHOLDER = "placeholder"


class WidgetOutcome(BaseModel):
    """Merge decision for one widget reference.

    Attributes:
        sidebar_id: Sidebar the decision applies to.
        action: The decision.
        widget_type: Widget kind (``None`` for placeholders).
        source_index: Index in the incoming document, if any.
        target_index: Index in the live registry after the import, if any.
        title: Widget title taken from its settings.
        message: Optional detail for skipped widgets.
    """

    sidebar_id: str
    action: WidgetAction
    widget_type: str | None = None
    source_index: int | None = None
    target_index: int | None = None
    title: str = ""
    message: str | None = None

    model_config = {"frozen": True}


class WarningCode(str, Enum):
    """Non-fatal conditions raised while merging."""

    SIDEBAR_NOT_REGISTERED = "sidebar_not_registered"
    WIDGET_TYPE_UNSUPPORTED = "widget_type_unsupported"


class MergeWarning(BaseModel):
    """A non-fatal merge condition the caller should be told about."""

    code: WarningCode
    sidebar_id: str
    message: str
    widget_type: str | None = None

    model_config = {"frozen": True}


class SidebarWrite(BaseModel):
    """Full replacement reference list for one sidebar.

    Attributes:
        sidebar_id: Target sidebar.
        name: Sidebar label (used when the sidebar is created).
        refs: New ordered reference list.
        created: ``True`` if the sidebar does not exist live yet.
    """

    sidebar_id: str
    name: str = ""
    refs: list[SidebarRef] = []
    created: bool = False

    model_config = {"frozen": True}


class WriteBackPlan(BaseModel):
    """Every mutation an import will make, computed before any write.

    Attributes:
        new_instances: Widget type to ``{new index: settings}`` additions.
        sidebar_writes: Sidebar replacements in application order.
        outcomes: Per-widget decisions, in merge order.
        warnings: Non-fatal conditions.
        snapshot_taken_at: Timestamp of the snapshot the plan is based on.
    """

    new_instances: dict[str, dict[int, dict[str, Any]]] = {}
    sidebar_writes: list[SidebarWrite] = []
    outcomes: list[WidgetOutcome] = []
    warnings: list[MergeWarning] = []
    snapshot_taken_at: str = ""

    model_config = {"frozen": True}

    @property
    def sidebars_created(self) -> list[str]:
        return [w.sidebar_id for w in self.sidebar_writes if w.created]

    @property
    def is_empty(self) -> bool:
        """``True`` if applying the plan would change nothing."""
        return not self.new_instances and not self.sidebar_writes

    def count(self, action: WidgetAction) -> int:
        """Number of outcomes with the given action."""
        return sum(1 for o in self.outcomes if o.action == action)


class ImportSummary(BaseModel):
    """Result of an import (or a dry-run preview of one).

    Attributes:
        dry_run: ``True`` if nothing was written.
        sidebars_created: Ids of sidebars the import created.
        outcomes: Per-widget decisions.
        warnings: Non-fatal conditions.
        writes: Registry writes performed, in order.
        started_at: ISO 8601 timestamp when the import started.
        completed_at: ISO 8601 timestamp when the import finished.
    """

    dry_run: bool = False
    sidebars_created: list[str] = []
    outcomes: list[WidgetOutcome] = []
    warnings: list[MergeWarning] = []
    writes: list[str] = []
    started_at: str = ""
    completed_at: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_plan(
        cls,
        plan: WriteBackPlan,
        *,
        dry_run: bool,
        writes: list[str] | None = None,
        started_at: str = "",
        completed_at: str | None = None,
    ) -> ImportSummary:
        return cls(
            dry_run=dry_run,
            sidebars_created=plan.sidebars_created,
            outcomes=plan.outcomes,
            warnings=plan.warnings,
            writes=writes or [],
            started_at=started_at,
            completed_at=completed_at,
        )

    def _count(self, action: WidgetAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def widgets_created(self) -> int:
        return self._count(WidgetAction.CREATED)

    @property
    def widgets_reused(self) -> int:
        return self._count(WidgetAction.REUSED)

    @property
    def widgets_moved_to_inactive(self) -> int:
        return self._count(WidgetAction.MOVED_INACTIVE)

    @property
    def widgets_skipped(self) -> int:
        return self._count(WidgetAction.SKIPPED)

    def summary(self) -> str:
        """Format a short human-readable count summary."""
        lines = [
            "Widget import" + (" (dry run)" if self.dry_run else ""),
            f"  Widgets created:   {self.widgets_created}",
            f"  Widgets reused:    {self.widgets_reused}",
            f"  Moved to inactive: {self.widgets_moved_to_inactive}",
            f"  Widgets skipped:   {self.widgets_skipped}",
            f"  Sidebars created:  {len(self.sidebars_created)}",
            f"  Warnings:          {len(self.warnings)}",
        ]
        return "\n".join(lines)
