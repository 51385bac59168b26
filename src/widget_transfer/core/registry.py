"""Widget registry collaborator contract and bundled implementations.

The engine never touches host storage directly.  Everything it needs from
the host goes through the ``WidgetRegistry`` protocol, which mirrors how
content-management hosts store widgets:

* one *bucket* per widget type, mapping a numeric index to that instance's
  settings;
* one ordered list of host-native widget ids (``"<type>-<index>"``) per
  sidebar, plus the ``wp_inactive_widgets`` pseudo-sidebar.

Writes replace a whole bucket or a whole sidebar and are assumed atomic at
that granularity.

Two implementations ship with the package:

- ``InMemoryRegistry`` -- dict-backed, for embedding and tests.
- ``JsonFileRegistry`` -- a single JSON file, written atomically with a
  temp file and ``os.replace()`` so readers never see partial data.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

#: Pseudo-sidebar holding widgets detached from every active sidebar.
INACTIVE_SIDEBAR_ID = "wp_inactive_widgets"

#: Placeholder stored in place of a reference whose instance is absent.
MISSING_WIDGET = "missing-widget"


class WidgetRegistry(Protocol):
    """Read/write contract the host must satisfy."""

    def list_sidebars(self) -> list[tuple[str, str]]:
        """Return ``(sidebar_id, name)`` pairs in host order.

        The inactive pseudo-sidebar is included.
        """
        ...  # pragma: no cover

    def get_sidebar(self, sidebar_id: str) -> list[str]:
        """Return the ordered host-native widget ids of a sidebar."""
        ...  # pragma: no cover

    def list_widget_types(self) -> list[str]:
        """Return every widget type that has a bucket."""
        ...  # pragma: no cover

    def get_bucket(self, widget_type: str) -> dict[int, dict[str, Any]]:
        """Return ``{index: settings}`` for *widget_type*."""
        ...  # pragma: no cover

    def registered_sidebar_ids(self) -> list[str]:
        """Return the sidebars the host actually displays."""
        ...  # pragma: no cover

    def available_widget_types(self) -> list[str] | None:
        """Return supported widget types, or ``None`` for no restriction."""
        ...  # pragma: no cover

    def replace_bucket(
        self, widget_type: str, mapping: dict[int, dict[str, Any]]
    ) -> None:
        """Replace the whole bucket of *widget_type*."""
        ...  # pragma: no cover

    def replace_sidebar(
        self, sidebar_id: str, refs: list[str], name: str | None = None
    ) -> None:
        """Replace a sidebar's widget ids, creating it if needed."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# In-memory registry
# ---------------------------------------------------------------------------


class InMemoryRegistry:
    """Dict-backed ``WidgetRegistry``.

    Args:
        sidebars: Sidebar id to ordered host-native widget ids.  Insertion
            order is host order.  The inactive sidebar is added if absent.
        buckets: Widget type to ``{index: settings}``.
        names: Optional sidebar labels (default: the id).
        registered: Sidebars the host displays.  Defaults to every sidebar
            passed in *sidebars* except the inactive one.
        widget_types: Supported widget types (``None`` = unrestricted).
    """

    def __init__(
        self,
        sidebars: dict[str, list[str]] | None = None,
        buckets: dict[str, dict[int, dict[str, Any]]] | None = None,
        names: dict[str, str] | None = None,
        registered: list[str] | None = None,
        widget_types: list[str] | None = None,
    ) -> None:
        self.sidebars: dict[str, list[str]] = copy.deepcopy(sidebars or {})
        self.sidebars.setdefault(INACTIVE_SIDEBAR_ID, [])
        self.buckets: dict[str, dict[int, dict[str, Any]]] = copy.deepcopy(
            buckets or {}
        )
        self.names: dict[str, str] = dict(names or {})
        if registered is None:
            registered = [
                sid for sid in self.sidebars if sid != INACTIVE_SIDEBAR_ID
            ]
        self.registered = list(registered)
        self.widget_types = (
            list(widget_types) if widget_types is not None else None
        )

    def list_sidebars(self) -> list[tuple[str, str]]:
        return [(sid, self.names.get(sid, sid)) for sid in self.sidebars]

    def get_sidebar(self, sidebar_id: str) -> list[str]:
        return list(self.sidebars.get(sidebar_id, []))

    def list_widget_types(self) -> list[str]:
        return list(self.buckets)

    def get_bucket(self, widget_type: str) -> dict[int, dict[str, Any]]:
        return copy.deepcopy(self.buckets.get(widget_type, {}))

    def registered_sidebar_ids(self) -> list[str]:
        return list(self.registered)

    def available_widget_types(self) -> list[str] | None:
        return list(self.widget_types) if self.widget_types is not None else None

    def replace_bucket(
        self, widget_type: str, mapping: dict[int, dict[str, Any]]
    ) -> None:
        self.buckets[widget_type] = copy.deepcopy(mapping)

    def replace_sidebar(
        self, sidebar_id: str, refs: list[str], name: str | None = None
    ) -> None:
        self.sidebars[sidebar_id] = list(refs)
        if name and sidebar_id not in self.names:
            self.names[sidebar_id] = name


# ---------------------------------------------------------------------------
# JSON file registry
# ---------------------------------------------------------------------------


def _empty_registry_data() -> dict[str, Any]:
    return {
        "version": 1,
        "sidebars": [
            {
                "id": INACTIVE_SIDEBAR_ID,
                "name": "Inactive Widgets",
                "registered": False,
                "widgets": [],
            }
        ],
        "widgets": {},
        "available_widget_types": None,
    }


class JsonFileRegistry:
    """``WidgetRegistry`` persisted as a single JSON file.

    File layout::

        {
          "version": 1,
          "sidebars": [
            {"id": "sidebar-1", "name": "Main Sidebar",
             "registered": true, "widgets": ["text-2", "search-1"]}
          ],
          "widgets": {"text": {"2": {"title": "About"}}},
          "available_widget_types": null
        }

    A missing file reads as an empty registry; the first write creates it.
    Every write re-reads the file, changes one bucket or one sidebar, and
    replaces the file atomically.

    Args:
        path: Location of the registry file.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """Read the registry file.

        Raises:
            ValueError: If the file is not a JSON object.
            OSError: If the file exists but cannot be read.
        """
        if not self._path.exists():
            logger.debug(
                "Registry file %s not found -- treating as empty",
                self._path,
            )
            return _empty_registry_data()
        with open(self._path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(
                f"Registry file {self._path} must contain a JSON object"
            )
        data.setdefault("sidebars", [])
        data.setdefault("widgets", {})
        if not any(
            s.get("id") == INACTIVE_SIDEBAR_ID for s in data["sidebars"]
        ):
            data["sidebars"].append(
                {
                    "id": INACTIVE_SIDEBAR_ID,
                    "name": "Inactive Widgets",
                    "registered": False,
                    "widgets": [],
                }
            )
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Write *data* to the registry file atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sidebars(self) -> list[tuple[str, str]]:
        return [
            (s["id"], s.get("name") or s["id"])
            for s in self.load()["sidebars"]
        ]

    def get_sidebar(self, sidebar_id: str) -> list[str]:
        for sidebar in self.load()["sidebars"]:
            if sidebar["id"] == sidebar_id:
                return list(sidebar.get("widgets", []))
        return []

    def list_widget_types(self) -> list[str]:
        return list(self.load()["widgets"])

    def get_bucket(self, widget_type: str) -> dict[int, dict[str, Any]]:
        raw = self.load()["widgets"].get(widget_type, {})
        return {int(index): settings for index, settings in raw.items()}

    def registered_sidebar_ids(self) -> list[str]:
        return [
            s["id"]
            for s in self.load()["sidebars"]
            if s["id"] != INACTIVE_SIDEBAR_ID and s.get("registered", True)
        ]

    def available_widget_types(self) -> list[str] | None:
        types = self.load().get("available_widget_types")
        return list(types) if types is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace_bucket(
        self, widget_type: str, mapping: dict[int, dict[str, Any]]
    ) -> None:
        data = self.load()
        data["widgets"][widget_type] = {
            str(index): settings
            for index, settings in sorted(mapping.items())
        }
        self.save(data)

    def replace_sidebar(
        self, sidebar_id: str, refs: list[str], name: str | None = None
    ) -> None:
        data = self.load()
        for sidebar in data["sidebars"]:
            if sidebar["id"] == sidebar_id:
                sidebar["widgets"] = list(refs)
                break
        else:
            # Created by an import, not by the host.
            data["sidebars"].append(
                {
                    "id": sidebar_id,
                    "name": name or sidebar_id,
                    "registered": False,
                    "widgets": list(refs),
                }
            )
        self.save(data)
