"""Shared pytest fixtures for widget-transfer tests."""

import json

import pytest

from widget_transfer.core.registry import INACTIVE_SIDEBAR_ID, InMemoryRegistry


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer env vars from leaking into config tests."""
    for key in (
        "WIDGET_REGISTRY_PATH",
        "WIDGET_TRANSFER_READ_ONLY",
        "WIDGET_TRANSFER_MAX_BYTES",
        "WIDGET_TRANSFER_DEBUG",
        "WIDGET_TRANSFER_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def site_registry():
    """A small populated registry: two sidebars, three widget types."""
    return InMemoryRegistry(
        sidebars={
            "sidebar-1": ["text-2", "search-1", "recent-posts-3"],
            "footer": ["text-3"],
            INACTIVE_SIDEBAR_ID: ["text-5"],
        },
        buckets={
            "text": {
                2: {"title": "About", "text": "Hello"},
                3: {"title": "Contact", "text": "mail@example.com"},
                5: {"title": "Old", "text": "retired"},
            },
            "search": {1: {"title": "Search"}},
            "recent-posts": {3: {"title": "Recent", "number": 5}},
        },
        names={"sidebar-1": "Main Sidebar", "footer": "Footer"},
    )


@pytest.fixture
def empty_registry():
    return InMemoryRegistry()


@pytest.fixture
def make_document():
    """Factory for v2 document dicts.

    ``sidebars`` maps sidebar id to a list of ``"type-index"`` ids (or the
    missing placeholder); ``widgets`` maps ``"type-index"`` to settings.
    """

    def _make(sidebars, widgets, generator="test/1"):
        def ref(widget_id):
            if widget_id == "missing-widget":
                return widget_id
            widget_type, _, index = widget_id.rpartition("-")
            return {"type": widget_type, "legacyIndex": int(index)}

        widget_list = []
        for widget_id, settings in widgets.items():
            widget_type, _, index = widget_id.rpartition("-")
            widget_list.append(
                {
                    "type": widget_type,
                    "legacyIndex": int(index),
                    "settings": settings,
                }
            )
        return {
            "formatVersion": 2,
            "generatorVersion": generator,
            "sidebars": [
                {
                    "id": sidebar_id,
                    "name": sidebar_id,
                    "widgetRefs": [ref(w) for w in refs],
                }
                for sidebar_id, refs in sidebars.items()
            ],
            "widgets": widget_list,
        }

    return _make


@pytest.fixture
def to_bytes():
    def _encode(document):
        return json.dumps(document).encode("utf-8")

    return _encode
