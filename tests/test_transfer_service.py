"""Integration tests for transfer/service.py -- WidgetTransfer.

Export from one registry and import into another, end to end, with hooks,
dry runs, sidebar selection and failure paths.
"""

import json
from unittest.mock import patch

import pytest

from widget_transfer.config_schema import TransferConfig
from widget_transfer.core.registry import (
    INACTIVE_SIDEBAR_ID,
    InMemoryRegistry,
    JsonFileRegistry,
)
from widget_transfer.transfer.errors import (
    DanglingReference,
    MalformedDocument,
    RegistryUnavailable,
    UntrustedContent,
)
from widget_transfer.transfer.hooks import TransferHooks
from widget_transfer.transfer.models import WidgetRef
from widget_transfer.transfer.service import WidgetTransfer

JSON = "application/json"


def _state(registry):
    return (
        {sid: registry.get_sidebar(sid) for sid, _ in registry.list_sidebars()},
        {t: registry.get_bucket(t) for t in registry.list_widget_types()},
    )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_export_bytes(self, site_registry):
        payload = WidgetTransfer(site_registry).export()
        doc = json.loads(payload)
        assert doc["formatVersion"] == 2
        assert [s["id"] for s in doc["sidebars"]] == [
            "sidebar-1",
            "footer",
            INACTIVE_SIDEBAR_ID,
        ]

    def test_generator_from_config(self, site_registry):
        transfer = WidgetTransfer(
            site_registry, config=TransferConfig(generator_version="site/9")
        )
        assert json.loads(transfer.export())["generatorVersion"] == "site/9"

    def test_include_inactive_from_config(self, site_registry):
        transfer = WidgetTransfer(
            site_registry, config=TransferConfig(include_inactive=False)
        )
        ids = [s["id"] for s in json.loads(transfer.export())["sidebars"]]
        assert INACTIVE_SIDEBAR_ID not in ids

    def test_export_hook_applied(self, site_registry):
        def drop_footer(snapshot):
            return snapshot.model_copy(
                update={
                    "sidebars": [s for s in snapshot.sidebars if s.id != "footer"]
                }
            )

        hooks = TransferHooks()
        hooks.add_export_hook(drop_footer)
        doc = json.loads(WidgetTransfer(site_registry, hooks=hooks).export())
        assert "footer" not in [s["id"] for s in doc["sidebars"]]

    def test_registry_failure(self, site_registry):
        with patch.object(
            site_registry, "list_sidebars", side_effect=OSError("nope")
        ):
            with pytest.raises(RegistryUnavailable):
                WidgetTransfer(site_registry).export()


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


class TestImport:
    """End-to-end import tests."""

    def test_import_into_empty_registry(self, site_registry, empty_registry):
        payload = WidgetTransfer(site_registry).export()
        summary = WidgetTransfer(empty_registry).import_document(payload, JSON)

        assert summary.widgets_created == 5
        assert summary.sidebars_created == ["sidebar-1", "footer"]
        assert empty_registry.get_sidebar("sidebar-1") == [
            "text-1",
            "search-1",
            "recent-posts-1",
        ]
        assert len(summary.warnings) == 2

    def test_reimport_is_noop(self, site_registry):
        transfer = WidgetTransfer(site_registry)
        before = _state(site_registry)

        summary = transfer.import_document(transfer.export(), JSON)

        assert summary.widgets_created == 0
        assert summary.widgets_reused == 5
        assert summary.writes == []
        assert _state(site_registry) == before

    def test_second_import_is_noop(self, site_registry, empty_registry):
        payload = WidgetTransfer(site_registry).export()
        target = WidgetTransfer(empty_registry)
        target.import_document(payload, JSON)
        after_first = _state(empty_registry)

        summary = target.import_document(payload, JSON)

        assert summary.widgets_created == 0
        assert _state(empty_registry) == after_first

    def test_dry_run_does_not_write(self, site_registry, empty_registry):
        payload = WidgetTransfer(site_registry).export()
        before = _state(empty_registry)

        summary = WidgetTransfer(empty_registry).import_document(
            payload, JSON, dry_run=True
        )

        assert summary.dry_run is True
        assert summary.widgets_created == 5
        assert summary.writes == []
        assert _state(empty_registry) == before

    def test_selected_sidebars(self, site_registry, empty_registry):
        payload = WidgetTransfer(site_registry).export()
        WidgetTransfer(empty_registry).import_document(
            payload, JSON, selected_sidebar_ids=["footer"]
        )
        assert empty_registry.get_sidebar("footer") == ["text-1"]
        assert empty_registry.get_sidebar("sidebar-1") == []

    def test_import_hook_applied(self, site_registry, empty_registry):
        def retitle(document):
            widgets = [
                w.model_copy(update={"settings": {**w.settings, "title": "X"}})
                for w in document.widgets
            ]
            return document.model_copy(update={"widgets": widgets})

        hooks = TransferHooks(before_import=[retitle])
        payload = WidgetTransfer(site_registry).export()
        WidgetTransfer(empty_registry, hooks=hooks).import_document(payload, JSON)

        titles = {s["title"] for s in empty_registry.get_bucket("text").values()}
        assert titles == {"X"}

    def test_validation_failure_leaves_registry_untouched(self, site_registry):
        before = _state(site_registry)
        with pytest.raises(MalformedDocument):
            WidgetTransfer(site_registry).import_document(b"{oops", JSON)
        assert _state(site_registry) == before

    def test_mime_rejected(self, site_registry):
        payload = WidgetTransfer(site_registry).export()
        with pytest.raises(UntrustedContent):
            WidgetTransfer(site_registry).import_document(payload, "text/html")

    def test_size_limit_from_config(self, site_registry):
        payload = WidgetTransfer(site_registry).export()
        transfer = WidgetTransfer(
            site_registry, config=TransferConfig(max_document_bytes=16)
        )
        with pytest.raises(UntrustedContent, match="maximum size"):
            transfer.import_document(payload, JSON)

    def test_hook_failure_aborts_before_write(self, site_registry, empty_registry):
        def broken(document):
            raise RuntimeError("hook failed")

        payload = WidgetTransfer(site_registry).export()
        transfer = WidgetTransfer(
            empty_registry, hooks=TransferHooks(before_import=[broken])
        )
        with pytest.raises(RuntimeError, match="hook failed"):
            transfer.import_document(payload, JSON)
        assert empty_registry.get_sidebar("sidebar-1") == []

    def test_hook_leaving_dangling_ref_rejected(self, site_registry, empty_registry):
        def point_at_absent_widget(document):
            sidebars = [
                s.model_copy(
                    update={"widget_refs": [WidgetRef(type="text", legacy_index=99)]}
                )
                if s.id == "footer"
                else s
                for s in document.sidebars
            ]
            return document.model_copy(update={"sidebars": sidebars})

        payload = WidgetTransfer(site_registry).export()
        transfer = WidgetTransfer(
            empty_registry,
            hooks=TransferHooks(before_import=[point_at_absent_widget]),
        )
        with pytest.raises(DanglingReference) as exc_info:
            transfer.import_document(payload, JSON)

        assert "footer" in str(exc_info.value)
        assert empty_registry.get_sidebar("sidebar-1") == []
        assert empty_registry.list_widget_types() == []


class TestPlanImport:
    def test_plan_without_writing(self, site_registry, empty_registry):
        payload = WidgetTransfer(site_registry).export()
        plan = WidgetTransfer(empty_registry).plan_import(payload, JSON)
        assert not plan.is_empty
        assert empty_registry.list_widget_types() == []


class TestJsonFileRoundTrip:
    def test_export_import_through_files(self, site_registry, tmp_path):
        payload = WidgetTransfer(site_registry).export()
        target = JsonFileRegistry(tmp_path / "widgets.json")

        WidgetTransfer(target).import_document(payload, JSON)
        summary = WidgetTransfer(target).import_document(payload, JSON)

        assert summary.writes == []
        assert target.get_sidebar("footer") == ["text-2"]
        reexport = json.loads(WidgetTransfer(target).export())
        settings = [w["settings"] for w in reexport["widgets"]]
        assert {"title": "About", "text": "Hello"} in settings
