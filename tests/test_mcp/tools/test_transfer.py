"""Tests for the widget transfer MCP tool handlers.

Handlers are called directly with a WidgetTransfer over an in-memory
registry; translation of raised errors is covered in test_registry.py.
"""

import json

import pytest

from widget_transfer.core.registry import INACTIVE_SIDEBAR_ID, InMemoryRegistry
from widget_transfer.mcp.tools.transfer import (
    TRANSFER_SPECS,
    TRANSFER_TOOLS,
    _handle_export,
    _handle_import,
    _handle_registry_status,
    _handle_validate,
)
from widget_transfer.transfer.errors import (
    DanglingReference,
    RegistryUnavailable,
    UntrustedContent,
)
from widget_transfer.transfer.service import WidgetTransfer


@pytest.fixture
def transfer(site_registry):
    return WidgetTransfer(site_registry)


@pytest.fixture
def about_document(make_document):
    return make_document(
        {"sidebar-1": ["text-2"]},
        {"text-2": {"title": "About", "text": "Hello"}},
    )


class BrokenRegistry(InMemoryRegistry):
    def list_sidebars(self):
        raise OSError("registry locked")


def _text(result):
    return result.content[0].text


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


class TestToolDefinitions:
    def test_tool_names(self):
        assert [t.name for t in TRANSFER_TOOLS] == [
            "widget_export",
            "widget_import",
            "widget_validate",
            "widget_registry_status",
        ]

    def test_only_import_writes(self):
        writers = [s.tool.name for s in TRANSFER_SPECS if s.writes]
        assert writers == ["widget_import"]

    def test_read_only_annotations(self):
        read_only = {t.name for t in TRANSFER_TOOLS if t.annotations.readOnlyHint}
        assert read_only == {"widget_validate", "widget_registry_status"}

    def test_export_annotated_as_file_writer(self):
        export = TRANSFER_TOOLS[0]
        assert export.annotations.readOnlyHint is False
        assert export.annotations.destructiveHint is True


# ---------------------------------------------------------------------------
# widget_export
# ---------------------------------------------------------------------------


class TestHandleExport:
    async def test_inline_document(self, transfer):
        result = await _handle_export(transfer, {})

        assert not result.isError
        structured = result.structuredContent
        assert structured["format_version"] == 2
        assert structured["generator_version"].startswith("widget-transfer/")
        assert structured["sidebars"] == 3
        assert structured["widgets"] == 5
        assert json.loads(_text(result)) == structured["document"]
        assert structured["bytes"] == len(_text(result).encode("utf-8"))
        assert "output_path" not in structured

    async def test_output_path(self, transfer, tmp_path):
        target = tmp_path / "site.json"

        result = await _handle_export(transfer, {"output_path": str(target)})

        structured = result.structuredContent
        assert structured["output_path"] == str(target.resolve())
        assert "document" not in structured
        assert _text(result).startswith("Exported 3 sidebars and 5 widgets to ")
        data = json.loads(target.read_bytes())
        assert data["formatVersion"] == 2
        assert len(data["widgets"]) == 5

    async def test_relative_output_path_rejected(self, transfer):
        with pytest.raises(ValueError, match="must be absolute"):
            await _handle_export(transfer, {"output_path": "site.json"})

    async def test_unreadable_registry(self):
        with pytest.raises(RegistryUnavailable):
            await _handle_export(WidgetTransfer(BrokenRegistry()), {})


# ---------------------------------------------------------------------------
# widget_import
# ---------------------------------------------------------------------------


class TestHandleImport:
    async def test_import_into_empty_registry(self, empty_registry, about_document):
        transfer = WidgetTransfer(empty_registry)

        result = await _handle_import(
            transfer, {"content": json.dumps(about_document)}
        )

        structured = result.structuredContent
        assert structured["dry_run"] is False
        assert structured["counts"]["created"] == 1
        assert structured["sidebars_created"] == ["sidebar-1"]
        assert _text(result).startswith("Widget import")
        assert empty_registry.get_sidebar("sidebar-1") == ["text-1"]
        assert empty_registry.get_bucket("text") == {
            1: {"title": "About", "text": "Hello"}
        }

    async def test_dry_run_leaves_registry_untouched(
        self, empty_registry, about_document
    ):
        transfer = WidgetTransfer(empty_registry)

        result = await _handle_import(
            transfer, {"content": json.dumps(about_document), "dry_run": True}
        )

        assert result.structuredContent["dry_run"] is True
        assert _text(result).startswith("DRY RUN -- No changes will be made")
        assert "[CREATED]" in _text(result)
        assert empty_registry.get_sidebar("sidebar-1") == []
        assert empty_registry.list_widget_types() == []

    async def test_reimport_of_export_changes_nothing(self, transfer, site_registry):
        exported = await _handle_export(transfer, {})

        result = await _handle_import(transfer, {"content": _text(exported)})

        counts = result.structuredContent["counts"]
        assert counts["created"] == 0
        assert counts["moved_to_inactive"] == 0
        assert counts["reused"] == 5
        assert site_registry.get_sidebar("sidebar-1") == [
            "text-2",
            "search-1",
            "recent-posts-3",
        ]

    async def test_selected_sidebars(self, empty_registry, make_document):
        document = make_document(
            {"sidebar-1": ["text-2"], "footer": ["search-1"]},
            {"text-2": {"title": "About"}, "search-1": {"title": "Search"}},
        )
        transfer = WidgetTransfer(empty_registry)

        result = await _handle_import(
            transfer,
            {"content": json.dumps(document), "sidebars": ["footer"]},
        )

        assert result.structuredContent["sidebars_created"] == ["footer"]
        assert empty_registry.get_sidebar("footer") == ["search-1"]
        assert empty_registry.get_sidebar("sidebar-1") == []

    async def test_import_from_path(self, empty_registry, about_document, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps(about_document))
        transfer = WidgetTransfer(empty_registry)

        result = await _handle_import(transfer, {"path": str(path)})

        assert result.structuredContent["counts"]["created"] == 1

    async def test_declared_mime_type_checked(self, transfer, about_document):
        with pytest.raises(UntrustedContent):
            await _handle_import(
                transfer,
                {"content": json.dumps(about_document), "mime_type": "image/png"},
            )

    async def test_dangling_reference_propagates(self, transfer, make_document):
        document = make_document({"sidebar-1": ["text-9"]}, {})
        with pytest.raises(DanglingReference):
            await _handle_import(transfer, {"content": json.dumps(document)})


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------


class TestDocumentArguments:
    async def test_neither_content_nor_path(self, transfer):
        with pytest.raises(ValueError, match="exactly one of 'content' or 'path'"):
            await _handle_validate(transfer, {})

    async def test_both_content_and_path(self, transfer, tmp_path):
        with pytest.raises(ValueError, match="exactly one"):
            await _handle_validate(
                transfer, {"content": "{}", "path": str(tmp_path / "x.json")}
            )

    async def test_content_must_be_string(self, transfer):
        with pytest.raises(ValueError, match="'content' must be a string"):
            await _handle_validate(transfer, {"content": {"formatVersion": 2}})

    async def test_missing_path(self, transfer, tmp_path):
        with pytest.raises(ValueError, match="File not found"):
            await _handle_validate(transfer, {"path": str(tmp_path / "nope.json")})

    async def test_path_respects_size_limit(self, empty_registry, tmp_path):
        from widget_transfer.config_schema import TransferConfig

        path = tmp_path / "big.json"
        path.write_bytes(b" " * 64 + b"{}")
        transfer = WidgetTransfer(
            empty_registry, config=TransferConfig(max_document_bytes=16)
        )

        with pytest.raises(ValueError, match="byte limit"):
            await _handle_validate(transfer, {"path": str(path)})

    @pytest.mark.parametrize("sidebars", ["footer", [1, 2], {"footer": True}])
    async def test_sidebars_must_be_list_of_ids(
        self, transfer, about_document, sidebars
    ):
        with pytest.raises(ValueError, match="'sidebars' must be a list"):
            await _handle_import(
                transfer,
                {"content": json.dumps(about_document), "sidebars": sidebars},
            )


# ---------------------------------------------------------------------------
# widget_validate
# ---------------------------------------------------------------------------


class TestHandleValidate:
    async def test_valid_document(self, transfer, make_document):
        document = make_document(
            {"sidebar-1": ["text-2", "missing-widget"]},
            {"text-2": {"title": "About"}},
            generator="site/3",
        )

        result = await _handle_validate(transfer, {"content": json.dumps(document)})

        text = _text(result)
        assert text.startswith("Document is valid (inline content)")
        assert "sidebar-1: 2 entries (1 missing)" in text
        assert result.structuredContent == {
            "valid": True,
            "format_version": 2,
            "generator_version": "site/3",
            "widgets": 1,
            "sidebars": [
                {"id": "sidebar-1", "name": "sidebar-1", "entries": 2, "missing": 1}
            ],
        }

    async def test_validate_does_not_write(self, site_registry, make_document):
        before = site_registry.get_sidebar("sidebar-1")
        document = make_document({"sidebar-1": ["text-7"]}, {"text-7": {"x": 1}})

        await _handle_validate(
            WidgetTransfer(site_registry), {"content": json.dumps(document)}
        )

        assert site_registry.get_sidebar("sidebar-1") == before
        assert 7 not in site_registry.get_bucket("text")

    async def test_source_is_resolved_path(self, transfer, about_document, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps(about_document))

        result = await _handle_validate(transfer, {"path": str(path)})

        assert f"({path.resolve()})" in _text(result)


# ---------------------------------------------------------------------------
# widget_registry_status
# ---------------------------------------------------------------------------


class TestHandleRegistryStatus:
    async def test_status(self, transfer):
        result = await _handle_registry_status(transfer, {})

        text = _text(result)
        assert text.startswith("Widget registry status")
        assert "sidebar-1 (Main Sidebar): 3 widgets" in text
        assert "text: 3 instances" in text
        assert "[not registered]" not in text

        structured = result.structuredContent
        assert structured["taken_at"]
        assert structured["widget_types"] == {
            "recent-posts": 1,
            "search": 1,
            "text": 3,
        }
        by_id = {s["id"]: s for s in structured["sidebars"]}
        assert by_id["footer"] == {
            "id": "footer",
            "name": "Footer",
            "widgets": 1,
            "registered": True,
        }
        assert by_id[INACTIVE_SIDEBAR_ID]["registered"] is False

    async def test_unregistered_sidebar_flagged(self):
        registry = InMemoryRegistry(
            sidebars={"old-theme": ["text-1"]},
            buckets={"text": {1: {"title": "Hi"}}},
            registered=[],
        )

        result = await _handle_registry_status(WidgetTransfer(registry), {})

        assert "old-theme (old-theme): 1 widgets [not registered]" in _text(result)

    async def test_empty_registry(self, empty_registry):
        result = await _handle_registry_status(WidgetTransfer(empty_registry), {})

        assert "(none)" in _text(result)
        assert result.structuredContent["widget_types"] == {}
