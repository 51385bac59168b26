"""Tests for transfer/hooks.py."""

import pytest

from widget_transfer.transfer.hooks import TransferHooks
from widget_transfer.transfer.models import ExportDocument, RegistrySnapshot, Sidebar


class TestTransferHooks:
    def test_no_hooks_is_identity(self):
        hooks = TransferHooks()
        snapshot = RegistrySnapshot()
        document = ExportDocument(format_version=2)
        assert hooks.apply_export(snapshot) is snapshot
        assert hooks.apply_import(document) is document

    def test_hooks_run_in_registration_order(self):
        seen = []

        def first(document):
            seen.append("first")
            return document.model_copy(update={"generator_version": "a"})

        def second(document):
            seen.append("second")
            return document.model_copy(
                update={"generator_version": document.generator_version + "b"}
            )

        hooks = TransferHooks()
        hooks.add_import_hook(first)
        hooks.add_import_hook(second)

        result = hooks.apply_import(ExportDocument(format_version=2))
        assert seen == ["first", "second"]
        assert result.generator_version == "ab"

    def test_export_hook_receives_snapshot(self):
        hooks = TransferHooks(
            before_export=[
                lambda s: s.model_copy(update={"sidebars": [Sidebar(id="only")]})
            ]
        )
        result = hooks.apply_export(RegistrySnapshot())
        assert [s.id for s in result.sidebars] == ["only"]

    def test_hook_error_propagates(self):
        def broken(snapshot):
            raise ValueError("bad hook")

        hooks = TransferHooks()
        hooks.add_export_hook(broken)
        with pytest.raises(ValueError, match="bad hook"):
            hooks.apply_export(RegistrySnapshot())
