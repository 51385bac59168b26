"""Validator: decide whether an uploaded document can be trusted.

``DocumentValidator.validate()`` runs four checks in order and raises on
the first failure; a document is never partially trusted:

1. **MIME gate and content sniff** -- the claimed type must be on the
   allow-list, and the bytes must be a non-empty text document within the
   size limit that starts like JSON (``UntrustedContent``).
2. **Parse** -- JSON syntax, object root (``MalformedDocument``).
3. **Format version** -- integer major between 1 and ``FORMAT_VERSION``;
   older formats are upgraded by field defaulting
   (``UnsupportedFormatVersion``, then ``MalformedDocument`` for shape
   errors).
4. **References** -- every sidebar reference resolves into ``widgets`` or is
   the missing placeholder (``DanglingReference``).

Format version 1 is the original plugin's ``.wie`` export: an object
mapping each sidebar id to ``{"<type>-<index>": settings}``, with no version
field at all.

Validation is pure: it never touches the registry.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from charset_normalizer import from_bytes
from pydantic import ValidationError

from ..config_schema import (
    DEFAULT_ALLOWED_MIME_TYPES,
    DEFAULT_MAX_DOCUMENT_BYTES,
)
from ..validators import (
    normalize_mime_type,
    validate_sidebar_id,
    validate_widget_type,
)
from .errors import (
    DanglingReference,
    MalformedDocument,
    UnsupportedFormatVersion,
    UntrustedContent,
)
from .exporter import FORMAT_VERSION
from .models import ExportDocument, WidgetRef, is_missing

logger = logging.getLogger(__name__)

_V2_KEYS = {"formatVersion", "generatorVersion", "sidebars", "widgets"}


class DocumentValidator:
    """Validate raw uploads into ``ExportDocument`` values.

    Args:
        allowed_mime_types: Accepted declared MIME types.
        max_bytes: Upper bound on the raw document size.
    """

    def __init__(
        self,
        allowed_mime_types: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_MIME_TYPES,
        max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
    ) -> None:
        self.allowed_mime_types = frozenset(
            normalize_mime_type(m) for m in allowed_mime_types
        )
        self.max_bytes = max_bytes

    def validate(self, raw: bytes, claimed_mime_type: str) -> ExportDocument:
        """Run every check on *raw* and return the parsed document.

        Args:
            raw: Uploaded bytes.
            claimed_mime_type: MIME type declared by the uploader.

        Returns:
            The validated document (upgraded to the current shape).

        Raises:
            UntrustedContent: MIME type or content sniff rejected.
            MalformedDocument: Syntax or shape errors.
            UnsupportedFormatVersion: Unknown or newer format version.
            DanglingReference: A sidebar references an absent widget.
        """
        text = self._check_content(raw, claimed_mime_type)
        data = self._parse(text)
        version = self._detect_version(data)
        document = self._build(data, version)
        self.check_references(document)
        logger.info(
            "Validated document v%d (%s): %d sidebars, %d widgets",
            document.format_version,
            document.generator_version or "unknown generator",
            len(document.sidebars),
            len(document.widgets),
        )
        return document

    # ------------------------------------------------------------------
    # Step 1: MIME gate and content sniff
    # ------------------------------------------------------------------

    def _check_content(self, raw: bytes, claimed_mime_type: str) -> str:
        mime = normalize_mime_type(claimed_mime_type)
        if mime not in self.allowed_mime_types:
            raise UntrustedContent(
                f"MIME type '{mime or claimed_mime_type}' is not accepted; "
                f"expected one of {sorted(self.allowed_mime_types)}"
            )
        if not raw:
            raise UntrustedContent("Document is empty")
        if len(raw) > self.max_bytes:
            raise UntrustedContent(
                f"Document exceeds maximum size of {self.max_bytes} bytes"
            )
        if b"\x00" in raw:
            raise UntrustedContent("Document contains binary data")

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            result = from_bytes(raw).best()
            if result is None:
                raise UntrustedContent(
                    "Document is not a text encoding"
                ) from None
            logger.debug("Document decoded as %s", result.encoding)
            text = str(result)

        text = text.lstrip("\ufeff")
        if not text.lstrip().startswith("{"):
            raise UntrustedContent("Document content is not a JSON object")
        return text

    # ------------------------------------------------------------------
    # Step 2: parse
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(text: str) -> dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedDocument(f"Invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedDocument("Document root must be a JSON object")
        return data

    # ------------------------------------------------------------------
    # Step 3: format version and shape
    # ------------------------------------------------------------------

    @staticmethod
    def _detect_version(data: dict[str, Any]) -> int:
        if "formatVersion" not in data:
            if data and not (_V2_KEYS & data.keys()):
                # Legacy .wie export: sidebar id -> widget map, unversioned.
                return 1
            raise UnsupportedFormatVersion(
                "Document has no formatVersion"
            )

        raw_version = data["formatVersion"]
        major: int | None = None
        if isinstance(raw_version, bool):
            major = None
        elif isinstance(raw_version, int):
            major = raw_version
        elif isinstance(raw_version, float) and raw_version >= 0:
            major = int(raw_version)
        elif isinstance(raw_version, str):
            head = raw_version.strip().split(".", 1)[0]
            if head.isdigit():
                major = int(head)

        if major is None:
            raise UnsupportedFormatVersion(
                f"Unrecognised formatVersion {raw_version!r}"
            )
        if major < 1 or major > FORMAT_VERSION:
            raise UnsupportedFormatVersion(
                f"formatVersion {raw_version!r} is not supported "
                f"(this engine reads 1 to {FORMAT_VERSION})"
            )
        return major

    def _build(self, data: dict[str, Any], version: int) -> ExportDocument:
        if version == 1 and not ({"sidebars", "widgets"} & data.keys()):
            payload = self._upgrade_legacy(data)
        else:
            payload = self._apply_defaults(data, version)

        try:
            document = ExportDocument.model_validate(payload)
        except ValidationError as exc:
            raise MalformedDocument(
                f"Document does not match the export format: {exc}"
            ) from exc

        seen_sidebars: set[str] = set()
        for sidebar in document.sidebars:
            ok, reason = validate_sidebar_id(sidebar.id)
            if not ok:
                raise MalformedDocument(reason)
            if sidebar.id in seen_sidebars:
                raise MalformedDocument(
                    f"Sidebar '{sidebar.id}' appears more than once"
                )
            seen_sidebars.add(sidebar.id)

        seen_widgets: set[tuple[str, int]] = set()
        for widget in document.widgets:
            ok, reason = validate_widget_type(widget.type)
            if not ok:
                raise MalformedDocument(reason)
            key = (widget.type, widget.legacy_index)
            if key in seen_widgets:
                raise MalformedDocument(
                    f"Widget {widget.type}-{widget.legacy_index} "
                    "appears more than once"
                )
            seen_widgets.add(key)

        return document

    @staticmethod
    def _apply_defaults(data: dict[str, Any], version: int) -> dict[str, Any]:
        """Fill optional fields so older minor revisions still validate."""
        payload = dict(data)
        payload["formatVersion"] = version
        if payload.get("generatorVersion") is None:
            payload["generatorVersion"] = ""
        payload.setdefault("sidebars", [])
        payload.setdefault("widgets", [])

        sidebars = payload["sidebars"]
        if isinstance(sidebars, list):
            filled = []
            for sidebar in sidebars:
                if isinstance(sidebar, dict):
                    sidebar = dict(sidebar)
                    if not sidebar.get("name"):
                        sidebar["name"] = sidebar.get("id", "")
                    sidebar.setdefault("widgetRefs", [])
                filled.append(sidebar)
            payload["sidebars"] = filled

        widgets = payload["widgets"]
        if isinstance(widgets, list):
            payload["widgets"] = [
                {**w, "settings": w.get("settings") or {}}
                if isinstance(w, dict)
                else w
                for w in widgets
            ]
        return payload

    @staticmethod
    def _upgrade_legacy(data: dict[str, Any]) -> dict[str, Any]:
        """Convert a ``{sidebar: {widget_id: settings}}`` export."""
        sidebars = []
        widgets: dict[tuple[str, int], dict[str, Any]] = {}

        for sidebar_id, widget_map in data.items():
            if sidebar_id in ("formatVersion", "generatorVersion"):
                continue
            if not isinstance(widget_map, dict):
                raise MalformedDocument(
                    f"Legacy sidebar '{sidebar_id}' must map widget ids "
                    "to settings"
                )
            refs = []
            for widget_id, settings in widget_map.items():
                try:
                    ref = WidgetRef.from_widget_id(widget_id)
                except ValueError as exc:
                    raise MalformedDocument(str(exc)) from exc
                # PHP encodes an empty settings array as []
                if settings == []:
                    settings = {}
                if not isinstance(settings, dict):
                    raise MalformedDocument(
                        f"Settings of widget {widget_id} must be an object"
                    )
                existing = widgets.get(ref.key)
                if existing is not None and existing["settings"] != settings:
                    raise MalformedDocument(
                        f"Widget {widget_id} has conflicting settings"
                    )
                widgets[ref.key] = {
                    "type": ref.type,
                    "legacyIndex": ref.legacy_index,
                    "settings": settings,
                }
                refs.append(
                    {"type": ref.type, "legacyIndex": ref.legacy_index}
                )
            sidebars.append(
                {"id": sidebar_id, "name": sidebar_id, "widgetRefs": refs}
            )

        generator = data.get("generatorVersion")
        logger.info(
            "Upgrading legacy (v1) document with %d sidebars", len(sidebars)
        )
        return {
            "formatVersion": 1,
            "generatorVersion": generator if isinstance(generator, str) else "",
            "sidebars": sidebars,
            "widgets": list(widgets.values()),
        }

    # ------------------------------------------------------------------
    # Step 4: referential integrity
    # ------------------------------------------------------------------

    @staticmethod
    def check_references(document: ExportDocument) -> None:
        """Raise ``DanglingReference`` for the first unresolved sidebar ref."""
        known = document.widget_map()
        for sidebar in document.sidebars:
            for ref in sidebar.widget_refs:
                if is_missing(ref):
                    continue
                if ref.key not in known:
                    raise DanglingReference(
                        sidebar.id, ref.type, ref.legacy_index
                    )


def validate_document(
    raw: bytes,
    claimed_mime_type: str,
    allowed_mime_types: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_MIME_TYPES,
    max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
) -> ExportDocument:
    """Convenience wrapper around ``DocumentValidator.validate()``."""
    return DocumentValidator(allowed_mime_types, max_bytes).validate(
        raw, claimed_mime_type
    )
