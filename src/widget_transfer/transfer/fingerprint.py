"""Canonical settings encoding and content fingerprints.

Imports match incoming widgets against live ones by *content*, not by index,
so the exporter and the merger must agree on what "equal settings" means.
Both go through ``canonicalize()``:

* dict keys become strings (insertion order kept; sorting happens only in
  ``canonical_encoding()``),
* tuples become lists,
* non-finite floats and non-JSON scalars become their ``str()`` form.

``fingerprint()`` hashes the widget type together with the sorted, compact
JSON encoding, so two instances with the same type and the same settings in
a different key order have the same fingerprint.
"""

from __future__ import annotations

import hashlib
import json
import math
from typing import Any

from .models import WidgetInstance


def canonicalize(value: Any) -> Any:
    """Return *value* normalised to plain JSON types."""
    if isinstance(value, dict):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    return str(value)


def canonical_encoding(settings: dict[str, Any]) -> str:
    """Encode *settings* as sorted, compact JSON."""
    return json.dumps(
        canonicalize(settings),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def fingerprint(widget_type: str, settings: dict[str, Any]) -> str:
    """SHA-256 hex digest of *widget_type* plus canonical *settings*."""
    payload = f"{widget_type}\n{canonical_encoding(settings)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def instance_fingerprint(instance: WidgetInstance) -> str:
    return fingerprint(instance.type, instance.settings)
