from __future__ import annotations

from typing import Any, Dict, Optional

from inspection_records.services.clock import new_record_id

# Keys checked, in order, for the inspection application number.
_FSIC_FIELDS = ("fsicAppNo", "FSIC_APP_NO", "FSIC_NUMBER")


def normalize_key(raw: Any) -> str:
    """Stringify and trim; ``None`` becomes the empty string."""
    if raw is None:
        return ""
    return str(raw).strip()


def derive_entity_key(record: Dict[str, Any]) -> str:
    # first non-empty raw field wins, trimmed afterwards; a blank-looking
    # fsicAppNo therefore shadows the legacy fields
    raw = next((record.get(f) for f in _FSIC_FIELDS if record.get(f)), None)
    fsic = normalize_key(raw)
    if fsic:
        return f"fsic:{fsic}"
    record_id = record.get("id")
    if record_id is None or record_id == "":
        record_id = new_record_id()
    return f"rec:{record_id}"


def resolve_entity_key(record: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Return ``record`` unchanged when it already carries an entity key,
    otherwise a shallow copy with ``entityKey`` derived from its FSIC
    application number (``fsic:<no>``) or its id (``rec:<id>``).
    """
    if record is None:
        return None
    if record.get("entityKey"):
        return record
    return {**record, "entityKey": derive_entity_key(record)}
