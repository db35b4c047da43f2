"""
Translation between legacy spreadsheet/template field names and the
canonical camelCase record shape.

Older intake forms and imported sheets send ALL_CAPS names
(``FSIC_APP_NO``, ``OWNERS_NAME``, ``BUSSINESS_ADDRESS`` ...). Each canonical
field lists its accepted aliases in priority order; the first key present
with a non-``None`` value wins, and a missing field becomes ``""``.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

RECORD_FIELDS: Dict[str, Tuple[str, ...]] = {
    "appno":              ("appno", "APPLICATION_NO"),
    "fsicAppNo":          ("fsicAppNo", "FSIC_APP_NO", "FSIC_NUMBER"),
    "natureOfInspection": ("natureOfInspection", "NATURE_OF_INSPECTION"),
    "ownerName":          ("ownerName", "OWNERS_NAME"),
    "establishmentName":  ("establishmentName", "ESTABLISHMENT_NAME"),
    "businessAddress":    ("businessAddress", "BUSSINESS_ADDRESS", "ADDRESS"),
    "contactNumber":      ("contactNumber", "CONTACT_NUMBER"),
    "dateInspected":      ("dateInspected", "DATE_INSPECTED"),
    "ioNumber":           ("ioNumber", "IO_NUMBER"),
    "ioDate":             ("ioDate", "IO_DATE"),
    "nfsiNumber":         ("nfsiNumber", "NFSI_NUMBER"),
    "nfsiDate":           ("nfsiDate", "NFSI_DATE"),
    "fsicValidity":       ("fsicValidity", "FSIC_VALIDITY"),
    "defects":            ("defects", "DEFECTS"),
    "inspectors":         ("inspectors", "INSPECTORS"),
    "occupancyType":      ("occupancyType", "OCCUPANCY_TYPE"),
    "buildingDesc":       ("buildingDesc", "BUILDING_DESC", "BLDG_DESCRIPTION"),
    "floorArea":          ("floorArea", "FLOOR_AREA"),
    "buildingHeight":     ("buildingHeight", "BUILDING_HEIGHT"),
    "storeyCount":        ("storeyCount", "STOREY_COUNT"),
    "highRise":           ("highRise", "HIGH_RISE"),
    "fsmr":               ("fsmr", "FSMR"),
    "remarks":            ("remarks", "REMARKS"),
    "orNumber":           ("orNumber", "OR_NUMBER"),
    "orAmount":           ("orAmount", "OR_AMOUNT"),
    "orDate":             ("orDate", "OR_DATE"),
    "chiefName":          ("chiefName", "CHIEF"),
    "marshalName":        ("marshalName", "MARSHAL"),
}

DOCUMENT_FIELDS: Dict[str, Tuple[str, ...]] = {
    name: RECORD_FIELDS[name]
    for name in (
        "fsicAppNo", "ownerName", "establishmentName", "businessAddress",
        "contactNumber", "ioNumber", "ioDate", "nfsiNumber", "nfsiDate",
        "inspectors",
    )
}
DOCUMENT_FIELDS["teamLeader"] = ("teamLeader", "TEAM_LEADER")
DOCUMENT_FIELDS["chiefName"] = RECORD_FIELDS["chiefName"]
DOCUMENT_FIELDS["marshalName"] = RECORD_FIELDS["marshalName"]


def _pick(source: Mapping[str, Any] | None, fields: Dict[str, Tuple[str, ...]]) -> Dict[str, Any]:
    source = source or {}
    picked: Dict[str, Any] = {}
    for name, aliases in fields.items():
        value = ""
        for alias in aliases:
            if source.get(alias) is not None:
                value = source[alias]
                break
        picked[name] = value
    return picked


def pick_record_fields(source: Mapping[str, Any] | None) -> Dict[str, Any]:
    return _pick(source, RECORD_FIELDS)


def pick_document_fields(source: Mapping[str, Any] | None) -> Dict[str, Any]:
    return _pick(source, DOCUMENT_FIELDS)
