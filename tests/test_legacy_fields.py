from inspection_records.adapters.legacy_fields import (
    RECORD_FIELDS, pick_document_fields, pick_record_fields,
)


def test_all_caps_names_map_to_camel_case():
    picked = pick_record_fields({
        "FSIC_APP_NO": "F-1",
        "OWNERS_NAME": "Juan",
        "BUSSINESS_ADDRESS": "Rizal St.",
        "BLDG_DESCRIPTION": "2-storey",
    })
    assert picked["fsicAppNo"] == "F-1"
    assert picked["ownerName"] == "Juan"
    assert picked["businessAddress"] == "Rizal St."
    assert picked["buildingDesc"] == "2-storey"


def test_camel_case_wins_over_legacy():
    picked = pick_record_fields({"ownerName": "New", "OWNERS_NAME": "Old"})
    assert picked["ownerName"] == "New"


def test_none_falls_through_to_next_alias():
    picked = pick_record_fields({"fsicAppNo": None, "FSIC_NUMBER": "F-2"})
    assert picked["fsicAppNo"] == "F-2"


def test_unknown_fields_dropped_and_missing_blank():
    picked = pick_record_fields({"ownerName": "A", "password": "x", "id": 5})
    assert set(picked) == set(RECORD_FIELDS)
    assert "password" not in picked and "id" not in picked
    assert picked["remarks"] == ""


def test_falsy_values_are_kept():
    assert pick_record_fields({"storeyCount": 0})["storeyCount"] == 0


def test_document_fields_include_team_leader():
    picked = pick_document_fields({"TEAM_LEADER": "Insp. Cruz", "defects": "none"})
    assert picked["teamLeader"] == "Insp. Cruz"
    assert "defects" not in picked


def test_none_source_gives_blank_record():
    assert all(v == "" for v in pick_record_fields(None).values())
