"""Backup export/restore."""
import json
from datetime import date

import pytest

from plant_tracker.errors import InvalidImportData
from plant_tracker.schemas import PlantRecord
from plant_tracker.services.backup import backup_filename, export_backup, parse_backup

TODAY = date(2024, 6, 1)


def test_backup_filename():
    assert backup_filename(TODAY) == "plants-backup-2024-06-01.json"


def test_export_then_import_is_lossless():
    records = [
        PlantRecord(
            id="1", name="Ivy", latin_name="Hedera helix", location="Back yard; Front yard",
            rank="B", type="Shrub", is_invasive=True, needs_removal=True, found=True,
            notes="pull in spring", inat_notes="Imported from iNaturalist.",
            date_added="2023-05-01", last_updated_from_inat="2024-01-02T00:00:00+00:00",
            inat_observation_ids=["99"], external_id="99",
        ),
        PlantRecord.model_validate({"id": 1700000000000, "name": "Sword Fern", "dateAdded": "2023-05-02", "gardenBed": "north", "tags": ["shade"]}),
    ]

    restored = parse_backup(export_backup(records), today=TODAY)

    assert [r.to_json_dict() for r in restored] == [r.to_json_dict() for r in records]
    assert restored[1].id == "1700000000000"
    assert restored[1].model_extra == {"gardenBed": "north", "tags": ["shade"]}


def test_export_uses_camel_case_keys():
    exported = json.loads(export_backup([PlantRecord(id="1", name="Ivy", inat_notes="x")]))

    assert exported[0]["latinName"] == ""
    assert exported[0]["iNatNotes"] == "x"
    assert "lastUpdatedFromINat" not in exported[0]


def test_missing_fields_are_filled_with_defaults():
    [record] = parse_backup(json.dumps([{"name": "Ivy"}]), today=TODAY)

    assert record.id
    assert record.date_added == "2024-06-01"
    assert record.latin_name == ""
    assert record.found is False
    assert record.is_invasive is False


def test_existing_values_survive_defaults():
    [record] = parse_backup([{"id": "x", "name": "Ivy", "found": True, "dateAdded": "2020-01-01"}], today=TODAY)

    assert record.id == "x"
    assert record.found is True
    assert record.date_added == "2020-01-01"


def test_generated_ids_are_unique():
    records = parse_backup([{"name": "a"}, {"name": "b"}], today=TODAY)

    assert records[0].id != records[1].id


def test_empty_array_is_valid():
    assert parse_backup("[]") == []


@pytest.mark.parametrize("payload", [
    "not json",
    b"{\"name\": \"Ivy\"}",
    "42",
    "[1, 2]",
    "[{\"name\": \"Ivy\"}, \"Fern\"]",
    "[{\"id\": \"1\"}, {\"id\": \"1\"}]",
    "[{\"name\": \"Ivy\", \"found\": \"sometimes\"}]",
])
def test_invalid_payloads_are_rejected(payload):
    with pytest.raises(InvalidImportData):
        parse_backup(payload, today=TODAY)


def test_unknown_keys_with_null_values_survive_round_trip():
    records = parse_backup([{"id": "1", "name": "Ivy", "photoData": None}], today=TODAY)

    restored = parse_backup(export_backup(records), today=TODAY)

    assert restored[0].model_extra == {"photoData": None}
    assert json.loads(export_backup(restored))[0]["photoData"] is None


def test_unset_optional_fields_are_not_exported():
    exported = json.loads(export_backup([PlantRecord(id="1", name="Ivy")]))[0]

    for key in ("lastUpdatedFromINat", "externalId", "isMatched", "isDocumentMatched"):
        assert key not in exported


@pytest.mark.parametrize("raw_id,expected", [(0, "0"), ("0", "0")])
def test_zero_id_is_kept(raw_id, expected):
    [record] = parse_backup([{"id": raw_id, "name": "Ivy"}], today=TODAY)

    assert record.id == expected
