"""De-duplication of fetched observations against the inventory and by species."""
from __future__ import annotations

import pytest

from conftest import make_observation
from plant_tracker.schemas import PlantRecord
from plant_tracker.schemas.inaturalist import Observation
from plant_tracker.services.deduplication import collapse_species, deduplicate, drop_imported, parse_observed_on


def _obs(*args, **kwargs) -> Observation:
    return Observation.model_validate(make_observation(*args, **kwargs))


def test_drop_imported_matches_record_id_external_id_and_contributing_ids():
    inventory = [
        PlantRecord(id="10", name="Legacy import"),
        PlantRecord(id="abc", name="New import", external_id="11"),
        PlantRecord(id="def", name="Updated", inat_observation_ids=["12"]),
    ]
    observations = [_obs(i, name=f"Species {i}") for i in (10, 11, 12, 13)]

    remaining = drop_imported(observations, inventory)

    assert [o.id for o in remaining] == ["13"]


def test_numeric_legacy_ids_still_match():
    inventory = [PlantRecord.model_validate({"id": 1700000000000, "name": "Old"})]
    observations = [_obs(1700000000000, name="Hedera helix")]

    assert drop_imported(observations, inventory) == []


def test_most_recent_observation_of_a_species_wins():
    older = _obs(1, name="Hedera helix", observed_on="2023-06-01")
    newer = _obs(2, name="hedera HELIX", observed_on="2024-02-10")

    result = collapse_species([older, newer])

    assert [o.id for o in result] == ["2"]


def test_missing_date_sorts_last():
    undated = _obs(1, name="Hedera helix")
    dated = _obs(2, name="Hedera helix", observed_on="1999-01-01")

    result = collapse_species([undated, dated])

    assert [o.id for o in result] == ["2"]


def test_observations_without_scientific_name_are_never_collapsed():
    a = _obs(1, name=None, species_guess="mystery shrub", observed_on="2024-01-01")
    b = _obs(2, name=None, species_guess="mystery shrub", observed_on="2024-01-01")
    c = _obs(3, with_taxon=False, species_guess="weed")

    result = collapse_species([a, b, c])

    assert sorted(o.id for o in result) == ["1", "2", "3"]


def test_same_date_keeps_fetch_order():
    first = _obs(1, name="Rubus armeniacus", observed_on="2024-03-03")
    second = _obs(2, name="Rubus armeniacus", observed_on="2024-03-03")

    assert [o.id for o in collapse_species([first, second])] == ["1"]


def test_result_is_sorted_most_recent_first():
    observations = [
        _obs(1, name="A a", observed_on="2022-01-01"),
        _obs(2, name="B b", observed_on="2024-01-01"),
        _obs(3, name="C c", observed_on="2023-01-01"),
    ]

    assert [o.id for o in collapse_species(observations)] == ["2", "3", "1"]


@pytest.mark.parametrize("names", [
    ["Hedera helix"] * 4,
    ["Hedera helix", "Rubus armeniacus", "hedera helix", None, None],
    [None, None, None],
    ["A a", "B b", "C c", "a A", "b B"],
])
def test_deduplication_never_grows_and_leaves_unique_names(names):
    observations = [
        _obs(i, name=name, observed_on=f"2024-01-{i + 1:02d}")
        for i, name in enumerate(names)
    ]
    inventory = [PlantRecord(id="0", name="Already imported")]

    result = deduplicate(observations, inventory)

    assert len(result) <= len(observations)
    named = [o.scientific_name.lower() for o in result if o.scientific_name]
    assert len(named) == len(set(named))
    assert "0" not in {o.id for o in result}


@pytest.mark.parametrize("value,expected_year", [
    ("2024-05-06", 2024),
    ("2024-05-06T10:11:12-07:00", 2024),
    ("", 1970),
    (None, 1970),
    ("not a date", 1970),
])
def test_parse_observed_on(value, expected_year):
    assert parse_observed_on(value).year == expected_year
