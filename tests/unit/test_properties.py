"""Tests for the fixed-schema property record."""

from __future__ import annotations

import dataclasses
from typing import Any

import pytest

from compound_cache.exceptions import MalformedEntryError
from compound_cache.properties import ALL_PROPERTIES, PROPERTY_FIELDS, FieldKind, PropertySet
from tests.fixtures.compounds import make_properties


def test_field_table_matches_dataclass() -> None:
    declared = [field.name for field in dataclasses.fields(PropertySet)]

    assert [spec.name for spec in PROPERTY_FIELDS] == declared
    assert len(declared) == 42


def test_all_properties_requests_every_field_but_cid() -> None:
    requested = {spec.pubchem for spec in PROPERTY_FIELDS if spec.name != "cid"}

    assert set(ALL_PROPERTIES) == requested
    assert len(ALL_PROPERTIES) == len(set(ALL_PROPERTIES)) == 41


def test_only_iupac_name_is_nullable() -> None:
    assert [spec.name for spec in PROPERTY_FIELDS if spec.nullable] == ["iupac_name"]


def test_masses_are_decimal_strings() -> None:
    decimals = {spec.name for spec in PROPERTY_FIELDS if spec.kind is FieldKind.DECIMAL}

    assert decimals == {"exact_mass", "molecular_weight", "monoisotopic_mass"}


def test_to_dict_uses_snake_case_keys(carbon_dioxide: PropertySet, carbon_dioxide_record: dict[str, Any]) -> None:
    assert carbon_dioxide.to_dict() == carbon_dioxide_record


def test_to_dict_keeps_null_iupac_name() -> None:
    payload = make_properties(iupac_name=None).to_dict()

    assert "iupac_name" in payload
    assert payload["iupac_name"] is None


def test_to_dict_rejects_unset_mandatory_field() -> None:
    record = make_properties(title=None)

    with pytest.raises(TypeError, match="title"):
        record.to_dict()


def test_from_dict_inverts_to_dict(carbon_dioxide: PropertySet) -> None:
    assert PropertySet.from_dict(carbon_dioxide.to_dict()) == carbon_dioxide


def test_from_dict_preserves_decimal_text() -> None:
    record = make_properties(molecular_weight="180.156000000000000001", exact_mass="1E+2")

    restored = PropertySet.from_dict(record.to_dict())

    assert restored.molecular_weight == "180.156000000000000001"
    assert restored.exact_mass == "1E+2"


@pytest.mark.parametrize("absent", [True, False])
def test_from_dict_tolerates_missing_iupac_name(carbon_dioxide_record: dict[str, Any], absent: bool) -> None:
    if absent:
        del carbon_dioxide_record["iupac_name"]
    else:
        carbon_dioxide_record["iupac_name"] = None

    assert PropertySet.from_dict(carbon_dioxide_record).iupac_name is None


def test_from_dict_accepts_integral_json_for_float_fields(carbon_dioxide_record: dict[str, Any]) -> None:
    carbon_dioxide_record["xlogp"] = 1

    restored = PropertySet.from_dict(carbon_dioxide_record)

    assert restored.xlogp == 1.0
    assert isinstance(restored.xlogp, float)


@pytest.mark.parametrize("field", ["cid", "title", "molecular_weight", "tpsa"])
def test_from_dict_rejects_missing_field(carbon_dioxide_record: dict[str, Any], field: str) -> None:
    del carbon_dioxide_record[field]

    with pytest.raises(MalformedEntryError) as excinfo:
        PropertySet.from_dict(carbon_dioxide_record)
    assert excinfo.value.field == field


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("cid", "280"),
        ("cid", 280.0),
        ("charge", True),
        ("tpsa", "34.1"),
        ("xlogp", False),
        ("molecular_weight", 44.01),
        ("title", 5),
        ("iupac_name", 7),
    ],
)
def test_from_dict_rejects_wrong_types(carbon_dioxide_record: dict[str, Any], field: str, value: Any) -> None:
    carbon_dioxide_record[field] = value

    with pytest.raises(MalformedEntryError) as excinfo:
        PropertySet.from_dict(carbon_dioxide_record)
    assert excinfo.value.field == field


def test_from_dict_rejects_non_mapping() -> None:
    with pytest.raises(MalformedEntryError):
        PropertySet.from_dict(["not", "an", "object"])  # type: ignore[arg-type]


def test_from_pubchem_maps_property_names(pubchem_co2_record: dict[str, Any], carbon_dioxide: PropertySet) -> None:
    assert PropertySet.from_pubchem(pubchem_co2_record) == carbon_dioxide


def test_from_pubchem_accepts_legacy_smiles_columns(pubchem_co2_record: dict[str, Any]) -> None:
    pubchem_co2_record["CanonicalSMILES"] = pubchem_co2_record.pop("ConnectivitySMILES")
    pubchem_co2_record["IsomericSMILES"] = "O=C=O"
    del pubchem_co2_record["SMILES"]

    record = PropertySet.from_pubchem(pubchem_co2_record)

    assert record.canonical_smiles == "C(=O)=O"
    assert record.isomeric_smiles == "O=C=O"


def test_from_pubchem_converts_numeric_masses(pubchem_co2_record: dict[str, Any]) -> None:
    pubchem_co2_record["MolecularWeight"] = 44.009
    pubchem_co2_record["ExactMass"] = 44

    record = PropertySet.from_pubchem(pubchem_co2_record)

    assert record.molecular_weight == "44.009"
    assert record.exact_mass == "44"


def test_from_pubchem_rounds_fractional_complexity(pubchem_co2_record: dict[str, Any]) -> None:
    pubchem_co2_record["Complexity"] = 2.8

    assert PropertySet.from_pubchem(pubchem_co2_record).complexity == 3


def test_from_pubchem_allows_missing_iupac_name(pubchem_co2_record: dict[str, Any]) -> None:
    del pubchem_co2_record["IUPACName"]

    assert PropertySet.from_pubchem(pubchem_co2_record).iupac_name is None


def test_from_pubchem_rejects_missing_3d_properties(pubchem_co2_record: dict[str, Any]) -> None:
    del pubchem_co2_record["Volume3D"]

    with pytest.raises(MalformedEntryError) as excinfo:
        PropertySet.from_pubchem(pubchem_co2_record)
    assert excinfo.value.field == "volume_3d"


def test_from_pubchem_rejects_garbage_numbers(pubchem_co2_record: dict[str, Any]) -> None:
    pubchem_co2_record["TPSA"] = "n/a"

    with pytest.raises(MalformedEntryError):
        PropertySet.from_pubchem(pubchem_co2_record)
