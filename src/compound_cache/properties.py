"""Fixed-schema property record for a single compound.

The record mirrors the PubChem PUG-REST property table. Every field is
mandatory once a record exists except ``iupac_name``, which PubChem omits
for some compounds. Masses are kept as decimal strings so that persisting
and reloading a record reproduces the exact text PubChem returned.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, NamedTuple

from compound_cache.exceptions import MalformedEntryError

__all__ = ["FieldKind", "PropertyField", "PROPERTY_FIELDS", "ALL_PROPERTIES", "PropertySet"]


class FieldKind(str, Enum):
    """Semantic type of a persisted property."""

    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    OPTIONAL_STRING = "optional_string"


class PropertyField(NamedTuple):
    name: str
    kind: FieldKind
    pubchem: str
    aliases: tuple[str, ...] = ()

    @property
    def nullable(self) -> bool:
        return self.kind is FieldKind.OPTIONAL_STRING


_I, _F, _D, _S = FieldKind.INT, FieldKind.FLOAT, FieldKind.DECIMAL, FieldKind.STRING

# Persisted key, kind, PubChem property name. Kept in persisted key order.
PROPERTY_FIELDS: Final[tuple[PropertyField, ...]] = (
    PropertyField("atom_stereo_count", _I, "AtomStereoCount"),
    PropertyField("bond_stereo_count", _I, "BondStereoCount"),
    PropertyField("canonical_smiles", _S, "CanonicalSMILES", ("ConnectivitySMILES",)),
    PropertyField("charge", _I, "Charge"),
    PropertyField("cid", _I, "CID"),
    PropertyField("complexity", _I, "Complexity"),
    PropertyField("conformer_count_3d", _I, "ConformerCount3D"),
    PropertyField("conformer_model_rmsd_3d", _F, "ConformerModelRMSD3D"),
    PropertyField("covalent_unit_count", _I, "CovalentUnitCount"),
    PropertyField("defined_atom_stereo_count", _I, "DefinedAtomStereoCount"),
    PropertyField("defined_bond_stereo_count", _I, "DefinedBondStereoCount"),
    PropertyField("effective_rotor_count_3d", _F, "EffectiveRotorCount3D"),
    PropertyField("exact_mass", _D, "ExactMass"),
    PropertyField("feature_acceptor_count_3d", _I, "FeatureAcceptorCount3D"),
    PropertyField("feature_anion_count_3d", _I, "FeatureAnionCount3D"),
    PropertyField("feature_cation_count_3d", _I, "FeatureCationCount3D"),
    PropertyField("feature_count_3d", _I, "FeatureCount3D"),
    PropertyField("feature_donor_count_3d", _I, "FeatureDonorCount3D"),
    PropertyField("feature_hydrophobe_count_3d", _I, "FeatureHydrophobeCount3D"),
    PropertyField("feature_ring_count_3d", _I, "FeatureRingCount3D"),
    PropertyField("fingerprint_2d", _S, "Fingerprint2D"),
    PropertyField("hbond_acceptor_count", _I, "HBondAcceptorCount"),
    PropertyField("hbond_donor_count", _I, "HBondDonorCount"),
    PropertyField("heavy_atom_count", _I, "HeavyAtomCount"),
    PropertyField("inchi", _S, "InChI"),
    PropertyField("inchi_key", _S, "InChIKey"),
    PropertyField("isomeric_smiles", _S, "IsomericSMILES", ("SMILES",)),
    PropertyField("isotope_atom_count", _I, "IsotopeAtomCount"),
    PropertyField("iupac_name", FieldKind.OPTIONAL_STRING, "IUPACName"),
    PropertyField("molecular_formula", _S, "MolecularFormula"),
    PropertyField("molecular_weight", _D, "MolecularWeight"),
    PropertyField("monoisotopic_mass", _D, "MonoisotopicMass"),
    PropertyField("rotatable_bond_count", _I, "RotatableBondCount"),
    PropertyField("title", _S, "Title"),
    PropertyField("tpsa", _F, "TPSA"),
    PropertyField("undefined_atom_stereo_count", _I, "UndefinedAtomStereoCount"),
    PropertyField("undefined_bond_stereo_count", _I, "UndefinedBondStereoCount"),
    PropertyField("volume_3d", _F, "Volume3D"),
    PropertyField("x_steric_quadrupole_3d", _F, "XStericQuadrupole3D"),
    PropertyField("xlogp", _F, "XLogP"),
    PropertyField("y_steric_quadrupole_3d", _F, "YStericQuadrupole3D"),
    PropertyField("z_steric_quadrupole_3d", _F, "ZStericQuadrupole3D"),
)

# Properties requested from PubChem; CID is always part of the response.
ALL_PROPERTIES: Final[tuple[str, ...]] = (
    "MolecularFormula",
    "MolecularWeight",
    "CanonicalSMILES",
    "IsomericSMILES",
    "InChI",
    "InChIKey",
    "IUPACName",
    "Title",
    "XLogP",
    "ExactMass",
    "MonoisotopicMass",
    "TPSA",
    "Complexity",
    "Charge",
    "HBondDonorCount",
    "HBondAcceptorCount",
    "RotatableBondCount",
    "HeavyAtomCount",
    "IsotopeAtomCount",
    "AtomStereoCount",
    "DefinedAtomStereoCount",
    "UndefinedAtomStereoCount",
    "BondStereoCount",
    "DefinedBondStereoCount",
    "UndefinedBondStereoCount",
    "CovalentUnitCount",
    "Volume3D",
    "XStericQuadrupole3D",
    "YStericQuadrupole3D",
    "ZStericQuadrupole3D",
    "FeatureCount3D",
    "FeatureAcceptorCount3D",
    "FeatureDonorCount3D",
    "FeatureAnionCount3D",
    "FeatureCationCount3D",
    "FeatureRingCount3D",
    "FeatureHydrophobeCount3D",
    "ConformerModelRMSD3D",
    "EffectiveRotorCount3D",
    "ConformerCount3D",
    "Fingerprint2D",
)


@dataclass(frozen=True, slots=True, kw_only=True)
class PropertySet:
    """Physicochemical and structural properties of one compound.

    Instances are produced by a resolver or read back from a cache document
    and are never patched field by field; a refresh replaces the whole
    record.
    """

    atom_stereo_count: int
    bond_stereo_count: int
    canonical_smiles: str
    charge: int
    cid: int
    complexity: int
    conformer_count_3d: int
    conformer_model_rmsd_3d: float
    covalent_unit_count: int
    defined_atom_stereo_count: int
    defined_bond_stereo_count: int
    effective_rotor_count_3d: float
    exact_mass: str
    feature_acceptor_count_3d: int
    feature_anion_count_3d: int
    feature_cation_count_3d: int
    feature_count_3d: int
    feature_donor_count_3d: int
    feature_hydrophobe_count_3d: int
    feature_ring_count_3d: int
    fingerprint_2d: str
    hbond_acceptor_count: int
    hbond_donor_count: int
    heavy_atom_count: int
    inchi: str
    inchi_key: str
    isomeric_smiles: str
    isotope_atom_count: int
    iupac_name: str | None
    molecular_formula: str
    molecular_weight: str
    monoisotopic_mass: str
    rotatable_bond_count: int
    title: str
    tpsa: float
    undefined_atom_stereo_count: int
    undefined_bond_stereo_count: int
    volume_3d: float
    x_steric_quadrupole_3d: float
    xlogp: float
    y_steric_quadrupole_3d: float
    z_steric_quadrupole_3d: float

    def to_dict(self) -> dict[str, Any]:
        """Return the ``properties`` object of a persisted cache entry.

        Raises
        ------
        TypeError
            If a mandatory field holds ``None``. Records only come from a
            successful resolution, so this signals a programming error
            rather than bad input.
        """

        payload: dict[str, Any] = {}
        for spec in PROPERTY_FIELDS:
            value = getattr(self, spec.name)
            if value is None and not spec.nullable:
                raise TypeError(f"mandatory property {spec.name!r} is unset (cid={self.cid})")
            payload[spec.name] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> PropertySet:
        """Rebuild a record from its persisted ``properties`` object.

        The check is strict: integers must be JSON integers, strings must be
        strings, and only ``iupac_name`` may be null or absent.
        """

        if not isinstance(payload, Mapping):
            raise MalformedEntryError("`properties` was not an object", field="properties")
        values: dict[str, Any] = {}
        for spec in PROPERTY_FIELDS:
            raw = payload.get(spec.name)
            if raw is None:
                if spec.nullable:
                    values[spec.name] = None
                    continue
                raise MalformedEntryError(f"missing property `{spec.name}`", field=spec.name)
            values[spec.name] = _checked(spec, raw)
        return cls(**values)

    @classmethod
    def from_pubchem(cls, record: Mapping[str, Any]) -> PropertySet:
        """Build a record from one ``PropertyTable.Properties`` entry.

        PubChem reports masses as strings in current responses and as
        numbers in older ones; both become decimal strings here. Integral
        floats are accepted for integer properties and fractional
        complexity scores are rounded, since the persisted schema stores
        complexity as an integer.
        """

        values: dict[str, Any] = {}
        for spec in PROPERTY_FIELDS:
            raw = _lookup(record, spec)
            if raw is None:
                if spec.nullable:
                    values[spec.name] = None
                    continue
                raise MalformedEntryError(f"PubChem record lacks `{spec.pubchem}`", field=spec.name)
            values[spec.name] = _coerced(spec, raw)
        return cls(**values)


_TEXT_KINDS: Final[frozenset[FieldKind]] = frozenset({_D, _S, FieldKind.OPTIONAL_STRING})


def _lookup(record: Mapping[str, Any], spec: PropertyField) -> Any:
    for key in (spec.pubchem, *spec.aliases):
        if record.get(key) is not None:
            return record[key]
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _checked(spec: PropertyField, raw: Any) -> Any:
    kind = spec.kind
    if kind is FieldKind.INT:
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        expected = "an integer"
    elif kind is FieldKind.FLOAT:
        if _is_number(raw):
            return float(raw)
        expected = "a number"
    else:
        if isinstance(raw, str):
            return raw
        expected = "a string"
    raise MalformedEntryError(
        f"property `{spec.name}` must be {expected}, got {type(raw).__name__}",
        field=spec.name,
    )


def _coerced(spec: PropertyField, raw: Any) -> Any:
    kind = spec.kind
    try:
        if kind is FieldKind.INT and _is_number(raw):
            return int(raw) if float(raw).is_integer() else round(raw)
        if kind is FieldKind.INT and isinstance(raw, str):
            return int(raw)
        if kind is FieldKind.FLOAT and (_is_number(raw) or isinstance(raw, str)):
            return float(raw)
        if kind is FieldKind.DECIMAL and _is_number(raw):
            return repr(raw) if isinstance(raw, float) else str(raw)
        if isinstance(raw, str) and kind in _TEXT_KINDS:
            return raw
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedEntryError(f"PubChem property `{spec.pubchem}` is malformed: {raw!r}", field=spec.name) from exc
    raise MalformedEntryError(f"PubChem property `{spec.pubchem}` has unexpected type {type(raw).__name__}", field=spec.name)
