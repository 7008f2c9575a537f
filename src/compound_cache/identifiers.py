"""Namespace-tagged compound identifiers used as cache keys."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from compound_cache.exceptions import InvalidIdentifierError, MalformedValueError

__all__ = ["Namespace", "CompoundIdentifier", "CompoundQuery"]

_MAX_CID: Final[int] = 2**32 - 1


class Namespace(str, Enum):
    """PubChem input namespaces supported by the cache."""

    CID = "cid"
    NAME = "name"
    SMILES = "smiles"
    INCHI = "inchi"
    INCHIKEY = "inchikey"


@dataclass(frozen=True, slots=True)
class CompoundQuery:
    """Resolver-native form of an identifier."""

    namespace: Namespace
    value: str | int


@dataclass(frozen=True, slots=True)
class CompoundIdentifier:
    """Reference to a compound within one namespace.

    Equality is structural on ``(namespace, value)``. Chemical notation is not
    normalised, so a name and a CID for the same molecule are distinct keys.
    The namespace is kept as its raw tag: identifiers read from a persisted
    document may carry tags this version does not know, and those only fail
    once :meth:`to_query` is called.
    """

    namespace: str
    value: str

    @classmethod
    def with_id(cls, cid: int) -> CompoundIdentifier:
        if not isinstance(cid, int) or isinstance(cid, bool):
            raise MalformedValueError(Namespace.CID.value, str(cid), reason="CID must be an integer")
        if not 0 <= cid <= _MAX_CID:
            raise MalformedValueError(Namespace.CID.value, str(cid), reason="CID must be an unsigned 32-bit integer")
        return cls(Namespace.CID.value, str(cid))

    @classmethod
    def with_name(cls, name: str) -> CompoundIdentifier:
        return cls(Namespace.NAME.value, name)

    @classmethod
    def with_smiles(cls, smiles: str) -> CompoundIdentifier:
        return cls(Namespace.SMILES.value, smiles)

    @classmethod
    def with_inchi(cls, inchi: str) -> CompoundIdentifier:
        return cls(Namespace.INCHI.value, inchi)

    @classmethod
    def with_inchikey(cls, inchikey: str) -> CompoundIdentifier:
        return cls(Namespace.INCHIKEY.value, inchikey)

    @classmethod
    def parse(cls, text: str) -> CompoundIdentifier:
        """Build an identifier from ``namespace:value`` text.

        Text without a recognised namespace prefix is taken as a compound
        name, so ``"Carbon Dioxide"`` and ``"name:Carbon Dioxide"`` are the
        same key. InChI strings start with ``InChI=`` and never match a
        prefix, hence the explicit ``inchi:`` form is required for them.
        """

        prefix, sep, rest = text.partition(":")
        if sep:
            try:
                namespace = Namespace(prefix.strip().lower())
            except ValueError:
                return cls.with_name(text)
            if namespace is Namespace.CID:
                try:
                    return cls.with_id(int(rest.strip()))
                except ValueError as exc:
                    raise MalformedValueError(namespace.value, rest, reason="not a decimal integer") from exc
            return cls(namespace.value, rest)
        return cls.with_name(text)

    @property
    def kind(self) -> Namespace | None:
        """Return the known namespace, or ``None`` for an unrecognised tag."""

        try:
            return Namespace(self.namespace)
        except ValueError:
            return None

    def to_query(self) -> CompoundQuery:
        """Map the identifier onto the query form the resolver understands."""

        namespace = self.kind
        if namespace is None:
            raise InvalidIdentifierError(self.namespace, self.value)
        if namespace is Namespace.CID:
            return CompoundQuery(namespace, _parse_cid(self.value))
        return CompoundQuery(namespace, self.value)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.value}"


def _parse_cid(value: str) -> int:
    # int() would also accept signs, whitespace and underscores
    if not value.isascii() or not value.isdigit():
        raise MalformedValueError(Namespace.CID.value, value, reason="not an unsigned integer")
    cid = int(value)
    if cid > _MAX_CID:
        raise MalformedValueError(Namespace.CID.value, value, reason="out of range")
    return cid
