"""Persistent cache of compound property sets.

:class:`CompoundCache` maps :class:`CompoundIdentifier` keys to
:class:`PropertySet` records, consults a :class:`Resolver` on misses and
round-trips its whole content through a single JSON document::

    {"cache": [{"namespace": "name",
                "identifier": "Carbon Dioxide",
                "properties": {"cid": 280, "molecular_formula": "CO2", ...}}]}

Identifiers from different namespaces are never unified, so the same
molecule requested by name and by SMILES is cached twice.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from compound_cache.exceptions import (
    CompoundCacheError,
    MalformedDocumentError,
    MalformedEntryError,
    MissingFieldError,
    ResolutionError,
)
from compound_cache.identifiers import CompoundIdentifier
from compound_cache.logger import get_logger
from compound_cache.properties import PropertySet
from compound_cache.resolver import Resolver

__all__ = ["CompoundCache"]

logger = get_logger(__name__)


class CompoundCache:
    """In-memory identifier to property-set map with JSON persistence."""

    def __init__(self, resolver: Resolver | None = None) -> None:
        self.resolver = resolver
        self._entries: dict[CompoundIdentifier, PropertySet] = {}

    # --- map protocol ---------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __iter__(self) -> Iterator[CompoundIdentifier]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompoundCache):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CompoundCache(entries={len(self._entries)})"

    def items(self) -> Iterator[tuple[CompoundIdentifier, PropertySet]]:
        return iter(self._entries.items())

    # --- lookups --------------------------------------------------------------------------
    def store(self, identifier: CompoundIdentifier) -> None:
        """Fetch and insert ``identifier`` unless it is already cached.

        A cached entry is left untouched and the resolver is not called; use
        :meth:`overwrite` to refresh it.
        """

        if identifier in self._entries:
            logger.debug("compound_cache_hit", identifier=str(identifier))
            return
        self._entries[identifier] = self._resolve(identifier)
        logger.info("compound_cached", identifier=str(identifier))

    def overwrite(self, identifier: CompoundIdentifier) -> None:
        """Fetch ``identifier`` and replace any cached entry."""

        self._entries[identifier] = self._resolve(identifier)
        logger.info("compound_overwritten", identifier=str(identifier))

    def get_or_fetch(self, identifier: CompoundIdentifier) -> tuple[bool, PropertySet]:
        """Return ``(was_hit, properties)`` for ``identifier``.

        The resolver is called even when the entry is cached, so a hit still
        costs a network round trip; only the insertion is skipped. On a hit
        the previously cached record is returned, not the fresh one.
        """

        fetched = self._resolve(identifier)
        was_hit = identifier in self._entries
        if not was_hit:
            self._entries[identifier] = fetched
        logger.debug("compound_lookup", identifier=str(identifier), hit=was_hit)
        return was_hit, self._entries[identifier]

    def get_cached(self, identifier: CompoundIdentifier) -> PropertySet | None:
        """Return the cached record without contacting the resolver."""

        return self._entries.get(identifier)

    def insert_raw(self, identifier: CompoundIdentifier, properties: PropertySet) -> None:
        """Insert or replace an entry without fetching."""

        self._entries[identifier] = properties

    def _resolve(self, identifier: CompoundIdentifier) -> PropertySet:
        # fail on malformed identifiers before reaching the resolver
        identifier.to_query()
        if self.resolver is None:
            raise ResolutionError(f"No resolver configured to fetch {identifier}", identifier=str(identifier))
        try:
            return self.resolver.resolve(identifier)
        except CompoundCacheError:
            raise
        except Exception as exc:
            raise ResolutionError(
                f"Resolver failed for {identifier}: {exc}",
                identifier=str(identifier),
                cause=exc,
            ) from exc

    # --- persistence ----------------------------------------------------------------------
    def serialize(self) -> dict[str, Any]:
        """Return the whole cache as a JSON-compatible document."""

        entries = [
            {
                "namespace": identifier.namespace,
                "identifier": identifier.value,
                "properties": properties.to_dict(),
            }
            for identifier, properties in self._entries.items()
        ]
        return {"cache": entries}

    def dumps(self, *, indent: int | None = None) -> str:
        # NaN and infinities have no JSON form and would not compare equal after loading
        return json.dumps(self.serialize(), indent=indent, ensure_ascii=False, allow_nan=False)

    @classmethod
    def deserialize(cls, text: str | bytes, resolver: Resolver | None = None) -> CompoundCache:
        """Rebuild a cache from a document produced by :meth:`dumps`.

        Loading is all or nothing: one bad entry rejects the document.

        Raises
        ------
        MalformedDocumentError
            If ``text`` is not JSON or its root is not an object.
        MissingFieldError
            If the root lacks a ``cache`` array.
        MalformedEntryError
            If an entry is not an object or any of its fields is missing or
            wrong-typed.
        """

        try:
            root = json.loads(text)
        except (ValueError, RecursionError) as exc:
            # RecursionError: nesting deeper than the decoder can follow
            raise MalformedDocumentError(f"Could not parse JSON! ({exc})", cause=exc) from exc
        if not isinstance(root, dict):
            raise MalformedDocumentError("The root JSON was not an object!")
        if "cache" not in root:
            raise MissingFieldError("cache", reason="make sure it's an array in the root object")
        entries = root["cache"]
        if not isinstance(entries, list):
            raise MissingFieldError("cache", reason="`cache` was not an array")

        cache = cls(resolver)
        for index, entry in enumerate(entries):
            identifier, properties = _parse_entry(entry, index)
            cache.insert_raw(identifier, properties)
        return cache

    @classmethod
    def load(cls, path: str | Path, resolver: Resolver | None = None) -> CompoundCache:
        """Read the cache at ``path``, falling back to an empty cache.

        A missing, unreadable or corrupt document has no recoverable subset,
        so any failure yields an empty cache and a warning.
        """

        path = Path(path)
        try:
            text = path.read_bytes()
        except FileNotFoundError:
            logger.info("cache_document_missing", path=str(path))
            return cls(resolver)
        except OSError as exc:
            logger.warning("cache_document_unreadable", path=str(path), error=str(exc))
            return cls(resolver)
        try:
            cache = cls.deserialize(text, resolver)
        except CompoundCacheError as exc:
            logger.warning("cache_document_rejected", path=str(path), error=exc.to_dict())
            return cls(resolver)
        logger.info("cache_document_loaded", path=str(path), entries=len(cache))
        return cache

    def save(self, path: str | Path, *, indent: int | None = None) -> None:
        """Write the whole cache to ``path`` via an atomic replace."""

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            handle.write(self.dumps(indent=indent))
        os.replace(tmp_path, path)
        logger.info("cache_document_written", path=str(path), entries=len(self))


def _parse_entry(entry: Any, index: int) -> tuple[CompoundIdentifier, PropertySet]:
    if not isinstance(entry, Mapping):
        raise MalformedEntryError("Value was not an object!", index=index)
    for key in ("namespace", "identifier"):
        if not isinstance(entry.get(key), str):
            raise MalformedEntryError(f"`{key}` must be a string", index=index, field=key)
    if "properties" not in entry:
        raise MalformedEntryError("missing `properties`", index=index, field="properties")
    try:
        properties = PropertySet.from_dict(entry["properties"])
    except MalformedEntryError as exc:
        raise MalformedEntryError(exc.message, index=index, field=exc.field) from exc
    return CompoundIdentifier(entry["namespace"], entry["identifier"]), properties
