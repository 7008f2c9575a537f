"""Local persistence cache for PubChem compound properties."""

from __future__ import annotations

from compound_cache.exceptions import (
    CompoundCacheError,
    CompoundNotFoundError,
    InvalidIdentifierError,
    MalformedDocumentError,
    MalformedEntryError,
    MalformedValueError,
    MissingFieldError,
    ResolutionError,
)
from compound_cache.identifiers import CompoundIdentifier, Namespace
from compound_cache.properties import PropertySet
from compound_cache.resolver import PubChemResolver, Resolver
from compound_cache.store import CompoundCache

__all__ = [
    "CompoundCache",
    "CompoundIdentifier",
    "Namespace",
    "PropertySet",
    "Resolver",
    "PubChemResolver",
    "CompoundCacheError",
    "InvalidIdentifierError",
    "MalformedValueError",
    "ResolutionError",
    "CompoundNotFoundError",
    "MalformedDocumentError",
    "MissingFieldError",
    "MalformedEntryError",
]

__version__ = "0.1.0"
