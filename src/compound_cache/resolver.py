"""Resolvers turning compound identifiers into property sets."""

from __future__ import annotations

from typing import Any, Final, Protocol, runtime_checkable
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from compound_cache.config import PubChemConfig
from compound_cache.exceptions import CompoundNotFoundError, MalformedEntryError, ResolutionError
from compound_cache.identifiers import CompoundIdentifier, CompoundQuery, Namespace
from compound_cache.logger import get_logger
from compound_cache.properties import ALL_PROPERTIES, PropertySet

__all__ = ["Resolver", "PubChemRequest", "PubChemRequestBuilder", "PubChemResolver", "build_session"]

logger = get_logger(__name__)


@runtime_checkable
class Resolver(Protocol):
    """Anything that can look up the properties of a compound."""

    def resolve(self, identifier: CompoundIdentifier) -> PropertySet:
        """Return the properties of ``identifier``.

        Raises
        ------
        CompoundNotFoundError
            If the backing database has no such compound.
        ResolutionError
            If the lookup itself fails.
        """
        ...


class PubChemRequest:
    """Method, path and optional form body of one PUG-REST call."""

    __slots__ = ("method", "path", "data")

    def __init__(self, method: str, path: str, data: dict[str, str] | None = None) -> None:
        self.method = method
        self.path = path
        self.data = data

    def __repr__(self) -> str:
        return f"PubChemRequest({self.method!r}, {self.path!r}, data={self.data!r})"


class PubChemRequestBuilder:
    """Build PUG-REST property requests."""

    _PROPERTIES_TEMPLATE: Final[str] = "/compound/{namespace}/{value}property/{properties}/JSON"
    # Values that may contain '/' travel in a form body instead of the path.
    _POST_NAMESPACES: Final[frozenset[Namespace]] = frozenset({Namespace.SMILES, Namespace.INCHI})

    @classmethod
    def build_properties_request(
        cls,
        query: CompoundQuery,
        properties: tuple[str, ...] = ALL_PROPERTIES,
    ) -> PubChemRequest:
        property_list = ",".join(properties)
        if query.namespace in cls._POST_NAMESPACES:
            path = cls._PROPERTIES_TEMPLATE.format(namespace=query.namespace.value, value="", properties=property_list)
            return PubChemRequest("POST", path, {query.namespace.value: str(query.value)})
        value = quote(str(query.value), safe="") + "/"
        path = cls._PROPERTIES_TEMPLATE.format(namespace=query.namespace.value, value=value, properties=property_list)
        return PubChemRequest("GET", path)


def build_session(config: PubChemConfig) -> requests.Session:
    """Return a session with the configured retry policy mounted."""

    session = requests.Session()
    retry_strategy = Retry(
        total=config.retries.total,
        backoff_factor=config.retries.backoff_factor,
        status_forcelist=list(config.retries.statuses),
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": config.user_agent, "Accept": "application/json"})
    return session


class PubChemResolver:
    """Resolve identifiers through the PubChem PUG-REST property endpoint.

    Calls are blocking and single shot; retries are left to the session's
    adapter.
    """

    def __init__(self, config: PubChemConfig | None = None, *, session: requests.Session | None = None) -> None:
        self.config = config or PubChemConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or build_session(self.config)
        self.timeout = (self.config.connect_timeout_sec, self.config.timeout_sec)

    def resolve(self, identifier: CompoundIdentifier) -> PropertySet:
        query = identifier.to_query()
        request = PubChemRequestBuilder.build_properties_request(query)
        payload = self._request_json(request, identifier)
        record = self._first_record(payload, identifier)
        try:
            properties = PropertySet.from_pubchem(record)
        except MalformedEntryError as exc:
            raise ResolutionError(
                f"Incomplete PubChem record for {identifier}: {exc.message}",
                identifier=str(identifier),
                cause=exc,
            ) from exc
        logger.debug("compound_resolved", identifier=str(identifier), cid=properties.cid)
        return properties

    def _request_json(self, request: PubChemRequest, identifier: CompoundIdentifier) -> Any:
        url = f"{self.base_url}{request.path}"
        logger.debug("pubchem_request", method=request.method, url=url, identifier=str(identifier))
        try:
            response = self.session.request(request.method, url, data=request.data, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.error("pubchem_request_failed", url=url, identifier=str(identifier), error=str(exc))
            raise ResolutionError(
                f"PubChem request failed for {identifier}: {exc}",
                identifier=str(identifier),
                url=url,
                cause=exc,
            ) from exc

        if response.status_code == 404:
            raise CompoundNotFoundError(str(identifier))
        if not response.ok:
            logger.error(
                "pubchem_request_failed",
                url=url,
                identifier=str(identifier),
                status_code=response.status_code,
            )
            raise ResolutionError(
                f"PubChem returned HTTP {response.status_code} for {identifier}",
                identifier=str(identifier),
                url=url,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ResolutionError(
                f"PubChem returned a non-JSON body for {identifier}",
                identifier=str(identifier),
                url=url,
                status_code=response.status_code,
                cause=exc,
            ) from exc

    @staticmethod
    def _first_record(payload: Any, identifier: CompoundIdentifier) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise ResolutionError(f"Unexpected PubChem payload for {identifier}", identifier=str(identifier))
        property_table = payload.get("PropertyTable")
        if not isinstance(property_table, dict):
            raise ResolutionError(f"PubChem payload lacks PropertyTable for {identifier}", identifier=str(identifier))
        records = [entry for entry in property_table.get("Properties") or [] if isinstance(entry, dict)]
        if not records:
            raise CompoundNotFoundError(str(identifier))
        if len(records) > 1:
            # a name can map to several CIDs; PubChem ranks the best match first
            logger.info("pubchem_multiple_matches", identifier=str(identifier), matches=len(records))
        return records[0]
