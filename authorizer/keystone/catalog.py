"""
Service catalog parsing and endpoint resolution.

Background for newcomers:
    Every scoped Keystone token comes with a *service catalog*: a directory of
    services (identity, compute, ...) and, for each, the URLs it is reachable
    at per region and per interface. The interface says who the URL is meant
    for: ``public`` (anyone), ``internal`` (inside the cloud network) or
    ``admin``. We pick the identity service's URL out of the catalog once and
    send every validation request there.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .errors import NotFoundError

logger = logging.getLogger(__name__)

INTERFACES = ("public", "internal", "admin")


@dataclass(frozen=True)
class EndpointFilter:
    """Which catalog endpoint to use. An empty ``region`` or ``name`` matches any."""

    region: str | None = "RegionOne"
    service_type: str = "identity"
    interface: str = "public"
    name: str | None = None


@dataclass(frozen=True)
class CatalogEndpoint:
    url: str
    interface: str
    region: str | None = None
    region_id: str | None = None


@dataclass(frozen=True)
class CatalogEntry:
    type: str
    name: str | None
    endpoints: tuple[CatalogEndpoint, ...]


ServiceCatalog = tuple[CatalogEntry, ...]


def parse_catalog(raw: Any) -> ServiceCatalog:
    """
    Build a ``ServiceCatalog`` from the ``token.catalog`` list of an Identity
    v3 token response. Order is kept as returned by the provider.

    Raises ValueError if the structure is not a list of services with
    endpoint lists.
    """
    if not isinstance(raw, list):
        raise ValueError("catalog is not a list")

    entries: list[CatalogEntry] = []
    for service in raw:
        if not isinstance(service, dict) or not isinstance(service.get("type"), str):
            raise ValueError("catalog entry without a service type")
        raw_endpoints = service.get("endpoints") or []
        if not isinstance(raw_endpoints, list):
            raise ValueError("catalog endpoints is not a list")

        endpoints: list[CatalogEndpoint] = []
        for ep in raw_endpoints:
            if not isinstance(ep, dict) or not ep.get("url") or not ep.get("interface"):
                raise ValueError("catalog endpoint without url or interface")
            endpoints.append(
                CatalogEndpoint(
                    url=str(ep["url"]),
                    interface=str(ep["interface"]),
                    region=ep.get("region"),
                    region_id=ep.get("region_id"),
                )
            )
        entries.append(
            CatalogEntry(type=service["type"], name=service.get("name"), endpoints=tuple(endpoints))
        )
    return tuple(entries)


def _matches(entry: CatalogEntry, endpoint: CatalogEndpoint, flt: EndpointFilter) -> bool:
    if entry.type != flt.service_type:
        return False
    if flt.name and entry.name != flt.name:
        return False
    if endpoint.interface != flt.interface:
        return False
    if flt.region and flt.region not in (endpoint.region_id, endpoint.region):
        return False
    return True


def resolve_endpoint(catalog: ServiceCatalog, endpoint_filter: EndpointFilter) -> str:
    """
    Return the URL of the first endpoint matching ``endpoint_filter``.

    Catalog order is authoritative: when several endpoints match, the first
    one wins, so the answer is stable for an unchanged catalog.

    Raises NotFoundError when nothing matches.
    """
    for entry in catalog:
        for endpoint in entry.endpoints:
            if _matches(entry, endpoint, endpoint_filter):
                logger.debug(
                    "Resolved %s endpoint region=%s interface=%s url=%s",
                    endpoint_filter.service_type,
                    endpoint_filter.region,
                    endpoint_filter.interface,
                    endpoint.url,
                )
                return endpoint.url

    raise NotFoundError(
        f"No {endpoint_filter.interface} '{endpoint_filter.service_type}' endpoint "
        f"in region {endpoint_filter.region or '<any>'}"
    )
