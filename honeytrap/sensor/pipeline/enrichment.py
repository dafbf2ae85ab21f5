"""Best-effort geolocation enrichment.

Queries an ip-api style JSON endpoint::

    GET {base_url}/{ip}?fields=status,country,city
    -> {"status": "success", "country": "Germany", "city": "Berlin"}

Enrichment is advisory.  ``lookup`` makes a single attempt bounded by an
overall deadline and returns ``None`` on any failure: timeout, transport
error, non-2xx status, malformed body or a provider-side ``status`` other than
``"success"``.  It never raises, so it can never stall or fail capture.

Addresses that cannot be located (``"unknown"``, hostnames, private, loopback
and other non-global ranges) are skipped without a network call.
"""

from __future__ import annotations

import asyncio
import ipaddress

import httpx
from loguru import logger

from honeytrap.sensor.models.events import GeoInfo

GEO_FIELDS = "status,country,city"


def is_locatable(address: str) -> bool:
    """Return ``True`` when *address* is a globally routable IP literal."""
    try:
        return ipaddress.ip_address(address.strip()).is_global
    except ValueError:
        return False


class GeoClient:
    """Time-bounded geolocation lookups over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str = "http://ip-api.com/json",
        timeout: float = 2.0,
        *,
        enabled: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._enabled = enabled
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self, address: str) -> GeoInfo | None:
        """Resolve *address* to a coarse region/city, or ``None``."""
        if not self._enabled or not is_locatable(address):
            return None

        url = f"{self._base_url}/{address.strip()}"
        try:
            data = await asyncio.wait_for(self._fetch(url), timeout=self._timeout)
        except TimeoutError:
            logger.debug("Geo lookup for {} abandoned after {}s", address, self._timeout)
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Geo lookup for {} failed: {}", address, exc)
            return None

        return _parse_geo(data)

    async def _fetch(self, url: str) -> object:
        response = await self._client.get(url, params={"fields": GEO_FIELDS})
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _parse_geo(data: object) -> GeoInfo | None:
    if not isinstance(data, dict) or data.get("status") != "success":
        return None
    region = data.get("country")
    city = data.get("city")
    region = region if isinstance(region, str) and region else None
    city = city if isinstance(city, str) and city else None
    if region is None and city is None:
        return None
    return GeoInfo(region=region, city=city)
