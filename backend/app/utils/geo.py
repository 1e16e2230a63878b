import ipaddress
import logging
import re
from functools import lru_cache
from typing import Optional

import httpx

from ..config import settings
from ..core.exceptions import ExternalServiceError
from ..schemas.click import LocationResult

logger = logging.getLogger(__name__)

# Private IP patterns
PRIVATE_IP_PATTERNS = [
    re.compile(r'^127\.'),  # Loopback
    re.compile(r'^10\.'),  # Class A private
    re.compile(r'^172\.(1[6-9]|2[0-9]|3[0-1])\.'),  # Class B private
    re.compile(r'^192\.168\.'),  # Class C private
    re.compile(r'^169\.254\.'),  # Link-local
    re.compile(r'^::1$'),  # IPv6 loopback
    re.compile(r'^fc00:', re.IGNORECASE),  # IPv6 unique local
    re.compile(r'^fe80:', re.IGNORECASE),  # IPv6 link-local
]

IP_API_FIELDS = "status,message,country,countryCode,regionName,city,lat,lon,timezone,isp"


def is_private_ip(ip: str) -> bool:
    """Check if IP address is private/local"""
    if not ip:
        return True
    for pattern in PRIVATE_IP_PATTERNS:
        if pattern.match(ip):
            return True
    return False


def is_valid_ip(ip: str) -> bool:
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True


class GeoResolver:
    """
    IP geolocation backed by ip-api.com.

    `resolve` never raises: any failure comes back as a LocationResult with
    `error` set. Successful lookups are kept in an LRU cache.
    """

    def __init__(self, api_url: str = settings.GEO_API_URL,
                 timeout: float = settings.GEO_TIMEOUT,
                 cache_size: int = settings.GEO_CACHE_SIZE,
                 enabled: bool = settings.GEO_ENABLED,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_url = api_url
        self.timeout = timeout
        self.enabled = enabled
        self._transport = transport
        # Exceptions are not cached, so only successful lookups stick
        self._lookup = lru_cache(maxsize=cache_size)(self._fetch)

    def _fetch(self, ip: str) -> LocationResult:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(
                    self.api_url.format(ip=ip),
                    params={"fields": IP_API_FIELDS}
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Geolocation request failed: {e}") from e

        if response.status_code != 200:
            raise ExternalServiceError(
                f"Geolocation service returned HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError("Geolocation service returned malformed JSON") from e

        if not isinstance(data, dict):
            raise ExternalServiceError("Geolocation service returned malformed JSON")

        if data.get("status") != "success":
            raise ExternalServiceError(data.get("message") or "IP geolocation service error")

        return LocationResult(
            country=data.get("country"),
            country_code=data.get("countryCode"),
            region=data.get("regionName"),
            city=data.get("city"),
            latitude=data.get("lat"),
            longitude=data.get("lon"),
            timezone=data.get("timezone"),
            isp=data.get("isp"),
            source="ip",
        )

    def resolve(self, ip: str) -> LocationResult:
        """Best-effort location for an IP address"""
        if not self.enabled:
            return LocationResult(source="ip", error="Geolocation disabled")

        if is_private_ip(ip):
            return LocationResult(source="ip", error="Private IP address")

        # The address comes from client headers and ends up in the request URL
        if not is_valid_ip(ip):
            return LocationResult(source="ip", error="Invalid IP address")

        try:
            return self._lookup(ip)
        except ExternalServiceError as e:
            logger.warning("IP geolocation failed for %s: %s", ip, e.message)
            return LocationResult(source="ip", error=e.message)
        except Exception as e:
            logger.warning("IP geolocation failed for %s: %s", ip, e)
            return LocationResult(source="ip", error="Failed to get IP location")


geo_resolver = GeoResolver()


# Dependency to get the geolocation resolver
def get_geo_resolver() -> GeoResolver:
    return geo_resolver
