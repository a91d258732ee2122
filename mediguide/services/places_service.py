"""
Places service finding hospitals, pharmacies and clinics near a location.
Geocodes free text through Nominatim and queries OpenStreetMap data through
the Overpass API, trying each configured mirror in turn.
"""

from typing import Any

import httpx

from mediguide.errors import RemoteUnavailableError
from mediguide.models.domain import (
    Coordinates,
    Facility,
    FacilityType,
    NearbySearch,
)
from mediguide.services.cache import TTLCache
from mediguide.services.ranking import rank_by_distance
from mediguide.services.resilience import call_with_retry
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)

SOURCE_OSM = "OpenStreetMap"
UNKNOWN_ADDRESS = "Address on map"

OVERPASS_QUERY_TEMPLATE = """
[out:json][timeout:60];
(
  node(around:{radius},{lat},{lon})["amenity"~"hospital|pharmacy|clinic|doctors"];
  way(around:{radius},{lat},{lon})["amenity"~"hospital|pharmacy|clinic|doctors"];
  rel(around:{radius},{lat},{lon})["amenity"~"hospital|pharmacy|clinic|doctors"];
  node(around:{radius},{lat},{lon})["healthcare"~"hospital|pharmacy|clinic|doctor"];
  way(around:{radius},{lat},{lon})["healthcare"~"hospital|pharmacy|clinic|doctor"];
  rel(around:{radius},{lat},{lon})["healthcare"~"hospital|pharmacy|clinic|doctor"];
);
out center;
"""

CLINIC_TAGS = {"clinic", "doctors", "doctor"}


def _facility_type(tags: dict[str, str]) -> FacilityType:
    amenity = tags.get("amenity")
    healthcare = tags.get("healthcare")
    if "pharmacy" in (amenity, healthcare):
        return FacilityType.PHARMACY
    if amenity in CLINIC_TAGS or healthcare in CLINIC_TAGS:
        return FacilityType.CLINIC
    return FacilityType.HOSPITAL


def _address(tags: dict[str, str]) -> str:
    if tags.get("addr:full"):
        return tags["addr:full"]
    street = tags.get("addr:street")
    if not street:
        return UNKNOWN_ADDRESS
    house = tags.get("addr:housenumber", "")
    city = tags.get("addr:city", "")
    line = f"{house} {street}".strip()
    return f"{line}, {city}" if city else line


def parse_elements(elements: list[dict[str, Any]]) -> list[Facility]:
    """
    Converts Overpass elements into facilities.

    Ways and relations carry their position in `center`. Elements without
    any usable position are dropped.

    Args:
        elements: The `elements` array of an Overpass JSON answer

    Returns:
        Facilities in input order
    """
    facilities = []
    for element in elements:
        center = element.get("center") or {}
        lat = element.get("lat", center.get("lat"))
        lon = element.get("lon", center.get("lon"))
        if lat is None or lon is None:
            continue

        tags = element.get("tags") or {}
        facility_type = _facility_type(tags)
        default_name = (
            "Local Pharmacy" if facility_type == FacilityType.PHARMACY else "Medical Facility"
        )
        facilities.append(
            Facility(
                name=tags.get("name") or default_name,
                address=_address(tags),
                phone=tags.get("phone") or tags.get("contact:phone"),
                coordinates=Coordinates(lat=float(lat), lon=float(lon)),
                facility_type=facility_type,
                source_verified=True,
                hours=tags.get("opening_hours"),
            )
        )
    return facilities


class PlacesService:
    """
    Service for geocoding and nearby facility lookups.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        geocode_cache: TTLCache,
        nominatim_url: str,
        overpass_endpoints: list[str],
        search_radius_km: float = 15.0,
        overpass_radius_m: int = 12000,
        country_hint: str = "",
        max_attempts: int = 3,
        initial_delay: float = 2.0,
    ):
        """
        Initialize places service.

        Args:
            client: Shared HTTP client (carries the User-Agent header)
            geocode_cache: Cache for geocoding answers
            nominatim_url: Free-text geocoding endpoint
            overpass_endpoints: Overpass mirrors, tried in order
            search_radius_km: Ranking radius
            overpass_radius_m: Radius of the Overpass query
            country_hint: Country appended to free-text queries
            max_attempts: Attempts for rate-limited calls
            initial_delay: First backoff delay in seconds
        """
        self.client = client
        self.geocode_cache = geocode_cache
        self.nominatim_url = nominatim_url
        self.overpass_endpoints = overpass_endpoints
        self.search_radius_km = search_radius_km
        self.overpass_radius_m = overpass_radius_m
        self.country_hint = country_hint
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay

    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        async def attempt() -> Any:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()

        return await call_with_retry(
            attempt, max_attempts=self.max_attempts, initial_delay=self.initial_delay
        )

    def _with_country_hint(self, query: str) -> str:
        if not self.country_hint or self.country_hint.lower() in query.lower():
            return query
        return f"{query}, {self.country_hint}"

    async def geocode(self, query: str) -> Coordinates | None:
        """
        Resolves free text to coordinates.

        Args:
            query: Place name or address

        Returns:
            Coordinates of the best match, or None when nothing matched

        Raises:
            httpx.HTTPError: If the geocoder keeps failing
        """
        search = self._with_country_hint(query.strip())

        async def produce() -> dict[str, float] | None:
            logger.info("geocode_started", query=search)
            results = await self._get_json(
                self.nominatim_url, {"q": search, "format": "json", "limit": "1"}
            )
            if not results:
                return None
            return {"lat": float(results[0]["lat"]), "lon": float(results[0]["lon"])}

        point = await self.geocode_cache.get_cached(search, produce)
        if point is None:
            logger.warning("geocode_no_match", query=search)
            return None
        return Coordinates(**point)

    async def fetch_facilities(self, origin: Coordinates) -> list[Facility]:
        """
        Queries facilities around a point.

        Args:
            origin: Center of the search

        Returns:
            Parsed facilities (unranked)

        Raises:
            RemoteUnavailableError: If every Overpass endpoint fails
        """
        query = OVERPASS_QUERY_TEMPLATE.format(
            radius=self.overpass_radius_m, lat=origin.lat, lon=origin.lon
        )
        for endpoint in self.overpass_endpoints:
            try:
                logger.info("overpass_query_started", endpoint=endpoint)
                data = await self._get_json(endpoint, {"data": query})
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("overpass_endpoint_failed", endpoint=endpoint, error=str(e))
                continue

            elements = (data.get("elements") or []) if isinstance(data, dict) else []
            logger.info(
                "overpass_query_completed", endpoint=endpoint, elements=len(elements)
            )
            return parse_elements(elements)

        raise RemoteUnavailableError("All Overpass endpoints failed")

    async def find_nearby(
        self,
        location: str | None = None,
        coords: Coordinates | None = None,
    ) -> NearbySearch:
        """
        Finds facilities within the search radius, nearest first.

        Coordinates take precedence over the location text. Remote failures
        are absorbed here and reported as an empty result.

        Args:
            location: Free-text location
            coords: Explicit position (e.g. from the browser)

        Returns:
            Ranked centers and the resolved search center
        """
        origin = coords
        if origin is None:
            if not location or not location.strip():
                return NearbySearch()
            try:
                origin = await self.geocode(location)
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.error("geocode_failed", location=location, error=str(e))
                return NearbySearch()
            if origin is None:
                return NearbySearch()

        try:
            facilities = await self.fetch_facilities(origin)
        except RemoteUnavailableError as e:
            logger.error("facility_lookup_failed", error=str(e))
            return NearbySearch(geocoded_center=origin)

        centers = rank_by_distance(origin, facilities, self.search_radius_km)
        logger.info(
            "facility_lookup_completed",
            found=len(facilities),
            in_radius=len(centers),
            radius_km=self.search_radius_km,
        )
        return NearbySearch(centers=centers, geocoded_center=origin, source=SOURCE_OSM)
