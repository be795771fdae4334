import httpx

from repwatch.core.logging_config import get_logger
from repwatch.schemas.network import GeolocationResponse

logger = get_logger("geolocation")

FIELDS = (
    "status,message,continent,country,countryCode,region,regionName,city,zip,"
    "lat,lon,timezone,isp,org,as,asname,hosting,query"
)


class GeolocationError(Exception):
    pass


class GeolocationClient:
    """
    ip-api.com lookups. One GET per address, no retry.
    The free tier is rate limited, callers pace requests themselves.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str = "http://ip-api.com"):
        self._client = client
        self.base_url = base_url.rstrip("/")

    async def lookup(self, ip: str) -> GeolocationResponse:
        url = f"{self.base_url}/json/{ip}"
        try:
            response = await self._client.get(url, params={"fields": FIELDS})
        except httpx.HTTPError as e:
            raise GeolocationError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise GeolocationError(f"status {response.status_code} for {ip}")

        try:
            return GeolocationResponse.model_validate(response.json())
        except ValueError as e:
            raise GeolocationError(f"invalid response for {ip}: {e}") from e
