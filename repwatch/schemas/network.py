from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GeolocationResponse(BaseModel):
    """Payload of the ip-api.com `/json/{ip}` endpoint."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str
    message: Optional[str] = None
    continent: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = Field(None, alias="countryCode")
    region: Optional[str] = None
    region_name: Optional[str] = Field(None, alias="regionName")
    city: Optional[str] = None
    zip: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None
    org: Optional[str] = None
    asn: Optional[str] = Field(None, alias="as")
    asname: Optional[str] = None
    hosting: Optional[bool] = None
    query: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == "success"


class NetworkInfoRecord(BaseModel):
    account: str
    address: str
    continent: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None
    region_name: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None
    org: Optional[str] = None
    asn: Optional[str] = None
    asname: Optional[str] = None
    hosted: Optional[bool] = None
    timestamp: int

    @classmethod
    def from_geolocation(cls, account: str, address: str, geo: GeolocationResponse, timestamp: int) -> "NetworkInfoRecord":
        return cls(
            account=account,
            address=address,
            continent=geo.continent,
            country=geo.country,
            country_code=geo.country_code,
            region=geo.region,
            region_name=geo.region_name,
            city=geo.city,
            zip=geo.zip,
            lat=geo.lat,
            lon=geo.lon,
            timezone=geo.timezone,
            isp=geo.isp,
            org=geo.org,
            asn=geo.asn,
            asname=geo.asname,
            hosted=geo.hosting,
            timestamp=timestamp,
        )


class NetworkInfoResponse(NetworkInfoRecord):
    id: int

    model_config = ConfigDict(from_attributes=True)
