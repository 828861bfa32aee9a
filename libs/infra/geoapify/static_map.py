"""Geoapify static map rendering."""

from urllib.parse import quote

from libs.core.application.contracts import MapRenderer, RemoteServiceError
from libs.infra.http_json import request_bytes

SERVICE_NAME = "geoapify"
STATIC_MAP_URL = "https://maps.geoapify.com/v1/staticmap"
MAP_STYLE = "osm-bright-grey"
MAP_WIDTH = 600
MAP_HEIGHT = 400


def build_static_map_url(lat: float, lng: float, radius_km: float, api_key: str) -> str:
    geometry = f"circle:{lng},{lat},{radius_km};fillcolor:#ff4444;fillopacity:0.5"
    return (
        f"{STATIC_MAP_URL}?style={MAP_STYLE}&width={MAP_WIDTH}&height={MAP_HEIGHT}"
        f"&geometry={quote(geometry, safe=':,;.')}&apiKey={api_key}"
    )


class GeoapifyMapRenderer(MapRenderer):
    """Renders the affected area as a filled circle on a PNG map."""

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def render_circle(self, lat: float, lng: float, radius_km: float) -> bytes:
        if not self._api_key:
            raise RemoteServiceError(SERVICE_NAME, "GEOAPIFY_API_KEY is not set")
        return request_bytes(
            build_static_map_url(lat, lng, radius_km, self._api_key),
            service=SERVICE_NAME,
        )
