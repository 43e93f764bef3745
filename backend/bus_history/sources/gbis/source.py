import logging
from typing import Optional

import httpx

from bus_history.collector.base import ConfirmationSource, SnapshotSource
from bus_history.collector.types import VehicleLocation, VehicleSighting
from bus_history.core.log import configure_logging_if_needed

from .config import GbisConfig, load_config
from .http import GbisApiError, get_with_retry, make_client
from .parse import (
    direction_at,
    locations_from_body,
    route_stations_from_body,
    routes_from_body,
    sightings_from_arrival_item,
    stations_from_body,
)
from .types import RouteInfo, RouteStation, StationInfo, StationRoute

logger = logging.getLogger(__name__)

ARRIVAL_ITEM_PATH = "/busarrivalservice/v2/getBusArrivalItemv2"
BUS_LOCATIONS_PATH = "/buslocationservice/v2/getBusLocationListv2"
ROUTE_SEARCH_PATH = "/busrouteservice/v2/getBusRouteListv2"
ROUTE_STATIONS_PATH = "/busrouteservice/v2/getBusRouteStationListv2"
STATION_SEARCH_PATH = "/busstationservice/v2/getBusStationListv2"
STATION_ROUTES_PATH = "/busstationservice/v2/getBusStationViaRouteListv2"

# getBusStationViaRouteListv2 answers "no routes" with code 3
RESULT_NO_ROUTES = 3


class GbisSource(SnapshotSource, ConfirmationSource):
    """
    Gyeonggi bus information service (GBIS):
      - getBusArrivalItemv2 for buses approaching a station on a route
      - getBusLocationListv2 for every bus currently running on a route
      - route/station search used when registering a monitoring config

    One pooled httpx.Client is shared by all station workers.
    """

    def __init__(self, cfg: Optional[GbisConfig] = None, client: Optional[httpx.Client] = None):
        configure_logging_if_needed()
        self.cfg = cfg or load_config()
        self._client = client or make_client(self.cfg)

        logger.info(
            "GBIS configured base_url=%s timeouts(connect=%.1f read=%.1f write=%.1f pool=%.1f) retries=%d backoff_base=%.2f",
            self.cfg.base_url,
            self.cfg.connect_timeout,
            self.cfg.read_timeout,
            self.cfg.write_timeout,
            self.cfg.pool_timeout,
            self.cfg.retries,
            self.cfg.backoff_base,
        )

    def fetch_snapshot(self, route_id: str, station_id: str) -> list[VehicleSighting]:
        body = get_with_retry(
            self.cfg, self._client, ARRIVAL_ITEM_PATH, {"routeId": route_id, "stationId": station_id}
        )
        return sightings_from_arrival_item(body)

    def fetch_locations(self, route_id: str) -> list[VehicleLocation]:
        body = get_with_retry(self.cfg, self._client, BUS_LOCATIONS_PATH, {"routeId": route_id})
        return locations_from_body(body)

    def search_routes(self, keyword: str) -> list[RouteInfo]:
        body = get_with_retry(self.cfg, self._client, ROUTE_SEARCH_PATH, {"keyword": keyword})
        return routes_from_body(body)

    def search_stations(self, keyword: str) -> list[StationInfo]:
        body = get_with_retry(self.cfg, self._client, STATION_SEARCH_PATH, {"keyword": keyword})
        return stations_from_body(body)

    def route_stations(self, route_id: str) -> list[RouteStation]:
        """Stations of a route in travel order."""
        body = get_with_retry(self.cfg, self._client, ROUTE_STATIONS_PATH, {"routeId": route_id})
        return route_stations_from_body(body)

    def station_routes(self, station_id: str) -> list[StationRoute]:
        """
        Routes serving a station, each with the direction of travel and the
        station's sequence number on that route. Direction needs one extra
        route-station lookup per route; a failed lookup leaves it blank.
        """
        try:
            body = get_with_retry(self.cfg, self._client, STATION_ROUTES_PATH, {"stationId": station_id})
        except GbisApiError as e:
            if e.code == RESULT_NO_ROUTES:
                return []
            raise

        out: list[StationRoute] = []
        seen: set[str] = set()
        for route in routes_from_body(body):
            if route.route_id in seen:
                continue
            seen.add(route.route_id)

            direction, sta_order = "", None
            try:
                direction, sta_order = direction_at(self.route_stations(route.route_id), station_id)
            except (httpx.HTTPError, GbisApiError) as e:
                logger.warning("Station list lookup failed route=%s station=%s error=%r", route.route_id, station_id, e)

            out.append(
                StationRoute(
                    route_id=route.route_id,
                    route_name=route.route_name,
                    route_type_name=route.route_type_name,
                    direction=direction,
                    sta_order=sta_order,
                )
            )
        return out

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
