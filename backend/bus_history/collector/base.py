from abc import ABC, abstractmethod

from .types import ArrivalRecord, MonitoringConfig, VehicleLocation, VehicleSighting


class SnapshotSource(ABC):
    @abstractmethod
    def fetch_snapshot(self, route_id: str, station_id: str) -> list[VehicleSighting]:
        """
        Vehicles currently approaching `station_id` on `route_id`.
        Raises on transport/upstream failure.
        """
        raise NotImplementedError


class ConfirmationSource(ABC):
    @abstractmethod
    def fetch_locations(self, route_id: str) -> list[VehicleLocation]:
        raise NotImplementedError


class ArrivalSink(ABC):
    @abstractmethod
    def persist(self, record: ArrivalRecord) -> int:
        """
        Durably store a finalized arrival and return its record id.
        Must be safe to call from several worker threads at once.
        """
        raise NotImplementedError


class ConfigProvider(ABC):
    @abstractmethod
    def list_active_configs(self) -> list[MonitoringConfig]:
        raise NotImplementedError
