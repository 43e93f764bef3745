"""
Post-passage seat confirmation.

After a bus drops out of the station snapshot we look it up in the
route-wide location feed to read how many seats are left now. The feed
reports a negative seat count while it has no reading yet; that and a
missing plate both mean "try again next tick".
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .base import ConfirmationSource

logger = logging.getLogger(__name__)


class ConfirmationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class ConfirmationResult:
    status: ConfirmationStatus
    seats: Optional[int] = None
    error: Optional[BaseException] = None

    @classmethod
    def confirmed(cls, seats: int) -> "ConfirmationResult":
        return cls(ConfirmationStatus.CONFIRMED, seats=seats)

    @classmethod
    def unavailable(cls) -> "ConfirmationResult":
        return cls(ConfirmationStatus.UNAVAILABLE)

    @classmethod
    def failed(cls, error: BaseException) -> "ConfirmationResult":
        return cls(ConfirmationStatus.ERROR, error=error)

    @property
    def is_confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


def confirm_seats_after(source: ConfirmationSource, route_id: str, plate: str) -> ConfirmationResult:
    try:
        locations = source.fetch_locations(route_id)
    except Exception as e:
        logger.warning("Bus location lookup failed route=%s bus=%s error=%r", route_id, plate, e)
        return ConfirmationResult.failed(e)

    for loc in locations:
        if loc.plate != plate:
            continue
        if loc.seats < 0:
            logger.debug("Seat data not yet available for bus %s (got %d)", plate, loc.seats)
            return ConfirmationResult.unavailable()

        logger.debug("Found bus %s at station seq %s, seats=%d", plate, loc.station_seq, loc.seats)
        return ConfirmationResult.confirmed(loc.seats)

    logger.debug("Bus %s not found in location results for route %s", plate, route_id)
    return ConfirmationResult.unavailable()
