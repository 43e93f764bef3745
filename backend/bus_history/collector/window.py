from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class ActiveWindow:
    """
    Hours of the day during which a station is polled.

      0 -> 0    always open
      7 -> 22   open for hours 7..21
      22 -> 2   wraps midnight: hours 22, 23, 0, 1
      9 -> 9    open only during hour 9
    """
    start_hour: int = 0
    end_hour: int = 0
    tz: ZoneInfo = ZoneInfo("Asia/Seoul")

    def is_open_at_hour(self, hour: int) -> bool:
        if self.start_hour == 0 and self.end_hour == 0:
            return True
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        if self.start_hour > self.end_hour:
            return hour >= self.start_hour or hour < self.end_hour
        return hour == self.start_hour

    def is_open(self, now: datetime) -> bool:
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return self.is_open_at_hour(now.hour)

    def describe(self) -> str:
        if self.start_hour == 0 and self.end_hour == 0:
            return "24h"
        return f"{self.start_hour:02d}-{self.end_hour:02d}"
