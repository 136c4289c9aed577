from tokensale.nanocontracts.types import Timestamp
from tokensale.sale.errors import InvalidTimeRange


class TimeGate:
    """Opening and closing time of a sale.

    The closing time can only move forward, see `extend`.
    """

    def __init__(self, opening_time: Timestamp, closing_time: Timestamp) -> None:
        if opening_time >= closing_time:
            raise InvalidTimeRange(
                f"Opening time ({opening_time}) must be before closing time ({closing_time})"
            )
        self.opening_time = opening_time
        self.closing_time = closing_time
        self.current_closing_time = closing_time

    def has_opened(self, now: Timestamp) -> bool:
        return now >= self.opening_time

    def has_closed(self, now: Timestamp) -> bool:
        return now > self.current_closing_time

    def extend(self, new_closing_time: Timestamp) -> Timestamp:
        """Move the closing time forward and return the previous one."""
        if new_closing_time <= self.current_closing_time:
            raise InvalidTimeRange(
                f"New closing time ({new_closing_time}) must be after the current one ({self.current_closing_time})"
            )
        previous = self.current_closing_time
        self.current_closing_time = new_closing_time
        return previous
