from tokensale.nanocontracts.exception import NCFail
from tokensale.nanocontracts.types import Amount
from tokensale.sale.errors import CapExceeded


class CapGate:
    """Cumulative value accepted by a sale, bounded by a fixed cap."""

    def __init__(self, cap: Amount) -> None:
        if cap <= 0:
            raise NCFail("Cap must be positive")
        self.cap = cap
        self.wei_raised = Amount(0)

    def cap_reached(self) -> bool:
        return self.wei_raised >= self.cap

    def remaining(self) -> Amount:
        return Amount(max(self.cap - self.wei_raised, 0))

    def check_and_accept(self, value: Amount) -> Amount:
        """Add `value` to the amount raised.

        A value that does not fit entirely under the cap is rejected, never partially accepted.
        """
        if value < 0:
            raise NCFail("Invalid amount")
        if self.wei_raised + value > self.cap:
            raise CapExceeded(
                f"Purchase of {value} exceeds the cap. Remaining: {self.remaining()}"
            )
        self.wei_raised = Amount(self.wei_raised + value)
        return value
