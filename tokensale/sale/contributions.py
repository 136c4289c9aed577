from dataclasses import dataclass

from tokensale.nanocontracts.exception import NCFail
from tokensale.nanocontracts.types import Amount, CallerId


@dataclass(slots=True)
class ContributionRecord:
    """What a single investor has contributed and received so far."""

    token_balance: Amount = Amount(0)
    wei_contribution: Amount = Amount(0)


class ContributionLedger:
    """Per-investor contributions plus the ordered list of contributors.

    Entries only ever grow: there is no way to remove a contributor or decrease an amount.
    """

    def __init__(self) -> None:
        self._records: dict[CallerId, ContributionRecord] = {}
        self._contributors: list[CallerId] = []

    def record(self, investor: CallerId, wei_amount: Amount, token_amount: Amount) -> None:
        if wei_amount < 0 or token_amount < 0:
            raise NCFail("Invalid amount")

        record = self._records.get(investor)
        if record is None:
            if wei_amount == 0:
                # only a nonzero contribution makes someone a contributor
                return
            record = self._records[investor] = ContributionRecord()
            self._contributors.append(investor)

        record.wei_contribution = Amount(record.wei_contribution + wei_amount)
        record.token_balance = Amount(record.token_balance + token_amount)

    def token_balance(self, investor: CallerId) -> Amount:
        record = self._records.get(investor)
        return record.token_balance if record is not None else Amount(0)

    def wei_contribution(self, investor: CallerId) -> Amount:
        record = self._records.get(investor)
        return record.wei_contribution if record is not None else Amount(0)

    def contributors_length(self) -> int:
        return len(self._contributors)

    def contributor_address(self, index: int) -> CallerId:
        if not 0 <= index < len(self._contributors):
            raise NCFail(f"Contributor index out of range: {index}")
        return self._contributors[index]

    def contributors(self) -> list[CallerId]:
        return list(self._contributors)

    def total_wei_contributed(self) -> Amount:
        return Amount(sum(record.wei_contribution for record in self._records.values()))
