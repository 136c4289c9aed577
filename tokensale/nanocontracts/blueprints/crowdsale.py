from typing import NamedTuple

from tokensale import (
    Address,
    Amount,
    Blueprint,
    CallerId,
    Context,
    NCDepositAction,
    NCFail,
    TokenUid,
    Timestamp,
    export,
    public,
    view,
)
from tokensale.nanocontracts.exception import NCInsufficientFunds
from tokensale.sale import (
    BelowMinimumContribution,
    CapGate,
    ContributionLedger,
    InvalidTimeRange,
    SaleNotOpen,
    TimeGate,
    Unauthorized,
)


class CrowdsaleSaleInfo(NamedTuple):
    """General sale information."""

    token_uid: str
    wallet: str
    owner: str
    rate: int
    cap: int
    minimum_contribution: int
    wei_raised: int
    opening_time: int
    closing_time: int
    contributors: int
    started: bool
    ended: bool
    is_open: bool
    cap_reached: bool


class CrowdsaleErrors:
    """Common error messages"""

    UNAUTHORIZED = "Unauthorized action"
    NOT_OPEN = "Sale is not open"
    ALREADY_ENDED = "Sale has already ended"
    BELOW_MIN = "Amount below minimum contribution"
    INVALID_BENEFICIARY = "Invalid beneficiary"
    INVALID_OWNER = "Invalid owner"
    INSUFFICIENT_BALANCE = "Not enough tokens held by the sale"


@export
class TimedCappedCrowdsale(Blueprint):
    """Token sale open during a time window and limited by a cap on the value raised.

    Accepted value is converted into sale tokens at a fixed rate, credited to the
    beneficiary and forwarded to the sale wallet. Every purchase is recorded in a
    per-investor ledger.
    """

    # Sale configuration
    token_uid: TokenUid  # Token being sold, minted on each purchase
    wallet: Address  # Receives the value of every purchase
    rate: Amount  # Token units per value unit
    minimum_contribution: Amount  # Minimum value of a single purchase

    # Access control
    owner: CallerId

    # Sale state
    time_gate: TimeGate
    cap_gate: CapGate
    contributions: ContributionLedger

    @public
    def initialize(
        self,
        ctx: Context,
        token_uid: TokenUid,
        wallet: Address,
        rate: Amount,
        cap: Amount,
        minimum_contribution: Amount,
        opening_time: Timestamp,
        closing_time: Timestamp,
    ) -> None:
        """Initialize the sale contract with configuration parameters."""
        if rate <= 0:
            raise NCFail("Invalid rate")
        if minimum_contribution <= 0:
            raise NCFail("Invalid minimum contribution")
        if not wallet:
            raise NCFail("Invalid wallet")
        if not token_uid:
            raise NCFail("Invalid token")
        if opening_time < ctx.block.timestamp:
            raise InvalidTimeRange("Opening time is before current time")

        self.time_gate = TimeGate(opening_time, closing_time)
        self.cap_gate = CapGate(cap)
        self.contributions = ContributionLedger()

        self.token_uid = token_uid
        self.wallet = wallet
        self.rate = rate
        self.minimum_contribution = minimum_contribution
        self.owner = ctx.caller_id

    @public(allow_deposit=True)
    def purchase(self, ctx: Context) -> None:
        """Buy tokens for the caller."""
        self._buy_tokens(ctx, ctx.caller_id)

    @public(allow_deposit=True)
    def buy_tokens(self, ctx: Context, beneficiary: CallerId) -> None:
        """Buy tokens on behalf of `beneficiary`. The caller pays and is not recorded."""
        self._buy_tokens(ctx, beneficiary)

    def _buy_tokens(self, ctx: Context, beneficiary: CallerId) -> None:
        now = ctx.block.timestamp
        if not self._is_open(now):
            raise SaleNotOpen(CrowdsaleErrors.NOT_OPEN)

        if not beneficiary:
            raise NCFail(CrowdsaleErrors.INVALID_BENEFICIARY)

        value = self._get_deposit_value(ctx)

        if value < self.minimum_contribution:
            raise BelowMinimumContribution(CrowdsaleErrors.BELOW_MIN)

        # Accounting is final before any external call, so a re-entrant
        # purchase sees the updated cap and ledger.
        self.cap_gate.check_and_accept(value)
        tokens = self._get_token_amount(value)
        self.contributions.record(beneficiary, value, tokens)
        self.syscall.emit_event(
            "TokensPurchased",
            purchaser=ctx.caller_id,
            beneficiary=beneficiary,
            value=value,
            amount=tokens,
        )

        self.syscall.mint_tokens(self.token_uid, beneficiary, tokens)
        self.syscall.forward_funds(self.wallet, value)

    def _get_deposit_value(self, ctx: Context) -> Amount:
        """Value sent with the call. A call without actions carries no value."""
        if not ctx.actions:
            return Amount(0)
        action = ctx.get_single_action(self.syscall.get_native_token_uid())
        if not isinstance(action, NCDepositAction):
            raise NCFail("Expected deposit action")
        return Amount(action.amount)

    def _get_token_amount(self, value: Amount) -> Amount:
        """Calculate tokens to be received for `value`. Integer rate, so nothing is truncated."""
        return Amount(value * self.rate)

    def _is_owner(self, ctx: Context) -> bool:
        """Check if the caller is the owner."""
        return ctx.caller_id == self.owner

    def _only_owner(self, ctx: Context) -> None:
        if not self._is_owner(ctx):
            raise Unauthorized(CrowdsaleErrors.UNAUTHORIZED)

    def _started(self, now: Timestamp) -> bool:
        return self.time_gate.has_opened(now)

    def _ended(self, now: Timestamp) -> bool:
        return self.time_gate.has_closed(now) or self.cap_gate.cap_reached()

    def _is_open(self, now: Timestamp) -> bool:
        return self._started(now) and not self._ended(now)

    @public
    def extend_closing_time(self, ctx: Context, new_closing_time: Timestamp) -> None:
        """Move the closing time forward (only owner, only before the sale ends)."""
        self._only_owner(ctx)
        if self._ended(ctx.block.timestamp):
            raise SaleNotOpen(CrowdsaleErrors.ALREADY_ENDED)

        previous = self.time_gate.extend(new_closing_time)
        self.syscall.emit_event(
            "TimedCrowdsaleExtended",
            prev_closing_time=previous,
            new_closing_time=new_closing_time,
        )

    @public
    def recover_tokens(self, ctx: Context, token_uid: TokenUid, amount: Amount) -> None:
        """Send tokens held by the sale contract back to the owner (only owner)."""
        self._only_owner(ctx)
        if amount > self.syscall.get_balance(token_uid):
            raise NCInsufficientFunds(CrowdsaleErrors.INSUFFICIENT_BALANCE)
        self.syscall.transfer_tokens(token_uid, self.owner, amount)

    @public
    def transfer_ownership(self, ctx: Context, new_owner: CallerId) -> None:
        """Hand the owner role over to `new_owner` (only owner)."""
        self._only_owner(ctx)
        if not new_owner:
            raise NCFail(CrowdsaleErrors.INVALID_OWNER)

        previous = self.owner
        self.owner = new_owner
        self.syscall.emit_event(
            "OwnershipTransferred",
            previous_owner=previous,
            new_owner=new_owner,
        )

    @view
    def get_opening_time(self) -> Timestamp:
        return self.time_gate.opening_time

    @view
    def get_closing_time(self) -> Timestamp:
        return self.time_gate.current_closing_time

    @view
    def get_rate(self) -> Amount:
        return self.rate

    @view
    def get_cap(self) -> Amount:
        return self.cap_gate.cap

    @view
    def get_wei_raised(self) -> Amount:
        return self.cap_gate.wei_raised

    @view
    def get_minimum_contribution(self) -> Amount:
        return self.minimum_contribution

    @view
    def get_owner(self) -> CallerId:
        return self.owner

    @view
    def started(self) -> bool:
        return self._started(self.syscall.get_current_timestamp())

    @view
    def ended(self) -> bool:
        return self._ended(self.syscall.get_current_timestamp())

    @view
    def is_open(self) -> bool:
        return self._is_open(self.syscall.get_current_timestamp())

    @view
    def cap_reached(self) -> bool:
        return self.cap_gate.cap_reached()

    @view
    def contributors_length(self) -> int:
        return self.contributions.contributors_length()

    @view
    def contributor_address(self, index: int) -> CallerId:
        return self.contributions.contributor_address(index)

    @view
    def token_balance(self, address: Address) -> Amount:
        return self.contributions.token_balance(address)

    @view
    def wei_contribution(self, address: Address) -> Amount:
        return self.contributions.wei_contribution(address)

    @view
    def get_sale_info(self) -> CrowdsaleSaleInfo:
        """Get general sale information."""
        now = self.syscall.get_current_timestamp()
        return CrowdsaleSaleInfo(
            token_uid=self.token_uid.hex(),
            wallet=self.wallet.hex(),
            owner=self.owner.hex(),
            rate=self.rate,
            cap=self.cap_gate.cap,
            minimum_contribution=self.minimum_contribution,
            wei_raised=self.cap_gate.wei_raised,
            opening_time=self.time_gate.opening_time,
            closing_time=self.time_gate.current_closing_time,
            contributors=self.contributions.contributors_length(),
            started=self._started(now),
            ended=self._ended(now),
            is_open=self._is_open(now),
            cap_reached=self.cap_gate.cap_reached(),
        )
