import random
from typing import Optional

from tokensale.nanocontracts.blueprints.crowdsale import (
    CrowdsaleErrors,
    CrowdsaleSaleInfo,
    TimedCappedCrowdsale,
)
from tokensale.nanocontracts.context import Context
from tokensale.nanocontracts.exception import NCFail, NCInsufficientFunds, NCInvalidAction
from tokensale.nanocontracts.runner import Runner
from tokensale.nanocontracts.types import Address, Amount, CallerId, NCDepositAction, Timestamp
from tokensale.sale import (
    BelowMinimumContribution,
    CapExceeded,
    InvalidTimeRange,
    SaleNotOpen,
    Unauthorized,
)
from tokensale.util import not_none
from tokensale.wallet import AccountWallet
from tests.nanocontracts.blueprints.unittest import BlueprintTestCase

DAY = 86400


class FailingWallet(AccountWallet):
    """Wallet that refuses every payment."""

    def on_funds_received(self, runner: Runner, sender: CallerId, amount: Amount) -> None:
        raise NCFail("Wallet rejected the payment")


class ReentrantWallet(AccountWallet):
    """Wallet that buys tokens again from inside the first payment it receives."""

    def __init__(self, address: Address, beneficiary: Address, amount: int) -> None:
        super().__init__(address)
        self.beneficiary = beneficiary
        self.amount = amount
        self.reentered = False
        self.observed_wei_raised: Optional[int] = None
        self.observed_contribution: Optional[int] = None

    def on_funds_received(self, runner: Runner, sender: CallerId, amount: Amount) -> None:
        super().on_funds_received(runner, sender, amount)
        if self.reentered:
            return
        self.reentered = True
        self.observed_wei_raised = runner.call_view_method(sender, "get_wei_raised")
        ctx = Context(
            actions=[NCDepositAction(token_uid=runner.native_token_uid, amount=self.amount)],
            caller_id=self.address,
            timestamp=int(runner.clock.seconds()),
        )
        runner.call_public_method(sender, "buy_tokens", ctx, self.beneficiary)
        self.observed_contribution = runner.call_view_method(sender, "wei_contribution", self.beneficiary)


class CrowdsaleTestCase(BlueprintTestCase):
    """Test suite for the TimedCappedCrowdsale blueprint contract."""

    def setUp(self):
        super().setUp()

        # Set up contract
        self.contract_id = self.gen_random_contract_id()
        self.blueprint_id = self._register_blueprint_class(TimedCappedCrowdsale)

        # Sale token, mintable by the sale
        self.token_uid = self.create_token()
        self.sale_token = self.runner.get_token(self.token_uid)
        self.sale_token.grant_mint_authority(self.contract_id)

        # Accounts
        self.owner_address = self.gen_random_address()
        self.wallet_address = self.gen_random_address()
        self.investor = self.gen_random_address()
        self.purchaser = self.gen_random_address()
        self.third_party = self.gen_random_address()
        self.wallet = AccountWallet(self.wallet_address)
        self.runner.register_wallet(self.wallet)

        # Default test parameters
        self.rate = 500  # 500 tokens per value unit
        self.minimum_contribution = 10_00
        self.cap = 5000_00
        self.opening_time = self.now() + 3600
        self.closing_time = self.opening_time + 30 * DAY
        self.after_closing_time = self.closing_time + 1

    def _initialize_sale(self, params: dict | None = None, contract_id: Optional[bytes] = None) -> None:
        """Initialize sale with default or custom parameters."""
        if params is None:
            params = {}

        init_ctx = self.create_context(caller_id=self.owner_address)
        self.runner.create_contract(
            contract_id or self.contract_id,
            self.blueprint_id,
            init_ctx,
            params.get("token_uid", self.token_uid),
            params.get("wallet", self.wallet_address),
            params.get("rate", self.rate),
            params.get("cap", self.cap),
            params.get("minimum_contribution", self.minimum_contribution),
            params.get("opening_time", self.opening_time),
            params.get("closing_time", self.closing_time),
        )

    def _advance_to(self, timestamp: int) -> None:
        self.clock.advance(timestamp - self.now())

    def _purchase(self, amount: int, investor: Optional[Address] = None) -> None:
        ctx = self.create_deposit_context(amount, caller_id=investor or self.investor)
        self.runner.call_public_method(self.contract_id, "purchase", ctx)

    def _buy_tokens(self, beneficiary: Address, amount: int, purchaser: Optional[Address] = None) -> None:
        ctx = self.create_deposit_context(amount, caller_id=purchaser or self.purchaser)
        self.runner.call_public_method(self.contract_id, "buy_tokens", ctx, beneficiary)

    def _view(self, method_name: str, *args):
        return self.runner.call_view_method(self.contract_id, method_name, *args)

    def _check_accounting(self) -> None:
        """Verify the ledger, the cap counter and the token balances agree."""
        contributors = [
            self._view("contributor_address", index)
            for index in range(self._view("contributors_length"))
        ]
        self.assertEqual(len(contributors), len(set(contributors)))

        wei_raised = self._view("get_wei_raised")
        self.assertEqual(sum(self._view("wei_contribution", c) for c in contributors), wei_raised)
        self.assertEqual(self.native_balance(self.wallet_address), wei_raised)
        self.assertEqual(self.native_balance(self.contract_id), 0)
        for contributor in contributors:
            self.assertEqual(self.sale_token.balance_of(contributor), self._view("token_balance", contributor))
        self.assertEqual(self.sale_token.total_supply, wei_raised * self.rate)

    def test_initialize(self):
        """Test contract initialization with valid parameters."""
        self._initialize_sale()

        contract = self.get_readonly_contract(self.contract_id)
        assert isinstance(contract, TimedCappedCrowdsale)
        self.assertEqual(contract.token_uid, self.token_uid)
        self.assertEqual(contract.wallet, self.wallet_address)
        self.assertEqual(contract.rate, self.rate)
        self.assertEqual(contract.owner, self.owner_address)

        self.assertEqual(self._view("get_opening_time"), self.opening_time)
        self.assertEqual(self._view("get_closing_time"), self.closing_time)
        self.assertEqual(self._view("get_rate"), self.rate)
        self.assertEqual(self._view("get_cap"), self.cap)
        self.assertEqual(self._view("get_minimum_contribution"), self.minimum_contribution)
        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("get_owner"), self.owner_address)
        self.assertEqual(self._view("contributors_length"), 0)

    def test_initialize_invalid_params(self):
        """Test initialization with invalid parameters."""
        with self.assertRaises(NCFail):
            self._initialize_sale({"rate": 0})

        with self.assertRaises(NCFail):
            self._initialize_sale({"cap": 0})

        with self.assertRaises(NCFail):
            self._initialize_sale({"minimum_contribution": 0})

        with self.assertRaises(NCFail):
            self._initialize_sale({"wallet": b""})

        with self.assertRaises(InvalidTimeRange):
            self._initialize_sale({"opening_time": self.closing_time, "closing_time": self.opening_time})

        with self.assertRaises(InvalidTimeRange):
            self._initialize_sale({"closing_time": self.opening_time})

        with self.assertRaises(InvalidTimeRange):
            self._initialize_sale({"opening_time": self.now() - 1})

        # None of the failed attempts left a contract behind
        self.assertFalse(self.runner.has_contract(self.contract_id))

        self._initialize_sale()
        self.assertTrue(self.runner.has_contract(self.contract_id))

    def test_status_before_start(self):
        """Before the opening time nothing can be bought."""
        self._initialize_sale()

        self.assertFalse(self._view("started"))
        self.assertFalse(self._view("ended"))
        self.assertFalse(self._view("cap_reached"))
        self.assertFalse(self._view("is_open"))

        with self.assertRaises(SaleNotOpen):
            self._purchase(self.minimum_contribution)
        with self.assertRaises(SaleNotOpen):
            self._buy_tokens(self.investor, self.minimum_contribution)

        # Deposits were reverted
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution)
        self.assertEqual(self.native_balance(self.purchaser), self.minimum_contribution)
        self.assertEqual(self._view("get_wei_raised"), 0)

    def test_status_after_start(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)

        self.assertTrue(self._view("started"))
        self.assertFalse(self._view("ended"))
        self.assertFalse(self._view("cap_reached"))
        self.assertTrue(self._view("is_open"))

    def test_open_until_closing_time_inclusive(self):
        self._initialize_sale()

        self._advance_to(self.closing_time)
        self.assertTrue(self._view("is_open"))
        self._purchase(self.minimum_contribution)

        self._advance_to(self.after_closing_time)
        self.assertFalse(self._view("is_open"))
        self.assertTrue(self._view("ended"))

    def test_status_cap_reached(self):
        """Reaching the cap ends the sale while still inside the time window."""
        self._initialize_sale()
        self._advance_to(self.opening_time)

        self._purchase(self.cap)

        self.assertTrue(self._view("cap_reached"))
        self.assertTrue(self._view("ended"))
        self.assertFalse(self._view("is_open"))
        self.assertLess(self.now(), self._view("get_closing_time"))

        with self.assertRaises(SaleNotOpen):
            self._purchase(self.minimum_contribution, self.gen_random_address())
        self._check_accounting()

    def test_status_after_end(self):
        self._initialize_sale()
        self._advance_to(self.after_closing_time)

        self.assertTrue(self._view("started"))
        self.assertTrue(self._view("ended"))
        self.assertFalse(self._view("is_open"))
        self.assertFalse(self._view("cap_reached"))

        with self.assertRaises(SaleNotOpen):
            self._purchase(self.minimum_contribution)

    def test_high_level_purchase(self):
        """Direct purchases accumulate on the sender."""
        self._initialize_sale()
        self._advance_to(self.opening_time)

        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self._view("token_balance", self.investor), 0)
        self.assertEqual(self._view("wei_contribution", self.investor), 0)

        value = self.minimum_contribution
        self._purchase(value)

        self.assertEqual(self._view("token_balance", self.investor), value * self.rate)
        self.assertEqual(self._view("wei_contribution", self.investor), value)
        self.assertEqual(self._view("contributors_length"), 1)

        self._purchase(value)

        self.assertEqual(self._view("token_balance", self.investor), 2 * value * self.rate)
        self.assertEqual(self._view("wei_contribution", self.investor), 2 * value)
        self.assertEqual(self._view("contributors_length"), 1)
        self.assertEqual(self._view("contributor_address", 0), self.investor)

        # Tokens were minted to the investor and value forwarded to the wallet
        self.assertEqual(self.sale_token.balance_of(self.investor), 2 * value * self.rate)
        self.assertEqual(self.wallet.total_received, 2 * value)
        self.assertEqual(self.wallet.last_sender, self.contract_id)
        self._check_accounting()

    def test_low_level_purchase(self):
        """Sponsored purchases credit the beneficiary, never the purchaser."""
        self._initialize_sale()
        self._advance_to(self.opening_time)

        value = self.minimum_contribution
        self._buy_tokens(self.investor, value)
        self._buy_tokens(self.investor, value)

        self.assertEqual(self._view("token_balance", self.investor), 2 * value * self.rate)
        self.assertEqual(self._view("wei_contribution", self.investor), 2 * value)
        self.assertEqual(self._view("contributors_length"), 1)

        self.assertEqual(self._view("wei_contribution", self.purchaser), 0)
        self.assertEqual(self._view("token_balance", self.purchaser), 0)
        self.assertEqual(self.sale_token.balance_of(self.purchaser), 0)
        self._check_accounting()

    def test_purchase_event(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)

        self._buy_tokens(self.investor, self.minimum_contribution)

        event = self.runner.events[-1]
        self.assertEqual(event.name, "TokensPurchased")
        self.assertEqual(event.contract_id, self.contract_id)
        self.assertEqual(event.data, {
            "purchaser": self.purchaser,
            "beneficiary": self.investor,
            "value": self.minimum_contribution,
            "amount": self.minimum_contribution * self.rate,
        })

    def test_below_minimum_contribution(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)
        events_before = len(self.runner.events)

        with self.assertRaises(BelowMinimumContribution):
            self._purchase(self.minimum_contribution - 1)
        with self.assertRaises(BelowMinimumContribution):
            self._buy_tokens(self.investor, self.minimum_contribution - 1)

        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self._view("wei_contribution", self.investor), 0)
        self.assertEqual(self._view("token_balance", self.investor), 0)
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution - 1)
        self.assertEqual(self.native_balance(self.purchaser), self.minimum_contribution - 1)
        self.assertEqual(len(self.runner.events), events_before)

    def test_contributors_are_listed_once_in_order(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)

        investors = [self.gen_random_address() for _ in range(3)]
        for investor in investors:
            self._purchase(self.minimum_contribution, investor)
        self._purchase(self.minimum_contribution, investors[0])
        self._buy_tokens(investors[1], self.minimum_contribution)

        self.assertEqual(self._view("contributors_length"), 3)
        self.assertEqual([self._view("contributor_address", i) for i in range(3)], investors)
        with self.assertRaises(NCFail):
            self._view("contributor_address", 3)
        self._check_accounting()

    def test_purchase_over_cap_is_rejected(self):
        """A purchase that does not fit under the cap is rejected in full."""
        self._initialize_sale()
        self._advance_to(self.opening_time)

        self._purchase(self.cap - self.minimum_contribution)

        with self.assertRaises(CapExceeded):
            self._purchase(2 * self.minimum_contribution, self.third_party)

        self.assertEqual(self._view("get_wei_raised"), self.cap - self.minimum_contribution)
        self.assertEqual(self._view("contributors_length"), 1)
        self.assertEqual(self._view("wei_contribution", self.third_party), 0)
        self.assertEqual(self.native_balance(self.third_party), 2 * self.minimum_contribution)
        self.assertFalse(self._view("cap_reached"))

        # The exact remainder still fits
        self._purchase(self.minimum_contribution, self.third_party)
        self.assertTrue(self._view("cap_reached"))
        self._check_accounting()

    def test_purchase_without_deposit_is_below_minimum(self):
        """A call carrying no value is a purchase of zero."""
        self._initialize_sale()
        self._advance_to(self.opening_time)
        events_before = len(self.runner.events)

        with self.assertRaises(BelowMinimumContribution):
            self.runner.call_public_method(
                self.contract_id, "purchase", self.create_context(caller_id=self.investor)
            )
        with self.assertRaises(BelowMinimumContribution):
            self.runner.call_public_method(
                self.contract_id, "buy_tokens", self.create_context(caller_id=self.purchaser), self.investor
            )

        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self._view("wei_contribution", self.investor), 0)
        self.assertEqual(self._view("token_balance", self.investor), 0)
        self.assertEqual(self.sale_token.total_supply, 0)
        self.assertEqual(len(self.runner.events), events_before)

    def test_purchase_requires_native_deposit(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)

        other_token = self.create_token("Other", "OTH")
        self.runner.get_token(other_token).mint(self.investor, self.minimum_contribution)
        ctx = self.create_context(
            actions=[NCDepositAction(token_uid=other_token, amount=self.minimum_contribution)],
            caller_id=self.investor,
        )
        with self.assertRaises(NCInvalidAction):
            self.runner.call_public_method(self.contract_id, "purchase", ctx)
        self.assertEqual(self.runner.get_token(other_token).balance_of(self.investor), self.minimum_contribution)

        # A native deposit next to another one is not a purchase either
        self.fund(self.investor, self.minimum_contribution)
        ctx = self.create_context(
            actions=[
                NCDepositAction(token_uid=self.native_token_uid, amount=self.minimum_contribution),
                NCDepositAction(token_uid=other_token, amount=self.minimum_contribution),
            ],
            caller_id=self.investor,
        )
        with self.assertRaises(NCInvalidAction):
            self.runner.call_public_method(self.contract_id, "purchase", ctx)
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution)
        self.assertEqual(self._view("get_wei_raised"), 0)

    def test_purchase_without_funds_fails(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)

        ctx = self.create_deposit_context(self.minimum_contribution, caller_id=self.investor, fund=False)
        with self.assertRaises(NCInsufficientFunds):
            self.runner.call_public_method(self.contract_id, "purchase", ctx)
        self.assertEqual(self._view("get_wei_raised"), 0)

    def test_extend_closing_time_by_third_party_fails(self):
        """Only the owner can extend, whatever the phase."""
        self._initialize_sale()
        new_closing_time = self.closing_time + DAY

        # before start
        self.assertFalse(self._view("is_open"))
        with self.assertRaises(SaleNotOpen):
            self._purchase(self.minimum_contribution)
        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.third_party),
                new_closing_time,
            )

        # after start
        self._advance_to(self.opening_time)
        self.assertTrue(self._view("is_open"))
        self._purchase(self.minimum_contribution)
        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.third_party),
                new_closing_time,
            )

        # after end
        self._advance_to(self.after_closing_time)
        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.third_party),
                new_closing_time,
            )

        self.assertEqual(self._view("get_closing_time"), self.closing_time)

    def test_extend_closing_time_by_owner(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)
        new_closing_time = Timestamp(self.closing_time + DAY)

        self.runner.call_public_method(
            self.contract_id,
            "extend_closing_time",
            self.create_context(caller_id=self.owner_address),
            new_closing_time,
        )

        self.assertEqual(self._view("get_closing_time"), new_closing_time)
        event = self.runner.events[-1]
        self.assertEqual(event.name, "TimedCrowdsaleExtended")
        self.assertEqual(event.data, {
            "prev_closing_time": self.closing_time,
            "new_closing_time": new_closing_time,
        })

        # Still open after the original closing time
        self._advance_to(self.after_closing_time)
        self.assertTrue(self._view("is_open"))
        self._purchase(self.minimum_contribution)

        self._advance_to(new_closing_time + 1)
        self.assertTrue(self._view("ended"))

    def test_extend_closing_time_must_move_forward(self):
        self._initialize_sale()

        for new_closing_time in (self.closing_time, self.closing_time - 1, self.opening_time):
            with self.assertRaises(InvalidTimeRange):
                self.runner.call_public_method(
                    self.contract_id,
                    "extend_closing_time",
                    self.create_context(caller_id=self.owner_address),
                    new_closing_time,
                )
        self.assertEqual(self._view("get_closing_time"), self.closing_time)

    def test_extend_closing_time_after_end_fails(self):
        self._initialize_sale()
        self._advance_to(self.after_closing_time)

        with self.assertRaises(SaleNotOpen):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.owner_address),
                self.closing_time + DAY,
            )
        self.assertEqual(self._view("get_closing_time"), self.closing_time)

    def test_extend_closing_time_after_cap_reached_fails(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)
        self._purchase(self.cap)

        with self.assertRaises(SaleNotOpen):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.owner_address),
                self.closing_time + DAY,
            )

    def test_recover_tokens(self):
        """The owner can take back tokens sent to the sale by mistake."""
        self._initialize_sale()
        stray_token_uid = self.create_token("Stray", "STR")
        stray_token = self.runner.get_token(stray_token_uid)
        stray_token.mint(self.contract_id, 1000)

        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "recover_tokens",
                self.create_context(caller_id=self.third_party),
                stray_token_uid,
                Amount(1000),
            )
        self.assertEqual(stray_token.balance_of(self.contract_id), 1000)

        self.runner.call_public_method(
            self.contract_id,
            "recover_tokens",
            self.create_context(caller_id=self.owner_address),
            stray_token_uid,
            Amount(400),
        )
        self.assertEqual(stray_token.balance_of(self.owner_address), 400)
        self.assertEqual(stray_token.balance_of(self.contract_id), 600)

        with self.assertRaises(NCInsufficientFunds) as cm:
            self.runner.call_public_method(
                self.contract_id,
                "recover_tokens",
                self.create_context(caller_id=self.owner_address),
                stray_token_uid,
                Amount(601),
            )
        self.assertEqual(str(cm.exception), CrowdsaleErrors.INSUFFICIENT_BALANCE)
        self.assertEqual(stray_token.balance_of(self.contract_id), 600)

    def test_transfer_ownership(self):
        self._initialize_sale()
        new_owner = self.gen_random_address()

        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "transfer_ownership",
                self.create_context(caller_id=self.third_party),
                new_owner,
            )

        self.runner.call_public_method(
            self.contract_id,
            "transfer_ownership",
            self.create_context(caller_id=self.owner_address),
            new_owner,
        )
        self.assertEqual(self._view("get_owner"), new_owner)
        self.assertEqual(self.runner.events[-1].name, "OwnershipTransferred")

        with self.assertRaises(Unauthorized):
            self.runner.call_public_method(
                self.contract_id,
                "extend_closing_time",
                self.create_context(caller_id=self.owner_address),
                self.closing_time + DAY,
            )

        self.runner.call_public_method(
            self.contract_id,
            "extend_closing_time",
            self.create_context(caller_id=new_owner),
            self.closing_time + DAY,
        )
        self.assertEqual(self._view("get_closing_time"), self.closing_time + DAY)

    def test_failed_forward_reverts_purchase(self):
        """A wallet refusing the funds undoes the whole purchase."""
        failing_wallet = FailingWallet(self.gen_random_address())
        self.runner.register_wallet(failing_wallet)
        self._initialize_sale({"wallet": failing_wallet.address})
        self._advance_to(self.opening_time)
        events_before = len(self.runner.events)

        with self.assertRaises(NCFail):
            self._purchase(self.minimum_contribution)

        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self._view("wei_contribution", self.investor), 0)
        self.assertEqual(self._view("token_balance", self.investor), 0)
        self.assertEqual(self.sale_token.total_supply, 0)
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution)
        self.assertEqual(self.native_balance(failing_wallet.address), 0)
        self.assertEqual(len(self.runner.events), events_before)

    def test_failed_mint_reverts_purchase(self):
        self.sale_token.revoke_mint_authority(self.contract_id)
        self._initialize_sale()
        self._advance_to(self.opening_time)

        with self.assertRaises(NCInvalidAction):
            self._purchase(self.minimum_contribution)

        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution)
        self.assertEqual(self.wallet.total_received, 0)

    def test_reentrant_purchase_sees_committed_accounting(self):
        """A purchase made from inside the wallet callback observes the first purchase."""
        beneficiary = self.gen_random_address()
        wallet = ReentrantWallet(self.gen_random_address(), beneficiary, self.minimum_contribution)
        self.runner.register_wallet(wallet)
        self._initialize_sale({"wallet": wallet.address})
        self._advance_to(self.opening_time)

        self._purchase(2 * self.minimum_contribution)

        self.assertTrue(wallet.reentered)
        self.assertEqual(wallet.observed_wei_raised, 2 * self.minimum_contribution)
        self.assertEqual(wallet.observed_contribution, self.minimum_contribution)

        self.assertEqual(self._view("get_wei_raised"), 3 * self.minimum_contribution)
        self.assertEqual(self._view("contributors_length"), 2)
        self.assertEqual(self._view("wei_contribution", self.investor), 2 * self.minimum_contribution)
        self.assertEqual(self._view("wei_contribution", beneficiary), self.minimum_contribution)
        self.assertEqual(wallet.total_received, 3 * self.minimum_contribution)
        self.assertEqual(self.sale_token.balance_of(beneficiary), self.minimum_contribution * self.rate)

    def test_reentrant_purchase_over_cap_reverts_everything(self):
        beneficiary = self.gen_random_address()
        wallet = ReentrantWallet(self.gen_random_address(), beneficiary, self.minimum_contribution)
        self.runner.register_wallet(wallet)
        self._initialize_sale({"wallet": wallet.address, "cap": 2 * self.minimum_contribution - 1})
        self._advance_to(self.opening_time)

        with self.assertRaises(CapExceeded):
            self._purchase(self.minimum_contribution)

        self.assertEqual(self._view("get_wei_raised"), 0)
        self.assertEqual(self._view("contributors_length"), 0)
        self.assertEqual(self.native_balance(self.investor), self.minimum_contribution)
        self.assertEqual(self.native_balance(wallet.address), 0)
        self.assertEqual(self.sale_token.total_supply, 0)

    def test_get_sale_info(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)
        self._purchase(self.minimum_contribution)

        info = self._view("get_sale_info")
        self.assertIsInstance(info, CrowdsaleSaleInfo)
        self.assertEqual(info.token_uid, self.token_uid.hex())
        self.assertEqual(info.wallet, self.wallet_address.hex())
        self.assertEqual(info.owner, self.owner_address.hex())
        self.assertEqual(info.rate, self.rate)
        self.assertEqual(info.cap, self.cap)
        self.assertEqual(info.wei_raised, self.minimum_contribution)
        self.assertEqual(info.contributors, 1)
        self.assertTrue(info.started)
        self.assertFalse(info.ended)
        self.assertTrue(info.is_open)
        self.assertFalse(info.cap_reached)

    def test_sales_are_independent(self):
        other_contract_id = self.gen_random_contract_id()
        self.sale_token.grant_mint_authority(other_contract_id)
        self._initialize_sale()
        self._initialize_sale(contract_id=other_contract_id)
        self._advance_to(self.opening_time)

        self._purchase(self.minimum_contribution)

        self.assertEqual(self._view("contributors_length"), 1)
        self.assertEqual(self.runner.call_view_method(other_contract_id, "contributors_length"), 0)
        self.assertEqual(self.runner.call_view_method(other_contract_id, "get_wei_raised"), 0)
        self.assertEqual(
            self.runner.call_view_method(other_contract_id, "wei_contribution", self.investor), 0
        )

    def test_rate_scenario(self):
        """rate=500 and two direct purchases of the minimum."""
        self._initialize_sale()
        self._advance_to(self.opening_time)
        value = self.minimum_contribution

        self._purchase(value)
        self._purchase(value)

        self.assertEqual(self._view("token_balance", self.investor), 2 * value * 500)
        self.assertEqual(self._view("wei_contribution", self.investor), 2 * value)
        self.assertEqual(self._view("contributors_length"), 1)

    def test_random_purchases_keep_ledger_consistent(self):
        self._initialize_sale()
        self._advance_to(self.opening_time)
        rng = random.Random(1337)
        investors = [self.gen_random_address() for _ in range(5)]

        while not self._view("cap_reached"):
            investor = rng.choice(investors)
            amount = rng.randint(self.minimum_contribution, 300_00)
            remaining = self.cap - self._view("get_wei_raised")
            if remaining < self.minimum_contribution:
                break
            try:
                if rng.random() < 0.5:
                    self._purchase(amount, investor)
                else:
                    self._buy_tokens(investor, amount, self.gen_random_address())
            except CapExceeded:
                self.assertGreater(amount, remaining)
                self._purchase(remaining, investor)
            self._check_accounting()

        self.assertLessEqual(self._view("get_wei_raised"), self.cap)
        self.assertLessEqual(self._view("contributors_length"), len(investors))
        contract = self.get_readonly_contract(self.contract_id)
        assert isinstance(contract, TimedCappedCrowdsale)
        self.assertEqual(not_none(contract.contributions).total_wei_contributed(), self._view("get_wei_raised"))
