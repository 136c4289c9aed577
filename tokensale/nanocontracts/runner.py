# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import hashlib
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional

from structlog import get_logger

from tokensale.conf.get_settings import get_global_settings
from tokensale.conf.settings import TokenSaleSettings
from tokensale.nanocontracts.blueprint import Blueprint
from tokensale.nanocontracts.context import Context
from tokensale.nanocontracts.exception import (
    BlueprintDoesNotExist,
    NanoContractAlreadyExists,
    NanoContractDoesNotExist,
    NCFail,
    NCInvalidAction,
    NCMethodNotFound,
    TokenDoesNotExist,
)
from tokensale.nanocontracts.storage import NCContractStorage
from tokensale.nanocontracts.token import NCToken
from tokensale.nanocontracts.types import (
    NC_INITIALIZE_METHOD,
    Address,
    Amount,
    BlueprintId,
    CallerId,
    ContractId,
    NCDepositAction,
    Timestamp,
    TokenUid,
    allows_deposit,
    is_exported,
    is_public,
    is_view,
)
from tokensale.wallet.base_wallet import Wallet

if TYPE_CHECKING:
    from twisted.internet.interfaces import IReactorTime

logger = get_logger()


@dataclass(frozen=True, slots=True)
class NCEvent:
    """Event emitted by a contract during a successful call."""
    contract_id: ContractId
    name: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class _Snapshot:
    storages: dict[ContractId, dict[str, Any]]
    tokens: dict[TokenUid, dict[str, Any]]
    events_len: int


class NCSyscall:
    """Capabilities a running contract has over the world outside its own fields."""

    def __init__(self, runner: 'Runner', contract_id: ContractId) -> None:
        self.__runner = runner
        self.__contract_id = contract_id

    def get_current_timestamp(self) -> Timestamp:
        """Timestamp of the running call, read once when the call started."""
        return self.__runner._current_timestamp()

    def get_native_token_uid(self) -> TokenUid:
        return self.__runner.native_token_uid

    def get_balance(self, token_uid: TokenUid) -> Amount:
        return self.__runner.get_token(token_uid).balance_of(self.__contract_id)

    def can_mint(self, token_uid: TokenUid) -> bool:
        return self.__runner.get_token(token_uid).can_mint(self.__contract_id)

    def mint_tokens(self, token_uid: TokenUid, to: CallerId, amount: int) -> None:
        """Mint `amount` of `token_uid` to `to`. The contract must hold mint authority."""
        token = self.__runner.get_token(token_uid)
        if not token.can_mint(self.__contract_id):
            raise NCInvalidAction(f'contract cannot mint token {token_uid.hex()}')
        token.mint(to, amount)

    def transfer_tokens(self, token_uid: TokenUid, to: CallerId, amount: int) -> None:
        """Transfer `amount` of `token_uid` held by the contract to `to`."""
        self.__runner.get_token(token_uid).transfer(self.__contract_id, to, amount)

    def forward_funds(self, wallet: Address, amount: int) -> None:
        """Send native value held by the contract to `wallet` and notify it."""
        self.__runner._forward_funds(self.__contract_id, wallet, Amount(amount))

    def emit_event(self, name: str, **data: Any) -> None:
        self.__runner._emit_event(NCEvent(contract_id=self.__contract_id, name=name, data=data))


class Runner:
    """Executes contract calls one at a time.

    Every public call runs under a single re-entrant lock and is all or nothing: when it
    raises, contract fields, token ledgers and emitted events go back to what they were
    before the call, and the exception reaches the caller unchanged.
    """

    def __init__(
        self,
        *,
        settings: Optional[TokenSaleSettings] = None,
        clock: Optional['IReactorTime'] = None,
    ) -> None:
        self.log = logger.new()
        self._settings = settings or get_global_settings()
        if clock is None:
            from twisted.internet import reactor
            clock = reactor  # type: ignore[assignment]
        self.clock = clock
        self.native_token_uid = TokenUid(self._settings.NATIVE_TOKEN_UID)

        self._lock = threading.RLock()
        self._blueprints: dict[BlueprintId, type[Blueprint]] = {}
        self._storages: dict[ContractId, NCContractStorage] = {}
        self._contracts: dict[ContractId, Blueprint] = {}
        self._tokens: dict[TokenUid, NCToken] = {}
        self._wallets: dict[Address, Wallet] = {}
        self._timestamps: list[Timestamp] = []
        self.events: list[NCEvent] = []

        self.create_token(
            self._settings.NATIVE_TOKEN_NAME,
            self._settings.NATIVE_TOKEN_SYMBOL,
            token_uid=self.native_token_uid,
        )

    @property
    def settings(self) -> TokenSaleSettings:
        return self._settings

    # Registration

    def register_blueprint_class(self, blueprint_class: type[Blueprint]) -> BlueprintId:
        if not is_exported(blueprint_class):
            raise BlueprintDoesNotExist(f'{blueprint_class.__name__} is not an exported blueprint')
        qualname = f'{blueprint_class.__module__}.{blueprint_class.__qualname__}'
        blueprint_id = BlueprintId(hashlib.sha256(qualname.encode('utf-8')).digest())
        self._blueprints[blueprint_id] = blueprint_class
        self.log.debug('blueprint registered', blueprint=blueprint_class.__name__, blueprint_id=blueprint_id.hex())
        return blueprint_id

    def get_blueprint_class(self, blueprint_id: BlueprintId) -> type[Blueprint]:
        try:
            return self._blueprints[blueprint_id]
        except KeyError:
            raise BlueprintDoesNotExist(blueprint_id.hex()) from None

    def create_token(self, name: str, symbol: str, *, token_uid: Optional[TokenUid] = None) -> TokenUid:
        if token_uid is None:
            token_uid = TokenUid(hashlib.sha256(f'{name}:{symbol}:{len(self._tokens)}'.encode('utf-8')).digest())
        if token_uid in self._tokens:
            raise NCInvalidAction(f'token {token_uid.hex()} already exists')
        self._tokens[token_uid] = NCToken(token_uid, name, symbol)
        self.log.debug('token created', symbol=symbol, token_uid=token_uid.hex())
        return token_uid

    def get_token(self, token_uid: TokenUid) -> NCToken:
        try:
            return self._tokens[token_uid]
        except KeyError:
            raise TokenDoesNotExist(f'token {token_uid.hex()} does not exist') from None

    def get_all_tokens(self) -> list[NCToken]:
        return list(self._tokens.values())

    def register_wallet(self, wallet: Wallet) -> None:
        self._wallets[wallet.address] = wallet

    # Contracts

    def has_contract(self, contract_id: ContractId) -> bool:
        return contract_id in self._storages

    def get_storage(self, contract_id: ContractId) -> NCContractStorage:
        try:
            return self._storages[contract_id]
        except KeyError:
            raise NanoContractDoesNotExist(contract_id.hex()) from None

    def get_readonly_contract(self, contract_id: ContractId) -> Blueprint:
        """Return the contract instance. Meant for inspection in tests, do not mutate it."""
        self.get_storage(contract_id)
        return self._contracts[contract_id]

    def create_contract(
        self,
        contract_id: ContractId,
        blueprint_id: BlueprintId,
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        with self._lock:
            if contract_id in self._storages:
                raise NanoContractAlreadyExists(contract_id.hex())
            blueprint_class = self.get_blueprint_class(blueprint_id)
            storage = NCContractStorage(contract_id, blueprint_id)
            self._storages[contract_id] = storage
            self._contracts[contract_id] = blueprint_class(storage, NCSyscall(self, contract_id))
            try:
                self._execute_public(contract_id, NC_INITIALIZE_METHOD, ctx, args, kwargs)
            except BaseException:
                del self._storages[contract_id]
                del self._contracts[contract_id]
                raise
            self.log.info('contract created', contract_id=contract_id.hex(), blueprint=blueprint_class.__name__)

    def call_public_method(self, contract_id: ContractId, method_name: str, ctx: Context,
                           *args: Any, **kwargs: Any) -> Any:
        if method_name == NC_INITIALIZE_METHOD:
            raise NCMethodNotFound('`initialize` can only be called when creating the contract')
        with self._lock:
            self.get_storage(contract_id)
            return self._execute_public(contract_id, method_name, ctx, args, kwargs)

    def call_view_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            storage = self.get_storage(contract_id)
            contract = self._contracts[contract_id]
            method = getattr(type(contract), method_name, None)
            if not is_view(method):
                raise NCMethodNotFound(f'{type(contract).__name__}.{method_name} is not a view method')
            with storage.read_only(), self._frozen_timestamp(Timestamp(int(self.clock.seconds()))):
                return getattr(contract, method_name)(*args, **kwargs)

    def _execute_public(self, contract_id: ContractId, method_name: str, ctx: Context,
                        args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        contract = self._contracts[contract_id]
        method = getattr(type(contract), method_name, None)
        if not is_public(method):
            raise NCMethodNotFound(f'{type(contract).__name__}.{method_name} is not a public method')
        if ctx.actions and not allows_deposit(method):
            raise NCInvalidAction(f'{method_name} does not accept deposits')

        log = self.log.new(contract_id=contract_id.hex(), method=method_name, caller_id=ctx.caller_id.hex())
        snapshot = self._take_snapshot()
        try:
            with self._frozen_timestamp(ctx.block.timestamp):
                for action in ctx.actions_list:
                    if not isinstance(action, NCDepositAction):
                        raise NCInvalidAction(f'unsupported action: {action!r}')
                    self.get_token(action.token_uid).transfer(ctx.caller_id, contract_id, action.amount)
                ret = getattr(contract, method_name)(ctx, *args, **kwargs)
        except BaseException as e:
            self._restore_snapshot(snapshot)
            log.debug('call reverted', error=repr(e))
            raise
        log.debug('call executed')
        return ret

    # Syscall support

    @contextmanager
    def _frozen_timestamp(self, timestamp: Timestamp) -> Iterator[None]:
        self._timestamps.append(timestamp)
        try:
            yield
        finally:
            self._timestamps.pop()

    def _current_timestamp(self) -> Timestamp:
        if not self._timestamps:
            raise NCFail('no call is running')
        return self._timestamps[-1]

    def _forward_funds(self, sender: ContractId, wallet_address: Address, amount: Amount) -> None:
        self.get_token(self.native_token_uid).transfer(sender, wallet_address, amount)
        wallet = self._wallets.get(wallet_address)
        if wallet is not None:
            wallet.on_funds_received(self, sender, amount)

    def _emit_event(self, event: NCEvent) -> None:
        self.events.append(event)
        self.log.info('event emitted', contract_id=event.contract_id.hex(), event=event.name)

    def _take_snapshot(self) -> _Snapshot:
        return _Snapshot(
            storages={contract_id: storage.snapshot() for contract_id, storage in self._storages.items()},
            tokens={token_uid: token.get_state() for token_uid, token in self._tokens.items()},
            events_len=len(self.events),
        )

    def _restore_snapshot(self, snapshot: _Snapshot) -> None:
        for contract_id, fields in snapshot.storages.items():
            self._storages[contract_id].restore(fields)
        for token_uid, state in snapshot.tokens.items():
            self._tokens[token_uid].set_state(state)
        del self.events[snapshot.events_len:]
