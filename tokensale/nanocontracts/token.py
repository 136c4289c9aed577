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

from typing import Any

from tokensale.nanocontracts.exception import NCFail, NCInsufficientFunds
from tokensale.nanocontracts.types import Amount, CallerId, TokenUid


def _check_amount(amount: int) -> None:
    if type(amount) is not int or amount < 0:
        raise NCFail(f'invalid amount: {amount!r}')


class NCToken:
    """Fungible token ledger shared by every contract of a runner."""

    def __init__(self, token_uid: TokenUid, name: str, symbol: str) -> None:
        self.token_uid = token_uid
        self.name = name
        self.symbol = symbol
        self.total_supply = Amount(0)
        self._balances: dict[CallerId, Amount] = {}
        self._mint_authorities: set[CallerId] = set()

    def balance_of(self, holder: CallerId) -> Amount:
        return self._balances.get(holder, Amount(0))

    def grant_mint_authority(self, holder: CallerId) -> None:
        self._mint_authorities.add(holder)

    def revoke_mint_authority(self, holder: CallerId) -> None:
        self._mint_authorities.discard(holder)

    def can_mint(self, holder: CallerId) -> bool:
        return holder in self._mint_authorities

    def mint(self, to: CallerId, amount: int) -> None:
        _check_amount(amount)
        self._balances[to] = Amount(self.balance_of(to) + amount)
        self.total_supply = Amount(self.total_supply + amount)

    def transfer(self, src: CallerId, dst: CallerId, amount: int) -> None:
        _check_amount(amount)
        balance = self.balance_of(src)
        if balance < amount:
            raise NCInsufficientFunds(
                f'insufficient {self.symbol} balance: available {balance}, required {amount}'
            )
        self._balances[src] = Amount(balance - amount)
        self._balances[dst] = Amount(self.balance_of(dst) + amount)

    def get_state(self) -> dict[str, Any]:
        return {
            'total_supply': self.total_supply,
            'balances': dict(self._balances),
            'mint_authorities': set(self._mint_authorities),
        }

    def set_state(self, state: dict[str, Any]) -> None:
        self.total_supply = state['total_supply']
        self._balances = dict(state['balances'])
        self._mint_authorities = set(state['mint_authorities'])

    def __repr__(self) -> str:
        return f'NCToken(uid={self.token_uid.hex()}, symbol={self.symbol!r}, supply={self.total_supply})'
