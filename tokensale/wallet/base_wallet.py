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

from typing import TYPE_CHECKING, Optional, Protocol

from structlog import get_logger

from tokensale.nanocontracts.types import Address, Amount, CallerId

if TYPE_CHECKING:
    from tokensale.nanocontracts.runner import Runner

logger = get_logger()


class Wallet(Protocol):
    """Receiver of the funds forwarded by a contract.

    The native value has already been credited to `address` when the hook runs. The hook
    may call back into the runner. Raising aborts the contract call that forwarded the funds.
    """

    address: Address

    def on_funds_received(self, runner: 'Runner', sender: CallerId, amount: Amount) -> None:
        ...


class AccountWallet:
    """Plain account that keeps track of what it received."""

    def __init__(self, address: Address) -> None:
        self.address = address
        self.total_received = Amount(0)
        self.deposits = 0
        self.last_sender: Optional[CallerId] = None
        self.log = logger.new(wallet=address.hex())

    def on_funds_received(self, runner: 'Runner', sender: CallerId, amount: Amount) -> None:
        self.total_received = Amount(self.total_received + amount)
        self.deposits += 1
        self.last_sender = sender
        self.log.debug('funds received', sender=sender.hex(), amount=amount)
