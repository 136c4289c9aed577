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

from dataclasses import dataclass
from typing import Any, Callable, NewType, TypeVar, Union

Address = NewType('Address', bytes)
Amount = NewType('Amount', int)
BlueprintId = NewType('BlueprintId', bytes)
ContractId = NewType('ContractId', bytes)
Timestamp = NewType('Timestamp', int)
TokenUid = NewType('TokenUid', bytes)

CallerId = Union[Address, ContractId]

T = TypeVar('T')

NC_PUBLIC_ATTR = '_nc_public'
NC_VIEW_ATTR = '_nc_view'
NC_ALLOW_DEPOSIT_ATTR = '_nc_allow_deposit'
NC_EXPORT_ATTR = '_nc_export'
NC_INITIALIZE_METHOD = 'initialize'


@dataclass(frozen=True, slots=True)
class NCDepositAction:
    """Move `amount` of `token_uid` from the caller into the contract."""
    token_uid: TokenUid
    amount: int

    def __post_init__(self) -> None:
        if type(self.amount) is not int or self.amount <= 0:
            raise ValueError(f'invalid deposit amount: {self.amount!r}')


NCAction = NCDepositAction


def public(fn: Callable[..., T] | None = None, *, allow_deposit: bool = False) -> Any:
    """Mark a blueprint method as callable by transactions.

    Can be used bare (`@public`) or with arguments (`@public(allow_deposit=True)`).
    """
    def decorator(method: Callable[..., T]) -> Callable[..., T]:
        setattr(method, NC_PUBLIC_ATTR, True)
        setattr(method, NC_ALLOW_DEPOSIT_ATTR, allow_deposit)
        return method

    if fn is not None:
        return decorator(fn)
    return decorator


def view(fn: Callable[..., T]) -> Callable[..., T]:
    """Mark a blueprint method as a read-only query."""
    setattr(fn, NC_VIEW_ATTR, True)
    return fn


def export(cls: type[T]) -> type[T]:
    """Mark a blueprint class as deployable by a runner."""
    from tokensale.nanocontracts.blueprint import Blueprint
    if not (isinstance(cls, type) and issubclass(cls, Blueprint)):
        raise TypeError('@export can only be used on Blueprint subclasses')
    if not is_public(getattr(cls, NC_INITIALIZE_METHOD, None)):
        raise TypeError(f'{cls.__name__} must define a public `initialize` method')
    setattr(cls, NC_EXPORT_ATTR, True)
    return cls


def is_public(method: Any) -> bool:
    return bool(getattr(method, NC_PUBLIC_ATTR, False))


def is_view(method: Any) -> bool:
    return bool(getattr(method, NC_VIEW_ATTR, False))


def allows_deposit(method: Any) -> bool:
    return bool(getattr(method, NC_ALLOW_DEPOSIT_ATTR, False))


def is_exported(cls: type) -> bool:
    return bool(cls.__dict__.get(NC_EXPORT_ATTR, False))
