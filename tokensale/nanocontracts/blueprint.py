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

from typing import TYPE_CHECKING, Any

from tokensale.nanocontracts.exception import NCUninitializedContractError

if TYPE_CHECKING:
    from tokensale.nanocontracts.runner import NCSyscall
    from tokensale.nanocontracts.storage import NCContractStorage

_INTERNAL_ATTRS = frozenset({'syscall', '_storage'})


class Blueprint:
    """Base class of every contract.

    Fields are declared as class annotations. Reading or writing a declared field goes
    through the contract storage, so the runner can revert a failed call. Assigning
    anything that is not a declared field is an error.
    """

    syscall: 'NCSyscall'
    _storage: 'NCContractStorage'

    def __init__(self, storage: 'NCContractStorage', syscall: 'NCSyscall') -> None:
        object.__setattr__(self, '_storage', storage)
        object.__setattr__(self, 'syscall', syscall)

    @classmethod
    def get_fields(cls) -> dict[str, Any]:
        """Return the declared fields of the blueprint, including inherited ones."""
        fields: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass is Blueprint or not issubclass(klass, Blueprint):
                continue
            for name, annotation in klass.__dict__.get('__annotations__', {}).items():
                if name not in _INTERNAL_ATTRS:
                    fields[name] = annotation
        return fields

    def __getattr__(self, name: str) -> Any:
        # only reached when regular attribute lookup fails
        if name in type(self).get_fields():
            storage = object.__getattribute__(self, '_storage')
            try:
                return storage.get_obj(name)
            except KeyError:
                raise NCUninitializedContractError(f'field `{name}` was not initialized') from None
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in type(self).get_fields():
            raise AttributeError(f'cannot set `{name}`: not a field of {type(self).__name__}')
        self._storage.put_obj(name, value)
