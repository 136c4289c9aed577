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

import copy
from contextlib import contextmanager
from typing import Any, Iterator

from tokensale.nanocontracts.exception import NCViewMethodError
from tokensale.nanocontracts.types import BlueprintId, ContractId


class NCContractStorage:
    """Field storage of a single contract."""

    def __init__(self, contract_id: ContractId, blueprint_id: BlueprintId) -> None:
        self.contract_id = contract_id
        self._blueprint_id = blueprint_id
        self._fields: dict[str, Any] = {}
        self._locked = 0

    def get_blueprint_id(self) -> BlueprintId:
        return self._blueprint_id

    def get_obj(self, name: str) -> Any:
        """Return a field value, raising KeyError if it was never set."""
        return self._fields[name]

    def put_obj(self, name: str, value: Any) -> None:
        if self._locked:
            raise NCViewMethodError(f'cannot set `{name}` while storage is read-only')
        self._fields[name] = value

    def has_obj(self, name: str) -> bool:
        return name in self._fields

    @contextmanager
    def read_only(self) -> Iterator[None]:
        """Serve a copy of the fields and reject writes until the block exits.

        Changes made in place to field objects only reach the copy.
        """
        fields = self._fields
        self._fields = copy.deepcopy(fields)
        self._locked += 1
        try:
            yield
        finally:
            self._locked -= 1
            self._fields = fields

    def is_locked(self) -> bool:
        return self._locked > 0

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._fields)

    def restore(self, snapshot: dict[str, Any]) -> None:
        self._fields = snapshot
