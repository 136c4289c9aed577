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

from collections import defaultdict
from typing import Iterable, NamedTuple, Sequence

from tokensale.nanocontracts.exception import NCInvalidAction
from tokensale.nanocontracts.types import CallerId, NCAction, Timestamp, TokenUid


class BlockData(NamedTuple):
    """Block information exposed to a call. Only the timestamp is tracked."""
    timestamp: Timestamp


class Context:
    """Context passed to every public method.

    It tells who is calling, when, and which actions come along with the call.
    """

    __slots__ = ('__caller_id', '__block', '__actions')

    def __init__(self, actions: Iterable[NCAction], caller_id: CallerId, timestamp: int) -> None:
        if not caller_id:
            raise NCInvalidAction('caller_id cannot be empty')
        if type(timestamp) is not int or timestamp < 0:
            raise NCInvalidAction(f'invalid timestamp: {timestamp!r}')

        grouped: defaultdict[TokenUid, list[NCAction]] = defaultdict(list)
        for action in actions:
            grouped[action.token_uid].append(action)
        for token_uid, token_actions in grouped.items():
            if len(token_actions) > 1:
                raise NCInvalidAction(f'duplicate actions for token {token_uid.hex()}')

        self.__caller_id = caller_id
        self.__block = BlockData(timestamp=Timestamp(timestamp))
        self.__actions = {token_uid: token_actions[0] for token_uid, token_actions in grouped.items()}

    @property
    def caller_id(self) -> CallerId:
        return self.__caller_id

    @property
    def block(self) -> BlockData:
        return self.__block

    @property
    def actions(self) -> dict[TokenUid, NCAction]:
        return dict(self.__actions)

    @property
    def actions_list(self) -> Sequence[NCAction]:
        return list(self.__actions.values())

    def get_single_action(self, token_uid: TokenUid) -> NCAction:
        """Return the only action of the call, failing if it is not about `token_uid`."""
        if len(self.__actions) != 1:
            raise NCInvalidAction(f'expected exactly 1 action, got {len(self.__actions)}')
        action = self.__actions.get(token_uid)
        if action is None:
            raise NCInvalidAction(f'expected an action for token {token_uid.hex()}')
        return action

    def __repr__(self) -> str:
        return (
            f'Context(caller_id={self.__caller_id.hex()}, timestamp={self.__block.timestamp}, '
            f'actions={self.actions_list!r})'
        )
