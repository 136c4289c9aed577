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

import json
import re
from typing import Any, get_type_hints

from tokensale.crypto.util import decode_address
from tokensale.nanocontracts.blueprint import Blueprint
from tokensale.nanocontracts.exception import NCMethodNotFound
from tokensale.nanocontracts.types import Address, CallerId, is_view

_METHOD_CALL_RE = re.compile(r'^\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\((.*)\)\s*$', re.DOTALL)


def parse_nc_method_call(blueprint_class: type[Blueprint], call_info: str) -> tuple[str, list[Any]]:
    """Parse a view call written as `method_name(arg1, arg2, ...)`.

    Arguments are JSON values. Parameters typed as an address take a base58 string,
    any other bytes parameter takes a hex string.

    :raises ValueError: if the call or its arguments cannot be parsed
    :raises NCMethodNotFound: if the method is not a view
    """
    match = _METHOD_CALL_RE.match(call_info)
    if match is None:
        raise ValueError(f'invalid method call: {call_info}')
    method_name, raw_args = match.groups()

    method = getattr(blueprint_class, method_name, None)
    if not is_view(method):
        raise NCMethodNotFound(f'{blueprint_class.__name__}.{method_name} is not a view method')

    args = json.loads(f'[{raw_args}]')
    hints = get_type_hints(method)
    hints.pop('return', None)
    param_types = list(hints.values())
    if len(args) != len(param_types):
        raise ValueError(f'{method_name} takes {len(param_types)} argument(s), {len(args)} given')

    return method_name, [_parse_arg(arg, arg_type) for arg, arg_type in zip(args, param_types)]


def _parse_arg(value: Any, arg_type: Any) -> Any:
    if arg_type is Address or arg_type == CallerId:
        if not isinstance(value, str):
            raise ValueError(f'expected a base58 address, got {value!r}')
        return decode_address(value)
    if getattr(arg_type, '__supertype__', None) is bytes or arg_type is bytes:
        if not isinstance(value, str):
            raise ValueError(f'expected a hex string, got {value!r}')
        return bytes.fromhex(value)
    if getattr(arg_type, '__supertype__', None) is int or arg_type is int:
        if type(value) is not int:
            raise ValueError(f'expected an integer, got {value!r}')
        return value
    return value
