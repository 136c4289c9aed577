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

from typing import TYPE_CHECKING, Any, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from typing_extensions import Self

if TYPE_CHECKING:
    from twisted.web.http import Request


class Response(BaseModel):
    """Base class of every JSON API response."""
    model_config = ConfigDict(extra='forbid')

    def json_dumpb(self) -> bytes:
        return self.model_dump_json().encode('utf-8')


class ErrorResponse(Response):
    success: bool = False
    error: str


class QueryParams(BaseModel):
    """Base class of models parsed from the query string of a request.

    Keys ending in `[]` are collected as lists, any other key keeps its first value.
    """
    model_config = ConfigDict(extra='forbid')

    @classmethod
    def from_request(cls, request: 'Request') -> Union[Self, ErrorResponse]:
        encoding = 'utf-8'
        args: dict[str, Any] = {}
        for key, values in (request.args or {}).items():
            decoded_key = key.decode(encoding)
            decoded_values = [value.decode(encoding) for value in values]
            if decoded_key.endswith('[]'):
                args[decoded_key[:-2]] = decoded_values
            elif decoded_values:
                args[decoded_key] = decoded_values[0]

        try:
            return cls.model_validate(args)
        except ValidationError as error:
            return ErrorResponse(error=str(error))
