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

from pydantic import Field
from structlog import get_logger
from twisted.web.resource import Resource

from tokensale.api_util import set_cors
from tokensale.nanocontracts.api_arguments_parser import parse_nc_method_call
from tokensale.nanocontracts.exception import NanoContractDoesNotExist, TokenDoesNotExist
from tokensale.nanocontracts.types import ContractId
from tokensale.utils.api import ErrorResponse, QueryParams, Response

if TYPE_CHECKING:
    from twisted.web.http import Request

    from tokensale.nanocontracts.runner import Runner

logger = get_logger()

_SCALAR_TYPES = (bool, int, str, bytes)


class SaleStateResource(Resource):
    """ Implements a web server GET API to get the state of a sale contract.

    It returns scalar fields, the balances the contract holds and the result of view calls,
    all read from the same runner.
    """
    isLeaf = True

    def __init__(self, runner: 'Runner') -> None:
        super().__init__()
        self.runner = runner
        self.log = logger.new()

    def render_GET(self, request: 'Request') -> bytes:
        request.setHeader(b'content-type', b'application/json; charset=utf-8')
        set_cors(request, 'GET', self.runner.settings)

        params = SaleStateParams.from_request(request)
        if isinstance(params, ErrorResponse):
            request.setResponseCode(400)
            return params.json_dumpb()

        try:
            nc_id_bytes = ContractId(bytes.fromhex(params.id))
        except ValueError:
            request.setResponseCode(400)
            error_response = ErrorResponse(success=False, error=f'Invalid id: {params.id}')
            return error_response.json_dumpb()

        try:
            nc_storage = self.runner.get_storage(nc_id_bytes)
        except NanoContractDoesNotExist:
            request.setResponseCode(404)
            error_response = ErrorResponse(success=False, error=f'Contract {params.id} does not exist.')
            return error_response.json_dumpb()

        blueprint_class = self.runner.get_blueprint_class(nc_storage.get_blueprint_id())
        blueprint_fields = blueprint_class.get_fields()

        # Get fields.
        fields: dict[str, NCValueSuccessResponse | NCValueErrorResponse] = {}
        for field in params.fields:
            if field not in blueprint_fields:
                fields[field] = NCValueErrorResponse(errmsg='not a blueprint field')
                continue
            try:
                value = nc_storage.get_obj(field)
            except KeyError:
                fields[field] = NCValueErrorResponse(errmsg='field not found')
                continue
            if not isinstance(value, _SCALAR_TYPES):
                fields[field] = NCValueErrorResponse(errmsg='field is not a scalar')
                continue
            fields[field] = NCValueSuccessResponse(value=_to_json(value))

        # Get balances.
        balances: dict[str, NCBalanceSuccessResponse | NCValueErrorResponse] = {}
        for token_uid_hex in params.balances:
            if token_uid_hex == '__all__':
                # User wants to get the balance of all tokens held by the contract
                for token in self.runner.get_all_tokens():
                    balance = token.balance_of(nc_id_bytes)
                    if balance > 0:
                        balances[token.token_uid.hex()] = NCBalanceSuccessResponse(
                            value=str(balance),
                            symbol=token.symbol,
                        )
                break

            try:
                token = self.runner.get_token(bytes.fromhex(token_uid_hex))
            except ValueError:
                balances[token_uid_hex] = NCValueErrorResponse(errmsg='invalid token id')
                continue
            except TokenDoesNotExist:
                balances[token_uid_hex] = NCValueErrorResponse(errmsg='unknown token')
                continue

            balances[token_uid_hex] = NCBalanceSuccessResponse(
                value=str(token.balance_of(nc_id_bytes)),
                symbol=token.symbol,
            )

        # Call view methods.
        calls: dict[str, NCValueSuccessResponse | NCValueErrorResponse] = {}
        for call_info in params.calls:
            try:
                method_name, method_args = parse_nc_method_call(blueprint_class, call_info)
                value = self.runner.call_view_method(nc_id_bytes, method_name, *method_args)
            except Exception as e:
                self.log.debug('view call failed', call=call_info, error=repr(e))
                calls[call_info] = NCValueErrorResponse(errmsg=repr(e))
            else:
                calls[call_info] = NCValueSuccessResponse(value=_to_json(value))

        response = SaleStateResponse(
            success=True,
            nc_id=params.id,
            blueprint_id=nc_storage.get_blueprint_id().hex(),
            blueprint_name=blueprint_class.__name__,
            fields=fields,
            balances=balances,
            calls=calls,
        )
        return response.json_dumpb()


def _to_json(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, tuple) and hasattr(value, '_asdict'):
        return {key: _to_json(item) for key, item in value._asdict().items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


class SaleStateParams(QueryParams):
    id: str
    fields: list[str] = Field(default_factory=list)
    balances: list[str] = Field(default_factory=list)
    calls: list[str] = Field(default_factory=list)


class NCValueSuccessResponse(Response):
    value: Any


class NCBalanceSuccessResponse(Response):
    value: str
    symbol: str


class NCValueErrorResponse(Response):
    errmsg: str


class SaleStateResponse(Response):
    success: bool
    nc_id: str
    blueprint_id: str
    blueprint_name: str
    fields: dict[str, NCValueSuccessResponse | NCValueErrorResponse]
    balances: dict[str, NCBalanceSuccessResponse | NCValueErrorResponse]
    calls: dict[str, NCValueSuccessResponse | NCValueErrorResponse]
