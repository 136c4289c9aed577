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

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenSaleSettings(BaseModel):
    """Network-wide constants used by the runner, the contracts and the API."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    # Name of the network, only used for logging and the API.
    NETWORK_NAME: str

    # Version byte of pay-to-public-key-hash addresses.
    P2PKH_VERSION_BYTE: bytes = Field(min_length=1, max_length=1)

    # Uid of the native token, the one used to pay for purchases.
    NATIVE_TOKEN_UID: bytes = b'\x00'
    NATIVE_TOKEN_NAME: str = 'Native'
    NATIVE_TOKEN_SYMBOL: str = 'NTV'

    # Value of the `Access-Control-Allow-Origin` header of the API.
    CORS_ALLOWED_ORIGIN: str = '*'

    @field_validator('NATIVE_TOKEN_UID')
    @classmethod
    def _native_token_uid_not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError('NATIVE_TOKEN_UID cannot be empty')
        return value
