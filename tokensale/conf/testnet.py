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

from tokensale.conf.settings import TokenSaleSettings

SETTINGS = TokenSaleSettings(
    NETWORK_NAME="sale-testnet",
    P2PKH_VERSION_BYTE=b"\x49",
    NATIVE_TOKEN_UID=b"\x00",
    NATIVE_TOKEN_NAME="Native",
    NATIVE_TOKEN_SYMBOL="NTV",
)
