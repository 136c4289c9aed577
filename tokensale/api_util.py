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

from typing import TYPE_CHECKING, Optional

from tokensale.conf.get_settings import get_global_settings

if TYPE_CHECKING:
    from twisted.web.http import Request

    from tokensale.conf.settings import TokenSaleSettings


def set_cors(request: 'Request', method: str, settings: Optional['TokenSaleSettings'] = None) -> None:
    settings = settings or get_global_settings()
    request.setHeader(b'Access-Control-Allow-Origin', settings.CORS_ALLOWED_ORIGIN.encode('utf-8'))
    request.setHeader(b'Access-Control-Allow-Methods', method.encode('utf-8'))
    request.setHeader(b'Access-Control-Allow-Headers', b'content-type')
