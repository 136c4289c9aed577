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

import importlib
import os
from typing import NamedTuple, Optional

from structlog import get_logger

from tokensale.conf.settings import TokenSaleSettings

logger = get_logger()

TOKENSALE_CONFIG_FILE_ENV_VAR = 'TOKENSALE_CONFIG_FILE'
DEFAULT_CONFIG_FILE = 'tokensale.conf.testnet'


class _SettingsMetadata(NamedTuple):
    source: str
    settings: TokenSaleSettings


_settings_singleton: Optional[_SettingsMetadata] = None


def get_global_settings() -> TokenSaleSettings:
    """Return the settings of the module named by TOKENSALE_CONFIG_FILE.

    The first call loads and caches them; asking again after the variable changed is an error.
    """
    global _settings_singleton

    source = os.environ.get(TOKENSALE_CONFIG_FILE_ENV_VAR, DEFAULT_CONFIG_FILE)

    if _settings_singleton is not None:
        if _settings_singleton.source != source:
            raise Exception('loading config twice with a different file')
        return _settings_singleton.settings

    settings = _load_settings_from_module(source)
    _settings_singleton = _SettingsMetadata(source=source, settings=settings)
    logger.debug('settings loaded', source=source, network=settings.NETWORK_NAME)
    return settings


def _load_settings_from_module(module_path: str) -> TokenSaleSettings:
    module = importlib.import_module(module_path)
    settings = getattr(module, 'SETTINGS', None)
    if not isinstance(settings, TokenSaleSettings):
        raise TypeError(f'{module_path}.SETTINGS must be a TokenSaleSettings instance')
    return settings


def reset_global_settings() -> None:
    """Drop the cached settings. Only meant for tests."""
    global _settings_singleton
    _settings_singleton = None
