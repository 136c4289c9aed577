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

import hashlib
from typing import Optional

import base58

from tokensale.conf.get_settings import get_global_settings
from tokensale.nanocontracts.types import Address
from tokensale.wallet.exceptions import InvalidAddress

ADDRESS_LEN = 25
PUBLIC_KEY_HASH_LEN = 20
CHECKSUM_LEN = 4


def get_checksum(address_bytes: bytes) -> bytes:
    """Return the first 4 bytes of the double sha256 of `address_bytes`."""
    return hashlib.sha256(hashlib.sha256(address_bytes).digest()).digest()[:CHECKSUM_LEN]


def get_address_from_public_key_hash(public_key_hash: bytes, version_byte: Optional[bytes] = None) -> Address:
    """Build the 25-byte address of a public key hash: version byte, hash and checksum."""
    if len(public_key_hash) != PUBLIC_KEY_HASH_LEN:
        raise ValueError(f'public key hash must have {PUBLIC_KEY_HASH_LEN} bytes')
    if version_byte is None:
        version_byte = get_global_settings().P2PKH_VERSION_BYTE
    body = version_byte + public_key_hash
    return Address(body + get_checksum(body))


def get_address_b58_from_bytes(address: bytes) -> str:
    return base58.b58encode(address).decode('utf-8')


def decode_address(address58: str) -> Address:
    """Decode a base58 address and validate its length and checksum.

    :raises InvalidAddress: if the address is not valid
    """
    try:
        decoded = base58.b58decode(address58)
    except ValueError as e:
        # ValueError is raised for characters outside the base58 alphabet
        raise InvalidAddress(f'invalid base58 address ({address58})') from e
    if len(decoded) != ADDRESS_LEN:
        raise InvalidAddress(f'address size must have {ADDRESS_LEN} bytes ({address58})')
    body, checksum = decoded[:-CHECKSUM_LEN], decoded[-CHECKSUM_LEN:]
    if get_checksum(body) != checksum:
        raise InvalidAddress(f'invalid checksum of address ({address58})')
    return Address(decoded)
