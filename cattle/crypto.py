"""Accounts and addresses.

Keys are ed25519 key pairs handled by ``cryptography``. Private and public
keys travel as 64 character upper case hex strings; addresses are the 39
character base32 rendering of ``network byte + sha3(public key)[:20] +
checksum``.
"""

import base64
import hashlib
import re
from enum import Enum, IntEnum
from typing import Optional

from Crypto.Random import get_random_bytes
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

KEY_SIZE = 32
PRIVATE_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class NetworkType(IntEnum):
    """Network identifier byte."""
    MAIN_NET = 104
    TEST_NET = 152


class Network(str, Enum):
    """User facing network names."""
    MAINNET = "mainnet"
    TESTNET = "testnet"

    def to_network_type(self) -> NetworkType:
        return NetworkType.MAIN_NET if self is Network.MAINNET else NetworkType.TEST_NET

    def description(self) -> str:
        return self.value.capitalize()


class KeyName(str, Enum):
    """Roles of the keys a node owns."""
    MAIN = "Main"
    TRANSPORT = "Transport"
    REMOTE = "Remote"
    VRF = "VRF"


def is_valid_private_key(value: Optional[str]) -> bool:
    return bool(value) and bool(PRIVATE_KEY_PATTERN.match(value))


def random_key() -> str:
    """Generate 32 random bytes as upper case hex (seeds, private keys)."""
    return get_random_bytes(KEY_SIZE).hex().upper()


def address_from_public_key(public_key: str, network_type: NetworkType) -> str:
    """Derive the plain address of a public key for a network."""
    public_key_bytes = bytes.fromhex(public_key)
    body = bytes([int(network_type)]) + hashlib.sha3_256(public_key_bytes).digest()[:20]
    checksum = hashlib.sha3_256(body).digest()[:3]
    return base64.b32encode(body + checksum).decode("utf-8").rstrip("=")


class Account:
    """An ed25519 key pair bound to a network."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey, network_type: NetworkType):
        self._key = private_key
        self.network_type = NetworkType(network_type)

        raw_private = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption()
        )
        raw_public = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
        self.private_key = raw_private.hex().upper()
        self.public_key = raw_public.hex().upper()
        self.address = address_from_public_key(self.public_key, self.network_type)

    @classmethod
    def create_from_private_key(cls, private_key: str, network_type: NetworkType) -> "Account":
        if not is_valid_private_key(private_key):
            raise ValueError("Private key must be 64 hex characters")
        key = ed25519.Ed25519PrivateKey.from_private_bytes(bytes.fromhex(private_key))
        return cls(key, network_type)

    @classmethod
    def generate_new_account(cls, network_type: NetworkType) -> "Account":
        return cls(ed25519.Ed25519PrivateKey.generate(), network_type)

    def sign(self, data: bytes) -> bytes:
        """Sign raw bytes; ed25519 signatures are deterministic."""
        return self._key.sign(data)

    def __eq__(self, other):
        return (
            isinstance(other, Account)
            and self.private_key == other.private_key
            and self.network_type == other.network_type
        )

    def __hash__(self):
        return hash((self.public_key, int(self.network_type)))

    def __repr__(self):
        return f"Account(address='{self.address}')"


def verify_signature(public_key: str, signature: bytes, data: bytes) -> bool:
    """Check an ed25519 signature made by ``public_key``."""
    key = ed25519.Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key))
    try:
        key.verify(signature, data)
        return True
    except InvalidSignature:
        return False
