"""Voting key files.

A voting file holds a root key pair and one ephemeral key per epoch::

    start u64 | end u64 | 0xFF.. u64 | 0xFF.. u64 | root public key | root private key
    (ephemeral private key | root signature) * (end - start + 1)
"""

import struct
from typing import Callable, NamedTuple, Optional

from Crypto.Random import get_random_bytes
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization

from .crypto import KEY_SIZE, Account, NetworkType

MARKER = 0xFFFFFFFFFFFFFFFF
HEADER_SIZE = 8 * 4 + KEY_SIZE * 2
ENTRY_SIZE = KEY_SIZE + 64


class VotingFileInfo(NamedTuple):
    public_key: str
    start_epoch: int
    end_epoch: int


def _public_key_of(private_key: bytes) -> bytes:
    key = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )


def create_voting_file(root_private_key: str, start_epoch: int, end_epoch: int,
                       key_generator: Optional[Callable[[int], bytes]] = None) -> bytes:
    """Build a voting file covering ``[start_epoch, end_epoch]``.

    ``key_generator`` receives the epoch and returns the 32 byte ephemeral
    private key for it; random keys are used when it is not given.
    """
    if start_epoch < 1 or end_epoch < start_epoch:
        raise ValueError(f"Invalid epoch range [{start_epoch}, {end_epoch}]")

    root = Account.create_from_private_key(root_private_key, NetworkType.MAIN_NET)
    generate = key_generator or (lambda epoch: get_random_bytes(KEY_SIZE))

    parts = [
        struct.pack("<QQQQ", start_epoch, end_epoch, MARKER, MARKER),
        bytes.fromhex(root.public_key),
        bytes.fromhex(root.private_key),
    ]
    for epoch in range(start_epoch, end_epoch + 1):
        ephemeral = generate(epoch)
        if len(ephemeral) != KEY_SIZE:
            raise ValueError("Ephemeral voting keys must be 32 bytes")
        signature = root.sign(_public_key_of(ephemeral) + struct.pack("<Q", epoch))
        parts.append(ephemeral)
        parts.append(signature)
    return b"".join(parts)


def read_voting_file(content: bytes) -> VotingFileInfo:
    """Decode the header of a voting file and check its length."""
    if len(content) < HEADER_SIZE:
        raise ValueError("Voting file is too short")
    start_epoch, end_epoch, first_marker, second_marker = struct.unpack_from("<QQQQ", content, 0)
    if first_marker != MARKER or second_marker != MARKER:
        raise ValueError("Voting file header is corrupted")
    if end_epoch < start_epoch:
        raise ValueError(f"Invalid epoch range [{start_epoch}, {end_epoch}]")
    expected = HEADER_SIZE + ENTRY_SIZE * (end_epoch - start_epoch + 1)
    if len(content) != expected:
        raise ValueError(f"Voting file should be {expected} bytes but is {len(content)}")
    public_key = content[32:32 + KEY_SIZE].hex().upper()
    return VotingFileInfo(public_key, start_epoch, end_epoch)
