"""Key link transactions included in the genesis block.

Transactions use the usual entity layout::

    size u32 | reserved u32 | signature 64 | signer 32 | reserved u32 |
    version u8 | network u8 | type u16 | max fee u64 | deadline u64 | body

The signature covers the generation hash seed followed by everything from
``version`` onwards.
"""

import struct
from enum import IntEnum
from typing import Optional

from .crypto import Account, NetworkType, verify_signature

SIGNATURE_SIZE = 64
PUBLIC_KEY_SIZE = 32
# size + reserved + signature + signer + reserved
SIGNED_DATA_OFFSET = 4 + 4 + SIGNATURE_SIZE + PUBLIC_KEY_SIZE + 4
SIGNATURE_OFFSET = 8
SIGNER_OFFSET = SIGNATURE_OFFSET + SIGNATURE_SIZE

TRANSACTION_VERSION = 1
GENESIS_DEADLINE = 1


class TransactionType(IntEnum):
    ACCOUNT_KEY_LINK = 0x414C
    VRF_KEY_LINK = 0x4243
    VOTING_KEY_LINK = 0x4143


class LinkAction(IntEnum):
    UNLINK = 0
    LINK = 1


class KeyLinkTransaction:
    """A VRF, remote (account) or voting key link transaction."""

    def __init__(self, transaction_type: TransactionType, linked_public_key: str,
                 network_type: NetworkType, link_action: LinkAction = LinkAction.LINK,
                 start_epoch: Optional[int] = None, end_epoch: Optional[int] = None,
                 deadline: int = GENESIS_DEADLINE, max_fee: int = 0):
        if transaction_type == TransactionType.VOTING_KEY_LINK and (start_epoch is None or end_epoch is None):
            raise ValueError("Voting key links need a start and an end epoch")
        self.transaction_type = TransactionType(transaction_type)
        self.linked_public_key = linked_public_key.upper()
        self.network_type = NetworkType(network_type)
        self.link_action = LinkAction(link_action)
        self.start_epoch = start_epoch
        self.end_epoch = end_epoch
        self.deadline = deadline
        self.max_fee = max_fee

    @classmethod
    def vrf(cls, linked_public_key: str, network_type: NetworkType, **kwargs) -> "KeyLinkTransaction":
        return cls(TransactionType.VRF_KEY_LINK, linked_public_key, network_type, **kwargs)

    @classmethod
    def remote(cls, linked_public_key: str, network_type: NetworkType, **kwargs) -> "KeyLinkTransaction":
        return cls(TransactionType.ACCOUNT_KEY_LINK, linked_public_key, network_type, **kwargs)

    @classmethod
    def voting(cls, linked_public_key: str, start_epoch: int, end_epoch: int,
               network_type: NetworkType, **kwargs) -> "KeyLinkTransaction":
        return cls(TransactionType.VOTING_KEY_LINK, linked_public_key, network_type,
                   start_epoch=start_epoch, end_epoch=end_epoch, **kwargs)

    def _body(self) -> bytes:
        body = bytes.fromhex(self.linked_public_key)
        if self.transaction_type == TransactionType.VOTING_KEY_LINK:
            body += struct.pack("<II", self.start_epoch, self.end_epoch)
        return body + struct.pack("<B", int(self.link_action))

    def _signed_part(self) -> bytes:
        return struct.pack(
            "<BBHQQ",
            TRANSACTION_VERSION,
            int(self.network_type),
            int(self.transaction_type),
            self.max_fee,
            self.deadline,
        ) + self._body()

    def size(self) -> int:
        return SIGNED_DATA_OFFSET + len(self._signed_part())

    def serialize(self, signer_public_key: str, signature: bytes) -> bytes:
        return (
            struct.pack("<II", self.size(), 0)
            + signature
            + bytes.fromhex(signer_public_key)
            + struct.pack("<I", 0)
            + self._signed_part()
        )

    def sign(self, account: Account, generation_hash_seed: str) -> "SignedTransaction":
        """Sign with ``account`` for the network identified by ``generation_hash_seed``."""
        signature = account.sign(bytes.fromhex(generation_hash_seed) + self._signed_part())
        payload = self.serialize(account.public_key, signature)
        return SignedTransaction(payload.hex().upper(), account.public_key, self.transaction_type)


class SignedTransaction:

    def __init__(self, payload: str, signer_public_key: str, transaction_type: TransactionType):
        self.payload = payload
        self.signer_public_key = signer_public_key
        self.transaction_type = transaction_type

    def verify(self, generation_hash_seed: str) -> bool:
        raw = bytes.fromhex(self.payload)
        signature = raw[SIGNATURE_OFFSET:SIGNER_OFFSET]
        data = bytes.fromhex(generation_hash_seed) + raw[SIGNED_DATA_OFFSET:]
        return verify_signature(self.signer_public_key, signature, data)


def read_header(payload: str) -> dict:
    """Decode the common header of a serialized transaction."""
    raw = bytes.fromhex(payload)
    if len(raw) < SIGNED_DATA_OFFSET + 20:
        raise ValueError("Transaction payload too short")
    size, = struct.unpack_from("<I", raw, 0)
    if size != len(raw):
        raise ValueError(f"Transaction size {size} does not match payload length {len(raw)}")
    version, network, transaction_type, max_fee, deadline = struct.unpack_from("<BBHQQ", raw, SIGNED_DATA_OFFSET)
    return {
        "size": size,
        "signer_public_key": raw[SIGNER_OFFSET:SIGNER_OFFSET + PUBLIC_KEY_SIZE].hex().upper(),
        "version": version,
        "network_type": NetworkType(network),
        "type": TransactionType(transaction_type),
        "max_fee": max_fee,
        "deadline": deadline,
    }
