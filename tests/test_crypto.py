"""Tests for accounts, link transactions and voting files."""
import struct

import pytest

from cattle.crypto import Account, NetworkType, address_from_public_key, is_valid_private_key, random_key
from cattle.transaction import KeyLinkTransaction, TransactionType, read_header
from cattle.voting import ENTRY_SIZE, HEADER_SIZE, create_voting_file, read_voting_file

PRIVATE_KEY = "A" * 64
SEED = "C" * 64


def test_account_from_private_key_is_stable():
    first = Account.create_from_private_key(PRIVATE_KEY, NetworkType.TEST_NET)
    second = Account.create_from_private_key(PRIVATE_KEY.lower(), NetworkType.TEST_NET)
    assert first == second
    assert first.private_key == PRIVATE_KEY
    assert len(first.public_key) == 64
    assert first.public_key == first.public_key.upper()


def test_address_depends_on_network():
    account = Account.create_from_private_key(PRIVATE_KEY, NetworkType.TEST_NET)
    mainnet = address_from_public_key(account.public_key, NetworkType.MAIN_NET)
    assert len(account.address) == 39
    assert account.address.startswith("T")
    assert mainnet.startswith("N")
    assert mainnet != account.address


def test_private_key_validation():
    assert is_valid_private_key(random_key())
    assert not is_valid_private_key("")
    assert not is_valid_private_key(None)
    assert not is_valid_private_key("Z" * 64)
    with pytest.raises(ValueError):
        Account.create_from_private_key("ABC", NetworkType.TEST_NET)


def test_link_transaction_layout_and_signature():
    main = Account.create_from_private_key(PRIVATE_KEY, NetworkType.TEST_NET)
    vrf = Account.create_from_private_key("B" * 64, NetworkType.TEST_NET)

    signed = KeyLinkTransaction.vrf(vrf.public_key, NetworkType.TEST_NET).sign(main, SEED)
    header = read_header(signed.payload)

    assert header["type"] == TransactionType.VRF_KEY_LINK
    assert header["network_type"] == NetworkType.TEST_NET
    assert header["deadline"] == 1
    assert header["signer_public_key"] == main.public_key
    assert header["size"] == 161
    assert vrf.public_key in signed.payload
    assert signed.verify(SEED)
    assert not signed.verify("D" * 64)


def test_signing_is_deterministic():
    main = Account.create_from_private_key(PRIVATE_KEY, NetworkType.TEST_NET)
    transaction = KeyLinkTransaction.voting("B" * 64, 1, 5, NetworkType.TEST_NET)
    assert transaction.sign(main, SEED).payload == transaction.sign(main, SEED).payload
    assert read_header(transaction.sign(main, SEED).payload)["size"] == 169


def test_voting_link_requires_epochs():
    with pytest.raises(ValueError):
        KeyLinkTransaction(TransactionType.VOTING_KEY_LINK, "B" * 64, NetworkType.TEST_NET)


def test_voting_file_round_trip():
    root = Account.create_from_private_key(PRIVATE_KEY, NetworkType.TEST_NET)
    content = create_voting_file(root.private_key, 3, 7)

    assert len(content) == HEADER_SIZE + 5 * ENTRY_SIZE
    info = read_voting_file(content)
    assert info.public_key == root.public_key
    assert (info.start_epoch, info.end_epoch) == (3, 7)


def test_voting_file_rejects_corruption():
    content = create_voting_file(PRIVATE_KEY, 1, 2)
    with pytest.raises(ValueError):
        read_voting_file(content[:-1])
    with pytest.raises(ValueError):
        read_voting_file(content[:16] + struct.pack("<Q", 0) + content[24:])
    with pytest.raises(ValueError):
        create_voting_file(PRIVATE_KEY, 5, 4)
