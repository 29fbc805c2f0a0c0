"""Tests for the account resolver handed to the toolkit."""
import pytest

from cattle.crypto import Account, KeyName, NetworkType
from cattle.errors import AccountNotFoundError
from cattle.models import NodeInformation
from cattle.resolver import CertificatePair, NetworkAccountResolver, NetworkVotingKeyFileProvider

NETWORK = NetworkType.TEST_NET
PRIVATE_KEY = "A" * 64


@pytest.fixture
def node():
    return NodeInformation(
        number=3,
        nick_name="peer",
        node_type="Peer",
        friendly_name="ct-peer-001",
        hostname="ct-peer-001.cattle.test",
        assembly="peer",
    )


@pytest.fixture
def known_account():
    return Account.create_from_private_key(PRIVATE_KEY, NETWORK)


def test_should_announce(node, key_store):
    assert NetworkAccountResolver(node, key_store).should_announce()


def test_private_key_is_used_directly(node, key_store, known_account):
    resolver = NetworkAccountResolver(node, key_store)
    account = resolver.resolve_account(
        NETWORK, CertificatePair(known_account.public_key, PRIVATE_KEY), KeyName.MAIN, "node", "testing")
    assert account == known_account


def test_named_node_keys_come_from_store(node, key_store):
    resolver = NetworkAccountResolver(node, key_store)
    account = resolver.resolve_account(NETWORK, None, KeyName.TRANSPORT, "node", "testing")
    assert account == key_store.get_node_account(NETWORK, KeyName.TRANSPORT, "node", 3, False)


def test_stored_key_must_match_public_key(node, key_store, known_account):
    key_store.get_node_account(NETWORK, KeyName.MAIN, "node", 3, True)
    resolver = NetworkAccountResolver(node, key_store)
    with pytest.raises(AccountNotFoundError):
        resolver.resolve_account(NETWORK, CertificatePair(known_account.public_key), KeyName.MAIN, "node", "testing")


def test_unnamed_account_is_generated(node, key_store):
    resolver = NetworkAccountResolver(node, key_store)
    account = resolver.resolve_account(NETWORK, None, KeyName.REMOTE, None, "testing")
    assert len(account.private_key) == 64


def test_generate_error_message(node, key_store):
    resolver = NetworkAccountResolver(node, key_store)
    with pytest.raises(AccountNotFoundError, match="cannot generate"):
        resolver.resolve_account(NETWORK, None, KeyName.REMOTE, None, "testing", "cannot generate")


def test_ready_mode_never_prompts(node, key_store, known_account):
    prompts = []
    resolver = NetworkAccountResolver(node, key_store, prompter=prompts.append, ready=True)
    with pytest.raises(AccountNotFoundError):
        resolver.resolve_account(NETWORK, CertificatePair(known_account.public_key), KeyName.MAIN, None, "linking")
    assert prompts == []


def test_prompt_repeats_until_key_matches(node, key_store, known_account):
    answers = iter(["", "not hex", "B" * 64, PRIVATE_KEY.lower()])
    messages = []

    def prompter(message):
        messages.append(message)
        return next(answers)

    pair = CertificatePair(known_account.public_key)
    resolver = NetworkAccountResolver(node, key_store, prompter=prompter)
    account = resolver.resolve_account(NETWORK, pair, KeyName.MAIN, None, "linking")

    assert account == known_account
    assert pair.private_key == PRIVATE_KEY
    assert len(messages) == 4
    assert known_account.address in messages[0]


def test_voting_key_file_provider(node, key_store):
    provider = NetworkVotingKeyFileProvider(node, key_store)
    content = provider.get_voting_key_file(NETWORK, "node", 1, 3)
    assert content == key_store.get_voting_key_file(NETWORK, "node", 3, 1, 3)
