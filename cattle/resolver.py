"""Hand node keys and voting files from the key store to the toolkit."""

from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from .crypto import Account, KeyName, NetworkType, address_from_public_key, is_valid_private_key
from .errors import AccountNotFoundError
from .key_store import KeyStore, VotingKeyFileContent
from .models import NodeInformation

logger = structlog.get_logger()

Prompter = Callable[[str], str]


@dataclass
class CertificatePair:
    """A key the toolkit already knows about, possibly without its private half."""
    public_key: str
    private_key: Optional[str] = None


class NetworkAccountResolver:
    """Resolve the accounts of one node for the toolkit.

    Keys of named nodes come from the key store. Other keys are generated or,
    when only the public key is known, prompted for. In ``ready`` mode nothing
    is prompted and missing keys are an error.
    """

    def __init__(self, node: NodeInformation, key_store: KeyStore,
                 prompter: Optional[Prompter] = None, ready: bool = False):
        self.node = node
        self.key_store = key_store
        self.prompter = prompter
        self.ready = ready

    def should_announce(self) -> bool:
        return True

    def resolve_account(self, network_type: NetworkType, account: Optional[CertificatePair],
                        key_name: KeyName, node_name: Optional[str], operation_description: str,
                        generate_error_message: Optional[str] = None) -> Account:
        if account and account.private_key:
            return Account.create_from_private_key(account.private_key, network_type)
        if not node_name:
            return self.prompt_account(network_type, account, key_name, node_name,
                                       operation_description, generate_error_message)

        logger.info(
            "loading_node_key",
            key=KeyName(key_name).value,
            node_name=node_name,
            node_number=self.node.number,
            operation=operation_description,
        )
        stored = self.key_store.get_node_account(network_type, key_name, node_name, self.node.number, True)
        if account and stored.public_key.upper() != account.public_key.upper():
            raise AccountNotFoundError(
                f"Invalid public key for account {KeyName(key_name).value}. "
                f"Expected {account.public_key} but got {stored.public_key}"
            )
        return stored

    def prompt_account(self, network_type: NetworkType, account: Optional[CertificatePair],
                       key_name: KeyName, node_name: Optional[str], operation_description: str,
                       generate_error_message: Optional[str] = None) -> Account:
        key_label = KeyName(key_name).value
        if not account:
            if generate_error_message:
                raise AccountNotFoundError(generate_error_message)
            logger.info("generating_account", key=key_label)
            return Account.generate_new_account(network_type)

        if account.private_key:
            return Account.create_from_private_key(account.private_key, network_type)

        if self.ready or self.prompter is None:
            raise AccountNotFoundError(
                f"{key_label} private key is required when {operation_description}"
            )

        address = address_from_public_key(account.public_key, network_type)
        node_description = "of" if not node_name else f"of the Node's '{node_name}'"
        message = (
            f"Enter the 64 HEX private key {node_description} {key_label} account "
            f"with Address: {address} and Public Key: {account.public_key}"
        )
        while True:
            value = (self.prompter(message) or "").strip()
            if not value:
                logger.info("private_key_required", key=key_label)
                continue
            if not is_valid_private_key(value):
                logger.info("invalid_private_key", key=key_label)
                continue
            entered = Account.create_from_private_key(value.upper(), network_type)
            if entered.public_key != account.public_key.upper():
                logger.info(
                    "private_key_mismatch",
                    key=key_label,
                    expected_address=address,
                    entered_address=entered.address,
                )
                continue
            account.private_key = entered.private_key
            return entered


class NetworkVotingKeyFileProvider:
    """Serve the voting files of one node out of the key store."""

    def __init__(self, node: NodeInformation, key_store: KeyStore):
        self.node = node
        self.key_store = key_store

    def get_voting_key_file(self, network_type: NetworkType, node_name: str,
                            start_epoch: int, end_epoch: int) -> VotingKeyFileContent:
        return self.key_store.get_voting_key_file(network_type, node_name, self.node.number,
                                                  start_epoch, end_epoch)
