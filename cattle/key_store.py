"""Persistent key material for the network and its nodes.

Every key handed out by a store is remembered, so asking for the same key
twice returns the same key pair. The local store keeps everything in a single
``key-store.yml`` that is encrypted when a password is given.
"""

import base64
import hashlib
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Callable, NamedTuple, Optional, Union

import structlog
import yaml

from .crypto import Account, KeyName, NetworkType
from .encryption import DocumentCipher, is_encrypted_document
from .errors import (
    AccountNotFoundError,
    EpochMismatchError,
    KeyStoreConflictError,
    KeyStoreError,
    KeyStoreNotFoundError,
)
from .models import KeyStorage, NetworkAccountName, StoredAccount, StoredVotingFile
from .network_utils import KEY_STORE_FILE
from .voting import create_voting_file, read_voting_file

logger = structlog.get_logger()

DEFAULT_KDF_ITERATIONS = 200_000

PasswordSource = Union[None, str, Callable[[], Optional[str]]]


class VotingKeyFileContent(NamedTuple):
    public_key: str
    start_epoch: int
    end_epoch: int
    private_file_content: bytes


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


class KeyStore(ABC):
    """Source of every private key cattle uses."""

    @abstractmethod
    def get_network_account(self, network_type: NetworkType, account_name: NetworkAccountName,
                            generate: bool) -> Account:
        """Return a network owned account, generating it when allowed."""

    @abstractmethod
    def save_network_account(self, network_type: NetworkType, account_name: NetworkAccountName,
                             private_key: str) -> None:
        """Store (or replace) a network owned account."""

    @abstractmethod
    def get_node_account(self, network_type: NetworkType, key_name: KeyName, node_name: str,
                         node_number: int, generate: bool) -> Account:
        """Return one of the keys of a node, generating it when allowed."""

    @abstractmethod
    def get_voting_key_file(self, network_type: NetworkType, node_name: str, node_number: int,
                            start_epoch: int, end_epoch: int) -> VotingKeyFileContent:
        """Return the voting file of a node for exactly ``[start_epoch, end_epoch]``."""


class LocalFileKeyStore(KeyStore):
    """Key store backed by ``key-store.yml`` in the working directory."""

    def __init__(self, password: Optional[str], must_exist: bool, working_dir: str,
                 kdf_iterations: int = DEFAULT_KDF_ITERATIONS):
        self.working_dir = working_dir
        self.storage_file = os.path.join(working_dir, KEY_STORE_FILE)
        self._cipher = DocumentCipher(password, kdf_iterations) if password else None
        self._fingerprint: Optional[str] = None

        exists = os.path.exists(self.storage_file)
        if not exists and must_exist:
            raise KeyStoreNotFoundError(
                f"Storage file {os.path.abspath(self.storage_file)} does not exist!"
            )
        self.storage = self._load() if exists else KeyStorage()

    # Persistence

    def _read_bytes(self) -> bytes:
        with open(self.storage_file, "rb") as f:
            return f.read()

    def _load(self) -> KeyStorage:
        raw = self._read_bytes()
        self._fingerprint = hashlib.sha256(raw).hexdigest()
        try:
            document = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise KeyStoreError(f"Key store {self.storage_file} is not valid YAML: {e}") from e

        if is_encrypted_document(document):
            if not self._cipher:
                raise KeyStoreError(
                    f"Key store {self.storage_file} is encrypted. A password is required."
                )
            plaintext = self._cipher.decrypt(document)
            try:
                document = yaml.safe_load(plaintext.decode("utf-8")) or {}
            except (UnicodeDecodeError, yaml.YAMLError) as e:
                raise KeyStoreError("Key store cannot be decrypted. Is the password correct?") from e
        elif self._cipher:
            logger.warning("key_store_not_encrypted", path=self.storage_file)

        if not isinstance(document, dict):
            raise KeyStoreError(f"Key store {self.storage_file} has an unexpected format")
        return KeyStorage.model_validate(document)

    def _serialize(self) -> bytes:
        plaintext = yaml.safe_dump(self.storage.to_file_dict(), sort_keys=False).encode("utf-8")
        if not self._cipher:
            return plaintext
        envelope = self._cipher.encrypt(plaintext)
        return yaml.safe_dump(envelope, sort_keys=False).encode("utf-8")

    def _check_conflict(self) -> None:
        exists = os.path.exists(self.storage_file)
        if self._fingerprint is None:
            if exists:
                raise KeyStoreConflictError(
                    f"Key store {self.storage_file} was created by another process"
                )
            return
        if not exists or hashlib.sha256(self._read_bytes()).hexdigest() != self._fingerprint:
            raise KeyStoreConflictError(
                f"Key store {self.storage_file} changed since it was loaded"
            )

    def save(self) -> None:
        """Atomically rewrite the key store."""
        self._check_conflict()
        data = self._serialize()
        os.makedirs(self.working_dir or ".", exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.working_dir or ".", prefix=".key-store.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.storage_file)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        self._fingerprint = hashlib.sha256(data).hexdigest()
        if not self._cipher:
            logger.warning("key_store_saved_unencrypted", path=self.storage_file)
        else:
            logger.debug("key_store_saved", path=self.storage_file)

    # Generation hooks

    def _generate_new_account(self, generate: bool, network_type: NetworkType) -> Account:
        if not generate:
            raise AccountNotFoundError("Account cannot be generated!!")
        return Account.generate_new_account(network_type)

    def _create_voting_key_file(self, voting_account: Account, node_name: str,
                                start_epoch: int, end_epoch: int) -> bytes:
        return create_voting_file(voting_account.private_key, start_epoch, end_epoch)

    # KeyStore

    def get_network_account(self, network_type, account_name, generate):
        name = _enum_value(account_name)
        stored = self.storage.network.get(name)
        if stored:
            return stored.to_account(network_type)
        account = self._generate_new_account(generate, network_type)
        self.storage.network[name] = StoredAccount.from_account(account)
        self.save()
        logger.info("network_account_generated", account=name, address=account.address)
        return account

    def save_network_account(self, network_type, account_name, private_key):
        name = _enum_value(account_name)
        account = Account.create_from_private_key(private_key, network_type)
        self.storage.network[name] = StoredAccount.from_account(account)
        self.save()
        logger.info("network_account_saved", account=name, address=account.address)

    def get_node_account(self, network_type, key_name, node_name, node_number, generate):
        node_key = f"{node_name}-{node_number}"
        name = _enum_value(key_name)
        stored = self.storage.nodes.get(node_key, {}).get(name)
        if stored:
            return stored.to_account(network_type)
        account = self._generate_new_account(generate, network_type)
        self.storage.nodes.setdefault(node_key, {})[name] = StoredAccount.from_account(account)
        self.save()
        logger.info("node_account_generated", node=node_key, key=name, public_key=account.public_key)
        return account

    def get_voting_key_file(self, network_type, node_name, node_number, start_epoch, end_epoch):
        file_key = f"{node_name}-{node_number}-{start_epoch}-{end_epoch}"
        stored = self.storage.voting_files.get(file_key)
        if stored:
            content = base64.b64decode(stored.private_file_content)
            info = read_voting_file(content)
            if info.start_epoch != start_epoch:
                raise EpochMismatchError("startEpoch", start_epoch, info.start_epoch)
            if info.end_epoch != end_epoch:
                raise EpochMismatchError("endEpoch", end_epoch, info.end_epoch)
            return VotingKeyFileContent(info.public_key, info.start_epoch, info.end_epoch, content)

        voting_account = self._generate_new_account(True, network_type)
        content = self._create_voting_key_file(voting_account, node_name, start_epoch, end_epoch)
        self.storage.voting_files[file_key] = StoredVotingFile(
            public_key=voting_account.public_key,
            private_file_content=base64.b64encode(content).decode("utf-8"),
        )
        self.save()
        logger.info("voting_key_file_generated", node=file_key, public_key=voting_account.public_key)
        return VotingKeyFileContent(voting_account.public_key, start_epoch, end_epoch, content)


class LazyKeyStore(KeyStore):
    """Build the real store on first use."""

    def __init__(self, factory: Callable[[], KeyStore]):
        self._factory = factory
        self._delegate: Optional[KeyStore] = None

    @property
    def delegate(self) -> KeyStore:
        if self._delegate is None:
            self._delegate = self._factory()
        return self._delegate

    def get_network_account(self, network_type, account_name, generate):
        return self.delegate.get_network_account(network_type, account_name, generate)

    def save_network_account(self, network_type, account_name, private_key):
        return self.delegate.save_network_account(network_type, account_name, private_key)

    def get_node_account(self, network_type, key_name, node_name, node_number, generate):
        return self.delegate.get_node_account(network_type, key_name, node_name, node_number, generate)

    def get_voting_key_file(self, network_type, node_name, node_number, start_epoch, end_epoch):
        return self.delegate.get_voting_key_file(network_type, node_name, node_number, start_epoch, end_epoch)


def create_store(password: PasswordSource, working_dir: str, lazy: bool = True,
                 must_exist: bool = False, kdf_iterations: int = DEFAULT_KDF_ITERATIONS) -> KeyStore:
    """Create the key store of a working directory.

    ``password`` may be a callable; it is only called when the store is
    actually opened, which lets a lazy store prompt on first use.
    """
    def factory() -> KeyStore:
        resolved = password() if callable(password) else password
        return LocalFileKeyStore(resolved, must_exist, working_dir, kdf_iterations)

    return LazyKeyStore(factory) if lazy else factory()
