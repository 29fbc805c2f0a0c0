"""Data model for the files cattle reads and writes.

File keys are camelCase. Unknown keys are kept so a document survives a
load/save cycle untouched.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .catalog import NodeMetadataType, RestProtocol
from .crypto import Account, NetworkType

DEFAULT_FRIENDLY_NAME_PATTERN = "$suffix-$nickname-$friendlyNumber"


class NetworkAccountName(str, Enum):
    """Accounts owned by the network rather than by a node."""
    NEMESIS_SIGNER = "nemesisSigner"
    FOUNDER = "founder"
    FAUCET = "faucet"
    HARVEST_NETWORK_FEE_SINK = "harvestNetworkFeeSink"
    NAMESPACE_RENTAL_FEE_SINK = "namespaceRentalFeeSink"
    MOSAIC_RENTAL_FEE_SINK = "mosaicRentalFeeSink"


class CattleModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_file_dict(self) -> Dict[str, Any]:
        """Render the model the way it is stored on disk."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class NodeTypeInput(CattleModel):
    """One group of identical nodes in the network input file."""
    nick_name: str
    node_type: NodeMetadataType
    count: int = Field(ge=0)
    balances: List[int] = Field(default_factory=list)
    rest_protocol: Optional[RestProtocol] = None
    region_index: Optional[int] = Field(default=None, ge=0)


class CurrencyDistribution(CattleModel):
    address: str
    amount: int = Field(ge=0)


class BasicNetworkFile(CattleModel):
    """Fields shared by the network input file and the network file."""
    preset: Optional[str] = None
    clone_from_preset: Optional[str] = None
    network_type: Optional[NetworkType] = None
    is_new_network: bool = False
    nemesis_seed_folder: Optional[str] = None
    faucet_balances: Optional[List[int]] = None
    additional_currency_distributions: Optional[List[List[CurrencyDistribution]]] = None
    domain: str = ""
    suffix: str = ""
    friendly_name_pattern: Optional[str] = None
    custom_network_preset: Optional[Dict[str, Any]] = None

    def get_friendly_name_pattern(self) -> str:
        return self.friendly_name_pattern or DEFAULT_FRIENDLY_NAME_PATTERN


class NetworkInputFile(BasicNetworkFile):
    node_types: List[NodeTypeInput] = Field(default_factory=list)


class NodeInformation(CattleModel):
    """A fully enumerated node of the cluster."""
    number: int = Field(ge=1)
    nick_name: str
    node_type: NodeMetadataType
    friendly_name: str
    hostname: str
    assembly: str
    rest_protocol: Optional[RestProtocol] = None
    region_index: Optional[int] = None
    balances: List[int] = Field(default_factory=list)
    custom_preset: Dict[str, Any] = Field(default_factory=dict)
    addresses: Optional[Dict[str, Any]] = None


class NetworkFile(BasicNetworkFile):
    nodes: List[NodeInformation] = Field(default_factory=list)


class StoredAccount(CattleModel):
    private_key: str
    public_key: str
    address: str

    @classmethod
    def from_account(cls, account: Account) -> "StoredAccount":
        return cls(
            private_key=account.private_key,
            public_key=account.public_key,
            address=account.address,
        )

    def to_account(self, network_type: NetworkType) -> Account:
        return Account.create_from_private_key(self.private_key, network_type)


class StoredVotingFile(CattleModel):
    public_key: str
    private_file_content: str


class KeyStorage(CattleModel):
    """Everything the key store persists."""
    network: Dict[str, StoredAccount] = Field(default_factory=dict)
    nodes: Dict[str, Dict[str, StoredAccount]] = Field(default_factory=dict)
    voting_files: Dict[str, StoredVotingFile] = Field(default_factory=dict)


class LinkKind(Enum):
    """Link transaction kinds, ordered as they appear in the genesis ledger."""
    VRF = 1
    REMOTE = 2
    VOTING = 3

    @property
    def label(self) -> str:
        return "VRF" if self is LinkKind.VRF else self.name.capitalize()


class LedgerKey(NamedTuple):
    type_number: int
    type: str
    node_number: int

    def __str__(self) -> str:
        return f"{self.type_number}_{self.type}_{self.node_number:05d}"


class TransactionInformation(CattleModel):
    node_number: int
    type: str
    type_number: int
    payload: str

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(self.type_number, self.type, self.node_number)


class NemesisMosaic(CattleModel):
    accounts: List[str] = Field(default_factory=list)
    currency_distributions: List[CurrencyDistribution] = Field(default_factory=list)


@dataclass
class GenesisDescriptor:
    """The genesis block description handed to the toolkit."""
    nemesis_signer_private_key: str
    mosaics: List[NemesisMosaic]
    transactions: Dict[LedgerKey, TransactionInformation] = field(default_factory=dict)
    faucet_repeat: int = 0
    faucet_private_key: Optional[str] = None
    target: Optional[str] = None

    def add_transaction(self, transaction: TransactionInformation) -> None:
        self.transactions[transaction.ledger_key] = transaction

    def sorted_transactions(self) -> Dict[str, str]:
        return {
            str(key): self.transactions[key].payload
            for key in sorted(self.transactions)
        }

    def to_custom_preset(self) -> Dict[str, Any]:
        """Render the custom preset the toolkit needs to build the genesis block."""
        faucet: Dict[str, Any] = {"repeat": self.faucet_repeat}
        if self.faucet_private_key:
            faucet["compose"] = {"environment": {"FAUCET_PRIVATE_KEY": self.faucet_private_key}}
        return {
            "nemesisSeedFolder": "",
            "nodes": [{
                "voting": False,
                "excludeFromNemesis": True,
                "friendlyName": "nemesis-private-node",
            }],
            "nemesis": {
                "nemesisSignerPrivateKey": self.nemesis_signer_private_key,
                "mosaics": [mosaic.to_file_dict() for mosaic in self.mosaics],
                "transactions": self.sorted_transactions(),
            },
            "faucets": [faucet],
        }
