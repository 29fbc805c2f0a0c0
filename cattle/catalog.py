"""Catalog of the node archetypes a cluster can be built from.

The catalog is a read only mapping from :class:`NodeMetadataType` to a frozen
:class:`NodeTypeMetadata`. It is built once at import time.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class NodeMetadataType(str, Enum):
    """Node archetypes."""
    VOTING_DUAL = "VotingDual"
    VOTING_PEER = "VotingPeer"
    VOTING_API = "VotingApi"
    HARVESTING_DUAL = "HarvestingDual"
    HARVESTING_PEER = "HarvestingPeer"
    SERVICES = "Services"
    PEER = "Peer"
    API = "Api"
    HARVESTING_DEMO = "HarvestingDemo"
    VOTING_NON_HARVESTING_PEER = "VotingNonHarvestingPeer"


class RestProtocol(str, Enum):
    """How the REST gateway of an API node is exposed."""
    HTTP_ONLY = "HttpOnly"
    HTTPS_ONLY = "HttpsOnly"
    HTTP_AND_HTTPS = "HttpAndHttps"


class NodeTypeMetadata(BaseModel):
    """Role flags and suggestions for one node archetype."""

    model_config = ConfigDict(frozen=True)

    name: str
    balances: Tuple[int, ...]
    api: bool
    peer: bool
    harvesting: bool
    voting: bool
    demo: bool
    services: bool = False
    nick_name: str
    assembly: Optional[str] = None
    suggested_count: int

    def get_assembly(self) -> str:
        """Resolve the deployment assembly for this archetype."""
        if self.assembly:
            return self.assembly
        if self.api and self.peer:
            return "dual"
        return "api" if self.api else "peer"


NODES_METADATA: Mapping[NodeMetadataType, NodeTypeMetadata] = MappingProxyType({
    NodeMetadataType.VOTING_DUAL: NodeTypeMetadata(
        name="Voting Dual",
        balances=(3_000_000, 150),
        voting=True,
        harvesting=True,
        demo=False,
        api=True,
        peer=True,
        nick_name="dual",
        suggested_count=3,
    ),
    NodeMetadataType.VOTING_PEER: NodeTypeMetadata(
        name="Voting Peer",
        balances=(3_000_000, 150),
        voting=True,
        harvesting=True,
        demo=False,
        api=False,
        peer=True,
        nick_name="beacon",
        suggested_count=3,
    ),
    NodeMetadataType.VOTING_API: NodeTypeMetadata(
        name="Voting Api",
        balances=(3_000_000, 150),
        voting=True,
        harvesting=False,
        demo=False,
        api=False,
        peer=True,
        nick_name="beacon",
        suggested_count=3,
    ),
    NodeMetadataType.HARVESTING_DUAL: NodeTypeMetadata(
        name="Harvesting Dual",
        balances=(1_000_000, 150),
        voting=False,
        harvesting=True,
        demo=False,
        api=True,
        peer=True,
        nick_name="dual",
        suggested_count=3,
    ),
    NodeMetadataType.HARVESTING_PEER: NodeTypeMetadata(
        name="Harvesting Peer",
        balances=(1_000_000, 150),
        voting=False,
        harvesting=True,
        demo=False,
        api=False,
        peer=True,
        nick_name="beacon",
        suggested_count=3,
    ),
    NodeMetadataType.SERVICES: NodeTypeMetadata(
        name="Services",
        balances=(),
        voting=False,
        harvesting=False,
        demo=False,
        api=False,
        peer=False,
        services=True,
        nick_name="services",
        assembly="services",
        suggested_count=1,
    ),
    NodeMetadataType.PEER: NodeTypeMetadata(
        name="Peer",
        balances=(1_000, 0),
        voting=False,
        harvesting=False,
        demo=False,
        api=False,
        peer=True,
        nick_name="peer",
        suggested_count=3,
    ),
    NodeMetadataType.API: NodeTypeMetadata(
        name="Api",
        balances=(1_000, 0),
        voting=False,
        harvesting=False,
        demo=False,
        api=True,
        peer=False,
        nick_name="api",
        suggested_count=3,
    ),
    NodeMetadataType.HARVESTING_DEMO: NodeTypeMetadata(
        name="Harvesting Demo",
        balances=(1_000_000, 150),
        voting=False,
        harvesting=True,
        demo=True,
        api=True,
        peer=True,
        assembly="demo",
        nick_name="demo",
        suggested_count=1,
    ),
    NodeMetadataType.VOTING_NON_HARVESTING_PEER: NodeTypeMetadata(
        name="Non Harvesting Voting Peer",
        balances=(51_000_000, 0),
        voting=True,
        harvesting=False,
        demo=False,
        api=False,
        peer=True,
        nick_name="peer",
        suggested_count=3,
    ),
})


def get_metadata(node_type) -> NodeTypeMetadata:
    """Look up the catalog entry for a node type (enum member or its value)."""
    return NODES_METADATA[NodeMetadataType(node_type)]
