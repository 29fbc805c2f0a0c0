"""Expansion of the compact network input into an enumerated node list."""

from collections import Counter
from typing import Any, Dict, List, Tuple

import structlog
from pydantic.alias_generators import to_camel

from .catalog import RestProtocol, get_metadata
from .errors import DuplicateIdentifierError, ValidationError
from .models import NetworkFile, NetworkInputFile, NodeInformation, NodeTypeInput
from .network_utils import (
    NETWORK_FILE,
    load_network_input,
    resolve_explorer_url,
    resolve_rest_url,
    save_network,
    zero_pad,
)

logger = structlog.get_logger()

PROMPT_MAIN_TRANSPORT = "PROMPT_MAIN_TRANSPORT"

# node fields (and their file keys) a node type group cannot override
RESERVED_NODE_KEYS = frozenset(
    list(NodeInformation.model_fields) + [to_camel(name) for name in NodeInformation.model_fields]
)


def render_friendly_name(pattern: str, suffix: str, nickname: str, friendly_number: str) -> str:
    """Fill the first occurrence of each placeholder of ``pattern``."""
    for key, value in (("suffix", suffix), ("nickname", nickname), ("friendlyNumber", friendly_number)):
        pattern = pattern.replace(f"${key}", value, 1)
    return pattern


def build_custom_preset(group: NodeTypeInput, friendly_name: str, hostname: str) -> Dict[str, Any]:
    """The per node fragment handed to the toolkit."""
    metadata = get_metadata(group.node_type)
    custom_preset: Dict[str, Any] = {
        "privateKeySecurityMode": PROMPT_MAIN_TRANSPORT,
        "nodes": [{
            "friendlyName": friendly_name,
            "host": hostname,
            "voting": metadata.voting,
            "harvesting": metadata.harvesting,
            "dockerComposeDebugMode": False,
            "brokerDockerComposeDebugMode": False,
        }],
    }
    if metadata.api and group.rest_protocol == RestProtocol.HTTPS_ONLY:
        custom_preset["gateways"] = [{"openPort": False}]
        custom_preset["httpsProxies"] = [{"excludeDockerService": False}]
    if metadata.api and group.rest_protocol == RestProtocol.HTTP_AND_HTTPS:
        custom_preset["gateways"] = [{"openPort": True}]
        custom_preset["httpsProxies"] = [{"excludeDockerService": False}]
    if metadata.demo:
        custom_preset["wallets"] = [{"repeat": 0}]
        custom_preset["faucets"] = [{
            "compose": {
                "environment": {
                    "DEFAULT_NODE_CLIENT": resolve_rest_url(hostname, group.rest_protocol),
                    "EXPLORER_URL": resolve_explorer_url(hostname),
                },
            },
        }]
    return custom_preset


def _check_unique(nodes: List[NodeInformation]) -> None:
    for field_name, label in (("friendly_name", "friendlyNames"), ("hostname", "hostnames")):
        counts = Counter(getattr(node, field_name) for node in nodes)
        duplicates = [value for value, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicateIdentifierError(label, duplicates)


def expand_nodes(network_input: NetworkInputFile) -> NetworkFile:
    """Enumerate every node described by ``network_input``.

    Nodes are numbered from 1 in declaration order. Each nickname/region pair
    keeps its own counter, which feeds the ``$friendlyNumber`` placeholder.
    """
    pattern = network_input.get_friendly_name_pattern()
    counters: Dict[Tuple[str, int], int] = {}
    nodes: List[NodeInformation] = []

    for group in network_input.node_types:
        metadata = get_metadata(group.node_type)
        region_index = group.region_index or 0
        for _ in range(group.count):
            counter_key = (group.nick_name, region_index)
            counters[counter_key] = counters.get(counter_key, 0) + 1
            friendly_number = f"{region_index}{zero_pad(counters[counter_key], 2)}"
            friendly_name = render_friendly_name(pattern, network_input.suffix, group.nick_name, friendly_number)
            hostname = f"{friendly_name}.{network_input.domain}"

            extra = group.model_extra or {}
            clashing = sorted(key for key in extra if key in RESERVED_NODE_KEYS)
            if clashing:
                raise ValidationError(
                    f"Node type '{group.nick_name}' cannot define {', '.join(clashing)}, "
                    "they are computed when expanding the nodes"
                )
            nodes.append(NodeInformation(
                number=len(nodes) + 1,
                nick_name=group.nick_name,
                node_type=group.node_type,
                friendly_name=friendly_name,
                hostname=hostname,
                assembly=metadata.get_assembly(),
                rest_protocol=group.rest_protocol,
                balances=list(group.balances),
                custom_preset=build_custom_preset(group, friendly_name, hostname),
                region_index=group.region_index,
                **extra,
            ))

    _check_unique(nodes)

    data = network_input.model_dump(by_alias=False, exclude={"node_types"})
    return NetworkFile(**data, nodes=nodes)


class TopologyService:
    """Load ``network-input.yml``, expand it and write ``network.yml``."""

    def __init__(self, working_dir: str):
        self.working_dir = working_dir

    def expand_nodes(self) -> NetworkFile:
        network_input = load_network_input(self.working_dir)
        if not network_input.node_types:
            raise ValidationError("nodeTypes must be provided in the network input file")
        network = expand_nodes(network_input)
        save_network(self.working_dir, network)
        logger.info("network_expanded", file=NETWORK_FILE, nodes=len(network.nodes))
        return network
