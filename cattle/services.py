from typing import Dict, List

from .catalog import RestProtocol, get_metadata
from .models import NetworkFile
from .network_utils import (
    PEER_PORT,
    resolve_explorer_url,
    resolve_faucet_url,
    resolve_http_rest_url,
    resolve_rest_url,
)


def list_services(network: NetworkFile) -> Dict[str, List[str]]:
    """Map each node hostname to the service endpoints it exposes."""
    services: Dict[str, List[str]] = {}
    for node in network.nodes:
        hostname = node.hostname
        metadata = get_metadata(node.node_type)
        lines = []
        if metadata.peer:
            lines.append(f"Server Peer - {hostname} {PEER_PORT}")
        if metadata.api:
            if node.rest_protocol == RestProtocol.HTTP_AND_HTTPS:
                lines.append(f"Rest - {resolve_http_rest_url(hostname)}")
                lines.append(f"Rest - {resolve_rest_url(hostname, RestProtocol.HTTPS_ONLY)}")
            else:
                lines.append(f"Rest - {resolve_rest_url(hostname, node.rest_protocol)}")
        if metadata.demo:
            lines.append(f"Explorer - {resolve_explorer_url(hostname)}")
            lines.append(f"Faucet - {resolve_faucet_url(hostname)}")
        services[hostname] = lines
    return services
