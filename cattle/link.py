import os
from typing import Optional

import structlog

from .key_store import KeyStore
from .network_utils import NODES_FOLDER, load_network, node_folder_name
from .resolver import NetworkAccountResolver
from .toolkit import BootstrapToolkit, LinkRequest

logger = structlog.get_logger()


class LinkService:
    """Announce the key link transactions of every node to an existing network."""

    def __init__(self, working_dir: str, key_store: KeyStore, toolkit: BootstrapToolkit):
        self.working_dir = os.path.abspath(working_dir)
        self.key_store = key_store
        self.toolkit = toolkit

    def link_nodes(self, password: Optional[str] = None, unlink: bool = False, max_fee: Optional[int] = None,
                   url: Optional[str] = None, service_provider_public_key: Optional[str] = None) -> int:
        network = load_network(self.working_dir)
        for node in network.nodes:
            target = os.path.join(self.working_dir, NODES_FOLDER, node_folder_name(node.number), "target")
            logger.info("node_link_started", number=node.number, friendly_name=node.friendly_name, unlink=unlink)
            self.toolkit.link(LinkRequest(
                target=target,
                account_resolver=NetworkAccountResolver(node, self.key_store, ready=True),
                password=password,
                unlink=unlink,
                max_fee=max_fee,
                url=url,
                use_known_rest_gateways=url is None,
                ready=True,
                service_provider_public_key=service_provider_public_key,
            ))
        return len(network.nodes)
