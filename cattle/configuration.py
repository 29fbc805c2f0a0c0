import os
import shutil
from typing import Any, Dict, Optional

import structlog

from .catalog import get_metadata
from .errors import ToolkitError, ValidationError
from .key_store import KeyStore
from .models import BasicNetworkFile, NetworkAccountName
from .network_utils import (
    DISTRIBUTION_FOLDER,
    NEMESIS_SEED_FOLDER,
    NETWORK_PRESET_FILE,
    NODES_FOLDER,
    deep_merge,
    is_yml_file,
    load_network,
    load_yaml,
    node_folder_name,
    remove_private_keys,
    save_network,
    write_yaml,
)
from .resolver import NetworkAccountResolver, NetworkVotingKeyFileProvider, Prompter
from .toolkit import BootstrapToolkit, ComposeRequest, ConfigRequest

logger = structlog.get_logger()

LEGACY_PRESET_KEYS = (
    "currencyMosaicId",
    "harvestingMosaicId",
    "statisticsServiceUrl",
    "harvestNetworkFeeSinkAddressV1",
    "mosaicRentalFeeSinkAddressV1",
    "namespaceRentalFeeSinkAddressV1",
)

CUSTOM_PRESET_FILE = "custom-preset.yml"


class ConfigurationService:
    """Keeps the network preset and the node folders up to date."""

    def __init__(self, working_dir: str, key_store: KeyStore, toolkit: BootstrapToolkit,
                 prompter: Optional[Prompter] = None):
        self.working_dir = os.path.abspath(working_dir)
        self.key_store = key_store
        self.toolkit = toolkit
        self.prompter = prompter

    def load_network_preset(self, preset: str) -> Dict[str, Any]:
        """Load a base preset: a ``.yml`` file of the working dir or a toolkit preset name."""
        if is_yml_file(preset):
            path = os.path.join(self.working_dir, preset)
            if not os.path.exists(path):
                raise ValidationError(f"Network preset file {path} does not exist")
            return load_yaml(path) or {}
        return self.toolkit.load_network_preset(preset)

    def update_network_preset(self, preset: str, network: BasicNetworkFile, save_as: str) -> Dict[str, Any]:
        """Resolve the network preset of a custom network and write it to ``save_as``."""
        network_preset = self.load_network_preset(preset)
        network_type = network.network_type
        if not network_type:
            raise ValidationError("networkType must be resolved!")

        nemesis_signer = self.key_store.get_network_account(network_type, NetworkAccountName.NEMESIS_SIGNER, True)
        harvest_sink = self.key_store.get_network_account(
            network_type, NetworkAccountName.HARVEST_NETWORK_FEE_SINK, True)
        namespace_sink = self.key_store.get_network_account(
            network_type, NetworkAccountName.NAMESPACE_RENTAL_FEE_SINK, True)
        mosaic_sink = self.key_store.get_network_account(
            network_type, NetworkAccountName.MOSAIC_RENTAL_FEE_SINK, True)

        for key in LEGACY_PRESET_KEYS:
            network_preset.pop(key, None)
        network_preset["totalVotingBalanceCalculationFix"] = 0
        network_preset["treasuryReissuance"] = 0
        network_preset["treasuryReissuanceEpoch"] = 0
        network_preset["nemesisSeedFolder"] = NEMESIS_SEED_FOLDER
        network_preset["lastKnownNetworkEpoch"] = 1
        network_preset["networkType"] = int(network_type)
        network_preset["nemesisSignerPublicKey"] = nemesis_signer.public_key
        network_preset["harvestNetworkFeeSinkAddress"] = harvest_sink.address
        network_preset["namespaceRentalFeeSinkAddress"] = namespace_sink.address
        network_preset["mosaicRentalFeeSinkAddress"] = mosaic_sink.address

        extra = network.model_extra or {}
        for key in ("knownRestGateways", "knownPeers"):
            if extra.get(key) is not None:
                network_preset[key] = extra[key]
            else:
                network_preset.pop(key, None)

        merged = deep_merge(network_preset, network.custom_network_preset)
        write_yaml(os.path.join(self.working_dir, save_as), merged)
        logger.info("network_preset_updated", file=save_as, network_type=int(network_type))
        return merged

    def _voting_key_lifetime(self, custom_preset: Dict[str, Any], network_preset: Dict[str, Any]) -> Optional[int]:
        node_preset = (custom_preset.get("nodes") or [{}])[0]
        return (
            node_preset.get("votingKeyDesiredLifetime")
            or custom_preset.get("votingKeyDesiredLifetime")
            or network_preset.get("votingKeyDesiredLifetime")
        )

    def update_nodes(self, node_password: Optional[str] = None, offline: bool = True,
                     compose_user: Optional[str] = None, zip: bool = False) -> None:
        """Create or upgrade the folder of every node of ``network.yml``."""
        network = load_network(self.working_dir)
        if not network.network_type:
            raise ValidationError("networkType must be resolved!")
        if not network.preset:
            raise ValidationError("preset must be resolved!")
        custom_network = is_yml_file(network.preset)
        if custom_network and not network.nemesis_seed_folder:
            raise ValidationError("nemesisSeedFolder must be provided when creating nodes for a custom network!")
        network_preset = self.load_network_preset(network.preset)

        for node in network.nodes:
            logger.info("node_update_started", number=node.number, hostname=node.hostname)
            node_folder = os.path.join(self.working_dir, NODES_FOLDER, node_folder_name(node.number))
            os.makedirs(node_folder, exist_ok=True)

            custom_preset = remove_private_keys(node.custom_preset)
            if not (custom_preset.get("nodes") or []):
                raise ValidationError(f"Custom preset of node {node.number} has no node entry")

            metadata = get_metadata(node.node_type)
            if metadata.demo:
                faucet_account = None
                if network.faucet_balances:
                    faucet_account = self.key_store.get_network_account(
                        network.network_type, NetworkAccountName.FAUCET, True)
                faucet = {"repeat": 1 if faucet_account else 0}
                if faucet_account:
                    faucet["privateKey"] = faucet_account.private_key
                existing = (custom_preset.get("faucets") or [{}])[0]
                custom_preset["faucets"] = [deep_merge(faucet, existing)]

            if network.nemesis_seed_folder:
                custom_preset["nemesisSeedFolder"] = network.nemesis_seed_folder
                destination = os.path.join(node_folder, network.nemesis_seed_folder)
                if os.path.exists(destination):
                    shutil.rmtree(destination)
                shutil.copytree(os.path.join(self.working_dir, network.nemesis_seed_folder), destination)

            write_yaml(os.path.join(node_folder, CUSTOM_PRESET_FILE), custom_preset)
            if custom_network:
                write_yaml(os.path.join(node_folder, NETWORK_PRESET_FILE), network_preset)

            target = os.path.join(node_folder, "target")
            result = self.toolkit.config(ConfigRequest(
                working_dir=node_folder,
                target=target,
                preset=network.preset,
                assembly=node.assembly,
                network_type=network.network_type,
                custom_preset=custom_preset,
                account_resolver=NetworkAccountResolver(node, self.key_store, self.prompter),
                voting_key_file_provider=NetworkVotingKeyFileProvider(node, self.key_store),
                voting_key_lifetime=self._voting_key_lifetime(custom_preset, network_preset),
                password=node_password,
                offline=offline,
                upgrade=True,
            ))
            self.toolkit.compose(ComposeRequest(
                working_dir=node_folder,
                target=target,
                user=compose_user,
                password=node_password,
                offline=offline,
                upgrade=True,
            ))

            node_addresses = ((result.addresses or {}).get("nodes") or [None])[0]
            if not node_addresses:
                raise ToolkitError(f"Addresses of node {node.number} have not been resolved by the toolkit")
            node.addresses = remove_private_keys(node_addresses)

            if zip:
                distribution = os.path.join(self.working_dir, DISTRIBUTION_FOLDER)
                os.makedirs(distribution, exist_ok=True)
                archive = shutil.make_archive(os.path.join(distribution, node.hostname), "zip", root_dir=node_folder)
                logger.info("node_distribution_created", number=node.number, archive=archive)

            logger.info("node_update_finished", number=node.number, hostname=node.hostname)

        save_network(self.working_dir, network)
