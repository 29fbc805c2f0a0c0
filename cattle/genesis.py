"""Genesis (nemesis block) assembly for a brand-new network."""

import os
import shutil
from typing import Any, Dict, List, Optional

import structlog

from .catalog import get_metadata
from .configuration import ConfigurationService
from .crypto import KeyName
from .errors import (
    AlreadyGeneratedError,
    NoCandidateNodeError,
    ToolkitError,
    UnresolvedConfigValueError,
    ValidationError,
)
from .key_store import KeyStore
from .models import (
    CurrencyDistribution,
    GenesisDescriptor,
    LinkKind,
    NemesisMosaic,
    NetworkAccountName,
    NetworkFile,
    NodeInformation,
    TransactionInformation,
)
from .network_utils import (
    DISTRIBUTION_FOLDER,
    NEMESIS_SEED_FOLDER,
    NEMESIS_TARGET_FOLDER,
    NODES_FOLDER,
    PEER_PORT,
    is_yml_file,
    load_network,
    resolve_rest_url,
    save_network,
    write_yaml,
)
from .resolver import NetworkAccountResolver, Prompter
from .toolkit import BootstrapToolkit, ComposeRequest, ConfigRequest
from .transaction import KeyLinkTransaction

logger = structlog.get_logger()

GENESIS_NODE_NAME = "node"
GENESIS_ASSEMBLY = "demo"


def scale_amount(amount: int, divisibility: Optional[int]) -> int:
    """Convert a whole-unit amount to atomic units."""
    if divisibility is None:
        raise UnresolvedConfigValueError("divisibility", "Divisibility should be defined!!")
    return amount * 10 ** int(divisibility)


def node_roles(node: NodeInformation) -> str:
    metadata = get_metadata(node.node_type)
    roles = []
    if metadata.api:
        roles.append("Api")
    if metadata.peer:
        roles.append("Peer")
    if metadata.voting:
        roles.append("Voting")
    return ",".join(roles)


class GenesisService:
    """Build the nemesis block of a new network.

    All key material comes from the key store, so running the generation
    twice against the same store produces the same balances and the same
    link transactions.
    """

    def __init__(self, working_dir: str, key_store: KeyStore, toolkit: BootstrapToolkit,
                 prompter: Optional[Prompter] = None):
        self.working_dir = os.path.abspath(working_dir)
        self.key_store = key_store
        self.toolkit = toolkit
        self.prompter = prompter

    def _check_preconditions(self, network: NetworkFile, regenerate: bool) -> None:
        if not is_yml_file(network.preset) or not network.is_new_network:
            raise ValidationError("You are creating nodes for an existing network. Nemesis cannot be generated!")
        if not network.network_type:
            raise ValidationError("networkType must be resolved!")
        seed_folder = network.nemesis_seed_folder
        if seed_folder and os.path.exists(os.path.join(self.working_dir, seed_folder)) and not regenerate:
            raise AlreadyGeneratedError("The nemesis block has been previously generated. Use --regenerate.")

    def _add_balances(self, balances: Dict[int, List[CurrencyDistribution]], mosaics: List[Dict[str, Any]],
                      address: str, amounts: Optional[List[int]]) -> None:
        amounts = amounts or []
        for mosaic_index, mosaic in enumerate(mosaics):
            amount = amounts[mosaic_index] if mosaic_index < len(amounts) else 0
            if amount:
                balances[mosaic_index].append(CurrencyDistribution(
                    address=address,
                    amount=scale_amount(amount, mosaic.get("divisibility")),
                ))

    def build_descriptor(self, network: NetworkFile, network_preset: Dict[str, Any]) -> GenesisDescriptor:
        """Compute balances, link transactions and known peers of the genesis block.

        ``network_preset`` receives ``knownPeers`` and ``knownRestGateways``.
        """
        network_type = network.network_type
        generation_hash_seed = network_preset.get("nemesisGenerationHashSeed")
        if not generation_hash_seed:
            raise UnresolvedConfigValueError("nemesisGenerationHashSeed")
        nemesis = network_preset.get("nemesis")
        if not nemesis:
            raise UnresolvedConfigValueError("nemesis", "Nemesis must be resolved from network preset!")
        mosaics = nemesis.get("mosaics")
        if not mosaics:
            raise UnresolvedConfigValueError("mosaics", "Network nemesis's mosaics must be found!")

        founder = self.key_store.get_network_account(network_type, NetworkAccountName.FOUNDER, True)
        balances: Dict[int, List[CurrencyDistribution]] = {index: [] for index in range(len(mosaics))}
        transactions: List[TransactionInformation] = []
        known_peers = []
        known_rest_gateways = []

        for node in network.nodes:
            metadata = get_metadata(node.node_type)
            if metadata.services:
                continue
            logger.info("genesis_node_started", number=node.number, hostname=node.hostname)

            main = self.key_store.get_node_account(network_type, KeyName.MAIN, GENESIS_NODE_NAME, node.number, True)
            vrf = self.key_store.get_node_account(network_type, KeyName.VRF, GENESIS_NODE_NAME, node.number, True)
            remote = self.key_store.get_node_account(
                network_type, KeyName.REMOTE, GENESIS_NODE_NAME, node.number, True)

            known_peers.append({
                "publicKey": main.public_key,
                "endpoint": {"host": node.hostname, "port": PEER_PORT},
                "metadata": {"name": node.friendly_name, "roles": node_roles(node)},
            })
            if metadata.api:
                known_rest_gateways.append(resolve_rest_url(node.hostname, node.rest_protocol))

            self._add_balances(balances, mosaics, main.address, node.balances)

            links = [
                (LinkKind.VRF, KeyLinkTransaction.vrf(vrf.public_key, network_type)),
                (LinkKind.REMOTE, KeyLinkTransaction.remote(remote.public_key, network_type)),
            ]
            if metadata.voting:
                lifetime = node.custom_preset.get("votingKeyDesiredLifetime") \
                    or network_preset.get("votingKeyDesiredLifetime")
                if not lifetime:
                    raise UnresolvedConfigValueError("votingKeyDesiredLifetime")
                voting_file = self.key_store.get_voting_key_file(
                    network_type, GENESIS_NODE_NAME, node.number, 1, int(lifetime))
                links.append((LinkKind.VOTING, KeyLinkTransaction.voting(
                    voting_file.public_key, voting_file.start_epoch, voting_file.end_epoch, network_type)))

            for kind, transaction in links:
                transactions.append(TransactionInformation(
                    node_number=node.number,
                    type=kind.label,
                    type_number=kind.value,
                    payload=transaction.sign(main, generation_hash_seed).payload,
                ))

        faucet = None
        if network.faucet_balances:
            faucet = self.key_store.get_network_account(network_type, NetworkAccountName.FAUCET, True)
            self._add_balances(balances, mosaics, faucet.address, network.faucet_balances)

        for mosaic_index, distributions in enumerate(network.additional_currency_distributions or []):
            if mosaic_index >= len(mosaics) or not distributions:
                continue
            divisibility = mosaics[mosaic_index].get("divisibility")
            for distribution in distributions:
                balances[mosaic_index].append(CurrencyDistribution(
                    address=distribution.address,
                    amount=scale_amount(distribution.amount, divisibility),
                ))

        nemesis_signer = self.key_store.get_network_account(network_type, NetworkAccountName.NEMESIS_SIGNER, False)
        network_preset["knownPeers"] = known_peers
        network_preset["knownRestGateways"] = known_rest_gateways

        descriptor = GenesisDescriptor(
            nemesis_signer_private_key=nemesis_signer.private_key,
            mosaics=[
                NemesisMosaic(accounts=[founder.public_key], currency_distributions=balances[index])
                for index in range(len(mosaics))
            ],
            faucet_repeat=1 if faucet else 0,
            faucet_private_key=faucet.private_key if faucet else None,
        )
        for transaction in transactions:
            descriptor.add_transaction(transaction)
        return descriptor

    def _find_candidate(self, network: NetworkFile) -> NodeInformation:
        for node in network.nodes:
            if get_metadata(node.node_type).harvesting:
                return node
        raise NoCandidateNodeError("No Candidate Node!!")

    def _delete_folder(self, name: str) -> None:
        path = os.path.join(self.working_dir, name)
        if os.path.exists(path):
            shutil.rmtree(path)
            logger.info("folder_deleted", path=path)

    def generate_nemesis(self, regenerate: bool = False, password: Optional[str] = None,
                         compose_user: Optional[str] = None) -> GenesisDescriptor:
        network = load_network(self.working_dir)
        self._check_preconditions(network, regenerate)

        network_preset = ConfigurationService(self.working_dir, self.key_store, self.toolkit) \
            .update_network_preset(network.preset, network, network.preset)
        descriptor = self.build_descriptor(network, network_preset)
        candidate = self._find_candidate(network)

        write_yaml(os.path.join(self.working_dir, network.preset), network_preset)
        logger.info("network_preset_saved", file=network.preset, peers=len(network_preset["knownPeers"]))

        target = os.path.join(self.working_dir, NEMESIS_TARGET_FOLDER)
        for folder in (NEMESIS_TARGET_FOLDER, NODES_FOLDER, DISTRIBUTION_FOLDER):
            self._delete_folder(folder)

        logger.info("nemesis_generation_started", candidate=candidate.number,
                    transactions=len(descriptor.transactions))
        self.toolkit.config(ConfigRequest(
            working_dir=self.working_dir,
            target=target,
            preset=network.preset,
            assembly=GENESIS_ASSEMBLY,
            network_type=network.network_type,
            custom_preset=descriptor.to_custom_preset(),
            account_resolver=NetworkAccountResolver(candidate, self.key_store, self.prompter),
            password=password,
            offline=True,
            reset=True,
            report=True,
        ))
        self.toolkit.compose(ComposeRequest(
            working_dir=self.working_dir,
            target=target,
            user=compose_user,
            password=password,
            offline=True,
            upgrade=True,
        ))

        seed_source = os.path.join(target, "nemesis", "seed")
        if not os.path.isdir(seed_source):
            raise ToolkitError(f"Nemesis seed was not generated in {seed_source}")
        seed_destination = os.path.join(self.working_dir, NEMESIS_SEED_FOLDER)
        if os.path.exists(seed_destination):
            shutil.rmtree(seed_destination)
        shutil.copytree(seed_source, seed_destination)

        network.nemesis_seed_folder = NEMESIS_SEED_FOLDER
        save_network(self.working_dir, network)
        descriptor.target = target
        logger.info("nemesis_generated", seed_folder=NEMESIS_SEED_FOLDER, target=target)
        return descriptor
