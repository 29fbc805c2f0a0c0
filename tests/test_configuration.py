"""Tests for the network preset update and the node configuration."""
import os
import zipfile

import pytest
import yaml

from cattle.configuration import ConfigurationService
from cattle.crypto import NetworkType
from cattle.errors import ToolkitError, ValidationError
from cattle.genesis import GenesisService
from cattle.init_service import InitService
from cattle.models import NetworkAccountName, NetworkFile
from cattle.network_utils import load_network
from cattle.toolkit import ConfigResult
from cattle.topology import TopologyService


def load(*parts):
    with open(os.path.join(*parts)) as f:
        return yaml.safe_load(f)


def bootstrap(working_dir, key_store, toolkit, write_input, data):
    write_input(working_dir, data)
    InitService(working_dir, key_store, toolkit).execute()
    TopologyService(working_dir).expand_nodes()
    GenesisService(working_dir, key_store, toolkit).generate_nemesis()


def test_update_network_preset_uses_known_endpoints(working_dir, key_store, toolkit):
    network = NetworkFile.model_validate({
        "networkType": 152,
        "knownPeers": [{"publicKey": "A" * 64, "endpoint": {"host": "a", "port": 7900}}],
        "knownRestGateways": ["https://a:3001"],
        "customNetworkPreset": {"epochAdjustment": "1s"},
    })

    preset = ConfigurationService(working_dir, key_store, toolkit).update_network_preset(
        "mainnet", network, "saved.yml")

    assert preset["knownRestGateways"] == ["https://a:3001"]
    assert preset["knownPeers"][0]["endpoint"]["host"] == "a"
    assert preset["epochAdjustment"] == "1s"
    assert preset["nemesis"]["mosaics"][0]["divisibility"] == 6
    sink = key_store.get_network_account(NetworkType.TEST_NET, NetworkAccountName.HARVEST_NETWORK_FEE_SINK, False)
    assert preset["harvestNetworkFeeSinkAddress"] == sink.address
    assert load(working_dir, "saved.yml") == preset


def test_update_nodes(working_dir, key_store, toolkit, write_input, input_data):
    bootstrap(working_dir, key_store, toolkit, write_input, input_data())
    toolkit.config_requests.clear()

    ConfigurationService(working_dir, key_store, toolkit).update_nodes(node_password="secret", zip=True)

    network = load_network(working_dir)
    assert len(toolkit.config_requests) == 3
    for node in network.nodes:
        folder = os.path.join(working_dir, "nodes", f"node-00{node.number}")
        custom_preset = load(folder, "custom-preset.yml")
        assert custom_preset["nemesisSeedFolder"] == "nemesis-seed"
        assert custom_preset["nodes"][0]["host"] == node.hostname
        assert os.path.isdir(os.path.join(folder, "nemesis-seed", "00000"))
        assert os.path.exists(os.path.join(folder, "custom-network-preset.yml"))
        assert node.addresses["main"]["publicKey"]
        assert "privateKey" not in node.addresses["main"]
        assert zipfile.is_zipfile(os.path.join(working_dir, "distribution", f"{node.hostname}.zip"))

    first = toolkit.config_requests[0]
    assert first.password == "secret"
    assert first.assembly == "dual"
    assert first.upgrade and not first.reset
    assert first.voting_key_lifetime == 5
    assert first.voting_key_file_provider.node.number == 1
    main = key_store.get_node_account(NetworkType.TEST_NET, "Main", "node", 1, False)
    assert network.nodes[0].addresses["main"]["publicKey"] == main.public_key


def test_demo_node_gets_faucet_key(working_dir, key_store, toolkit, write_input, input_data):
    data = input_data(nodeTypes=[
        {"nickName": "demo", "nodeType": "HarvestingDemo", "count": 1, "balances": [10]},
    ])
    bootstrap(working_dir, key_store, toolkit, write_input, data)

    ConfigurationService(working_dir, key_store, toolkit).update_nodes()

    faucet = key_store.get_network_account(NetworkType.TEST_NET, NetworkAccountName.FAUCET, False)
    custom_preset = load(working_dir, "nodes", "node-001", "custom-preset.yml")
    assert custom_preset["faucets"][0]["repeat"] == 1
    assert custom_preset["faucets"][0]["privateKey"] == faucet.private_key
    assert custom_preset["faucets"][0]["compose"]["environment"]["EXPLORER_URL"] == "http://ct-demo-001.cattle.test:90"


def test_custom_network_needs_nemesis_seed(working_dir, key_store, toolkit, write_input, input_data):
    write_input(working_dir, input_data())
    InitService(working_dir, key_store, toolkit).execute()
    TopologyService(working_dir).expand_nodes()

    with pytest.raises(ValidationError, match="nemesisSeedFolder"):
        ConfigurationService(working_dir, key_store, toolkit).update_nodes()


def test_missing_addresses(working_dir, key_store, toolkit, write_input, input_data):
    bootstrap(working_dir, key_store, toolkit, write_input, input_data())
    toolkit.config = lambda request: ConfigResult(addresses=None)

    with pytest.raises(ToolkitError):
        ConfigurationService(working_dir, key_store, toolkit).update_nodes()
    assert load_network(working_dir).nodes[0].addresses is None
