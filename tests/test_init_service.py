"""Tests for initialising a working directory from a network input file."""
import os

import pytest
import yaml

from cattle.crypto import NetworkType
from cattle.errors import ValidationError
from cattle.init_service import InitService
from cattle.models import NetworkAccountName
from cattle.network_utils import load_network_input


def load(working_dir, name):
    with open(os.path.join(working_dir, name)) as f:
        return yaml.safe_load(f)


def test_new_network(input_dir, key_store, toolkit):
    InitService(input_dir, key_store, toolkit, clock=lambda: 1_700_000_000.5).execute()

    network_input = load_network_input(input_dir)
    assert network_input.preset == "custom-network-preset.yml"
    assert network_input.custom_network_preset["epochAdjustment"] == "1700000000s"
    assert len(network_input.custom_network_preset["nemesisGenerationHashSeed"]) == 64

    for account_name in NetworkAccountName:
        key_store.get_network_account(NetworkType.TEST_NET, account_name, False)

    preset = load(input_dir, "custom-network-preset.yml")
    signer = key_store.get_network_account(NetworkType.TEST_NET, NetworkAccountName.NEMESIS_SIGNER, False)
    sink = key_store.get_network_account(NetworkType.TEST_NET, NetworkAccountName.MOSAIC_RENTAL_FEE_SINK, False)
    assert preset["nemesisSignerPublicKey"] == signer.public_key
    assert preset["mosaicRentalFeeSinkAddress"] == sink.address
    assert preset["networkType"] == 152
    assert preset["lastKnownNetworkEpoch"] == 1
    assert preset["treasuryReissuance"] == 0
    assert preset["nemesisSeedFolder"] == "nemesis-seed"
    assert preset["networkDescription"] == "Cattle test network"
    assert preset["votingKeyDesiredLifetime"] == 5
    for legacy in ("currencyMosaicId", "harvestingMosaicId", "statisticsServiceUrl",
                   "harvestNetworkFeeSinkAddressV1"):
        assert legacy not in preset


def test_existing_values_are_kept(working_dir, key_store, toolkit, write_input, input_data):
    data = input_data()
    data["customNetworkPreset"]["epochAdjustment"] = "1616694977s"
    data["customNetworkPreset"]["nemesisGenerationHashSeed"] = "C" * 64
    write_input(working_dir, data)

    InitService(working_dir, key_store, toolkit).execute()

    preset = load_network_input(working_dir).custom_network_preset
    assert preset["epochAdjustment"] == "1616694977s"
    assert preset["nemesisGenerationHashSeed"] == "C" * 64


def test_existing_network(working_dir, key_store, toolkit, write_input):
    write_input(working_dir, {
        "preset": "mainnet",
        "networkType": 104,
        "isNewNetwork": False,
        "domain": "cattle.test",
        "suffix": "ct",
        "privateKey": "should not be stored",
        "nodeTypes": [{"nickName": "peer", "nodeType": "Peer", "count": 1}],
    })

    InitService(working_dir, key_store, toolkit).execute()

    assert not os.path.exists(os.path.join(working_dir, "custom-network-preset.yml"))
    assert not os.path.exists(os.path.join(working_dir, "key-store.yml"))
    stored = load(working_dir, "network-input.yml")
    assert stored["preset"] == "mainnet"
    assert "privateKey" not in stored


def test_preset_is_required(working_dir, key_store, toolkit, write_input, input_data):
    write_input(working_dir, input_data(cloneFromPreset=None))
    with pytest.raises(ValidationError, match="Preset"):
        InitService(working_dir, key_store, toolkit).execute()


def test_incomplete_custom_preset(working_dir, key_store, toolkit, write_input, input_data):
    data = input_data()
    del data["customNetworkPreset"]["networkDescription"]
    write_input(working_dir, data)

    with pytest.raises(ValidationError, match="networkDescription"):
        InitService(working_dir, key_store, toolkit).execute()
    assert not os.path.exists(os.path.join(working_dir, "custom-network-preset.yml"))


def test_missing_input_file(working_dir, key_store, toolkit):
    with pytest.raises(ValidationError):
        InitService(working_dir, key_store, toolkit).execute()
