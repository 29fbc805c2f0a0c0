"""Shared fixtures for the cattle test suite."""
import copy
import hashlib
import os
import stat

import pytest
import yaml

from cattle.crypto import Account
from cattle.key_store import LocalFileKeyStore
from cattle.toolkit import BootstrapToolkit, CommandLineToolkit, ConfigResult
from cattle.voting import create_voting_file

TEST_KDF_ITERATIONS = 10


class SeededKeyStore(LocalFileKeyStore):
    """Local key store whose generated keys only depend on a seed and on call order."""

    def __init__(self, password, must_exist, working_dir, seed="cattle", kdf_iterations=TEST_KDF_ITERATIONS):
        self.seed = seed
        self.generated = 0
        super().__init__(password, must_exist, working_dir, kdf_iterations)

    def _next_private_key(self):
        self.generated += 1
        return hashlib.sha256(f"{self.seed}-{self.generated}".encode()).hexdigest().upper()

    def _generate_new_account(self, generate, network_type):
        if not generate:
            return super()._generate_new_account(generate, network_type)
        return Account.create_from_private_key(self._next_private_key(), network_type)

    def _create_voting_key_file(self, voting_account, node_name, start_epoch, end_epoch):
        def ephemeral(epoch):
            return hashlib.sha256(f"{voting_account.private_key}-{epoch}".encode()).digest()
        return create_voting_file(voting_account.private_key, start_epoch, end_epoch, key_generator=ephemeral)


class FakeToolkit(BootstrapToolkit):
    """In memory toolkit that records every request."""

    def __init__(self, presets=None):
        self.presets = presets or {}
        self.config_requests = []
        self.compose_requests = []
        self.link_requests = []

    def load_network_preset(self, name):
        return copy.deepcopy(self.presets[name])

    def config(self, request):
        self.config_requests.append(request)
        seed = os.path.join(request.target, "nemesis", "seed", "00000")
        os.makedirs(seed, exist_ok=True)
        with open(os.path.join(seed, "00001.dat"), "wb") as f:
            f.write(b"nemesis")
        main = None
        if request.account_resolver is not None:
            main = request.account_resolver.resolve_account(
                request.network_type, None, "Main", "node", "configuring the node", None)
        addresses = {"nodes": [{
            "name": "node",
            "main": {
                "publicKey": main.public_key if main else None,
                "privateKey": main.private_key if main else None,
            },
        }]}
        return ConfigResult(addresses=addresses, preset_data={})

    def compose(self, request):
        self.compose_requests.append(request)

    def link(self, request):
        self.link_requests.append(request)

    def version(self):
        return "symbol-bootstrap/1.1.6 linux-x64 node-v16.14.2"


BASE_PRESET = {
    "networkType": 104,
    "currencyMosaicId": "0x6BED913FA20223F8",
    "harvestingMosaicId": "0x6BED913FA20223F8",
    "statisticsServiceUrl": "http://statistics.example.com",
    "harvestNetworkFeeSinkAddressV1": "OLD-SINK",
    "mosaicRentalFeeSinkAddressV1": "OLD-SINK",
    "namespaceRentalFeeSinkAddressV1": "OLD-SINK",
    "votingKeyDesiredLifetime": 720,
    "nemesis": {
        "mosaics": [
            {"name": "cattle", "divisibility": 6},
            {"name": "harvest", "divisibility": 3},
        ],
    },
}


def network_input_data(**overrides):
    """A new network with one voting dual node, one peer and one services node."""
    data = {
        "cloneFromPreset": "mainnet",
        "networkType": 152,
        "isNewNetwork": True,
        "domain": "cattle.test",
        "suffix": "ct",
        "faucetBalances": [100, 0],
        "customNetworkPreset": {
            "networkDescription": "Cattle test network",
            "votingKeyDesiredLifetime": 5,
            "nemesis": {
                "mosaics": [
                    {"name": "cattle", "divisibility": 6},
                    {"name": "harvest", "divisibility": 3},
                ],
            },
        },
        "nodeTypes": [
            {"nickName": "dual", "nodeType": "VotingDual", "count": 1, "balances": [500, 100],
             "restProtocol": "HttpsOnly"},
            {"nickName": "peer", "nodeType": "Peer", "count": 1, "balances": [10, 0]},
            {"nickName": "services", "nodeType": "Services", "count": 1, "balances": []},
        ],
    }
    data.update(overrides)
    return data


def write_network_input(working_dir, data):
    with open(os.path.join(str(working_dir), "network-input.yml"), "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)


@pytest.fixture
def working_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture
def toolkit():
    return FakeToolkit(presets={"mainnet": copy.deepcopy(BASE_PRESET)})


@pytest.fixture
def key_store(working_dir):
    return SeededKeyStore(None, False, working_dir)


@pytest.fixture
def make_store():
    """Factory for seeded stores, so a test can reopen the same working dir."""
    def factory(working_dir, password=None, must_exist=False, seed="cattle"):
        return SeededKeyStore(password, must_exist, working_dir, seed=seed)
    return factory


@pytest.fixture
def input_data():
    return network_input_data


@pytest.fixture
def input_dir(working_dir):
    """Working directory holding the default network input file."""
    write_network_input(working_dir, network_input_data())
    return working_dir


@pytest.fixture
def write_input():
    return write_network_input


BOOTSTRAP_SCRIPT = """#!/bin/sh
pwd -P >> "{bin}/cwd.log"
echo "$@" >> "{bin}/calls.log"
if [ "$1" = "--version" ]; then
    echo "symbol-bootstrap/{version} linux-x64 node-v16.14.2"
fi
if [ "$1" = "config" ]; then
    while [ $# -gt 0 ]; do
        if [ "$1" = "--customPreset" ]; then cp "$2" "{bin}/preset-copy.yml"; fi
        if [ "$1" = "--target" ]; then target="$2"; fi
        shift
    done
    mkdir -p "$target/nemesis/seed/00000"
    printf 'nemesis' > "$target/nemesis/seed/00000/00001.dat"
    printf 'nodes:\\n- name: node\\n' > "$target/addresses.yml"
fi
exit {exit_code}
"""


@pytest.fixture
def script_toolkit(tmp_path):
    """Factory for a command line toolkit backed by a shell script.

    The script logs its arguments to ``bin/calls.log``, its working directory
    to ``bin/cwd.log`` and keeps a copy of the last custom preset.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def factory(exit_code=0, presets_dir=None, version="1.1.6"):
        script = bin_dir / "bootstrap.sh"
        script.write_text(BOOTSTRAP_SCRIPT.format(bin=bin_dir, version=version, exit_code=exit_code))
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        return CommandLineToolkit(str(script), presets_dir)
    return factory
