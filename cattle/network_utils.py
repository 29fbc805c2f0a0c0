"""File helpers shared by the cattle services."""

import copy
import os
import time
from typing import Any, Dict, Optional, Union

import structlog
import yaml

from .catalog import RestProtocol
from .errors import ValidationError
from .models import BasicNetworkFile, NetworkFile, NetworkInputFile

logger = structlog.get_logger()

NETWORK_INPUT_FILE = "network-input.yml"
NETWORK_FILE = "network.yml"
NETWORK_PRESET_FILE = "custom-network-preset.yml"
KEY_STORE_FILE = "key-store.yml"
NEMESIS_SEED_FOLDER = "nemesis-seed"
NEMESIS_TARGET_FOLDER = "nemesis-target"
NODES_FOLDER = "nodes"
DISTRIBUTION_FOLDER = "distribution"

PEER_PORT = 7900


def zero_pad(number: int, places: int) -> str:
    return str(number).zfill(places)


def node_folder_name(number: int) -> str:
    return f"node-{zero_pad(number, 3)}"


def is_yml_file(name: Optional[str]) -> bool:
    return bool(name) and name.lower().endswith((".yml", ".yaml"))


def load_yaml(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_yaml(path: str, data: Any) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False, allow_unicode=True)


def remove_private_keys(value: Any) -> Any:
    """Return a copy of ``value`` without any ``privateKey``/``*PrivateKey`` entries."""
    if isinstance(value, dict):
        return {
            key: remove_private_keys(item)
            for key, item in value.items()
            if not (isinstance(key, str) and key.lower().endswith("privatekey"))
        }
    if isinstance(value, list):
        return [remove_private_keys(item) for item in value]
    return value


def deep_merge(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge key by key; lists merge index by index so that a
    fragment such as ``nodes: [{...}]`` only touches the first entry.
    """
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            result[key] = _merge_lists(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _merge_lists(base: list, override: list) -> list:
    merged = copy.deepcopy(base)
    for index, value in enumerate(override):
        if index < len(merged) and isinstance(merged[index], dict) and isinstance(value, dict):
            merged[index] = deep_merge(merged[index], value)
        elif index < len(merged):
            merged[index] = copy.deepcopy(value)
        else:
            merged.append(copy.deepcopy(value))
    return merged


def resolve_rest_url(hostname: str, rest_protocol: Optional[Union[RestProtocol, str]]) -> str:
    if rest_protocol is not None and RestProtocol(rest_protocol) == RestProtocol.HTTP_ONLY:
        return f"http://{hostname}:3000"
    return f"https://{hostname}:3001"


def resolve_http_rest_url(hostname: str) -> str:
    return f"http://{hostname}:3000"


def resolve_explorer_url(hostname: str) -> str:
    return f"http://{hostname}:90"


def resolve_faucet_url(hostname: str) -> str:
    return f"http://{hostname}:100"


def current_epoch_adjustment() -> str:
    return f"{int(time.time())}s"


def _load_model(working_dir: str, file_name: str, model):
    path = os.path.join(working_dir, file_name)
    if not os.path.exists(path):
        raise ValidationError(f"Input file {path} does not exist")
    data = load_yaml(path)
    if not isinstance(data, dict):
        raise ValidationError(f"File {path} is not a valid YAML document")
    return model.model_validate(data)


def load_network_input(working_dir: str) -> NetworkInputFile:
    return _load_model(working_dir, NETWORK_INPUT_FILE, NetworkInputFile)


def load_network(working_dir: str) -> NetworkFile:
    return _load_model(working_dir, NETWORK_FILE, NetworkFile)


def save_network(working_dir: str, network: NetworkFile) -> str:
    path = os.path.join(working_dir, NETWORK_FILE)
    write_yaml(path, remove_private_keys(network.to_file_dict()))
    logger.info("network_file_saved", path=path, nodes=len(network.nodes))
    return path


def save_network_input(working_dir: str, network_input: NetworkInputFile) -> str:
    validate_network_input(network_input)
    path = os.path.join(working_dir, NETWORK_INPUT_FILE)
    write_yaml(path, remove_private_keys(network_input.to_file_dict()))
    logger.info("network_input_saved", path=path)
    return path


def validate_network_input(network: BasicNetworkFile) -> BasicNetworkFile:
    if not network.network_type:
        raise ValidationError("networkType must be resolved!")
    if network.is_new_network:
        preset = network.custom_network_preset
        if not preset:
            raise ValidationError("customNetworkPreset must be resolved!")
        for key in ("epochAdjustment", "nemesisGenerationHashSeed", "networkDescription", "nemesis"):
            if not preset.get(key):
                raise ValidationError(f"customNetworkPreset.{key} must be resolved!")
        nemesis = preset["nemesis"]
        if not isinstance(nemesis, dict) or not nemesis.get("mosaics"):
            raise ValidationError("customNetworkPreset.nemesis.mosaics must be resolved!")
    return network
