"""Initialise a working directory from a provided ``network-input.yml``."""

import time
from typing import Callable, Optional

import structlog

from .configuration import ConfigurationService
from .crypto import random_key
from .errors import ValidationError
from .key_store import KeyStore
from .models import NetworkAccountName, NetworkInputFile
from .network_utils import (
    NETWORK_PRESET_FILE,
    load_network_input,
    save_network_input,
    validate_network_input,
)
from .toolkit import BootstrapToolkit

logger = structlog.get_logger()


class InitService:
    """Complete the network input file and, for new networks, the network preset."""

    def __init__(self, working_dir: str, key_store: KeyStore, toolkit: BootstrapToolkit,
                 clock: Optional[Callable[[], float]] = None):
        self.working_dir = working_dir
        self.key_store = key_store
        self.toolkit = toolkit
        self.clock = clock or time.time

    def execute(self) -> NetworkInputFile:
        network_input = load_network_input(self.working_dir)

        preset = network_input.clone_from_preset or network_input.preset
        if not preset:
            raise ValidationError("Preset could not be resolved from the input file!")
        if not network_input.preset:
            network_input.preset = NETWORK_PRESET_FILE

        if network_input.is_new_network:
            if not network_input.network_type:
                raise ValidationError("networkType must be resolved!")
            custom_network_preset = dict(network_input.custom_network_preset or {})
            if not custom_network_preset.get("epochAdjustment"):
                custom_network_preset["epochAdjustment"] = f"{int(self.clock())}s"
            if not custom_network_preset.get("nemesisGenerationHashSeed"):
                custom_network_preset["nemesisGenerationHashSeed"] = random_key()
            network_input.custom_network_preset = custom_network_preset
            validate_network_input(network_input)

            for account_name in NetworkAccountName:
                self.key_store.get_network_account(network_input.network_type, account_name, True)

            ConfigurationService(self.working_dir, self.key_store, self.toolkit) \
                .update_network_preset(preset, network_input, NETWORK_PRESET_FILE)
            logger.info("network_preset_created", file=NETWORK_PRESET_FILE)

        save_network_input(self.working_dir, network_input)
        logger.info("network_input_initialized", new_network=network_input.is_new_network,
                    preset=network_input.preset)
        return network_input
