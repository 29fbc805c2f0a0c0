"""Interface to the external node configuration toolkit.

The services only talk to :class:`BootstrapToolkit`. :class:`CommandLineToolkit`
drives the bootstrap command line tool through ``subprocess``.
"""

import copy
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from .crypto import KeyName, NetworkType
from .errors import ToolkitError
from .network_utils import load_yaml, write_yaml
from .resolver import CertificatePair

logger = structlog.get_logger()

DEFAULT_NODE_NAME = "node"

# custom preset key holding each resolved private key
PRIVATE_KEY_FIELDS = {
    KeyName.MAIN: "mainPrivateKey",
    KeyName.TRANSPORT: "transportPrivateKey",
    KeyName.REMOTE: "remotePrivateKey",
    KeyName.VRF: "vrfPrivateKey",
}

# operator owned keys: only the public half is in the custom preset
PUBLIC_KEY_FIELDS = {
    KeyName.MAIN: "mainPublicKey",
    KeyName.TRANSPORT: "transportPublicKey",
    KeyName.REMOTE: "remotePublicKey",
    KeyName.VRF: "vrfPublicKey",
}


@dataclass
class ConfigRequest:
    working_dir: str
    target: str
    preset: str
    assembly: str
    network_type: NetworkType
    custom_preset: Dict[str, Any] = field(default_factory=dict)
    account_resolver: Any = None
    voting_key_file_provider: Any = None
    voting_key_lifetime: Optional[int] = None
    password: Optional[str] = None
    user: Optional[str] = None
    offline: bool = True
    reset: bool = False
    upgrade: bool = False
    report: bool = False


@dataclass
class ConfigResult:
    addresses: Optional[Dict[str, Any]]
    preset_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ComposeRequest:
    working_dir: str
    target: str
    user: Optional[str] = None
    password: Optional[str] = None
    offline: bool = True
    upgrade: bool = False


@dataclass
class LinkRequest:
    target: str
    account_resolver: Any = None
    password: Optional[str] = None
    unlink: bool = False
    max_fee: Optional[int] = None
    url: Optional[str] = None
    use_known_rest_gateways: bool = False
    ready: bool = True
    service_provider_public_key: Optional[str] = None


class BootstrapToolkit(ABC):
    """What cattle needs from the node configuration toolkit."""

    @abstractmethod
    def load_network_preset(self, name: str) -> Dict[str, Any]:
        """Return the base network preset called ``name``."""

    @abstractmethod
    def config(self, request: ConfigRequest) -> ConfigResult:
        """Render the configuration of a node (or of the nemesis node)."""

    @abstractmethod
    def compose(self, request: ComposeRequest) -> None:
        """Render the container composition of a configured target."""

    @abstractmethod
    def link(self, request: LinkRequest) -> None:
        """Announce the key link transactions of a configured target."""

    @abstractmethod
    def version(self) -> str:
        """Return the raw version string of the installed toolkit."""


class CommandLineToolkit(BootstrapToolkit):

    def __init__(self, command: str = "symbol-bootstrap", presets_dir: Optional[str] = None):
        self.command = command
        self.presets_dir = presets_dir

    def _run(self, args: List[str], cwd: Optional[str] = None) -> str:
        cmd = [self.command] + args
        logger.info("toolkit_command_started", command=args[0], cwd=cwd)
        try:
            proc = subprocess.run(cmd, cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise ToolkitError(f"Toolkit command '{self.command}' cannot be found") from e
        if proc.returncode != 0:
            raise ToolkitError(
                f"Toolkit command '{args[0]}' failed with exit code {proc.returncode}:\n{proc.stderr.strip()}"
            )
        logger.info("toolkit_command_finished", command=args[0])
        return proc.stdout

    @staticmethod
    def _password_args(password: Optional[str]) -> List[str]:
        return ["--password", password] if password else ["--noPassword"]

    def load_network_preset(self, name):
        if not self.presets_dir:
            raise ToolkitError(f"Network preset '{name}' cannot be loaded, no presets directory configured")
        for file_name in (f"{name}.yml", f"{name}.yaml", os.path.join(name, "network.yml")):
            path = os.path.join(self.presets_dir, file_name)
            if os.path.isfile(path):
                return load_yaml(path) or {}
        raise ToolkitError(f"Network preset '{name}' not found in {self.presets_dir}")

    def _resolve_node_keys(self, request: ConfigRequest) -> Dict[str, Any]:
        custom_preset = copy.deepcopy(request.custom_preset)
        if request.account_resolver is None:
            return custom_preset
        for node in custom_preset.get("nodes") or []:
            node_name = node.get("name", DEFAULT_NODE_NAME)
            for key_name, preset_field in PRIVATE_KEY_FIELDS.items():
                public_key = node.pop(PUBLIC_KEY_FIELDS[key_name], None)
                if public_key:
                    # not held by the key store, the operator has to provide it
                    account = request.account_resolver.resolve_account(
                        request.network_type, CertificatePair(public_key), key_name, None,
                        "configuring the node", None,
                    )
                else:
                    account = request.account_resolver.resolve_account(
                        request.network_type, None, key_name, node_name,
                        "configuring the node", None,
                    )
                node[preset_field] = account.private_key
            if node.get("voting") and request.voting_key_file_provider is not None:
                self._write_voting_file(request, node, node_name)
        return custom_preset

    def _write_voting_file(self, request: ConfigRequest, node: Dict[str, Any], node_name: str) -> None:
        lifetime = node.get("votingKeyDesiredLifetime") or request.voting_key_lifetime
        if not lifetime:
            raise ToolkitError(f"Voting key lifetime of node '{node_name}' is unknown")
        start_epoch = int(node.get("votingKeyStartEpoch", 1))
        content = request.voting_key_file_provider.get_voting_key_file(
            request.network_type, node_name, start_epoch, start_epoch + int(lifetime) - 1
        )
        folder = os.path.join(os.path.abspath(request.working_dir), "voting-keys", node_name)
        os.makedirs(folder, exist_ok=True)
        with open(os.path.join(folder, "private_key_tree1.dat"), "wb") as f:
            f.write(content.private_file_content)
        node["votingKeysDirectory"] = folder

    def config(self, request):
        custom_preset = self._resolve_node_keys(request)
        working_dir = os.path.abspath(request.working_dir)
        # relative targets are relative to the working dir, where the toolkit runs
        target = os.path.join(working_dir, request.target)
        os.makedirs(working_dir, exist_ok=True)
        fd, preset_path = tempfile.mkstemp(dir=working_dir, prefix=".custom-preset.", suffix=".yml")
        os.close(fd)
        try:
            os.chmod(preset_path, 0o600)
            write_yaml(preset_path, custom_preset)
            args = [
                "config",
                "--preset", request.preset,
                "--assembly", request.assembly,
                "--target", target,
                "--customPreset", preset_path,
            ] + self._password_args(request.password)
            if request.user:
                args += ["--user", request.user]
            for flag, enabled in (("--offline", request.offline), ("--reset", request.reset),
                                  ("--upgrade", request.upgrade), ("--report", request.report)):
                if enabled:
                    args.append(flag)
            self._run(args, cwd=working_dir)
        finally:
            os.remove(preset_path)

        addresses_file = os.path.join(target, "addresses.yml")
        preset_file = os.path.join(target, "preset.yml")
        addresses = load_yaml(addresses_file) if os.path.exists(addresses_file) else None
        preset_data = load_yaml(preset_file) if os.path.exists(preset_file) else {}
        return ConfigResult(addresses=addresses, preset_data=preset_data or {})

    def compose(self, request):
        args = ["compose", "--target", request.target] + self._password_args(request.password)
        if request.user:
            args += ["--user", request.user]
        if request.offline:
            args.append("--offline")
        if request.upgrade:
            args.append("--upgrade")
        self._run(args, cwd=request.working_dir)

    def link(self, request):
        args = ["link", "--target", request.target] + self._password_args(request.password)
        if request.unlink:
            args.append("--unlink")
        if request.max_fee is not None:
            args += ["--maxFee", str(request.max_fee)]
        if request.url:
            args += ["--url", request.url]
        if request.use_known_rest_gateways:
            args.append("--useKnownRestGateways")
        if request.ready:
            args.append("--ready")
        if request.service_provider_public_key:
            args += ["--serviceProviderPublicKey", request.service_provider_public_key]
        self._run(args)

    def version(self):
        return self._run(["--version"]).strip()
