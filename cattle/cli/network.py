"""
CLI commands for network and node cluster management.
"""
from typing import Optional

import click
import structlog

from ..configuration import ConfigurationService
from ..errors import ToolkitError
from ..genesis import GenesisService
from ..init_service import InitService
from ..key_store import create_store
from ..link import LinkService
from ..network_utils import NETWORK_FILE, NETWORK_INPUT_FILE, load_network
from ..services import list_services as resolve_services
from ..topology import TopologyService
from ..verify import verify_toolkit
from .options import (
    handle_errors,
    key_store_password_options,
    node_password_options,
    password_source,
    prompt_private_key,
)

logger = structlog.get_logger()

KEY_STORE_DESCRIPTION = "encrypt and decrypt the key store"
NODE_DESCRIPTION = "encrypt the node configuration"


def _key_store(ctx: click.Context, password: Optional[str], no_password: bool, must_exist: bool):
    settings = ctx.obj['settings']
    return create_store(
        password_source(password, no_password, KEY_STORE_DESCRIPTION),
        ctx.obj['working_dir'],
        lazy=True,
        must_exist=must_exist,
        kdf_iterations=settings.kdf_iterations,
    )


def _node_password(node_password: Optional[str], no_node_password: bool) -> Optional[str]:
    return password_source(node_password, no_node_password, NODE_DESCRIPTION)()


@click.command()
@key_store_password_options
@click.pass_context
@handle_errors
def init(ctx, password, no_password):
    """Complete network-input.yml and create the key store of the network."""
    working_dir = ctx.obj['working_dir']
    key_store = _key_store(ctx, password, no_password, must_exist=False)
    network_input = InitService(working_dir, key_store, ctx.obj['toolkit']).execute()
    click.echo(f"The {NETWORK_INPUT_FILE} file has been initialized.")
    if network_input.is_new_network:
        click.echo(f"The network preset {network_input.preset} has been stored.")
    click.echo("Next step: cattle expand-nodes")


@click.command('expand-nodes')
@click.pass_context
@handle_errors
def expand_nodes(ctx):
    """Expand the node types of network-input.yml into network.yml."""
    network = TopologyService(ctx.obj['working_dir']).expand_nodes()
    click.echo(f"The {NETWORK_FILE} file has been saved with {len(network.nodes)} nodes.")


@click.command('generate-nemesis')
@click.option('--regenerate', is_flag=True, default=False, help='Regenerate an existing nemesis block')
@click.option('--compose-user', type=str, default=None, help='User running the containers')
@key_store_password_options
@node_password_options
@click.pass_context
@handle_errors
def generate_nemesis(ctx, regenerate, compose_user, password, no_password, node_password, no_node_password):
    """Generate the nemesis block of a new network."""
    working_dir = ctx.obj['working_dir']
    key_store = _key_store(ctx, password, no_password, must_exist=False)
    genesis = GenesisService(working_dir, key_store, ctx.obj['toolkit'], prompter=prompt_private_key)
    descriptor = genesis.generate_nemesis(
        regenerate=regenerate,
        password=_node_password(node_password, no_node_password),
        compose_user=compose_user or ctx.obj['settings'].compose_user,
    )
    click.echo(f"The nemesis block has been generated in {descriptor.target}.")
    click.echo("Next step: cattle configure-nodes")


@click.command('configure-nodes')
@click.option('--offline/--online', default=True, help='Do not pull images or query remote services')
@click.option('--zip', 'zip_nodes', is_flag=True, default=False, help='Zip every node folder into distribution/')
@click.option('--compose-user', type=str, default=None, help='User running the containers')
@key_store_password_options
@node_password_options
@click.pass_context
@handle_errors
def configure_nodes(ctx, offline, zip_nodes, compose_user, password, no_password, node_password,
                    no_node_password):
    """Create or upgrade the configuration of every node."""
    working_dir = ctx.obj['working_dir']
    key_store = _key_store(ctx, password, no_password, must_exist=True)
    configuration = ConfigurationService(working_dir, key_store, ctx.obj['toolkit'], prompter=prompt_private_key)
    configuration.update_nodes(
        node_password=_node_password(node_password, no_node_password),
        offline=offline,
        compose_user=compose_user or ctx.obj['settings'].compose_user,
        zip=zip_nodes,
    )
    click.echo("Nodes have been created/upgraded.")


@click.command()
@click.option('--unlink', is_flag=True, default=False, help='Announce unlink transactions instead')
@click.option('--max-fee', type=int, default=None, help='Maximum fee of each transaction')
@click.option('--url', type=str, default=None, help='REST gateway (defaults to the known gateways)')
@click.option('--service-provider-public-key', type=str, default=None)
@key_store_password_options
@node_password_options
@click.pass_context
@handle_errors
def link(ctx, unlink, max_fee, url, service_provider_public_key, password, no_password, node_password,
         no_node_password):
    """Announce the key link transactions of every node."""
    working_dir = ctx.obj['working_dir']
    key_store = _key_store(ctx, password, no_password, must_exist=True)
    count = LinkService(working_dir, key_store, ctx.obj['toolkit']).link_nodes(
        password=_node_password(node_password, no_node_password),
        unlink=unlink,
        max_fee=max_fee,
        url=url,
        service_provider_public_key=service_provider_public_key,
    )
    click.echo(f"{count} nodes have been {'unlinked' if unlink else 'linked'}.")


@click.command('list-services')
@click.pass_context
@handle_errors
def list_services(ctx):
    """List the services exposed by every node."""
    network = load_network(ctx.obj['working_dir'])
    for hostname, lines in resolve_services(network).items():
        click.echo(f"Node: {hostname}")
        for line in lines:
            click.echo(f" - {line}")


@click.command()
@click.pass_context
@handle_errors
def verify(ctx):
    """Check that the node configuration toolkit is installed and recent enough."""
    report = verify_toolkit(ctx.obj['toolkit'], ctx.obj['settings'].bootstrap_min_version)
    click.echo(f"{report.header}: {report.installed_version or 'not installed'} "
               f"(expected {report.expected_version} or newer)")
    if not report.ok:
        raise ToolkitError(report.recommendation)
    click.echo("The toolkit is ready.")
