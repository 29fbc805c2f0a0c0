"""cattle CLI Commands"""
import os

import click

from ..config import configure_logging, get_settings
from ..toolkit import CommandLineToolkit
from .network import configure_nodes, expand_nodes, generate_nemesis, init, link, list_services, verify


@click.group()
@click.option('--working-dir', '-w', type=click.Path(file_okay=False, resolve_path=True), default=None,
              help='Directory holding the network files (defaults to CATTLE_WORKING_DIR or .)')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), default=None)
@click.option('--json-logs', is_flag=True, default=False, help='Render logs as JSON')
@click.pass_context
def cli(ctx, working_dir, log_level, json_logs):
    """Provision and bootstrap a cluster of nodes."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, json_logs or settings.json_logs)

    ctx.ensure_object(dict)
    ctx.obj.setdefault('settings', settings)
    ctx.obj.setdefault('working_dir', os.path.abspath(working_dir or settings.working_dir))
    ctx.obj.setdefault('toolkit', CommandLineToolkit(settings.bootstrap_command, settings.presets_dir))


# Register commands
cli.add_command(init)
cli.add_command(expand_nodes)
cli.add_command(generate_nemesis)
cli.add_command(configure_nodes)
cli.add_command(link)
cli.add_command(list_services)
cli.add_command(verify)
