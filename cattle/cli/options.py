"""Shared click options and helpers."""
import functools
from typing import Callable, Optional

import click
import structlog

from ..config import log_error
from ..errors import CattleError

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 4


def validate_password(value: Optional[str]) -> Optional[str]:
    """Passwords are either empty (no encryption) or at least 4 characters."""
    if value and len(value) < MIN_PASSWORD_LENGTH:
        raise click.BadParameter(f"Password must have at least {MIN_PASSWORD_LENGTH} characters")
    return value or None


def password_source(password: Optional[str], no_password: bool, description: str) -> Callable[[], Optional[str]]:
    """Return a callable resolving the password, prompting only when it is first needed."""
    def resolve() -> Optional[str]:
        if no_password:
            return None
        if password is not None:
            return validate_password(password)
        return click.prompt(
            f"Enter the password used to {description} (empty for none)",
            hide_input=True,
            default="",
            show_default=False,
            value_proc=validate_password,
        )
    return resolve


def key_store_password_options(func):
    func = click.option('--no-password', is_flag=True, default=False,
                        help='Do not encrypt the key store')(func)
    func = click.option('--password', type=str, default=None,
                        help='Password of the key store (prompted when missing)')(func)
    return func


def node_password_options(func):
    func = click.option('--no-node-password', is_flag=True, default=False,
                        help='Do not encrypt the node configuration')(func)
    func = click.option('--node-password', type=str, default=None,
                        help='Password of the node configuration (prompted when missing)')(func)
    return func


def handle_errors(func):
    """Turn cattle errors into a message on stderr and exit code 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CattleError as e:
            log_error(logger, e, {"command": func.__name__})
            click.echo(f"Error: {e}", err=True)
            click.get_current_context().exit(1)
    return wrapper


def prompt_private_key(message: str) -> str:
    """Ask the operator for a private key the key store does not hold."""
    return click.prompt(message, hide_input=True, default="", show_default=False)
