"""cattle configuration module"""

from .settings import CattleSettings, get_settings
from .logging import configure_logging, log_error

__all__ = ['CattleSettings', 'get_settings', 'configure_logging', 'log_error']
