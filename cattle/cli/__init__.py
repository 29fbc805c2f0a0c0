"""cattle CLI Module"""
from .commands import cli

__all__ = ['cli']
