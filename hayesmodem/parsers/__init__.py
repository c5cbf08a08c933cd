"""
Parsers for command lines and phonebook routes.
"""

from .base import LineParser
from .command import CommandInterpreter, INFO_BANNER
from .route import RouteParser

__all__ = [
    "LineParser",
    "CommandInterpreter",
    "INFO_BANNER",
    "RouteParser",
]
