"""
Phonebook route parser.
"""

import logging

from .base import LineParser
from ..types import Route
from ..exceptions import RouteError

logger = logging.getLogger(__name__)


class RouteParser(LineParser[Route]):
    """Parser for "host:port" upstream routes."""

    def parse(self, line: str) -> Route:
        """
        Parse a route.

        Args:
            line: Route text (e.g., "bbs.example.org:23")

        Returns:
            Route with host and port

        Raises:
            RouteError: If the text is not exactly "host:port" with a valid port
        """
        parts = line.strip().split(":")
        if len(parts) != 2:
            raise RouteError("Route must have the form host:port", command=line)

        host, port_text = parts[0].strip(), parts[1].strip()
        if not host:
            raise RouteError("Route has an empty host", command=line)

        try:
            port = int(port_text)
        except ValueError as e:
            raise RouteError(f"Invalid route port: {port_text!r}", command=line) from e

        if not 0 < port < 65536:
            raise RouteError(f"Route port out of range: {port}", command=line)

        return Route(host=host, port=port)
