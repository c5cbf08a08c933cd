"""
Base parser classes and utilities.

Provides the common interface for parsers that turn a line of text into a
typed result.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LineParser(ABC, Generic[T]):
    """
    Abstract base class for line parsers.

    Parsers convert a single line of text into a typed data structure.
    """

    @abstractmethod
    def parse(self, line: str) -> T:
        """
        Parse one line of text.

        Args:
            line: Raw text line

        Returns:
            Parsed data structure
        """
        pass
