"""
Phonebook lookup.

Maps dialed numbers to configured entries.
"""

import logging
from typing import Iterable, Optional

from ..types import PhonebookEntry

logger = logging.getLogger(__name__)


def normalize_number(number: str) -> str:
    """Strip the spaces and hyphens people use to group digits."""
    return number.replace(" ", "").replace("-", "")


class PhonebookResolver:
    """
    Resolves dialed numbers against the configured phonebook.

    Matching is exact after normalizing both sides; the first entry in
    configuration order wins.
    """

    def __init__(self, entries: Iterable[PhonebookEntry] = ()) -> None:
        """
        Initialize resolver.

        Args:
            entries: Phonebook entries in configuration order
        """
        self._entries = list(entries)
        logger.debug(f"Initialized PhonebookResolver with {len(self._entries)} entries")

    def resolve(self, number: str) -> Optional[PhonebookEntry]:
        """
        Find the entry for a dialed number.

        Args:
            number: Dialed number

        Returns:
            Matching PhonebookEntry or None
        """
        wanted = normalize_number(number)
        for entry in self._entries:
            if normalize_number(entry.number) == wanted:
                logger.debug(f"Phonebook match for {number}: {entry}")
                return entry

        logger.debug(f"No phonebook entry for {number}")
        return None

    def __len__(self) -> int:
        return len(self._entries)
