"""
Feature components used by the session.
"""

from .phonebook import PhonebookResolver, normalize_number

__all__ = [
    "PhonebookResolver",
    "normalize_number",
]
