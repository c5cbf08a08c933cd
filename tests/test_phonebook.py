"""
Tests for phonebook lookup and route parsing.
"""

import pytest

from hayesmodem.exceptions import RouteError
from hayesmodem.features import PhonebookResolver, normalize_number
from hayesmodem.parsers import RouteParser
from hayesmodem.types import PhonebookEntry, Route


def test_normalize_number():
    assert normalize_number("555-1234") == "5551234"
    assert normalize_number(" 555 12-34 ") == "5551234"
    assert normalize_number("*70,5551234") == "*70,5551234"


def test_resolve_normalizes_both_sides():
    """Test that spaces and hyphens are ignored on both sides."""
    entry = PhonebookEntry(number="555 12-34", route="bbs.example.org:23")
    resolver = PhonebookResolver([entry])

    assert resolver.resolve("5551234") is entry
    assert resolver.resolve("555-1234") is entry
    assert resolver.resolve("55 51 234") is entry


def test_resolve_exact_match_only():
    """Test that prefixes and partial numbers do not match."""
    resolver = PhonebookResolver([PhonebookEntry(number="5551234")])

    assert resolver.resolve("555") is None
    assert resolver.resolve("55512345") is None
    assert resolver.resolve("") is None


def test_first_entry_wins():
    first = PhonebookEntry(number="555-1234", route="first:23")
    second = PhonebookEntry(number="5551234", route="second:23")
    resolver = PhonebookResolver([first, second])

    assert resolver.resolve("5551234") is first


def test_empty_phonebook():
    resolver = PhonebookResolver()

    assert len(resolver) == 0
    assert resolver.resolve("5551234") is None
    assert resolver.resolve("") is None


def test_route_parser():
    parser = RouteParser()

    assert parser.parse("bbs.example.org:23") == Route("bbs.example.org", 23)
    assert parser.parse(" 127.0.0.1:6400 ") == Route("127.0.0.1", 6400)
    assert str(parser.parse("localhost:2323")) == "localhost:2323"


@pytest.mark.parametrize("text", [
    "bbs.example.org",
    "bbs.example.org:",
    ":23",
    "host:telnet",
    "host:0",
    "host:70000",
    "::1:23",
    "",
])
def test_route_parser_rejects_malformed(text):
    """Test that malformed routes raise RouteError."""
    with pytest.raises(RouteError):
        RouteParser().parse(text)
