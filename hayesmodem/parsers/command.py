"""
AT command line interpreter.

Turns one typed command line into the response text to send back and an
optional intent for the session to execute.
"""

import logging

from .base import LineParser
from ..types import (
    CommandResult,
    Dial,
    Escape,
    GoOnline,
    Hangup,
    Reset,
    SetEcho,
    SetVerbose,
    Unknown,
)

logger = logging.getLogger(__name__)

# Result codes
OK = "OK\r\n"
ERROR = "ERROR\r\n"
NO_CARRIER = "NO CARRIER\r\n"
BUSY = "BUSY\r\n"
CONNECT = "CONNECT 57600\r\n"

ESCAPE_SEQUENCE = "+++"
INFO_BANNER = "DosBox Modem Emulator v1.0"

# Removed from dialed numbers: dial modifiers (wait, pulse, tone, pause,
# stay in command mode) and hyphen separators
_DIAL_MODIFIERS = ("W", "P", "T", ",", ";", "-")


class CommandInterpreter(LineParser[CommandResult]):
    """
    Interpreter for the supported subset of the Hayes command set.

    Every AT-prefixed line is answered with OK or a command specific result;
    only lines without the AT prefix are answered with ERROR. Parsing never
    raises.

    Example:

    .. code-block:: python

        interpreter = CommandInterpreter()
        response, intent = interpreter.parse("ATDT 555-1234")
        # response == "OK\\r\\n", intent == Dial(number="5551234")
    """

    def parse(self, line: str) -> CommandResult:
        """
        Parse one command line.

        Args:
            line: Raw line as typed by the client, without terminator

        Returns:
            CommandResult with response text and optional intent
        """
        line = line.strip().upper()

        if not line:
            return CommandResult("")

        logger.info(f"AT command received: {line}")

        if line == ESCAPE_SEQUENCE:
            return CommandResult(OK, Escape())

        # Escape immediately followed by a command
        if line.startswith(ESCAPE_SEQUENCE + "AT"):
            line = line[len(ESCAPE_SEQUENCE):]

        if not line.startswith("AT"):
            logger.debug(f"Rejecting non-AT input: {line}")
            return CommandResult(ERROR)

        return self._parse_command(line[2:])

    def _parse_command(self, command: str) -> CommandResult:
        """
        Match the text after "AT" against the command table.

        Order matters: the first matching rule wins.
        """
        if command in ("Z", "Z0"):
            return CommandResult(OK, Reset())

        if command in ("E0", "E1"):
            return CommandResult(OK, SetEcho(command == "E1"))

        if command in ("V0", "V1"):
            return CommandResult(OK, SetVerbose(command == "V1"))

        if command in ("Q0", "Q1"):
            return CommandResult(OK, Unknown())

        if command in ("H", "H0"):
            return CommandResult(OK, Hangup())

        if command.startswith("D"):
            return CommandResult(OK, Dial(self._extract_number(command)))

        if command == "A":
            return CommandResult(OK, Unknown())

        if command.startswith("I"):
            return CommandResult(f"{INFO_BANNER}\r\n{OK}")

        if command.startswith("X"):
            return CommandResult(OK)

        if command.startswith("S"):
            # S-register writes may be chained with other commands, e.g. "S0=0H0"
            if "H0" in command or command.endswith("H"):
                return CommandResult(OK, Hangup())
            return CommandResult(OK)

        if command in ("&F", "&F0"):
            return CommandResult(OK, Reset())

        if command.startswith("&D") or command.startswith("&C"):
            return CommandResult(OK)

        if command in ("O", "O0"):
            return CommandResult(CONNECT, GoOnline())

        logger.debug(f"Unrecognized command acknowledged: AT{command}")
        return CommandResult(OK)

    def _extract_number(self, command: str) -> str:
        """
        Extract the number from a dial command.

        Args:
            command: Dial command without "AT" (e.g., "DT555-1234,")

        Returns:
            Number with dial prefix and modifiers removed (e.g., "5551234")
        """
        if command.startswith("DT") or command.startswith("DP"):
            number = command[2:]
        else:
            number = command[1:]

        for modifier in _DIAL_MODIFIERS:
            number = number.replace(modifier, "")

        return number.strip()
