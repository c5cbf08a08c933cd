"""
Server example.

Demonstrates running the emulator with an in-code phonebook and no audio.
"""

import logging

from hayesmodem import ModemConfig, ModemServer, PhonebookEntry

# Replace with a reachable telnet service
BBS_ROUTE = "127.0.0.1:2323"


def main():
    """Main function."""
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    print("HayesModem - Server Example\n")

    config = ModemConfig(
        port=5000,
        phonebook=[
            PhonebookEntry(number="555-1234", route=BBS_ROUTE),
            PhonebookEntry(number="555-0000"),  # always BUSY
        ],
        audio_enabled=False,
    )

    with ModemServer(config) as server:
        host, port = server.address
        print(f"Listening on {host}:{port}")
        print("Point your terminal program at it and type ATDT555-1234")
        print("Ctrl+C to stop\n")

        try:
            server.serve_forever()
        except KeyboardInterrupt:
            print("\nStopping...")


if __name__ == "__main__":
    main()
