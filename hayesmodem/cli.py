"""
Command line entry point for HayesModem.

Runs the emulator listener until interrupted.
"""

import sys
import logging

from .config import load_config
from .exceptions import ModemError
from .server import ModemServer
from .version import __version__

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="HayesModem - Hayes modem emulator bridging AT dial-up to TCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hayes-modem
  hayes-modem -c /etc/hayesmodem/config.yaml
  hayes-modem --port 2323 --no-audio -v
        """
    )

    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        help="Listen port (overrides config)"
    )
    parser.add_argument(
        "--host",
        help="Listen address (overrides config, default: 127.0.0.1)"
    )
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="Disable sound cues"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    # Setup logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s: %(message)s'
        )

    logger.info(f"HayesModem v{__version__}")

    try:
        config = load_config(args.config)
    except ModemError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.no_audio:
        config.audio_enabled = False

    logger.info(f"Phonebook entries: {len(config.phonebook)}")

    server = ModemServer(config, host=args.host, port=args.port)

    try:
        server.start()
    except OSError as e:
        print(f"Error: cannot listen on port {server.port}: {e}", file=sys.stderr)
        return 1

    logger.info("Only one connection at a time. Press Ctrl+C to exit.")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.stop()

    logger.info("Modem emulator stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
