"""
TCP listener for the modem emulator.

Accepts one client at a time; while a session is active further clients get
a busy message and are disconnected.
"""

import ipaddress
import logging
import socket
import threading
from typing import Any, Dict, Optional, Tuple

from .config import ModemConfig
from .core.session import ModemSession

logger = logging.getLogger(__name__)

REJECT_MESSAGE = b"BUSY - Another session is active\r\n"


def is_loopback_host(host: str) -> bool:
    """True if host names a loopback address (e.g., "127.0.0.1", "::1", "localhost")."""
    if host.lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class SessionGuard:
    """
    Tracks whether a session is running.

    Owned by the accept loop: acquired before a session starts, released
    when it ends.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """
        Claim the session slot without waiting.

        Returns:
            True if the slot was free and is now held
        """
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        """Free the session slot."""
        self._lock.release()

    @property
    def active(self) -> bool:
        """True while a session holds the slot."""
        return self._lock.locked()


class ModemServer:
    """
    Main interface for running the emulator.

    Example usage with context manager:

    .. code-block:: python

        config = load_config("config.yaml")
        with ModemServer(config) as server:
            server.serve_forever()

    Example usage with manual lifecycle management:

    .. code-block:: python

        server = ModemServer(config, port=0)
        server.start()
        host, port = server.address
        # ... connect a client ...
        server.stop()
    """

    def __init__(
        self,
        config: ModemConfig,
        host: Optional[str] = None,
        port: Optional[int] = None,
        session_options: Optional[Dict[str, Any]] = None,
        accept_interval: float = 0.2
    ) -> None:
        """
        Initialize server.

        Args:
            config: Emulator configuration
            host: Listen address (default: config.host)
            port: Listen port, 0 for an ephemeral port (default: config.port)
            session_options: Extra keyword arguments for ModemSession
            accept_interval: How often the accept loop checks for shutdown
        """
        self.config = config
        self.host = host if host is not None else config.host
        self.port = port if port is not None else config.port
        self._session_options = dict(session_options or {})
        self._accept_interval = accept_interval

        self.guard = SessionGuard()
        self._listener: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._session: Optional[ModemSession] = None
        self._session_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False

        logger.info("Initialized ModemServer")

    def start(self) -> None:
        """
        Bind the listener and start the accept thread.

        Raises:
            OSError: If the port cannot be bound
        """
        if self._running:
            logger.warning("ModemServer already started")
            return

        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((self.host, self.port))
            listener.listen()
        except OSError:
            listener.close()
            raise
        listener.settimeout(self._accept_interval)

        self._listener = listener
        self._stop_event.clear()
        self._accept_thread = threading.Thread(
            target=self._accept_loop,
            daemon=True,
            name="ModemAcceptThread"
        )
        self._accept_thread.start()
        self._running = True

        host, port = self.address
        logger.info(f"Listening on TCP {host}:{port}")
        if not is_loopback_host(host):
            logger.warning(f"Listening on non-loopback address {host}, the emulator is reachable from the network")

    def serve_forever(self) -> None:
        """Start if needed and block until stop() is called."""
        if not self._running:
            self.start()
        self._stop_event.wait()

    def stop(self) -> None:
        """
        Stop accepting, end the active session and wait for threads.
        """
        if not self._running:
            return

        logger.info("Stopping modem server...")
        self._stop_event.set()

        if self._accept_thread:
            self._accept_thread.join(timeout=2.0)
            if self._accept_thread.is_alive():
                logger.warning("Accept thread did not terminate in time")

        session = self._session
        if session is not None:
            logger.info("Closing active session...")
            session.close()

        if self._session_thread:
            self._session_thread.join(timeout=2.0)

        if self._listener:
            self._listener.close()
            self._listener = None

        self._running = False
        logger.info("Modem server stopped")

    def _accept_loop(self) -> None:
        logger.debug("Accept thread started")

        while not self._stop_event.is_set():
            try:
                client, address = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop_event.is_set():
                    logger.error(f"Error accepting connection: {e}")
                break

            client.settimeout(None)

            if not self.guard.try_acquire():
                self._reject(client, address)
                continue

            self._start_session(client)

        logger.debug("Accept thread stopped")

    def _reject(self, client: socket.socket, address: Tuple[str, int]) -> None:
        logger.warning(f"Rejected connection from {address[0]}:{address[1]} - session already active")
        try:
            client.sendall(REJECT_MESSAGE)
        except OSError as e:
            logger.debug(f"Could not send busy message: {e}")
        finally:
            client.close()

    def _start_session(self, client: socket.socket) -> None:
        session = ModemSession(client, self.config, **self._session_options)
        self._session = session
        self._session_thread = threading.Thread(
            target=self._run_session,
            args=(session,),
            daemon=True,
            name="ModemSessionThread"
        )
        self._session_thread.start()

    def _run_session(self, session: ModemSession) -> None:
        try:
            session.run()
        finally:
            self._session = None
            self.guard.release()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) of the listener."""
        if self._listener is None:
            return self.host, self.port
        return self._listener.getsockname()[:2]

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def session_active(self) -> bool:
        """True while a client session is running."""
        return self.guard.active

    def __enter__(self):
        """Context manager entry."""
        if not self._running:
            self.start()
        return self

    def __exit__(self, *exc):
        """Context manager exit."""
        self.stop()

    def __repr__(self) -> str:
        status = "running" if self._running else "stopped"
        return f"<ModemServer address={self.address} status={status}>"
