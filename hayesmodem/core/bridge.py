"""
Upstream bridge.

Owns one outbound connection and relays bytes between it and the session.
Inbound data and closure are reported as events on the session's queue.
"""

import logging
import queue
import threading
from typing import Callable, Optional

from .transport import Transport, SocketTransport
from ..exceptions import TransportError, RemoteClosedError
from ..types import BridgeClosed, BridgeData

logger = logging.getLogger(__name__)

# Factory signature: (host, port, timeout) -> Transport
TransportFactory = Callable[[str, int, float], Transport]


class UpstreamBridge:
    """
    Proxied connection to a phonebook route.

    Coordinates:
    - Connect (single attempt, bounded by a timeout, never raises)
    - Send (write failures disconnect silently)
    - Reader thread (emits BridgeData per inbound chunk)
    - Disconnect (idempotent, emits BridgeClosed once per connection)

    A bridge is used for one connection only.
    """

    def __init__(
        self,
        events: "queue.Queue",
        cancel_event: Optional[threading.Event] = None,
        transport_factory: Optional[TransportFactory] = None,
        read_size: int = 4096
    ) -> None:
        """
        Initialize upstream bridge.

        Args:
            events: Queue the owning session consumes BridgeData/BridgeClosed from
            cancel_event: Session cancellation signal; stops the reader when set
            transport_factory: Creates the transport (default: SocketTransport)
            read_size: Maximum bytes per inbound chunk
        """
        self._events = events
        self._cancel_event = cancel_event or threading.Event()
        self._transport_factory = transport_factory or SocketTransport
        self._read_size = read_size

        self._transport: Optional[Transport] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._connected = False
        self._used = False
        self.remote: Optional[str] = None

    def connect(self, host: str, port: int, timeout: float = 10.0) -> bool:
        """
        Connect to the remote endpoint and start relaying.

        Makes exactly one attempt.

        Args:
            host: Remote host
            port: Remote port
            timeout: Connect deadline in seconds

        Returns:
            True if connected, False on any failure (timeout, refusal, DNS)
        """
        with self._lock:
            if self._used:
                logger.warning("UpstreamBridge already used for a connection")
                return self._connected
            self._used = True

        self.remote = f"{host}:{port}"
        logger.info(f"Connecting to {self.remote}...")

        try:
            transport = self._transport_factory(host, port, timeout)
        except (TransportError, OSError) as e:
            logger.error(f"Error connecting to {self.remote}: {e}")
            return False

        with self._lock:
            if self._cancel_event.is_set():
                logger.info(f"Session cancelled while connecting to {self.remote}")
                transport.close()
                return False

            self._transport = transport
            self._connected = True
            self._stop_event.clear()
            self._reader_thread = threading.Thread(
                target=self._reader_loop,
                daemon=True,
                name="UpstreamReaderThread"
            )
            self._reader_thread.start()

        logger.info(f"Connected to {self.remote}")
        return True

    def send(self, data: bytes) -> None:
        """
        Forward client bytes to the remote endpoint.

        Does nothing when not connected. A write failure disconnects.

        Args:
            data: Bytes to send
        """
        transport = self._transport
        if not self._connected or transport is None:
            logger.debug(f"Dropping {len(data)} bytes, bridge not connected")
            return

        try:
            transport.write(data)
        except TransportError as e:
            logger.error(f"Error sending data to {self.remote}: {e}")
            self.disconnect()

    def disconnect(self) -> None:
        """
        Close the connection.

        Safe to call repeatedly and from any thread. Emits BridgeClosed only
        for the call that actually closes a live connection.
        """
        with self._lock:
            if not self._connected:
                return
            self._connected = False
            self._stop_event.set()
            transport = self._transport
            reader = self._reader_thread

        logger.info(f"Disconnecting from {self.remote}...")
        transport.close()

        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)
            if reader.is_alive():
                logger.warning("Upstream reader thread did not terminate in time")

        self._events.put(BridgeClosed(self))
        logger.info(f"Disconnected from {self.remote}")

    @property
    def is_connected(self) -> bool:
        """True while the upstream connection is live."""
        return self._connected

    def _reader_loop(self) -> None:
        """
        Continuously read from the remote endpoint.

        Each chunk becomes a BridgeData event. Remote close or a read error
        disconnects the bridge and ends the loop.
        """
        logger.debug("Upstream reader thread started")
        transport = self._transport

        while not self._stop_event.is_set() and not self._cancel_event.is_set():
            try:
                data = transport.read(self._read_size)
            except RemoteClosedError:
                logger.info(f"Connection closed by remote host {self.remote}")
                self.disconnect()
                break
            except TransportError as e:
                if not self._stop_event.is_set():
                    logger.error(f"Error reading from {self.remote}: {e}")
                    self.disconnect()
                break

            if data:
                self._events.put(BridgeData(self, data))

        if self._cancel_event.is_set():
            self.disconnect()

        logger.debug("Upstream reader thread stopped")

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"<UpstreamBridge remote={self.remote} status={status}>"
