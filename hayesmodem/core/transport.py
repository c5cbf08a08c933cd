"""
Transport layer abstraction for upstream connections.

Provides abstractions for the outbound TCP connection with dependency
injection support.
"""

import logging
import select
import socket
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque

from ..exceptions import TransportError, RemoteClosedError

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for upstream transport."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def read(self, size: int = 4096) -> bytes:
        """
        Read whatever is available, up to size bytes.

        Waits at most one poll interval.

        Args:
            size: Maximum number of bytes to return

        Returns:
            Bytes read, or b"" if nothing arrived within the poll interval

        Raises:
            RemoteClosedError: If the remote end closed the connection
            TransportError: If read fails
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class SocketTransport(Transport):
    """TCP socket transport implementation."""

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 10.0,
        poll_interval: float = 0.1
    ) -> None:
        """
        Open a TCP connection.

        Args:
            host: Remote host name or address
            port: Remote TCP port
            timeout: Connect and write timeout in seconds
            poll_interval: Maximum time a read waits for data

        Raises:
            TransportError: If the connection cannot be established
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._closed = False

        try:
            self._socket = socket.create_connection((host, port), timeout=timeout)
            logger.info(f"Opened TCP connection to {host}:{port}")
        except OSError as e:
            logger.error(f"Failed to connect to {host}:{port}: {e}")
            raise TransportError(f"Failed to connect to {host}:{port}: {e}") from e

        self._socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

    def write(self, data: bytes) -> int:
        """Write data to the socket."""
        try:
            self._socket.sendall(data)
            logger.debug(f"Wrote {len(data)} bytes: {data!r}")
            return len(data)
        except OSError as e:
            logger.error(f"Socket write failed: {e}")
            raise TransportError(f"Socket write failed: {e}") from e

    def read(self, size: int = 4096) -> bytes:
        """Read from the socket, waiting at most one poll interval."""
        if self._closed:
            raise TransportError("Socket transport is closed")

        try:
            ready, _, _ = select.select([self._socket], [], [], self.poll_interval)
            if not ready:
                return b""
            data = self._socket.recv(size)
        except (OSError, ValueError) as e:
            if self._closed:
                raise TransportError("Socket transport is closed") from e
            logger.error(f"Socket read failed: {e}")
            raise TransportError(f"Socket read failed: {e}") from e

        if not data:
            logger.info(f"Connection closed by {self.host}:{self.port}")
            raise RemoteClosedError(f"Connection closed by {self.host}:{self.port}")

        logger.debug(f"Read {len(data)} bytes: {data!r}")
        return data

    def is_open(self) -> bool:
        """Check if the socket is open."""
        return not self._closed

    def close(self) -> None:
        """Close the socket, waking any blocked reader."""
        if self._closed:
            return
        self._closed = True

        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already reset by the peer
            pass
        self._socket.close()
        logger.info(f"Closed TCP connection to {self.host}:{self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Simulates a remote endpoint without opening sockets.
    """

    def __init__(self, poll_interval: float = 0.01) -> None:
        """Initialize mock transport."""
        self.poll_interval = poll_interval
        self.written: list[bytes] = []
        self.fail_writes = False
        self._open = True
        self._remote_closed = False
        self._inbound: Deque[bytes] = deque()
        self._cond = threading.Condition()
        logger.info("Initialized MockTransport")

    def feed(self, chunk: bytes) -> None:
        """
        Queue a chunk to be returned by read.

        Args:
            chunk: Bytes "sent" by the remote end
        """
        with self._cond:
            self._inbound.append(chunk)
            self._cond.notify_all()
            logger.debug(f"Queued mock inbound chunk: {chunk!r}")

    def hang_up(self) -> None:
        """Simulate the remote end closing the connection."""
        with self._cond:
            self._remote_closed = True
            self._cond.notify_all()

    def write(self, data: bytes) -> int:
        """Record written data."""
        if not self._open:
            raise TransportError("MockTransport is closed")
        if self.fail_writes:
            raise TransportError("MockTransport write failure (simulated)")

        with self._cond:
            self.written.append(data)
        logger.debug(f"Mock write: {data!r}")
        return len(data)

    def read(self, size: int = 4096) -> bytes:
        """Return the next queued chunk, if any."""
        with self._cond:
            if not self._inbound and not self._remote_closed and self._open:
                self._cond.wait(self.poll_interval)

            if not self._open:
                raise TransportError("MockTransport is closed")

            if self._inbound:
                chunk = self._inbound.popleft()
                if len(chunk) > size:
                    self._inbound.appendleft(chunk[size:])
                    chunk = chunk[:size]
                return chunk

            if self._remote_closed:
                raise RemoteClosedError("MockTransport closed by remote (simulated)")

        return b""

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        with self._cond:
            self._open = False
            self._cond.notify_all()
        logger.info("Closed MockTransport")

    @property
    def written_bytes(self) -> bytes:
        """All data written so far."""
        with self._cond:
            return b"".join(self.written)
