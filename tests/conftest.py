"""
Pytest configuration and fixtures.

Provides shared test fixtures for HayesModem tests.
"""

import logging
import socket
import threading
import time

import pytest

from hayesmodem import DialTiming, ModemConfig, ModemSession, PhonebookEntry


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

NO_DELAY = DialTiming(tone_gap=0.0, separator_gap=0.0, trailing_gap=0.0)


class RecordingAudio:
    """Audio collaborator that records cues instead of playing them."""

    def __init__(self, available: bool = True):
        self.available = available
        self.played: list[str] = []
        self.stop_count = 0

    def play(self, name: str) -> bool:
        self.played.append(name)
        return self.available

    def stop(self) -> None:
        self.stop_count += 1


class UpstreamServer:
    """
    Minimal TCP endpoint standing in for a BBS.

    Echoes what it receives, optionally greets on accept, and can hang up on
    its clients.
    """

    def __init__(self, greeting: bytes = b""):
        self.greeting = greeting
        self.received = bytearray()
        self.connections: list[socket.socket] = []
        self._lock = threading.Lock()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen()
        self._listener.settimeout(0.1)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    @property
    def port(self) -> int:
        return self._listener.getsockname()[1]

    @property
    def route(self) -> str:
        return f"127.0.0.1:{self.port}"

    def _accept_loop(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(None)
            with self._lock:
                self.connections.append(conn)
            threading.Thread(target=self._echo, args=(conn,), daemon=True).start()

    def _echo(self, conn: socket.socket):
        try:
            if self.greeting:
                conn.sendall(self.greeting)
            while True:
                data = conn.recv(4096)
                if not data:
                    break
                with self._lock:
                    self.received.extend(data)
                conn.sendall(data)
        except OSError:
            pass

    def wait_for_connection(self, timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if self.connections:
                    return True
            time.sleep(0.01)
        return False

    def hang_up(self):
        """Close every accepted connection."""
        with self._lock:
            connections, self.connections = self.connections, []
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()

    def close(self):
        self._stop.set()
        self.hang_up()
        self._listener.close()
        self._thread.join(timeout=1.0)


def unused_route() -> str:
    """A loopback route nothing listens on."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return f"127.0.0.1:{port}"


def read_until(sock: socket.socket, expected: bytes, timeout: float = 3.0) -> bytes:
    """
    Read from sock until expected appears in the accumulated data.

    Returns everything read; the caller asserts on it.
    """
    sock.settimeout(0.05)
    buffer = bytearray()
    deadline = time.monotonic() + timeout
    while expected not in buffer and time.monotonic() < deadline:
        try:
            data = sock.recv(4096)
        except socket.timeout:
            continue
        if not data:
            break
        buffer.extend(data)
    return bytes(buffer)


def drain(sock: socket.socket, quiet: float = 0.2) -> bytes:
    """Read until nothing arrives for the quiet period."""
    sock.settimeout(quiet)
    buffer = bytearray()
    while True:
        try:
            data = sock.recv(4096)
        except socket.timeout:
            break
        if not data:
            break
        buffer.extend(data)
    return bytes(buffer)


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class SessionHarness:
    """A ModemSession running on one end of a socket pair."""

    def __init__(self, config: ModemConfig, audio: RecordingAudio, **options):
        self.client, server_end = socket.socketpair()
        self.audio = audio
        self.session = ModemSession(
            server_end,
            config,
            audio=audio,
            dial_timing=NO_DELAY,
            poll_interval=0.01,
            **options
        )
        self.thread = threading.Thread(target=self.session.run, daemon=True)
        self.thread.start()

    def send(self, data: bytes) -> None:
        self.client.sendall(data)

    def command(self, line: str, expect: bytes = b"OK\r\n", timeout: float = 3.0) -> bytes:
        self.send(line.encode("ascii") + b"\r")
        return read_until(self.client, expect, timeout)

    def close(self):
        self.session.close()
        self.client.close()
        self.thread.join(timeout=2.0)


@pytest.fixture
def upstream():
    """
    Start a local echo endpoint.

    Example:
        def test_something(upstream):
            route = upstream.route  # "127.0.0.1:<port>"
    """
    server = UpstreamServer()
    yield server
    server.close()


@pytest.fixture
def audio():
    return RecordingAudio()


@pytest.fixture
def modem_config(upstream):
    """
    Configuration with one entry for each dial outcome.

    - 5551234: routed to the echo endpoint
    - 5550000: routed to a closed port
    - 5559999: announce sound, no route (BUSY)
    - 5551111: malformed route
    """
    return ModemConfig(
        port=0,
        greeting=False,
        connect_timeout=2.0,
        phonebook=[
            PhonebookEntry(number="555-1234", route=upstream.route),
            PhonebookEntry(number="555 0000", route=unused_route()),
            PhonebookEntry(number="5559999", announce="announce.wav"),
            PhonebookEntry(number="5551111", route="not-a-route"),
        ],
        audio_enabled=False,
    )


@pytest.fixture
def harness(modem_config, audio):
    """
    Run a session against a socket pair.

    Example:
        def test_reset(harness):
            assert b"OK" in harness.command("ATZ")
    """
    h = SessionHarness(modem_config, audio)
    yield h
    h.close()
