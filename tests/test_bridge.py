"""
Tests for the upstream bridge.
"""

import queue
import threading

import pytest

from hayesmodem.core import MockTransport, UpstreamBridge
from hayesmodem.exceptions import TransportError
from hayesmodem.types import BridgeClosed, BridgeData


def _factory(transport):
    def factory(host, port, timeout):
        return transport
    return factory


def _failing_factory(host, port, timeout):
    raise TransportError(f"Failed to connect to {host}:{port}")


def _next_event(events, timeout=2.0):
    return events.get(timeout=timeout)


def _drain(events):
    items = []
    while True:
        try:
            items.append(events.get_nowait())
        except queue.Empty:
            return items


@pytest.fixture
def events():
    return queue.Queue()


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def bridge(events, transport):
    b = UpstreamBridge(events, transport_factory=_factory(transport))
    yield b
    b.disconnect()


@pytest.mark.timeout(5)
def test_connect_starts_relaying(bridge, events, transport):
    """Test that inbound chunks arrive as BridgeData events."""
    assert bridge.connect("bbs.example.org", 23, timeout=1.0)
    assert bridge.is_connected
    assert bridge.remote == "bbs.example.org:23"

    transport.feed(b"Welcome\r\n")

    event = _next_event(events)
    assert isinstance(event, BridgeData)
    assert event.source is bridge
    assert event.data == b"Welcome\r\n"


@pytest.mark.timeout(5)
def test_chunks_keep_order(bridge, events, transport):
    bridge.connect("host", 23)
    for chunk in (b"one", b"two", b"three"):
        transport.feed(chunk)

    received = b"".join(_next_event(events).data for _ in range(3))
    assert received == b"onetwothree"


def test_failed_connect_returns_false(events):
    """Test that a failed connect reports False and emits nothing."""
    bridge = UpstreamBridge(events, transport_factory=_failing_factory)

    assert bridge.connect("127.0.0.1", 1, timeout=0.5) is False
    assert not bridge.is_connected

    bridge.disconnect()
    assert events.empty()


def test_os_error_during_connect_returns_false(events):
    def factory(host, port, timeout):
        raise OSError("Name or service not known")

    bridge = UpstreamBridge(events, transport_factory=factory)
    assert bridge.connect("nowhere.invalid", 23) is False
    assert events.empty()


def test_bridge_is_single_use(events, transport):
    """Test that a second connect does not reconnect."""
    calls = []

    def factory(host, port, timeout):
        calls.append((host, port))
        return transport

    b = UpstreamBridge(events, transport_factory=factory)
    assert b.connect("host", 23)
    assert b.connect("other", 24)
    assert calls == [("host", 23)]

    b.disconnect()
    assert b.connect("host", 23) is False
    assert calls == [("host", 23)]


def test_send_writes_to_transport(bridge, transport):
    bridge.connect("host", 23)
    bridge.send(b"hello")
    bridge.send(b" world")

    assert transport.written_bytes == b"hello world"


def test_send_when_not_connected_is_ignored(bridge, transport, events):
    bridge.send(b"lost")

    assert transport.written == []
    assert events.empty()


@pytest.mark.timeout(5)
def test_send_failure_disconnects(bridge, events, transport):
    """Test that a write error closes the bridge quietly."""
    bridge.connect("host", 23)
    transport.fail_writes = True

    bridge.send(b"data")

    assert not bridge.is_connected
    assert not transport.is_open()
    assert isinstance(_next_event(events), BridgeClosed)


@pytest.mark.timeout(5)
def test_disconnect_emits_closed_once(bridge, events, transport):
    bridge.connect("host", 23)

    bridge.disconnect()
    bridge.disconnect()
    bridge.disconnect()

    closed = [e for e in _drain(events) if isinstance(e, BridgeClosed)]
    assert len(closed) == 1
    assert closed[0].source is bridge
    assert not transport.is_open()


@pytest.mark.timeout(5)
def test_concurrent_disconnect_emits_closed_once(bridge, events):
    """Test that racing disconnects from many threads close exactly once."""
    bridge.connect("host", 23)
    start = threading.Event()

    def worker():
        start.wait()
        bridge.disconnect()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    start.set()
    for t in threads:
        t.join()

    closed = [e for e in _drain(events) if isinstance(e, BridgeClosed)]
    assert len(closed) == 1


@pytest.mark.timeout(5)
def test_remote_hangup_emits_closed(bridge, events, transport):
    """Test that the reader reports a remote close."""
    bridge.connect("host", 23)
    transport.feed(b"bye")
    transport.hang_up()

    first = _next_event(events)
    second = _next_event(events)

    assert isinstance(first, BridgeData)
    assert first.data == b"bye"
    assert isinstance(second, BridgeClosed)
    assert not bridge.is_connected

    bridge.disconnect()
    assert events.empty()


@pytest.mark.timeout(5)
def test_cancel_event_stops_reader(events, transport):
    """Test that setting the session cancel signal disconnects."""
    cancel = threading.Event()
    bridge = UpstreamBridge(events, cancel_event=cancel, transport_factory=_factory(transport))
    bridge.connect("host", 23)

    cancel.set()

    assert isinstance(_next_event(events), BridgeClosed)
    assert not bridge.is_connected
    assert not transport.is_open()


def test_connect_after_cancel_returns_false(events, transport):
    cancel = threading.Event()
    cancel.set()
    bridge = UpstreamBridge(events, cancel_event=cancel, transport_factory=_factory(transport))

    assert bridge.connect("host", 23) is False
    assert not transport.is_open()
    assert events.empty()


@pytest.mark.timeout(5)
def test_connect_to_real_endpoint(events, upstream):
    """Test the default socket transport against a local echo endpoint."""
    bridge = UpstreamBridge(events)
    try:
        assert bridge.connect("127.0.0.1", upstream.port, timeout=1.0)
        bridge.send(b"ping")

        event = _next_event(events)
        assert isinstance(event, BridgeData)
        assert event.data == b"ping"
    finally:
        bridge.disconnect()
