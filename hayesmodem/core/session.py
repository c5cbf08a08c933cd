"""
Modem session state machine.

One session per accepted client connection. The session's own loop is the
only place session state changes: client bytes and bridge events are both
processed there.
"""

import logging
import queue
import select
import socket
import threading
from collections import deque
from typing import Callable, Deque, Optional, Union

from .bridge import UpstreamBridge
from ..audio import AudioPlayer, DialTiming, NullAudio, play_dial_tones
from ..config import ModemConfig
from ..exceptions import ClientDisconnectedError, RouteError
from ..features.phonebook import PhonebookResolver, normalize_number
from ..parsers.command import (
    BUSY,
    CONNECT,
    ESCAPE_SEQUENCE,
    INFO_BANNER,
    NO_CARRIER,
    OK,
    CommandInterpreter,
)
from ..parsers.route import RouteParser
from ..types import (
    BridgeClosed,
    BridgeData,
    BridgeEvent,
    Dial,
    Escape,
    GoOnline,
    Hangup,
    Intent,
    ModemState,
    Reset,
    SetEcho,
    SetVerbose,
    SoundCue,
)

logger = logging.getLogger(__name__)

GREETING = f"{INFO_BANNER}\r\nReady\r\n"

_CR = 0x0D
_LF = 0x0A
_BS = 0x08
_DEL = 0x7F
_ERASE = b"\b \b"
_ESCAPE_BYTES = ESCAPE_SEQUENCE.encode("ascii")

# (events queue, cancel event) -> bridge
BridgeFactory = Callable[["queue.Queue", threading.Event], UpstreamBridge]


class ModemSession:
    """
    Emulated modem attached to one client socket.

    Coordinates:
    - Line assembly and echo in command mode
    - Command interpretation and intent execution
    - The dial sequence (audio cues, phonebook lookup, upstream connect)
    - Transparent forwarding and +++ detection in online mode
    - Delivery of upstream data and remote hangups

    Example:

    .. code-block:: python

        session = ModemSession(client_socket, config)
        session.run()  # returns when the client goes away
    """

    def __init__(
        self,
        client: socket.socket,
        config: ModemConfig,
        audio=None,
        phonebook: Optional[PhonebookResolver] = None,
        bridge_factory: Optional[BridgeFactory] = None,
        connect_timeout: Optional[float] = None,
        poll_interval: float = 0.05,
        dial_timing: Optional[DialTiming] = None,
        read_size: int = 4096,
        held_limit: int = 65536
    ) -> None:
        """
        Initialize modem session.

        Args:
            client: Connected client socket; the session owns and closes it
            config: Emulator configuration
            audio: Audio collaborator with play(name)/stop()
                   (default: built from config)
            phonebook: Phonebook resolver (default: built from config)
            bridge_factory: Creates upstream bridges (default: UpstreamBridge)
            connect_timeout: Upstream connect deadline (default: from config)
            poll_interval: How often the loop checks for bridge events
            dial_timing: DTMF pause lengths
            read_size: Maximum bytes per client read
            held_limit: Maximum upstream bytes kept while escaped to command
                        mode; the oldest bytes are dropped beyond it
        """
        self._client = client
        self._config = config
        self._cancel_event = threading.Event()
        self._events: "queue.Queue[BridgeEvent]" = queue.Queue()

        self._interpreter = CommandInterpreter()
        self._route_parser = RouteParser()
        self._phonebook = phonebook or PhonebookResolver(config.phonebook)
        self._bridge_factory = bridge_factory or UpstreamBridge
        self._connect_timeout = connect_timeout or config.connect_timeout
        self._poll_interval = poll_interval
        self._dial_timing = dial_timing or DialTiming()
        self._read_size = read_size
        self._held_limit = held_limit

        self._owns_audio = audio is None
        if audio is None:
            audio = self._create_audio(config)
        self._audio = audio

        # Session state, mutated only by the processing loop
        self._state = ModemState.COMMAND
        self._echo_enabled = True
        self._verbose_enabled = True
        self._line: list[str] = []
        self._bridge: Optional[UpstreamBridge] = None
        self._held: Deque[bytes] = deque()
        self._held_size = 0

        self._close_lock = threading.Lock()
        self._closed = False

        try:
            self.peer = "%s:%s" % client.getpeername()[:2]
        except (OSError, TypeError):
            self.peer = "unknown"

    def _create_audio(self, config: ModemConfig):
        if not config.audio_enabled:
            return NullAudio()
        return AudioPlayer(
            config.sound_paths,
            base_path=config.base_path,
            device=config.audio_device,
            cancel_event=self._cancel_event
        )

    # ------------------------------------------------------------------
    # Processing loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """
        Run the session until the client disconnects or close() is called.
        """
        logger.info(f"New modem session from {self.peer}")

        try:
            if self._config.greeting:
                self._write(GREETING)

            while not self._cancel_event.is_set():
                self.process_events()

                ready, _, _ = select.select([self._client], [], [], self._poll_interval)
                if not ready:
                    continue

                data = self._client.recv(self._read_size)
                if not data:
                    logger.info(f"Client {self.peer} closed the connection")
                    break

                self.feed(data)
        except ClientDisconnectedError as e:
            logger.info(f"Client {self.peer} disconnected: {e}")
        except (OSError, ValueError) as e:
            if not self._cancel_event.is_set():
                logger.error(f"Error in modem session: {e}")
        finally:
            self.close()
            logger.info(f"Modem session ended for {self.peer}")

    def feed(self, data: bytes) -> None:
        """
        Process one chunk received from the client.

        Args:
            data: Bytes as read from the client socket
        """
        if self._state == ModemState.CONNECTED:
            self._handle_online_data(data)
            return

        for index, byte in enumerate(data):
            if self._state == ModemState.CONNECTED:
                # A dial earlier in this chunk put the line online
                self._handle_online_data(data[index:])
                return
            self._handle_command_byte(byte)

    def process_events(self) -> None:
        """Handle every bridge event queued so far."""
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return
            self._handle_bridge_event(event)

    def close(self) -> None:
        """
        Cancel the session.

        Stops audio, disconnects the upstream bridge and closes the client
        socket. Safe to call more than once and from any thread.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        logger.debug(f"Closing session for {self.peer}")
        self._cancel_event.set()
        self._audio.stop()

        bridge = self._bridge
        if bridge is not None:
            bridge.disconnect()

        try:
            self._client.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Client already gone
            pass
        self._client.close()

        if self._owns_audio:
            self._audio.close()

    # ------------------------------------------------------------------
    # Command mode
    # ------------------------------------------------------------------

    def _handle_command_byte(self, byte: int) -> None:
        if byte in (_CR, _LF):
            if self._line:
                line = "".join(self._line)
                self._line.clear()
                if self._echo_enabled:
                    self._write(b"\r\n")
                self._handle_line(line)
        elif byte in (_BS, _DEL):
            if self._line:
                self._line.pop()
                if self._echo_enabled:
                    self._write(_ERASE)
        elif 32 <= byte < 127:
            self._line.append(chr(byte))
            if self._echo_enabled:
                self._write(bytes([byte]))

    def _handle_line(self, line: str) -> None:
        logger.debug(f"Command: {line}")
        response, intent = self._interpreter.parse(line)

        if response:
            self._write(response)

        if intent is not None:
            self._execute(intent)

    def _execute(self, intent: Intent) -> None:
        """Apply an intent to the session."""
        if isinstance(intent, Reset):
            logger.info("Modem reset")
            self._drop_connection()
        elif isinstance(intent, Hangup):
            logger.info("Hanging up")
            self._drop_connection()
        elif isinstance(intent, SetEcho):
            self._echo_enabled = intent.enabled
        elif isinstance(intent, SetVerbose):
            # Stored only; result codes are always verbose
            self._verbose_enabled = intent.enabled
        elif isinstance(intent, Escape):
            if self._state == ModemState.CONNECTED:
                self._state = ModemState.COMMAND
        elif isinstance(intent, GoOnline):
            self._go_online()
        elif isinstance(intent, Dial):
            self._dial(intent.number)
        else:
            logger.debug(f"No action for {intent}")

    def _drop_connection(self) -> None:
        """Disconnect and discard the bridge, return to command mode."""
        bridge = self._bridge
        self._bridge = None
        self._clear_held()

        if bridge is not None:
            bridge.disconnect()

        self._state = ModemState.COMMAND

    def _go_online(self) -> None:
        bridge = self._bridge
        if bridge is None or not bridge.is_connected:
            logger.debug("ATO ignored, no upstream connection")
            return

        self._state = ModemState.CONNECTED
        logger.info(f"Back online with {bridge.remote}")

        while self._held:
            chunk = self._held.popleft()
            self._held_size -= len(chunk)
            self._write(chunk)

    # ------------------------------------------------------------------
    # Dialing
    # ------------------------------------------------------------------

    def _dial(self, number: str) -> None:
        """Run the dial sequence for a number."""
        logger.info(f"Dialing: {number}")

        # Only one upstream connection per session
        if self._bridge is not None:
            self._drop_connection()

        self._state = ModemState.DIALING
        self._play(SoundCue.DIALTONE.value)
        play_dial_tones(self._audio, number, self._dial_timing, self._cancel_event)

        entry = self._phonebook.resolve(normalize_number(number))
        if entry is None:
            logger.warning(f"Number not found in phonebook: {number}")
            self._play(SoundCue.CONNECT_FAILED.value)
            self._write(NO_CARRIER)
            self._state = ModemState.COMMAND
            return

        if entry.announce:
            logger.debug(f"Playing announce sound: {entry.announce}")
            self._play(entry.announce)

        if not entry.route:
            self._state = ModemState.BUSY
            self._play(SoundCue.BUSY.value)
            self._write(BUSY)
            self._state = ModemState.COMMAND
            return

        try:
            route = self._route_parser.parse(entry.route)
        except RouteError as e:
            logger.warning(f"Invalid route_to format: {e}")
            self._write(NO_CARRIER)
            self._state = ModemState.COMMAND
            return

        bridge = self._bridge_factory(self._events, self._cancel_event)
        if bridge.connect(route.host, route.port, self._connect_timeout):
            self._bridge = bridge
            self._play(SoundCue.MODEM_NOISE.value)
            self._play(SoundCue.CONNECT_SUCCESS.value)
            self._state = ModemState.CONNECTED
            self._write(CONNECT)
            logger.info(f"Connected to {route}")
        else:
            self._play(SoundCue.CONNECT_FAILED.value)
            self._state = ModemState.COMMAND
            self._write(NO_CARRIER)
            logger.warning(f"Connection to {route} failed")

    def _play(self, name: str) -> None:
        if not self._audio.play(name):
            logger.debug(f"Sound cue skipped: {name}")

    # ------------------------------------------------------------------
    # Online mode
    # ------------------------------------------------------------------

    def _handle_online_data(self, data: bytes) -> None:
        if data == _ESCAPE_BYTES:
            self._state = ModemState.COMMAND
            self._write(OK)
            logger.debug("Returned to command mode")
            return

        self._bridge.send(data)

    def _hold(self, data: bytes) -> None:
        """Keep upstream data for ATO, bounded by held_limit."""
        self._held.append(data)
        self._held_size += len(data)

        if self._held_size > self._held_limit:
            logger.warning(f"Held upstream data over {self._held_limit} bytes, dropping oldest")

        while self._held_size > self._held_limit:
            excess = self._held_size - self._held_limit
            oldest = self._held[0]
            if len(oldest) <= excess:
                self._held.popleft()
                self._held_size -= len(oldest)
            else:
                self._held[0] = oldest[excess:]
                self._held_size -= excess

    def _clear_held(self) -> None:
        self._held.clear()
        self._held_size = 0

    def _handle_bridge_event(self, event: BridgeEvent) -> None:
        if event.source is not self._bridge:
            logger.debug(f"Ignoring event from discarded bridge: {type(event).__name__}")
            return

        if isinstance(event, BridgeData):
            if self._state == ModemState.CONNECTED:
                self._write(event.data)
            else:
                self._hold(event.data)
        elif isinstance(event, BridgeClosed):
            was_online = self._state == ModemState.CONNECTED
            self._bridge = None
            self._clear_held()
            if was_online:
                self._state = ModemState.COMMAND
                self._write(NO_CARRIER)
                logger.info("Remote connection closed")

    # ------------------------------------------------------------------
    # Client output
    # ------------------------------------------------------------------

    def _write(self, data: Union[str, bytes]) -> None:
        if isinstance(data, str):
            data = data.encode("ascii")
        try:
            self._client.sendall(data)
        except OSError as e:
            raise ClientDisconnectedError(f"Write to client failed: {e}") from e

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ModemState:
        return self._state

    @property
    def echo_enabled(self) -> bool:
        return self._echo_enabled

    @property
    def verbose_enabled(self) -> bool:
        return self._verbose_enabled

    @property
    def is_online(self) -> bool:
        return self._state == ModemState.CONNECTED

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def bridge(self) -> Optional[UpstreamBridge]:
        return self._bridge

    def __repr__(self) -> str:
        return f"<ModemSession peer={self.peer} state={self._state.value}>"
