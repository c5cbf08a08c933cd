"""
Audio cue playback.

Sound cues are fire-and-forget: ``play`` queues a file and returns at once,
a worker thread decodes queued files with soundfile and plays them in order
through sounddevice.
"""

import logging
import os
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Mapping, Optional, Union

import soundfile as sf

from .exceptions import AudioError
from .types import SoundCue

logger = logging.getLogger(__name__)

_sounddevice = None
_sounddevice_missing = False


def load_sounddevice():
    """
    Import sounddevice on first use.

    The import fails with OSError on hosts without the PortAudio library.

    Returns:
        The sounddevice module, or None when PortAudio is unavailable
    """
    global _sounddevice, _sounddevice_missing
    if _sounddevice is None and not _sounddevice_missing:
        try:
            import sounddevice
        except OSError as e:
            logger.warning(f"PortAudio not available, sound cues disabled: {e}")
            _sounddevice_missing = True
            return None
        _sounddevice = sounddevice
    return _sounddevice


class NullAudio:
    """Audio collaborator that plays nothing."""

    def play(self, name: str) -> bool:
        logger.debug(f"Audio disabled, skipping cue: {name}")
        return False

    def stop(self) -> None:
        pass

    def close(self) -> None:
        pass


class AudioPlayer:
    """
    Plays configured sound cues on the default (or configured) output device.

    Features:
    - Named cues from the ``sounds`` config section, or plain file paths
    - Sequential playback on a worker thread
    - stop() drops queued cues and cuts off the current one
    - Honors the session cancellation event
    """

    def __init__(
        self,
        sound_paths: Mapping[str, str],
        base_path: str = ".",
        device: Optional[Union[int, str]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Initialize audio player.

        Args:
            sound_paths: Cue name -> file path
            base_path: Directory relative paths are resolved against
            device: sounddevice output device index or name (default: system default)
            cancel_event: Session cancellation signal
        """
        self._sound_paths = dict(sound_paths)
        self._base_path = base_path
        self._device = device
        self._cancel_event = cancel_event or threading.Event()

        self._queue: Deque[str] = deque()
        self._cond = threading.Condition()
        # Bumped by stop(); a cue decoded under an older generation is not started
        self._generation = 0
        self._playing = False
        self._worker: Optional[threading.Thread] = None
        self._closed = False

    def resolve(self, name: str) -> str:
        """
        Resolve a cue name or file name to an existing file.

        Args:
            name: Configured cue name (e.g., "dialtone") or file path

        Returns:
            Full path to the sound file

        Raises:
            AudioError: If no file exists for the cue
        """
        filename = self._sound_paths.get(name, name)
        if not filename:
            raise AudioError(f"No sound configured for cue: {name}")

        full_path = os.path.join(self._base_path, filename)
        if not os.path.isfile(full_path):
            raise AudioError(f"Audio file not found: {full_path}")

        return full_path

    def play(self, name: str) -> bool:
        """
        Queue a cue for playback.

        Args:
            name: Cue name or file path

        Returns:
            True if the cue was queued, False if it was skipped
        """
        if self._closed or self._cancel_event.is_set():
            return False

        try:
            path = self.resolve(name)
        except AudioError as e:
            logger.warning(str(e))
            return False

        if load_sounddevice() is None:
            return False

        with self._cond:
            self._queue.append(path)
            self._ensure_worker()
            self._cond.notify_all()

        logger.debug(f"Queued audio: {name}")
        return True

    def stop(self) -> None:
        """Drop queued cues and stop the current one."""
        with self._cond:
            self._queue.clear()
            self._generation += 1
            playing = self._playing

        if playing:
            sd = load_sounddevice()
            try:
                sd.stop()
            except sd.PortAudioError as e:
                logger.error(f"Error stopping audio: {e}")

    def close(self) -> None:
        """Stop playback and end the worker thread."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self.stop()

        if self._worker is not None and self._worker is not threading.current_thread():
            self._worker.join(timeout=1.0)

    @property
    def is_playing(self) -> bool:
        return self._playing

    def _ensure_worker(self) -> None:
        """Start the worker thread on first use. Caller holds the condition."""
        if self._worker is None or not self._worker.is_alive():
            self._worker = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name="AudioPlayerThread"
            )
            self._worker.start()

    def _worker_loop(self) -> None:
        """Play queued files one after another."""
        while True:
            with self._cond:
                while not self._queue and not self._closed and not self._cancel_event.is_set():
                    self._cond.wait(0.1)
                if self._closed or self._cancel_event.is_set():
                    break
                path = self._queue.popleft()
                generation = self._generation

            self._play_file(path, generation)

        self.stop()
        logger.debug("Audio worker stopped")

    def _play_file(self, path: str, generation: int) -> None:
        """Decode one file and block until it has played."""
        sd = load_sounddevice()

        try:
            data, samplerate = sf.read(path, dtype="float32")
        except RuntimeError as e:
            logger.error(f"Error reading audio file {path}: {e}")
            return

        with self._cond:
            if generation != self._generation:
                return
            try:
                sd.play(data, samplerate, device=self._device)
            except sd.PortAudioError as e:
                logger.error(f"Error playing audio file {path}: {e}")
                return
            self._playing = True

        logger.debug(f"Playing audio: {path}")
        try:
            sd.wait()
        except sd.PortAudioError as e:
            logger.warning(f"Audio playback failed for {path}: {e}")
        finally:
            with self._cond:
                self._playing = False


@dataclass
class DialTiming:
    """Pauses between DTMF cues, in seconds."""
    tone_gap: float = 0.1
    separator_gap: float = 0.2
    trailing_gap: float = 1.0


def play_dial_tones(
    audio,
    number: str,
    timing: Optional[DialTiming] = None,
    cancel_event: Optional[threading.Event] = None
) -> None:
    """
    Play the DTMF sequence for a dialed number.

    Digits get a tone cue followed by a short pause, spaces and hyphens a
    longer pause, anything else nothing. A closing pause follows the
    sequence. Pauses end early when cancel_event is set.

    Args:
        audio: Audio collaborator with play(name)
        number: Number as dialed
        timing: Pause lengths (default: DialTiming())
        cancel_event: Session cancellation signal
    """
    timing = timing or DialTiming()
    cancel_event = cancel_event or threading.Event()

    for char in number:
        if cancel_event.is_set():
            return

        if char.isdigit():
            audio.play(SoundCue.tone(char))
            cancel_event.wait(timing.tone_gap)
        elif char in (" ", "-"):
            cancel_event.wait(timing.separator_gap)

    cancel_event.wait(timing.trailing_gap)
