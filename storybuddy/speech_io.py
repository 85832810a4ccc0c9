"""
Speech input/output engines.

The practice components only see two small capabilities:

    SpeechOutput.speak(text, language, rate, pitch, on_start)  -> awaitable, one utterance
    SpeechInput.listen(language)                              -> awaitable, one transcript

Each call resolves exactly once. A cancelled utterance raises
PlaybackInterrupted; a failed capture raises CaptureError with an engine
error code ("no-speech", "audio-capture", "not-allowed", "network",
"aborted").

The concrete engines synthesize/transcribe through the AI service and use
pygame (playback) and sounddevice + soundfile (recording) for the audio
device, which is shared through an AudioDeviceGuard.
"""

import asyncio
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

from .api import StoryAIService
from .errors import CaptureError, PlaybackInterrupted, RemoteServiceFailure
from .logger import logger

# Audio playback support
try:
    import pygame
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    logger.warning("pygame not installed. Audio playback will be disabled.")
    logger.warning("Install with: pip install pygame")

# Audio recording support
try:
    import numpy as np
    import sounddevice as sd
    import soundfile as sf
    RECORDING_AVAILABLE = True
except (ImportError, OSError) as e:
    # sounddevice raises OSError when the PortAudio library is missing
    RECORDING_AVAILABLE = False
    logger.warning(f"Recording disabled: {e}. Install with: pip install sounddevice soundfile numpy")


class AudioDeviceGuard:
    """
    Single-owner lock for the speaker/microphone.

    Acquiring while someone else holds the device pre-empts them: their
    ``on_preempt`` callback runs (e.g. stop playback) before ownership moves.
    """

    def __init__(self):
        self._owner: Optional[object] = None
        self._on_preempt: Optional[Callable[[], None]] = None

    @property
    def owner(self) -> Optional[object]:
        return self._owner

    def is_busy(self) -> bool:
        return self._owner is not None

    def acquire(self, owner: object, on_preempt: Optional[Callable[[], None]] = None) -> None:
        if self._owner is not None and self._owner is not owner:
            previous, callback = self._owner, self._on_preempt
            self._owner, self._on_preempt = None, None
            logger.debug(f"Audio device pre-empted: {type(previous).__name__} -> {type(owner).__name__}")
            if callback:
                callback()
        self._owner = owner
        self._on_preempt = on_preempt

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None
            self._on_preempt = None


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class SpeechOutput(ABC):
    """Text-to-speech capability."""

    @abstractmethod
    def is_supported(self) -> bool:
        ...

    @abstractmethod
    async def speak(self, text: str, language: str, rate: float, pitch: float,
                    on_start: Optional[Callable[[], None]] = None) -> None:
        """Speak one utterance. Raises PlaybackInterrupted if cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Interrupt the current utterance (if any). Idempotent."""

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def resume(self) -> None:
        ...

    @abstractmethod
    def is_speaking(self) -> bool:
        ...

    @abstractmethod
    def is_paused(self) -> bool:
        ...


class SpeechInput(ABC):
    """Speech-to-text capability."""

    @abstractmethod
    def is_supported(self) -> bool:
        ...

    @abstractmethod
    async def listen(self, language: str) -> str:
        """Capture one utterance and return its final transcript. Raises CaptureError."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and finalize whatever was heard."""

    @abstractmethod
    def abort(self) -> None:
        """Stop capturing and discard the attempt. Safe in any state."""


# ---------------------------------------------------------------------------
# pygame playback of synthesized speech
# ---------------------------------------------------------------------------

class PygameSpeechOutput(SpeechOutput):
    """
    Speaks by synthesizing MP3 audio through the AI service and playing it
    with pygame.mixer.music.
    """

    POLL_INTERVAL = 0.05

    def __init__(self, ai: StoryAIService):
        self.ai = ai
        self._mixer_ready: Optional[bool] = None
        self._speaking = False
        self._paused = False
        self._generation = 0

    def _ensure_mixer(self) -> bool:
        if self._mixer_ready is None:
            if not AUDIO_AVAILABLE:
                self._mixer_ready = False
            else:
                try:
                    pygame.mixer.init()
                    self._mixer_ready = True
                except pygame.error as e:
                    logger.error(f"Audio output unavailable: {e}")
                    self._mixer_ready = False
        return self._mixer_ready

    def is_supported(self) -> bool:
        return self.ai.is_available() and self._ensure_mixer()

    def is_speaking(self) -> bool:
        return self._speaking

    def is_paused(self) -> bool:
        return self._paused

    async def speak(self, text: str, language: str, rate: float, pitch: float,
                    on_start: Optional[Callable[[], None]] = None) -> None:
        generation = self._generation
        self._paused = False
        path = None
        try:
            # pitch has no TTS equivalent; rate maps to the synthesis speed
            path = await asyncio.to_thread(self.ai.synthesize_speech, text, language, rate)
            if generation != self._generation:
                raise PlaybackInterrupted()

            pygame.mixer.music.load(path)
            pygame.mixer.music.play()
            # Pausable only once audio is actually playing
            self._speaking = True
            logger.tts(f"Speaking: {text[:50]}")
            if on_start:
                on_start()

            while True:
                if generation != self._generation:
                    raise PlaybackInterrupted()
                # get_busy() is False while paused
                if not self._paused and not pygame.mixer.music.get_busy():
                    break
                await asyncio.sleep(self.POLL_INTERVAL)
        finally:
            self._speaking = False
            self._paused = False
            if path:
                if self._mixer_ready:
                    pygame.mixer.music.unload()
                try:
                    os.remove(path)
                except OSError:
                    logger.debug(f"Could not remove temp audio {path}")

    def cancel(self) -> None:
        self._generation += 1
        if self._mixer_ready:
            pygame.mixer.music.stop()

    def pause(self) -> None:
        if self._speaking and not self._paused and self._mixer_ready:
            pygame.mixer.music.pause()
            self._paused = True

    def resume(self) -> None:
        if self._paused and self._mixer_ready:
            pygame.mixer.music.unpause()
            self._paused = False


# ---------------------------------------------------------------------------
# Microphone capture + Whisper transcription
# ---------------------------------------------------------------------------

class MicrophoneSpeechInput(SpeechInput):
    """
    Records a single utterance from the default microphone and transcribes it.

    Recording ends after trailing silence, on stop(), or at a hard cap. The
    capture runs in a worker thread; stop()/abort() signal it through an
    event.
    """

    SAMPLE_RATE = 16000
    CHANNELS = 1
    BLOCK_SECONDS = 0.03

    def __init__(
        self,
        ai: StoryAIService,
        max_seconds: float = 15.0,
        silence_seconds: float = 1.0,
        threshold: float = 0.015,
        min_speech_seconds: float = 0.3,
    ):
        self.ai = ai
        self.max_seconds = max_seconds
        self.silence_seconds = silence_seconds
        self.threshold = threshold
        self.min_speech_seconds = min_speech_seconds

        # Replaced per attempt so an aborted recording cannot stop the next one
        self._stop_event = threading.Event()
        self._abort_event = threading.Event()
        self._has_device: Optional[bool] = None

    def is_supported(self) -> bool:
        if not RECORDING_AVAILABLE or not self.ai.is_available():
            return False
        if self._has_device is None:
            try:
                devices = sd.query_devices()
                self._has_device = any(d["max_input_channels"] > 0 for d in devices)
            except Exception as e:
                logger.error(f"Audio device error: {e}")
                self._has_device = False
            if not self._has_device:
                logger.warning("No microphone found")
        return self._has_device

    def _record(self, stop_event: threading.Event) -> Tuple["np.ndarray", float]:
        """Blocking capture; returns (samples, seconds of speech)."""
        block = int(self.BLOCK_SECONDS * self.SAMPLE_RATE)
        max_blocks = int(self.max_seconds / self.BLOCK_SECONDS)
        silence_needed = int(self.silence_seconds / self.BLOCK_SECONDS)

        frames = []
        started = False
        silent = 0
        speech = 0

        with sd.InputStream(samplerate=self.SAMPLE_RATE, channels=self.CHANNELS, dtype="float32") as stream:
            for _ in range(max_blocks):
                if stop_event.is_set():
                    break
                data, _ = stream.read(block)
                chunk = data.flatten()
                level = float(np.sqrt(np.mean(chunk * chunk))) if chunk.size else 0.0

                if level > self.threshold:
                    started = True
                    silent = 0
                    speech += 1
                    frames.append(chunk.copy())
                elif started:
                    silent += 1
                    frames.append(chunk.copy())
                    if silent >= silence_needed:
                        break

        audio = np.concatenate(frames) if frames else np.zeros(0, dtype="float32")
        return audio, speech * self.BLOCK_SECONDS

    async def listen(self, language: str) -> str:
        if not self.is_supported():
            raise CaptureError("audio-capture", "Microphone not available")

        stop_event = self._stop_event = threading.Event()
        abort_event = self._abort_event = threading.Event()

        try:
            audio, speech = await asyncio.to_thread(self._record, stop_event)
        except sd.PortAudioError as e:
            code = "not-allowed" if "permission" in str(e).lower() else "audio-capture"
            raise CaptureError(code, str(e)) from e

        if abort_event.is_set():
            raise CaptureError("aborted")
        logger.stt(f"Recorded {audio.size / self.SAMPLE_RATE:.1f}s ({speech:.1f}s speech)")
        if speech < self.min_speech_seconds:
            raise CaptureError("no-speech")

        fd, path = tempfile.mkstemp(suffix=".wav", prefix="storybuddy_recording_")
        os.close(fd)
        try:
            sf.write(path, audio, self.SAMPLE_RATE)
            try:
                transcript = await asyncio.to_thread(self.ai.transcribe_audio, path, language)
            except RemoteServiceFailure as e:
                raise CaptureError("network", str(e)) from e
        finally:
            try:
                os.remove(path)
            except OSError:
                logger.debug(f"Could not remove temp recording {path}")

        if abort_event.is_set():
            raise CaptureError("aborted")
        if not transcript:
            raise CaptureError("no-speech")
        return transcript

    def stop(self) -> None:
        self._stop_event.set()

    def abort(self) -> None:
        self._abort_event.set()
        self._stop_event.set()
