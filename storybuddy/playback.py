"""
Sequential read-aloud of a story, one segment per utterance.

States: idle -> playing <-> paused, and back to idle on stop(), on natural
completion, on an interrupted utterance or on an engine error. Returning to
idle always rewinds to the first segment and clears the highlight.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from .errors import PlaybackInterrupted
from .logger import logger
from .models import PlaybackState, Segment
from .speech_io import AudioDeviceGuard, SpeechOutput

SEGMENT_GAP_SECONDS = 0.8


class UtteranceQueuePlayer:
    """
    Plays segments through a SpeechOutput, highlighting each one as it starts.

    ``on_highlight`` receives the id of the segment being spoken, or None when
    playback stops, completes or is torn down. ``sleep`` is the coroutine used
    for the pause between segments (injectable for tests).
    """

    def __init__(
        self,
        output: SpeechOutput,
        on_highlight: Optional[Callable[[Optional[str]], None]] = None,
        language: str = "de-DE",
        rate: float = 0.8,
        pitch: float = 1.0,
        segment_gap: float = SEGMENT_GAP_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        device_guard: Optional[AudioDeviceGuard] = None,
    ):
        self.output = output
        self.on_highlight = on_highlight
        self.language = language
        self.rate = rate
        self.pitch = pitch
        self.segment_gap = segment_gap
        self.sleep = sleep
        self.device_guard = device_guard

        self.state = PlaybackState()
        self._should_continue = False
        # Bumped by every play()/stop()/close() so a finished run cannot reset a newer one
        self._run_id = 0

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def is_paused(self) -> bool:
        return self.state.is_paused

    @property
    def current_index(self) -> int:
        return self.state.current_index

    def is_supported(self) -> bool:
        return self.output.is_supported()

    def _emit(self, segment_id: Optional[str]) -> None:
        if self.on_highlight:
            self.on_highlight(segment_id)

    def _active(self, run_id: int) -> bool:
        return self._should_continue and run_id == self._run_id

    def _reset(self) -> None:
        self._should_continue = False
        self.state = PlaybackState()
        self._emit(None)

    def _segment_started(self, run_id: int, index: int, segment: Segment) -> None:
        if run_id != self._run_id:
            return
        self.state.current_index = index
        self._emit(segment.id)

    async def play(self, segments: Sequence[Segment], from_index: Optional[int] = None) -> bool:
        """
        Speak ``segments`` in order starting at ``from_index`` (default: the
        current index). Returns False without doing anything when speech output
        is unsupported or playback is already running.
        """
        if not self.output.is_supported():
            logger.warning("Speech output not supported, cannot play story")
            return False
        if self.state.is_playing:
            logger.debug("Playback already running, ignoring play()")
            return False

        start = self.state.current_index if from_index is None else from_index
        self.output.cancel()

        self._run_id += 1
        run_id = self._run_id
        self._should_continue = True
        self.state = PlaybackState(is_playing=True, current_index=start)
        if self.device_guard:
            self.device_guard.acquire(self, on_preempt=self.stop)
        logger.tts_transition("idle", "playing")

        try:
            for index in range(start, len(segments)):
                if not self._active(run_id):
                    break
                segment = segments[index]
                try:
                    await self.output.speak(
                        segment.text, self.language, self.rate, self.pitch,
                        on_start=lambda i=index, s=segment: self._segment_started(run_id, i, s),
                    )
                except PlaybackInterrupted:
                    # Normal end of this utterance; only stop() ends the run
                    logger.tts(f"Utterance interrupted at segment {index}")

                if index < len(segments) - 1 and self._active(run_id):
                    await self.sleep(self.segment_gap)
        except Exception as e:
            logger.error(f"Playback failed: {e}", exc_info=True)
        finally:
            if run_id == self._run_id:
                self._reset()
                if self.device_guard:
                    self.device_guard.release(self)
                logger.tts_transition("playing", "idle")
        return True

    def pause(self) -> bool:
        """Pause the utterance in flight; ignored between segments or when already paused."""
        if not self.state.is_playing or self.state.is_paused:
            return False
        if not self.output.is_speaking() or self.output.is_paused():
            return False
        self.output.pause()
        self.state.is_paused = True
        logger.tts_transition("playing", "paused")
        return True

    def resume(self) -> bool:
        if not self.state.is_paused:
            return False
        self.output.resume()
        self.state.is_paused = False
        logger.tts_transition("paused", "playing")
        return True

    def stop(self) -> None:
        """Cancel the utterance in flight, rewind to the start and clear the highlight."""
        was_playing = self.state.is_playing
        self._run_id += 1
        self.output.cancel()
        self._reset()
        if self.device_guard:
            self.device_guard.release(self)
        if was_playing:
            logger.tts_transition("playing", "stopped")

    def close(self) -> None:
        """Teardown; cancels any speech output activity. Safe to call repeatedly."""
        self.stop()
