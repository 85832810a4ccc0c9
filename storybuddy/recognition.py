"""
One pronunciation attempt: capture an utterance, score it against the
target sentence.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .errors import CaptureError, UnsupportedCapability
from .logger import logger
from .models import RecognitionResult, Verdict
from .scoring import score_attempt
from .speech_io import AudioDeviceGuard, SpeechInput

CAPTURE_TIMEOUT_SECONDS = 10.0
RESULT_DELAY_SECONDS = 0.5
# After a timeout the engine is asked to stop; this bounds how long it may take to finalize
STOP_GRACE_SECONDS = 5.0

ERROR_MESSAGES = {
    "no-speech": "No speech detected, try again",
    "audio-capture": "Microphone not accessible",
    "not-allowed": "Permission denied",
    "network": "Network error",
}
GENERIC_ERROR_MESSAGE = "Speech recognition error occurred"


def capture_failure(code: str) -> RecognitionResult:
    """Failure result for a capture that produced no transcript."""
    return RecognitionResult(
        transcript="",
        similarity=0.0,
        verdict=Verdict.FAILURE,
        message=ERROR_MESSAGES.get(code, GENERIC_ERROR_MESSAGE),
        error_code=code,
    )


class RecognitionSession:
    """
    Single-shot speech capture with a timeout.

    At most one capture is live; capture() while listening is ignored.
    Expected failures (timeout, no speech, denied microphone, network) come
    back as failure results rather than exceptions.
    """

    def __init__(
        self,
        speech_input: SpeechInput,
        language: str = "de-DE",
        timeout: float = CAPTURE_TIMEOUT_SECONDS,
        result_delay: float = RESULT_DELAY_SECONDS,
        stop_grace: float = STOP_GRACE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        device_guard: Optional[AudioDeviceGuard] = None,
    ):
        self.speech_input = speech_input
        self.language = language
        self.timeout = timeout
        self.stop_grace = stop_grace
        self.result_delay = result_delay
        self.sleep = sleep
        self.device_guard = device_guard

        self.is_listening = False
        self._listen_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        # Bumped by every capture() and abort(); a stale attempt must not touch newer state
        self._attempt = 0

    def is_supported(self) -> bool:
        return self.speech_input.is_supported()

    def _clear_timer(self) -> None:
        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    async def capture(self, target: str) -> Optional[RecognitionResult]:
        """
        Listen once and score the transcript against ``target``.

        Returns None when a capture is already in progress. Raises
        UnsupportedCapability when there is no speech input.
        """
        if not self.speech_input.is_supported():
            raise UnsupportedCapability("Speech recognition")
        if self.is_listening:
            logger.debug("Already listening, ignoring capture()")
            return None

        self._attempt += 1
        attempt = self._attempt
        self.is_listening = True
        if self.device_guard:
            self.device_guard.acquire(self, on_preempt=self.abort)

        logger.stt(f"Listening for: {target[:50]}")
        listen_task = self._listen_task = asyncio.ensure_future(self.speech_input.listen(self.language))
        timer_task = self._timer_task = asyncio.ensure_future(self.sleep(self.timeout))

        try:
            await asyncio.wait({listen_task, timer_task}, return_when=asyncio.FIRST_COMPLETED)

            if not listen_task.done() and attempt == self._attempt:
                # Force-stop: the engine finalizes whatever it heard so far
                logger.stt(f"No result within {self.timeout:.0f}s, stopping capture")
                self.speech_input.stop()
                grace_task = self._timer_task = asyncio.ensure_future(self.sleep(self.stop_grace))
                await asyncio.wait({listen_task, grace_task}, return_when=asyncio.FIRST_COMPLETED)

            if listen_task.cancelled() or attempt != self._attempt:
                return capture_failure("aborted")
            if not listen_task.done():
                logger.stt("Capture did not finish after stop, discarding")
                return capture_failure("no-speech")

            try:
                transcript = listen_task.result()
            except CaptureError as e:
                logger.stt(f"Capture failed: {e.code}")
                return capture_failure(e.code)
        finally:
            if attempt == self._attempt:
                self._clear_timer()
                if not listen_task.done():
                    self.speech_input.abort()
                    listen_task.cancel()
                self._listen_task = None
                self.is_listening = False
                if self.device_guard:
                    self.device_guard.release(self)

        await self.sleep(self.result_delay)
        if attempt != self._attempt:
            return capture_failure("aborted")

        result = score_attempt(transcript, target)
        logger.stt_result(transcript, result.verdict.value, result.similarity)
        return result

    def stop(self) -> None:
        """Finish listening early; whatever was heard is still scored."""
        if self.is_listening:
            self.speech_input.stop()

    def abort(self) -> None:
        """Discard the current attempt. Safe to call in any state."""
        self._attempt += 1
        self._clear_timer()
        if self._listen_task and not self._listen_task.done():
            self._listen_task.cancel()
        self._listen_task = None
        self.speech_input.abort()
        if self.is_listening:
            logger.stt("Capture aborted")
        self.is_listening = False
        if self.device_guard:
            self.device_guard.release(self)
