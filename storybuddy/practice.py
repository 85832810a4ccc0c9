"""
Guided speaking practice: walk through a dialogue line by line, capturing one
pronunciation attempt per line.
"""

import asyncio
from typing import Callable, Dict, Optional, Sequence

from .errors import UnsupportedCapability
from .logger import logger
from .models import DialogueLine, PracticeSessionState, RecognitionResult
from .recognition import RecognitionSession


class PracticeSessionCoordinator:
    """
    Owns the practice position and the single recognition session.

    Every transition aborts the outgoing capture first, then reports the new
    current line id (None when the session ends) through ``on_line_change``.
    With ``auto_capture`` each newly current line immediately opens a capture
    in the background; otherwise call attempt().
    """

    def __init__(
        self,
        recognition: RecognitionSession,
        on_line_change: Optional[Callable[[Optional[str]], None]] = None,
        on_result: Optional[Callable[[str, RecognitionResult], None]] = None,
        auto_capture: bool = True,
    ):
        self.recognition = recognition
        self.on_line_change = on_line_change
        self.on_result = on_result
        self.auto_capture = auto_capture

        self.state = PracticeSessionState()
        self.results: Dict[str, RecognitionResult] = {}
        self._lines: Dict[str, DialogueLine] = {}
        self._capture_task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_line_id(self) -> Optional[str]:
        return self.state.current_line_id

    @property
    def current_line(self) -> Optional[DialogueLine]:
        line_id = self.current_line_id
        return self._lines.get(line_id) if line_id else None

    def _emit(self) -> None:
        line_id = self.current_line_id if self.state.is_active else None
        logger.ui(f"Practice line: {line_id}")
        if self.on_line_change:
            self.on_line_change(line_id)

    def _open_current(self) -> None:
        self._emit()
        if self.auto_capture and self.state.is_active:
            self._capture_task = asyncio.ensure_future(self.attempt())

    def start(self, dialogue: Sequence[DialogueLine]) -> Optional[str]:
        """Begin at the first line. Returns its id (None for an empty dialogue)."""
        self.recognition.abort()
        if not dialogue:
            logger.warning("Cannot practice an empty dialogue")
            return None

        self._lines = {line.id: line for line in dialogue}
        self.results = {}
        self.state = PracticeSessionState(
            line_ids=[line.id for line in dialogue],
            current_index=0,
            is_active=True,
        )
        logger.ui_transition("idle", "practicing")
        self._open_current()
        return self.current_line_id

    def _advance(self) -> Optional[str]:
        if not self.state.is_active:
            return None
        self.recognition.abort()

        if self.state.current_index < len(self.state.line_ids) - 1:
            self.state.current_index += 1
            self._open_current()
            return self.current_line_id

        self._finish()
        return None

    def skip(self) -> Optional[str]:
        """Move on without a successful attempt; ends the session after the last line."""
        return self._advance()

    def complete_current(self) -> Optional[str]:
        """Mark the current line done and move on; ends the session after the last line."""
        return self._advance()

    def _finish(self) -> None:
        if self.state.is_active:
            logger.ui_transition("practicing", "idle")
        self.state.is_active = False
        self.state.current_index = 0
        self._emit()

    def end(self) -> None:
        """Stop practicing immediately."""
        self.recognition.abort()
        if self._capture_task and not self._capture_task.done():
            self._capture_task.cancel()
        self._capture_task = None
        self._finish()

    async def attempt(self) -> Optional[RecognitionResult]:
        """
        Capture one attempt for the current line.

        Returns None when there is nothing to capture, when a capture is
        already running, or when the session moved on before the result came
        back.
        """
        line = self.current_line
        if not self.state.is_active or line is None:
            return None

        try:
            result = await self.recognition.capture(line.text)
        except UnsupportedCapability as e:
            logger.warning(str(e))
            return None

        if result is None or result.error_code == "aborted":
            return None
        if not self.state.is_active or self.current_line_id != line.id:
            return None

        self.results[line.id] = result
        if self.on_result:
            self.on_result(line.id, result)
        return result
