"""
Centralized console logging for Story Buddy.

Every module logs through the shared ``logger`` so the terminal shows one
consistent, colour-coded stream:
- ENV   configuration and .env loading
- API   remote AI calls (dialogue generation, translation, TTS/STT requests)
- DB    Firestore persistence
- TTS   dialogue playback
- STT   speech capture and recognition
- UI    practice surface events and state transitions
- TASK  background work

Usage:
    from storybuddy.logger import logger, Timer

    logger.api_call("chat.completions.create", model="gpt-4o-mini")
    logger.tts_transition("Idle", "Playing")
    logger.error("Failed to save story", exc_info=True)
"""

import os
import sys
import time
import traceback
from datetime import datetime
from typing import Optional

# Windows consoles default to a legacy code page; force UTF-8 so the
# status glyphs (✓, ✗, ⚠) do not raise UnicodeEncodeError.
for _stream in (sys.stdout, sys.stderr):
    if hasattr(_stream, "reconfigure"):
        try:
            _stream.reconfigure(encoding="utf-8")
        except (ValueError, OSError):
            pass


class ColorCodes:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"


class DebugLogger:
    """
    Categorized, color-coded console logger.

    Each line is prefixed with the wall-clock time and the seconds elapsed
    since the logger was created, which makes the 800ms playback gaps and the
    capture timeouts easy to follow in a live session.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._start_time = datetime.now()

    def _timestamp(self) -> str:
        now = datetime.now()
        elapsed = (now - self._start_time).total_seconds()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d} (+{elapsed:>6.1f}s)"

    def _log(self, category: str, color: str, message: str, **kwargs) -> None:
        if not self.enabled:
            return

        timestamp = self._timestamp()
        prefix = f"{ColorCodes.DIM}{timestamp}{ColorCodes.RESET}"
        tag = f"{color}{ColorCodes.BOLD}[{category:>4}]{ColorCodes.RESET}"
        padding = " " * (len(timestamp) + 8)

        for i, line in enumerate(str(message).split("\n")):
            if i == 0:
                print(f"{prefix} {tag} {line}", file=sys.stdout, flush=True)
            else:
                print(f"{ColorCodes.DIM}{padding}{ColorCodes.RESET}{line}", file=sys.stdout, flush=True)

        if kwargs.get("exc_info"):
            for line in traceback.format_exc().split("\n"):
                if line.strip():
                    print(f"{ColorCodes.DIM}{padding}{ColorCodes.RED}{line}{ColorCodes.RESET}",
                          file=sys.stderr, flush=True)

    # === Environment/Configuration ===
    def env(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.MAGENTA, message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.GREEN, f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.RED, f"✗ {message}", **kwargs)

    # === Remote AI calls ===
    def api(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.CYAN, message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        """Log an outgoing request to the AI service."""
        model_info = f" (model: {model})" if model else ""
        self._log("API", ColorCodes.CYAN, f"→ Calling {endpoint}{model_info}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("API", ColorCodes.BRIGHT_CYAN, f"← Response from {endpoint}{duration_info}", **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Persistence ===
    def db(self, message: str, **kwargs) -> None:
        self._log("DB", ColorCodes.BRIGHT_MAGENTA, message, **kwargs)

    # === Speech output (dialogue playback) ===
    def tts(self, message: str, **kwargs) -> None:
        self._log("TTS", ColorCodes.YELLOW, message, **kwargs)

    def tts_transition(self, from_state: str, to_state: str, **kwargs) -> None:
        """Log a playback state machine transition."""
        self._log("TTS", ColorCodes.BRIGHT_YELLOW, f"{from_state} → {to_state}", **kwargs)

    # === Speech input (recognition) ===
    def stt(self, message: str, **kwargs) -> None:
        self._log("STT", ColorCodes.GREEN, message, **kwargs)

    def stt_result(self, transcript: str, verdict: str, similarity: float, **kwargs) -> None:
        shown = transcript[:60] + "..." if len(transcript) > 60 else transcript
        self._log("STT", ColorCodes.BRIGHT_GREEN,
                  f"\"{shown}\" → {verdict} ({similarity:.2f})", **kwargs)

    # === Practice surface ===
    def ui(self, message: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BLUE, message, **kwargs)

    def ui_transition(self, from_state: str, to_state: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BRIGHT_BLUE, f"{from_state} → {to_state}", **kwargs)

    # === Background Tasks ===
    def task_start(self, task_name: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, f"⚡ Starting: {task_name}", **kwargs)

    def task_complete(self, task_name: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("TASK", ColorCodes.BRIGHT_GREEN, f"✓ Completed: {task_name}{duration_info}", **kwargs)

    # === General Status ===
    def success(self, message: str, **kwargs) -> None:
        self._log("OK", ColorCodes.BRIGHT_GREEN, f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("WARN", ColorCodes.BRIGHT_YELLOW, f"⚠ {message}", **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("ERR", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("INFO", ColorCodes.WHITE, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log("DBG", ColorCodes.DIM, message, **kwargs)

    # === Separators/Formatting ===
    def separator(self, title: Optional[str] = None) -> None:
        if not self.enabled:
            return

        line = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        print(f"\n{ColorCodes.DIM}{line}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)

    def banner(self, text: str) -> None:
        if not self.enabled:
            return

        width = max(60, len(text) + 4)
        border = "═" * width
        padding = " " * ((width - len(text)) // 2)

        print(f"\n{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}║{padding}{ColorCodes.BOLD}{text}{ColorCodes.RESET}"
              f"{ColorCodes.BRIGHT_CYAN}{padding}║{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)


# Shared logger; STORYBUDDY_DEBUG=0 silences it (tests and headless runs).
logger = DebugLogger(enabled=os.getenv("STORYBUDDY_DEBUG", "1") not in ("0", "false", "False"))


class Timer:
    """Context manager for timing remote calls."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.duration_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        if self.start_time:
            self.duration_ms = (time.perf_counter() - self.start_time) * 1000
