"""Shared fixtures and fake speech engines for Story Buddy tests."""

import asyncio
import os
from datetime import datetime, timezone

os.environ.setdefault("STORYBUDDY_DEBUG", "0")

import pytest

from storybuddy.data import DEFAULT_LANGUAGE, get_situation
from storybuddy.database import DatabaseClient
from storybuddy.errors import CaptureError, PlaybackInterrupted
from storybuddy.models import Character, DialogueLine, Story, Word
from storybuddy.speech_io import SpeechInput, SpeechOutput
from storybuddy.stories import create_words


class FakeSpeechOutput(SpeechOutput):
    """Each speak() waits until the test calls finish() or the player cancels it."""

    def __init__(self, supported=True):
        self.supported = supported
        self.spoken = []
        self.cancel_count = 0
        self._pending = None
        self._paused = False

    def is_supported(self):
        return self.supported

    async def speak(self, text, language, rate, pitch, on_start=None):
        self.spoken.append(text)
        self._pending = asyncio.get_running_loop().create_future()
        if on_start:
            on_start()
        outcome = await self._pending
        if outcome == "interrupted":
            raise PlaybackInterrupted()
        if outcome == "error":
            raise RuntimeError("engine exploded")

    def finish(self, outcome="done"):
        if self._pending and not self._pending.done():
            self._pending.set_result(outcome)

    def cancel(self):
        self.cancel_count += 1
        self._paused = False
        self.finish("interrupted")

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def is_speaking(self):
        return self._pending is not None and not self._pending.done()

    def is_paused(self):
        return self._paused


class FakeSpeechInput(SpeechInput):
    """Each listen() waits until the test calls say() or fail()."""

    def __init__(self, supported=True):
        self.supported = supported
        self.listen_count = 0
        self.abort_count = 0
        self.stop_count = 0
        self._pending = None

    def is_supported(self):
        return self.supported

    async def listen(self, language):
        self.listen_count += 1
        self._pending = asyncio.get_running_loop().create_future()
        return await self._pending

    @property
    def listening(self):
        return self._pending is not None and not self._pending.done()

    def say(self, transcript):
        self._pending.set_result(transcript)

    def fail(self, code):
        self._pending.set_exception(CaptureError(code))

    def stop(self):
        self.stop_count += 1

    def abort(self):
        self.abort_count += 1
        if self.listening:
            self._pending.set_exception(CaptureError("aborted"))


class InstantSleep:
    """Stand-in for asyncio.sleep: records the requested delay and yields once."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


class ManualSleep:
    """Sleeps that only finish when the test releases them; simulates a clock."""

    def __init__(self):
        self.waiting = []

    async def __call__(self, seconds):
        future = asyncio.get_running_loop().create_future()
        self.waiting.append((seconds, future))
        await future

    def release(self, seconds):
        for delay, future in self.waiting:
            if delay == seconds and not future.done():
                future.set_result(None)


async def settle(rounds=10):
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_output():
    return FakeSpeechOutput()


@pytest.fixture
def fake_input():
    return FakeSpeechInput()


@pytest.fixture
def instant_sleep():
    return InstantSleep()


@pytest.fixture
def offline_db():
    """DatabaseClient that never connected, i.e. running on its local cache."""
    return DatabaseClient(user_id="test_user")


def _line(index, character, text, translation=None):
    return DialogueLine(
        id=f"line-{index}",
        character=character,
        text=text,
        translation=translation or text,
        words=tuple(create_words(text)),
    )


@pytest.fixture
def sample_story():
    """Three-line restaurant story with phrasebook words."""
    anna = Character("Anna", "Customer", "👩")
    klaus = Character("Klaus", "Waiter", "👨‍🍳")
    return Story(
        id="story-1",
        title="Im Restaurant auf Deutsch",
        language=DEFAULT_LANGUAGE,
        situation=get_situation("restaurant"),
        dialogue=(
            _line(0, anna, "Guten Abend! Haben Sie einen Tisch für zwei Personen?"),
            _line(1, klaus, "Guten Abend! Ja, natürlich. Folgen Sie mir bitte."),
            _line(2, anna, "Vielen Dank. Könnten wir die Speisekarte bekommen?"),
        ),
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_words():
    return [
        Word("Tisch", "table", "🪑"),
        Word("Personen", "people", "👫"),
        Word("Abend", "evening", "🌆"),
        Word("Speisekarte", "menu", "📋"),
        Word("Kaffee", "coffee", "☕"),
    ]
