"""Tests for the recognition session."""

import asyncio

import pytest

from storybuddy.errors import UnsupportedCapability
from storybuddy.models import Verdict
from storybuddy.recognition import (
    CAPTURE_TIMEOUT_SECONDS,
    GENERIC_ERROR_MESSAGE,
    RESULT_DELAY_SECONDS,
    STOP_GRACE_SECONDS,
    RecognitionSession,
)
from storybuddy.speech_io import AudioDeviceGuard

from conftest import FakeSpeechInput, ManualSleep, settle

TARGET = "Ich möchte einen Kaffee bitte"


def test_successful_capture_is_scored():
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep)

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        assert session.is_listening

        speech.say("Ich möchte einen Kaffee bitte")
        await settle()
        # listening ends before the result delay
        assert not session.is_listening
        assert not task.done()

        sleep.release(RESULT_DELAY_SECONDS)
        result = await task
        assert result.verdict == Verdict.SUCCESS
        assert result.transcript == "Ich möchte einen Kaffee bitte"
        assert result.error_code is None

    asyncio.run(scenario())


def test_timeout_resolves_with_no_speech():
    """No transcript within the timeout (simulated clock) gives a failure, not a hang."""
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep)

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        sleep.release(CAPTURE_TIMEOUT_SECONDS)
        await settle()

        # the engine is asked to finalize first, and only discarded if it never does
        assert speech.stop_count == 1
        assert speech.abort_count == 0
        assert not task.done()

        sleep.release(STOP_GRACE_SECONDS)
        result = await task
        assert result.verdict == Verdict.FAILURE
        assert result.error_code == "no-speech"
        assert result.message == "No speech detected, try again"
        assert speech.abort_count == 1
        assert not session.is_listening

    asyncio.run(scenario())


def test_timeout_keeps_transcript_finalized_by_stop():
    """A long attempt that only finishes after the force-stop is still scored."""
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep)

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        sleep.release(CAPTURE_TIMEOUT_SECONDS)
        await settle()
        assert speech.stop_count == 1

        speech.say("Ich möchte einen Kaffee bitte")
        await settle()
        sleep.release(RESULT_DELAY_SECONDS)
        result = await task

        assert result.verdict == Verdict.SUCCESS
        assert result.error_code is None
        assert speech.abort_count == 0

    asyncio.run(scenario())


@pytest.mark.parametrize("code,message", [
    ("no-speech", "No speech detected, try again"),
    ("audio-capture", "Microphone not accessible"),
    ("not-allowed", "Permission denied"),
    ("network", "Network error"),
    ("service-not-allowed", GENERIC_ERROR_MESSAGE),
])
def test_engine_errors_become_failure_results(code, message):
    async def scenario():
        speech = FakeSpeechInput()
        session = RecognitionSession(speech, sleep=ManualSleep())

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        speech.fail(code)

        result = await task
        assert result.verdict == Verdict.FAILURE
        assert result.error_code == code
        assert result.message == message

    asyncio.run(scenario())


def test_unsupported_input_raises():
    async def scenario():
        session = RecognitionSession(FakeSpeechInput(supported=False))
        with pytest.raises(UnsupportedCapability):
            await session.capture(TARGET)

    asyncio.run(scenario())


def test_capture_while_listening_is_ignored():
    async def scenario():
        speech = FakeSpeechInput()
        session = RecognitionSession(speech, sleep=ManualSleep())

        first = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        assert await session.capture(TARGET) is None
        assert speech.listen_count == 1

        session.abort()
        await first

    asyncio.run(scenario())


def test_abort_discards_attempt():
    async def scenario():
        speech = FakeSpeechInput()
        session = RecognitionSession(speech, sleep=ManualSleep())

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        session.abort()

        result = await task
        assert result.error_code == "aborted"
        assert not session.is_listening

    asyncio.run(scenario())


def test_abort_during_result_delay():
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep)

        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        speech.say(TARGET)
        await settle()

        session.abort()
        sleep.release(RESULT_DELAY_SECONDS)
        result = await task
        assert result.error_code == "aborted"

    asyncio.run(scenario())


def test_abort_is_safe_in_any_state():
    session = RecognitionSession(FakeSpeechInput())
    session.abort()
    session.abort()
    assert not session.is_listening


def test_new_capture_after_abort():
    """Aborting frees the session at once; the stale attempt cannot disturb the next one."""
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep)

        first = asyncio.ensure_future(session.capture(TARGET))
        await settle()
        session.abort()
        second = asyncio.ensure_future(session.capture("Guten Morgen"))
        await settle()

        assert (await first).error_code == "aborted"
        assert session.is_listening
        speech.say("Guten Morgen")
        await settle()
        sleep.release(RESULT_DELAY_SECONDS)
        result = await second
        assert result.verdict == Verdict.SUCCESS

    asyncio.run(scenario())


def test_capture_holds_device_guard():
    async def scenario():
        speech = FakeSpeechInput()
        guard = AudioDeviceGuard()
        stopped = []
        guard.acquire("player", on_preempt=lambda: stopped.append(True))

        sleep = ManualSleep()
        session = RecognitionSession(speech, sleep=sleep, device_guard=guard)
        task = asyncio.ensure_future(session.capture(TARGET))
        await settle()

        assert stopped == [True]
        assert guard.owner is session

        speech.say(TARGET)
        await settle()
        assert not guard.is_busy()
        sleep.release(RESULT_DELAY_SECONDS)
        await task

    asyncio.run(scenario())
