"""Tests for the practice session coordinator."""

import asyncio

from storybuddy.models import Verdict
from storybuddy.practice import PracticeSessionCoordinator
from storybuddy.recognition import RESULT_DELAY_SECONDS, RecognitionSession

from conftest import FakeSpeechInput, ManualSleep, settle


def _coordinator(speech=None, sleep=None, auto_capture=False):
    visited = []
    recognition = RecognitionSession(speech or FakeSpeechInput(), sleep=sleep or ManualSleep())
    coordinator = PracticeSessionCoordinator(recognition, on_line_change=visited.append, auto_capture=auto_capture)
    return coordinator, visited


def test_skip_through_two_lines_ends_session(sample_story):
    """start, skip, skip visits L0 then L1 and ends exactly after the second skip."""
    dialogue = sample_story.dialogue[:2]
    coordinator, visited = _coordinator()

    assert coordinator.start(dialogue) == "line-0"
    assert coordinator.is_active

    assert coordinator.skip() == "line-1"
    assert coordinator.is_active

    assert coordinator.skip() is None
    assert not coordinator.is_active
    assert coordinator.current_index == 0
    assert visited == ["line-0", "line-1", None]


def test_complete_current_advances_like_skip(sample_story):
    coordinator, visited = _coordinator()
    coordinator.start(sample_story.dialogue)
    coordinator.complete_current()
    coordinator.complete_current()
    assert coordinator.current_line_id == "line-2"
    coordinator.complete_current()
    assert not coordinator.is_active
    assert visited == ["line-0", "line-1", "line-2", None]


def test_end_resets(sample_story):
    coordinator, visited = _coordinator()
    coordinator.start(sample_story.dialogue)
    coordinator.skip()
    coordinator.end()

    assert not coordinator.is_active
    assert coordinator.current_index == 0
    assert visited[-1] is None


def test_skip_when_inactive_does_nothing(sample_story):
    coordinator, visited = _coordinator()
    assert coordinator.skip() is None
    assert visited == []


def test_empty_dialogue_does_not_start():
    coordinator, visited = _coordinator()
    assert coordinator.start([]) is None
    assert not coordinator.is_active


def test_attempt_records_result(sample_story):
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        coordinator, _ = _coordinator(speech, sleep)
        coordinator.start(sample_story.dialogue)

        task = asyncio.ensure_future(coordinator.attempt())
        await settle()
        speech.say(sample_story.dialogue[0].text)
        await settle()
        sleep.release(RESULT_DELAY_SECONDS)

        result = await task
        assert result.verdict == Verdict.SUCCESS
        assert coordinator.results["line-0"] is result

    asyncio.run(scenario())


def test_transitions_abort_outgoing_capture(sample_story):
    """Auto capture: skipping aborts the capture of the old line and opens a new one."""
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        results = []
        recognition = RecognitionSession(speech, sleep=sleep)
        coordinator = PracticeSessionCoordinator(
            recognition, on_result=lambda line_id, result: results.append(line_id)
        )

        coordinator.start(sample_story.dialogue)
        await settle()
        assert speech.listen_count == 1
        assert recognition.is_listening

        coordinator.skip()
        await settle()
        assert speech.listen_count == 2
        assert speech.abort_count >= 1

        speech.say(sample_story.dialogue[1].text)
        await settle()
        sleep.release(RESULT_DELAY_SECONDS)
        await settle()

        # the aborted first attempt never reports
        assert results == ["line-1"]

        coordinator.end()
        await settle()
        assert not recognition.is_listening

    asyncio.run(scenario())


def test_result_for_abandoned_line_is_dropped(sample_story):
    async def scenario():
        speech = FakeSpeechInput()
        sleep = ManualSleep()
        coordinator, _ = _coordinator(speech, sleep)
        coordinator.start(sample_story.dialogue)

        task = asyncio.ensure_future(coordinator.attempt())
        await settle()
        speech.say(sample_story.dialogue[0].text)
        await settle()

        coordinator.skip()
        sleep.release(RESULT_DELAY_SECONDS)
        assert await task is None
        assert "line-0" not in coordinator.results

    asyncio.run(scenario())
