"""Tests for the utterance queue player."""

import asyncio

from storybuddy.models import Segment
from storybuddy.playback import SEGMENT_GAP_SECONDS, UtteranceQueuePlayer
from storybuddy.speech_io import AudioDeviceGuard

from conftest import FakeSpeechOutput, InstantSleep, settle

SEGMENTS = [Segment("a", "Erster Satz."), Segment("b", "Zweiter Satz."), Segment("c", "Dritter Satz.")]


def _player(output, highlights, sleep=None, guard=None):
    return UtteranceQueuePlayer(
        output,
        on_highlight=highlights.append,
        sleep=sleep or InstantSleep(),
        device_guard=guard,
    )


def test_plays_all_segments_in_order():
    """Natural completion speaks everything, pauses between segments and resets."""
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        sleep = InstantSleep()
        player = _player(output, highlights, sleep)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        for _ in SEGMENTS:
            await settle()
            output.finish()
        assert await task is True

        assert output.spoken == [s.text for s in SEGMENTS]
        assert highlights == ["a", "b", "c", None]
        assert sleep.calls == [SEGMENT_GAP_SECONDS, SEGMENT_GAP_SECONDS]
        assert not player.is_playing
        assert player.current_index == 0

    asyncio.run(scenario())


def test_stop_during_second_segment():
    """stop() while B is spoken rewinds, clears the highlight and never speaks C."""
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        player = _player(output, highlights)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()
        output.finish()
        await settle()
        assert player.current_index == 1
        assert highlights[-1] == "b"

        player.stop()
        await task
        await settle()

        assert player.current_index == 0
        assert highlights[-1] is None
        assert output.spoken == ["Erster Satz.", "Zweiter Satz."]
        assert not player.is_playing

    asyncio.run(scenario())


def test_play_is_noop_when_unsupported():
    async def scenario():
        output = FakeSpeechOutput(supported=False)
        player = _player(output, [])
        assert await player.play(SEGMENTS) is False
        assert output.spoken == []

    asyncio.run(scenario())


def test_second_play_is_ignored_while_playing():
    async def scenario():
        output = FakeSpeechOutput()
        player = _player(output, [])

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()
        assert await player.play(SEGMENTS) is False

        player.stop()
        await task

    asyncio.run(scenario())


def test_pause_and_resume():
    async def scenario():
        output = FakeSpeechOutput()
        player = _player(output, [])

        task = asyncio.ensure_future(player.play(SEGMENTS[:1]))
        await settle()

        assert player.pause() is True
        assert player.is_paused
        assert player.pause() is False

        assert player.resume() is True
        assert not player.is_paused

        output.finish()
        await task
        assert player.resume() is False

    asyncio.run(scenario())


def test_interrupted_utterance_moves_on_to_next_segment():
    """An utterance cut off from outside the player ends that step, not the run."""
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        player = _player(output, highlights)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()
        output.finish()
        await settle()
        output.finish("interrupted")
        await settle()
        assert player.is_playing
        output.finish()

        assert await task is True
        assert output.spoken == [s.text for s in SEGMENTS]
        assert highlights == ["a", "b", "c", None]

    asyncio.run(scenario())


def test_interrupted_after_stop_ends_playback():
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        player = _player(output, highlights)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()
        player.stop()

        assert await task is True
        await settle()
        assert output.spoken == ["Erster Satz."]
        assert highlights == ["a", None]
        assert not player.is_playing

    asyncio.run(scenario())


def test_engine_error_resets_to_idle():
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        player = _player(output, highlights)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()
        output.finish("error")
        await task

        assert not player.is_playing
        assert player.current_index == 0
        assert highlights[-1] is None

    asyncio.run(scenario())


def test_play_from_index():
    async def scenario():
        output = FakeSpeechOutput()
        highlights = []
        player = _player(output, highlights)

        task = asyncio.ensure_future(player.play(SEGMENTS, from_index=2))
        await settle()
        output.finish()
        await task

        assert output.spoken == ["Dritter Satz."]
        assert highlights == ["c", None]

    asyncio.run(scenario())


def test_close_is_idempotent():
    output = FakeSpeechOutput()
    player = _player(output, [])
    player.close()
    player.close()
    assert output.cancel_count == 2
    assert not player.is_playing


def test_playback_holds_and_releases_device():
    async def scenario():
        output = FakeSpeechOutput()
        guard = AudioDeviceGuard()
        player = _player(output, [], guard=guard)

        task = asyncio.ensure_future(player.play(SEGMENTS[:1]))
        await settle()
        assert guard.owner is player

        output.finish()
        await task
        assert not guard.is_busy()

    asyncio.run(scenario())


def test_preemption_stops_playback():
    """Another owner taking the device stops the read-aloud."""
    async def scenario():
        output = FakeSpeechOutput()
        guard = AudioDeviceGuard()
        highlights = []
        player = _player(output, highlights, guard=guard)

        task = asyncio.ensure_future(player.play(SEGMENTS))
        await settle()

        guard.acquire("microphone")
        await task

        assert not player.is_playing
        assert highlights[-1] is None
        assert guard.owner == "microphone"
        assert output.spoken == ["Erster Satz."]

    asyncio.run(scenario())
