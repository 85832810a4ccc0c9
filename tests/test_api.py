"""Tests for the OpenAI-backed AI service (client mocked)."""

import json
import os
from unittest.mock import MagicMock

import pytest

from storybuddy.api import StoryAIService, parse_dialogue, strip_code_fences
from storybuddy.config import Settings
from storybuddy.errors import RemoteServiceFailure
from storybuddy.models import DialogueRequest

DIALOGUE = {
    "character1": {"name": "Lena", "role": "Customer", "avatar": "👩"},
    "character2": {"name": "Paul", "role": "Barista", "avatar": "🧑‍🍳"},
    "lines": [
        {"speaker": "character1", "text": "Einen Kaffee, bitte.", "translation": "A coffee, please."},
        {"speaker": "character2", "text": "Gerne!", "translation": "Gladly!"},
    ],
}


def _completion(content):
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    return completion


def _service(content=None, error=None):
    client = MagicMock()
    if error:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = _completion(content)
    return StoryAIService(Settings(openai_api_key="sk-test"), client=client), client


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_dialogue():
    dialogue = parse_dialogue("```json\n" + json.dumps(DIALOGUE) + "\n```")
    assert dialogue.character1.name == "Lena"
    assert [line.speaker for line in dialogue.lines] == ["character1", "character2"]
    assert dialogue.lines[0].translation == "A coffee, please."


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    json.dumps(dict(DIALOGUE, character1=None)),
    json.dumps(dict(DIALOGUE, lines=[])),
    json.dumps(dict(DIALOGUE, lines=[{"speaker": "character1", "text": "  "}])),
])
def test_parse_dialogue_rejects_malformed(raw):
    with pytest.raises(RemoteServiceFailure):
        parse_dialogue(raw)


def test_unconfigured_service_is_unavailable():
    service = StoryAIService(Settings())
    assert not service.is_available()
    with pytest.raises(RemoteServiceFailure):
        service.translate("Hallo")


def test_generate_dialogue_uses_chat_model():
    service, client = _service(json.dumps(DIALOGUE))
    dialogue = service.generate_dialogue(DialogueRequest(situation="Im Café", length="short"))

    assert len(dialogue.lines) == 2
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.7
    assert "8-10 exchanges" in kwargs["messages"][1]["content"]
    assert kwargs["response_format"] == {"type": "json_object"}


def test_client_errors_become_remote_failures():
    service, _ = _service(error=RuntimeError("Incorrect API key provided"))
    with pytest.raises(RemoteServiceFailure, match="API key"):
        service.translate("Hallo")


def test_empty_completion_is_a_failure():
    service, _ = _service("   ")
    with pytest.raises(RemoteServiceFailure):
        service.translate("Hallo")


def test_translate_batch_returns_non_empty_lines():
    service, client = _service('1. "Good evening"\n\n2. "Thank you"\n')
    assert service.translate_batch(["Guten Abend", "Danke"]) == ['1. "Good evening"', '2. "Thank you"']
    assert "response_format" not in client.chat.completions.create.call_args.kwargs


def test_synthesize_speech_writes_mp3():
    client = MagicMock()
    client.audio.speech.create.return_value.iter_bytes.return_value = [b"ID3", b"data"]
    service = StoryAIService(Settings(openai_api_key="sk-test"), client=client)

    path = service.synthesize_speech("Guten Tag", "de-DE", speed=10)
    try:
        with open(path, "rb") as f:
            assert f.read() == b"ID3data"
    finally:
        os.remove(path)

    kwargs = client.audio.speech.create.call_args.kwargs
    assert kwargs["voice"] == "onyx"
    assert kwargs["speed"] == 4.0


def test_synthesize_speech_rejects_empty_text():
    service = StoryAIService(Settings(openai_api_key="sk-test"), client=MagicMock())
    with pytest.raises(RemoteServiceFailure):
        service.synthesize_speech("  ")


def test_transcribe_audio(tmp_path):
    audio = tmp_path / "clip.wav"
    audio.write_bytes(b"RIFF")
    client = MagicMock()
    client.audio.transcriptions.create.return_value = " Guten Morgen \n"
    service = StoryAIService(Settings(openai_api_key="sk-test"), client=client)

    assert service.transcribe_audio(str(audio), "de-DE") == "Guten Morgen"
    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["language"] == "de"
    assert kwargs["model"] == "whisper-1"
