"""
OpenAI-backed services for Story Buddy.

This module handles:
- Two-character dialogue generation for a practice situation
- Single and batched sentence translation
- Text-to-speech for dialogue playback
- Speech-to-text for pronunciation practice

Any OpenAI-compatible endpoint works; set OPENAI_BASE_URL to a gateway such
as OpenRouter to route the chat models elsewhere. Every call raises
RemoteServiceFailure on error so callers can fall back to local content.
"""

import json
import os
import re
import tempfile
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .config import Settings
from .errors import RemoteServiceFailure
from .logger import logger, Timer
from .models import Character, DialogueRequest, GeneratedDialogue, GeneratedLine

LANGUAGE_NAMES = {
    "de": "German",
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
}

# OpenAI TTS voices: alloy, echo, fable, onyx, nova, shimmer
LANGUAGE_VOICE_MAP = {
    "de": "onyx",       # Deep male voice, clear pronunciation
    "fr": "shimmer",
    "es": "nova",
    "it": "nova",
}
DEFAULT_TTS_VOICE = "nova"

LENGTH_GUIDE = {
    "short": "8-10 exchanges",
    "medium": "12-15 exchanges",
    "long": "18-20 exchanges",
}

DIFFICULTY_GUIDE = {
    "beginner": "simple vocabulary and basic sentence structures",
    "intermediate": "moderate vocabulary with some complex sentences",
    "advanced": "rich vocabulary and complex grammatical structures",
}

_CODE_FENCE = re.compile(r"```json\n?|\n?```")


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def strip_code_fences(raw: str) -> str:
    """Remove ```json fences some models wrap around JSON output."""
    return _CODE_FENCE.sub("", raw).strip()


def _parse_character(data: Any, label: str) -> Character:
    if not isinstance(data, dict):
        raise RemoteServiceFailure(f"Invalid response format: {label} missing")
    name = str(data.get("name", "")).strip()
    if not name:
        raise RemoteServiceFailure(f"Invalid response format: {label} has no name")
    return Character(
        name=name,
        role=str(data.get("role", "")).strip(),
        avatar=str(data.get("avatar", "")).strip() or "👤",
    )


def parse_dialogue(raw: str) -> GeneratedDialogue:
    """Validate the model's JSON dialogue; raise RemoteServiceFailure when malformed."""
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        raise RemoteServiceFailure("Invalid response format from AI service") from e

    if not isinstance(data, dict):
        raise RemoteServiceFailure("Invalid response format from AI service")

    character1 = _parse_character(data.get("character1"), "character1")
    character2 = _parse_character(data.get("character2"), "character2")

    raw_lines = data.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise RemoteServiceFailure("Invalid response format: no dialogue lines")

    lines = []
    for item in raw_lines:
        if not isinstance(item, dict):
            continue
        text = str(item.get("text", "")).strip()
        if not text:
            continue
        speaker = "character2" if item.get("speaker") == "character2" else "character1"
        lines.append(GeneratedLine(
            speaker=speaker,
            text=text,
            translation=str(item.get("translation", "")).strip(),
        ))

    if not lines:
        raise RemoteServiceFailure("Invalid response format: no usable dialogue lines")

    return GeneratedDialogue(character1=character1, character2=character2, lines=lines)


class StoryAIService:
    """
    Thin wrapper around an OpenAI client.

    Constructed explicitly and passed to the components that need it. With no
    API key the service reports itself unavailable and every call raises
    RemoteServiceFailure immediately.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.client = client

        if self.client is None and settings.openai_api_key:
            logger.env("Initializing OpenAI client...")
            kwargs: Dict[str, Any] = {"api_key": settings.openai_api_key}
            if settings.openai_base_url:
                kwargs["base_url"] = settings.openai_base_url
            self.client = OpenAI(**kwargs)
            logger.env_success("OpenAI client initialized successfully")
        elif self.client is None:
            logger.warning("API calls will use fallback responses (no actual AI generation)")

    def is_available(self) -> bool:
        """Check if the OpenAI API client is properly configured."""
        return self.client is not None

    def _require_client(self) -> Any:
        if self.client is None:
            raise RemoteServiceFailure("AI service not configured")
        return self.client

    def _chat(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int,
              endpoint: str = "chat.completions.create", json_mode: bool = False) -> str:
        client = self._require_client()
        model = self.settings.chat_model
        extra: Dict[str, Any] = {"response_format": {"type": "json_object"}} if json_mode else {}

        logger.api_call(endpoint, model=model)
        try:
            with Timer() as timer:
                completion = client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    **extra,
                )
        except Exception as e:
            logger.api_error(f"{endpoint} failed: {e}")
            raise RemoteServiceFailure(str(e)) from e
        logger.api_response(endpoint, duration_ms=timer.duration_ms)

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise RemoteServiceFailure("No response from AI service")
        return content.strip()

    # ---------------------------------------------------------------------------
    # Dialogue generation
    # ---------------------------------------------------------------------------

    def generate_dialogue(self, request: DialogueRequest) -> GeneratedDialogue:
        """
        Generate a two-character dialogue for a situation.

        Raises RemoteServiceFailure on any transport error or when the model
        returns something that is not the expected JSON structure.
        """
        lang = language_name(request.language)
        logger.api(f"generate_dialogue() - '{request.situation}' "
                   f"({request.difficulty}, {request.length}, {lang})")

        prompt = (
            f'Create a realistic {lang} dialogue for the situation: "{request.situation}"\n\n'
            "Requirements:\n"
            f"- Language: {lang} with English translations\n"
            f"- Difficulty: {request.difficulty} level "
            f"({DIFFICULTY_GUIDE.get(request.difficulty, DIFFICULTY_GUIDE['intermediate'])})\n"
            f"- Length: {LENGTH_GUIDE.get(request.length, LENGTH_GUIDE['medium'])}\n"
            "- Create 2 appropriate characters with names, roles, and suitable emoji avatars\n"
            "- Make the dialogue natural and contextually appropriate\n"
            "- Include common phrases and expressions for this situation\n"
            "- Ensure the conversation flows naturally\n"
            f"- Provide accurate English translations for each {lang} sentence\n\n"
            "Please respond with a JSON object in this exact format:\n"
            "{\n"
            f'  "character1": {{"name": "{lang} name", "role": "their role in the situation", '
            '"avatar": "appropriate emoji"},\n'
            f'  "character2": {{"name": "{lang} name", "role": "their role in the situation", '
            '"avatar": "appropriate emoji"},\n'
            '  "lines": [\n'
            f'    {{"speaker": "character1", "text": "{lang} text", "translation": "English translation"}},\n'
            f'    {{"speaker": "character2", "text": "{lang} text", "translation": "English translation"}}\n'
            "  ]\n"
            "}\n\n"
            "Make sure the JSON is valid and properly formatted."
        )
        messages = [
            {
                "role": "system",
                "content": (
                    f"You are a {lang} language teacher creating educational dialogues. "
                    "Always respond with valid JSON only, no additional text or formatting."
                ),
            },
            {"role": "user", "content": prompt},
        ]

        raw = self._chat(messages, temperature=0.7, max_tokens=2000,
                         endpoint="chat.completions.create (dialogue)", json_mode=True)
        dialogue = parse_dialogue(raw)
        logger.success(f"Dialogue generated: {len(dialogue.lines)} lines "
                       f"({dialogue.character1.name} & {dialogue.character2.name})")
        return dialogue

    # ---------------------------------------------------------------------------
    # Translation
    # ---------------------------------------------------------------------------

    def translate(self, text: str, source: str = "de", target: str = "en") -> str:
        """Translate one text; returns the model output as-is (trimmed)."""
        src, tgt = language_name(source), language_name(target)
        messages = [
            {
                "role": "system",
                "content": (
                    f"You are a professional translator. Translate text accurately from {src} to {tgt}. "
                    "Respond with only the translation, no additional text or explanations."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Translate the following {src} text to {tgt}. "
                    f'Provide only the translation, no explanations or additional text:\n"{text}"'
                ),
            },
        ]
        return self._chat(messages, temperature=0.1, max_tokens=200,
                          endpoint="chat.completions.create (translate)")

    def translate_batch(self, texts: List[str], source: str = "de", target: str = "en") -> List[str]:
        """
        Translate several texts in one request.

        Returns the non-empty response lines in order; they still carry the
        "1." numbering the prompt asks for.
        """
        src, tgt = language_name(source), language_name(target)
        numbered = "\n".join(f'{i + 1}. "{text}"' for i, text in enumerate(texts))
        messages = [
            {
                "role": "system",
                "content": (
                    f"You are a professional translator. Translate text accurately from {src} to {tgt}. "
                    "Respond with only the translations in numbered format, no additional text or explanations."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Translate the following {src} sentences to {tgt}. "
                    f"Provide only the translations in the same numbered format, no explanations:\n{numbered}"
                ),
            },
        ]
        raw = self._chat(messages, temperature=0.1, max_tokens=500,
                         endpoint=f"chat.completions.create (batch of {len(texts)})")
        return [line for line in raw.split("\n") if line.strip()]

    # ---------------------------------------------------------------------------
    # Text-to-Speech (TTS)
    # ---------------------------------------------------------------------------

    def synthesize_speech(self, text: str, language: str = "de-DE", speed: float = 1.0) -> str:
        """
        Generate speech audio for one utterance.

        Returns the path of a temporary MP3 file; the caller deletes it.
        """
        client = self._require_client()
        if not text or not text.strip():
            raise RemoteServiceFailure("Empty text provided for TTS")

        voice = LANGUAGE_VOICE_MAP.get(language.split("-")[0].lower(), DEFAULT_TTS_VOICE)
        # OpenAI accepts 0.25-4.0
        speed = min(4.0, max(0.25, speed))
        logger.api(f"synthesize_speech() - {len(text)} chars, voice={voice}, speed={speed}")

        logger.api_call("audio.speech.create", model=self.settings.tts_model)
        try:
            with Timer() as timer:
                response = client.audio.speech.create(
                    model=self.settings.tts_model,
                    voice=voice,
                    input=text,
                    speed=speed,
                    response_format="mp3",
                )
            logger.api_response("audio.speech.create", duration_ms=timer.duration_ms)

            fd, path = tempfile.mkstemp(suffix=".mp3", prefix="storybuddy_speech_")
            with os.fdopen(fd, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        except Exception as e:
            logger.api_error(f"TTS generation failed: {e}")
            raise RemoteServiceFailure(str(e)) from e

        logger.debug(f"TTS audio saved: {path}")
        return path

    # ---------------------------------------------------------------------------
    # Speech-to-Text (STT)
    # ---------------------------------------------------------------------------

    def transcribe_audio(self, audio_path: str, language: Optional[str] = "de-DE") -> str:
        """Transcribe a recorded utterance with Whisper; returns "" when nothing was said."""
        client = self._require_client()
        lang_code = language.split("-")[0].lower() if language else None
        logger.api(f"transcribe_audio() - file={audio_path}, lang={lang_code}")

        try:
            with open(audio_path, "rb") as audio_file:
                logger.api_call("audio.transcriptions.create", model=self.settings.stt_model)
                with Timer() as timer:
                    kwargs = {
                        "model": self.settings.stt_model,
                        "file": audio_file,
                        "response_format": "text",
                    }
                    if lang_code:
                        kwargs["language"] = lang_code
                    transcription = client.audio.transcriptions.create(**kwargs)
                logger.api_response("audio.transcriptions.create", duration_ms=timer.duration_ms)
        except Exception as e:
            logger.api_error(f"Transcription failed: {e}")
            raise RemoteServiceFailure(str(e)) from e

        # response_format="text" returns a bare string
        result = transcription.strip() if isinstance(transcription, str) else str(transcription).strip()
        logger.debug(f"Transcription: '{result[:50]}'")
        return result
