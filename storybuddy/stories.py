"""
Story generation: AI-written dialogues for custom situations, template
dialogues for everything else, and the word annotations for each line.
"""

import re
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from .api import StoryAIService
from .data import (
    CUSTOM_SITUATION_PREFIX,
    DEFAULT_TEMPLATE,
    EMOJI_HINTS,
    GERMAN_PHRASEBOOK,
    GERMAN_TEMPLATES,
    SHORT_WORD_GLOSSES,
    UNKNOWN_EMOJI,
)
from .errors import RemoteServiceFailure
from .logger import logger
from .models import (
    DialogueLine,
    DialogueRequest,
    Difficulty,
    Language,
    Situation,
    Story,
    StoryLength,
    Word,
)

_WORD_SPLIT = re.compile(r"[\s.,!?;:]+")


def split_words(sentence: str) -> List[str]:
    return [token for token in _WORD_SPLIT.split(sentence) if token]


def guess_emoji(word: str) -> str:
    """Pick an emoji for a word the phrasebook does not know."""
    lower = word.lower()
    if lower in EMOJI_HINTS:
        return EMOJI_HINTS[lower]

    for stem, emoji in EMOJI_HINTS.items():
        if stem in lower or lower in stem:
            return emoji

    # Rough German morphology
    if lower.endswith("en"):
        return "🔄"    # verbs
    if lower.endswith("er"):
        return "👨"    # masculine nouns
    if lower.endswith("e"):
        return "📝"    # feminine nouns
    if len(lower) <= 3:
        return "🔤"
    return UNKNOWN_EMOJI


def create_words(sentence: str) -> List[Word]:
    """Annotate a template sentence from the phrasebook; unknown words keep their own text."""
    words = []
    for token in split_words(sentence):
        translation, emoji = GERMAN_PHRASEBOOK.get(token, (token, UNKNOWN_EMOJI))
        words.append(Word(text=token, translation=translation, emoji=emoji))
    return words


def create_words_from_ai(sentence: str, translation: str) -> List[Word]:
    """
    Annotate an AI-generated sentence.

    Phrasebook entries win; otherwise the English word at the same position
    is used, with a gloss table for short function words where positions
    rarely line up.
    """
    english = split_words(translation)
    words = []
    for index, token in enumerate(split_words(sentence)):
        known = GERMAN_PHRASEBOOK.get(token)
        if known:
            words.append(Word(text=token, translation=known[0], emoji=known[1]))
            continue

        gloss = english[index] if index < len(english) else token
        if len(token) <= 2 and token in SHORT_WORD_GLOSSES:
            gloss = SHORT_WORD_GLOSSES[token]

        words.append(Word(text=token, translation=gloss, emoji=guess_emoji(token)))
    return words


def custom_situation(title: str) -> Situation:
    """Build a user-defined situation; its id carries the custom- prefix."""
    return Situation(
        id=f"{CUSTOM_SITUATION_PREFIX}{int(time.time() * 1000)}",
        title=title.strip(),
        description="Custom situation",
    )


def _ai_story(language: Language, situation: Situation, ai: StoryAIService,
              difficulty: Difficulty, length: StoryLength) -> Story:
    request = DialogueRequest(
        situation=situation.title,
        language=language.code,
        difficulty=difficulty,
        length=length,
    )
    generated = ai.generate_dialogue(request)

    dialogue = []
    for index, line in enumerate(generated.lines):
        character = generated.character1 if line.speaker == "character1" else generated.character2
        dialogue.append(DialogueLine(
            id=f"line-{index}",
            character=character,
            text=line.text,
            translation=line.translation,
            words=tuple(create_words_from_ai(line.text, line.translation)),
        ))

    return Story(
        id=str(uuid.uuid4()),
        title=f"{situation.title} - AI Generated",
        language=language,
        situation=situation,
        dialogue=tuple(dialogue),
        created_at=datetime.now(timezone.utc),
    )


def _template_story(language: Language, situation: Situation) -> Story:
    characters, lines = GERMAN_TEMPLATES.get(situation.id, GERMAN_TEMPLATES[DEFAULT_TEMPLATE])

    dialogue = tuple(
        DialogueLine(
            id=f"line-{index}",
            character=characters[index % 2],
            text=text,
            # Template stories carry no English; the translate action fills it in
            translation=text,
            words=tuple(create_words(text)),
        )
        for index, text in enumerate(lines)
    )

    title = f"{situation.title} - Custom" if situation.is_custom else f"{situation.title} auf Deutsch"
    return Story(
        id=str(uuid.uuid4()),
        title=title,
        language=language,
        situation=situation,
        dialogue=dialogue,
        created_at=datetime.now(timezone.utc),
    )


def generate_story(
    language: Language,
    situation: Situation,
    ai: Optional[StoryAIService] = None,
    difficulty: Difficulty = "intermediate",
    length: StoryLength = "medium",
    use_ai: bool = True,
) -> Story:
    """
    Generate a practice story.

    Only custom situations go to the AI service; predefined situations, a
    missing service and any AI failure all produce the template dialogue.
    """
    logger.task_start(f"generate_story ({situation.id})")

    if use_ai and situation.is_custom and ai is not None and ai.is_available():
        try:
            story = _ai_story(language, situation, ai, difficulty, length)
            logger.task_complete(f"generate_story ({len(story.dialogue)} AI lines)")
            return story
        except RemoteServiceFailure as e:
            logger.warning(f"AI story generation failed, falling back to template: {e}")

    story = _template_story(language, situation)
    logger.task_complete(f"generate_story ({len(story.dialogue)} template lines)")
    return story
