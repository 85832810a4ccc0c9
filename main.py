"""
Story Buddy - console driver

Flow:
1. Pick a situation (or type your own, which is generated by the AI service).
2. Listen to the story, practice speaking it line by line.
3. Translate sentences, collect words, take quizzes, save the story.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Ensure .env contains:
    OPENAI_API_KEY=sk-...
    FIREBASE_CREDENTIALS_PATH=./firebase-credentials.json   # optional

Then run:
    python main.py
"""

import asyncio
from typing import Optional

from storybuddy.api import StoryAIService
from storybuddy.config import load_settings
from storybuddy.data import DEFAULT_LANGUAGE, PREDEFINED_SITUATIONS
from storybuddy.database import DatabaseClient
from storybuddy.library import StoryLibrary
from storybuddy.logger import logger
from storybuddy.models import Situation, Story
from storybuddy.quiz import QuizSession
from storybuddy.speech_io import MicrophoneSpeechInput, PygameSpeechOutput
from storybuddy.stories import custom_situation, generate_story
from storybuddy.surface import StoryPracticeSurface
from storybuddy.translation import TranslationService
from storybuddy.vocabulary import VocabularyTracker

HELP = """
Commands:
  l            listen / pause / resume        x   stop listening
  s            start speaking practice        a   attempt current line again
  n            next line (done)               k   skip line
  e            end practice
  t <n>        show/hide translation of line n
  v            toggle vocabulary mode         w <n> <word>   click a word in line n
  tw           translate collected words
  q            story quiz                     vq  vocabulary quiz    rq  review quiz
  save         save / unsave this story
  p            print the story                h   help    exit   quit
"""


async def ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def choose_situation() -> Situation:
    print("\nSituations:")
    for index, situation in enumerate(PREDEFINED_SITUATIONS, start=1):
        print(f"  {index}. {situation.title} - {situation.description}")
    print("  or type your own situation")

    choice = await ask("> ")
    if choice.isdigit() and 1 <= int(choice) <= len(PREDEFINED_SITUATIONS):
        return PREDEFINED_SITUATIONS[int(choice) - 1]
    return custom_situation(choice or "Im Café")


def print_story(surface: StoryPracticeSurface) -> None:
    story = surface.story
    saved = " ★" if story.is_saved else ""
    print(f"\n{story.title}{saved}")
    for number, line in enumerate(story.dialogue, start=1):
        marker = ">" if line.id in (surface.highlighted_id, surface.practice_line_id) else " "
        print(f"{marker}{number:2}. {line.character.avatar} {line.character.name}: {line.text}")
        if line.id in surface.shown_translations:
            print(f"      {surface.sentence_translations[line.id]}")


async def run_quiz(surface: StoryPracticeSurface, session: Optional[QuizSession]) -> None:
    if session is None:
        print(surface.message)
        return

    while not session.is_complete:
        question = session.current_question
        print(f"\n{question.prompt}")
        for index, option in enumerate(question.options, start=1):
            print(f"  {index}. {option}")
        answer = await ask("answer> ")
        if question.options and answer.isdigit() and 1 <= int(answer) <= len(question.options):
            answer = question.options[int(answer) - 1]
        result = session.submit(answer)
        print("✓ Correct!" if result.correct else f"✗ {question.explanation}")

    learned = surface.finish_quiz(session)
    print(f"\nScore: {session.score}/{session.total}  {surface.message}")
    if learned:
        print("Learned: " + ", ".join(f"{w.text} {w.emoji}" for w in learned))


def line_id_at(story: Story, number: str) -> Optional[str]:
    if number.isdigit() and 1 <= int(number) <= len(story.dialogue):
        return story.dialogue[int(number) - 1].id
    return None


async def session_loop(surface: StoryPracticeSurface) -> None:
    print_story(surface)
    print(HELP)

    while True:
        command, _, rest = (await ask("story> ")).partition(" ")

        if command == "exit":
            break
        elif command == "h":
            print(HELP)
        elif command == "p":
            print_story(surface)
        elif command == "l":
            print(surface.handle_listen())
        elif command == "x":
            surface.stop_listening()
        elif command == "s":
            if not surface.start_speaking():
                print(surface.message)
        elif command == "a":
            result = await surface.attempt_current()
            if result:
                print(f"{result.message} ({result.similarity:.0%})")
                for detail in result.details:
                    print(f"  {detail}")
        elif command == "n":
            surface.complete_sentence()
        elif command == "k":
            surface.skip_sentence()
        elif command == "e":
            surface.end_practice()
        elif command == "t":
            line_id = line_id_at(surface.story, rest)
            if line_id:
                translation = await surface.translate_sentence(line_id)
                if translation:
                    print(f"  {translation}")
        elif command == "v":
            surface.set_vocabulary_mode(not surface.vocabulary_mode)
            print(f"Vocabulary mode: {'on' if surface.vocabulary_mode else 'off'}")
        elif command == "w":
            number, _, text = rest.partition(" ")
            line = surface.story.line_by_id(line_id_at(surface.story, number) or "")
            word = next((w for w in line.words if w.text.lower() == text.lower()), None) if line else None
            if word and surface.click_word(word):
                print(f"  {word.text} {word.emoji} - {word.translation}")
        elif command == "tw":
            await surface.translate_clicked_words()
            for word in surface.clicked_words.values():
                print(f"  {word.text} {word.emoji} - {word.translation}")
        elif command == "q":
            await run_quiz(surface, surface.open_story_quiz())
        elif command == "vq":
            await run_quiz(surface, surface.open_vocabulary_quiz())
        elif command == "rq":
            await run_quiz(surface, surface.open_review_quiz())
        elif command == "save":
            surface.toggle_saved()
            print(surface.message)
        elif command:
            print("Unknown command, type h for help")

    surface.close()


async def main() -> None:
    settings = load_settings()

    db = DatabaseClient()
    db.initialize(settings.firebase_credentials_path)
    db.get_or_create_user()

    ai = StoryAIService(settings)
    translator = TranslationService(ai)
    tracker = VocabularyTracker(db, language=DEFAULT_LANGUAGE.code)
    tracker.load()
    library = StoryLibrary(db)
    library.load()

    current, target = tracker.milestone_progress()
    print(f"\nWords learned: {current}/{target}   Saved stories: {len(library.stories)}")

    situation = await choose_situation()
    story = await asyncio.to_thread(generate_story, DEFAULT_LANGUAGE, situation, ai)
    surface = StoryPracticeSurface(
        story,
        output=PygameSpeechOutput(ai),
        speech_input=MicrophoneSpeechInput(ai, max_seconds=settings.capture_timeout_seconds),
        translator=translator,
        tracker=tracker,
        library=library,
        settings=settings,
    )
    if not surface.listen_supported:
        print("Note: read-aloud unavailable (needs pygame and OPENAI_API_KEY)")
    if not surface.speak_supported:
        print("Note: speaking practice unavailable (needs a microphone and OPENAI_API_KEY)")

    await session_loop(surface)


if __name__ == "__main__":
    logger.banner("Story Buddy - Starting Application")
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    logger.separator("Application Closed")
