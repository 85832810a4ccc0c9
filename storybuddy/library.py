"""
The user's saved-story library.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from .database import DatabaseClient
from .errors import PersistenceFailure
from .logger import logger
from .models import Story


class StoryLibrary:
    """Saved stories for one user, newest first."""

    def __init__(self, db: DatabaseClient, user_id: Optional[str] = None):
        self.db = db
        self.user_id = user_id
        self.stories: List[Story] = []

    def load(self) -> List[Story]:
        self.stories = self.db.list_saved_stories(self.user_id)
        logger.db(f"Loaded {len(self.stories)} saved stories")
        return self.stories

    def contains(self, story_id: str) -> bool:
        return any(story.id == story_id for story in self.stories)

    def add_story(self, story: Story) -> Story:
        """Save a story. Raises PersistenceFailure if the write did not happen."""
        saved = replace(story, is_saved=True)
        self.db.save_story(saved, self.user_id)
        self.stories.insert(0, saved)
        return saved

    def remove_story(self, story_id: str) -> None:
        """Remove a story. Raises PersistenceFailure if the delete did not happen."""
        self.db.delete_story(story_id, self.user_id)
        self.stories = [story for story in self.stories if story.id != story_id]

    def update_story(self, story_id: str, **updates: Any) -> bool:
        """Update fields of a saved story (e.g. title); failures are logged, not raised."""
        data: Dict[str, Any] = dict(updates)
        if not self.db.update_story(story_id, data, self.user_id):
            logger.warning(f"Story {story_id} was not updated")
            return False

        self.stories = [
            replace(story, **updates) if story.id == story_id else story
            for story in self.stories
        ]
        return True

    def toggle_saved(self, story: Story) -> Story:
        """
        Save an unsaved story or remove a saved one.

        Returns the story with its flag flipped. On PersistenceFailure the
        exception propagates and the caller keeps the original story.
        """
        if story.is_saved:
            self.remove_story(story.id)
            return replace(story, is_saved=False)
        return self.add_story(story)

    def sync_with_local(self, local_stories: Iterable[Story]) -> int:
        """Upload local stories missing from the library. Returns the number uploaded."""
        uploaded = 0
        for story in local_stories:
            if self.contains(story.id):
                continue
            try:
                self.add_story(story)
                uploaded += 1
            except PersistenceFailure as e:
                logger.error(f"Error syncing story {story.id}: {e}")
                break
        return uploaded
