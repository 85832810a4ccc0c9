"""Tests for the saved-story library."""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from storybuddy.database import DatabaseClient
from storybuddy.errors import PersistenceFailure
from storybuddy.library import StoryLibrary


def test_add_and_reload(offline_db, sample_story):
    library = StoryLibrary(offline_db, "test_user")
    saved = library.add_story(sample_story)

    assert saved.is_saved
    assert library.contains(sample_story.id)

    reloaded = StoryLibrary(offline_db, "test_user")
    stories = reloaded.load()
    assert [s.id for s in stories] == [sample_story.id]
    assert stories[0].dialogue == sample_story.dialogue
    assert stories[0].is_saved


def test_toggle_saved_round_trip(offline_db, sample_story):
    library = StoryLibrary(offline_db, "test_user")

    saved = library.toggle_saved(sample_story)
    assert saved.is_saved
    assert library.contains(sample_story.id)

    unsaved = library.toggle_saved(saved)
    assert not unsaved.is_saved
    assert not library.contains(sample_story.id)
    assert offline_db.list_saved_stories("test_user") == []


def test_toggle_saved_failure_propagates(sample_story):
    db = MagicMock(spec=DatabaseClient)
    db.save_story.side_effect = PersistenceFailure("save story", RuntimeError("offline"))
    library = StoryLibrary(db, "test_user")

    with pytest.raises(PersistenceFailure):
        library.toggle_saved(sample_story)
    assert library.stories == []


def test_update_story(offline_db, sample_story):
    library = StoryLibrary(offline_db, "test_user")
    library.add_story(sample_story)

    assert library.update_story(sample_story.id, title="Mein Abendessen")
    assert library.stories[0].title == "Mein Abendessen"
    assert library.update_story("missing", title="x") is False


def test_sync_with_local_skips_known(offline_db, sample_story):
    library = StoryLibrary(offline_db, "test_user")
    library.add_story(sample_story)

    other = replace(sample_story, id="story-2")
    assert library.sync_with_local([sample_story, other]) == 1
    assert {s.id for s in library.stories} == {"story-1", "story-2"}
