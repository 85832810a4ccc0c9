"""Tests for normalization, similarity and verdicts."""

import pytest

from storybuddy.models import Verdict
from storybuddy.scoring import (
    VERDICT_MESSAGES,
    classify,
    detail_lines,
    diff_words,
    normalize,
    score_attempt,
    similarity,
)


@pytest.mark.parametrize("text,expected", [
    ("Guten Abend!", "guten abend"),
    ("  Ja,   natürlich.  ", "ja natürlich"),
    ("Wie lange dauert es?!;:", "wie lange dauert es"),
    ("Tab\tand\nnewline", "tab and newline"),
    ("", ""),
])
def test_normalize(text, expected):
    assert normalize(text) == expected


@pytest.mark.parametrize("text", [
    "Guten Abend! Haben Sie einen Tisch?",
    "  ..  ",
    "Ich-nehme das Schnitzel",
    "MIXED case, with: punctuation!",
])
def test_normalize_is_idempotent(text):
    assert normalize(normalize(text)) == normalize(text)


def test_identical_sentences_score_one():
    assert similarity("Ich nehme das Schnitzel.", "ich nehme das schnitzel") == 1.0


def test_empty_strings():
    """Two empty strings are equal after normalization; empty vs non-empty is not."""
    assert similarity("", "") == 1.0
    assert similarity("x", "") < 1.0
    assert similarity("", "x") == 0.0


@pytest.mark.parametrize("spoken,target", [
    ("a b c", "c"),
    ("a a a a", "a"),
    ("", "guten morgen"),
    ("völlig anders", "guten morgen"),
    ("morgen guten", "guten morgen"),
])
def test_similarity_in_unit_interval(spoken, target):
    assert 0.0 <= similarity(spoken, target) <= 1.0


def test_similarity_is_order_independent():
    assert similarity("morgen guten", "guten morgen") == 1.0


def test_diff_of_identical_text_is_empty():
    assert diff_words("Guten Morgen!", "Guten Morgen!") == ([], [])


def test_coffee_scenario():
    """Spoken sentence drops two words and swaps an article."""
    target = "Ich möchte einen Kaffee bitte"
    spoken = "ich möchte ein Kaffee"

    missing, extra = diff_words(spoken, target)
    assert missing == ["einen", "bitte"]
    assert extra == ["ein"]

    # 3 of 4 spoken words appear in the 5-word target
    assert similarity(spoken, target) == pytest.approx(0.6)
    assert score_attempt(spoken, target).verdict == Verdict.PARTIAL


@pytest.mark.parametrize("score,verdict", [
    (1.0, Verdict.SUCCESS),
    (0.8, Verdict.SUCCESS),
    (0.79999, Verdict.PARTIAL),
    (0.6, Verdict.PARTIAL),
    (0.59999, Verdict.FAILURE),
    (0.0, Verdict.FAILURE),
])
def test_verdict_boundaries(score, verdict):
    assert classify(score) == verdict


def test_exact_match_result():
    result = score_attempt("Guten Abend", "Guten Abend!")
    assert result.verdict == Verdict.SUCCESS
    assert result.missing_words == []
    assert result.extra_words == []
    assert result.details == []
    assert result.message == VERDICT_MESSAGES[Verdict.SUCCESS]


def test_detail_lines_only_when_non_empty():
    assert detail_lines(["bitte"], []) == ["Missing words: bitte"]
    assert detail_lines([], ["ein", "so"]) == ["Extra words: ein, so"]
    assert detail_lines([], []) == []


def test_failure_result_carries_details():
    result = score_attempt("hallo", "Guten Morgen")
    assert result.verdict == Verdict.FAILURE
    assert result.details == ["Missing words: guten, morgen", "Extra words: hallo"]
    assert result.transcript == "hallo"
