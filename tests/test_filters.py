# tests/test_filters.py
import pytest

from medcards.filters import (
    available_rotations, available_systems, available_tags, filter_cards, matches, toggle_value,
)
from medcards.models import CardState, DeckFilter


@pytest.fixture
def deck(make_card):
    specs = [
        ("c01", ["cardiology", "arrhythmia"], "Cardiology", "hard", "Internal Medicine"),
        ("c02", ["cardiology"], "Cardiology", "hard", None),
        ("c03", ["cardiology", "heart failure"], "Cardiology", "hard", "Ambulatory"),
        ("c04", ["cardiology"], "Cardiology", "easy", "Ambulatory"),
        ("c05", ["nephrology"], "Renal", "hard", "Internal Medicine"),
        ("c06", ["pulmonology"], "Pulmonology", "medium", "Emergency Medicine"),
        ("c07", [], "General", "medium", None),
        ("c08", ["endocrine"], "Endocrinology", "hard", "Internal Medicine"),
        ("c09", ["psych"], "Psychiatry", "easy", "Psychiatry"),
        ("c10", ["cardiology"], "Cardiology", "medium", "Surgery"),
    ]
    return [
        make_card(card_id, tags=tags, system=system, difficulty=difficulty, rotation=rotation)
        for card_id, tags, system, difficulty, rotation in specs
    ]


def test_and_across_facets(deck):
    filters = DeckFilter(tags=["cardiology"], difficulties=["hard"])
    result = filter_cards(deck, filters)
    assert [c.id for c in result] == ["c01", "c02", "c03"]


def test_or_within_facet(deck):
    filters = DeckFilter(tags=["nephrology", "psych"])
    assert [c.id for c in filter_cards(deck, filters)] == ["c05", "c09"]


def test_empty_filter_is_identity(deck):
    result = filter_cards(deck, DeckFilter())
    assert result == deck
    assert result is not deck


def test_filter_keeps_order(deck):
    shuffled = list(reversed(deck))
    result = filter_cards(shuffled, DeckFilter(systems=["Cardiology"]))
    assert [c.id for c in result] == ["c10", "c04", "c03", "c02", "c01"]


def test_card_without_rotation_passes_rotation_filter(deck):
    result = filter_cards(deck, DeckFilter(rotations=["Surgery"]))
    assert [c.id for c in result] == ["c02", "c07", "c10"]


def test_state_filter(make_card):
    new = make_card("a")
    review = make_card("b", state=CardState.REVIEW, interval=3, reps=2)
    assert matches(review, DeckFilter(states=["review"]))
    assert not matches(new, DeckFilter(states=["review"]))


def test_card_without_tags_fails_tag_filter(deck):
    untagged = next(c for c in deck if c.id == "c07")
    assert not matches(untagged, DeckFilter(tags=["cardiology"]))


def test_available_values_come_from_whole_deck(deck):
    assert available_tags(deck) == [
        "arrhythmia", "cardiology", "endocrine", "heart failure", "nephrology", "psych", "pulmonology",
    ]
    assert "Renal" in available_systems(deck)
    assert available_rotations(deck) == [
        "Ambulatory", "Emergency Medicine", "Internal Medicine", "Psychiatry", "Surgery",
    ]


def test_toggle_value_adds_and_removes():
    filters = toggle_value(DeckFilter(), "tags", "cardiology")
    assert filters.tags == ["cardiology"]
    assert toggle_value(filters, "tags", "cardiology").is_empty()
    # original is untouched
    assert filters.tags == ["cardiology"]


def test_toggle_unknown_facet():
    with pytest.raises(ValueError):
        toggle_value(DeckFilter(), "colors", "red")
