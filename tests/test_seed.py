# tests/test_seed.py
from medcards.filters import filter_cards
from medcards.flashcards import due_cards
from medcards.models import CardState, DeckFilter
from medcards.seed import is_seeded, load_sample_cards, seed_all
from medcards.store import SQLiteCardStore


def test_sample_cards_are_new_and_due(now):
    cards = load_sample_cards(now)
    assert len(cards) == 10
    assert all(c.spaced_repetition.state is CardState.NEW for c in cards)
    assert len(due_cards(cards, now)) == 10
    assert len({c.id for c in cards}) == 10


def test_sample_cards_have_metadata(now):
    for card in load_sample_cards(now):
        assert card.content.front and card.content.back
        assert card.metadata.rotation
        assert card.metadata.tags


def test_sample_deck_filters(now):
    cards = load_sample_cards(now)
    cardiology = filter_cards(cards, DeckFilter(systems=["Cardiology"]))
    assert len(cardiology) == 2
    hard_cardiology = filter_cards(cards, DeckFilter(tags=["cardiology"], difficulties=["hard"]))
    assert [c.id for c in hard_cardiology] == ["sample-afib-anticoagulation"]


def test_seed_all_only_once(tmp_db, now):
    store = SQLiteCardStore(tmp_db)
    assert not is_seeded(store)
    assert seed_all(store, now) == 10
    assert is_seeded(store)
    assert seed_all(store, now) == 0
    assert store.count() == 10
