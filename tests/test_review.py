# tests/test_review.py
import pytest

from medcards.errors import SessionStateError
from medcards.models import CardState, Rating
from medcards.review import CramSession, CramStatus, cram_cards
from medcards.store import InMemoryCardStore
from medcards.study import SessionManager


@pytest.fixture
def store(make_card):
    return InMemoryCardStore([
        make_card("clean", due_in_days=-1),
        make_card("once", state=CardState.REVIEW, interval=5, reps=2, lapses=1, due_in_days=2),
        make_card("twice", state=CardState.RELEARNING, interval=1, lapses=2, due_in_days=1),
        make_card("once-early", state=CardState.REVIEW, interval=3, reps=1, lapses=1, due_in_days=-1),
    ])


@pytest.fixture
def manager(store, clock):
    return SessionManager(store, clock=clock)


def test_cram_cards_order(make_card):
    cards = [
        make_card("x", lapses=1, due_in_days=4),
        make_card("y", lapses=3),
        make_card("z"),
        make_card("w", lapses=1, due_in_days=4),
    ]
    assert [c.id for c in cram_cards(cards)] == ["y", "w", "x"]


def test_cram_includes_cards_not_due(manager):
    cram = CramSession(manager)
    assert cram.card_ids == ["twice", "once-early", "once"]
    assert cram.status is CramStatus.READY
    assert manager.cram is cram


def test_empty_cram(make_card, clock):
    manager = SessionManager(InMemoryCardStore([make_card("fresh")]), clock=clock)
    cram = CramSession(manager)
    assert cram.status is CramStatus.EMPTY
    assert cram.current_card is None


def test_cram_rating_requires_reveal(manager, store):
    cram = CramSession(manager)
    with pytest.raises(SessionStateError):
        cram.rate(Rating.GOOD)
    assert store.writes == 0


def test_cram_rating_reschedules_through_store(manager, store, clock):
    cram = CramSession(manager)
    cram.reveal()
    assert cram.interval_preview is not None
    updated = cram.rate(Rating.GOOD)
    assert store.writes == 1
    assert updated.id == "twice"
    assert updated.spaced_repetition.state is CardState.REVIEW
    assert store.get("twice").spaced_repetition.last_review == clock()
    assert cram.cram_index == 1
    assert cram.cram_revealed is False


def test_cram_membership_survives_successful_rating(manager):
    cram = CramSession(manager)
    for _ in range(3):
        cram.reveal()
        cram.rate(Rating.EASY)
    assert cram.status is CramStatus.FINISHED
    # lapses are never reset, so the same cards qualify again
    cram.restart()
    assert cram.card_ids == ["twice", "once-early", "once"]


def test_cram_again_counts_failure(manager, store):
    cram = CramSession(manager)
    cram.reveal()
    cram.rate(Rating.AGAIN)
    assert cram.cards_reviewed == 1
    assert cram.cards_failed == 1
    assert store.get("twice").spaced_repetition.lapses == 3


def test_cram_does_not_move_study_queue(manager):
    manager.start_session()
    manager.next_card()
    position = manager.current_index
    cram = CramSession(manager)
    cram.reveal()
    cram.rate(Rating.GOOD)
    assert manager.current_index == position
    assert manager.session.cards_reviewed == 0


def test_cram_navigation(manager):
    cram = CramSession(manager)
    cram.reveal()
    cram.next_card()
    assert cram.current_card.id == "once-early"
    assert cram.cram_revealed is False
    cram.next_card()
    cram.next_card()
    assert cram.status is CramStatus.FINISHED
    cram.next_card()
    assert cram.cram_index == 3
    cram.previous_card()
    assert cram.current_card.id == "once"


def test_deleting_card_updates_cram(manager):
    cram = CramSession(manager)
    cram.next_card()
    manager.delete_card("twice")
    assert cram.card_ids == ["once-early", "once"]
    assert cram.current_card.id == "once-early"


def test_deleting_last_cram_card_clamps(manager):
    cram = CramSession(manager)
    cram.next_card()
    cram.next_card()
    cram.reveal()
    manager.delete_card("once")
    assert cram.current_card.id == "once-early"
    assert cram.cram_revealed is False


def test_closed_cram_is_detached(manager):
    cram = CramSession(manager)
    cram.close()
    assert manager.cram is None
    manager.delete_card("twice")
    assert "twice" in cram.card_ids


def test_cram_rating_removes_card_from_due_queue(manager, clock):
    manager.start_session()
    manager.go_to_card(1)
    assert manager.current_card.id == "once-early"
    manager.reveal_answer()

    cram = CramSession(manager)
    cram.next_card()
    cram.reveal()
    cram.rate(Rating.GOOD)

    due_ids = [c.id for c in manager.filtered_due_cards]
    assert "once-early" not in due_ids
    assert all(c.spaced_repetition.next_review <= clock() for c in manager.due_cards)
    assert manager.current_card.id == "clean"
    assert manager.is_revealed is False
    assert manager.interval_preview is None
