"""Due-card queue construction."""
from datetime import datetime

from medcards.filters import filter_cards
from medcards.models import DeckFilter, Flashcard


def queue_order(card: Flashcard):
    return (card.spaced_repetition.next_review, card.id)


def due_cards(cards: list[Flashcard], now: datetime) -> list[Flashcard]:
    """Cards whose next review is at or before ``now``, oldest first, ties by id."""
    due = [card for card in cards if card.spaced_repetition.is_due(now)]
    return sorted(due, key=queue_order)


def filtered_due_cards(due: list[Flashcard], filters: DeckFilter) -> list[Flashcard]:
    return filter_cards(due, filters)


def get_due_cards(cards: list[Flashcard], now: datetime, filters: DeckFilter = None,
                  limit: int = None) -> list[Flashcard]:
    """Due cards narrowed by ``filters`` and capped at ``limit``."""
    due = due_cards(cards, now)
    if filters is not None:
        due = filtered_due_cards(due, filters)
    return due[:limit] if limit is not None else due
