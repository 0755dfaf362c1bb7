"""Study session management: due-queue traversal, reveal, rating and deck edits."""
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from medcards.config import DEFAULT_CONFIG, SchedulerConfig
from medcards.dashboard import calculate_stats, topic_performance
from medcards.errors import SessionStateError
from medcards.filters import available_rotations, available_systems, available_tags, toggle_value
from medcards.flashcards import due_cards, filtered_due_cards
from medcards.models import DeckFilter, Flashcard, Rating, ReviewRecord, ReviewSession, utcnow
from medcards.sm2 import preview, schedule
from medcards.store import CardStore

logger = logging.getLogger(__name__)


class QueueStatus(str, Enum):
    READY = "ready"
    CAUGHT_UP = "caught_up"  # cards exist, none due
    NO_CARDS = "no_cards"
    FILTERED_OUT = "filtered_out"  # due cards exist, filters hide them


def _normalize_front(card: Flashcard) -> str:
    return card.content.front.lower().strip()


class SessionManager:
    """Headless state container behind the study screen.

    The due queue is materialized once per pass. A rated card leaves the pass
    even when it is still due, so the next card slides into the current index.
    Every rate/add/update/delete performs exactly one store write per card.
    """

    def __init__(
        self,
        store: CardStore,
        config: Optional[SchedulerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.config = config or DEFAULT_CONFIG
        self.clock = clock or utcnow
        self.cards: list[Flashcard] = []
        self.due_cards: list[Flashcard] = []
        self.filters = store.load_filters() or DeckFilter()
        self.current_index = 0
        self.is_revealed = False
        self.interval_preview: Optional[dict] = None
        self.session: Optional[ReviewSession] = None
        self.cram = None
        self._rated_ids: set[str] = set()
        self._revealed_at: Optional[datetime] = None
        self.refresh()

    # -- derived state -------------------------------------------------

    @property
    def filtered_due_cards(self) -> list[Flashcard]:
        return filtered_due_cards(self.due_cards, self.filters)

    @property
    def current_card(self) -> Optional[Flashcard]:
        queue = self.filtered_due_cards
        if 0 <= self.current_index < len(queue):
            return queue[self.current_index]
        return None

    @property
    def stats(self) -> dict:
        return calculate_stats(self.cards, self.clock())

    @property
    def available_tags(self) -> list[str]:
        return available_tags(self.cards)

    @property
    def available_systems(self) -> list[str]:
        return available_systems(self.cards)

    @property
    def available_rotations(self) -> list[str]:
        return available_rotations(self.cards)

    @property
    def topic_performance(self) -> list[dict]:
        return topic_performance(self.cards)

    @property
    def queue_status(self) -> QueueStatus:
        if not self.cards:
            return QueueStatus.NO_CARDS
        if self.filtered_due_cards:
            return QueueStatus.READY
        if self.due_cards:
            return QueueStatus.FILTERED_OUT
        return QueueStatus.CAUGHT_UP

    def get_card(self, card_id: str) -> Optional[Flashcard]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    # -- queue bookkeeping ---------------------------------------------

    def _clamp_index(self) -> None:
        size = len(self.filtered_due_cards)
        self.current_index = min(max(self.current_index, 0), size - 1) if size else 0

    def _clear_reveal(self) -> None:
        self.is_revealed = False
        self.interval_preview = None
        self._revealed_at = None

    def _recompute_due(self) -> None:
        """Rebuild the pass, keeping the displayed card at its position when it survives."""
        shown = self.current_card
        self.due_cards = [c for c in due_cards(self.cards, self.clock()) if c.id not in self._rated_ids]
        if shown is not None:
            for index, card in enumerate(self.filtered_due_cards):
                if card.id == shown.id:
                    self.current_index = index
                    break
        self._clamp_index()

    def _replace(self, card: Flashcard) -> None:
        for collection in (self.cards, self.due_cards):
            for index, existing in enumerate(collection):
                if existing.id == card.id:
                    collection[index] = card
                    break
            else:
                if collection is self.cards:
                    collection.append(card)

    def _forget(self, card_id: str) -> None:
        queue_ids = [c.id for c in self.filtered_due_cards]
        position = queue_ids.index(card_id) if card_id in queue_ids else None
        self.cards = [c for c in self.cards if c.id != card_id]
        self.due_cards = [c for c in self.due_cards if c.id != card_id]
        self._rated_ids.discard(card_id)
        if position is not None:
            if position < self.current_index:
                self.current_index -= 1
            elif position == self.current_index:
                self._clear_reveal()
        self._clamp_index()
        if self.cram is not None:
            self.cram.remove(card_id)

    def refresh(self) -> None:
        """Re-read the store; stored cards are authoritative over the in-memory copies."""
        self.cards = self.store.load()
        self._recompute_due()

    def apply_rating(self, card_id: str, rating: Rating) -> Optional[Flashcard]:
        """Schedule the stored version of a card and persist it with one write.

        The due queue is rebuilt afterwards, so a card rated from cram mode
        leaves the pass once it is no longer due. Returns None when the card
        has disappeared from the store.
        """
        now = self.clock()
        card = self.store.get(card_id)
        if card is None:
            logger.warning("Card %s no longer exists in the store, dropping it", card_id)
            self._forget(card_id)
            return None
        shown = self.current_card
        card.spaced_repetition = schedule(card.spaced_repetition, rating, now, self.config)
        card.updated_at = now
        self.store.save(card)
        self._replace(card)
        if shown is not None and shown.id == card_id:
            self._clear_reveal()
        self._recompute_due()
        return card

    # -- study actions -------------------------------------------------

    def reveal_answer(self) -> None:
        card = self.current_card
        if card is None or self.is_revealed:
            return
        self.is_revealed = True
        self._revealed_at = self.clock()
        self.interval_preview = preview(card.spaced_repetition, self._revealed_at, self.config)

    def rate_card(self, rating) -> Optional[Flashcard]:
        rating = Rating.parse(rating)
        card = self.current_card
        if card is None:
            logger.warning("Rejected rating %s: no card to rate", rating.value)
            raise SessionStateError("There is no card to rate")
        if not self.is_revealed:
            logger.warning("Rejected rating %s for card %s: answer not revealed", rating.value, card.id)
            raise SessionStateError("Reveal the answer before rating the card")

        previous_state = card.spaced_repetition.state
        revealed_at = self._revealed_at
        self._clear_reveal()
        updated = self.apply_rating(card.id, rating)
        if updated is None:
            return None

        self._rated_ids.add(card.id)
        if self.session is not None:
            now = self.clock()
            self.session.cards_reviewed += 1
            if rating is Rating.AGAIN:
                self.session.cards_failed += 1
            else:
                self.session.cards_correct += 1
            self.session.reviews.append(ReviewRecord(
                card_id=card.id,
                rating=rating,
                reviewed_at=now,
                time_spent=(now - revealed_at).total_seconds() if revealed_at else 0.0,
                previous_state=previous_state,
                new_state=updated.spaced_repetition.state,
            ))
        self._recompute_due()
        return updated

    def go_to_card(self, index: int) -> None:
        self.current_index = index
        self._clamp_index()
        self._clear_reveal()

    def next_card(self) -> None:
        self.go_to_card(self.current_index + 1)

    def previous_card(self) -> None:
        self.go_to_card(self.current_index - 1)

    def start_session(self) -> ReviewSession:
        self._rated_ids.clear()
        self.refresh()
        self.current_index = 0
        self._clamp_index()
        self._clear_reveal()
        self.session = ReviewSession(id=str(uuid.uuid4()), started_at=self.clock())
        logger.info("Started session %s with %d due cards", self.session.id, len(self.filtered_due_cards))
        return self.session

    def end_session(self) -> Optional[ReviewSession]:
        """Close the running session and return its summary; stored card changes are kept."""
        summary = self.session
        if summary is not None:
            summary.ended_at = self.clock()
            logger.info(
                "Ended session %s: %d reviewed, %d correct, %d failed",
                summary.id, summary.cards_reviewed, summary.cards_correct, summary.cards_failed,
            )
        self.session = None
        self._rated_ids.clear()
        self._clear_reveal()
        self.current_index = 0
        self._recompute_due()
        return summary

    # -- deck edits ----------------------------------------------------

    def add_card(self, card: Flashcard) -> Flashcard:
        card = card.clone()
        card.updated_at = self.clock()
        self.store.save(card)
        self._replace(card)
        self._recompute_due()
        return card

    def add_cards(self, cards: list[Flashcard]) -> list[Flashcard]:
        """Add cards whose id and front text are not already in the deck."""
        seen_ids = {c.id for c in self.cards}
        seen_fronts = {_normalize_front(c) for c in self.cards}
        added = []
        for card in cards:
            front = _normalize_front(card)
            if card.id in seen_ids or front in seen_fronts:
                continue
            seen_ids.add(card.id)
            seen_fronts.add(front)
            card = card.clone()
            self.store.save(card)
            self.cards.append(card)
            added.append(card)
        if added:
            logger.info("Added %d new cards", len(added))
            self._recompute_due()
        else:
            logger.info("No new unique cards to add")
        return added

    def update_card(self, card: Flashcard) -> Flashcard:
        """Save a manual correction without going through the scheduler."""
        card = card.clone()
        card.updated_at = self.clock()
        self.store.save(card)
        self._replace(card)
        self._recompute_due()
        return card

    def delete_card(self, card_id: str) -> None:
        self.store.delete(card_id)
        self._forget(card_id)

    # -- filters -------------------------------------------------------

    def set_filters(self, filters: DeckFilter) -> None:
        self.filters = filters
        self.store.save_filters(filters)
        self.current_index = 0
        self._clear_reveal()

    def clear_filters(self) -> None:
        self.set_filters(DeckFilter())

    def toggle_tag(self, tag: str) -> None:
        self.set_filters(toggle_value(self.filters, "tags", tag))

    def toggle_system(self, system: str) -> None:
        self.set_filters(toggle_value(self.filters, "systems", system))
