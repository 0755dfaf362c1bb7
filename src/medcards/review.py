"""Cram mode: drilling the cards the learner has missed before."""
import logging
from enum import Enum
from typing import Optional

from medcards.errors import SessionStateError
from medcards.models import Flashcard, Rating
from medcards.sm2 import preview

logger = logging.getLogger(__name__)


class CramStatus(str, Enum):
    READY = "ready"
    EMPTY = "empty"  # no card has ever lapsed
    FINISHED = "finished"  # walked past the last card


def cram_order(card: Flashcard):
    srs = card.spaced_repetition
    return (-srs.lapses, srs.next_review, card.id)


def cram_cards(cards: list[Flashcard]) -> list[Flashcard]:
    """Cards with at least one lapse, most-missed first."""
    return sorted((c for c in cards if c.spaced_repetition.lapses > 0), key=cram_order)


class CramSession:
    """Traversal over lapsed cards, independent of the due-queue position.

    The card list is snapshotted when the session starts so that rating a card
    (which may change its lapse count) does not reorder the walk. Ratings go
    through the manager's scheduler and store, so they reschedule the card.
    """

    def __init__(self, manager):
        self.manager = manager
        self.card_ids: list[str] = []
        self.cram_index = 0
        self.cram_revealed = False
        self.interval_preview: Optional[dict] = None
        self.cards_reviewed = 0
        self.cards_failed = 0
        manager.cram = self
        self.restart()

    @property
    def cards(self) -> list[Flashcard]:
        return [card for card in map(self.manager.get_card, self.card_ids) if card is not None]

    @property
    def current_card(self) -> Optional[Flashcard]:
        if 0 <= self.cram_index < len(self.card_ids):
            return self.manager.get_card(self.card_ids[self.cram_index])
        return None

    @property
    def status(self) -> CramStatus:
        if not self.card_ids:
            return CramStatus.EMPTY
        if self.cram_index >= len(self.card_ids):
            return CramStatus.FINISHED
        return CramStatus.READY

    def restart(self) -> None:
        """Re-snapshot the lapsed cards and go back to the first one."""
        self.card_ids = [card.id for card in cram_cards(self.manager.cards)]
        self.cram_index = 0
        self._clear_reveal()
        logger.info("Cram list holds %d lapsed cards", len(self.card_ids))

    def close(self) -> None:
        if self.manager.cram is self:
            self.manager.cram = None

    def _clear_reveal(self) -> None:
        self.cram_revealed = False
        self.interval_preview = None

    def reveal(self) -> None:
        card = self.current_card
        if card is None or self.cram_revealed:
            return
        self.cram_revealed = True
        self.interval_preview = preview(card.spaced_repetition, self.manager.clock(), self.manager.config)

    def rate(self, rating) -> Optional[Flashcard]:
        rating = Rating.parse(rating)
        card = self.current_card
        if card is None:
            logger.warning("Rejected cram rating %s: no card to rate", rating.value)
            raise SessionStateError("There is no cram card to rate")
        if not self.cram_revealed:
            logger.warning("Rejected cram rating %s for card %s: answer not revealed", rating.value, card.id)
            raise SessionStateError("Reveal the answer before rating the card")
        self._clear_reveal()
        index = self.cram_index
        updated = self.manager.apply_rating(card.id, rating)
        if updated is None:
            return None
        self.cards_reviewed += 1
        if rating is Rating.AGAIN:
            self.cards_failed += 1
        self.cram_index = index + 1
        return updated

    def next_card(self) -> None:
        """Move on without rating; stepping past the last card finishes the walk."""
        self.cram_index = min(self.cram_index + 1, len(self.card_ids))
        self._clear_reveal()

    def previous_card(self) -> None:
        self.cram_index = max(self.cram_index - 1, 0)
        self._clear_reveal()

    def remove(self, card_id: str) -> None:
        if card_id not in self.card_ids:
            return
        position = self.card_ids.index(card_id)
        self.card_ids.pop(position)
        if position < self.cram_index:
            self.cram_index -= 1
        elif position == self.cram_index:
            self._clear_reveal()
            self.cram_index = min(self.cram_index, max(len(self.card_ids) - 1, 0))
        self.cram_index = min(self.cram_index, len(self.card_ids))
