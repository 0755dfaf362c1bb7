"""
Card persistence.

The study engine only talks to a CardStore. Two implementations ship here:

    SQLiteCardStore: one row per card in the local database.
    InMemoryCardStore: dictionary-backed, for headless use and tests.
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from medcards.config import DEFAULT_DB_PATH
from medcards.db import get_connection, get_setting, init_db, set_setting
from medcards.models import (
    CardContent, CardMetadata, DeckFilter, Flashcard, SpacedRepetition,
    format_timestamp, parse_timestamp, utcnow,
)

logger = logging.getLogger(__name__)

FILTERS_SETTING = "deck_filters"


class CardStore(ABC):
    """Port for loading and persisting flashcards."""

    @abstractmethod
    def load(self) -> list[Flashcard]:
        """Return every stored card."""

    @abstractmethod
    def get(self, card_id: str) -> Optional[Flashcard]:
        """Return one card, or None if it does not exist."""

    @abstractmethod
    def save(self, card: Flashcard) -> None:
        """Insert or replace a card."""

    @abstractmethod
    def delete(self, card_id: str) -> None:
        """Remove a card; unknown ids are ignored."""

    def load_filters(self) -> Optional[DeckFilter]:
        return None

    def save_filters(self, filters: DeckFilter) -> None:
        pass


class InMemoryCardStore(CardStore):
    def __init__(self, cards: list[Flashcard] = None):
        self._cards: dict[str, Flashcard] = {}
        self._filters: Optional[DeckFilter] = None
        self.writes = 0
        for card in cards or []:
            self._cards[card.id] = card.clone()

    def load(self) -> list[Flashcard]:
        return [card.clone() for card in self._cards.values()]

    def get(self, card_id: str) -> Optional[Flashcard]:
        card = self._cards.get(card_id)
        return card.clone() if card else None

    def save(self, card: Flashcard) -> None:
        self._cards[card.id] = card.clone()
        self.writes += 1

    def delete(self, card_id: str) -> None:
        self._cards.pop(card_id, None)
        self.writes += 1

    def load_filters(self) -> Optional[DeckFilter]:
        return DeckFilter.from_dict(self._filters.to_dict()) if self._filters else None

    def save_filters(self, filters: DeckFilter) -> None:
        self._filters = DeckFilter.from_dict(filters.to_dict())


class SQLiteCardStore(CardStore):
    def __init__(self, db_path: str = DEFAULT_DB_PATH, clock: Callable[[], datetime] = utcnow):
        self.db_path = db_path
        self.clock = clock
        init_db(db_path)

    def _row_to_card(self, row) -> Flashcard:
        now = self.clock()
        try:
            content = json.loads(row["content"])
        except (TypeError, ValueError):
            logger.warning("Card %s has unreadable content", row["id"])
            content = {}
        try:
            metadata = json.loads(row["metadata"] or "{}")
        except (TypeError, ValueError):
            logger.warning("Card %s has unreadable metadata, using defaults", row["id"])
            metadata = {}
        srs = SpacedRepetition.from_dict({
            "state": row["state"],
            "interval": row["interval"],
            "ease": row["ease"],
            "reps": row["reps"],
            "lapses": row["lapses"],
            "nextReview": row["next_review"],
            "lastReview": row["last_review"],
        }, now)
        return Flashcard(
            id=row["id"],
            content=CardContent.from_dict(content),
            metadata=CardMetadata.from_dict(metadata),
            spaced_repetition=srs,
            schema_version=row["schema_version"] or "1.0",
            created_at=parse_timestamp(row["created_at"]) if row["created_at"] else None,
            updated_at=parse_timestamp(row["updated_at"]) if row["updated_at"] else None,
            user_id=row["user_id"] or "local",
        )

    def load(self) -> list[Flashcard]:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT * FROM flashcards ORDER BY id").fetchall()
        conn.close()
        return [self._row_to_card(row) for row in rows]

    def get(self, card_id: str) -> Optional[Flashcard]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        conn.close()
        return self._row_to_card(row) if row else None

    def save(self, card: Flashcard) -> None:
        srs = card.spaced_repetition
        conn = get_connection(self.db_path)
        conn.execute(
            """INSERT INTO flashcards
            (id, schema_version, user_id, created_at, updated_at, content, metadata,
             state, interval, ease, reps, lapses, next_review, last_review)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                schema_version=excluded.schema_version, user_id=excluded.user_id,
                created_at=excluded.created_at, updated_at=excluded.updated_at,
                content=excluded.content, metadata=excluded.metadata,
                state=excluded.state, interval=excluded.interval, ease=excluded.ease,
                reps=excluded.reps, lapses=excluded.lapses,
                next_review=excluded.next_review, last_review=excluded.last_review""",
            (
                card.id, card.schema_version, card.user_id,
                format_timestamp(card.created_at), format_timestamp(card.updated_at),
                json.dumps(card.content.to_dict()), json.dumps(card.metadata.to_dict()),
                srs.state.value, srs.interval, srs.ease, srs.reps, srs.lapses,
                format_timestamp(srs.next_review), format_timestamp(srs.last_review),
            ),
        )
        conn.commit()
        conn.close()
        logger.debug("Saved card %s (state=%s, next_review=%s)", card.id, srs.state.value, srs.next_review)

    def delete(self, card_id: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
        conn.commit()
        conn.close()
        logger.debug("Deleted card %s", card_id)

    def count(self) -> int:
        conn = get_connection(self.db_path)
        total = conn.execute("SELECT COUNT(*) FROM flashcards").fetchone()[0]
        conn.close()
        return total

    def load_filters(self) -> Optional[DeckFilter]:
        raw = get_setting(self.db_path, FILTERS_SETTING)
        if not raw:
            return None
        try:
            return DeckFilter.from_dict(json.loads(raw))
        except (TypeError, ValueError, AttributeError):
            logger.warning("Ignoring unreadable saved filters")
            return None

    def save_filters(self, filters: DeckFilter) -> None:
        set_setting(self.db_path, FILTERS_SETTING, json.dumps(filters.to_dict()))
