"""Seed an empty deck with the packaged sample cards."""
import json
import logging
from datetime import datetime
from pathlib import Path

from medcards.models import Flashcard
from medcards.store import CardStore

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(store: CardStore) -> bool:
    """Check whether the store already holds any card."""
    return len(store.load()) > 0


def load_sample_cards(now: datetime) -> list[Flashcard]:
    """Build the sample cards from sample_deck.json, all due at ``now``."""
    data = json.loads((CONTENT_DIR / "sample_deck.json").read_text(encoding="utf-8"))
    cards = []
    for record in data["flashcards"]:
        card = Flashcard.create(
            front=record["front"],
            back=record["back"],
            explanation=record.get("explanation"),
            now=now,
            card_id=record["id"],
        )
        card.metadata.tags = list(record.get("tags", []))
        card.metadata.system = record.get("system", "General")
        card.metadata.topic = record.get("topic", "General")
        card.metadata.difficulty = record.get("difficulty", "medium")
        card.metadata.rotation = record.get("rotation")
        card.metadata.clinical_vignette = True
        cards.append(card)
    return cards


def seed_all(store: CardStore, now: datetime) -> int:
    """Insert the sample deck if the store is empty. Returns the number of cards added."""
    if is_seeded(store):
        return 0
    cards = load_sample_cards(now)
    for card in cards:
        store.save(card)
    logger.info("Seeded %d sample flashcards", len(cards))
    return len(cards)
