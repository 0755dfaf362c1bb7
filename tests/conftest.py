from datetime import datetime, timedelta, timezone

import pytest

from medcards.models import CardContent, CardMetadata, CardState, Flashcard, SpacedRepetition
from medcards.store import InMemoryCardStore

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_medcards.db")
    return db_path


@pytest.fixture
def now():
    return NOW


class FakeClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def make_card():
    """Factory for cards; ``due_in_days`` may be negative to make overdue cards."""
    def _make(card_id, front=None, due_in_days=0, state=CardState.NEW, interval=0, ease=2.5,
              reps=0, lapses=0, **metadata):
        return Flashcard(
            id=card_id,
            content=CardContent(front=front or f"Question {card_id}?", back=f"Answer {card_id}"),
            metadata=CardMetadata(**metadata),
            spaced_repetition=SpacedRepetition(
                state=state, interval=interval, ease=ease, reps=reps, lapses=lapses,
                next_review=NOW + timedelta(days=due_in_days),
            ),
            created_at=NOW,
            updated_at=NOW,
        )
    return _make


@pytest.fixture
def memory_store():
    return InMemoryCardStore()
