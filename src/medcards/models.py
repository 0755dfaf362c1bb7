"""Data classes for the flashcard domain model."""
import copy
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class Rating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value) -> "Rating":
        """Accept a Rating, its name/value, or the 1-4 answer button number."""
        if isinstance(value, Rating):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            buttons = list(cls)
            if 1 <= value <= len(buttons):
                return buttons[value - 1]
            raise ValueError(f"Rating button must be 1-4, got {value}")
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return cls(text)
            except ValueError:
                pass
        raise ValueError(f"Invalid rating: {value!r}")


DIFFICULTIES = ("easy", "medium", "hard")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> datetime:
    """Parse an ISO string (a trailing Z is accepted) into an aware datetime."""
    if isinstance(value, datetime):
        stamp = value
    else:
        stamp = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class CardContent:
    front: str
    back: str
    explanation: Optional[str] = None
    references: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"front": self.front, "back": self.back}
        if self.explanation:
            data["explanation"] = self.explanation
        if self.references:
            data["references"] = list(self.references)
        if self.images:
            data["images"] = list(self.images)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CardContent":
        return cls(
            front=data.get("front", ""),
            back=data.get("back", ""),
            explanation=data.get("explanation"),
            references=list(data.get("references") or []),
            images=list(data.get("images") or []),
        )


@dataclass
class CardMetadata:
    tags: list[str] = field(default_factory=list)
    system: str = "General"
    topic: str = "General"
    difficulty: str = "medium"
    rotation: Optional[str] = None
    clinical_vignette: bool = False
    source: Optional[str] = None
    usmle_step: Optional[int] = None
    concept_code: Optional[str] = None
    clinical_decision: Optional[str] = None
    related_concepts: list[str] = field(default_factory=list)
    qbank_codes: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "tags": list(self.tags),
            "system": self.system,
            "topic": self.topic,
            "difficulty": self.difficulty,
            "clinicalVignette": self.clinical_vignette,
        }
        optional = {
            "rotation": self.rotation,
            "source": self.source,
            "usmleStep": self.usmle_step,
            "conceptCode": self.concept_code,
            "clinicalDecision": self.clinical_decision,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.related_concepts:
            data["relatedConcepts"] = list(self.related_concepts)
        if self.qbank_codes:
            data["qbankCodes"] = {k: list(v) for k, v in self.qbank_codes.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CardMetadata":
        return cls(
            tags=list(data.get("tags") or []),
            system=data.get("system") or "General",
            topic=data.get("topic") or "General",
            difficulty=data.get("difficulty") or "medium",
            rotation=data.get("rotation"),
            clinical_vignette=bool(data.get("clinicalVignette", False)),
            source=data.get("source"),
            usmle_step=data.get("usmleStep"),
            concept_code=data.get("conceptCode"),
            clinical_decision=data.get("clinicalDecision"),
            related_concepts=list(data.get("relatedConcepts") or []),
            qbank_codes={k: list(v or []) for k, v in (data.get("qbankCodes") or {}).items()},
        )


SRS_FIELDS = ("state", "interval", "ease", "reps", "lapses", "nextReview")


@dataclass
class SpacedRepetition:
    """Scheduling state of a card. Only the scheduler produces new values."""
    state: CardState
    interval: int
    ease: float
    reps: int
    lapses: int
    next_review: datetime
    last_review: Optional[datetime] = None

    @classmethod
    def initial(cls, now: datetime, ease: float = 2.5) -> "SpacedRepetition":
        return cls(state=CardState.NEW, interval=0, ease=ease, reps=0, lapses=0, next_review=now)

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= now

    def copy(self) -> "SpacedRepetition":
        return replace(self)

    def to_dict(self) -> dict:
        data = {
            "state": self.state.value,
            "interval": self.interval,
            "ease": self.ease,
            "reps": self.reps,
            "lapses": self.lapses,
            "nextReview": format_timestamp(self.next_review),
        }
        if self.last_review is not None:
            data["lastReview"] = format_timestamp(self.last_review)
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict], now: datetime) -> "SpacedRepetition":
        """Decode a stored record; anything incomplete becomes a new card."""
        if not data or any(data.get(name) is None for name in SRS_FIELDS):
            if data:
                logger.warning("Incomplete scheduling data %r, treating card as new", data)
            return cls.initial(now)
        try:
            last_review = data.get("lastReview")
            return cls(
                state=CardState(data["state"]),
                interval=int(data["interval"]),
                ease=float(data["ease"]),
                reps=int(data["reps"]),
                lapses=int(data["lapses"]),
                next_review=parse_timestamp(data["nextReview"]),
                last_review=parse_timestamp(last_review) if last_review else None,
            )
        except (TypeError, ValueError) as e:
            logger.warning("Malformed scheduling data (%s), treating card as new", e)
            return cls.initial(now)


@dataclass
class Flashcard:
    id: str
    content: CardContent
    metadata: CardMetadata
    spaced_repetition: SpacedRepetition
    schema_version: str = SCHEMA_VERSION
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_id: str = "local"

    @classmethod
    def create(cls, front: str, back: str, now: datetime, explanation: Optional[str] = None,
               metadata: Optional[CardMetadata] = None, card_id: Optional[str] = None) -> "Flashcard":
        """Build a brand-new card in the initial scheduling state."""
        return cls(
            id=card_id or str(uuid.uuid4()),
            content=CardContent(front=front, back=back, explanation=explanation),
            metadata=metadata or CardMetadata(),
            spaced_repetition=SpacedRepetition.initial(now),
            created_at=now,
            updated_at=now,
        )

    def clone(self) -> "Flashcard":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "schemaVersion": self.schema_version,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "userId": self.user_id,
            "content": self.content.to_dict(),
            "metadata": self.metadata.to_dict(),
            "spacedRepetition": self.spaced_repetition.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict, now: datetime) -> "Flashcard":
        created = data.get("createdAt")
        updated = data.get("updatedAt")
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            content=CardContent.from_dict(data.get("content") or {}),
            metadata=CardMetadata.from_dict(data.get("metadata") or {}),
            spaced_repetition=SpacedRepetition.from_dict(data.get("spacedRepetition"), now),
            schema_version=data.get("schemaVersion") or SCHEMA_VERSION,
            created_at=parse_timestamp(created) if created else now,
            updated_at=parse_timestamp(updated) if updated else now,
            user_id=data.get("userId") or "local",
        )


FACETS = ("tags", "systems", "rotations", "states", "difficulties")


@dataclass
class DeckFilter:
    """Selected facet values; an empty list places no constraint on that facet."""
    tags: list[str] = field(default_factory=list)
    systems: list[str] = field(default_factory=list)
    rotations: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)
    difficulties: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, facet) for facet in FACETS)

    def to_dict(self) -> dict:
        return {facet: list(getattr(self, facet)) for facet in FACETS}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DeckFilter":
        data = data or {}
        return cls(**{facet: [str(v) for v in data.get(facet) or []] for facet in FACETS})


@dataclass
class ReviewRecord:
    card_id: str
    rating: Rating
    reviewed_at: datetime
    time_spent: float
    previous_state: CardState
    new_state: CardState


@dataclass
class ReviewSession:
    """Running counters of one study run. Lives in memory only."""
    id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    cards_reviewed: int = 0
    cards_correct: int = 0
    cards_failed: int = 0
    reviews: list[ReviewRecord] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        if not self.cards_reviewed:
            return 0.0
        return round(self.cards_correct / self.cards_reviewed * 100, 1)
