"""Deck filtering by tag, system, rotation, state and difficulty."""
from medcards.models import FACETS, DeckFilter, Flashcard


def matches(card: Flashcard, filters: DeckFilter) -> bool:
    """AND across the facets that have a selection, OR within each facet."""
    meta = card.metadata
    if filters.tags and not any(tag in filters.tags for tag in meta.tags):
        return False
    if filters.systems and meta.system not in filters.systems:
        return False
    # Cards without a rotation are not excluded by a rotation filter.
    if filters.rotations and meta.rotation and meta.rotation not in filters.rotations:
        return False
    if filters.states and card.spaced_repetition.state.value not in filters.states:
        return False
    if filters.difficulties and meta.difficulty not in filters.difficulties:
        return False
    return True


def filter_cards(cards: list[Flashcard], filters: DeckFilter) -> list[Flashcard]:
    if filters.is_empty():
        return list(cards)
    return [card for card in cards if matches(card, filters)]


def available_tags(cards: list[Flashcard]) -> list[str]:
    return sorted({tag for card in cards for tag in card.metadata.tags})


def available_systems(cards: list[Flashcard]) -> list[str]:
    return sorted({card.metadata.system for card in cards if card.metadata.system})


def available_rotations(cards: list[Flashcard]) -> list[str]:
    return sorted({card.metadata.rotation for card in cards if card.metadata.rotation})


def toggle_value(filters: DeckFilter, facet: str, value: str) -> DeckFilter:
    """Return a copy of ``filters`` with ``value`` added to or removed from ``facet``."""
    if facet not in FACETS:
        raise ValueError(f"Unknown filter facet: {facet}")
    data = filters.to_dict()
    selected = data[facet]
    if value in selected:
        selected.remove(value)
    else:
        selected.append(value)
    return DeckFilter.from_dict(data)
