"""Deck statistics and topic performance."""
from datetime import datetime

from medcards.models import CardState, Flashcard


def calculate_stats(cards: list[Flashcard], now: datetime) -> dict:
    """Aggregate counts over the whole deck; ease and interval averages cover review cards only."""
    stats = {
        "total_cards": len(cards),
        "new_cards": 0,
        "learning_cards": 0,
        "review_cards": 0,
        "due_today": 0,
        "lapsed_cards": 0,
        "average_ease": 0.0,
        "average_interval": 0.0,
    }
    total_ease = 0.0
    total_interval = 0
    review_count = 0
    for card in cards:
        srs = card.spaced_repetition
        if srs.state is CardState.NEW:
            stats["new_cards"] += 1
        elif srs.state in (CardState.LEARNING, CardState.RELEARNING):
            stats["learning_cards"] += 1
        else:
            stats["review_cards"] += 1
            total_ease += srs.ease
            total_interval += srs.interval
            review_count += 1
        if srs.is_due(now):
            stats["due_today"] += 1
        if srs.lapses > 0:
            stats["lapsed_cards"] += 1
    if review_count:
        stats["average_ease"] = round(total_ease / review_count, 2)
        stats["average_interval"] = round(total_interval / review_count, 1)
    return stats


def get_strength_label(retention_rate: float, reviewed: int) -> str:
    if reviewed == 0:
        return "new"
    elif retention_rate >= 0.8:
        return "strong"
    elif retention_rate >= 0.6:
        return "moderate"
    return "weak"


def get_strength_color(label: str) -> str:
    return {"strong": "green", "moderate": "yellow", "weak": "red"}.get(label, "dim")


def topic_performance(cards: list[Flashcard]) -> list[dict]:
    """Per-topic retention, weakest topics first."""
    topics: dict[str, dict] = {}
    for card in cards:
        entry = topics.setdefault(card.metadata.topic, {"system": card.metadata.system, "cards": []})
        entry["cards"].append(card)

    results = []
    for topic, data in topics.items():
        reviewed = [c for c in data["cards"] if c.spaced_repetition.reps > 0]
        correct = sum(c.spaced_repetition.reps for c in reviewed)
        incorrect = sum(c.spaced_repetition.lapses for c in reviewed)
        attempts = correct + incorrect
        retention = correct / attempts if attempts else 0.0
        average_ease = (
            sum(c.spaced_repetition.ease for c in reviewed) / len(reviewed) if reviewed else 2.5
        )
        results.append({
            "topic": topic,
            "system": data["system"],
            "total_cards": len(data["cards"]),
            "reviewed_cards": len(reviewed),
            "correct_count": correct,
            "incorrect_count": incorrect,
            "average_ease": round(average_ease, 2),
            "retention_rate": round(retention, 3),
            "strength": get_strength_label(retention, len(reviewed)),
        })
    results.sort(key=lambda r: (r["retention_rate"], r["topic"]))
    return results


def format_interval(days: float) -> str:
    """Short human label for an interval in days."""
    if days < 1 / 1440:
        return "<1m"
    elif days < 1 / 24:
        return f"{round(days * 24 * 60)}m"
    elif days < 1:
        return f"{round(days * 24)}h"
    elif days < 30:
        return f"{round(days)}d"
    elif days < 365:
        return f"{round(days / 30)}mo"
    return f"{days / 365:.1f}y"
