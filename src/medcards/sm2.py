"""SM-2 style spaced repetition scheduler with learning states."""
from datetime import datetime, timedelta

from medcards.config import DEFAULT_CONFIG, SchedulerConfig
from medcards.models import CardState, Rating, SpacedRepetition


def _clamp_ease(ease: float, config: SchedulerConfig) -> float:
    return max(config.minimum_ease, round(ease, 2))


def interval_ladder(interval: int, ease: float, config: SchedulerConfig = DEFAULT_CONFIG) -> dict:
    """Candidate intervals in days for each rating, given the current interval and ease.

    Each success interval is derived from the one below it, so
    ``again <= hard <= good <= easy`` holds for every starting state.
    """
    cap = config.maximum_interval
    hard = max(interval + 1, round(interval * config.hard_multiplier))
    if interval == 0:
        good = max(hard, config.first_interval)
        easy = max(good + 1, config.easy_first_interval)
    else:
        good = max(hard, round(interval * ease))
        easy = max(good + 1, round(interval * ease * config.easy_bonus))
    return {
        Rating.AGAIN: min(config.again_interval, hard, cap),
        Rating.HARD: min(hard, cap),
        Rating.GOOD: min(good, cap),
        Rating.EASY: min(easy, cap),
    }


def _next_state(state: CardState, rating: Rating, reps: int, config: SchedulerConfig) -> CardState:
    if rating is Rating.AGAIN:
        if state in (CardState.REVIEW, CardState.RELEARNING):
            return CardState.RELEARNING
        if state is CardState.LEARNING and config.learning_lapse_policy == "relearn":
            return CardState.RELEARNING
        return CardState.LEARNING
    if rating is Rating.EASY or state in (CardState.REVIEW, CardState.RELEARNING):
        return CardState.REVIEW
    if rating is Rating.HARD and state is CardState.NEW:
        return CardState.LEARNING
    # good from new/learning, hard from learning
    return CardState.REVIEW if reps >= config.graduating_reps else CardState.LEARNING


def schedule(
    srs: SpacedRepetition,
    rating: Rating,
    now: datetime,
    config: SchedulerConfig = DEFAULT_CONFIG,
) -> SpacedRepetition:
    """Compute the scheduling state that follows ``rating`` at time ``now``.

    Args:
        srs: Current scheduling state (not modified)
        rating: Self-graded recall quality
        now: Review time
        config: Tuning constants

    Returns:
        A new SpacedRepetition with next_review = now + interval days.
    """
    # new cards start from the configured ease
    current_ease = config.starting_ease if srs.state is CardState.NEW else srs.ease
    intervals = interval_ladder(srs.interval, current_ease, config)

    if rating is Rating.AGAIN:
        reps = 0
        lapses = srs.lapses + 1
        ease = _clamp_ease(current_ease - config.again_ease_penalty, config)
    else:
        reps = srs.reps + 1
        lapses = srs.lapses
        if rating is Rating.HARD:
            ease = _clamp_ease(current_ease - config.hard_ease_penalty, config)
        elif rating is Rating.EASY:
            ease = _clamp_ease(current_ease + config.easy_ease_bonus, config)
        else:
            ease = max(config.minimum_ease, current_ease)

    interval = intervals[rating]
    return SpacedRepetition(
        state=_next_state(srs.state, rating, reps, config),
        interval=interval,
        ease=ease,
        reps=reps,
        lapses=lapses,
        next_review=now + timedelta(days=interval),
        last_review=now,
    )


def preview(
    srs: SpacedRepetition,
    now: datetime,
    config: SchedulerConfig = DEFAULT_CONFIG,
) -> dict:
    """Outcome of every rating for display before the learner commits one."""
    return {rating: schedule(srs.copy(), rating, now, config) for rating in Rating}
