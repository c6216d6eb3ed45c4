"""SM-2 style interval scheduler, kept for backward compatibility."""
from dango.intervals import round_half_up
from dango.models import Rating

EASE_MIN = 1.3
EASE_MAX = 2.5
DEFAULT_EASE = 2.5

HARD_MULTIPLIER = 1.2
EASY_BONUS = 1.3


def clamp_ease(ease_factor: float) -> float:
    return min(max(ease_factor, EASE_MIN), EASE_MAX)


def sm2_update(
    rating: Rating,
    repetitions: int,
    ease_factor: float,
    interval: float,
) -> dict:
    """Calculate next review parameters using SM-2.

    Args:
        rating: again, hard, good or easy
        repetitions: Number of consecutive successful reviews
        ease_factor: Current ease factor (1.3-2.5)
        interval: Current interval in days

    Returns:
        Dict with updated interval, repetitions, ease_factor.
    """
    rating = Rating(rating)
    ease_factor = clamp_ease(ease_factor)

    if rating is Rating.AGAIN:
        # Forgotten: start over
        return {
            "interval": 0,
            "repetitions": 0,
            "ease_factor": round(clamp_ease(ease_factor - 0.2), 2),
        }

    if rating is Rating.HARD:
        if repetitions == 0:
            new_interval = 1
        else:
            new_interval = max(1, interval * HARD_MULTIPLIER)
        new_ef = clamp_ease(ease_factor - 0.15)
    elif rating is Rating.GOOD:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = round_half_up(interval * ease_factor)
        new_ef = ease_factor
    else:
        if repetitions == 0:
            new_interval = 4
        elif repetitions == 1:
            new_interval = 10
        else:
            new_interval = round_half_up(interval * ease_factor * EASY_BONUS)
        new_ef = clamp_ease(ease_factor + 0.15)

    return {
        "interval": new_interval,
        "repetitions": repetitions + 1,
        "ease_factor": round(new_ef, 2),
    }
