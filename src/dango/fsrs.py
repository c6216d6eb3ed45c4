"""FSRS memory-model scheduler.

Each card carries two latent variables:

- Stability (S): days until recall probability decays to the reference threshold
- Difficulty (D): intrinsic resistance to stability growth, 1-10

A review first estimates retrievability (R), the probability the learner could
still recall the card right now, then updates S and D from the rating and derives
the next interval from the target retention rate.

All functions here are pure given their inputs and a random draw; nothing mutates
the state passed in. The random source for interval fuzz is injectable so tests
can seed or disable it.
"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

from dango.intervals import MS_PER_DAY, days_to_ms, round_half_up
from dango.models import CardState, Rating

logger = logging.getLogger(__name__)

# Empirically tuned defaults, indexed w[0]..w[18]
DEFAULT_WEIGHTS = (
    0.4072, 1.1829, 3.1262, 15.4722, 7.2102, 0.5316, 1.0651, 0.0234, 1.616, 0.1544,
    1.0824, 1.9813, 0.0953, 0.2975, 2.2042, 0.2407, 2.9466, 0.5034, 0.6567,
)

S_MIN = 0.1
D_MIN = 1.0
D_MAX = 10.0
DEFAULT_DIFFICULTY = 5.0

# First interval (days) for a card that has never been scheduled
INITIAL_INTERVALS = {
    Rating.AGAIN: 0.0,
    Rating.HARD: 0.25,
    Rating.GOOD: 1.0,
    Rating.EASY: 3.0,
}
RELEARN_INTERVAL = 0.25  # review again within hours

FUZZ_THRESHOLD = 2.5


@dataclass(frozen=True)
class FSRSParameters:
    """Scheduler constants.

    legacy_double_fuzz draws the fuzz twice, once for the reported interval and
    once for next_review, so the two can disagree by the fuzz range. Off by
    default; one draw feeds both.

    match_decay_curve swaps the target-retention interval formula for the
    inverse of the retrievability curve, 9 * S * (1 / r - 1).
    """
    w: tuple = DEFAULT_WEIGHTS
    request_retention: float = 0.9
    maximum_interval: int = 36500
    enable_fuzz: bool = True
    legacy_double_fuzz: bool = False
    match_decay_curve: bool = False


DEFAULT_PARAMETERS = FSRSParameters()


@dataclass(frozen=True)
class MemoryState:
    stability: float
    difficulty: float
    repetitions: int
    last_review: int  # epoch ms


@dataclass(frozen=True)
class FSRSResult:
    interval: float
    stability: float
    difficulty: float
    next_review: int  # epoch ms
    state: CardState


def constrain_difficulty(difficulty: float) -> float:
    return min(max(difficulty, D_MIN), D_MAX)


def init_stability(rating: Rating, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    """Seed stability for a new card: w[0..3] indexed by grade."""
    return max(params.w[rating.grade - 1], S_MIN)


def init_difficulty(rating: Rating, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    """Seed difficulty for a new card: D0 = w4 - (g - 3) * w5."""
    w = params.w
    return constrain_difficulty(w[4] - (rating.grade - 3) * w[5])


def mean_reversion(init: float, current: float, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    w = params.w
    return w[7] * init + (1 - w[7]) * current


def next_difficulty(difficulty: float, rating: Rating, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    """Shift D by -w6 * (g - 3), pull it toward w4, then clamp to [1, 10]."""
    w = params.w
    shifted = difficulty - w[6] * (rating.grade - 3)
    return constrain_difficulty(mean_reversion(w[4], shifted, params))


def retrievability(elapsed_days: float, stability: float) -> float:
    """Power-law forgetting curve: R = (1 + t / (9 * S)) ^ -1."""
    stability = max(stability, S_MIN)
    return math.pow(1 + elapsed_days / (9 * stability), -1)


def next_recall_stability(
    difficulty: float,
    stability: float,
    retrievability_: float,
    rating: Rating,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> float:
    """Stability after a successful recall (hard, good or easy).

    S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^((1 - R) * w10) - 1) * hard * easy)

    where hard is w15 for a hard rating and easy is w16 for an easy rating.
    """
    w = params.w
    stability = max(stability, S_MIN)
    hard_penalty = w[15] if rating is Rating.HARD else 1.0
    easy_bonus = w[16] if rating is Rating.EASY else 1.0
    growth = (
        math.exp(w[8])
        * (11 - difficulty)
        * math.pow(stability, -w[9])
        * (math.exp((1 - retrievability_) * w[10]) - 1)
        * hard_penalty
        * easy_bonus
    )
    return max(stability * (1 + growth), S_MIN)


def next_forget_stability(
    difficulty: float,
    stability: float,
    retrievability_: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> float:
    """Stability after a lapse: w11 * D^-w12 * ((S + 1)^w13 - 1) * e^((1 - R) * w14)."""
    w = params.w
    difficulty = max(difficulty, D_MIN)
    stability = max(stability, S_MIN)
    forgotten = (
        w[11]
        * math.pow(difficulty, -w[12])
        * (math.pow(stability + 1, w[13]) - 1)
        * math.exp((1 - retrievability_) * w[14])
    )
    return max(forgotten, S_MIN)


def next_interval(stability: float, params: FSRSParameters = DEFAULT_PARAMETERS) -> int:
    """Whole days until R is expected to fall to the requested retention.

    Rounded, floored at 1 and capped at params.maximum_interval.
    """
    retention = params.request_retention
    if params.match_decay_curve:
        raw = 9 * stability * (1 / retention - 1)
    else:
        raw = stability / retention * (math.pow(retention, 1 / retention) - 1)
    return min(max(round_half_up(raw), 1), params.maximum_interval)


def fuzz_range(interval: float) -> float:
    if interval < 7:
        return 1
    if interval < 30:
        return max(2, math.floor(interval * 0.05))
    return max(4, math.floor(interval * 0.05))


def apply_fuzz(interval: float, draw: Optional[float], params: FSRSParameters = DEFAULT_PARAMETERS) -> int:
    """Perturb an interval by up to +/- fuzz_range(interval) days.

    draw is a single uniform sample in [0, 1); None disables the perturbation.
    Intervals under 2.5 days are only rounded.
    """
    if draw is None or interval < FUZZ_THRESHOLD:
        return round_half_up(interval)
    fuzz = (draw * 2 - 1) * fuzz_range(interval)
    return min(round_half_up(max(1, interval + fuzz)), params.maximum_interval)


def _draw(rng, params: FSRSParameters) -> Optional[float]:
    if not params.enable_fuzz:
        return None
    return (rng or random).random()


def elapsed_days(last_review: int, now: int) -> float:
    return max(0.0, (now - last_review) / MS_PER_DAY)


def compute_next(
    state: MemoryState,
    rating: Rating,
    now: int,
    params: FSRSParameters = DEFAULT_PARAMETERS,
    rng: Optional[random.Random] = None,
) -> FSRSResult:
    """Schedule the next review of a card under the memory model.

    Args:
        state: Current memory state of the card (never modified)
        rating: The learner's recall grade
        now: Review time, epoch ms
        params: Weights and interval policy
        rng: Source of the fuzz draw; defaults to the random module

    Returns:
        FSRSResult with the fuzzed interval, new S and D, due time and card state.
    """
    rating = Rating(rating)

    if state.repetitions == 0:
        stability = init_stability(rating, params)
        difficulty = init_difficulty(rating, params)
        interval = INITIAL_INTERVALS[rating]
        new_state = CardState.LEARNING if rating is Rating.AGAIN else CardState.REVIEW
    else:
        current_stability = max(state.stability or S_MIN, S_MIN)
        current_difficulty = constrain_difficulty(state.difficulty or DEFAULT_DIFFICULTY)
        r = retrievability(elapsed_days(state.last_review, now), current_stability)
        difficulty = next_difficulty(current_difficulty, rating, params)
        if rating is Rating.AGAIN:
            stability = next_forget_stability(current_difficulty, current_stability, r, params)
            interval = RELEARN_INTERVAL
            new_state = CardState.RELEARNING if state.repetitions > 1 else CardState.LEARNING
        else:
            stability = next_recall_stability(current_difficulty, current_stability, r, rating, params)
            interval = next_interval(stability, params)
            new_state = CardState.REVIEW

    if interval < 1:
        # Sub-day steps report a whole-day interval but fall due on the exact step.
        reported = round_half_up(interval)
        scheduled = interval
    else:
        reported = apply_fuzz(interval, _draw(rng, params), params)
        if params.legacy_double_fuzz:
            scheduled = apply_fuzz(interval, _draw(rng, params), params)
        else:
            scheduled = reported

    logger.debug(
        "fsrs %s: reps=%d S=%.3f D=%.3f interval=%s state=%s",
        rating.value, state.repetitions, stability, difficulty, reported, new_state.value,
    )
    return FSRSResult(
        interval=reported,
        stability=stability,
        difficulty=difficulty,
        next_review=now + days_to_ms(scheduled),
        state=new_state,
    )
