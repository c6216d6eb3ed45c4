"""Scheduling policy: the single switch point between FSRS and SM-2.

The active algorithm is an explicit value held by a Scheduler instance rather
than module state, so two schedulers can run side by side (and in parallel
tests) without seeing each other's selection.
"""
import logging
import random
import time
from typing import Optional

from dango import fsrs
from dango.intervals import days_to_ms, describe_interval
from dango.models import (
    Algorithm, Card, CardState, LegacyEase, ModernDifficulty, Rating, ScheduleResult,
)
from dango.sm2 import DEFAULT_EASE, sm2_update

logger = logging.getLogger(__name__)

NEW_CARD_LABELS = {
    Algorithm.FSRS: {"again": "< 6h", "hard": "< 6h", "good": "1d", "easy": "3d"},
    Algorithm.SM2: {"again": "< 1d", "hard": "1d", "good": "1d", "easy": "4d"},
}


def now_ms() -> int:
    return int(time.time() * 1000)


def memory_state(card: Card) -> fsrs.MemoryState:
    """Read the FSRS memory state out of a card.

    Stability lives in the interval field. Difficulty lives in the ease slot, but
    only when FSRS wrote it; an SM-2 ease factor is not a difficulty and falls
    back to the default.
    """
    if isinstance(card.ease_slot, ModernDifficulty):
        difficulty = card.ease_slot.value
    else:
        difficulty = fsrs.DEFAULT_DIFFICULTY
    return fsrs.MemoryState(
        stability=card.interval or fsrs.S_MIN,
        difficulty=difficulty,
        repetitions=card.repetitions,
        last_review=card.last_review,
    )


def legacy_ease(card: Card) -> float:
    if isinstance(card.ease_slot, LegacyEase):
        return card.ease_slot.value
    return DEFAULT_EASE


def _lapse_state(repetitions: int) -> CardState:
    return CardState.RELEARNING if repetitions > 1 else CardState.LEARNING


class Scheduler:
    """Dispatches scheduling to the configured algorithm."""

    describe_interval = staticmethod(describe_interval)

    def __init__(
        self,
        algorithm: Algorithm = Algorithm.FSRS,
        parameters: Optional[fsrs.FSRSParameters] = None,
        rng: Optional[random.Random] = None,
    ):
        self._algorithm = Algorithm(algorithm)
        self.parameters = parameters or fsrs.DEFAULT_PARAMETERS
        self.rng = rng

    def get_algorithm(self) -> Algorithm:
        return self._algorithm

    def set_algorithm(self, algorithm: Algorithm) -> None:
        """Switch algorithms. Only later compute_next calls are affected."""
        algorithm = Algorithm(algorithm)
        if algorithm is not self._algorithm:
            logger.info("Scheduling algorithm changed: %s -> %s", self._algorithm.value, algorithm.value)
        self._algorithm = algorithm

    algorithm = property(get_algorithm, set_algorithm)

    def compute_next(self, card: Card, rating: Rating, now: Optional[int] = None) -> ScheduleResult:
        """Schedule the card's next review without touching the card."""
        rating = Rating(rating)
        if now is None:
            now = now_ms()
        if self._algorithm is Algorithm.FSRS:
            return self._compute_fsrs(card, rating, now)
        return self._compute_sm2(card, rating, now)

    def _compute_fsrs(self, card: Card, rating: Rating, now: int) -> ScheduleResult:
        result = fsrs.compute_next(memory_state(card), rating, now, self.parameters, self.rng)
        return ScheduleResult(
            interval=result.interval,
            ease_slot=ModernDifficulty(result.difficulty),
            repetitions=0 if rating is Rating.AGAIN else card.repetitions + 1,
            next_review=result.next_review,
            state=result.state,
        )

    def _compute_sm2(self, card: Card, rating: Rating, now: int) -> ScheduleResult:
        updated = sm2_update(
            rating=rating,
            repetitions=card.repetitions,
            ease_factor=legacy_ease(card),
            interval=card.interval,
        )
        if rating is Rating.AGAIN:
            state = _lapse_state(card.repetitions)
        else:
            state = CardState.REVIEW
        logger.debug("sm2 %s: reps=%d interval=%s", rating.value, card.repetitions, updated["interval"])
        return ScheduleResult(
            interval=updated["interval"],
            ease_slot=LegacyEase(updated["ease_factor"]),
            repetitions=updated["repetitions"],
            next_review=now + days_to_ms(updated["interval"]),
            state=state,
        )

    def preview_button_labels(self, card: Card, now: Optional[int] = None) -> dict:
        """Label each rating button with the interval it would grant.

        New cards get a fixed label set. Established cards are scheduled once per
        rating; the card is never modified and nothing is logged, but fuzz means
        two previews of the same card may differ.
        """
        if card.is_new:
            return dict(NEW_CARD_LABELS[self._algorithm])
        if now is None:
            now = now_ms()
        return {
            rating.value: describe_interval(self.compute_next(card, rating, now).interval)
            for rating in Rating
        }
