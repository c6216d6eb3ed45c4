"""Tests for the FSRS memory-model scheduler."""
import math
import random

import pytest

from dango import fsrs
from dango.fsrs import (
    DEFAULT_WEIGHTS, FSRSParameters, MemoryState, apply_fuzz, compute_next, fuzz_range,
    init_difficulty, init_stability, next_difficulty, next_forget_stability, next_interval,
    next_recall_stability, retrievability,
)
from dango.intervals import MS_PER_DAY
from dango.models import CardState, Rating

NOW = 1_700_000_000_000
STEADY = FSRSParameters(enable_fuzz=False)


class SequenceRandom:
    """Stands in for random.Random, returning preset draws in order."""

    def __init__(self, *draws):
        self.draws = list(draws)

    def random(self):
        return self.draws.pop(0)


def established(stability=10.0, difficulty=5.0, repetitions=3, days_ago=0.0):
    return MemoryState(
        stability=stability,
        difficulty=difficulty,
        repetitions=repetitions,
        last_review=NOW - int(days_ago * MS_PER_DAY),
    )


def test_init_stability_uses_first_four_weights():
    assert init_stability(Rating.AGAIN) == pytest.approx(0.4072)
    assert init_stability(Rating.HARD) == pytest.approx(1.1829)
    assert init_stability(Rating.GOOD) == pytest.approx(3.1262)
    assert init_stability(Rating.EASY) == pytest.approx(15.4722)


def test_init_stability_floor():
    params = FSRSParameters(w=(0.0,) + DEFAULT_WEIGHTS[1:])
    assert init_stability(Rating.AGAIN, params) == 0.1


def test_init_difficulty_decreases_with_rating():
    assert init_difficulty(Rating.AGAIN) == pytest.approx(7.2102 + 2 * 0.5316)
    assert init_difficulty(Rating.GOOD) == pytest.approx(7.2102)
    assert init_difficulty(Rating.EASY) == pytest.approx(7.2102 - 0.5316)


def test_retrievability_is_one_at_zero_elapsed():
    assert retrievability(0, 5.0) == 1.0


def test_retrievability_at_nine_stabilities_is_half():
    assert retrievability(90, 10.0) == pytest.approx(0.5)


def test_retrievability_decays():
    assert retrievability(1, 10) > retrievability(10, 10) > retrievability(100, 10)


def test_next_difficulty_mean_reverts():
    w = DEFAULT_WEIGHTS
    expected = w[7] * w[4] + (1 - w[7]) * 5.0
    assert next_difficulty(5.0, Rating.GOOD) == pytest.approx(expected)


def test_next_difficulty_direction():
    assert next_difficulty(5.0, Rating.AGAIN) > next_difficulty(5.0, Rating.GOOD)
    assert next_difficulty(5.0, Rating.EASY) < next_difficulty(5.0, Rating.GOOD)


def test_next_difficulty_clamped():
    assert next_difficulty(10.0, Rating.AGAIN) == 10.0
    assert next_difficulty(1.0, Rating.EASY) == 1.0


def test_recall_stability_unchanged_when_nothing_was_forgotten():
    assert next_recall_stability(5.0, 10.0, 1.0, Rating.GOOD) == pytest.approx(10.0)


def test_recall_stability_hard_penalty_and_easy_bonus():
    r = retrievability(20, 10.0)
    hard = next_recall_stability(5.0, 10.0, r, Rating.HARD)
    good = next_recall_stability(5.0, 10.0, r, Rating.GOOD)
    easy = next_recall_stability(5.0, 10.0, r, Rating.EASY)
    assert 10.0 < hard < good < easy


def test_recall_stability_formula():
    w = DEFAULT_WEIGHTS
    d, s, r = 6.0, 4.0, 0.8
    expected = s * (1 + math.exp(w[8]) * (11 - d) * s ** -w[9] * (math.exp((1 - r) * w[10]) - 1))
    assert next_recall_stability(d, s, r, Rating.GOOD) == pytest.approx(expected)


def test_forget_stability_formula():
    w = DEFAULT_WEIGHTS
    d, s, r = 6.0, 4.0, 0.8
    expected = w[11] * d ** -w[12] * ((s + 1) ** w[13] - 1) * math.exp((1 - r) * w[14])
    assert next_forget_stability(d, s, r) == pytest.approx(expected)


def test_forget_stability_floor():
    assert next_forget_stability(10.0, 0.0, 1.0) == 0.1


def test_next_interval_floor_and_ceiling():
    assert next_interval(0.1) == 1
    curve = FSRSParameters(match_decay_curve=True)
    assert next_interval(1e9, curve) == 36500


def test_next_interval_follows_retention_formula():
    params = FSRSParameters(request_retention=0.9)
    raw = 10 / 0.9 * (0.9 ** (1 / 0.9) - 1)
    assert next_interval(10, params) == max(1, math.floor(raw + 0.5))


def test_next_interval_matching_decay_curve():
    curve = FSRSParameters(match_decay_curve=True)
    # at R = 0.9 the curve has decayed for exactly one stability
    assert next_interval(100, curve) == 100


def test_fuzz_range_tiers():
    assert fuzz_range(5) == 1
    assert fuzz_range(10) == 2
    assert fuzz_range(29) == 2
    assert fuzz_range(30) == 4
    assert fuzz_range(200) == 10


def test_apply_fuzz_skips_short_intervals():
    assert apply_fuzz(2.4, 0.999) == 2
    assert apply_fuzz(1.0, 0.0) == 1


def test_apply_fuzz_disabled_by_missing_draw():
    assert apply_fuzz(10, None) == 10


def test_apply_fuzz_bounds():
    assert apply_fuzz(10, 0.0) == 8
    assert apply_fuzz(10, 0.5) == 10
    assert apply_fuzz(100, 0.9999) == 105
    assert apply_fuzz(36500, 0.9999) == 36500


def test_apply_fuzz_never_below_one_day():
    assert apply_fuzz(2.5, 0.0) >= 1


def test_new_card_good_is_one_day():
    result = compute_next(MemoryState(0, 0, 0, NOW), Rating.GOOD, NOW, STEADY)
    assert result.interval == 1
    assert result.state is CardState.REVIEW
    assert result.next_review == NOW + MS_PER_DAY
    assert result.stability == pytest.approx(3.1262)
    assert result.difficulty == pytest.approx(7.2102)


def test_new_card_good_ignores_fuzz():
    result = compute_next(MemoryState(0, 0, 0, NOW), Rating.GOOD, NOW, rng=SequenceRandom(0.0))
    assert result.interval == 1


@pytest.mark.parametrize("rating,interval,due_in_days,state", [
    (Rating.AGAIN, 0, 0, CardState.LEARNING),
    (Rating.HARD, 0, 0.25, CardState.REVIEW),
    (Rating.EASY, 3, 3, CardState.REVIEW),
])
def test_new_card_initial_intervals(rating, interval, due_in_days, state):
    result = compute_next(MemoryState(0, 0, 0, NOW), rating, NOW, STEADY)
    assert result.interval == interval
    assert result.state is state
    assert result.next_review == NOW + int(due_in_days * MS_PER_DAY)


def test_new_card_hard_reports_whole_days_with_fuzz_on():
    result = compute_next(MemoryState(0, 0, 0, NOW), Rating.HARD, NOW, rng=SequenceRandom(0.99))
    assert result.interval == 0
    assert result.next_review == NOW + MS_PER_DAY // 4


def test_forgotten_card_relearns_within_hours():
    result = compute_next(established(repetitions=3, days_ago=20), Rating.AGAIN, NOW, STEADY)
    assert result.interval == 0
    assert result.state is CardState.RELEARNING
    assert result.next_review == NOW + MS_PER_DAY // 4
    assert result.stability < 10.0


def test_forgotten_card_after_one_success_goes_back_to_learning():
    result = compute_next(established(repetitions=1, days_ago=2), Rating.AGAIN, NOW, STEADY)
    assert result.state is CardState.LEARNING


def test_recalled_card_is_in_review():
    result = compute_next(established(days_ago=15), Rating.GOOD, NOW, STEADY)
    assert result.state is CardState.REVIEW
    assert result.interval >= 1
    assert result.stability > 10.0


def test_elapsed_time_is_never_negative():
    future = MemoryState(10.0, 5.0, 2, NOW + 5 * MS_PER_DAY)
    result = compute_next(future, Rating.GOOD, NOW, STEADY)
    assert result.stability == pytest.approx(10.0)


def test_degenerate_state_is_bounded():
    result = compute_next(MemoryState(0.0, 0.0, 4, NOW - MS_PER_DAY), Rating.AGAIN, NOW, STEADY)
    assert result.stability >= 0.1
    assert 1 <= result.difficulty <= 10


def test_compute_next_does_not_mutate_state():
    state = established(days_ago=5)
    compute_next(state, Rating.EASY, NOW, STEADY)
    assert state == established(days_ago=5)


def test_single_draw_feeds_interval_and_due_time():
    params = FSRSParameters(match_decay_curve=True)
    result = compute_next(established(stability=100), Rating.GOOD, NOW, params, SequenceRandom(0.0, 0.9999))
    assert result.interval == 95
    assert result.next_review == NOW + 95 * MS_PER_DAY


def test_legacy_double_fuzz_draws_twice():
    params = FSRSParameters(match_decay_curve=True, legacy_double_fuzz=True)
    result = compute_next(established(stability=100), Rating.GOOD, NOW, params, SequenceRandom(0.0, 0.9999))
    assert result.interval == 95
    assert result.next_review == NOW + 105 * MS_PER_DAY


def test_seeded_rng_is_repeatable():
    params = FSRSParameters(match_decay_curve=True)
    state = established(stability=40, days_ago=30)
    first = compute_next(state, Rating.GOOD, NOW, params, random.Random(7))
    second = compute_next(state, Rating.GOOD, NOW, params, random.Random(7))
    assert first == second


@pytest.mark.parametrize("rating", list(Rating))
@pytest.mark.parametrize("stability", [0.0, 0.05, 1.0, 50.0, 5000.0, 1e6])
@pytest.mark.parametrize("difficulty", [0.0, 1.0, 5.0, 10.0, 12.0])
@pytest.mark.parametrize("days_ago", [0, 1, 100, 10000])
def test_outputs_stay_in_bounds(rating, stability, difficulty, days_ago, seeded_rng):
    for params in (fsrs.DEFAULT_PARAMETERS, FSRSParameters(match_decay_curve=True)):
        state = established(stability, difficulty, repetitions=2, days_ago=days_ago)
        result = compute_next(state, rating, NOW, params, seeded_rng)
        assert 0 <= result.interval <= 36500
        assert 1 <= result.difficulty <= 10
        assert result.stability >= 0.1
        assert result.next_review >= NOW
