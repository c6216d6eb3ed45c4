"""Data classes for the flashcard scheduling domain."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class Rating(str, Enum):
    """Recall grade, ordered by recall quality."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def grade(self) -> int:
        return _GRADES[self]

    # Compare by grade, not by the string value
    def __lt__(self, other):
        if not isinstance(other, Rating):
            return NotImplemented
        return self.grade < other.grade

    def __le__(self, other):
        if not isinstance(other, Rating):
            return NotImplemented
        return self.grade <= other.grade

    def __gt__(self, other):
        if not isinstance(other, Rating):
            return NotImplemented
        return self.grade > other.grade

    def __ge__(self, other):
        if not isinstance(other, Rating):
            return NotImplemented
        return self.grade >= other.grade


_GRADES = {Rating.AGAIN: 1, Rating.HARD: 2, Rating.GOOD: 3, Rating.EASY: 4}


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class Algorithm(str, Enum):
    FSRS = "fsrs"
    SM2 = "sm2"


@dataclass(frozen=True)
class LegacyEase:
    """Ease factor written by the SM-2 regime (1.3-2.5)."""
    value: float
    kind = "ease"


@dataclass(frozen=True)
class ModernDifficulty:
    """Difficulty written by the FSRS regime (1-10)."""
    value: float
    kind = "difficulty"


EaseSlot = Union[LegacyEase, ModernDifficulty]


def ease_slot_from_storage(value: Optional[float], kind: Optional[str]) -> Optional[EaseSlot]:
    """Rebuild the tagged ease slot from its stored value and kind column."""
    if value is None:
        return None
    if kind == ModernDifficulty.kind:
        return ModernDifficulty(value)
    return LegacyEase(value)


@dataclass
class Card:
    id: Optional[int]
    deck_id: int
    front: str
    back: str = ""
    created: int = 0  # epoch ms
    modified: int = 0  # epoch ms
    next_review: int = 0  # epoch ms
    interval: float = 0.0  # days
    ease_slot: Optional[EaseSlot] = field(default_factory=lambda: LegacyEase(2.5))
    repetitions: int = 0
    tags: list = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return self.repetitions == 0

    @property
    def last_review(self) -> int:
        return self.modified or self.created


@dataclass(frozen=True)
class ScheduleResult:
    """Schedule produced by either algorithm, ready to merge into a Card."""
    interval: float
    ease_slot: EaseSlot
    repetitions: int
    next_review: int  # epoch ms
    state: CardState = CardState.REVIEW

    @property
    def ease_factor(self) -> float:
        return self.ease_slot.value


@dataclass
class ReviewLog:
    id: Optional[int]
    card_id: int
    date: int  # epoch ms
    rating: Rating
    interval: float
    time_spent: int = 0  # ms
