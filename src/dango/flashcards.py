"""Card storage and review recording.

The scheduler never touches the database; this module loads card snapshots,
hands them to a Scheduler, and persists what comes back.
"""
import json
import logging
from typing import Optional

from dango.db import get_connection
from dango.models import Card, Rating, ReviewLog, ScheduleResult, ease_slot_from_storage
from dango.scheduler import Scheduler, now_ms

logger = logging.getLogger(__name__)


class CardNotFoundError(LookupError):
    pass


def row_to_card(row) -> Card:
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        created=row["created"],
        modified=row["modified"],
        next_review=row["next_review"],
        interval=row["interval"],
        ease_slot=ease_slot_from_storage(row["ease_factor"], row["ease_kind"]),
        repetitions=row["repetitions"],
        tags=json.loads(row["tags"] or "[]"),
    )


def row_to_review(row) -> ReviewLog:
    return ReviewLog(
        id=row["id"],
        card_id=row["card_id"],
        date=row["date"],
        rating=Rating(row["rating"]),
        interval=row["interval"],
        time_spent=row["time_spent"],
    )


def _ease_columns(card: Card) -> tuple:
    if card.ease_slot is None:
        return None, None
    return card.ease_slot.value, card.ease_slot.kind


def add_card(
    db_path: str,
    deck_id: int,
    front: str,
    back: str = "",
    tags: Optional[list] = None,
    now: Optional[int] = None,
) -> int:
    """Insert a new card, due immediately. Returns its id."""
    if now is None:
        now = now_ms()
    conn = get_connection(db_path)
    cursor = conn.execute(
        """INSERT INTO cards (deck_id, front, back, created, modified, next_review, tags)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (deck_id, front, back, now, now, now, json.dumps(tags or [])),
    )
    conn.commit()
    card_id = cursor.lastrowid
    conn.close()
    return card_id


def insert_cards(db_path: str, cards: list[Card]) -> list[int]:
    """Insert cards in a single transaction; none are saved if any insert fails."""
    conn = get_connection(db_path)
    ids = []
    try:
        with conn:
            for card in cards:
                ease_factor, ease_kind = _ease_columns(card)
                cursor = conn.execute(
                    """INSERT INTO cards
                    (deck_id, front, back, created, modified, next_review, interval, ease_factor, ease_kind, repetitions, tags)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        card.deck_id, card.front, card.back, card.created, card.modified, card.next_review,
                        card.interval, ease_factor, ease_kind, card.repetitions, json.dumps(card.tags),
                    ),
                )
                ids.append(cursor.lastrowid)
    finally:
        conn.close()
    return ids


def get_card(db_path: str, card_id: int) -> Card:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    if row is None:
        raise CardNotFoundError(f"Card {card_id} not found")
    return row_to_card(row)


def get_all_cards(db_path: str) -> list[Card]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM cards ORDER BY id").fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def get_cards_by_deck(db_path: str, deck_id: int) -> list[Card]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM cards WHERE deck_id = ? ORDER BY id", (deck_id,)).fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def get_due_cards(
    db_path: str,
    now: Optional[int] = None,
    deck_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[Card]:
    """Cards whose next review is at or before now, most overdue first."""
    if now is None:
        now = now_ms()
    query = "SELECT * FROM cards WHERE next_review <= ?"
    params = [now]
    if deck_id is not None:
        query += " AND deck_id = ?"
        params.append(deck_id)
    query += " ORDER BY next_review ASC, id ASC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def update_card(db_path: str, card: Card, now: Optional[int] = None) -> None:
    """Write every field of card back to its row and stamp modified."""
    if now is None:
        now = now_ms()
    ease_factor, ease_kind = _ease_columns(card)
    conn = get_connection(db_path)
    cursor = conn.execute(
        """UPDATE cards SET deck_id=?, front=?, back=?, next_review=?, interval=?,
        ease_factor=?, ease_kind=?, repetitions=?, tags=?, modified=?
        WHERE id=?""",
        (
            card.deck_id, card.front, card.back, card.next_review, card.interval,
            ease_factor, ease_kind, card.repetitions, json.dumps(card.tags), now, card.id,
        ),
    )
    conn.commit()
    conn.close()
    if cursor.rowcount == 0:
        raise CardNotFoundError(f"Card {card.id} not found")


def delete_card(db_path: str, card_id: int) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM reviews WHERE card_id = ?", (card_id,))
    conn.execute("DELETE FROM cards WHERE id = ?", (card_id,))
    conn.commit()
    conn.close()


def search_cards(db_path: str, text: str) -> list[Card]:
    """Case-insensitive substring search over front and back."""
    pattern = f"%{text.lower()}%"
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM cards WHERE lower(front) LIKE ? OR lower(back) LIKE ? ORDER BY id",
        (pattern, pattern),
    ).fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def get_cards_by_tags(db_path: str, tags: list[str]) -> list[Card]:
    """Cards carrying any of the given tags."""
    if not tags:
        return []
    placeholders = ", ".join("?" for _ in tags)
    conn = get_connection(db_path)
    rows = conn.execute(
        f"""SELECT * FROM cards WHERE EXISTS (
            SELECT 1 FROM json_each(cards.tags) WHERE json_each.value IN ({placeholders})
        ) ORDER BY id""",
        list(tags),
    ).fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def get_reviews(db_path: str, card_id: Optional[int] = None) -> list[ReviewLog]:
    conn = get_connection(db_path)
    if card_id is None:
        rows = conn.execute("SELECT * FROM reviews ORDER BY date, id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM reviews WHERE card_id = ? ORDER BY date, id", (card_id,)
        ).fetchall()
    conn.close()
    return [row_to_review(r) for r in rows]


def record_review(
    db_path: str,
    card_id: int,
    rating: Rating,
    scheduler: Scheduler,
    time_spent: int = 0,
    now: Optional[int] = None,
) -> ScheduleResult:
    """Schedule a card from its rating, save the schedule and log the review."""
    rating = Rating(rating)
    if now is None:
        now = now_ms()
    card = get_card(db_path, card_id)
    result = scheduler.compute_next(card, rating, now)
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE cards SET interval=?, ease_factor=?, ease_kind=?, repetitions=?, next_review=?, modified=?
        WHERE id=?""",
        (
            result.interval, result.ease_factor, result.ease_slot.kind,
            result.repetitions, result.next_review, now, card_id,
        ),
    )
    conn.execute(
        "INSERT INTO reviews (card_id, date, rating, interval, time_spent) VALUES (?, ?, ?, ?, ?)",
        (card_id, now, rating.value, result.interval, time_spent),
    )
    conn.commit()
    conn.close()
    logger.debug("Recorded %s for card %d: interval=%s", rating.value, card_id, result.interval)
    return result
