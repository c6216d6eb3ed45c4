"""Review statistics and study streaks."""
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from dango.db import get_connection
from dango.flashcards import row_to_review
from dango.intervals import MS_PER_DAY, round_half_up
from dango.models import Rating
from dango.scheduler import now_ms

MATURE_INTERVAL = 21  # days
RETENTION_WINDOW = 30  # days


def _local_date(epoch_ms: int) -> date:
    return datetime.fromtimestamp(epoch_ms / 1000).date()


def _start_of_day(epoch_ms: int) -> int:
    day = _local_date(epoch_ms)
    return int(datetime(day.year, day.month, day.day).timestamp() * 1000)


def calculate_streaks(review_dates: Iterable[date], today: date) -> tuple[int, int]:
    """Return (current_streak, longest_streak) in days.

    The current streak only counts if the last study day was today or yesterday.
    """
    days = sorted(set(review_dates))
    if not days:
        return 0, 0

    longest = run = 1
    for prev, cur in zip(days, days[1:]):
        run = run + 1 if (cur - prev).days == 1 else 1
        longest = max(longest, run)

    if (today - days[-1]).days > 1:
        return 0, longest
    current = 1
    for prev, cur in zip(reversed(days[:-1]), reversed(days)):
        if (cur - prev).days != 1:
            break
        current += 1
    return current, longest


def daily_review_counts(review_dates: Iterable[date], today: date, days: int = 30) -> list[dict]:
    counts = {}
    for d in review_dates:
        counts[d] = counts.get(d, 0) + 1
    return [
        {"date": (today - timedelta(days=offset)).isoformat(),
         "count": counts.get(today - timedelta(days=offset), 0)}
        for offset in range(days - 1, -1, -1)
    ]


def _retention(ratings: list[str]) -> int:
    if not ratings:
        return 0
    successful = sum(1 for r in ratings if r != Rating.AGAIN.value)
    return round_half_up(successful / len(ratings) * 100)


def _card_counts(conn, now: int, deck_id: Optional[int] = None) -> dict:
    where, params = ("WHERE deck_id = ?", (deck_id,)) if deck_id is not None else ("", ())
    row = conn.execute(
        f"""SELECT COUNT(*) as total,
            SUM(CASE WHEN next_review <= ? THEN 1 ELSE 0 END) as due,
            SUM(CASE WHEN repetitions = 0 THEN 1 ELSE 0 END) as new,
            SUM(CASE WHEN interval > ? THEN 1 ELSE 0 END) as mature,
            SUM(CASE WHEN interval > 0 AND interval <= ? THEN 1 ELSE 0 END) as young
        FROM cards {where}""",
        (now, MATURE_INTERVAL, MATURE_INTERVAL, *params),
    ).fetchone()
    return {
        "total_cards": row["total"],
        "due_cards": row["due"] or 0,
        "new_cards": row["new"] or 0,
        "mature_cards": row["mature"] or 0,
        "young_cards": row["young"] or 0,
    }


def get_statistics(db_path: str, now: Optional[int] = None) -> dict:
    if now is None:
        now = now_ms()
    today_start = _start_of_day(now)
    week_ago = now - 7 * MS_PER_DAY
    month_ago = now - RETENTION_WINDOW * MS_PER_DAY

    conn = get_connection(db_path)
    stats = _card_counts(conn, now)
    rows = conn.execute("SELECT * FROM reviews ORDER BY date DESC, id DESC").fetchall()
    conn.close()

    dates = [r["date"] for r in rows]
    review_days = [_local_date(d) for d in dates]
    today = _local_date(now)
    current_streak, longest_streak = calculate_streaks(review_days, today)
    stats.update({
        "total_reviews": len(rows),
        "reviews_today": sum(1 for d in dates if d >= today_start),
        "reviews_this_week": sum(1 for d in dates if d >= week_ago),
        "reviews_this_month": sum(1 for d in dates if d >= month_ago),
        "average_retention": _retention([r["rating"] for r in rows if r["date"] >= month_ago]),
        "current_streak": current_streak,
        "longest_streak": longest_streak,
        "recent_reviews": [row_to_review(r) for r in rows[:10]],
        "daily_review_counts": daily_review_counts(review_days, today),
    })
    return stats


def get_deck_statistics(db_path: str, deck_id: int, now: Optional[int] = None) -> dict:
    if now is None:
        now = now_ms()
    today_start = _start_of_day(now)
    month_ago = now - RETENTION_WINDOW * MS_PER_DAY

    conn = get_connection(db_path)
    stats = _card_counts(conn, now, deck_id)
    rows = conn.execute(
        """SELECT r.date, r.rating FROM reviews r JOIN cards c ON r.card_id = c.id
        WHERE c.deck_id = ?""",
        (deck_id,),
    ).fetchall()
    conn.close()

    stats["reviews_today"] = sum(1 for r in rows if r["date"] >= today_start)
    stats["average_retention"] = _retention([r["rating"] for r in rows if r["date"] >= month_ago])
    return stats
