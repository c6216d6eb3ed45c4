"""Interval arithmetic and human-readable interval labels."""
import math

MS_PER_DAY = 24 * 60 * 60 * 1000


def round_half_up(value: float) -> int:
    # round() would send 2.5 to 2
    return math.floor(value + 0.5)


def days_to_ms(days: float) -> int:
    return round_half_up(days * MS_PER_DAY)


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def describe_interval(days: float) -> str:
    """Map a day count to a coarse label such as '6 days' or '1 month'."""
    if days < 1:
        hours = round_half_up(days * 24)
        return "Less than an hour" if hours <= 1 else f"{hours} hours"
    if days < 7:
        return _plural(round_half_up(days), "day")
    if days < 30:
        return _plural(round_half_up(days / 7), "week")
    if days < 365:
        return _plural(round_half_up(days / 30), "month")
    return _plural(round_half_up(days / 365), "year")
