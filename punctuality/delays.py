"""Delay arithmetic on HHMM-encoded times of day (hours * 100 + minutes, 0 = unknown)."""

MINUTES_PER_DAY = 24 * 60
# A gap wider than this is read as the flight crossing midnight
WRAP_THRESHOLD = MINUTES_PER_DAY // 2


def hhmm_to_minutes(value: int) -> int:
    """Convert an HHMM value to minutes since midnight."""
    hours, minutes = divmod(value, 100)
    return hours * 60 + minutes


def delay_minutes(scheduled_arrival: int, actual_arrival: int) -> int:
    """
    Arrival delay in minutes, never negative.

    Either time being 0 (unknown) yields 0. Differences beyond twelve hours
    either way are taken as a midnight crossing and shifted by a day, so a
    flight scheduled for 2350 that lands at 0010 is 20 minutes late.
    Early and on-time arrivals report 0.
    """
    if not scheduled_arrival or not actual_arrival:
        return 0

    diff = hhmm_to_minutes(actual_arrival) - hhmm_to_minutes(scheduled_arrival)
    if diff < -WRAP_THRESHOLD:
        diff += MINUTES_PER_DAY
    elif diff > WRAP_THRESHOLD:
        diff -= MINUTES_PER_DAY

    return max(0, diff)


def format_hhmm(value: int) -> str:
    if not value:
        return "N/A"
    hours, minutes = divmod(value, 100)
    return f"{hours:02d}:{minutes:02d}"
