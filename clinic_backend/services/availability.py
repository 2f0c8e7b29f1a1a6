"""Working-hours checks for the clinic's weekly schedule.

``working_hours`` is the JSON mapping stored on the clinic config row::

    {"monday": {"enabled": true, "start": "08:00", "end": "17:00"}, ...}

Every function here takes the mapping as an argument; nothing reads the
clinic config on its own.
"""

from datetime import date, datetime, time

from clinic_backend.core.errors import ValidationError

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
DEFAULT_DAY_START = '08:00'
DEFAULT_DAY_END = '17:00'


def parse_time_of_day(value: str) -> time:
    try:
        hours, minutes = value.strip().split(':')
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f'Invalid time of day {value!r}, expected HH:MM.') from exc


def default_working_hours() -> dict[str, dict]:
    return {
        weekday: {
            'enabled': index < 5,
            'start': DEFAULT_DAY_START,
            'end': DEFAULT_DAY_END,
        }
        for index, weekday in enumerate(WEEKDAYS)
    }


def normalize_weekday(weekday: str) -> str:
    normalized = weekday.strip().lower()
    if normalized not in WEEKDAYS:
        raise ValidationError(f'Unknown weekday {weekday!r}.')
    return normalized


def validate_working_day(entry: dict) -> dict:
    """Return a normalized copy of one weekday entry.

    Raises ValidationError when a time does not parse or when the window is
    empty (start at or after end).
    """
    start = parse_time_of_day(entry.get('start', DEFAULT_DAY_START))
    end = parse_time_of_day(entry.get('end', DEFAULT_DAY_END))
    if start >= end:
        raise ValidationError('Working day must start before it ends.')

    return {
        'enabled': bool(entry.get('enabled', False)),
        'start': start.strftime('%H:%M'),
        'end': end.strftime('%H:%M'),
    }


def validate_working_hours(working_hours: dict) -> dict[str, dict]:
    normalized = {}
    for weekday, entry in working_hours.items():
        normalized[normalize_weekday(weekday)] = validate_working_day(entry)
    return normalized


def working_window(day: date, working_hours: dict) -> tuple[datetime, datetime] | None:
    entry = working_hours.get(WEEKDAYS[day.weekday()])
    if not entry or not entry.get('enabled'):
        return None

    start = parse_time_of_day(entry['start'])
    end = parse_time_of_day(entry['end'])
    return datetime.combine(day, start), datetime.combine(day, end)


def is_within_working_hours(timestamp: datetime, working_hours: dict) -> bool:
    window = working_window(timestamp.date(), working_hours)
    if window is None:
        return False

    day_start, day_end = window
    return day_start.time() <= timestamp.time() < day_end.time()
