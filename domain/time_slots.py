"""Time-Slot Model

The booking day is a fixed catalog of labelled slots ("08:00", "09:00", ...).
Slots are time-of-day only; a calendar date is attached when a reservation
is stored.
"""
from datetime import date, datetime, time
from typing import Iterable, List, Union

from pydantic import BaseModel, model_validator

from domain.exceptions import InvalidInterval, InvalidTimeFormat, SlotNotFound

LABEL_FORMAT = "%H:%M"
DATE_FORMAT = "%Y-%m-%d"
# 24-hour labels plus the 12-hour "3:04 PM" form used by older clients
_INPUT_FORMATS = ("%H:%M", "%I:%M %p", "%I:%M%p")

END_OF_DAY = time.max
MINUTES_PER_DAY = 24 * 60

TimeLike = Union[str, time]
DateLike = Union[str, date]


# ==================== PARSING HELPERS ====================
def parse_time_label(value: TimeLike) -> time:
    """Parse a slot label or time-of-day into a time"""
    if isinstance(value, time):
        return value
    text = str(value).strip().upper()
    if text == "24:00":
        return END_OF_DAY
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected HH:MM)")


def format_time_label(value: time) -> str:
    """Format a time as a slot label"""
    if value == END_OF_DAY:
        return "24:00"
    return value.strftime(LABEL_FORMAT)


def parse_date(value: DateLike) -> date:
    """Normalize a calendar day given as date or YYYY-MM-DD"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise InvalidTimeFormat(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")


def minutes_of_day(value: time) -> int:
    if value == END_OF_DAY:
        return MINUTES_PER_DAY
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise InvalidInterval("Time range runs past midnight")
    if minutes == MINUTES_PER_DAY:
        return END_OF_DAY
    return time(minutes // 60, minutes % 60)


# ==================== SLOT OPERATIONS ====================
def generate_slots(
    interval_minutes: int,
    day_start: TimeLike = "08:00",
    day_end: TimeLike = "23:00"
) -> List[str]:
    """Every slot start from day_start through day_end (inclusive)

    A day_end of "24:00" closes the day; midnight itself is never a slot start.
    """
    if interval_minutes <= 0:
        raise InvalidInterval("Slot interval must be greater than 0 minutes")

    start = minutes_of_day(parse_time_label(day_start))
    end = minutes_of_day(parse_time_label(day_end))
    window = end - start
    if window < 0:
        raise InvalidInterval("Day end must not be before day start")
    if window % interval_minutes != 0:
        raise InvalidInterval(
            f"Interval of {interval_minutes} minutes does not evenly divide "
            f"the day window {format_time_label(time_from_minutes(start))}-"
            f"{format_time_label(time_from_minutes(end))}"
        )

    return [
        format_time_label(time_from_minutes(minute))
        for minute in range(start, end + 1, interval_minutes)
        if minute < MINUTES_PER_DAY
    ]


def slots_are_contiguous(slots: Iterable[TimeLike], interval_minutes: int) -> bool:
    """True iff the sorted slots are spaced exactly interval_minutes apart"""
    if interval_minutes <= 0:
        raise InvalidInterval("Slot interval must be greater than 0 minutes")
    minutes = sorted(minutes_of_day(parse_time_label(s)) for s in slots)
    return all(b - a == interval_minutes for a, b in zip(minutes, minutes[1:]))


# ==================== VALUE OBJECTS ====================
class TimeRange(BaseModel):
    """Value Object for a half-open time-of-day interval [start, end)"""
    start: time
    end: time

    class Config:
        frozen = True

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end <= self.start:
            raise InvalidInterval(
                f"End time {format_time_label(self.end)} must be after "
                f"start time {format_time_label(self.start)}"
            )
        return self

    @classmethod
    def create(cls, start: TimeLike, end: TimeLike) -> "TimeRange":
        return cls(start=parse_time_label(start), end=parse_time_label(end))

    def overlaps(self, other: "TimeRange") -> bool:
        """Half-open overlap; touching endpoints do not overlap"""
        return self.start < other.end and other.start < self.end

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def duration_minutes(self) -> int:
        return minutes_of_day(self.end) - minutes_of_day(self.start)

    def __str__(self) -> str:
        return f"{format_time_label(self.start)}-{format_time_label(self.end)}"


class SlotCatalog(BaseModel):
    """Fixed catalog of bookable slot labels for one day"""
    interval_minutes: int
    day_start: time
    day_end: time
    labels: List[str]

    class Config:
        frozen = True

    @classmethod
    def create(
        cls,
        interval_minutes: int = 60,
        day_start: TimeLike = "08:00",
        day_end: TimeLike = "23:00"
    ) -> "SlotCatalog":
        labels = generate_slots(interval_minutes, day_start, day_end)
        return cls(
            interval_minutes=interval_minutes,
            day_start=parse_time_label(day_start),
            day_end=parse_time_label(day_end),
            labels=labels
        )

    def index_of(self, label: TimeLike) -> int:
        """Position of a slot in the catalog"""
        try:
            normalized = format_time_label(parse_time_label(label))
        except InvalidTimeFormat:
            raise SlotNotFound(f"Time slot {label!r} is not in the catalog")
        try:
            return self.labels.index(normalized)
        except ValueError:
            raise SlotNotFound(f"Time slot {label!r} is not in the catalog")

    def slot_times(self) -> List[time]:
        return [parse_time_label(label) for label in self.labels]

    def slot_range(self, label: TimeLike) -> TimeRange:
        """Interval covered by a single slot"""
        return self.range_for([label])

    def range_for(self, slots: Iterable[TimeLike]) -> TimeRange:
        """Turn a contiguous multi-slot selection into [first, last + interval)"""
        selected = list(slots)
        if not selected:
            raise InvalidInterval("At least one time slot must be selected")
        for label in selected:
            self.index_of(label)
        if not slots_are_contiguous(selected, self.interval_minutes):
            raise InvalidInterval("Selected time slots are not contiguous")

        minutes = sorted(minutes_of_day(parse_time_label(s)) for s in selected)
        return TimeRange(
            start=time_from_minutes(minutes[0]),
            end=time_from_minutes(minutes[-1] + self.interval_minutes)
        )
