from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from timecalc.codes import CalcCode
from timecalc.models import BookingCategory, BookingDirection, BookingEvent, BookingPair

_DIRECTION_RANK = {
    BookingDirection.OUT: 0,
    BookingDirection.IN: 1,
}


@dataclass(frozen=True)
class PairingResult:
    pairs: tuple[BookingPair, ...]
    unpaired: tuple[BookingPair, ...]
    codes: tuple[CalcCode, ...]


def _sort_key(event: BookingEvent) -> tuple:
    return (
        event.absolute_minute,
        _DIRECTION_RANK[event.direction],
        event.category.value,
        event.event_id is None,
        event.event_id or 0,
        event.source.value,
    )


def sort_events(events: Iterable[BookingEvent]) -> list[BookingEvent]:
    """Total order over a day's events; an OUT sorts before an IN on the same minute."""
    return sorted(events, key=_sort_key)


def _dedupe(events: list[BookingEvent]) -> tuple[list[BookingEvent], bool]:
    seen: set[tuple[BookingCategory, BookingDirection, int]] = set()
    kept: list[BookingEvent] = []
    duplicated = False
    for event in events:
        identity = (event.category, event.direction, event.absolute_minute)
        if identity in seen:
            duplicated = True
            continue
        seen.add(identity)
        kept.append(event)
    return kept, duplicated


def _complete_pair(come: BookingEvent, go: BookingEvent) -> BookingPair:
    return BookingPair(
        category=come.category,
        come=come,
        go=go,
        start_minute=come.absolute_minute,
        end_minute=go.absolute_minute,
        cross_midnight=go.next_day and not come.next_day,
    )


def _open_pair(event: BookingEvent) -> BookingPair:
    if event.direction == BookingDirection.IN:
        return BookingPair(
            category=event.category,
            come=event,
            go=None,
            start_minute=event.absolute_minute,
            end_minute=None,
        )
    return BookingPair(
        category=event.category,
        come=None,
        go=event,
        start_minute=None,
        end_minute=event.absolute_minute,
    )


def _pair_category(events: Sequence[BookingEvent]) -> tuple[list[BookingPair], list[BookingPair]]:
    pairs: list[BookingPair] = []
    unpaired: list[BookingPair] = []
    open_in: BookingEvent | None = None

    for event in events:
        if event.direction == BookingDirection.IN:
            if open_in is not None:
                unpaired.append(_open_pair(open_in))
            open_in = event
            continue
        if open_in is None:
            unpaired.append(_open_pair(event))
            continue
        pairs.append(_complete_pair(open_in, event))
        open_in = None

    if open_in is not None:
        unpaired.append(_open_pair(open_in))
    return pairs, unpaired


def pair_bookings(events: Iterable[BookingEvent]) -> PairingResult:
    ordered, duplicated = _dedupe(sort_events(events))

    codes: list[CalcCode] = []
    if duplicated:
        codes.append(CalcCode.DUPLICATE_IN_TIME)

    pairs: list[BookingPair] = []
    unpaired: list[BookingPair] = []
    for category in BookingCategory:
        category_pairs, category_unpaired = _pair_category(
            [event for event in ordered if event.category == category]
        )
        pairs.extend(category_pairs)
        unpaired.extend(category_unpaired)

    if unpaired:
        codes.append(CalcCode.UNPAIRED_BOOKING)
    if any(pair.cross_midnight for pair in pairs):
        codes.append(CalcCode.CROSS_MIDNIGHT)

    return PairingResult(pairs=tuple(pairs), unpaired=tuple(unpaired), codes=tuple(codes))


def gross_minutes(pairs: Iterable[BookingPair], *, include_trips: bool = True) -> int:
    counted = {BookingCategory.WORK}
    if include_trips:
        counted.add(BookingCategory.TRIP)
    return sum(pair.duration for pair in pairs if pair.category in counted)


def recorded_break_minutes(pairs: Iterable[BookingPair]) -> int:
    return sum(pair.duration for pair in pairs if pair.category == BookingCategory.BREAK)


def first_come(pairs: Iterable[BookingPair]) -> int | None:
    starts = [
        pair.start_minute
        for pair in pairs
        if pair.category == BookingCategory.WORK and pair.come is not None and pair.start_minute is not None
    ]
    return min(starts) if starts else None


def last_go(pairs: Iterable[BookingPair]) -> int | None:
    ends = [
        pair.end_minute
        for pair in pairs
        if pair.category == BookingCategory.WORK and pair.go is not None and pair.end_minute is not None
    ]
    return max(ends) if ends else None
