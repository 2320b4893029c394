"""Conflict Resolver

Decides whether a candidate reservation is accepted, overrides weaker
bookings, or is rejected. Pure and stateless: callers pass the room's
current reservations while holding the room lock and apply the outcome
themselves.
"""
from itertools import combinations
from typing import Iterable, List, Tuple

from pydantic import BaseModel

from domain.entities import Reservation
from domain.enums import ConflictOutcome


class Resolution(BaseModel):
    """Outcome of resolving one candidate against a room"""
    outcome: ConflictOutcome
    displaced: List[Reservation] = []
    blocking: List[Reservation] = []

    @property
    def accepted(self) -> bool:
        return self.outcome != ConflictOutcome.REJECT


def overlaps(a: Reservation, b: Reservation) -> bool:
    """Same date and s1 < e2 and s2 < e1"""
    return a.overlaps(b)


def find_conflicts(candidate: Reservation, existing: Iterable[Reservation]) -> List[Reservation]:
    """Active reservations overlapping the candidate, excluding itself"""
    return [
        r for r in existing
        if r.active
        and r.reservation_id != candidate.reservation_id
        and overlaps(candidate, r)
    ]


def resolve(candidate: Reservation, existing: Iterable[Reservation]) -> Resolution:
    """Accept, override, or reject the candidate

    Lower priority numbers are stronger. The candidate overrides only when it
    is strictly stronger than every overlapping reservation; a single
    equal-or-stronger overlap rejects it.
    """
    conflicts = find_conflicts(candidate, existing)
    if not conflicts:
        return Resolution(outcome=ConflictOutcome.ACCEPT)

    blocking = [r for r in conflicts if r.priority <= candidate.priority]
    if blocking:
        return Resolution(outcome=ConflictOutcome.REJECT, blocking=blocking)

    return Resolution(outcome=ConflictOutcome.OVERRIDE, displaced=conflicts)


def overlapping_pairs(reservations: Iterable[Reservation]) -> List[Tuple[Reservation, Reservation]]:
    """Pairs of active reservations that overlap; empty for a consistent room"""
    active = [r for r in reservations if r.active]
    return [(a, b) for a, b in combinations(active, 2) if overlaps(a, b)]
