"""
Seeding Grouper: partitions an event's approved registrations into categories and
orders each category by belt rank (highest first).
"""
from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional

from sqlmodel import Session, select

from bracket_engine.models.registration import APPROVED, Registration
from bracket_engine.services.errors import PreconditionError

OPEN = "Open"

# Ordinal belt values used for seeding. Longer names are matched before their prefixes.
BELT_RANKS: Dict[str, int] = {
    "White": 1,
    "Orange": 2,
    "Blue": 3,
    "Yellow": 4,
    "Green": 5,
    "Brown": 6,
    "Black": 7,
    "Black 1st Dan": 7,
    "Black 2nd Dan": 8,
    "Black 3rd Dan": 9,
}


class CategoryKey(NamedTuple):
    age: str
    weight: str
    belt: str

    @property
    def name(self) -> str:
        return f"{self.age}, {self.weight}, {self.belt}"


def belt_value(belt: Optional[str]) -> int:
    """Seeding value for a belt string: exact name, else the longest known name it contains.
    Unknown belts rank 1, no belt ranks 0."""
    if not belt or not belt.strip():
        return 0
    normalized = belt.strip().lower()
    for name, value in BELT_RANKS.items():
        if name.lower() == normalized:
            return value
    for name in sorted(BELT_RANKS, key=len, reverse=True):
        if name.lower() in normalized:
            return BELT_RANKS[name]
    return 1


def category_key(registration: Registration) -> CategoryKey:
    return CategoryKey(
        age=registration.category_age or OPEN,
        weight=registration.category_weight or OPEN,
        belt=registration.category_belt or OPEN,
    )


def group_by_category(registrations: List[Registration]) -> "OrderedDict[CategoryKey, List[Registration]]":
    """
    Group registrations by (age, weight, belt) band and seed each group.

    Bands compare as literal strings. Categories come out in first-encounter order;
    within a category entrants are sorted by belt value descending, ties keep
    registration order (sorted() is stable).
    """
    groups: "OrderedDict[CategoryKey, List[Registration]]" = OrderedDict()
    for reg in registrations:
        groups.setdefault(category_key(reg), []).append(reg)

    for key in groups:
        groups[key] = sorted(groups[key], key=lambda r: -belt_value(r.belt_rank))
    return groups


def get_approved_registrations(session: Session, event_id: int) -> List[Registration]:
    return list(
        session.exec(
            select(Registration)
            .where(Registration.event_id == event_id, Registration.approval_status == APPROVED)
            .order_by(Registration.id)
        ).all()
    )


def seed_event(session: Session, event_id: int) -> "OrderedDict[CategoryKey, List[Registration]]":
    """Load approved registrations for an event and group them. Raises PreconditionError if there are none."""
    registrations = get_approved_registrations(session, event_id)
    if not registrations:
        raise PreconditionError("No approved participants found")
    return group_by_category(registrations)
