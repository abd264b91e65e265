"""
Bracket Builder: single-elimination trees for each category of an event.

Round 1 is laid out in standard seeding order over a field padded to the next power
of two; the missing seeds are byes, so the top seeds advance without a bout. Later
rounds are empty placeholders linked through next_match_id. The tree is held as a
list of rounds while building, so the match fed by rounds[r][i] is rounds[r + 1][i // 2].
"""
import logging
from typing import Iterator, List, NamedTuple, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from bracket_engine.models.bracket import Bracket, BracketStatus
from bracket_engine.models.event import Event
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.registration import Registration
from bracket_engine.services.errors import ConflictError, NotFoundError, PreconditionError
from bracket_engine.services.match_progression import fill_open_slot
from bracket_engine.services.seeding import CategoryKey, seed_event
from bracket_engine.utils.clock import utcnow

logger = logging.getLogger(__name__)

Pairing = Tuple[Optional[Registration], Optional[Registration]]


class GenerationProgress(NamedTuple):
    phase: str  # loading | grouping | building | complete
    message: str
    progress: int  # 0..100
    brackets: Optional[List[Bracket]] = None


def next_power_of_two(n: int) -> int:
    """Bracket size for n entrants. 0 -> 0, 1 -> 1."""
    if n <= 0:
        return 0
    return 1 << (n - 1).bit_length()


def seed_order(bracket_size: int) -> List[int]:
    """
    Standard bracket order of seeds for round 1.

    For 8: [1, 8, 4, 5, 2, 7, 3, 6] -> 1v8, 4v5, 2v7, 3v6.
    If the higher seed always wins, seeds 1 and 2 meet in the final.
    """
    if bracket_size <= 1:
        return [1]
    upper = seed_order(bracket_size // 2)
    order: List[int] = []
    for seed in upper:
        order.extend([seed, bracket_size + 1 - seed])
    return order


def round_name(round_number: int, total_rounds: int) -> str:
    rounds_from_end = total_rounds - round_number
    if rounds_from_end == 0:
        return "Final"
    if rounds_from_end == 1:
        return "Semi-Finals"
    if rounds_from_end == 2:
        return "Quarter-Finals"
    return f"Round {round_number}"


def first_round_pairings(entrants: List[Registration]) -> List[Pairing]:
    """
    Pair seeded entrants for round 1. Seeds past len(entrants) are byes.

    Seeds in a pairing sum to bracket_size + 1 and bracket_size < 2 * len(entrants),
    so a pairing never holds two byes; the bye is always the second slot.
    """
    size = next_power_of_two(len(entrants))
    order = seed_order(size)
    by_seed = {seed: reg for seed, reg in enumerate(entrants, start=1)}
    return [(by_seed.get(order[i]), by_seed.get(order[i + 1])) for i in range(0, size, 2)]


def _single_entrant_bracket(session: Session, bracket: Bracket, entrant: Registration) -> None:
    """Nothing to fight: one bye final with the lone entrant as winner, bracket already resolved."""
    now = utcnow()
    session.add(
        Match(
            bracket_id=bracket.id,
            round_number=1,
            round_name="Final",
            match_number=1,
            fighter_a_id=entrant.entrant_id,
            fighter_a_name=entrant.entrant_name,
            is_bye=True,
            status=MatchStatus.COMPLETED,
            winner_id=entrant.entrant_id,
            completed_at=now,
        )
    )
    bracket.status = BracketStatus.COMPLETED
    bracket.completed_at = now
    session.add(bracket)


def build_bracket(
    session: Session,
    event_id: int,
    category: CategoryKey,
    entrants: List[Registration],
) -> Bracket:
    """
    Create one bracket with its full match tree. Flushes but does not commit;
    the caller owns the transaction.

    Entrants must already be seeded (best first).
    """
    if not entrants:
        raise PreconditionError(f"Category {category.name} has no participants")

    bracket = Bracket(
        event_id=event_id,
        category_name=category.name,
        category_age=category.age,
        category_weight=category.weight,
        category_belt=category.belt,
        total_participants=len(entrants),
        status=BracketStatus.DRAFT,
    )
    session.add(bracket)
    session.flush()

    if len(entrants) == 1:
        _single_entrant_bracket(session, bracket, entrants[0])
        session.flush()
        return bracket

    size = next_power_of_two(len(entrants))
    total_rounds = size.bit_length() - 1
    match_number = 1
    now = utcnow()

    # Round 1: real bouts plus completed byes
    first_round: List[Match] = []
    label = round_name(1, total_rounds)
    for fighter_a, fighter_b in first_round_pairings(entrants):
        is_bye = fighter_b is None
        first_round.append(
            Match(
                bracket_id=bracket.id,
                round_number=1,
                round_name=label,
                match_number=match_number,
                fighter_a_id=fighter_a.entrant_id,
                fighter_a_name=fighter_a.entrant_name,
                fighter_b_id=None if is_bye else fighter_b.entrant_id,
                fighter_b_name=None if is_bye else fighter_b.entrant_name,
                is_bye=is_bye,
                status=MatchStatus.COMPLETED if is_bye else MatchStatus.SCHEDULED,
                winner_id=fighter_a.entrant_id if is_bye else None,
                completed_at=now if is_bye else None,
            )
        )
        match_number += 1
    rounds: List[List[Match]] = [first_round]

    # Later rounds: empty placeholders, one per pair of feeders
    for round_number in range(2, total_rounds + 1):
        label = round_name(round_number, total_rounds)
        current: List[Match] = []
        for _ in range(len(rounds[-1]) // 2):
            current.append(
                Match(
                    bracket_id=bracket.id,
                    round_number=round_number,
                    round_name=label,
                    match_number=match_number,
                    status=MatchStatus.SCHEDULED,
                )
            )
            match_number += 1
        rounds.append(current)

    session.add_all([m for matches in rounds for m in matches])
    session.flush()

    for r in range(len(rounds) - 1):
        for i, match in enumerate(rounds[r]):
            match.next_match_id = rounds[r + 1][i // 2].id

    # Byes never pass through the progression state machine, so push their winners here
    for i, match in enumerate(first_round):
        if match.is_bye:
            fill_open_slot(rounds[1][i // 2], match.winner_id, match.fighter_a_name)

    session.flush()
    logger.debug(
        "Built bracket %s: %d entrants, size %d, %d matches",
        category.name,
        len(entrants),
        size,
        match_number - 1,
    )
    return bracket


def iter_generate_brackets(session: Session, event_id: int) -> Iterator[GenerationProgress]:
    """
    Generate one bracket per category for an event, yielding progress as it goes.

    The whole event is one transaction: nothing is committed until every category
    is built, so a partially generated event is never visible. The final item has
    phase "complete" and carries the created brackets.

    Raises:
        NotFoundError: event does not exist
        ConflictError: event already has brackets
        PreconditionError: no approved registrations
    """
    event = session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")

    existing = session.exec(select(Bracket.id).where(Bracket.event_id == event_id)).first()
    if existing is not None:
        raise ConflictError("Brackets already exist for this event; delete them before regenerating")

    yield GenerationProgress("loading", f"Loading approved participants for {event.name}", 5)
    categories = seed_event(session, event_id)
    participant_count = sum(len(entrants) for entrants in categories.values())
    yield GenerationProgress(
        "grouping", f"Grouped {participant_count} participants into {len(categories)} categories", 15
    )

    brackets: List[Bracket] = []
    try:
        for index, (category, entrants) in enumerate(categories.items(), start=1):
            brackets.append(build_bracket(session, event_id, category, entrants))
            yield GenerationProgress(
                "building",
                f"Built bracket {category.name} ({len(entrants)} participants)",
                15 + (80 * index) // len(categories),
            )
        session.commit()
    except IntegrityError as e:
        # Another request generated this event between our check and our insert
        session.rollback()
        logger.warning(f"Bracket generation for event {event_id} lost a race: {e.orig}")
        raise ConflictError("Brackets already exist for this event; delete them before regenerating") from e
    except Exception:
        session.rollback()
        raise

    for bracket in brackets:
        session.refresh(bracket)
    logger.info("Generated %d brackets for event %d", len(brackets), event_id)
    yield GenerationProgress("complete", f"Generated {len(brackets)} brackets", 100, brackets)


def generate_brackets(session: Session, event_id: int) -> List[Bracket]:
    """Generate brackets for every category of an event. See iter_generate_brackets."""
    brackets: List[Bracket] = []
    for step in iter_generate_brackets(session, event_id):
        if step.brackets is not None:
            brackets = step.brackets
    return brackets
