"""
Structural helpers over a MatchSet: ordering, feeder lookup, bye evaluation
and validation of the graph invariants.
"""
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import MalformedGraph, UnknownMatch
from .models import (
    SECTION_ORDER,
    SLOT_A,
    SLOT_B,
    BracketSection,
    EmptySlot,
    FeederRole,
    FeederSlot,
    Match,
    MatchSet,
)

FeederIndex = Dict[Tuple[str, FeederRole], List[Tuple[str, str]]]


def order_key(match: Match) -> Tuple[int, int, int]:
    return SECTION_ORDER[match.bracket_section], match.round, match.position_in_round


def sorted_matches(matches: Iterable[Match]) -> List[Match]:
    return sorted(matches, key=order_key)


def get_match(matches: MatchSet, match_id: str) -> Match:
    try:
        return matches[match_id]
    except KeyError:
        raise UnknownMatch(match_id) from None


def find_section_match(matches: MatchSet, section: BracketSection) -> Optional[Match]:
    """The first match of ``section``, for the single-match sections."""
    for match in matches.values():
        if match.bracket_section == section:
            return match
    return None


def build_feeder_index(matches: MatchSet) -> FeederIndex:
    """Map (source match id, role) to the downstream (match id, side) it fills."""
    index: FeederIndex = {}
    for match in matches.values():
        for side in (SLOT_A, SLOT_B):
            slot = match.slot(side)
            if isinstance(slot, FeederSlot):
                index.setdefault((slot.from_match_id, slot.role), []).append((match.id, side))
    return index


def evaluate_bye(match: Match) -> bool:
    """True when exactly one slot is occupied and the other can never be filled."""
    a, b = match.occupants
    if a is not None and b is None:
        return isinstance(match.slot_b, EmptySlot)
    if b is not None and a is None:
        return isinstance(match.slot_a, EmptySlot)
    return False


def bye_occupant(match: Match) -> Optional[str]:
    ids = match.participant_ids
    return ids[0] if len(ids) == 1 else None


def feeder_outcome(source: Match, role: FeederRole) -> Optional[str]:
    """The participant ``source`` currently sends to a slot fed with ``role``."""
    if role == FeederRole.WINNER:
        return source.winner_id
    return source.loser_id


def is_inactive_reset(match: Match) -> bool:
    return (match.bracket_section == BracketSection.GRAND_FINAL_RESET
            and match.is_bye
            and match.winner_id is None
            and isinstance(match.slot_a, EmptySlot)
            and isinstance(match.slot_b, EmptySlot))


def validate_match_set(matches: MatchSet) -> None:
    """
    Check the structural invariants of a match set.

    Raises MalformedGraph on the first violation found:
    - keys match match ids
    - every feeder points at an existing, strictly earlier match
    - each (source, role) feeds at most one slot
    - a resolved feeder slot holds what its source currently sends
    - winners occupy a slot of their match; full matches are never byes
    - byes have exactly one occupant, an empty opposite slot, and that
      occupant as winner (the inactive bracket reset excepted)
    - at most one grand final and one bracket reset
    """
    seen_targets = {}
    section_counts = {}
    for key, match in matches.items():
        if key != match.id:
            raise MalformedGraph(f"Match stored under {key!r} has id {match.id!r}")
        section_counts[match.bracket_section] = section_counts.get(match.bracket_section, 0) + 1

        for side in (SLOT_A, SLOT_B):
            slot = match.slot(side)
            if not isinstance(slot, FeederSlot):
                continue
            source = matches.get(slot.from_match_id)
            if source is None:
                raise MalformedGraph(f"{match.id} is fed by missing match {slot.from_match_id}")
            if order_key(source)[:2] >= order_key(match)[:2]:
                raise MalformedGraph(f"{match.id} is fed by {source.id}, which does not precede it")
            target = (slot.from_match_id, slot.role)
            if target in seen_targets:
                raise MalformedGraph(
                    f"{slot.role.value} of {slot.from_match_id} feeds both "
                    f"{seen_targets[target]} and {match.id}"
                )
            seen_targets[target] = match.id
            if slot.participant_id is not None and slot.participant_id != feeder_outcome(source, slot.role):
                raise MalformedGraph(
                    f"{match.id} holds {slot.participant_id} from {source.id}, "
                    f"which no longer sends that participant"
                )

        if match.winner_id is not None and match.winner_id not in match.participant_ids:
            raise MalformedGraph(f"{match.id} has winner {match.winner_id} outside its slots")

        if match.is_bye:
            if is_inactive_reset(match):
                continue
            if not evaluate_bye(match) or match.winner_id != bye_occupant(match):
                raise MalformedGraph(f"{match.id} is marked as a bye but is not a resolved bye")
        elif not match.is_full and match.winner_id is not None:
            raise MalformedGraph(f"{match.id} has a winner but an open slot")
        elif evaluate_bye(match):
            raise MalformedGraph(f"{match.id} is a resolved bye but not marked as one")

    for section in (BracketSection.GRAND_FINAL, BracketSection.GRAND_FINAL_RESET):
        if section_counts.get(section, 0) > 1:
            raise MalformedGraph(f"More than one {section.value} match")


def winners_side(matches: MatchSet, grand_final: Match) -> str:
    """The grand final slot fed from the winners bracket."""
    for side in (SLOT_A, SLOT_B):
        slot = grand_final.slot(side)
        if isinstance(slot, FeederSlot):
            source = matches.get(slot.from_match_id)
            if source is not None and source.bracket_section == BracketSection.WINNERS:
                return side
    return SLOT_A


def deactivate_reset(reset: Match) -> Match:
    return replace(reset, slot_a=EmptySlot(), slot_b=EmptySlot(),
                   winner_id=None, score=None, is_bye=True)
