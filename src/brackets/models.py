"""
Data model for the match graph of an elimination bracket.

A bracket is a set of matches keyed by match id. Each match has two slots; a
slot is either permanently empty, holds a participant directly, or refers to
the winner or loser of an earlier match (a feeder). Matches are immutable:
the engines hand back new MatchSet dicts built with ``dataclasses.replace``.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .errors import MalformedGraph


class TournamentFormat(str, Enum):
    SINGLE = 'single'
    DOUBLE = 'double_elimination'


class BracketSection(str, Enum):
    WINNERS = 'winners'
    LOSERS = 'losers'
    GRAND_FINAL = 'grand_final'
    GRAND_FINAL_RESET = 'grand_final_reset'


# Feeders must come from a section with a lower rank, or an earlier round
# of the same section.
SECTION_ORDER = {
    BracketSection.WINNERS: 0,
    BracketSection.LOSERS: 1,
    BracketSection.GRAND_FINAL: 2,
    BracketSection.GRAND_FINAL_RESET: 3,
}


class FeederRole(str, Enum):
    WINNER = 'winner'
    LOSER = 'loser'


@dataclass(frozen=True)
class Participant:
    """A registered entry. The engine only ever looks at ``id``."""
    id: str
    name: str


@dataclass(frozen=True)
class EmptySlot:
    """A slot with no feeder; it can never be filled."""

    @property
    def participant_id(self) -> None:
        return None


@dataclass(frozen=True)
class DirectSlot:
    participant_id: str


@dataclass(frozen=True)
class FeederSlot:
    """Slot filled by the winner or loser of ``from_match_id``.

    ``participant_id`` stays None until the feeder match is decided.
    """
    from_match_id: str
    role: FeederRole
    participant_id: Optional[str] = None


Slot = Union[EmptySlot, DirectSlot, FeederSlot]

SLOT_A = 'a'
SLOT_B = 'b'


@dataclass(frozen=True)
class Match:
    id: str
    tournament_id: str
    bracket_section: BracketSection
    round: int
    position_in_round: int
    slot_a: Slot
    slot_b: Slot
    winner_id: Optional[str] = None
    score: Optional[str] = None
    is_bye: bool = False

    @property
    def occupants(self) -> Tuple[Optional[str], Optional[str]]:
        return self.slot_a.participant_id, self.slot_b.participant_id

    @property
    def participant_ids(self) -> List[str]:
        return [pid for pid in self.occupants if pid is not None]

    @property
    def is_full(self) -> bool:
        return len(self.participant_ids) == 2

    @property
    def is_playable(self) -> bool:
        return self.is_full and self.winner_id is None

    @property
    def loser_id(self) -> Optional[str]:
        """The occupant that did not win, or None for byes and open matches."""
        if self.winner_id is None or self.is_bye or not self.is_full:
            return None
        return self.other_participant(self.winner_id)

    def slot(self, side: str) -> Slot:
        return self.slot_a if side == SLOT_A else self.slot_b

    def with_slot(self, side: str, slot: Slot) -> 'Match':
        if side == SLOT_A:
            return replace(self, slot_a=slot)
        return replace(self, slot_b=slot)

    def other_participant(self, participant_id: str) -> Optional[str]:
        a, b = self.occupants
        if participant_id == a:
            return b
        if participant_id == b:
            return a
        return None


MatchSet = Dict[str, Match]


def slot_to_dict(slot: Slot) -> Dict:
    if isinstance(slot, DirectSlot):
        return {'kind': 'direct', 'participant_id': slot.participant_id}
    if isinstance(slot, FeederSlot):
        return {
            'kind': 'feeder',
            'from_match_id': slot.from_match_id,
            'role': slot.role.value,
            'participant_id': slot.participant_id,
        }
    return {'kind': 'empty'}


def slot_from_dict(data: Dict) -> Slot:
    kind = (data or {}).get('kind', 'empty')
    if kind == 'empty':
        return EmptySlot()
    if kind == 'direct':
        return DirectSlot(participant_id=data['participant_id'])
    if kind == 'feeder':
        return FeederSlot(
            from_match_id=data['from_match_id'],
            role=FeederRole(data['role']),
            participant_id=data.get('participant_id'),
        )
    raise MalformedGraph(f"Unknown slot kind: {kind!r}")


def match_to_dict(match: Match) -> Dict:
    return {
        'id': match.id,
        'tournament_id': match.tournament_id,
        'bracket_section': match.bracket_section.value,
        'round': match.round,
        'position_in_round': match.position_in_round,
        'slot_a': slot_to_dict(match.slot_a),
        'slot_b': slot_to_dict(match.slot_b),
        'winner_id': match.winner_id,
        'score': match.score,
        'is_bye': match.is_bye,
    }


def match_from_dict(data: Dict) -> Match:
    try:
        return Match(
            id=str(data['id']),
            tournament_id=str(data['tournament_id']),
            bracket_section=BracketSection(data['bracket_section']),
            round=int(data['round']),
            position_in_round=int(data['position_in_round']),
            slot_a=slot_from_dict(data.get('slot_a')),
            slot_b=slot_from_dict(data.get('slot_b')),
            winner_id=data.get('winner_id'),
            score=data.get('score'),
            is_bye=bool(data.get('is_bye', False)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise MalformedGraph(f"Invalid match record {data!r}: {e}") from e


def matches_to_list(matches: MatchSet) -> List[Dict]:
    return [match_to_dict(m) for m in matches.values()]


def matches_from_list(records: List[Dict]) -> MatchSet:
    matches = {}
    for record in records or []:
        match = match_from_dict(record)
        if match.id in matches:
            raise MalformedGraph(f"Duplicate match id: {match.id}")
        matches[match.id] = match
    return matches
