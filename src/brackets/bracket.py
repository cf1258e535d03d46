"""
Bracket operations exposed to the persistence and presentation layers.

Every function takes a MatchSet and returns a new one (or a read-only view of
it); callers load the full set, apply one operation and store the result.
"""
import logging
import random
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Union

from .advancement import advance
from .double_elimination import generate_double_elimination, get_losers_round_name, get_winners_round_name
from .elimination import generate_single_elimination, get_round_name
from .errors import InvalidWinner
from .graph import find_section_match, get_match, is_inactive_reset, sorted_matches, validate_match_set
from .models import (
    BracketSection,
    EmptySlot,
    FeederRole,
    FeederSlot,
    Match,
    MatchSet,
    Participant,
    Slot,
    TournamentFormat,
)
from .retraction import retract

logger = logging.getLogger(__name__)

__all__ = [
    'generate_bracket',
    'set_winner',
    'clear_winner',
    'toggle_winner',
    'update_score',
    'list_matches',
    'get_match',
    'get_champion',
    'is_complete',
    'playable_matches',
    'detect_format',
    'round_label',
    'get_bracket_display',
    'validate_match_set',
]


def generate_bracket(tournament_id: str,
                     participants: Sequence[Participant],
                     tournament_format: Union[TournamentFormat, str] = TournamentFormat.SINGLE,
                     capacity: Optional[int] = None,
                     shuffle: bool = True,
                     seed: Optional[int] = None,
                     rng: Optional[random.Random] = None) -> MatchSet:
    """
    Build a fresh match set from the registration list.

    This is destructive by contract: the result replaces whatever match set
    the tournament had. ``seed`` makes the shuffle reproducible.
    """
    tournament_format = TournamentFormat(tournament_format)
    if rng is None and seed is not None:
        rng = random.Random(seed)
    if tournament_format == TournamentFormat.DOUBLE:
        return generate_double_elimination(tournament_id, participants, capacity=capacity,
                                           shuffle=shuffle, rng=rng)
    return generate_single_elimination(tournament_id, participants, capacity=capacity,
                                       shuffle=shuffle, rng=rng)


def set_winner(matches: MatchSet, match_id: str, winner_id: str,
               score: Optional[str] = None) -> MatchSet:
    """
    Declare the winner of a match.

    A different winner already on record is retracted first, so no
    downstream match keeps the participant who is no longer advancing.
    """
    match = get_match(matches, match_id)
    if match.winner_id is not None and match.winner_id != winner_id and not match.is_bye:
        if winner_id not in match.participant_ids:
            raise InvalidWinner(f"{winner_id} does not occupy a slot of match {match_id}")
        logger.info(f"Changing winner of {match_id} from {match.winner_id} to {winner_id}")
        matches = retract(matches, match_id)
    return advance(matches, match_id, winner_id, score)


def clear_winner(matches: MatchSet, match_id: str) -> MatchSet:
    """Undo the result of a match."""
    return retract(matches, match_id)


def toggle_winner(matches: MatchSet, match_id: str, participant_id: str,
                  score: Optional[str] = None) -> MatchSet:
    """Selecting the current winner clears the result; selecting anyone else sets it."""
    match = get_match(matches, match_id)
    if match.winner_id is not None and match.winner_id == participant_id and not match.is_bye:
        return clear_winner(matches, match_id)
    return set_winner(matches, match_id, participant_id, score)


def update_score(matches: MatchSet, match_id: str, score: Optional[str]) -> MatchSet:
    """Edit the advisory score of a decided match."""
    match = get_match(matches, match_id)
    if match.winner_id is None or match.is_bye:
        raise InvalidWinner(f"Match {match_id} has not been played; record a winner first")
    result = dict(matches)
    result[match_id] = replace(match, score=score or None)
    return result


def list_matches(matches: MatchSet,
                 bracket_section: Optional[Union[BracketSection, str]] = None) -> List[Match]:
    """Matches grouped by section, then round, then position."""
    ordered = sorted_matches(matches.values())
    if bracket_section is None:
        return ordered
    bracket_section = BracketSection(bracket_section)
    return [m for m in ordered if m.bracket_section == bracket_section]


def detect_format(matches: MatchSet) -> TournamentFormat:
    if find_section_match(matches, BracketSection.GRAND_FINAL) is not None:
        return TournamentFormat.DOUBLE
    return TournamentFormat.SINGLE


def get_champion(matches: MatchSet) -> Optional[str]:
    """The tournament winner, or None while it is undecided."""
    if not matches:
        return None
    grand_final = find_section_match(matches, BracketSection.GRAND_FINAL)
    if grand_final is None:
        winners = list_matches(matches, BracketSection.WINNERS)
        return winners[-1].winner_id
    reset = find_section_match(matches, BracketSection.GRAND_FINAL_RESET)
    if reset is not None and not is_inactive_reset(reset):
        return reset.winner_id
    return grand_final.winner_id


def is_complete(matches: MatchSet) -> bool:
    return get_champion(matches) is not None


def playable_matches(matches: MatchSet) -> List[Match]:
    """Matches with both participants known and no result yet."""
    return [m for m in sorted_matches(matches.values()) if m.is_playable]


def round_label(matches: MatchSet, match: Match) -> str:
    """Display name of the round ``match`` belongs to."""
    if match.bracket_section == BracketSection.GRAND_FINAL:
        return "Grand Final"
    if match.bracket_section == BracketSection.GRAND_FINAL_RESET:
        return "Bracket Reset"

    total_rounds = max(m.round for m in matches.values() if m.bracket_section == match.bracket_section)
    if match.bracket_section == BracketSection.LOSERS:
        return get_losers_round_name(match.round, total_rounds)

    teams_in_round = 2 ** (total_rounds - match.round + 1)
    if detect_format(matches) == TournamentFormat.DOUBLE:
        return get_winners_round_name(teams_in_round)
    return get_round_name(teams_in_round, 2 ** total_rounds)


def _slot_label(slot: Slot, names: Dict[str, str]) -> str:
    if slot.participant_id is not None:
        return names.get(slot.participant_id, "Unknown Entry")
    if isinstance(slot, FeederSlot):
        verb = "Winner" if slot.role == FeederRole.WINNER else "Loser"
        return f"{verb} {slot.from_match_id}"
    if isinstance(slot, EmptySlot):
        return "BYE"
    return "TBD"


def get_bracket_display(matches: MatchSet, participants: Sequence[Participant]) -> Dict:
    """
    Get bracket data formatted for UI display.

    Returns dict with:
    - 'format': tournament format value
    - 'sections': section value -> list of rounds, each
      {'round', 'name', 'matches': [...]}
    - 'champion': champion name or None
    - 'total_matches': matches that are (or will be) played
    - 'byes': number of bye matches
    """
    names = {p.id: p.name for p in participants}
    sections: Dict[str, List[Dict]] = {}

    for match in sorted_matches(matches.values()):
        rounds = sections.setdefault(match.bracket_section.value, [])
        if not rounds or rounds[-1]['round'] != match.round:
            rounds.append({
                'round': match.round,
                'name': round_label(matches, match),
                'matches': [],
            })
        entry = {
            'id': match.id,
            'position': match.position_in_round,
            'teams': (_slot_label(match.slot_a, names), _slot_label(match.slot_b, names)),
            'participant_ids': match.occupants,
            'winner': names.get(match.winner_id) if match.winner_id else None,
            'winner_id': match.winner_id,
            'score': match.score,
            'is_bye': match.is_bye,
            'is_playable': match.is_playable,
        }
        if is_inactive_reset(match):
            entry['teams'] = ("TBD", "TBD")
            entry['note'] = 'Only played if Losers Bracket Champion wins Grand Final'
        rounds[-1]['matches'].append(entry)

    champion_id = get_champion(matches)
    return {
        'format': detect_format(matches).value,
        'sections': sections,
        'champion': names.get(champion_id, champion_id) if champion_id else None,
        'total_matches': sum(1 for m in matches.values() if not m.is_bye),
        'byes': sum(1 for m in matches.values() if m.is_bye and m.winner_id is not None),
    }
