"""
Single elimination bracket generation.

Round 1 only contains play-in matches; bye recipients are written straight
into their round-2 slot. From round 2 on, every slot is a feeder reference to
the winner of a previous-round match: the match at position ``p`` feeds
position ``ceil(p / 2)`` of the next round, slot A for odd ``p`` and slot B
for even ``p``.
"""
import logging
import random
from typing import List, Optional, Sequence

from .models import (
    BracketSection,
    DirectSlot,
    EmptySlot,
    FeederRole,
    FeederSlot,
    Match,
    MatchSet,
    Participant,
    Slot,
)
from .seeding import FirstRound, plan_first_round, seed_participants

logger = logging.getLogger(__name__)


def get_round_name(teams_in_round: int, total_teams: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def match_code(prefix: str, round_num: int, position: int) -> str:
    """Match id such as W1-M3 or L2-M1."""
    return f"{prefix}{round_num}-M{position}"


def single_participant_bracket(tournament_id: str, participant: Participant) -> MatchSet:
    """A tournament of one: a single bye whose occupant has already won."""
    match = Match(
        id=match_code('W', 1, 1),
        tournament_id=tournament_id,
        bracket_section=BracketSection.WINNERS,
        round=1,
        position_in_round=1,
        slot_a=DirectSlot(participant.id),
        slot_b=EmptySlot(),
        winner_id=participant.id,
        is_bye=True,
    )
    return {match.id: match}


def build_winners_bracket(tournament_id: str, first_round: FirstRound) -> List[List[Match]]:
    """
    Build the winners-only match tree for ``first_round``.

    Returns the matches grouped per round, round 1 first. Requires at least
    two participants.
    """
    half = first_round.bracket_size // 2
    rounds = []

    round_one = []
    slots_by_position = {}
    for position, first, second in first_round.play_ins:
        match = Match(
            id=match_code('W', 1, position),
            tournament_id=tournament_id,
            bracket_section=BracketSection.WINNERS,
            round=1,
            position_in_round=position,
            slot_a=DirectSlot(first.id),
            slot_b=DirectSlot(second.id),
        )
        round_one.append(match)
        slots_by_position[position] = FeederSlot(match.id, FeederRole.WINNER)
    for position, participant in first_round.byes:
        slots_by_position[position] = DirectSlot(participant.id)
    rounds.append(round_one)

    current: List[Slot] = [slots_by_position[p] for p in range(1, half + 1)]
    round_num = 2
    while len(current) > 1:
        round_matches = []
        for i in range(0, len(current), 2):
            match = Match(
                id=match_code('W', round_num, i // 2 + 1),
                tournament_id=tournament_id,
                bracket_section=BracketSection.WINNERS,
                round=round_num,
                position_in_round=i // 2 + 1,
                slot_a=current[i],
                slot_b=current[i + 1],
            )
            round_matches.append(match)
        rounds.append(round_matches)
        current = [FeederSlot(m.id, FeederRole.WINNER) for m in round_matches]
        round_num += 1

    return rounds


def generate_single_elimination(tournament_id: str,
                                participants: Sequence[Participant],
                                capacity: Optional[int] = None,
                                shuffle: bool = True,
                                rng: Optional[random.Random] = None) -> MatchSet:
    """
    Generate the complete single elimination match set.

    Returns an empty set for no participants and a single resolved bye for
    one participant.
    """
    seeded = seed_participants(participants, capacity=capacity, shuffle=shuffle, rng=rng)
    if not seeded:
        return {}
    if len(seeded) == 1:
        return single_participant_bracket(tournament_id, seeded[0])

    first_round = plan_first_round(seeded)
    rounds = build_winners_bracket(tournament_id, first_round)
    matches = {m.id: m for round_matches in rounds for m in round_matches}

    logger.info(
        f"Generated single elimination bracket for {tournament_id}: "
        f"{len(seeded)} participants, bracket size {first_round.bracket_size}, "
        f"{len(rounds)} rounds, {len(matches)} matches"
    )
    return matches

