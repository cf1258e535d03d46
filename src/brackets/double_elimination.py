"""
Double elimination bracket generation.

In double elimination:
- Participants must lose twice to be eliminated
- Winners Bracket: participants that haven't lost yet
- Losers Bracket: participants that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: if the losers bracket champion wins the Grand Final, one
  more match decides the title

The losers bracket is built from cohorts of winners bracket losers, one
cohort per winners round before the final. The first cohort plays among
itself; every later cohort is interleaved with the current losers bracket
survivors. Extra losers rounds then halve the survivors until they no longer
outnumber the next cohort. An odd entrant out gets a pass-through match with
an empty second slot, which resolves as a bye once its feeder is decided.
The winners bracket final's loser meets the last survivor in the Losers
Final.
"""
import logging
import random
from typing import List, Optional, Sequence

from .elimination import build_winners_bracket, match_code, single_participant_bracket
from .models import (
    BracketSection,
    EmptySlot,
    FeederRole,
    FeederSlot,
    Match,
    MatchSet,
    Participant,
    Slot,
)
from .seeding import plan_first_round, seed_participants

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'GF'
BRACKET_RESET_ID = 'BR'


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


class _LosersBracketBuilder:
    """Accumulates losers bracket rounds, numbering them as they are added."""

    def __init__(self, tournament_id: str):
        self.tournament_id = tournament_id
        self.round_num = 0
        self.matches: List[Match] = []

    def play_round(self, entrants: List[Slot]) -> List[Slot]:
        """Pair entrants in order; returns feeder slots for the round's winners."""
        self.round_num += 1
        survivors = []
        for i in range(0, len(entrants), 2):
            position = i // 2 + 1
            opponent = entrants[i + 1] if i + 1 < len(entrants) else EmptySlot()
            match = Match(
                id=match_code('L', self.round_num, position),
                tournament_id=self.tournament_id,
                bracket_section=BracketSection.LOSERS,
                round=self.round_num,
                position_in_round=position,
                slot_a=entrants[i],
                slot_b=opponent,
            )
            self.matches.append(match)
            survivors.append(FeederSlot(match.id, FeederRole.WINNER))
        return survivors

    def final(self, survivor: Slot, winners_final: Match) -> Match:
        self.round_num += 1
        match = Match(
            id=match_code('L', self.round_num, 1),
            tournament_id=self.tournament_id,
            bracket_section=BracketSection.LOSERS,
            round=self.round_num,
            position_in_round=1,
            slot_a=survivor,
            slot_b=FeederSlot(winners_final.id, FeederRole.LOSER),
        )
        self.matches.append(match)
        return match


def _interleave(survivors: List[Slot], drops: List[Slot]) -> List[Slot]:
    merged = []
    for i in range(max(len(survivors), len(drops))):
        if i < len(survivors):
            merged.append(survivors[i])
        if i < len(drops):
            merged.append(drops[i])
    return merged


def build_losers_bracket(tournament_id: str, winners_rounds: List[List[Match]]) -> List[Match]:
    """
    Wire every non-bye winners bracket loser into the losers bracket.

    Returns the losers bracket matches in round order; the last one is the
    Losers Final.
    """
    builder = _LosersBracketBuilder(tournament_id)
    winners_final = winners_rounds[-1][0]

    cohorts = []
    for round_matches in winners_rounds[:-1]:
        cohorts.append([FeederSlot(m.id, FeederRole.LOSER) for m in round_matches if not m.is_bye])

    survivors: List[Slot] = []
    for idx, drops in enumerate(cohorts):
        if survivors:
            # Reversed so a survivor does not immediately meet whoever just beat them.
            entrants = _interleave(survivors, list(reversed(drops)))
        else:
            entrants = list(drops)

        if len(entrants) > 1:
            survivors = builder.play_round(entrants)
        else:
            survivors = entrants

        target = len(cohorts[idx + 1]) if idx + 1 < len(cohorts) else 1
        while len(survivors) > max(target, 1):
            survivors = builder.play_round(survivors)

    builder.final(survivors[0] if survivors else EmptySlot(), winners_final)
    return builder.matches


def generate_double_elimination(tournament_id: str,
                                participants: Sequence[Participant],
                                capacity: Optional[int] = None,
                                shuffle: bool = True,
                                rng: Optional[random.Random] = None) -> MatchSet:
    """
    Generate the complete double elimination match set.

    Fewer than two participants degrade to the single elimination special
    cases (no matches, or one resolved bye) with no grand final.
    """
    seeded = seed_participants(participants, capacity=capacity, shuffle=shuffle, rng=rng)
    if not seeded:
        return {}
    if len(seeded) == 1:
        return single_participant_bracket(tournament_id, seeded[0])

    first_round = plan_first_round(seeded)
    winners_rounds = build_winners_bracket(tournament_id, first_round)
    losers_matches = build_losers_bracket(tournament_id, winners_rounds)
    winners_final = winners_rounds[-1][0]
    losers_final = losers_matches[-1]

    grand_final = Match(
        id=GRAND_FINAL_ID,
        tournament_id=tournament_id,
        bracket_section=BracketSection.GRAND_FINAL,
        round=1,
        position_in_round=1,
        slot_a=FeederSlot(winners_final.id, FeederRole.WINNER),
        slot_b=FeederSlot(losers_final.id, FeederRole.WINNER),
    )
    bracket_reset = inactive_bracket_reset(tournament_id)

    matches = {}
    for round_matches in winners_rounds:
        for m in round_matches:
            matches[m.id] = m
    for m in losers_matches:
        matches[m.id] = m
    matches[grand_final.id] = grand_final
    matches[bracket_reset.id] = bracket_reset

    logger.info(
        f"Generated double elimination bracket for {tournament_id}: "
        f"{len(seeded)} participants, {len(winners_rounds)} winners rounds, "
        f"{losers_final.round} losers rounds, {len(matches)} matches"
    )
    return matches


def inactive_bracket_reset(tournament_id: str) -> Match:
    """The reset match in its default "not needed" state."""
    return Match(
        id=BRACKET_RESET_ID,
        tournament_id=tournament_id,
        bracket_section=BracketSection.GRAND_FINAL_RESET,
        round=1,
        position_in_round=1,
        slot_a=EmptySlot(),
        slot_b=EmptySlot(),
        is_bye=True,
    )
