"""
Advancement: propagate the outcome of a decided match through the bracket.

The winner fills every slot fed by ``{match, winner}``; for matches that were
actually played, the loser fills every slot fed by ``{match, loser}`` (only
winners bracket matches have such slots). A downstream match that is left
with one occupant and a permanently empty opposite slot is a resolved bye:
its occupant wins automatically and is propagated in turn. Deciding the
grand final settles the bracket reset.
"""
import logging
from collections import deque
from dataclasses import replace
from typing import Optional

from .errors import InvalidWinner, MalformedGraph
from .graph import (
    build_feeder_index,
    bye_occupant,
    deactivate_reset,
    evaluate_bye,
    find_section_match,
    get_match,
    validate_match_set,
    winners_side,
)
from .models import BracketSection, DirectSlot, FeederRole, Match, MatchSet

logger = logging.getLogger(__name__)


def advance(matches: MatchSet, match_id: str, winner_id: str,
            score: Optional[str] = None) -> MatchSet:
    """
    Record ``winner_id`` as the winner of ``match_id`` and propagate it.

    Returns a new MatchSet; ``matches`` is left untouched. Setting the
    current winner again only updates the score. A bye is a no-op when
    called with its occupant.
    """
    validate_match_set(matches)
    result = dict(matches)
    match = get_match(result, match_id)

    if winner_id is None or winner_id not in match.participant_ids:
        raise InvalidWinner(f"{winner_id} does not occupy a slot of match {match_id}")
    if match.is_bye:
        return result
    if not match.is_full:
        raise InvalidWinner(f"Match {match_id} is still waiting for an opponent")
    if match.winner_id == winner_id:
        if score is not None:
            result[match_id] = replace(match, score=score)
        return result
    if match.winner_id is not None:
        raise InvalidWinner(
            f"Match {match_id} is already won by {match.winner_id}; clear it before changing the winner"
        )

    result[match_id] = replace(match, winner_id=winner_id, score=score)
    logger.debug(f"{winner_id} wins {match_id}")
    _propagate(result, match_id)
    return result


def _propagate(result: MatchSet, match_id: str) -> None:
    index = build_feeder_index(result)
    queue = deque([match_id])
    steps = 0
    while queue:
        steps += 1
        if steps > len(result):
            raise MalformedGraph(f"Advancement from {match_id} does not terminate")
        decided = result[queue.popleft()]

        for role, participant_id in ((FeederRole.WINNER, decided.winner_id),
                                     (FeederRole.LOSER, decided.loser_id)):
            if participant_id is None:
                continue
            for target_id, side in index.get((decided.id, role), []):
                downstream = _fill_slot(result[target_id], side, participant_id)
                if not downstream.is_bye and evaluate_bye(downstream):
                    downstream = replace(downstream, is_bye=True, winner_id=bye_occupant(downstream))
                    logger.debug(f"{downstream.winner_id} gets a bye through {target_id}")
                    queue.append(target_id)
                result[target_id] = downstream

        if decided.bracket_section == BracketSection.GRAND_FINAL:
            _settle_bracket_reset(result, decided)


def _fill_slot(match: Match, side: str, participant_id: str) -> Match:
    slot = match.slot(side)
    if slot.participant_id == participant_id:
        return match
    if slot.participant_id is not None:
        raise MalformedGraph(
            f"Slot {side.upper()} of {match.id} already holds {slot.participant_id}"
        )
    logger.debug(f"{participant_id} moves into slot {side.upper()} of {match.id}")
    return match.with_slot(side, replace(slot, participant_id=participant_id))


def _settle_bracket_reset(result: MatchSet, grand_final: Match) -> None:
    reset = find_section_match(result, BracketSection.GRAND_FINAL_RESET)
    if reset is None:
        return
    if grand_final.winner_id == grand_final.slot(winners_side(result, grand_final)).participant_id:
        result[reset.id] = deactivate_reset(reset)
        logger.info(f"{grand_final.winner_id} wins the grand final outright; {reset.id} is not needed")
        return

    first, second = grand_final.occupants
    result[reset.id] = replace(
        reset,
        slot_a=DirectSlot(first),
        slot_b=DirectSlot(second),
        winner_id=None,
        score=None,
        is_bye=False,
    )
    logger.info(f"Losers bracket champion {grand_final.winner_id} wins the grand final; {reset.id} is activated")
