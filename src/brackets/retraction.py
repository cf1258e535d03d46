"""
Retraction: undo a match result and everything that followed from it.

Clearing a winner vacates every downstream slot that received the old
winner or loser. A downstream match that loses a participant also loses its
own result, so the walk continues from there until no further match is
affected. Clearing the grand final always puts the bracket reset back into
its inactive state.
"""
import logging
from collections import deque
from dataclasses import replace
from typing import List, Optional, Tuple

from .errors import ByeRetraction
from .graph import (
    build_feeder_index,
    deactivate_reset,
    find_section_match,
    get_match,
    is_inactive_reset,
    validate_match_set,
)
from .models import BracketSection, FeederRole, Match, MatchSet

logger = logging.getLogger(__name__)


def retract(matches: MatchSet, match_id: str) -> MatchSet:
    """
    Clear the result of ``match_id`` and cascade the change downstream.

    Returns a new MatchSet; ``matches`` is left untouched. Clearing a match
    without a result is a no-op. Byes cannot be cleared: their result
    follows from the bracket structure (or from an upstream match, which is
    what must be cleared instead).
    """
    validate_match_set(matches)
    result = dict(matches)
    match = get_match(result, match_id)

    if match.is_bye:
        raise ByeRetraction(f"Match {match_id} is a bye; there is no result to clear")
    if match.winner_id is None:
        return result

    queue = deque([(match_id, _outcomes(match))])
    result[match_id] = replace(match, winner_id=None, score=None)
    logger.debug(f"Cleared result of {match_id}")

    index = build_feeder_index(result)
    visited = set()
    while queue:
        current_id, outcomes = queue.popleft()
        if current_id in visited:
            continue
        visited.add(current_id)

        for role, participant_id in outcomes:
            if participant_id is None:
                continue
            for target_id, side in index.get((current_id, role), []):
                downstream = result[target_id]
                if downstream.slot(side).participant_id is None:
                    continue
                if downstream.winner_id is not None:
                    queue.append((target_id, _outcomes(downstream)))
                result[target_id] = _vacate(downstream, side)

        if result[current_id].bracket_section == BracketSection.GRAND_FINAL:
            _deactivate_bracket_reset(result)

    return result


def _outcomes(match: Match) -> List[Tuple[FeederRole, Optional[str]]]:
    return [(FeederRole.WINNER, match.winner_id), (FeederRole.LOSER, match.loser_id)]


def _vacate(match: Match, side: str) -> Match:
    logger.debug(f"Vacating slot {side.upper()} of {match.id}")
    slot = match.slot(side)
    # With a feeder slot pending again the match cannot be a resolved bye.
    return replace(
        match.with_slot(side, replace(slot, participant_id=None)),
        winner_id=None,
        score=None,
        is_bye=False,
    )


def _deactivate_bracket_reset(result: MatchSet) -> None:
    reset = find_section_match(result, BracketSection.GRAND_FINAL_RESET)
    if reset is None or is_inactive_reset(reset):
        return
    result[reset.id] = deactivate_reset(reset)
    logger.info(f"Grand final result cleared; {reset.id} is deactivated")
