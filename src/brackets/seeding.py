"""
Bracket sizing and seeding.

The bracket capacity is the next power of two at or above the number of
entrants. With capacity B, ``N - B/2`` play-in matches are needed in round 1;
everybody else receives a bye straight into round 2.
"""
import logging
import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import DuplicateParticipant, InvalidParticipantCount
from .models import Participant

logger = logging.getLogger(__name__)


def calculate_bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_participants <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_participants))


def calculate_byes(num_participants: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_participants) - num_participants


def count_play_in_matches(num_participants: int) -> int:
    """Number of round-1 matches actually played."""
    if num_participants < 2:
        return 0
    return num_participants - calculate_bracket_size(num_participants) // 2


def play_in_positions(bracket_size: int, play_in_count: int) -> List[int]:
    """
    Round-1 positions that hold a play-in match.

    Odd positions are used first so that, where possible, every play-in
    winner meets a bye recipient in round 2 rather than another play-in
    winner. Positions are 1-based and refer to the ``bracket_size // 2``
    virtual slots of round 1.
    """
    half = bracket_size // 2
    ordered = list(range(1, half + 1, 2)) + list(range(2, half + 1, 2))
    return sorted(ordered[:play_in_count])


@dataclass(frozen=True)
class FirstRound:
    """Round-1 layout: who plays in, who skips to round 2, and where."""
    bracket_size: int
    play_ins: List[Tuple[int, Participant, Participant]] = field(default_factory=list)
    byes: List[Tuple[int, Participant]] = field(default_factory=list)

    @property
    def num_participants(self) -> int:
        return 2 * len(self.play_ins) + len(self.byes)


def seed_participants(participants: Sequence[Participant],
                      capacity: Optional[int] = None,
                      shuffle: bool = True,
                      rng: Optional[random.Random] = None) -> List[Participant]:
    """
    Order participants for placement into the bracket.

    Arrival order carries no seeding meaning; entrants are shuffled unless
    ``shuffle`` is False. When more participants are registered than
    ``capacity`` allows, the surplus (after shuffling) is left out.
    """
    if capacity is not None and capacity < 0:
        raise InvalidParticipantCount(f"Capacity must not be negative (got {capacity})")

    seen = set()
    for participant in participants:
        if participant.id in seen:
            raise DuplicateParticipant(f"Participant {participant.id} is registered more than once")
        seen.add(participant.id)

    seeded = list(participants)
    if shuffle:
        (rng or random.Random()).shuffle(seeded)

    if capacity is not None and len(seeded) > capacity:
        logger.warning(
            f"{len(seeded)} participants registered but capacity is {capacity}; "
            f"leaving out {len(seeded) - capacity}"
        )
        seeded = seeded[:capacity]
    return seeded


def plan_first_round(seeded: Sequence[Participant]) -> FirstRound:
    """
    Split seeded participants into play-in pairs and bye recipients.

    The first ``B - N`` participants in seeding order receive the byes; the
    rest are paired off in order into play-in matches.
    """
    num = len(seeded)
    bracket_size = calculate_bracket_size(num)
    if num < 2:
        return FirstRound(bracket_size=bracket_size,
                          byes=[(1, p) for p in seeded])

    half = bracket_size // 2
    num_byes = calculate_byes(num)
    bye_recipients = list(seeded[:num_byes])
    players = list(seeded[num_byes:])

    positions = play_in_positions(bracket_size, count_play_in_matches(num))
    play_ins = []
    for i, position in enumerate(positions):
        play_ins.append((position, players[2 * i], players[2 * i + 1]))

    taken = set(positions)
    bye_positions = [p for p in range(1, half + 1) if p not in taken]
    byes = list(zip(bye_positions, bye_recipients))

    return FirstRound(bracket_size=bracket_size, play_ins=play_ins, byes=byes)
