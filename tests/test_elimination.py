"""
Unit tests for single elimination bracket generation.
"""
import random

import pytest

from brackets.elimination import generate_single_elimination, get_round_name, match_code
from brackets.graph import validate_match_set
from brackets.models import BracketSection, DirectSlot, EmptySlot, FeederRole, FeederSlot


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_get_round_name_final(self):
        """Test round name for 2 teams (Final)."""
        assert get_round_name(2, 8) == "Final"

    def test_get_round_name_semifinal(self):
        """Test round name for 4 teams (Semifinal)."""
        assert get_round_name(4, 8) == "Semifinal"

    def test_get_round_name_quarterfinal(self):
        """Test round name for 8 teams (Quarterfinal)."""
        assert get_round_name(8, 16) == "Quarterfinal"

    def test_get_round_name_round_of_16(self):
        """Test round name for 16 teams."""
        assert get_round_name(16, 16) == "Round of 16"

    def test_match_code(self):
        """Test match ids encode prefix, round and position."""
        assert match_code('W', 1, 3) == 'W1-M3'
        assert match_code('L', 2, 1) == 'L2-M1'


class TestDegenerateBrackets:
    """Tests for fields too small to pair."""

    def test_no_participants(self):
        """Test an empty field yields an empty match set."""
        assert generate_single_elimination('t1', [], shuffle=False) == {}

    def test_single_participant(self, make_participants):
        """Test one entrant gets a resolved bye and is the champion."""
        matches = generate_single_elimination('t1', make_participants(1), shuffle=False)
        assert list(matches) == ['W1-M1']
        match = matches['W1-M1']
        assert match.is_bye
        assert match.winner_id == 'p1'
        assert match.slot_a == DirectSlot('p1')
        assert match.slot_b == EmptySlot()

    def test_two_participants(self, make_participants):
        """Test 2 entrants play exactly one match and no byes."""
        matches = generate_single_elimination('t1', make_participants(2), shuffle=False)
        assert list(matches) == ['W1-M1']
        match = matches['W1-M1']
        assert not match.is_bye
        assert match.occupants == ('p1', 'p2')
        assert match.tournament_id == 't1'


class TestBracketStructure:
    """Tests for the generated winners bracket."""

    def test_five_participants(self, make_participants):
        """Test 5 entrants: one play-in feeding round 2, a round-2 pairing of bye recipients, a final."""
        matches = generate_single_elimination('t1', make_participants(5), shuffle=False)
        assert sorted(matches) == ['W1-M1', 'W2-M1', 'W2-M2', 'W3-M1']

        assert matches['W1-M1'].occupants == ('p4', 'p5')
        assert matches['W2-M1'].slot_a == FeederSlot('W1-M1', FeederRole.WINNER)
        assert matches['W2-M1'].slot_b == DirectSlot('p1')
        assert matches['W2-M2'].occupants == ('p2', 'p3')
        assert matches['W3-M1'].slot_a == FeederSlot('W2-M1', FeederRole.WINNER)
        assert matches['W3-M1'].slot_b == FeederSlot('W2-M2', FeederRole.WINNER)

    def test_eight_participants(self, make_participants):
        """Test a full bracket of 8 has 4, 2 and 1 matches per round."""
        matches = generate_single_elimination('t1', make_participants(8), shuffle=False)
        per_round = {}
        for match in matches.values():
            per_round[match.round] = per_round.get(match.round, 0) + 1
        assert per_round == {1: 4, 2: 2, 3: 1}
        assert matches['W1-M4'].occupants == ('p7', 'p8')

    def test_feeders_map_position_to_half(self, make_participants):
        """Test position p feeds position ceil(p/2), slot A when odd."""
        matches = generate_single_elimination('t1', make_participants(16), shuffle=False)
        for match in matches.values():
            for side, slot in (('a', match.slot_a), ('b', match.slot_b)):
                if isinstance(slot, FeederSlot):
                    source = matches[slot.from_match_id]
                    assert source.round == match.round - 1
                    assert (source.position_in_round + 1) // 2 == match.position_in_round
                    assert (source.position_in_round % 2 == 1) == (side == 'a')

    @pytest.mark.parametrize("count", range(2, 18))
    def test_match_count(self, make_participants, count):
        """Test N entrants produce N-1 matches and no byes."""
        matches = generate_single_elimination('t1', make_participants(count), shuffle=False)
        assert len(matches) == count - 1
        assert not any(m.is_bye for m in matches.values())
        assert all(m.bracket_section == BracketSection.WINNERS for m in matches.values())
        validate_match_set(matches)

    @pytest.mark.parametrize("count", range(2, 18))
    def test_every_participant_placed_once(self, make_participants, count):
        """Test every entrant occupies exactly one direct slot."""
        matches = generate_single_elimination('t1', make_participants(count), shuffle=False)
        direct = [s.participant_id for m in matches.values() for s in (m.slot_a, m.slot_b)
                  if isinstance(s, DirectSlot)]
        assert sorted(direct) == sorted(f'p{i}' for i in range(1, count + 1))

    def test_shuffle_with_rng(self, make_participants):
        """Test the same rng seed produces the same bracket."""
        first = generate_single_elimination('t1', make_participants(9), rng=random.Random(7))
        second = generate_single_elimination('t1', make_participants(9), rng=random.Random(7))
        assert first == second

    def test_capacity(self, make_participants):
        """Test capacity leaves surplus entrants out of the bracket."""
        matches = generate_single_elimination('t1', make_participants(6), capacity=4, shuffle=False)
        assert len(matches) == 3
        placed = {pid for m in matches.values() for pid in m.participant_ids}
        assert placed == {'p1', 'p2', 'p3', 'p4'}
