"""
Tests for match graph helpers, validation and serialization.
"""
from dataclasses import replace

import pytest

from brackets.errors import MalformedGraph
from brackets.graph import (
    build_feeder_index,
    evaluate_bye,
    get_match,
    sorted_matches,
    validate_match_set,
)
from brackets.models import (
    BracketSection,
    DirectSlot,
    EmptySlot,
    FeederRole,
    FeederSlot,
    Match,
    TournamentFormat,
    match_from_dict,
    match_to_dict,
    matches_from_list,
    matches_to_list,
    slot_from_dict,
)

DOUBLE = TournamentFormat.DOUBLE


def make_match(match_id, slot_a, slot_b, **kwargs):
    defaults = dict(
        tournament_id='t1',
        bracket_section=BracketSection.WINNERS,
        round=1,
        position_in_round=1,
    )
    defaults.update(kwargs)
    return Match(id=match_id, slot_a=slot_a, slot_b=slot_b, **defaults)


class TestMatchModel:
    """Tests for Match convenience properties."""

    def test_loser_id(self):
        """Test the loser is the other occupant of a decided match."""
        match = make_match('W1-M1', DirectSlot('a'), DirectSlot('b'), winner_id='b')
        assert match.loser_id == 'a'

    def test_bye_has_no_loser(self):
        """Test a bye produces no loser."""
        match = make_match('W1-M1', DirectSlot('a'), EmptySlot(), winner_id='a', is_bye=True)
        assert match.loser_id is None

    def test_is_playable(self):
        """Test only full, undecided matches are playable."""
        assert make_match('W1-M1', DirectSlot('a'), DirectSlot('b')).is_playable
        assert not make_match('W1-M1', DirectSlot('a'), FeederSlot('W0', FeederRole.WINNER)).is_playable
        assert not make_match('W1-M1', DirectSlot('a'), DirectSlot('b'), winner_id='a').is_playable


class TestGraphHelpers:
    """Tests for ordering, lookup and bye evaluation."""

    def test_sorted_matches_order(self, build_bracket):
        """Test matches sort by section, round, then position."""
        ordered = [m.id for m in sorted_matches(build_bracket(4, DOUBLE).values())]
        assert ordered == ['W1-M1', 'W1-M2', 'W2-M1', 'L1-M1', 'L2-M1', 'GF', 'BR']

    def test_build_feeder_index(self, build_bracket):
        """Test the index maps a match outcome to the slot it fills."""
        index = build_feeder_index(build_bracket(4, DOUBLE))
        assert index[('W1-M1', FeederRole.WINNER)] == [('W2-M1', 'a')]
        assert index[('W1-M1', FeederRole.LOSER)] == [('L1-M1', 'a')]
        assert index[('W2-M1', FeederRole.LOSER)] == [('L2-M1', 'b')]
        assert ('GF', FeederRole.WINNER) not in index

    def test_get_match_unknown(self, build_bracket):
        """Test lookup of an unknown id raises a KeyError subclass."""
        with pytest.raises(KeyError):
            get_match(build_bracket(2), 'nope')

    def test_evaluate_bye(self):
        """Test a bye needs one occupant and a permanently empty opposite slot."""
        assert evaluate_bye(make_match('L1-M1', EmptySlot(), FeederSlot('W1-M1', FeederRole.LOSER, 'x')))
        assert not evaluate_bye(make_match('L1-M1', EmptySlot(), FeederSlot('W1-M1', FeederRole.LOSER)))
        assert not evaluate_bye(make_match('W2-M1', DirectSlot('x'), FeederSlot('W1-M1', FeederRole.WINNER)))


class TestValidateMatchSet:
    """Tests for structural validation."""

    @pytest.mark.parametrize("count", [2, 5, 8, 13])
    def test_played_out_graph_is_valid(self, build_bracket, play_out, count):
        """Test graphs stay valid all the way through a tournament."""
        validate_match_set(play_out(build_bracket(count, DOUBLE)))

    def test_key_mismatch(self, build_bracket):
        """Test a match stored under the wrong key is rejected."""
        matches = build_bracket(2)
        with pytest.raises(MalformedGraph):
            validate_match_set({'other': matches['W1-M1']})

    def test_feeder_must_precede(self, build_bracket):
        """Test a feeder from the same round is rejected."""
        matches = build_bracket(4)
        matches['W1-M2'] = replace(matches['W1-M2'], slot_b=FeederSlot('W1-M1', FeederRole.LOSER))
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_feeder_cycle(self, build_bracket):
        """Test a feeder pointing forward (a cycle) is rejected."""
        matches = build_bracket(4)
        matches['W1-M1'] = replace(matches['W1-M1'], slot_a=FeederSlot('W2-M1', FeederRole.WINNER))
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_duplicate_feeder_target(self, build_bracket):
        """Test one outcome cannot feed two slots."""
        matches = build_bracket(4)
        matches['W2-M1'] = replace(matches['W2-M1'], slot_b=FeederSlot('W1-M1', FeederRole.WINNER))
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_winner_outside_slots(self, build_bracket):
        """Test a winner that does not occupy the match is rejected."""
        matches = build_bracket(2)
        matches['W1-M1'] = replace(matches['W1-M1'], winner_id='p9')
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_stale_feeder_occupant(self, build_bracket):
        """Test a resolved feeder slot must match its source's outcome."""
        matches = build_bracket(4)
        matches['W2-M1'] = replace(matches['W2-M1'],
                                   slot_a=FeederSlot('W1-M1', FeederRole.WINNER, 'p1'))
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_false_bye(self, build_bracket):
        """Test a full match marked as a bye is rejected."""
        matches = build_bracket(2)
        matches['W1-M1'] = replace(matches['W1-M1'], is_bye=True, winner_id='p1')
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)

    def test_two_grand_finals(self, build_bracket):
        """Test only one grand final is allowed."""
        matches = build_bracket(4, DOUBLE)
        matches['GF2'] = replace(matches['GF'], id='GF2')
        with pytest.raises(MalformedGraph):
            validate_match_set(matches)


class TestSerialization:
    """Tests for dict conversion used by storage and the API."""

    def test_round_trip(self, build_bracket, play_out):
        """Test a played double elimination bracket survives conversion."""
        matches = play_out(build_bracket(6, DOUBLE), pick=lambda m: m.participant_ids[-1])
        assert matches_from_list(matches_to_list(matches)) == matches

    def test_slot_kinds(self):
        """Test each slot kind converts to its tagged dict."""
        feeder = FeederSlot('W1-M1', FeederRole.LOSER, 'p2')
        data = match_to_dict(make_match('L1-M1', feeder, EmptySlot()))
        assert data['slot_a'] == {'kind': 'feeder', 'from_match_id': 'W1-M1',
                                  'role': 'loser', 'participant_id': 'p2'}
        assert data['slot_b'] == {'kind': 'empty'}
        assert slot_from_dict({'kind': 'direct', 'participant_id': 'p1'}) == DirectSlot('p1')

    def test_unknown_slot_kind(self):
        """Test an unknown slot kind is reported as a malformed graph."""
        with pytest.raises(MalformedGraph):
            slot_from_dict({'kind': 'wildcard'})

    def test_invalid_record(self):
        """Test a record with a bad section is reported as a malformed graph."""
        data = match_to_dict(make_match('W1-M1', DirectSlot('a'), DirectSlot('b')))
        data['bracket_section'] = 'consolation'
        with pytest.raises(MalformedGraph):
            match_from_dict(data)

    def test_duplicate_ids(self):
        """Test the same match id twice is rejected."""
        data = match_to_dict(make_match('W1-M1', DirectSlot('a'), DirectSlot('b')))
        with pytest.raises(MalformedGraph):
            matches_from_list([data, dict(data)])
