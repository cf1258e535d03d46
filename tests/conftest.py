"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/
"""
import os
import sys

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.bracket import generate_bracket, playable_matches, set_winner
from brackets.models import Participant, TournamentFormat


def participants_for(count):
    return [Participant(id=f'p{i}', name=f'Player {i}') for i in range(1, count + 1)]


def build(count, tournament_format=TournamentFormat.SINGLE, tournament_id='t1'):
    """Generate a bracket in registration order."""
    return generate_bracket(tournament_id, participants_for(count), tournament_format, shuffle=False)


def play_out(matches, pick=lambda match: match.participant_ids[0]):
    """Decide every playable match until none is left; ``pick`` chooses the winner."""
    while True:
        ready = playable_matches(matches)
        if not ready:
            return matches
        match = ready[0]
        matches = set_winner(matches, match.id, pick(match))


@pytest.fixture
def make_participants():
    return participants_for


@pytest.fixture
def build_bracket():
    return build


@pytest.fixture(name="play_out")
def play_out_fixture():
    return play_out


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at an empty temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'SHUFFLE_PARTICIPANTS', False)
    return data_dir


@pytest.fixture
def client(temp_data_dir):
    """Create a test client bound to the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
