"""
Flask web application for the bracket engine.

A thin JSON layer: every request loads one tournament's files, applies a
single bracket operation and saves the result while holding that
tournament's file lock.
"""
import os
import uuid

from filelock import Timeout
from flask import Flask, jsonify, request

import store
from brackets.bracket import (
    clear_winner,
    generate_bracket,
    get_bracket_display,
    get_champion,
    list_matches,
    set_winner,
    update_score,
)
from brackets.errors import BracketError, DuplicateParticipant, UnknownMatch
from brackets.models import Participant, TournamentFormat, match_to_dict

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = float(os.environ.get('BRACKET_LOCK_TIMEOUT', store.DEFAULT_LOCK_TIMEOUT))
SHUFFLE_PARTICIPANTS = os.environ.get('BRACKET_SHUFFLE', '1') != '0'


def _lock(tournament_id):
    return store.tournament_lock(DATA_DIR, tournament_id, timeout=LOCK_TIMEOUT)


def _require_bracket(tournament_id):
    return store.require_bracket(DATA_DIR, tournament_id)


def _is_optional_int(value):
    # JSON true/false arrive as bool, which is an int subclass.
    return value is None or (isinstance(value, int) and not isinstance(value, bool))


def _is_optional_str(value):
    return value is None or isinstance(value, str)


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    status = 404 if isinstance(error, UnknownMatch) else 400
    app.logger.warning(f'Bracket operation rejected: {error}')
    return jsonify({'error': str(error)}), status


@app.errorhandler(store.InvalidTournamentId)
def handle_invalid_tournament(error):
    return jsonify({'error': str(error)}), 400


@app.errorhandler(store.BracketNotFound)
def handle_missing_bracket(error):
    return jsonify({'error': str(error)}), 404


@app.errorhandler(Timeout)
def handle_lock_timeout(error):
    app.logger.error(f'Timed out waiting for tournament lock: {error}')
    return jsonify({'error': 'Tournament is busy, try again'}), 409


@app.route('/api/tournaments/<tournament_id>/participants', methods=['GET'])
def api_list_participants(tournament_id):
    """List registered participants."""
    with _lock(tournament_id):
        participants = store.load_participants(DATA_DIR, tournament_id)
    return jsonify({'participants': [{'id': p.id, 'name': p.name} for p in participants]})


@app.route('/api/tournaments/<tournament_id>/participants', methods=['POST'])
def api_register_participant(tournament_id):
    """Register a participant. Does not touch an existing bracket."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Participant name is required'}), 400
    participant = Participant(id=str(data.get('id') or uuid.uuid4()), name=name)

    with _lock(tournament_id):
        participants = store.load_participants(DATA_DIR, tournament_id)
        if any(p.id == participant.id for p in participants):
            raise DuplicateParticipant(f"Participant {participant.id} is already registered")
        participants.append(participant)
        store.save_participants(DATA_DIR, tournament_id, participants)

    app.logger.info(f'Registered {participant.name} ({participant.id}) for {tournament_id}')
    return jsonify({'id': participant.id, 'name': participant.name}), 201


@app.route('/api/tournaments/<tournament_id>/participants/<participant_id>', methods=['DELETE'])
def api_remove_participant(tournament_id, participant_id):
    """Remove a participant from the registration list."""
    with _lock(tournament_id):
        participants = store.load_participants(DATA_DIR, tournament_id)
        remaining = [p for p in participants if p.id != participant_id]
        if len(remaining) == len(participants):
            return jsonify({'error': f'Unknown participant: {participant_id}'}), 404
        store.save_participants(DATA_DIR, tournament_id, remaining)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['POST'])
def api_generate_bracket(tournament_id):
    """Generate the bracket, discarding any existing one."""
    data = request.get_json(silent=True) or {}
    try:
        tournament_format = TournamentFormat(data.get('format', TournamentFormat.SINGLE.value))
    except ValueError:
        return jsonify({'error': f"Unknown format: {data.get('format')}"}), 400
    capacity = data.get('capacity')
    seed = data.get('seed')
    if not _is_optional_int(capacity):
        return jsonify({'error': 'capacity must be an integer'}), 400
    if not _is_optional_int(seed):
        return jsonify({'error': 'seed must be an integer'}), 400

    with _lock(tournament_id):
        participants = store.load_participants(DATA_DIR, tournament_id)
        matches = generate_bracket(
            tournament_id,
            participants,
            tournament_format,
            capacity=capacity,
            shuffle=SHUFFLE_PARTICIPANTS,
            seed=seed,
        )
        store.save_bracket(DATA_DIR, tournament_id, tournament_format, matches)

    app.logger.info(f'Generated {tournament_format.value} bracket for {tournament_id} ({len(matches)} matches)')
    return jsonify({
        'success': True,
        'format': tournament_format.value,
        'matches': [match_to_dict(m) for m in list_matches(matches)],
    }), 201


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_bracket_display(tournament_id):
    """Bracket grouped by section and round, with names resolved."""
    with _lock(tournament_id):
        _, matches = _require_bracket(tournament_id)
        participants = store.load_participants(DATA_DIR, tournament_id)
    return jsonify(get_bracket_display(matches, participants))


@app.route('/api/tournaments/<tournament_id>/matches', methods=['GET'])
def api_list_matches(tournament_id):
    """Ordered match list, optionally restricted to one bracket section."""
    section = request.args.get('section')
    with _lock(tournament_id):
        _, matches = _require_bracket(tournament_id)
    try:
        ordered = list_matches(matches, section or None)
    except ValueError:
        return jsonify({'error': f'Unknown bracket section: {section}'}), 400
    return jsonify({'matches': [match_to_dict(m) for m in ordered]})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/winner', methods=['POST'])
def api_set_winner(tournament_id, match_id):
    """Declare a match winner and advance it through the bracket."""
    data = request.get_json(silent=True) or {}
    winner_id = data.get('winner_id')
    if not winner_id or not isinstance(winner_id, str):
        return jsonify({'error': 'Missing winner_id'}), 400
    if not _is_optional_str(data.get('score')):
        return jsonify({'error': 'score must be a string'}), 400

    with _lock(tournament_id):
        tournament_format, matches = _require_bracket(tournament_id)
        matches = set_winner(matches, match_id, winner_id, data.get('score'))
        store.save_bracket(DATA_DIR, tournament_id, tournament_format, matches)

    return jsonify({
        'success': True,
        'match': match_to_dict(matches[match_id]),
        'champion': get_champion(matches),
    })


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/winner', methods=['DELETE'])
def api_clear_winner(tournament_id, match_id):
    """Clear a match result and everything that followed from it."""
    with _lock(tournament_id):
        tournament_format, matches = _require_bracket(tournament_id)
        matches = clear_winner(matches, match_id)
        store.save_bracket(DATA_DIR, tournament_id, tournament_format, matches)

    return jsonify({'success': True, 'match': match_to_dict(matches[match_id])})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/score', methods=['POST'])
def api_update_score(tournament_id, match_id):
    """Edit the score of a decided match."""
    data = request.get_json(silent=True) or {}
    if not _is_optional_str(data.get('score')):
        return jsonify({'error': 'score must be a string'}), 400
    with _lock(tournament_id):
        tournament_format, matches = _require_bracket(tournament_id)
        matches = update_score(matches, match_id, data.get('score'))
        store.save_bracket(DATA_DIR, tournament_id, tournament_format, matches)

    return jsonify({'success': True, 'match': match_to_dict(matches[match_id])})


if __name__ == '__main__':
    app.run(debug=True)
