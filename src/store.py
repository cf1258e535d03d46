"""
YAML storage for tournaments.

Each tournament lives in its own directory under the data directory:

    <data_dir>/<tournament_id>/participants.yaml
    <data_dir>/<tournament_id>/bracket.yaml
    <data_dir>/.locks/<tournament_id>.lock

The bracket engine is lock-free; callers hold ``tournament_lock`` around each
load-apply-save cycle so concurrent writers to one tournament are serialized.
"""
import logging
import os
import re
from typing import List, Optional, Tuple

import yaml
from filelock import FileLock

from brackets.models import (
    MatchSet,
    Participant,
    TournamentFormat,
    matches_from_list,
    matches_to_list,
)

logger = logging.getLogger(__name__)

PARTICIPANTS_FILE = 'participants.yaml'
BRACKET_FILE = 'bracket.yaml'
LOCKS_DIR = '.locks'
DEFAULT_LOCK_TIMEOUT = 10

_TOURNAMENT_ID_RE = re.compile(r'^[A-Za-z0-9_-]+$')


class InvalidTournamentId(ValueError):
    """Raised when a tournament id cannot be used as a directory name."""


class BracketNotFound(LookupError):
    """Raised when a tournament has no generated bracket yet."""


def tournament_dir(data_dir: str, tournament_id: str) -> str:
    """Directory holding one tournament's files."""
    if not tournament_id or not _TOURNAMENT_ID_RE.match(tournament_id):
        raise InvalidTournamentId(f"Invalid tournament id: {tournament_id!r}")
    return os.path.join(data_dir, tournament_id)


def _file_path(data_dir: str, tournament_id: str, filename: str) -> str:
    return os.path.join(tournament_dir(data_dir, tournament_id), filename)


def tournament_lock(data_dir: str, tournament_id: str,
                    timeout: float = DEFAULT_LOCK_TIMEOUT) -> FileLock:
    """File lock serializing writers of one tournament.

    Locks live in a shared directory so that taking one does not create the
    tournament directory.
    """
    tournament_dir(data_dir, tournament_id)
    locks_dir = os.path.join(data_dir, LOCKS_DIR)
    os.makedirs(locks_dir, exist_ok=True)
    return FileLock(os.path.join(locks_dir, f"{tournament_id}.lock"), timeout=timeout)


def load_participants(data_dir: str, tournament_id: str) -> List[Participant]:
    """Load the registration list from YAML."""
    path = _file_path(data_dir, tournament_id, PARTICIPANTS_FILE)
    if not os.path.exists(path):
        return []
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return []
    return [Participant(id=str(entry['id']), name=str(entry['name'])) for entry in data]


def save_participants(data_dir: str, tournament_id: str, participants: List[Participant]):
    """Save the registration list to YAML."""
    path = _file_path(data_dir, tournament_id, PARTICIPANTS_FILE)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump([{'id': p.id, 'name': p.name} for p in participants], f,
                  default_flow_style=False, allow_unicode=True)


def load_bracket(data_dir: str, tournament_id: str) -> Tuple[Optional[TournamentFormat], MatchSet]:
    """Load the tournament's format and match set; (None, {}) before generation."""
    path = _file_path(data_dir, tournament_id, BRACKET_FILE)
    if not os.path.exists(path):
        return None, {}
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return None, {}
    tournament_format = TournamentFormat(data['format']) if data.get('format') else None
    return tournament_format, matches_from_list(data.get('matches', []))


def save_bracket(data_dir: str, tournament_id: str,
                 tournament_format: TournamentFormat, matches: MatchSet):
    """Save the full match set, replacing whatever was stored before."""
    path = _file_path(data_dir, tournament_id, BRACKET_FILE)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump({
            'format': TournamentFormat(tournament_format).value,
            'matches': matches_to_list(matches),
        }, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    logger.debug(f"Saved {len(matches)} matches for {tournament_id}")


def require_bracket(data_dir: str, tournament_id: str) -> Tuple[TournamentFormat, MatchSet]:
    """Like load_bracket, but a tournament without a bracket is an error."""
    tournament_format, matches = load_bracket(data_dir, tournament_id)
    if tournament_format is None:
        raise BracketNotFound(f"No bracket has been generated for {tournament_id}")
    return tournament_format, matches
