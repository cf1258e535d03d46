# Command-line entry point for running a bracket from YAML files

import argparse
import logging
import os
import sys
import uuid

from filelock import Timeout

import store
from brackets.bracket import (
    clear_winner,
    generate_bracket,
    get_bracket_display,
    get_champion,
    set_winner,
)
from brackets.errors import BracketError
from brackets.models import Participant, TournamentFormat

logger = logging.getLogger(__name__)


def default_data_dir():
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)
    return os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(base_dir, 'data'))


def build_parser():
    parser = argparse.ArgumentParser(description="Run a single or double elimination bracket.")
    parser.add_argument('--data-dir', default=default_data_dir(),
                        help="Directory holding tournament files")
    parser.add_argument('--lock-timeout', type=float,
                        default=float(os.environ.get('BRACKET_LOCK_TIMEOUT', store.DEFAULT_LOCK_TIMEOUT)),
                        help="Seconds to wait for the tournament lock")
    parser.add_argument('-v', '--verbose', action='store_true', help="Log engine decisions")
    commands = parser.add_subparsers(dest='command', required=True)

    register = commands.add_parser('register', help="Register a participant")
    register.add_argument('tournament')
    register.add_argument('name')
    register.add_argument('--id', dest='participant_id')

    generate = commands.add_parser('generate', help="Generate the bracket (replaces any existing one)")
    generate.add_argument('tournament')
    generate.add_argument('--format', default=TournamentFormat.SINGLE.value,
                          choices=[f.value for f in TournamentFormat])
    generate.add_argument('--capacity', type=int)
    generate.add_argument('--seed', type=int)
    generate.add_argument('--no-shuffle', action='store_true', help="Keep registration order")

    show = commands.add_parser('show', help="Print the bracket")
    show.add_argument('tournament')
    show.add_argument('--section', help="Only print one bracket section")

    winner = commands.add_parser('winner', help="Record a match winner")
    winner.add_argument('tournament')
    winner.add_argument('match')
    winner.add_argument('participant')
    winner.add_argument('--score')

    clear = commands.add_parser('clear', help="Clear a match result")
    clear.add_argument('tournament')
    clear.add_argument('match')

    return parser


def _lock(args):
    return store.tournament_lock(args.data_dir, args.tournament, timeout=args.lock_timeout)


def cmd_register(args):
    with _lock(args):
        participants = store.load_participants(args.data_dir, args.tournament)
        participant = Participant(id=args.participant_id or str(uuid.uuid4()), name=args.name)
        if any(p.id == participant.id for p in participants):
            print(f"Participant {participant.id} is already registered", file=sys.stderr)
            return 1
        participants.append(participant)
        store.save_participants(args.data_dir, args.tournament, participants)
    print(f"Registered {participant.name} ({participant.id})")
    return 0


def cmd_generate(args):
    with _lock(args):
        participants = store.load_participants(args.data_dir, args.tournament)
        matches = generate_bracket(args.tournament, participants, args.format,
                                   capacity=args.capacity, shuffle=not args.no_shuffle,
                                   seed=args.seed)
        store.save_bracket(args.data_dir, args.tournament, args.format, matches)
    print(f"Generated {args.format} bracket with {len(matches)} matches")
    return 0


def print_bracket(display, section=None):
    for section_name, rounds in display['sections'].items():
        if section and section != section_name:
            continue
        print(f"\n== {section_name.replace('_', ' ').title()} ==")
        for round_info in rounds:
            print(f"\n{round_info['name']}")
            for match in round_info['matches']:
                team_a, team_b = match['teams']
                line = f"  {match['id']}: {team_a} vs {team_b}"
                if match['is_bye'] and match['winner']:
                    line += f"  (bye: {match['winner']})"
                elif match['winner']:
                    line += f"  -> {match['winner']}"
                    if match['score']:
                        line += f" [{match['score']}]"
                print(line)
    if display['champion']:
        print(f"\nChampion: {display['champion']}")


def cmd_show(args):
    with _lock(args):
        _, matches = store.require_bracket(args.data_dir, args.tournament)
        participants = store.load_participants(args.data_dir, args.tournament)
    print_bracket(get_bracket_display(matches, participants), args.section)
    return 0


def cmd_winner(args):
    with _lock(args):
        tournament_format, matches = store.require_bracket(args.data_dir, args.tournament)
        matches = set_winner(matches, args.match, args.participant, args.score)
        store.save_bracket(args.data_dir, args.tournament, tournament_format, matches)
    print(f"{args.participant} wins {args.match}")
    champion = get_champion(matches)
    if champion:
        print(f"Champion: {champion}")
    return 0


def cmd_clear(args):
    with _lock(args):
        tournament_format, matches = store.require_bracket(args.data_dir, args.tournament)
        matches = clear_winner(matches, args.match)
        store.save_bracket(args.data_dir, args.tournament, tournament_format, matches)
    print(f"Cleared result of {args.match}")
    return 0


COMMANDS = {
    'register': cmd_register,
    'generate': cmd_generate,
    'show': cmd_show,
    'winner': cmd_winner,
    'clear': cmd_clear,
}


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    try:
        return COMMANDS[args.command](args)
    except Timeout as e:
        print(f"Error: tournament is busy ({e})", file=sys.stderr)
        return 1
    except (BracketError, store.BracketNotFound, store.InvalidTournamentId) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
