"""
Errors reported by the bracket engine.

All of them are raised to the caller; nothing in the engine retries or
swallows them.
"""


class BracketError(Exception):
    """Base class for bracket engine errors."""


class InvalidParticipantCount(BracketError, ValueError):
    """Raised when a bracket cannot be sized for the requested entrants."""


class DuplicateParticipant(BracketError, ValueError):
    """Raised when the same participant id is registered twice."""


class UnknownMatch(BracketError, KeyError):
    """Raised when an operation references a match id that does not exist."""

    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(match_id)

    def __str__(self):
        return f"Unknown match: {self.match_id}"


class InvalidWinner(BracketError):
    """Raised when a winner does not occupy a slot of the target match."""


class ByeRetraction(BracketError):
    """Raised when clearing the automatic winner of a bye match."""


class MalformedGraph(BracketError):
    """Raised when the match graph violates its structural invariants."""
