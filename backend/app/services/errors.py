"""
Tournament engine error taxonomy.

Every failure of the generators and of the stage controller is one of these
typed errors. Generators raise them; the controller catches them at its
boundary and hands them back inside a StageOutcome so that route handlers can
render a precise message without unwinding unrelated request state.
"""

from enum import Enum


class ErrorCode(str, Enum):
    INSUFFICIENT_PARTICIPANTS = "INSUFFICIENT_PARTICIPANTS"
    INVALID_SEEDING = "INVALID_SEEDING"
    TOO_MANY_GROUPS = "TOO_MANY_GROUPS"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    WRONG_PHASE = "WRONG_PHASE"
    MATCHES_ALREADY_EXIST = "MATCHES_ALREADY_EXIST"
    NOT_ENOUGH_QUALIFIERS = "NOT_ENOUGH_QUALIFIERS"
    TOURNAMENT_NOT_FOUND = "TOURNAMENT_NOT_FOUND"


class TournamentEngineError(Exception):
    """Base class for local validation/state errors. Never retryable."""

    code: ErrorCode

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


class InsufficientParticipants(TournamentEngineError):
    code = ErrorCode.INSUFFICIENT_PARTICIPANTS

    def __init__(self, required: int, actual: int, context: str = "tournament"):
        super().__init__(f"{context} requires at least {required} participants, got {actual}")
        self.required = required
        self.actual = actual


class InvalidSeeding(TournamentEngineError):
    code = ErrorCode.INVALID_SEEDING


class TooManyGroups(TournamentEngineError):
    code = ErrorCode.TOO_MANY_GROUPS

    def __init__(self, requested: int, supported: int):
        super().__init__(f"Requested {requested} groups; at most {supported} group labels are supported")
        self.requested = requested
        self.supported = supported


class InvalidConfiguration(TournamentEngineError):
    code = ErrorCode.INVALID_CONFIGURATION


class WrongPhase(TournamentEngineError):
    code = ErrorCode.WRONG_PHASE


class MatchesAlreadyExist(TournamentEngineError):
    code = ErrorCode.MATCHES_ALREADY_EXIST


AlreadyGenerated = MatchesAlreadyExist


class NotEnoughQualifiers(TournamentEngineError):
    code = ErrorCode.NOT_ENOUGH_QUALIFIERS

    def __init__(self, qualified: int):
        super().__init__(f"Knockout stage needs at least 2 qualifiers, got {qualified}")
        self.qualified = qualified


class TournamentNotFound(TournamentEngineError):
    code = ErrorCode.TOURNAMENT_NOT_FOUND

    def __init__(self, tournament_id: int):
        super().__init__(f"Tournament {tournament_id} not found")
        self.tournament_id = tournament_id
