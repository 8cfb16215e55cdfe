class TournamentError(ValueError):
    """Base class for every error the tournament services raise on purpose."""
    status_code = 400


class ValidationError(TournamentError):
    """Bad input (scores, names, group counts), rejected before any write."""
    status_code = 400


class NotFoundError(TournamentError):
    status_code = 404


class ConflictError(TournamentError):
    """Roster changes on a started tournament, duplicate registrations, etc."""
    status_code = 409


class InsufficientParticipantsError(TournamentError):
    status_code = 400


class InconsistentStateError(TournamentError):
    """A write did not read back the way it was written."""
    status_code = 500
