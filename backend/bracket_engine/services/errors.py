class TournamentError(Exception):
    """Base for errors raised by the bracket engine services"""

    pass


class NotFoundError(TournamentError):
    """Event, bracket or match id does not resolve"""

    pass


class PreconditionError(TournamentError):
    """Request is well-formed but the current state does not allow it"""

    pass


class ConflictError(TournamentError):
    """Operation would overwrite state that is already settled (brackets exist, match completed, results written)"""

    pass


class ConsistencyError(TournamentError):
    """Stored bracket violates an invariant that should have been upheld upstream"""

    pass
