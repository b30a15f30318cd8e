"""
Domain errors raised by the scoring services.

The API layer maps them onto HTTP status codes; nothing here is retried.
"""


class ScoringError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ScoringError):
    """Unknown question, team, castaway or league season."""
    status_code = 404


class ValidationError(ScoringError):
    """Bad wager, invalid option, league-season mismatch, deadline passed."""
    status_code = 400


class StateError(ScoringError):
    """Operation illegal in the record's current state (e.g. already scored)."""
    status_code = 409
