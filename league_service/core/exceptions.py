"""Domain exception hierarchy.

Every error the core raises on purpose derives from ``LeagueServiceError`` and
carries a stable ``code``, a user-facing ``message`` and the HTTP status the
host should answer with.
"""


class LeagueServiceError(Exception):
    code = "league_service_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ----------- Validation (400) -----------

class ValidationError(LeagueServiceError):
    code = "validation_error"
    status_code = 400


class LeagueJoinValidationError(ValidationError):
    """A join-eligibility rule rejected the player."""
    code = "league_join_validation_error"


class InvalidStatusTransitionError(ValidationError):
    """A membership transition was requested from a state that does not allow it."""
    code = "invalid_status_transition"


# ----------- Not found (404) -----------

class NotFoundError(LeagueServiceError):
    code = "not_found"
    status_code = 404
    entity = "Resource"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"{self.entity} {identifier} not found")


class MemberNotFoundError(NotFoundError):
    entity = "League member"


class LeagueNotFoundError(NotFoundError):
    entity = "League"


class PlayerNotFoundError(NotFoundError):
    entity = "Player"


class OutboxEventNotFoundError(NotFoundError):
    entity = "Outbox event"


# ----------- Conflict (409) -----------

class ConflictError(LeagueServiceError):
    code = "conflict"
    status_code = 409


class MemberAlreadyExistsError(ConflictError):
    def __init__(self, player_id: str, league_id: str, message: str = None):
        self.player_id = player_id
        self.league_id = league_id
        super().__init__(message or f"Player {player_id} is already a member of league {league_id}")


# ----------- Internal (500) -----------

class InternalServiceError(LeagueServiceError):
    """Wraps unexpected failures so no internal detail reaches the caller."""
    code = "server_error"


class InvalidOutboxStatusError(LeagueServiceError):
    """An outbox event was asked to make a transition its state machine forbids."""
    code = "invalid_outbox_status"

    def __init__(self, event_id, current, requested, reason: str = None):
        self.event_id = event_id
        self.current = current
        self.requested = requested
        super().__init__(
            reason or f"Invalid outbox status transition for event {event_id}: {current} -> {requested}"
        )


class UnknownEventTypeError(LeagueServiceError):
    code = "unknown_event_type"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"No handler implemented for event type: {event_type}")
