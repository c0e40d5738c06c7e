from fastapi import HTTPException, status


class CsegError(Exception):
    """Base exception for the CSEG game server."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthorizationError(CsegError):
    """A non-host player attempted a host-only action."""

    def __init__(self, message: str = "Only the host can do that", code: str | None = "forbidden"):
        super().__init__(message, code)


class PhaseError(CsegError):
    """Action is not valid in the current game phase."""

    def __init__(self, message: str, code: str | None = "wrong_phase"):
        super().__init__(message, code)


class SubmissionRejected(CsegError):
    """A RED or BLUE submission failed validation."""

    def __init__(self, message: str, code: str | None = "submission_rejected"):
        super().__init__(message, code)


class InvalidActionError(CsegError):
    """Malformed or unknown action."""

    def __init__(self, message: str, code: str | None = "invalid_action"):
        super().__init__(message, code)


class PlayerNotFoundError(CsegError):
    """Referenced player is not part of the session."""

    def __init__(self, message: str = "Player not found", code: str | None = "player_not_found"):
        super().__init__(message, code)


class NameTakenError(CsegError):
    """Player name failed validation on join."""

    def __init__(self, message: str, code: str | None = "invalid_name"):
        super().__init__(message, code)


# HTTP Exceptions
def unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
