"""Domain errors raised by the vote, acceptance and visibility services.

Each error carries the error kind reported to clients and the HTTP status it
maps to. Routers do not catch these; the handler registered in main.py renders
them as an ErrorResponse envelope.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for errors the API reports with a stable error kind."""

    kind: str = "InternalError"
    status_code: int = 500

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(detail or self.kind)


class InvalidTarget(DomainError):
    """Vote request did not name exactly one of questionId / answerId."""

    kind = "InvalidTarget"
    status_code = 400


class InvalidValue(DomainError):
    """Vote value outside {-1, 0, 1}."""

    kind = "InvalidValue"
    status_code = 400


class Unauthenticated(DomainError):
    kind = "Unauthenticated"
    status_code = 401


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = 403


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404


class InternalError(DomainError):
    """Storage or consistency failure; the operation was rolled back."""

    kind = "InternalError"
    status_code = 500
