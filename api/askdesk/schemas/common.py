"""Common shared schema types used across the API."""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    error is the stable error kind (InvalidTarget, NotFound, ...).
    """

    error: str
    detail: Optional[str] = None
