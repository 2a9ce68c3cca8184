"""Error taxonomy raised by the stakeholder repository, plus a standard envelope."""
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import StatementError

logger = structlog.get_logger()


class ErrorResponse(BaseModel):
    """Standard error envelope for callers that serialise repository errors."""
    error: str
    message: str
    detail: Any = None


class StakeholderError(Exception):
    """Base class for every error the repository raises on purpose."""

    error = "stakeholder_error"

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, message=self.message, detail=self.detail)


class NotFoundError(StakeholderError, LookupError):
    """A lookup by id/uuid, or an unlink, matched zero rows."""

    error = "not_found"


class ValidationError(StakeholderError, ValueError):
    """The backing store rejected a statement, or the payload was malformed."""

    error = "validation_error"


class AmbiguousIdentifierError(ValidationError):
    """An identifier was neither an integer nor a usable uuid string."""

    error = "ambiguous_identifier"


@contextmanager
def rejected_by_store(message: str, *, event: str, **context: Any) -> Iterator[None]:
    """Re-raise any SQLAlchemy statement failure in the block as ``ValidationError``.

    ``context`` is logged with ``event`` and copied into the error detail.
    """
    try:
        yield
    except StatementError as exc:
        reason = str(exc.orig if exc.orig is not None else exc)
        logger.warning(event, error=reason, **context)
        raise ValidationError(message, detail={**context, "error": reason}) from exc
