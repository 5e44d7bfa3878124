# services/exceptions.py
"""
Error taxonomy for the property access service.

Caller input errors (NotFound, InvalidTransition, AlreadyResolved, Expired) are
returned to the caller verbatim. Forbidden is an access-denied outcome.
InvariantViolation aborts the mutation and signals a bug or an escaped race.
Conflict means a concurrent write won. Unavailable is transient and may be
retried by the caller; the service never retries on its own.
"""
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError


class AccessControlError(Exception):
     """Base class; carries the HTTP status the API layer maps it to."""

     status_code = 500
     code = "access_control_error"

     def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
          self.message = message
          self.details = details or {}
          super().__init__(message)


class NotFound(AccessControlError):
     status_code = 404
     code = "not_found"


class InvalidTransition(AccessControlError):
     status_code = 409
     code = "invalid_transition"


class AlreadyResolved(AccessControlError):
     status_code = 409
     code = "already_resolved"


class Expired(AccessControlError):
     status_code = 410
     code = "expired"


class InvariantViolation(AccessControlError):
     status_code = 409
     code = "invariant_violation"


class Forbidden(AccessControlError):
     status_code = 403
     code = "forbidden"


class Conflict(AccessControlError):
     status_code = 409
     code = "conflict"


class PolicyCycleError(AccessControlError):
     """An access rule would be evaluated through the boundary it enforces."""
     status_code = 500
     code = "policy_cycle"


class Unavailable(AccessControlError):
     """Storage unreachable or the call exceeded its deadline."""
     status_code = 503
     code = "unavailable"


@contextmanager
def storage_errors(operation: str):
     """
     Translate transient storage failures into Unavailable.

     Connectivity loss, driver timeouts and pool checkout timeouts all land
     here; constraint violations and programming errors pass through.
     """
     try:
          yield
     except (OperationalError, SQLAlchemyTimeoutError) as e:
          raise Unavailable(f"Storage unavailable during {operation}", {"operation": operation}) from e
     except DBAPIError as e:
          if e.connection_invalidated:
               raise Unavailable(f"Storage connection lost during {operation}", {"operation": operation}) from e
          raise
