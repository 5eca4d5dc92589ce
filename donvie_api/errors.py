"""Domain error taxonomy.

Services raise these; the exception handlers in main.py translate them to
RFC 9457 problem documents. Each subclass carries its HTTP status, title
and problem type slug so handlers stay generic.
"""

from typing import Optional


class DonvieError(Exception):
    """Base class for domain-level errors."""

    status_code: int = 500
    title: str = "Internal Server Error"
    problem: str = "internal-error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    @property
    def error_type(self) -> str:
        return f"https://api.donvie.fr/problems/{self.problem}"


class ValidationError(DonvieError):
    """Invalid input; carries a field-level error list."""

    status_code = 400
    title = "Bad Request"
    problem = "validation-error"

    def __init__(self, detail: str, errors: Optional[list[dict[str, str]]] = None):
        super().__init__(detail)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(f"Invalid field '{field}': {message}", [{"field": field, "message": message}])


class UnauthorizedError(DonvieError):
    status_code = 401
    title = "Unauthorized"
    problem = "unauthorized"


class ForbiddenError(DonvieError):
    status_code = 403
    title = "Forbidden"
    problem = "forbidden"


class NotFoundError(DonvieError):
    status_code = 404
    title = "Not Found"
    problem = "not-found"


class ConflictError(DonvieError):
    status_code = 409
    title = "Conflict"
    problem = "conflict"


def association_not_found(association_id: int) -> NotFoundError:
    return NotFoundError(f"Association {association_id} not found")


def donation_not_found(donation_id: int) -> NotFoundError:
    return NotFoundError(f"Donation {donation_id} not found")


def user_not_found(user_id: str) -> NotFoundError:
    return NotFoundError(f"User {user_id} not found")
