"""Exception hierarchy shared by the storage, auth and API layers."""

from typing import List, Optional


class GradJobsError(Exception):
    """Base error. `status_code` is the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(GradJobsError):
    status_code = 400

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationError":
        return cls(errors[0], errors=errors)


class ConflictError(GradJobsError):
    status_code = 400


class NotFoundError(GradJobsError):
    status_code = 404


class AuthError(GradJobsError):
    status_code = 401


class ForbiddenError(GradJobsError):
    # Role checks answer 401 like missing credentials do.
    status_code = 401
