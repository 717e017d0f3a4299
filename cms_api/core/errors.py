from __future__ import annotations


class AppError(Exception):
    """Expected, user-facing failure. Carries the HTTP status the boundary answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} with id {resource_id} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(AppError):
    status_code = 409
