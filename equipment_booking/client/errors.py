from __future__ import annotations


class BackendError(RuntimeError):
    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class NotFoundError(BackendError):
    pass


class ConflictError(BackendError):
    """The backend understood the request and refused it."""


class IllegalTransitionError(ConflictError):
    pass


class TransientError(BackendError):
    """Network failure or server-side error; the request may succeed later."""


class BookingValidationError(ValueError):
    def __init__(self, problems: dict[str, str]):
        self.problems = dict(problems)
        summary = "; ".join(f"{field}: {reason}" for field, reason in self.problems.items())
        super().__init__(f"Invalid booking: {summary}")


class OperatorAccessError(PermissionError):
    pass
