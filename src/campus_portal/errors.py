"""Exception taxonomy shared by the core, the repository and the HTTP layer.

Every error is a ``ValueError`` so callers that only care about "the request
was refused" can keep catching ``ValueError``. The HTTP layer renders any
``PortalError`` as ``{"error": ..., "code": ...}`` with ``status_code``.
"""

from __future__ import annotations


class PortalError(ValueError):
    status_code = 400
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotEligible(PortalError):
    code = "not_eligible"

    def __init__(self, reasons: list[str]):
        super().__init__("Not eligible for this job: " + "; ".join(reasons))
        self.reasons = list(reasons)

    def to_payload(self) -> dict:
        return super().to_payload() | {"reasons": self.reasons}


class DuplicateApplication(PortalError):
    code = "duplicate_application"


class JobInactive(PortalError):
    code = "job_inactive"


class JobExpired(PortalError):
    code = "job_expired"


class InvalidTransition(PortalError):
    code = "invalid_transition"


class InvalidResume(PortalError):
    code = "invalid_resume"


class NotFound(PortalError):
    status_code = 404
    code = "not_found"


class Unauthorized(PortalError):
    status_code = 401
    code = "unauthorized"


class Forbidden(PortalError):
    status_code = 403
    code = "forbidden"


class Conflict(PortalError):
    status_code = 409
    code = "conflict"


class ConcurrentUpdate(PortalError):
    status_code = 409
    code = "concurrent_update"
