# backend/onboarding/domain/errors.py
from __future__ import annotations

from typing import Any, Optional


class PipelineError(Exception):
    """
    Base for every failure the onboarding pipeline reports to a caller.

    Routers never catch these; the app-level handler turns them into
    {"detail": ..., "code": ...} responses using status_code.
    """

    status_code: int = 400
    code: str = "pipeline_error"

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.context:
            out.update(self.context)
        return out


class ValidationFailed(PipelineError):
    status_code = 422
    code = "validation_failed"


class NotAuthenticated(PipelineError):
    status_code = 401
    code = "not_authenticated"


class Unauthorized(PipelineError):
    status_code = 403
    code = "unauthorized"


class ApplicationBlocked(PipelineError):
    status_code = 403
    code = "application_blocked"

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(detail or f"application access blocked: {reason}", reason=reason)
        self.reason = reason


class NotFound(PipelineError):
    status_code = 404
    code = "not_found"


class InvalidTransition(PipelineError):
    status_code = 409
    code = "invalid_transition"


class AlreadyApplied(PipelineError):
    status_code = 409
    code = "already_applied"


class SignatureConflict(PipelineError):
    status_code = 409
    code = "signature_conflict"


class RemoteCallFailed(PipelineError):
    status_code = 502
    code = "remote_call_failed"
