"""
award_backend/exceptions.py
Typed failures raised by the progression & evidence-review engine

Every engine error carries a machine-readable ``code`` and the HTTP status the
API layer should map it to. "No progression change needed" is never an error.
"""
from typing import Any, Optional


class AwardEngineError(Exception):
    """Base exception for the award engine"""
    status_code: int = 500
    code: str = "AWARD_ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(AwardEngineError):
    """Referenced school, evidence, audit or certificate does not exist."""
    status_code = 404
    code = "NOT_FOUND"
    resource = "Resource"

    def __init__(self, identifier: Any = None):
        self.identifier = identifier
        message = f"{self.resource} not found"
        if identifier is not None:
            message = f"{self.resource} with id '{identifier}' not found"
        super().__init__(message)


class SchoolNotFoundError(NotFoundError):
    code = "SCHOOL_NOT_FOUND"
    resource = "School"


class EvidenceNotFoundError(NotFoundError):
    code = "EVIDENCE_NOT_FOUND"
    resource = "Evidence"


class AuditNotFoundError(NotFoundError):
    code = "AUDIT_NOT_FOUND"
    resource = "Audit"


class CertificateNotFoundError(NotFoundError):
    code = "CERTIFICATE_NOT_FOUND"
    resource = "Certificate"


class IneligibleError(AwardEngineError):
    """
    Operation requested before its precondition holds.

    Examples:
    - Starting a new round before the award is completed
    - Reviewing an audit that is still a draft
    """
    status_code = 409
    code = "INELIGIBLE"


class InvalidReviewError(AwardEngineError):
    """Review decision outside approved/rejected."""
    status_code = 400
    code = "INVALID_REVIEW"


class ConflictError(AwardEngineError):
    """
    A concurrent progression update won the race for the same school.

    Raised when the optimistic version check on the School row fails. The
    caller may retry the whole request.
    """
    status_code = 409
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, school_id: str):
        self.school_id = school_id
        super().__init__(f"School {school_id} was modified concurrently; retry the review")


class PersistenceFailure(AwardEngineError):
    """Opaque store-layer error. Not interpreted by the engine."""
    status_code = 500
    code = "PERSISTENCE_FAILURE"

    def __init__(self, message: str = "Failed to persist changes", log_id: Optional[str] = None):
        self.log_id = log_id
        super().__init__(message)


class InvalidSubmissionError(AwardEngineError):
    """Evidence submitted with an unknown stage or visibility."""
    status_code = 400
    code = "INVALID_SUBMISSION"


class InvalidProgressionUpdateError(AwardEngineError):
    """Manual progression correction with unknown fields or out-of-range values."""
    status_code = 400
    code = "INVALID_PROGRESSION_UPDATE"
