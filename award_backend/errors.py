"""
award_backend/errors.py
Centralized API error envelope

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid review decision / malformed request
- 404: School, evidence, audit or certificate does not exist
- 409: Ineligible operation or lost concurrent update
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: Persistence failure (internal only)
"""
import logging
import uuid
from typing import Optional, Dict, Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from award_backend.exceptions import AwardEngineError, ConflictError, PersistenceFailure

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REVIEW = "INVALID_REVIEW"
    INVALID_SUBMISSION = "INVALID_SUBMISSION"
    INVALID_PROGRESSION_UPDATE = "INVALID_PROGRESSION_UPDATE"

    NOT_FOUND = "NOT_FOUND"
    SCHOOL_NOT_FOUND = "SCHOOL_NOT_FOUND"
    EVIDENCE_NOT_FOUND = "EVIDENCE_NOT_FOUND"
    AUDIT_NOT_FOUND = "AUDIT_NOT_FOUND"
    CERTIFICATE_NOT_FOUND = "CERTIFICATE_NOT_FOUND"

    INELIGIBLE = "INELIGIBLE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


ERROR_NAMES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    429: "Too Many Requests",
    500: "Internal Error",
}


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def from_engine_error(exc: AwardEngineError) -> APIError:
    """Translate an engine exception into the API envelope."""
    details = None
    if isinstance(exc, ConflictError):
        details = {"school_id": exc.school_id}
    elif isinstance(exc, PersistenceFailure):
        details = {"log_id": exc.log_id} if exc.log_id else None
    return APIError(
        status_code=exc.status_code,
        error=ERROR_NAMES.get(exc.status_code, "Error"),
        message=exc.message,
        code=exc.code,
        details=details
    )


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]
