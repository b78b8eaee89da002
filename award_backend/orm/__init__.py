from .base import Base

from .school import School, ProgramStage
from .evidence import Evidence, EvidenceStatus
from .audit_response import AuditResponse, AuditStatus
from .certificate import Certificate
