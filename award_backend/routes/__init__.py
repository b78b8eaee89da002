"""
award_backend/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from award_backend.routes import schools, evidence, audits, admin

router = APIRouter()

router.include_router(schools.router)
router.include_router(evidence.router)
router.include_router(audits.router)
router.include_router(admin.router)
