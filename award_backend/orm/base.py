"""
award_backend/orm/base.py
Declarative base and shared column helpers for all ORM models
"""
import uuid
from datetime import datetime

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid() -> str:
    """String UUID primary keys (school ids are sliced for certificate numbers)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.utcnow()
