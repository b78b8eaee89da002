"""
Dialect-aware column types.

JSON payloads (evidence file metadata, audit answers, certificate snapshots)
are stored as JSONB on PostgreSQL and plain JSON on SQLite.
"""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

UniversalJSON = JSON().with_variant(JSONB(), "postgresql")
