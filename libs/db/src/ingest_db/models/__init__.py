"""Shared SQLAlchemy models registry for the ingest database.

Currently holds the single ``transactions`` table written by ``transaction_ingest``.
"""

from .transactions import Base, IngestTransaction

__all__ = [
    "Base",
    "IngestTransaction",
]
