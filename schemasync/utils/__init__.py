"""Utility modules for schemasync."""

from schemasync.utils.constants import ErrorCode, ERROR_MESSAGES
from schemasync.utils.exceptions import (
    SchemaSyncError,
    PreconditionError,
    NotFoundError,
    UnsupportedDialectError,
)

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "SchemaSyncError",
    "PreconditionError",
    "NotFoundError",
    "UnsupportedDialectError",
]
