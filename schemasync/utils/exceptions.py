"""Exception classes for schemasync."""

from typing import Optional

from schemasync.utils.constants import ErrorCode, ERROR_MESSAGES


class SchemaSyncError(Exception):
    """Base exception class for schemasync."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict | None = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert the exception to a dictionary format.

        Returns:
            A dictionary representation of the error.
        """
        return {
            "status": "error",
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details
            }
        }


class PreconditionError(SchemaSyncError):
    """A mutation was rejected before any state changed."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        field: Optional[str] = None,
        details: dict | None = None
    ):
        self.field = field
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(code=code, message=message, details=merged)


class NotFoundError(PreconditionError):
    """Table or attribute lookup failed."""

    def __init__(self, message: str, table: Optional[str] = None, attribute: Optional[str] = None):
        details = {}
        if table is not None:
            details["table"] = table
        if attribute is not None:
            details["attribute"] = attribute
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=message,
            details=details
        )


class UnsupportedDialectError(PreconditionError):
    """Unknown SQL dialect name."""

    def __init__(self, dialect: str):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_DIALECT,
            message=f"Unsupported SQL dialect: {dialect}",
            field="dialect",
            details={"dialect": dialect}
        )
