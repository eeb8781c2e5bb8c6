"""Constants for schemasync."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error code enumeration."""

    # Structural defects
    DUPLICATE_TABLE = "ERR_001"
    DUPLICATE_ATTRIBUTE = "ERR_002"
    UNRESOLVED_REFERENCE = "ERR_003"
    MULTIPLE_PRIMARY_KEYS = "ERR_004"
    INVALID_NAME = "ERR_005"
    MALFORMED_STATEMENT = "ERR_006"
    EMPTY_INPUT = "ERR_007"
    NO_TABLES = "ERR_008"

    # Precondition violations
    MISSING_FIELD = "ERR_101"
    INVALID_ATTRIBUTE = "ERR_102"
    INELIGIBLE_TARGET = "ERR_103"
    NOT_FOUND = "ERR_104"
    UNSUPPORTED_DIALECT = "ERR_105"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DUPLICATE_TABLE: "Duplicate table name",
    ErrorCode.DUPLICATE_ATTRIBUTE: "Duplicate attribute name",
    ErrorCode.UNRESOLVED_REFERENCE: "Foreign key references a missing table or attribute",
    ErrorCode.MULTIPLE_PRIMARY_KEYS: "A table may declare only one primary key column",
    ErrorCode.INVALID_NAME: "Invalid or missing name",
    ErrorCode.MALFORMED_STATEMENT: "Malformed DDL statement",
    ErrorCode.EMPTY_INPUT: "DDL input is empty",
    ErrorCode.NO_TABLES: "No CREATE TABLE statements found",
    ErrorCode.MISSING_FIELD: "A required field is missing",
    ErrorCode.INVALID_ATTRIBUTE: "Attribute definition is invalid",
    ErrorCode.INELIGIBLE_TARGET: "Referenced attribute cannot be the target of a foreign key",
    ErrorCode.NOT_FOUND: "Table or attribute not found",
    ErrorCode.UNSUPPORTED_DIALECT: "Unsupported SQL dialect",
}

# Header written at the top of generated DDL when comments are enabled
HEADER_GENERATED_BY = "-- Generated by {name}"
HEADER_DIALECT = "-- Dialect: {dialect}"
