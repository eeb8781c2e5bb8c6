"""Structural validation shared by the DDL generator and parser."""

import logging

from schemasync.models.ddl import Defect
from schemasync.models.schema import Schema
from schemasync.utils.constants import ErrorCode

logger = logging.getLogger("schema-validation")


def validate_schema(schema: Schema) -> list[Defect]:
    """Collect every structural defect in a schema.

    Checks run to completion; nothing stops at the first defect.

    Args:
        schema: The schema to validate.

    Returns:
        All defects found, in table declaration order. Empty when valid.
    """
    defects: list[Defect] = []
    seen_tables: set[str] = set()
    reported_tables: set[str] = set()

    for table in schema.tables:
        table_name = table.ddl_name
        if not table_name:
            defects.append(Defect(
                code=ErrorCode.INVALID_NAME,
                message=f"Table {table.id} has an empty name",
            ))
        elif table.key in seen_tables:
            if table.key not in reported_tables:
                defects.append(Defect(
                    code=ErrorCode.DUPLICATE_TABLE,
                    message=f"Duplicate table name: {table_name}",
                    table=table_name,
                ))
                reported_tables.add(table.key)
        else:
            seen_tables.add(table.key)

        seen_attrs: set[str] = set()
        reported_attrs: set[str] = set()
        for attr in table.attributes:
            if not attr.name:
                defects.append(Defect(
                    code=ErrorCode.INVALID_NAME,
                    message=f"Table {table_name or table.id} has an attribute with an empty name",
                    table=table_name,
                ))
                continue
            key = attr.ddl_name.lower()
            if key in seen_attrs:
                if key not in reported_attrs:
                    defects.append(Defect(
                        code=ErrorCode.DUPLICATE_ATTRIBUTE,
                        message=f"Duplicate attribute name in {table_name}: {attr.name}",
                        table=table_name,
                        attribute=attr.name,
                    ))
                    reported_attrs.add(key)
            else:
                seen_attrs.add(key)

        primaries = table.primary_keys
        if len(primaries) > 1:
            defects.append(Defect(
                code=ErrorCode.MULTIPLE_PRIMARY_KEYS,
                message=(
                    f"Table {table_name} declares {len(primaries)} primary key columns: "
                    f"{', '.join(a.name for a in primaries)}"
                ),
                table=table_name,
            ))

        for fk in table.foreign_keys:
            if schema.resolve(fk.reference) is None:
                defects.append(Defect(
                    code=ErrorCode.UNRESOLVED_REFERENCE,
                    message=(
                        f"Foreign key {table_name}.{fk.name} references missing "
                        f"{fk.reference.table}.{fk.reference.attribute}"
                    ),
                    table=table_name,
                    attribute=fk.name,
                ))

    if defects:
        logger.debug("Schema validation found %d defect(s)", len(defects))
    return defects
