"""Derivation of relationship edges from foreign-key attributes."""

from typing import Mapping, Optional

from schemasync.models.edges import AttributeRef, Relationship, edge_id_for
from schemasync.models.schema import Schema


def derive_relationships(
    schema: Schema,
    targets: Optional[Mapping[tuple[str, str], str]] = None
) -> dict[str, Relationship]:
    """Compute the edge set of a schema.

    One edge exists per foreign attribute whose reference resolves. Edges
    run from the referenced attribute to the foreign attribute and carry
    the foreign attribute's cardinality, optionality and cascade actions.

    Args:
        schema: The schema to derive edges from.
        targets: Referenced table id per ``(table_id, attribute)`` of a
            foreign attribute (attribute lower-cased), from the previous
            edge set. References with an entry resolve by that id first.

    Returns:
        Edges keyed by edge id, in table and attribute declaration order.
    """
    targets = targets or {}
    edges: dict[str, Relationship] = {}
    for table in schema.tables:
        for attr in table.foreign_keys:
            resolved = schema.resolve(attr.reference, prefer=targets.get((table.id, attr.name.lower())))
            if resolved is None:
                continue
            ref_table, ref_attr = resolved
            source = AttributeRef(table_id=ref_table.id, attribute=ref_attr.name)
            target = AttributeRef(table_id=table.id, attribute=attr.name)
            edge_id = edge_id_for(source, target)
            edges[edge_id] = Relationship(
                id=edge_id,
                source=source,
                target=target,
                cardinality=attr.cardinality,
                optional=attr.optional,
                on_delete=attr.on_delete,
                on_update=attr.on_update,
            )
    return edges
