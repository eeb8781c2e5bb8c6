"""Consistency maintainer: the single entry point for schema mutations.

Every mutation runs in two phases. The first checks all preconditions
against the current schema and raises without touching state. The second
applies the edit to a copy, cascades reference rewrites, demotes foreign
attributes whose target no longer resolves, swaps the copy in, and only
then diffs the edge set and notifies listeners: all destroy events first,
then all create events.
"""

import logging
import re
from typing import Any, Callable, Optional

from pydantic import ValidationError

from schemasync.models.edges import (
    AttributeRef,
    EdgeCreated,
    EdgeDestroyed,
    EdgeEvent,
    Relationship,
)
from schemasync.models.schema import (
    ATTRIBUTE_ADAPTER,
    Attribute,
    Cardinality,
    CascadeAction,
    ForeignAttribute,
    KeyRole,
    PrimaryAttribute,
    Reference,
    Schema,
    Table,
)
from schemasync.services.relationships import derive_relationships
from schemasync.services.type_mapping import normalize_identifier
from schemasync.utils.constants import ErrorCode
from schemasync.utils.exceptions import NotFoundError, PreconditionError

logger = logging.getLogger("consistency-maintainer")

Listener = Callable[[EdgeEvent], None]

_TABLE_ID_RE = re.compile(r"^table-(\d+)$")

# Fields accepted by update_attribute
ATTRIBUTE_FIELDS = {
    "name", "data_type", "role", "reference", "cardinality", "on_delete",
    "on_update", "optional", "not_null", "unique", "default", "check",
}


class ConsistencyMaintainer:
    """Owns the schema and keeps relationship edges in sync with it."""

    def __init__(self, schema: Optional[Schema] = None):
        """Initialize the maintainer.

        Args:
            schema: Initial schema. It is copied and healed, like ``load``.
        """
        self._schema = Schema()
        self._edges: dict[str, Relationship] = {}
        self._listeners: list[Listener] = []
        self.revision = 0
        if schema is not None:
            self.load(schema)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def schema(self) -> Schema:
        """A copy of the current schema."""
        return self._schema.model_copy(deep=True)

    @property
    def edges(self) -> list[Relationship]:
        return list(self._edges.values())

    def get_table(self, table_id: str) -> Table:
        """Return a copy of a table.

        Raises:
            NotFoundError: If no table has this id.
        """
        return self._require_table(table_id).model_copy(deep=True)

    def edge_for(self, table_id: str, attribute: str) -> Optional[Relationship]:
        """Edge whose foreign side is the given attribute, if any."""
        wanted = attribute.lower()
        for edge in self._edges.values():
            if edge.target.table_id == table_id and edge.target.attribute.lower() == wanted:
                return edge
        return None

    def dependents_of(self, table_id: str, attribute: str) -> list[AttributeRef]:
        """Foreign attributes anywhere in the schema that reference the given attribute."""
        return self._dependents(self._schema, table_id, attribute, self._targets())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an edge-event listener.

        Returns:
            A callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Table mutations
    # ------------------------------------------------------------------

    def add_table(self, name: Optional[str] = None, layout: Optional[dict[str, Any]] = None) -> Table:
        """Add an empty table.

        Args:
            name: Display name. Defaults to ``Table N``.
            layout: Opaque position/color payload.

        Returns:
            A copy of the new table.
        """
        number = self._next_table_number()
        if name is None:
            name = f"Table {number}"
        elif not name.strip():
            raise self._reject(ErrorCode.INVALID_NAME, "Table name must not be empty", field="name")

        table = Table(id=f"table-{number}", name=name.strip(), layout=dict(layout or {}))
        draft = self._schema.model_copy(deep=True)
        draft.tables.append(table)
        self._commit(draft)
        logger.debug("Added table %s (%s)", table.name, table.id)
        return table.model_copy(deep=True)

    def rename_table(self, table_id: str, new_name: str) -> Table:
        """Rename a table and rewrite every reference that resolved to it.

        Edge ids are keyed by table id, so no edge events are emitted.
        """
        self._require_table(table_id)
        if not new_name or not new_name.strip():
            raise self._reject(ErrorCode.INVALID_NAME, "Table name must not be empty", field="new_name")

        draft = self._schema.model_copy(deep=True)
        target = draft.get_table(table_id)
        new_ref_name = normalize_identifier(new_name)
        targets = self._targets()
        for table in draft.tables:
            for fk in table.foreign_keys:
                resolved = draft.resolve(fk.reference, prefer=targets.get((table.id, fk.name.lower())))
                if resolved is not None and resolved[0].id == table_id:
                    fk.reference = Reference(table=new_ref_name, attribute=fk.reference.attribute)
        old_name = target.name
        target.name = new_name.strip()
        self._commit(draft)
        logger.debug("Renamed table %s: %s -> %s", table_id, old_name, target.name)
        return target.model_copy(deep=True)

    def delete_table(self, table_id: str) -> None:
        """Delete a table, demoting every foreign key that pointed into it."""
        self._require_table(table_id)
        draft = self._schema.model_copy(deep=True)
        draft.tables = [t for t in draft.tables if t.id != table_id]
        self._commit(draft)
        logger.debug("Deleted table %s", table_id)

    def set_table_layout(self, table_id: str, layout: dict[str, Any]) -> None:
        """Replace the opaque layout payload of a table."""
        self._require_table(table_id)
        draft = self._schema.model_copy(deep=True)
        draft.get_table(table_id).layout = dict(layout)
        self._commit(draft)

    # ------------------------------------------------------------------
    # Attribute mutations
    # ------------------------------------------------------------------

    def add_attribute(
        self,
        table_id: str,
        name: str,
        data_type: Any = "VARCHAR(255)",
        role: "KeyRole | str" = KeyRole.NORMAL,
        reference: Any = None,
        **fields: Any
    ) -> Attribute:
        """Append an attribute to a table.

        Args:
            table_id: Owning table id.
            name: Attribute name, unique within the table (case-insensitive).
            data_type: Column type, as a ColumnType or a string like ``INT``.
            role: ``normal``, ``primary`` or ``foreign``.
            reference: For foreign attributes, a Reference or a dict with
                ``table`` and ``attribute``.
            **fields: Remaining attribute fields (not_null, unique, default,
                check, cardinality, on_delete, on_update, optional).

        Returns:
            A copy of the new attribute.

        Raises:
            NotFoundError: If the table does not exist.
            PreconditionError: If any precondition fails; nothing changes.
        """
        table = self._require_table(table_id)
        unknown = set(fields) - ATTRIBUTE_FIELDS
        if unknown:
            raise self._reject(
                ErrorCode.INVALID_ATTRIBUTE,
                f"Unknown attribute field: {sorted(unknown)[0]}",
                field=sorted(unknown)[0],
            )

        data = dict(fields, name=name, data_type=data_type, role=role, reference=reference)
        attribute = self._build_attribute(data)
        self._check_attribute(self._schema, table, attribute, replacing=None)

        draft = self._schema.model_copy(deep=True)
        draft.get_table(table_id).attributes.append(attribute)
        self._commit(draft)
        logger.debug("Added %s attribute %s.%s", attribute.role, table.name, attribute.name)
        return attribute.model_copy(deep=True)

    def update_attribute(self, table_id: str, name: str, **changes: Any) -> Attribute:
        """Edit an attribute: rename, retype, change role, reference or flags.

        Renaming an attribute that others reference rewrites their
        references. A changed edge is destroyed before its replacement is
        created.

        Returns:
            A copy of the updated attribute.

        Raises:
            NotFoundError: If the table or attribute does not exist.
            PreconditionError: If any precondition fails; nothing changes.
        """
        table = self._require_table(table_id)
        index = table.index_of(name)
        if index < 0:
            raise NotFoundError(f"Attribute {name} not found in table {table.name}", table=table_id, attribute=name)
        current = table.attributes[index]

        unknown = set(changes) - ATTRIBUTE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise self._reject(ErrorCode.INVALID_ATTRIBUTE, f"Unknown attribute field: {field}", field=field)

        data = current.model_dump()
        data.update(changes)
        # keep the nullable flags in step when only one of them is edited
        if "not_null" in changes and "optional" not in changes:
            data["optional"] = not changes["not_null"]
        elif "optional" in changes and "not_null" not in changes:
            data["not_null"] = not changes["optional"]

        updated = self._build_attribute(data)
        self._check_attribute(self._schema, table, updated, replacing=current.name)

        draft = self._schema.model_copy(deep=True)
        draft_table = draft.get_table(table_id)
        if updated.name != current.name:
            for ref in self._dependents(draft, table_id, current.name, self._targets()):
                dependent = draft.get_table(ref.table_id).get_attribute(ref.attribute)
                dependent.reference = Reference(table=dependent.reference.table, attribute=updated.name)
        draft_table.attributes[index] = updated
        self._commit(draft)
        logger.debug("Updated attribute %s.%s", table.name, updated.name)
        return updated.model_copy(deep=True)

    def delete_attribute(self, table_id: str, name: str) -> None:
        """Delete an attribute, demoting every foreign key that referenced it."""
        table = self._require_table(table_id)
        index = table.index_of(name)
        if index < 0:
            raise NotFoundError(f"Attribute {name} not found in table {table.name}", table=table_id, attribute=name)

        draft = self._schema.model_copy(deep=True)
        del draft.get_table(table_id).attributes[index]
        self._commit(draft)
        logger.debug("Deleted attribute %s.%s", table.name, name)

    def move_attribute(self, table_id: str, name: str, index: int) -> None:
        """Move an attribute to a new column position (clamped to the table)."""
        table = self._require_table(table_id)
        current = table.index_of(name)
        if current < 0:
            raise NotFoundError(f"Attribute {name} not found in table {table.name}", table=table_id, attribute=name)

        draft = self._schema.model_copy(deep=True)
        attributes = draft.get_table(table_id).attributes
        attribute = attributes.pop(current)
        attributes.insert(max(0, min(index, len(attributes))), attribute)
        self._commit(draft)

    def connect_attributes(
        self,
        source_table_id: str,
        source_attr: str,
        target_table_id: str,
        target_attr: str,
        cardinality: "Cardinality | str" = Cardinality.ONE_TO_MANY,
        on_delete: Optional[CascadeAction] = None,
        on_update: Optional[CascadeAction] = None,
        optional: bool = False
    ) -> Relationship:
        """Connect two attributes of different tables.

        The source is the referenced side and becomes the primary key of its
        table when it was a normal column. The target becomes a foreign key
        referencing it, typed like the source.

        Returns:
            The edge created for the connection.

        Raises:
            NotFoundError: If a table or attribute does not exist.
            PreconditionError: If the connection is not allowed.
        """
        source_table = self._require_table(source_table_id)
        target_table = self._require_table(target_table_id)
        if source_table_id == target_table_id:
            raise self._reject(
                ErrorCode.INELIGIBLE_TARGET,
                "Cannot connect attributes of the same table",
                field="target_table_id",
            )

        source = source_table.get_attribute(source_attr)
        if source is None:
            raise NotFoundError(
                f"Attribute {source_attr} not found in table {source_table.name}",
                table=source_table_id, attribute=source_attr,
            )
        target = target_table.get_attribute(target_attr)
        if target is None:
            raise NotFoundError(
                f"Attribute {target_attr} not found in table {target_table.name}",
                table=target_table_id, attribute=target_attr,
            )

        if isinstance(source, ForeignAttribute):
            raise self._reject(
                ErrorCode.INELIGIBLE_TARGET,
                f"{source_table.name}.{source.name} is a foreign key and cannot be referenced",
                field="source_attr",
            )
        existing_pk = source_table.primary_key
        if not isinstance(source, PrimaryAttribute) and existing_pk is not None:
            raise self._reject(
                ErrorCode.MULTIPLE_PRIMARY_KEYS,
                f"Table {source_table.name} already has primary key {existing_pk.name}",
                field="source_attr",
            )
        if isinstance(target, PrimaryAttribute):
            raise self._reject(
                ErrorCode.INELIGIBLE_TARGET,
                f"{target_table.name}.{target.name} is a primary key and cannot become a foreign key",
                field="target_attr",
            )

        try:
            cardinality = Cardinality(cardinality)
        except ValueError:
            raise self._reject(
                ErrorCode.INVALID_ATTRIBUTE, f"Invalid cardinality: {cardinality}", field="cardinality"
            ) from None

        promoted = source if isinstance(source, PrimaryAttribute) else PrimaryAttribute(
            name=source.name,
            data_type=source.data_type.model_copy(deep=True),
            default=source.default,
            check=source.check,
        )
        try:
            connected = ForeignAttribute(
                name=target.name,
                data_type=source.data_type.referencing_type(),
                reference=Reference(table=source_table.ddl_name, attribute=source.name),
                cardinality=cardinality,
                on_delete=on_delete,
                on_update=on_update,
                optional=optional,
                unique=target.unique,
                default=target.default,
                check=target.check,
            )
        except ValidationError as e:
            raise self._reject(ErrorCode.INVALID_ATTRIBUTE, str(e.errors()[0]["msg"]), field="on_delete") from None

        draft = self._schema.model_copy(deep=True)
        src_table = draft.get_table(source_table_id)
        src_table.attributes[src_table.index_of(source.name)] = promoted
        tgt_table = draft.get_table(target_table_id)
        tgt_table.attributes[tgt_table.index_of(target.name)] = connected
        self._commit(draft)

        edge = self.edge_for(target_table_id, target.name)
        logger.debug("Connected %s.%s -> %s.%s", source_table.name, source.name, target_table.name, target.name)
        return edge

    def load(self, schema: Schema) -> None:
        """Replace the whole schema.

        Every old edge is destroyed and every edge of the new schema is
        created, even when an edge is unchanged.
        """
        self._commit(schema.model_copy(deep=True), resync=True)
        logger.debug("Loaded schema with %d table(s)", len(schema.tables))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_table(self, table_id: str) -> Table:
        table = self._schema.get_table(table_id)
        if table is None:
            logger.warning("Rejected mutation: table %s not found", table_id)
            raise NotFoundError(f"Table {table_id} not found", table=table_id)
        return table

    @staticmethod
    def _reject(code: ErrorCode, message: str, field: Optional[str] = None) -> PreconditionError:
        logger.warning("Rejected mutation: %s", message)
        return PreconditionError(code=code, message=message, field=field)

    def _next_table_number(self) -> int:
        numbers = [0]
        for table in self._schema.tables:
            match = _TABLE_ID_RE.match(table.id)
            if match:
                numbers.append(int(match.group(1)))
        return max(numbers) + 1

    def _build_attribute(self, data: dict[str, Any]) -> Attribute:
        """Validate raw attribute fields into one attribute variant."""
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise self._reject(ErrorCode.INVALID_NAME, "Attribute name must not be empty", field="name")

        try:
            role = KeyRole(data.get("role") or KeyRole.NORMAL)
        except ValueError:
            raise self._reject(
                ErrorCode.INVALID_ATTRIBUTE, f"Invalid key role: {data.get('role')}", field="role"
            ) from None
        data["role"] = role.value

        if role == KeyRole.FOREIGN:
            reference = data.get("reference")
            if isinstance(reference, Reference):
                reference = reference.model_dump()
            reference = reference or {}
            for part in ("table", "attribute"):
                value = reference.get(part)
                if not isinstance(value, str) or not value.strip():
                    raise self._reject(
                        ErrorCode.MISSING_FIELD,
                        f"Foreign key {name} needs reference.{part}",
                        field=f"reference.{part}",
                    )
            data["reference"] = reference
        else:
            data.pop("reference", None)

        try:
            return ATTRIBUTE_ADAPTER.validate_python(data)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(p) for p in error["loc"][1:]) or None
            raise self._reject(
                ErrorCode.INVALID_ATTRIBUTE,
                f"Invalid attribute {name}: {error['msg']}",
                field=field,
            ) from None

    def _check_attribute(
        self,
        schema: Schema,
        table: Table,
        attribute: Attribute,
        replacing: Optional[str]
    ) -> None:
        """Check name uniqueness, the single primary key and the reference target."""
        others = [a for a in table.attributes if replacing is None or a.name.lower() != replacing.lower()]

        if any(a.name.lower() == attribute.name.lower() for a in others):
            raise self._reject(
                ErrorCode.DUPLICATE_ATTRIBUTE,
                f"Table {table.name} already has an attribute named {attribute.name}",
                field="name",
            )

        if isinstance(attribute, PrimaryAttribute):
            existing = next((a for a in others if isinstance(a, PrimaryAttribute)), None)
            if existing is not None:
                raise self._reject(
                    ErrorCode.MULTIPLE_PRIMARY_KEYS,
                    f"Table {table.name} already has primary key {existing.name}",
                    field="role",
                )

        if isinstance(attribute, ForeignAttribute):
            ref = attribute.reference
            target_table = schema.find_table(ref.table)
            if target_table is None:
                raise self._reject(
                    ErrorCode.NOT_FOUND,
                    f"Referenced table {ref.table} not found",
                    field="reference.table",
                )
            target = target_table.get_attribute(ref.attribute)
            if target is None:
                raise self._reject(
                    ErrorCode.NOT_FOUND,
                    f"Referenced attribute {ref.table}.{ref.attribute} not found",
                    field="reference.attribute",
                )
            if target_table.id == table.id and replacing is not None and (
                target.name.lower() == replacing.lower()
            ):
                raise self._reject(
                    ErrorCode.INELIGIBLE_TARGET,
                    f"Attribute {attribute.name} cannot reference itself",
                    field="reference.attribute",
                )
            if isinstance(target, ForeignAttribute):
                raise self._reject(
                    ErrorCode.INELIGIBLE_TARGET,
                    f"{ref.table}.{ref.attribute} is a foreign key and cannot be referenced",
                    field="reference.attribute",
                )

    def _targets(self) -> dict[tuple[str, str], str]:
        """Referenced table id per foreign attribute, from the current edges."""
        return {
            (edge.target.table_id, edge.target.attribute.lower()): edge.source.table_id
            for edge in self._edges.values()
        }

    @staticmethod
    def _dependents(
        schema: Schema,
        table_id: str,
        attribute: str,
        targets: dict[tuple[str, str], str]
    ) -> list[AttributeRef]:
        wanted = attribute.lower()
        refs: list[AttributeRef] = []
        for table in schema.tables:
            for fk in table.foreign_keys:
                resolved = schema.resolve(fk.reference, prefer=targets.get((table.id, fk.name.lower())))
                if resolved is None:
                    continue
                ref_table, ref_attr = resolved
                if ref_table.id == table_id and ref_attr.name.lower() == wanted:
                    refs.append(AttributeRef(table_id=table.id, attribute=fk.name))
        return refs

    @staticmethod
    def _demote_unresolved(schema: Schema, targets: dict[tuple[str, str], str]) -> None:
        """Collapse foreign attributes whose reference no longer resolves."""
        for table in schema.tables:
            for i, attr in enumerate(table.attributes):
                if not isinstance(attr, ForeignAttribute):
                    continue
                prefer = targets.get((table.id, attr.name.lower()))
                if schema.resolve(attr.reference, prefer=prefer) is None:
                    table.attributes[i] = attr.demote()
                    logger.info(
                        "Demoted %s.%s to a normal column: %s.%s no longer exists",
                        table.name, attr.name, attr.reference.table, attr.reference.attribute,
                    )

    def _commit(self, draft: Schema, resync: bool = False) -> None:
        # References keep the table they resolved to, even while names are duplicated
        targets = {} if resync else self._targets()
        self._demote_unresolved(draft, targets)
        new_edges = derive_relationships(draft, targets)

        if resync:
            destroyed = list(self._edges)
            created = list(new_edges.values())
        else:
            destroyed = [eid for eid, edge in self._edges.items() if new_edges.get(eid) != edge]
            created = [edge for eid, edge in new_edges.items() if self._edges.get(eid) != edge]

        self._schema = draft
        self._edges = new_edges
        self.revision += 1

        events: list[EdgeEvent] = [EdgeDestroyed(edge_id=edge_id) for edge_id in destroyed]
        events.extend(EdgeCreated(edge=edge) for edge in created)
        self._emit(events)

    def _emit(self, events: list[EdgeEvent]) -> None:
        """Deliver every event to every listener, then re-raise the first listener error."""
        failure: Optional[Exception] = None
        listeners = list(self._listeners)
        for event in events:
            for listener in listeners:
                try:
                    listener(event)
                except Exception as e:
                    logger.exception("Edge listener failed on %s event", event.kind)
                    if failure is None:
                        failure = e
        if failure is not None:
            raise failure
