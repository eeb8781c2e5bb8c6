"""Relationship edge models and the events emitted to the visual layer."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field

from schemasync.models.schema import Cardinality, CascadeAction


class AttributeRef(BaseModel):
    """Address of an attribute: owning table id plus attribute name."""

    model_config = ConfigDict(frozen=True)

    table_id: str
    attribute: str


def edge_id_for(source: AttributeRef, target: AttributeRef) -> str:
    """Stable edge id from the referenced attribute to the foreign attribute."""
    return f"{source.table_id}-{source.attribute}-to-{target.table_id}-{target.attribute}"


class Relationship(BaseModel):
    """Derived edge from a referenced attribute to the foreign attribute pointing at it."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: AttributeRef
    target: AttributeRef
    cardinality: Cardinality
    optional: bool = False
    on_delete: Optional[CascadeAction] = None
    on_update: Optional[CascadeAction] = None

    @computed_field
    @property
    def label(self) -> str:
        return self.cardinality.label


class EdgeCreated(BaseModel):
    kind: Literal["create"] = "create"
    edge: Relationship


class EdgeDestroyed(BaseModel):
    kind: Literal["destroy"] = "destroy"
    edge_id: str


EdgeEvent = Union[EdgeCreated, EdgeDestroyed]
