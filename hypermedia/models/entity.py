from __future__ import annotations

from enum import Enum as PyEnum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hypermedia.models.errors import UnknownRelationship

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class Cardinality(str, PyEnum):
    """How many entities a relationship points at"""
    ONE = "one"      # zero or one related entity
    MANY = "many"    # ordered list of related entities


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------
class EntityRef(BaseModel):
    """Identity of an entity inside a graph snapshot."""
    type: str = Field(
        ...,
        description="Resource type name (e.g. 'order', 'item')"
    )
    id: str = Field(
        ...,
        description="Identifier, unique per type"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.id)

    def ref(self) -> "EntityRef":
        return EntityRef(type=self.type, id=self.id)


RelationshipValue = Union[EntityRef, List[EntityRef], None]


class Entity(EntityRef):
    """A typed record with attributes and relationship references."""
    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Attribute name -> scalar or structured value"
    )
    relationships: Dict[str, RelationshipValue] = Field(
        default_factory=dict,
        description="Relationship name -> single reference, list of references or None"
    )


# -----------------------------------------------------------------------------
# Schema
# -----------------------------------------------------------------------------
class RelationshipSchema(BaseModel):
    name: str
    cardinality: Cardinality
    target_type: Optional[str] = Field(
        None,
        description="Type of the related entities, informational"
    )
    uri_template: Optional[str] = Field(
        None,
        description="Related-URI template used when no explicit template is registered"
    )

    model_config = ConfigDict(frozen=True)


class ResourceType(BaseModel):
    type: str
    collection: Optional[str] = Field(
        None,
        description="Collection path segment; defaults to the type name plus 's'"
    )
    relationships: Dict[str, RelationshipSchema] = Field(default_factory=dict)

    @field_validator("relationships", mode="before")
    @classmethod
    def _index_relationships(cls, value: Any) -> Any:
        # Accept a plain list of relationship schemas keyed by their name
        if isinstance(value, (list, tuple)):
            indexed = {}
            for rel in value:
                name = rel.name if isinstance(rel, RelationshipSchema) else rel["name"]
                indexed[name] = rel
            return indexed
        return value

    @property
    def collection_name(self) -> str:
        return self.collection or f"{self.type}s"


class GraphSchema(BaseModel):
    """Declared resource types and their relationships."""
    types: Dict[str, ResourceType] = Field(default_factory=dict)

    @field_validator("types", mode="before")
    @classmethod
    def _index_types(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return {
                (t.type if isinstance(t, ResourceType) else t["type"]): t
                for t in value
            }
        return value

    def resource_type(self, type: str) -> Optional[ResourceType]:
        return self.types.get(type)

    def relationship(self, type: str, name: str) -> RelationshipSchema:
        resource_type = self.types.get(type)
        if resource_type is None or name not in resource_type.relationships:
            raise UnknownRelationship(type, name)
        return resource_type.relationships[name]

    def cardinality(self, type: str, name: str) -> Cardinality:
        return self.relationship(type, name).cardinality

    def relationship_names(self, type: str) -> List[str]:
        resource_type = self.types.get(type)
        if resource_type is None:
            return []
        return list(resource_type.relationships)
