from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Protocol, runtime_checkable

from hypermedia.models.entity import (
    Cardinality,
    Entity,
    EntityRef,
    GraphSchema,
)
from hypermedia.models.errors import GraphIntegrityError, NotFound

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Collaborator interface
# -----------------------------------------------------------------------------
@runtime_checkable
class ResourceGraph(Protocol):
    """
    Read-only accessor over caller-supplied entities.
    Implementations may load lazily; the engine never mutates what they return.
    """

    def get_entity(self, type: str, id: str) -> Entity: ...

    def get_related(self, entity: Entity, relationship: str) -> List[EntityRef]: ...

    def relationship_cardinality(self, type: str, relationship: str) -> Cardinality: ...

    def declared_relationships(self, type: str) -> List[str]: ...


# -----------------------------------------------------------------------------
# In-memory snapshot
# -----------------------------------------------------------------------------
class InMemoryResourceGraph:
    """ResourceGraph over a fixed list of entities, validated on construction."""

    def __init__(self, schema: GraphSchema, entities: Iterable[Entity] = ()) -> None:
        self.schema = schema
        self._entities: Dict[tuple[str, str], Entity] = {}

        for entity in entities:
            self._check(entity)
            self._entities[entity.key] = entity

        logger.debug("Loaded graph snapshot with %d entities", len(self._entities))

    def _check(self, entity: Entity) -> None:
        if entity.key in self._entities:
            raise GraphIntegrityError(f"Duplicate entity {entity.type}/{entity.id}")

        if self.schema.resource_type(entity.type) is None:
            raise GraphIntegrityError(f"Entity {entity.type}/{entity.id} has undeclared type '{entity.type}'")

        declared = self.schema.relationship_names(entity.type)
        for name, value in entity.relationships.items():
            # Undeclared names are reported at render time, not here
            if name not in declared:
                continue
            cardinality = self.schema.cardinality(entity.type, name)
            if cardinality == Cardinality.MANY and not isinstance(value, list):
                raise GraphIntegrityError(
                    f"{entity.type}/{entity.id}.{name} is declared 'many' but holds a single value"
                )
            if cardinality == Cardinality.ONE and isinstance(value, list):
                raise GraphIntegrityError(
                    f"{entity.type}/{entity.id}.{name} is declared 'one' but holds a list"
                )

    # -------------------------------------------------------------------------
    # ResourceGraph
    # -------------------------------------------------------------------------
    def get_entity(self, type: str, id: str) -> Entity:
        entity = self._entities.get((type, str(id)))
        if entity is None:
            raise NotFound(type, str(id))
        return entity

    def get_related(self, entity: Entity, relationship: str) -> List[EntityRef]:
        cardinality = self.relationship_cardinality(entity.type, relationship)
        value = entity.relationships.get(relationship)

        if value is None:
            return []
        if cardinality == Cardinality.ONE:
            return [value.ref()]
        return [ref.ref() for ref in value]

    def relationship_cardinality(self, type: str, relationship: str) -> Cardinality:
        return self.schema.cardinality(type, relationship)

    def declared_relationships(self, type: str) -> List[str]:
        return self.schema.relationship_names(type)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------
    def list_entities(self, type: str) -> List[Entity]:
        return [e for e in self._entities.values() if e.type == type]

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, EntityRef) and ref.key in self._entities
