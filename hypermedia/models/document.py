from __future__ import annotations

from enum import Enum as PyEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from hypermedia.models.entity import Cardinality, Entity, EntityRef
from hypermedia.models.errors import HypermediaError
from hypermedia.models.hateoas import HALLink, RelationshipLinks

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class DocumentFormat(str, PyEnum):
    """Output document shape"""
    HAL = "hal"
    JSONAPI = "jsonapi"

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self]


MEDIA_TYPES = {
    DocumentFormat.HAL: "application/hal+json",
    DocumentFormat.JSONAPI: "application/vnd.api+json",
}


class DiagnosticLevel(str, PyEnum):
    ERROR = "error"   # a branch of the document was dropped
    INFO = "info"     # expected condition, nothing dropped


# -----------------------------------------------------------------------------
# Diagnostics
# -----------------------------------------------------------------------------
class Diagnostic(BaseModel):
    """Out-of-band record of a non-fatal condition met while rendering."""
    level: DiagnosticLevel = Field(
        DiagnosticLevel.ERROR,
        description="Severity of the condition"
    )
    code: str = Field(
        ...,
        description="Error class name or informational code"
    )
    message: str
    entity: Optional[EntityRef] = Field(
        None,
        description="Entity whose representation was affected"
    )
    relationship: Optional[str] = Field(
        None,
        description="Relationship or link name that failed"
    )
    path: str = Field(
        "",
        description="Dotted include path where the condition occurred; empty for the root"
    )

    @classmethod
    def from_error(
        cls,
        error: HypermediaError,
        entity: Optional[EntityRef] = None,
        path: str = "",
    ) -> "Diagnostic":
        return cls(
            level=DiagnosticLevel.ERROR,
            code=type(error).__name__,
            message=str(error),
            entity=entity.ref() if entity is not None else None,
            relationship=getattr(error, "relationship", None),
            path=path,
        )


class RenderResult(BaseModel):
    format: DocumentFormat
    document: Dict[str, Any]
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.level == DiagnosticLevel.ERROR]

    @property
    def media_type(self) -> str:
        return self.format.media_type


# -----------------------------------------------------------------------------
# Intermediate representation
# -----------------------------------------------------------------------------
class ResolvedRelationship(BaseModel):
    name: str
    cardinality: Cardinality
    links: RelationshipLinks
    linkage: List[EntityRef] = Field(
        default_factory=list,
        description="Ordered references; at most one for cardinality 'one'"
    )
    embedded: bool = False


class ResolvedEntity(BaseModel):
    """One entity with every link resolved, computed once and rendered per format."""
    entity: Entity
    self_link: Optional[HALLink] = None
    relationships: Dict[str, ResolvedRelationship] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return self.entity.key
