from hypermedia.models.document import Diagnostic, DocumentFormat, RenderResult
from hypermedia.models.entity import (
    Cardinality,
    Entity,
    EntityRef,
    GraphSchema,
    RelationshipSchema,
    ResourceType,
)
from hypermedia.models.errors import (
    GraphIntegrityError,
    HypermediaError,
    InvalidIncludePath,
    NotFound,
    UnknownRelationship,
    UnresolvableRelationship,
)
from hypermedia.services.builder import RepresentationBuilder
from hypermedia.services.graph import InMemoryResourceGraph, ResourceGraph
from hypermedia.services.links import LinkConfig, LinkResolver, TemplateSet
from hypermedia.services.traversal import TraversalEngine

__all__ = [
    "Cardinality",
    "Diagnostic",
    "DocumentFormat",
    "Entity",
    "EntityRef",
    "GraphIntegrityError",
    "GraphSchema",
    "HypermediaError",
    "InMemoryResourceGraph",
    "InvalidIncludePath",
    "LinkConfig",
    "LinkResolver",
    "NotFound",
    "RelationshipSchema",
    "RenderResult",
    "RepresentationBuilder",
    "ResourceGraph",
    "ResourceType",
    "TemplateSet",
    "TraversalEngine",
    "UnknownRelationship",
    "UnresolvableRelationship",
]
