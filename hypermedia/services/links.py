from __future__ import annotations

import logging
import re
from typing import Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import quote, unquote, urlsplit

from pydantic import BaseModel, Field

from hypermedia.config.settings import settings
from hypermedia.models.entity import Entity, EntityRef, GraphSchema
from hypermedia.models.errors import NotFound, UnresolvableRelationship
from hypermedia.models.hateoas import HALLink, RelationshipLinks
from hypermedia.services.graph import ResourceGraph

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
class LinkConfig(BaseModel):
    base_url: str = Field(
        default_factory=lambda: settings.BASE_URL,
        description="Prefix for every produced link"
    )
    id_encoding: Literal["percent", "raw"] = Field(
        default_factory=lambda: settings.ID_ENCODING,
        description="'percent' escapes reserved characters in ids, 'raw' inserts ids verbatim"
    )

    def encode_id(self, value: str) -> str:
        if self.id_encoding == "raw":
            return value
        return quote(value, safe="")

    def decode_id(self, value: str) -> str:
        if self.id_encoding == "raw":
            return value
        return unquote(value)

    def absolute(self, path: str) -> str:
        if not self.base_url or urlsplit(path).scheme:
            return path
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")


# -----------------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------------
class TemplateSet:
    """URI templates for self links and relationship links, keyed by type."""

    def __init__(self) -> None:
        self._self: Dict[str, str] = {}
        self._related: Dict[Tuple[str, str], str] = {}
        self._relationship: Dict[Tuple[str, str], str] = {}

    def register_self(self, type: str, template: str) -> "TemplateSet":
        self._self[type] = template
        return self

    def register_relationship(
        self,
        type: str,
        name: str,
        related: str,
        relationship: Optional[str] = None,
    ) -> "TemplateSet":
        self._related[(type, name)] = related
        if relationship is not None:
            self._relationship[(type, name)] = relationship
        return self

    def self_template(self, type: str) -> Optional[str]:
        return self._self.get(type)

    def related_template(self, type: str, name: str) -> Optional[str]:
        return self._related.get((type, name))

    def relationship_template(self, type: str, name: str) -> Optional[str]:
        return self._relationship.get((type, name))

    def self_templates(self) -> List[Tuple[str, str]]:
        return list(self._self.items())

    @classmethod
    def from_schema(cls, schema: GraphSchema) -> "TemplateSet":
        """
        Register the conventional layout for every declared type:
        /{collection}/{id}, /{collection}/{id}/{rel} and
        /{collection}/{id}/relationships/{rel}.
        A relationship-level uri_template replaces the related default.
        """
        templates = cls()
        for resource_type in schema.types.values():
            base = f"/{resource_type.collection_name}/{{id}}"
            templates.register_self(resource_type.type, base)
            for rel in resource_type.relationships.values():
                templates.register_relationship(
                    resource_type.type,
                    rel.name,
                    related=rel.uri_template or f"{base}/{rel.name}",
                    relationship=f"{base}/relationships/{rel.name}",
                )
        return templates


# -----------------------------------------------------------------------------
# Resolver
# -----------------------------------------------------------------------------
class LinkResolver:
    """Turns entities and relationship names into canonical URIs."""

    def __init__(
        self,
        graph: ResourceGraph,
        templates: TemplateSet,
        config: Optional[LinkConfig] = None,
    ) -> None:
        self.graph = graph
        self.templates = templates
        self.config = config or LinkConfig()

    def _values(self, target: Union[Entity, EntityRef]) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for name, value in getattr(target, "attributes", {}).items():
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                values[name] = self.config.encode_id(str(value))
        values["type"] = target.type
        values["id"] = self.config.encode_id(target.id)
        return values

    def _expand(self, template: str, values: Dict[str, str]) -> HALLink:
        unresolved: List[str] = []

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name in values:
                return values[name]
            unresolved.append(name)
            return match.group(0)

        href = self.config.absolute(_PLACEHOLDER.sub(substitute, template))
        return HALLink(href=href, templated=True if unresolved else None)

    def resolve_self(self, target: Union[Entity, EntityRef]) -> HALLink:
        template = self.templates.self_template(target.type)
        if template is None:
            raise UnresolvableRelationship(target.type, "self")
        return self._expand(template, self._values(target))

    def resolve_relationship(self, entity: Entity, name: str) -> RelationshipLinks:
        # Raises UnknownRelationship for undeclared names
        self.graph.relationship_cardinality(entity.type, name)

        related = self.templates.related_template(entity.type, name)
        if related is None:
            raise UnresolvableRelationship(entity.type, name)

        values = self._values(entity)
        relationship = self.templates.relationship_template(entity.type, name)
        return RelationshipLinks(
            related=self._expand(related, values),
            relationship=self._expand(relationship, values) if relationship else None,
        )

    def identify(self, href: str) -> EntityRef:
        """Map a self link produced by this resolver back to the entity identity."""
        path = href
        base = self.config.base_url.rstrip("/")
        if base and path.startswith(base):
            path = path[len(base):]
        path = urlsplit(path).path or "/"

        for type, template in self.templates.self_templates():
            match = _template_pattern(template).fullmatch(path)
            if match is None:
                continue
            groups = match.groupdict()
            if groups.get("type", type) != type or "id" not in groups:
                continue
            return EntityRef(type=type, id=self.config.decode_id(groups["id"]))

        logger.debug("No self template matches %s", href)
        raise NotFound("link", href)


def _template_pattern(template: str) -> "re.Pattern[str]":
    parts: List[str] = []
    position = 0
    seen: set = set()
    for match in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[position:match.start()]))
        name = match.group(1)
        if name in ("id", "type") and name not in seen:
            parts.append(f"(?P<{name}>[^/]+)")
            seen.add(name)
        else:
            parts.append("[^/]+")
        position = match.end()
    parts.append(re.escape(template[position:]))
    return re.compile("".join(parts))
