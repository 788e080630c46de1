from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from hypermedia.models.document import (
    Diagnostic,
    DiagnosticLevel,
    DocumentFormat,
    RenderResult,
    ResolvedEntity,
    ResolvedRelationship,
)
from hypermedia.models.entity import Cardinality, Entity, EntityRef
from hypermedia.models.errors import (
    CYCLE_GUARD_TRIGGERED,
    NotFound,
    UnknownRelationship,
    UnresolvableRelationship,
)
from hypermedia.models.hateoas import HALLink
from hypermedia.services.graph import ResourceGraph
from hypermedia.services.links import LinkResolver
from hypermedia.utils.include import IncludeTree, merge_include, parse_include

logger = logging.getLogger(__name__)

Key = Tuple[str, str]

# A resolved node, the include subtree still to follow from it, and its path
Pending = Tuple[ResolvedEntity, IncludeTree, str]


def join_path(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


# -----------------------------------------------------------------------------
# Render plan
# -----------------------------------------------------------------------------
class Placement:
    """One slot of an embedded relationship: the full representation or a link-only reference."""

    __slots__ = ("ref", "full")

    def __init__(self, ref: EntityRef, full: bool) -> None:
        self.ref = ref
        self.full = full


class RenderPlan:
    """
    Everything needed to emit a document: resolved nodes in first-visit
    order, the visited set, where each embedded entity sits, and the
    include tree followed from each node so far.
    """

    def __init__(self, roots: Iterable[EntityRef] = ()) -> None:
        self.roots: List[EntityRef] = [r.ref() for r in roots]
        self.visited: Set[Key] = {r.key for r in self.roots}
        self.nodes: Dict[Key, ResolvedEntity] = {}
        self.trees: Dict[Key, IncludeTree] = {}
        self.placements: Dict[Key, Dict[str, List[Placement]]] = {}
        self.references: Dict[Key, Optional[HALLink]] = {}
        self.diagnostics: List[Diagnostic] = []

    def add(self, node: ResolvedEntity, tree: Optional[IncludeTree] = None) -> None:
        self.visited.add(node.key)
        self.nodes[node.key] = node
        self.trees[node.key] = deepcopy(tree or {})

    def place(self, parent: Key, relationship: str, placement: Placement) -> None:
        self.placements.setdefault(parent, {}).setdefault(relationship, []).append(placement)

    def reference_link(self, key: Key) -> Optional[HALLink]:
        node = self.nodes.get(key)
        if node is not None:
            return node.self_link
        return self.references.get(key)


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------
class RepresentationBuilder:
    """Resolves single entities and renders resolved entities as HAL or JSON:API."""

    def __init__(self, graph: ResourceGraph, resolver: LinkResolver) -> None:
        self.graph = graph
        self.resolver = resolver

    def _record(
        self,
        diagnostics: List[Diagnostic],
        error: Exception,
        entity: Optional[EntityRef],
        path: str,
    ) -> None:
        logger.warning("Dropped branch at '%s': %s", path or "<root>", error)
        diagnostics.append(Diagnostic.from_error(error, entity=entity, path=path))

    def resolve(
        self,
        entity: Entity,
        embed: Iterable[str] = (),
        diagnostics: Optional[List[Diagnostic]] = None,
        path: str = "",
    ) -> ResolvedEntity:
        """
        Compute the intermediate representation of one entity.
        A relationship whose links or linkage cannot be resolved is left out
        and reported in `diagnostics`; the rest of the entity still resolves.
        """
        if diagnostics is None:
            diagnostics = []
        embed = set(embed)

        self_link: Optional[HALLink] = None
        try:
            self_link = self.resolver.resolve_self(entity)
        except UnresolvableRelationship as e:
            self._record(diagnostics, e, entity, path)

        declared = self.graph.declared_relationships(entity.type)

        for name in entity.relationships:
            if name not in declared:
                self._record(diagnostics, UnknownRelationship(entity.type, name), entity, join_path(path, name))

        relationships: Dict[str, ResolvedRelationship] = {}
        for name in declared:
            try:
                cardinality = self.graph.relationship_cardinality(entity.type, name)
                links = self.resolver.resolve_relationship(entity, name)
                linkage = self.graph.get_related(entity, name)
            except (UnknownRelationship, UnresolvableRelationship) as e:
                self._record(diagnostics, e, entity, join_path(path, name))
                continue

            relationships[name] = ResolvedRelationship(
                name=name,
                cardinality=cardinality,
                links=links,
                linkage=linkage,
                embedded=name in embed,
            )

        for name in sorted(embed - set(declared)):
            self._record(diagnostics, UnknownRelationship(entity.type, name), entity, join_path(path, name))

        return ResolvedEntity(entity=entity, self_link=self_link, relationships=relationships)

    def embed(
        self,
        plan: RenderPlan,
        parent: ResolvedEntity,
        relationship: str,
        subtree: IncludeTree,
        path: str,
    ) -> List[Pending]:
        """
        Place every related entity of one embedded relationship.

        Entities not yet visited are fetched, resolved and added to the plan
        as full representations; the returned list holds them for further
        traversal. Visited or missing entities become link-only references.
        A visited entity reached with include paths it has not followed yet
        is returned again with just those paths.
        """
        rel = parent.relationships[relationship]
        child_path = join_path(path, relationship)
        discovered: List[Pending] = []

        for ref in rel.linkage:
            if ref.key in plan.visited:
                logger.debug("Revisit of %s/%s at '%s', emitting reference", ref.type, ref.id, child_path)
                plan.diagnostics.append(Diagnostic(
                    level=DiagnosticLevel.INFO,
                    code=CYCLE_GUARD_TRIGGERED,
                    message=f"{ref.type}/{ref.id} already represented, emitted as a reference",
                    entity=ref,
                    relationship=relationship,
                    path=child_path,
                ))
                self._remember_reference(plan, ref, child_path)
                plan.place(parent.key, relationship, Placement(ref, full=False))
                if ref.key in plan.nodes:
                    discovered.extend(self.extend(plan, plan.nodes[ref.key], subtree, child_path))
                continue

            try:
                child = self.graph.get_entity(ref.type, ref.id)
            except NotFound as e:
                self._record(plan.diagnostics, e, ref, child_path)
                self._remember_reference(plan, ref, child_path)
                plan.place(parent.key, relationship, Placement(ref, full=False))
                continue

            node = self.resolve(child, subtree.keys(), plan.diagnostics, child_path)
            plan.add(node, subtree)
            plan.place(parent.key, relationship, Placement(ref, full=True))
            discovered.append((node, subtree, child_path))

        # Keep the key even when there is nothing to place
        plan.placements.setdefault(parent.key, {}).setdefault(relationship, [])
        return discovered

    def extend(self, plan: RenderPlan, node: ResolvedEntity, subtree: IncludeTree, path: str) -> List[Pending]:
        """Merge `subtree` into the paths followed from `node`; returns the node with only the new ones."""
        followed = plan.trees.setdefault(node.key, {})
        new_names = [name for name in subtree if name not in followed]
        added = merge_include(followed, subtree)
        if not added:
            return []

        declared = self.graph.declared_relationships(node.entity.type)
        for name in new_names:
            if name not in declared:
                self._record(plan.diagnostics, UnknownRelationship(node.entity.type, name), node.entity,
                             join_path(path, name))
            elif name in node.relationships:
                node.relationships[name].embedded = True

        logger.debug("Extending %s/%s with %s from '%s'", node.entity.type, node.entity.id, sorted(added), path)
        return [(node, added, path)]

    def expand(self, plan: RenderPlan, node: ResolvedEntity, subtree: IncludeTree, path: str) -> List[Pending]:
        """Follow one level of `subtree` from `node`; returns what to follow next."""
        discovered: List[Pending] = []
        placed = plan.placements.get(node.key, {})

        for name, child_tree in subtree.items():
            # Unknown or unresolvable relationships were dropped during resolve
            if name not in node.relationships:
                continue
            if name not in placed:
                discovered.extend(self.embed(plan, node, name, child_tree, path))
                continue
            # Already embedded: carry the deeper paths to what sits there
            child_path = join_path(path, name)
            for ref in node.relationships[name].linkage:
                if ref.key in plan.nodes:
                    discovered.extend(self.extend(plan, plan.nodes[ref.key], child_tree, child_path))
        return discovered

    def _remember_reference(self, plan: RenderPlan, ref: EntityRef, path: str) -> None:
        if ref.key in plan.nodes or ref.key in plan.references:
            return
        try:
            plan.references[ref.key] = self.resolver.resolve_self(ref)
        except UnresolvableRelationship as e:
            self._record(plan.diagnostics, e, ref, path)
            plan.references[ref.key] = None

    def build(
        self,
        entity: Entity,
        format: Union[DocumentFormat, str],
        include: Union[None, str, Iterable[str]] = None,
    ) -> RenderResult:
        """
        Represent one entity, embedding each included relationship one level
        deep. A related entity embeds further only along the paths marked for
        it, so ["items"] embeds items and ["items.product"] also their product.
        """
        format = DocumentFormat(format)
        tree = parse_include(include)

        plan = RenderPlan(roots=[entity])
        root = self.resolve(entity, tree.keys(), plan.diagnostics)
        plan.add(root, tree)

        level = self.expand(plan, root, tree, "")
        while level:
            level = [pending for node, subtree, path in level
                     for pending in self.expand(plan, node, subtree, path)]

        return RenderResult(
            format=format,
            document=render_document(plan, format),
            diagnostics=plan.diagnostics,
        )


# -----------------------------------------------------------------------------
# HAL
# -----------------------------------------------------------------------------
def hal_reference(link: Optional[HALLink]) -> Dict[str, Any]:
    return {"_links": {"self": link.as_dict()} if link is not None else {}}


def hal_resource(node: ResolvedEntity, embedded: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
    doc: Dict[str, Any] = dict(node.entity.attributes)

    links: Dict[str, Any] = {}
    if node.self_link is not None:
        links["self"] = node.self_link.as_dict()
    for rel in node.relationships.values():
        if rel.cardinality == Cardinality.ONE and not rel.linkage:
            links[rel.name] = None
        else:
            links[rel.name] = rel.links.related.as_dict()
    doc["_links"] = links

    if embedded:
        doc["_embedded"] = {}
        for name, docs in embedded.items():
            if node.relationships[name].cardinality == Cardinality.MANY:
                doc["_embedded"][name] = docs
            else:
                doc["_embedded"][name] = docs[0] if docs else None
    return doc


def hal_tree(plan: RenderPlan, key: Key) -> Dict[str, Any]:
    embedded: Dict[str, List[Dict[str, Any]]] = {}
    for name, placements in plan.placements.get(key, {}).items():
        embedded[name] = [
            hal_tree(plan, p.ref.key) if p.full else hal_reference(plan.reference_link(p.ref.key))
            for p in placements
        ]
    return hal_resource(plan.nodes[key], embedded)


def _hal_document(plan: RenderPlan) -> Dict[str, Any]:
    return hal_tree(plan, plan.roots[0].key)


# -----------------------------------------------------------------------------
# JSON:API
# -----------------------------------------------------------------------------
def jsonapi_identifier(ref: EntityRef) -> Dict[str, str]:
    return {"type": ref.type, "id": ref.id}


def jsonapi_resource(node: ResolvedEntity) -> Dict[str, Any]:
    relationships: Dict[str, Any] = {}
    for rel in node.relationships.values():
        links: Dict[str, str] = {}
        if rel.links.relationship is not None:
            links["self"] = rel.links.relationship.href
        links["related"] = rel.links.related.href

        if rel.cardinality == Cardinality.MANY:
            data: Any = [jsonapi_identifier(ref) for ref in rel.linkage]
        else:
            data = jsonapi_identifier(rel.linkage[0]) if rel.linkage else None

        relationships[rel.name] = {"links": links, "data": data}

    resource: Dict[str, Any] = {
        "type": node.entity.type,
        "id": node.entity.id,
        "attributes": dict(node.entity.attributes),
        "relationships": relationships,
    }
    if node.self_link is not None:
        resource["links"] = {"self": node.self_link.href}
    return resource


def jsonapi_included(plan: RenderPlan) -> List[Dict[str, Any]]:
    roots = {r.key for r in plan.roots}
    return [jsonapi_resource(node) for key, node in plan.nodes.items() if key not in roots]


def _jsonapi_document(plan: RenderPlan) -> Dict[str, Any]:
    root = plan.nodes[plan.roots[0].key]
    doc: Dict[str, Any] = {"data": jsonapi_resource(root)}
    if root.self_link is not None:
        doc["links"] = {"self": root.self_link.href}
    doc["included"] = jsonapi_included(plan)
    return doc


RENDERERS: Dict[DocumentFormat, Callable[[RenderPlan], Dict[str, Any]]] = {
    DocumentFormat.HAL: _hal_document,
    DocumentFormat.JSONAPI: _jsonapi_document,
}


def render_document(plan: RenderPlan, format: DocumentFormat) -> Dict[str, Any]:
    return RENDERERS[DocumentFormat(format)](plan)
