from __future__ import annotations

import logging
from collections import deque
from math import ceil
from typing import Any, Deque, Dict, Iterable, Optional, Sequence, Union

from hypermedia.config.settings import settings
from hypermedia.models.document import DocumentFormat, RenderResult
from hypermedia.models.entity import Entity, EntityRef
from hypermedia.services.builder import (
    Pending,
    RenderPlan,
    RepresentationBuilder,
    hal_tree,
    jsonapi_included,
    jsonapi_resource,
    render_document,
)
from hypermedia.services.graph import InMemoryResourceGraph, ResourceGraph
from hypermedia.services.links import LinkConfig, LinkResolver, TemplateSet
from hypermedia.utils.include import IncludeTree, parse_include

logger = logging.getLogger(__name__)


class TraversalEngine:
    """
    Breadth-first renderer over a ResourceGraph.

    Holds no state between calls: every render builds its own plan and
    visited set, so one engine can serve any number of requests as long as
    each brings its own graph snapshot.
    """

    def __init__(
        self,
        graph: ResourceGraph,
        resolver: LinkResolver,
        builder: Optional[RepresentationBuilder] = None,
    ) -> None:
        self.graph = graph
        self.resolver = resolver
        self.builder = builder or RepresentationBuilder(graph, resolver)

    def _root(self, root: Union[Entity, EntityRef]) -> Entity:
        if isinstance(root, Entity):
            return root
        # NotFound for the root is fatal and propagates
        return self.graph.get_entity(root.type, root.id)

    def _walk(self, plan: RenderPlan, roots: Sequence[Entity], tree: IncludeTree) -> None:
        queue: Deque[Pending] = deque()

        for entity in roots:
            if entity.key in plan.nodes:
                continue
            node = self.builder.resolve(entity, tree.keys(), plan.diagnostics)
            plan.add(node, tree)
            queue.append((node, tree, ""))

        # FIFO order: a node's first visit is expanded before any later
        # extension of its include paths
        while queue:
            node, subtree, path = queue.popleft()
            logger.debug("Visiting %s/%s at '%s'", node.entity.type, node.entity.id, path or "<root>")
            queue.extend(self.builder.expand(plan, node, subtree, path))

    def render(
        self,
        root: Union[Entity, EntityRef],
        format: Union[DocumentFormat, str, None] = None,
        include: Union[None, str, Iterable[str]] = None,
    ) -> RenderResult:
        """
        Render `root` and every entity reachable through the include paths.

        Each distinct (type, id) gets exactly one full representation, at its
        first breadth-first encounter; later encounters are link-only
        references. Branch-local failures are returned as diagnostics.
        """
        format = DocumentFormat(format or settings.DEFAULT_FORMAT)
        tree = parse_include(include)
        entity = self._root(root)

        plan = RenderPlan(roots=[entity])
        self._walk(plan, [entity], tree)

        logger.info(
            "Rendered %s/%s as %s: %d representations, %d diagnostics",
            entity.type, entity.id, format.value, len(plan.nodes), len(plan.diagnostics),
        )
        return RenderResult(
            format=format,
            document=render_document(plan, format),
            diagnostics=plan.diagnostics,
        )

    def render_collection(
        self,
        entities: Sequence[Entity],
        format: Union[DocumentFormat, str, None] = None,
        include: Union[None, str, Iterable[str]] = None,
        page: int = 1,
        size: Optional[int] = None,
        collection_href: str = "",
        name: Optional[str] = None,
    ) -> RenderResult:
        """
        Render one page of a collection.

        The visited set is shared by every member of the page, so an entity
        reachable from several members is still represented once. HAL lists
        the members under `_embedded.<name>`; `name` defaults to the last
        segment of `collection_href`.
        """
        format = DocumentFormat(format or settings.DEFAULT_FORMAT)
        size = size or settings.DEFAULT_PAGE_SIZE
        if page < 1 or size < 1:
            raise ValueError("page and size must be positive")
        size = min(size, settings.MAX_PAGE_SIZE)
        name = name or collection_href.rstrip("/").rsplit("/", 1)[-1]
        if format == DocumentFormat.HAL and not name:
            raise ValueError("HAL collections need a name or a collection_href")
        tree = parse_include(include)

        total = len(entities)
        total_pages = ceil(total / size) if total > 0 else 0
        members = list(entities[(page - 1) * size: page * size])

        plan = RenderPlan(roots=members)
        self._walk(plan, members, tree)

        links = self._page_links(collection_href, page, size, total_pages)
        meta = {
            "page": page,
            "size": size,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
        }
        if format == DocumentFormat.HAL:
            document: Dict[str, Any] = {
                "_links": {rel: {"href": href} for rel, href in links.items()},
                "_embedded": {name: [hal_tree(plan, m.key) for m in members]},
                **meta,
            }
        else:
            document = {
                "data": [jsonapi_resource(plan.nodes[m.key]) for m in members],
                "links": links,
                "meta": meta,
                "included": jsonapi_included(plan),
            }

        logger.info(
            "Rendered page %d/%d of %s as %s: %d representations",
            page, total_pages, name or "collection", format.value, len(plan.nodes),
        )
        return RenderResult(format=format, document=document, diagnostics=plan.diagnostics)

    def _page_links(self, href: str, page: int, size: int, total_pages: int) -> Dict[str, str]:
        base = self.resolver.config.absolute(href) if href else ""

        def at(number: int) -> str:
            return f"{base}?page={number}&size={size}"

        links = {"self": at(page), "first": at(1)}
        if page > 1:
            links["prev"] = at(min(page - 1, max(total_pages, 1)))
        if page < total_pages:
            links["next"] = at(page + 1)
        links["last"] = at(max(total_pages, 1))
        return links

    @classmethod
    def for_graph(cls, graph: InMemoryResourceGraph, config: Optional[LinkConfig] = None) -> "TraversalEngine":
        """Engine with the conventional link layout derived from `graph.schema`."""
        templates = TemplateSet.from_schema(graph.schema)
        return cls(graph, LinkResolver(graph, templates, config))
