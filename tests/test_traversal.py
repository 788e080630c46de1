"""Tests for breadth-first traversal, cycle safety and the branch-local failure policy."""

import pytest

from hypermedia.models.document import DiagnosticLevel, DocumentFormat
from hypermedia.models.entity import (
    Cardinality,
    Entity,
    EntityRef,
    GraphSchema,
    RelationshipSchema,
    ResourceType,
)
from hypermedia.models.errors import InvalidIncludePath, NotFound
from hypermedia.sample import SCHEMA, sample_entities
from hypermedia.services.graph import InMemoryResourceGraph
from hypermedia.services.links import LinkResolver, TemplateSet
from hypermedia.services.traversal import TraversalEngine


NODE_SCHEMA = GraphSchema(types=[
    ResourceType(type="node", relationships=[
        RelationshipSchema(name="b", cardinality=Cardinality.ONE),
        RelationshipSchema(name="c", cardinality=Cardinality.ONE),
        RelationshipSchema(name="peers", cardinality=Cardinality.MANY),
    ]),
])


def node(id, b=None, c=None, peers=()):
    return Entity(
        type="node",
        id=id,
        attributes={"name": id},
        relationships={
            "b": EntityRef(type="node", id=b) if b else None,
            "c": EntityRef(type="node", id=c) if c else None,
            "peers": [EntityRef(type="node", id=p) for p in peers],
        },
    )


def node_engine(link_config, *entities):
    return TraversalEngine.for_graph(InMemoryResourceGraph(NODE_SCHEMA, entities), link_config)


def full_hal_keys(doc):
    """(href) of every HAL object carrying attributes, i.e. every full representation."""
    found = []

    def walk(value):
        if isinstance(value, dict):
            if "name" in value or "status" in value or "quantity" in value:
                found.append(value["_links"]["self"]["href"])
            for child in value.get("_embedded", {}).values():
                walk(child)
        elif isinstance(value, list):
            for child in value:
                walk(child)

    walk(doc)
    return found


class TestOrderScenario:
    """Order(1) with items 10 and 11."""

    def test_hal(self, engine):
        result = engine.render(EntityRef(type="order", id=1), DocumentFormat.HAL, ["items"])
        doc = result.document

        assert doc["_links"]["items"]["href"] == "/orders/1/items"
        items = doc["_embedded"]["items"]
        assert [i["_links"]["self"]["href"] for i in items] == ["/items/10", "/items/11"]
        assert items[0]["quantity"] == 1
        assert result.errors == []

    def test_jsonapi(self, engine):
        result = engine.render(EntityRef(type="order", id=1), DocumentFormat.JSONAPI, ["items"])
        doc = result.document

        assert doc["data"]["relationships"]["items"]["data"] == [
            {"type": "item", "id": "10"},
            {"type": "item", "id": "11"},
        ]
        assert [(r["type"], r["id"]) for r in doc["included"]] == [("item", "10"), ("item", "11")]

    def test_jsonapi_included_deduplicated_across_paths(self, engine):
        result = engine.render(EntityRef(type="order", id=1), "jsonapi", ["items.product", "customer.orders"])
        keys = [(r["type"], r["id"]) for r in result.document["included"]]

        assert keys == [("item", "10"), ("item", "11"), ("customer", "100"), ("product", "500")]
        assert len(keys) == len(set(keys))

    def test_missing_customer_is_explicit_null(self, engine):
        jsonapi = engine.render(EntityRef(type="order", id=2), "jsonapi", ["customer"]).document
        assert jsonapi["data"]["relationships"]["customer"]["data"] is None
        assert jsonapi["included"] == []

        hal = engine.render(EntityRef(type="order", id=2), "hal", ["customer"]).document
        assert "customer" in hal["_links"] and hal["_links"]["customer"] is None
        assert "customer" in hal["_embedded"] and hal["_embedded"]["customer"] is None

    def test_empty_items_never_omitted(self, engine):
        for include in ([], ["items"]):
            hal = engine.render(EntityRef(type="order", id=2), "hal", include).document
            jsonapi = engine.render(EntityRef(type="order", id=2), "jsonapi", include).document
            assert hal["_links"]["items"] == {"href": "/orders/2/items"}
            assert jsonapi["data"]["relationships"]["items"]["data"] == []
        assert hal["_embedded"]["items"] == []

    def test_default_format_from_settings(self, engine):
        result = engine.render(EntityRef(type="order", id=1))
        assert result.format == DocumentFormat.HAL
        assert result.media_type == "application/hal+json"

    def test_render_accepts_entity(self, engine, graph):
        result = engine.render(graph.get_entity("order", "1"), "jsonapi")
        assert result.document["data"]["id"] == "1"


class TestCycles:

    def test_mutual_reference_terminates(self, engine):
        result = engine.render(EntityRef(type="order", id=1), "hal", ["customer.orders.customer"])
        doc = result.document

        customer = doc["_embedded"]["customer"]
        assert customer["name"] == "Ada Lovelace"
        back_reference = customer["_embedded"]["orders"]
        assert back_reference == [{"_links": {"self": {"href": "/orders/1"}}}]

        infos = [d for d in result.diagnostics if d.level == DiagnosticLevel.INFO]
        assert [(d.code, d.entity.key, d.path) for d in infos] == [
            ("CycleGuardTriggered", ("order", "1"), "customer.orders"),
        ]
        assert result.errors == []

    def test_two_node_cycle_has_one_full_representation_each(self, link_config):
        engine = node_engine(link_config, node("A", b="B"), node("B", b="A"))

        result = engine.render(EntityRef(type="node", id="A"), "hal", ["b.b.b.b"])
        assert sorted(full_hal_keys(result.document)) == ["/nodes/A", "/nodes/B"]
        assert result.document["_embedded"]["b"]["_embedded"]["b"] == {"_links": {"self": {"href": "/nodes/A"}}}

        jsonapi = engine.render(EntityRef(type="node", id="A"), "jsonapi", ["b.b.b.b"]).document
        assert [(r["type"], r["id"]) for r in jsonapi["included"]] == [("node", "B")]

    def test_self_loop(self, link_config):
        engine = node_engine(link_config, node("A", peers=["A", "A"]))

        result = engine.render(EntityRef(type="node", id="A"), "hal", ["peers"])
        assert result.document["_embedded"]["peers"] == [
            {"_links": {"self": {"href": "/nodes/A"}}},
            {"_links": {"self": {"href": "/nodes/A"}}},
        ]


class TestBreadthFirstPlacement:

    def test_full_representation_at_first_breadth_first_encounter(self, link_config):
        # A.b -> B, A.c -> C, B.c -> C: depth-first would put C under B
        engine = node_engine(link_config, node("A", b="B", c="C"), node("B", c="C"), node("C"))

        doc = engine.render(EntityRef(type="node", id="A"), "hal", ["b.c", "c"]).document

        assert doc["_embedded"]["c"]["name"] == "C"
        assert doc["_embedded"]["b"]["_embedded"]["c"] == {"_links": {"self": {"href": "/nodes/C"}}}

    def test_second_path_to_visited_entity_still_followed(self, link_config):
        # A.b -> X and A.c -> X; Y is only reachable through "c.peers"
        engine = node_engine(link_config, node("A", b="X", c="X"), node("X", peers=["Y"]), node("Y"))

        jsonapi = engine.render(EntityRef(type="node", id="A"), "jsonapi", ["b", "c.peers"])
        assert [(r["type"], r["id"]) for r in jsonapi.document["included"]] == [("node", "X"), ("node", "Y")]
        assert jsonapi.errors == []
        assert [(d.code, d.path) for d in jsonapi.diagnostics] == [("CycleGuardTriggered", "c")]

        hal = engine.render(EntityRef(type="node", id="A"), "hal", ["b", "c.peers"]).document
        assert sorted(full_hal_keys(hal)) == ["/nodes/A", "/nodes/X", "/nodes/Y"]
        assert hal["_embedded"]["c"] == {"_links": {"self": {"href": "/nodes/X"}}}
        assert hal["_embedded"]["b"]["_embedded"]["peers"][0]["name"] == "Y"

    def test_deeper_paths_carried_through_revisit(self, link_config):
        engine = node_engine(
            link_config,
            node("A", b="X", c="X"), node("X", peers=["Y"]), node("Y", peers=["Z"]), node("Z"),
        )

        doc = engine.render(EntityRef(type="node", id="A"), "jsonapi", ["b.peers", "c.peers.peers"]).document
        assert [r["id"] for r in doc["included"]] == ["X", "Y", "Z"]

    def test_acyclic_graph_exactly_once(self, engine):
        doc = engine.render(EntityRef(type="order", id=1), "hal", ["items.product", "customer"]).document
        hrefs = full_hal_keys(doc)

        assert sorted(hrefs) == ["/customers/100", "/items/10", "/items/11", "/orders/1", "/products/500"]
        items = doc["_embedded"]["items"]
        assert items[0]["_embedded"]["product"]["name"] == "Widget"
        assert items[1]["_embedded"]["product"] == {"_links": {"self": {"href": "/products/500"}}}

    def test_beyond_include_depth_is_link_only(self, engine):
        doc = engine.render(EntityRef(type="order", id=1), "hal", ["items"]).document
        item = doc["_embedded"]["items"][0]
        assert "_embedded" not in item
        assert item["_links"]["product"] == {"href": "/items/10/product"}


class TestFailurePolicy:

    def test_root_not_found_is_fatal(self, engine):
        with pytest.raises(NotFound):
            engine.render(EntityRef(type="order", id="404"), "hal")

    def test_invalid_include_is_fatal(self, engine):
        with pytest.raises(InvalidIncludePath):
            engine.render(EntityRef(type="order", id="1"), "hal", ["items..product"])

    def test_unknown_include_is_branch_local(self, engine):
        result = engine.render(EntityRef(type="order", id=1), "hal", ["coupon", "items"])

        assert len(result.document["_embedded"]["items"]) == 2
        assert [(d.code, d.relationship, d.path) for d in result.errors] == [
            ("UnknownRelationship", "coupon", "coupon"),
        ]

    def test_unresolvable_relationship_omits_link_only(self, graph, link_config):
        templates = TemplateSet.from_schema(SCHEMA)
        pruned = TemplateSet()
        for type, template in templates.self_templates():
            pruned.register_self(type, template)
        pruned.register_relationship("order", "items", related="/orders/{id}/items")
        pruned.register_relationship("item", "order", related="/items/{id}/order")
        pruned.register_relationship("item", "product", related="/items/{id}/product")
        engine = TraversalEngine(graph, LinkResolver(graph, pruned, link_config))

        result = engine.render(EntityRef(type="order", id=1), "hal", ["items", "customer"])
        doc = result.document

        assert "customer" not in doc["_links"]
        assert "customer" not in doc.get("_embedded", {})
        assert len(doc["_embedded"]["items"]) == 2
        assert [(d.code, d.entity.key, d.relationship) for d in result.errors] == [
            ("UnresolvableRelationship", ("order", "1"), "customer"),
        ]

        jsonapi = engine.render(EntityRef(type="order", id=1), "jsonapi").document
        assert list(jsonapi["data"]["relationships"]) == ["items"]

    def test_dangling_reference_becomes_link_only(self, link_config):
        entities = sample_entities()
        entities.append(Entity(
            type="order", id=3,
            relationships={"items": [EntityRef(type="item", id="99"), EntityRef(type="item", id="10")]},
        ))
        graph = InMemoryResourceGraph(SCHEMA, entities)
        engine = TraversalEngine.for_graph(graph, link_config)

        result = engine.render(EntityRef(type="order", id=3), "hal", ["items"])
        items = result.document["_embedded"]["items"]

        assert items[0] == {"_links": {"self": {"href": "/items/99"}}}
        assert items[1]["quantity"] == 1
        assert [(d.code, d.entity.key, d.path) for d in result.errors] == [
            ("NotFound", ("item", "99"), "items"),
        ]

        jsonapi = engine.render(EntityRef(type="order", id=3), "jsonapi", ["items"]).document
        assert jsonapi["data"]["relationships"]["items"]["data"][0] == {"type": "item", "id": "99"}
        assert [r["id"] for r in jsonapi["included"]] == ["10"]


class TestSelfLinkRoundTrip:

    @pytest.mark.parametrize("format", ["hal", "jsonapi"])
    def test_every_self_link_identifies_its_entity(self, engine, resolver, graph, self_hrefs, format):
        result = engine.render(
            EntityRef(type="order", id=1), format, ["items.product", "items.order", "customer.orders"],
        )
        hrefs = self_hrefs(result.document)

        assert "/orders/1" in hrefs and "/products/500" in hrefs
        for href in hrefs:
            ref = resolver.identify(href)
            assert resolver.resolve_self(graph.get_entity(ref.type, ref.id)).href == href


class TestRenderCollection:

    def test_hal_page_links(self, engine, graph):
        result = engine.render_collection(
            graph.list_entities("order"), "hal", page=1, size=1, collection_href="/orders", name="orders",
        )
        doc = result.document

        assert doc["_links"] == {
            "self": {"href": "/orders?page=1&size=1"},
            "first": {"href": "/orders?page=1&size=1"},
            "next": {"href": "/orders?page=2&size=1"},
            "last": {"href": "/orders?page=2&size=1"},
        }
        assert [o["_links"]["self"]["href"] for o in doc["_embedded"]["orders"]] == ["/orders/1"]
        assert (doc["total"], doc["total_pages"], doc["has_next"]) == (2, 2, True)

    def test_jsonapi_last_page(self, engine, graph):
        result = engine.render_collection(
            graph.list_entities("order"), "jsonapi", page=2, size=1, collection_href="/orders",
        )
        doc = result.document

        assert [r["id"] for r in doc["data"]] == ["2"]
        assert doc["links"]["prev"] == "/orders?page=1&size=1"
        assert "next" not in doc["links"]
        assert doc["meta"]["has_next"] is False

    def test_visited_set_shared_across_members(self, engine, graph):
        items = graph.list_entities("item")

        jsonapi = engine.render_collection(items, "jsonapi", ["product"], collection_href="/items").document
        assert [(r["type"], r["id"]) for r in jsonapi["included"]] == [("product", "500")]

        hal = engine.render_collection(items, "hal", ["product"], collection_href="/items", name="items").document
        embedded = [i["_embedded"]["product"] for i in hal["_embedded"]["items"]]
        assert embedded[0]["name"] == "Widget"
        assert embedded[1] == {"_links": {"self": {"href": "/products/500"}}}

    def test_empty_collection(self, engine):
        doc = engine.render_collection([], "jsonapi", collection_href="/orders").document
        assert doc["data"] == []
        assert doc["meta"]["total_pages"] == 0
        assert doc["links"]["last"] == "/orders?page=1&size=10"

    def test_hal_name_from_collection_href(self, engine, graph):
        empty = engine.render_collection([], "hal", collection_href="/orders").document
        assert empty["_embedded"] == {"orders": []}

        beyond = engine.render_collection(graph.list_entities("order"), "hal", page=5, collection_href="/orders")
        assert beyond.document["_embedded"] == {"orders": []}

    def test_hal_collection_needs_name(self, engine):
        with pytest.raises(ValueError):
            engine.render_collection([], "hal")

    def test_rejects_non_positive_page(self, engine, graph):
        with pytest.raises(ValueError):
            engine.render_collection(graph.list_entities("order"), "hal", page=0)
