"""Demo orders/items/customers/products graph used by `main.py` for local runs."""
from hypermedia.models.entity import (
    Cardinality,
    Entity,
    EntityRef,
    GraphSchema,
    RelationshipSchema,
    ResourceType,
)
from hypermedia.services.graph import InMemoryResourceGraph


def ref(type: str, id) -> EntityRef:
    return EntityRef(type=type, id=id)


SCHEMA = GraphSchema(types=[
    ResourceType(type="order", relationships=[
        RelationshipSchema(name="items", cardinality=Cardinality.MANY, target_type="item"),
        RelationshipSchema(name="customer", cardinality=Cardinality.ONE, target_type="customer"),
    ]),
    ResourceType(type="item", relationships=[
        RelationshipSchema(name="order", cardinality=Cardinality.ONE, target_type="order"),
        RelationshipSchema(name="product", cardinality=Cardinality.ONE, target_type="product"),
    ]),
    ResourceType(type="customer", relationships=[
        RelationshipSchema(name="orders", cardinality=Cardinality.MANY, target_type="order"),
    ]),
    ResourceType(type="product"),
])


def sample_entities() -> list[Entity]:
    return [
        Entity(
            type="order", id=1,
            attributes={"status": "shipped", "total": 30.0, "currency": "USD"},
            relationships={
                "items": [ref("item", 10), ref("item", 11)],
                "customer": ref("customer", 100),
            },
        ),
        Entity(
            type="order", id=2,
            attributes={"status": "draft", "total": 0.0, "currency": "USD"},
            relationships={"items": [], "customer": None},
        ),
        Entity(
            type="item", id=10,
            attributes={"quantity": 1, "price": 10.0},
            relationships={"order": ref("order", 1), "product": ref("product", 500)},
        ),
        Entity(
            type="item", id=11,
            attributes={"quantity": 2, "price": 10.0},
            relationships={"order": ref("order", 1), "product": ref("product", 500)},
        ),
        Entity(
            type="customer", id=100,
            attributes={"name": "Ada Lovelace", "email": "ada@example.com"},
            relationships={"orders": [ref("order", 1)]},
        ),
        Entity(
            type="product", id=500,
            attributes={"name": "Widget", "sku": "W-500"},
        ),
    ]


def build_sample_graph() -> InMemoryResourceGraph:
    return InMemoryResourceGraph(SCHEMA, sample_entities())


if __name__ == "__main__":
    graph = build_sample_graph()
    for type in SCHEMA.types:
        for entity in graph.list_entities(type):
            print(f"{entity.type}/{entity.id}: {entity.attributes}")
    print(f"Sample graph ready: {len(graph)} entities.")
