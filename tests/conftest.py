"""Shared fixtures: the demo orders graph and an engine with a fixed link config."""

import pytest

from hypermedia.sample import build_sample_graph
from hypermedia.services.links import LinkConfig, LinkResolver, TemplateSet
from hypermedia.services.traversal import TraversalEngine


@pytest.fixture
def graph():
    return build_sample_graph()


@pytest.fixture
def link_config():
    return LinkConfig(base_url="", id_encoding="percent")


@pytest.fixture
def resolver(graph, link_config):
    return LinkResolver(graph, TemplateSet.from_schema(graph.schema), link_config)


@pytest.fixture
def engine(graph, link_config):
    return TraversalEngine.for_graph(graph, link_config)


def collect_self_hrefs(document):
    """Every `_links.self.href` and JSON:API `links.self` of resource objects in a document."""
    hrefs = []

    def walk(node):
        if isinstance(node, dict):
            links = node.get("_links")
            if isinstance(links, dict) and isinstance(links.get("self"), dict):
                hrefs.append(links["self"]["href"])
            if "type" in node and "id" in node and isinstance(node.get("links"), dict):
                hrefs.append(node["links"]["self"])
            for value in node.values():
                walk(value)
        elif isinstance(node, list):
            for value in node:
                walk(value)

    walk(document)
    return hrefs


@pytest.fixture
def self_hrefs():
    return collect_self_hrefs
