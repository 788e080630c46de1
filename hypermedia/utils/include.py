from __future__ import annotations

from copy import deepcopy
from typing import Dict, Iterable, Optional, Union

from hypermedia.config.settings import settings
from hypermedia.models.errors import InvalidIncludePath

# Relationship name -> include tree of the related entities
IncludeTree = Dict[str, "IncludeTree"]


def parse_include(
    paths: Union[None, str, Iterable[str]],
    max_depth: Optional[int] = None,
) -> IncludeTree:
    """
    Parse dotted include paths into a tree.

    Accepts a sequence of paths or a single comma-separated string, the way
    the JSON:API `include` query parameter is written. A path implies all of
    its prefixes, so ["items.product"] also includes "items".
    """
    if paths is None:
        return {}
    if isinstance(paths, str):
        paths = paths.split(",")
    if max_depth is None:
        max_depth = settings.MAX_INCLUDE_DEPTH

    tree: IncludeTree = {}
    for raw in paths:
        path = raw.strip()
        if not path:
            continue
        segments = path.split(".")
        if any(not s.strip() for s in segments):
            raise InvalidIncludePath(path, "empty relationship name")
        if len(segments) > max_depth:
            raise InvalidIncludePath(path, f"deeper than {max_depth} relationships")

        node = tree
        for segment in segments:
            node = node.setdefault(segment.strip(), {})
    return tree


def merge_include(tree: IncludeTree, extra: IncludeTree) -> IncludeTree:
    """
    Merge `extra` into `tree` in place and return only what was missing,
    e.g. merging {"c": {"d": {}}} into {"c": {}} returns {"c": {"d": {}}}.
    """
    added: IncludeTree = {}
    for name, subtree in extra.items():
        if name not in tree:
            tree[name] = deepcopy(subtree)
            added[name] = subtree
            continue
        nested = merge_include(tree[name], subtree)
        if nested:
            added[name] = nested
    return added
