"""File-level import graph derived from the symbol registry."""
from pathlib import Path
from typing import Set

import networkx as nx

from .model import FileRegistry


def build_import_graph(registry: FileRegistry) -> nx.DiGraph:
    """Build a directed graph where edge (A, B) means "A imports from B".

    Named re-exports count as imports. Call after linking so that merged
    `export *` entries are included.
    """
    graph = nx.DiGraph()
    for file_id in registry:
        graph.add_node(registry.path_of(file_id))

    for file_id in registry:
        node = registry[file_id]
        for target in node.referenced_paths():
            if target in registry and target != node.path:
                graph.add_edge(node.path, target)
    return graph


def dependents(graph: nx.DiGraph, file_path: str | Path) -> Set[str]:
    """Files that import `file_path` directly."""
    key = str(Path(file_path).resolve())
    if key not in graph:
        return set()
    return set(graph.predecessors(key))
