"""Second pass: merge `export * from` targets into the re-exporting file."""
import logging
from typing import Dict, List, Set, Tuple

import networkx as nx

from .errors import ExportConflict, FileNotFound
from .model import DEFAULT_EXPORT_NAME, ExportInfo, FileNode, FileRegistry, ReExport
from .resolver import ModuleResolver

logger = logging.getLogger(__name__)


class ExportAllLinker:
    """Resolve deferred `export *` entries against a complete registry.

    Files are linked one strongly connected component of the `export *`
    graph at a time, targets before the files that re-export them, so a
    table is complete before it is copied. Inside a cyclic component the
    merges repeat until no table grows.
    """

    def __init__(self, registry: FileRegistry, resolver: ModuleResolver):
        self.registry = registry
        self.resolver = resolver
        # file id -> `export *` target ids, in source order
        self._targets: Dict[int, List[int]] = {}

    def link(self):
        """Link every file in the registry.

        Raises:
            StrictResolutionFailure: If an `export *` source does not exist
            FileNotFound: If the source exists but was never analyzed
            ExportConflict: If a merged name is already exported by the file
        """
        graph = self._export_all_graph()
        condensed = nx.condensation(graph)
        for component in reversed(list(nx.topological_sort(condensed))):
            self._link_component(sorted(condensed.nodes[component]['members']))

    def _export_all_graph(self) -> nx.DiGraph:
        """Edge A -> B: file A does `export * from` file B."""
        graph = nx.DiGraph()
        for file_id in self.registry:
            graph.add_node(file_id)
            node = self.registry[file_id]
            targets = []
            for specifier in node.export_all:
                target_path = self.resolver.resolve_strict(node.path, specifier)
                target_id = self.registry.id_of(target_path)
                if target_id is None:
                    raise FileNotFound(target_path, reason="export * source was never analyzed")
                targets.append(target_id)
                graph.add_edge(file_id, target_id)
            self._targets[file_id] = targets
        return graph

    def _link_component(self, members: List[int]):
        growing = any(self._targets[file_id] for file_id in members)
        while growing:
            growing = False
            for file_id in members:
                node = self.registry[file_id]
                for target_id in self._targets[file_id]:
                    if self._merge(node, self.registry[target_id]):
                        growing = True
            if len(members) == 1 and members[0] not in self._targets[members[0]]:
                # Acyclic: targets were already complete, one pass suffices
                break

    def _merge(self, node: FileNode, target: FileNode) -> bool:
        """Copy target's exports into node; return True if node gained a name."""
        added = False
        for name in list(target.exports):
            # `export *` never forwards the default export
            if name == DEFAULT_EXPORT_NAME:
                continue
            existing = node.exports.get(name)
            if existing is None:
                node.exports[name] = ReExport(target.path, name)
                added = True
                continue
            if self.origin(node.path, name) == self.origin(target.path, name):
                # Same binding reached twice (diamond or cyclic export *)
                continue
            raise ExportConflict(node.path, name, target.path, self._source_of(node, existing))

        if added:
            logger.debug("Merged exports of %s into %s", target.path, node.path)
        return added

    def origin(self, path: str, name: str) -> Tuple[str, str]:
        """Follow re-exports to the (file, name) that defines the binding."""
        seen: Set[Tuple[str, str]] = set()
        key = (path, name)
        while key not in seen:
            seen.add(key)
            file_path, export = key
            if file_path not in self.registry:
                break
            entry = self.registry.node(file_path).exports.get(export)
            if not isinstance(entry, ReExport):
                break
            key = (entry.target_path, entry.target_name)
        return key

    @staticmethod
    def _source_of(node: FileNode, entry: ExportInfo) -> str:
        return entry.target_path if isinstance(entry, ReExport) else node.path
