"""Reachability marking over the linked symbol graph."""
import logging
from typing import Iterable, List, Optional, Set, Tuple

from .model import NAMESPACE, FileRegistry, ImportInfo, LocalExport, ReExport

logger = logging.getLogger(__name__)

# (file id, requested export name or None for "the file itself")
Request = Tuple[int, Optional[str]]


class ReachabilityMarker:
    """Shrinks the unused set by following export requests from the entry point.

    Marking is monotone: files only ever leave the unused set. Every
    (file, export) pair is expanded at most once, which bounds the walk on
    cyclic re-export or dependency chains.
    """

    def __init__(self, registry: FileRegistry):
        self.registry = registry
        self.unused: Set[int] = set(registry)
        self._visited: Set[Request] = set()

    def seed_entry(self, entry_path: str):
        """Mark the entry file and everything its import bindings ask for.

        Every module the entry imports is reached whether or not the
        binding is read in the entry file.
        """
        entry_id = self.registry.id_of(entry_path)
        if entry_id is None:
            raise KeyError(f"Entry point is not registered: {entry_path}")

        requests: List[Request] = [(entry_id, None)]
        for info in self.registry[entry_id].imports.values():
            requests.extend(self._requests(info))
        self._drain(requests)

    def mark_used(self, file_path: str, export_names: Iterable[str]):
        """Mark a file used and follow the given exports through the graph."""
        file_id = self.registry.id_of(file_path)
        if file_id is None:
            raise KeyError(f"File is not registered: {file_path}")
        self._drain([(file_id, None)] + [(file_id, name) for name in export_names])

    def unused_paths(self) -> Set[str]:
        return {self.registry.path_of(file_id) for file_id in self.unused}

    def _drain(self, requests: List[Request]):
        stack = list(reversed(requests))
        while stack:
            request = stack.pop()
            if request in self._visited:
                continue
            self._visited.add(request)

            file_id, name = request
            node = self.registry[file_id]
            if file_id in self.unused:
                self.unused.discard(file_id)
                # Loading the module runs its side-effect imports
                for info in node.load_time_imports():
                    stack.extend(self._requests(info))

            if name is None:
                continue
            entry = node.exports.get(name)
            if isinstance(entry, ReExport):
                target_id = self.registry.id_of(entry.target_path)
                if target_id is not None:
                    stack.append((target_id, entry.target_name))
            elif isinstance(entry, LocalExport):
                for dependency in sorted(entry.dependencies):
                    info = node.imports.get(dependency)
                    if info is None:
                        # Recorded name without an import binding: no edge
                        logger.debug("No import binding '%s' in %s", dependency, node.path)
                        continue
                    stack.extend(self._requests(info))

    def _requests(self, info: ImportInfo) -> List[Request]:
        target_id = self.registry.id_of(info.path)
        if target_id is None:
            logger.debug("Import target is not registered: %s", info.path)
            return []
        requests: List[Request] = [(target_id, None)]
        if info.kind == NAMESPACE:
            requests.extend((target_id, name) for name in self.registry[target_id].exports)
        elif info.requested_export is not None:
            requests.append((target_id, info.requested_export))
        return requests
