"""One analysis run: discover, analyze, link, mark.

The session owns every piece of mutable state for a run (resolver cache,
file registry, unused set). Nothing is kept at module level, so two
sessions never see each other's files.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ..config import Config, get_config
from .discovery import is_reportable, iter_source_files
from .errors import FileNotFound
from .file_analyzer import FileAnalyzer
from .import_graph import build_import_graph
from .linker import ExportAllLinker
from .model import FileNode, FileRegistry
from .parser import LanguageParser, ParserPool
from .reachability import ReachabilityMarker
from .resolver import ModuleResolver, find_source_root

logger = logging.getLogger(__name__)


class AnalysisSession:
    """Find files unreachable from an entry point.

    Phases run strictly in order: analysis (parallel, joined before any
    file is registered), linking, then marking. Linking and marking are
    single-threaded.
    """

    def __init__(self, entry_point: str | Path, root: Optional[str | Path] = None,
                 config: Optional[Config] = None):
        """Initialize session.

        Args:
            entry_point: File reachability is computed from
            root: Directory whose files are candidates (defaults to the entry's directory)
            config: Settings (defaults to the environment-driven singleton)
        """
        self.config = config or get_config()
        self.entry_point = Path(entry_point).resolve()
        self.root = Path(root).resolve() if root else self.entry_point.parent

        source_root = find_source_root(self.entry_point, self.config.source_dir_name)
        self.resolver = ModuleResolver(source_root, self.config.alias_prefix)
        self.registry = FileRegistry()
        self.analyzer = FileAnalyzer(self.resolver, ParserPool())
        self.unused: Optional[Set[str]] = None

    def run(self) -> Set[str]:
        """Run every phase and return the unused files.

        Returns:
            Set of absolute paths of files unreachable from the entry point

        Raises:
            FileNotFound: If the entry point does not exist
            StrictResolutionFailure: If an `export *` source cannot be resolved
            ExportConflict: If `export *` merges collide
        """
        if not self.entry_point.is_file():
            raise FileNotFound(self.entry_point, reason="Entry point does not exist")

        candidates = iter_source_files(self.root, self.config.extensions)
        if self.entry_point not in candidates:
            candidates.insert(0, self.entry_point)
        logger.info("Analyzing %d candidate files under %s", len(candidates), self.root)

        self.analyze(str(path) for path in candidates)
        self.link()
        return self.mark()

    def analyze(self, paths: Iterable[str]):
        """Analyze files, then every file they reach that is not registered yet."""
        pending = list(dict.fromkeys(paths))
        while pending:
            nodes = self._analyze_batch(pending)
            for node in nodes:
                self.registry.add(node)

            reached: Set[str] = set()
            for node in nodes:
                reached.update(self._reached_paths(node))
            pending = sorted(path for path in reached if path not in self.registry)
            if pending:
                logger.debug("Analyzing %d files reached through imports", len(pending))

    def link(self):
        self.registry.freeze()
        ExportAllLinker(self.registry, self.resolver).link()

    def mark(self) -> Set[str]:
        marker = ReachabilityMarker(self.registry)
        marker.seed_entry(str(self.entry_point))
        # Files registered only as import targets outside the project (or under
        # excluded directories) are tracked for reachability but never reported
        self.unused = {path for path in marker.unused_paths() if is_reportable(path, self.root)}
        logger.info("%d of %d files unused", len(self.unused), len(self.registry))
        return self.unused

    def import_graph(self):
        """networkx view of the linked registry (edge A -> B: A imports B)."""
        return build_import_graph(self.registry)

    def _analyze_batch(self, paths: List[str]) -> List[FileNode]:
        workers = self.config.workers
        if workers <= 1 or len(paths) < 2:
            return [self._analyze_one(path) for path in paths]
        # map() keeps input order, so registration order is deterministic
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._analyze_one, paths))

    def _analyze_one(self, path: str) -> FileNode:
        if Path(path).suffix.lower() not in LanguageParser.SUPPORTED_LANGUAGES:
            # Imported asset (styles, json, ...): tracked, never parsed
            return FileNode(path=path)
        return self.analyzer.analyze_file(path)

    def _reached_paths(self, node: FileNode) -> Set[str]:
        reached = node.referenced_paths()
        for specifier in node.export_all:
            target = self.resolver.resolve(node.path, specifier)
            if target is not None:
                reached.add(target)
        return reached


def find_unused_files(entry_point: str | Path, root: Optional[str | Path] = None,
                      config: Optional[Config] = None) -> Set[str]:
    """Return the absolute paths of files under root unreachable from entry_point."""
    return AnalysisSession(entry_point, root, config).run()
