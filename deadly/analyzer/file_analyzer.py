"""Per-file symbol extraction: imports, local symbol dependencies and exports."""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .model import (
    DEFAULT, DEFAULT_EXPORT_NAME, NAMED, NAMESPACE, SIDE_EFFECT,
    FileNode, FunctionInfo, ImportInfo, LocalExport, ReExport,
)
from .parser import ParserPool, load_source
from .resolver import ModuleResolver
from .walker import (
    CommonJSExportsAssign, CommonJSExportsMember, DynamicImportBinding, ExportAll,
    ExportClause, ExportDecl, ExportDefault, ExportNamespace, FunctionDecl, ImportDecl,
    InlineModuleCall, ModuleEvent, ModuleSyntaxWalker, RequireBinding, VariableDecl,
)

logger = logging.getLogger(__name__)


def side_effect_binding(specifier: str) -> str:
    """Binding name for `import 'x'`."""
    return f"import '{specifier}'"


def namespace_reexport_binding(specifier: str) -> str:
    """Binding name for `export * as ns from 'x'`."""
    return f"import * from '{specifier}'"


class FileAnalyzer:
    """Build a FileNode from one source file.

    Runs three passes over the walker's events. Imports go first because
    the function and export passes classify identifiers by looking them up
    in the import table.
    """

    def __init__(self, resolver: ModuleResolver, parsers: Optional[ParserPool] = None):
        self.resolver = resolver
        self.parsers = parsers or ParserPool()
        self.walker = ModuleSyntaxWalker()

    def analyze_file(self, file_path: str | Path) -> FileNode:
        """Parse and analyze a file on disk.

        Raises:
            FileNotFound: If the file cannot be read
        """
        path = str(file_path)
        source = load_source(path)
        tree = self.parsers.get(source.language).parse_source(source.code)
        if tree.root_node.has_error:
            logger.warning("Syntax errors in %s, analyzing the recovered tree", path)

        node = self.analyze_events(path, self.walker.walk(tree))
        if source.script_setup:
            # Template usage is invisible to the script: the compiled component
            # depends on everything <script setup> imports.
            node.exports.setdefault(DEFAULT_EXPORT_NAME, LocalExport(set(node.imports)))
        return node

    def analyze_events(self, path: str, events: List[ModuleEvent]) -> FileNode:
        node = FileNode(path=path)
        self._resolve_imports(node, events)
        symbols = self._resolve_functions(node, events)
        self._resolve_exports(node, events, symbols)
        return node

    # -------------------------------------------------------------------------
    # Pass 1: imports
    # -------------------------------------------------------------------------

    def _resolve_imports(self, node: FileNode, events: List[ModuleEvent]):
        for event in events:
            if isinstance(event, ImportDecl):
                target = self.resolver.resolve(node.path, event.specifier)
                if target is None:
                    continue
                if not event.bindings:
                    key = side_effect_binding(event.specifier)
                    node.imports[key] = ImportInfo(target, SIDE_EFFECT)
                    node.on_load.add(key)
                for binding in event.bindings:
                    node.imports[binding.local] = ImportInfo(target, binding.kind, binding.imported)

            elif isinstance(event, RequireBinding):
                target = self.resolver.resolve(node.path, event.specifier)
                if target is None:
                    continue
                if event.local:
                    node.imports[event.local] = ImportInfo(target, NAMESPACE)
                for local, key in event.destructured:
                    if key == DEFAULT_EXPORT_NAME:
                        node.imports[local] = ImportInfo(target, DEFAULT)
                    else:
                        node.imports[local] = ImportInfo(target, NAMED, key)

            elif isinstance(event, DynamicImportBinding):
                target = self.resolver.resolve(node.path, event.specifier)
                if target is not None:
                    node.imports[event.local] = ImportInfo(target, NAMESPACE)

            elif isinstance(event, InlineModuleCall):
                target = self.resolver.resolve(node.path, event.specifier)
                if target is None:
                    continue
                node.imports[event.binding_name] = ImportInfo(target, NAMESPACE)
                if event.runs_on_load:
                    node.on_load.add(event.binding_name)

            elif isinstance(event, ExportNamespace):
                target = self.resolver.resolve(node.path, event.source)
                if target is not None:
                    node.imports[namespace_reexport_binding(event.source)] = ImportInfo(target, NAMESPACE)

    # -------------------------------------------------------------------------
    # Pass 2: functions and other local symbols
    # -------------------------------------------------------------------------

    def _resolve_functions(self, node: FileNode,
                           events: List[ModuleEvent]) -> Dict[str, Set[str]]:
        """Fill node.functions and return the raw reference sets per local symbol."""
        symbols: Dict[str, Set[str]] = {}
        for event in events:
            if isinstance(event, (FunctionDecl, VariableDecl)):
                symbols.setdefault(event.name, set()).update(event.references)

        for name in symbols:
            node.functions[name] = FunctionInfo(self._dependencies(node, symbols, [name]))
        return symbols

    @staticmethod
    def _dependencies(node: FileNode, symbols: Dict[str, Set[str]],
                      references: Iterable[str]) -> Set[str]:
        """Import bindings reachable from `references` through local symbols."""
        dependencies: Set[str] = set()
        seen: Set[str] = set()
        stack = list(references)
        while stack:
            name = stack.pop()
            if name in node.imports:
                dependencies.add(name)
            elif name in symbols and name not in seen:
                seen.add(name)
                stack.extend(symbols[name])
        return dependencies

    # -------------------------------------------------------------------------
    # Pass 3: exports
    # -------------------------------------------------------------------------

    def _resolve_exports(self, node: FileNode, events: List[ModuleEvent],
                         symbols: Dict[str, Set[str]]):
        for event in events:
            if isinstance(event, ExportDecl):
                for name in event.names:
                    node.exports[name] = self._alias_of(node, name, symbols)

            elif isinstance(event, ExportClause):
                self._export_clause(node, event, symbols)

            elif isinstance(event, ExportNamespace):
                key = namespace_reexport_binding(event.source)
                if key in node.imports:
                    node.exports[event.name] = LocalExport({key})

            elif isinstance(event, ExportAll):
                node.export_all.append(event.source)

            elif isinstance(event, ExportDefault):
                node.exports[DEFAULT_EXPORT_NAME] = self._default_export(node, event, symbols)

            elif isinstance(event, CommonJSExportsAssign):
                self._module_exports(node, event, symbols)

            elif isinstance(event, CommonJSExportsMember):
                if event.is_assignment:
                    node.exports[event.name] = LocalExport(
                        self._dependencies(node, symbols, event.references))
                else:
                    node.exports.setdefault(event.name, LocalExport())

    def _alias_of(self, node: FileNode, name: str, symbols: Dict[str, Set[str]]):
        """Export entry for re-exposing the local binding `name`."""
        imported = node.imports.get(name)
        if imported is not None and imported.kind in (DEFAULT, NAMED):
            return ReExport(imported.path, imported.requested_export)
        if imported is None and name not in symbols:
            logger.debug("Export of unknown binding '%s' in %s", name, node.path)
        return LocalExport(self._dependencies(node, symbols, [name]))

    def _export_clause(self, node: FileNode, event: ExportClause, symbols: Dict[str, Set[str]]):
        if event.source is None:
            for local, exported in event.specifiers:
                node.exports[exported] = self._alias_of(node, local, symbols)
            return

        target = self.resolver.resolve(node.path, event.source)
        if target is None:
            return
        for local, exported in event.specifiers:
            node.exports[exported] = ReExport(target, local)

    def _default_export(self, node: FileNode, event: ExportDefault,
                        symbols: Dict[str, Set[str]]):
        if event.local_name is not None and (
                event.local_name in node.imports or event.local_name in symbols):
            return self._alias_of(node, event.local_name, symbols)
        return LocalExport(self._dependencies(node, symbols, event.references))

    def _module_exports(self, node: FileNode, event: CommonJSExportsAssign,
                        symbols: Dict[str, Set[str]]):
        if event.properties is not None:
            for key, references in event.properties:
                node.exports[key] = LocalExport(self._dependencies(node, symbols, references))
        elif event.identifier is not None:
            dependencies = self._dependencies(node, symbols, [event.identifier])
            node.exports[event.identifier] = LocalExport(dependencies)
            node.exports[DEFAULT_EXPORT_NAME] = LocalExport(set(dependencies))
        else:
            node.exports[DEFAULT_EXPORT_NAME] = LocalExport(
                self._dependencies(node, symbols, event.references))
