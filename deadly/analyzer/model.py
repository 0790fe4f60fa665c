"""Symbol graph data model: per-file import/export/function tables and the registry."""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Union


# Reserved export name for `export default ...`. Not a valid JS identifier,
# so it can never clash with a real exported name.
DEFAULT_EXPORT_NAME = '1__default'

# Import binding kinds
DEFAULT = 'default'
NAMED = 'named'
NAMESPACE = 'namespace'
SIDE_EFFECT = 'side_effect'

IMPORT_KINDS = frozenset({DEFAULT, NAMED, NAMESPACE, SIDE_EFFECT})


@dataclass(frozen=True)
class ImportInfo:
    """One local binding introduced by an import.

    `path` is the resolved absolute target. `name` is the target's exported
    name for named imports and None otherwise.
    """
    path: str
    kind: str = DEFAULT
    name: Optional[str] = None

    def __post_init__(self):
        if self.kind not in IMPORT_KINDS:
            raise ValueError(f"Unknown import kind: {self.kind}")
        if self.kind == NAMED and not self.name:
            raise ValueError("Named imports need the imported name")

    @property
    def requested_export(self) -> Optional[str]:
        """Export name this binding asks the target for (None for namespace/side-effect)."""
        if self.kind == DEFAULT:
            return DEFAULT_EXPORT_NAME
        if self.kind == NAMED:
            return self.name
        return None


@dataclass
class LocalExport:
    """Symbol defined in this file; dependencies are import bindings it touches."""
    dependencies: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class ReExport:
    """Alias of another file's export."""
    target_path: str
    target_name: str


ExportInfo = Union[LocalExport, ReExport]


@dataclass
class FunctionInfo:
    """Import bindings referenced anywhere in a local symbol's body."""
    dependencies: Set[str] = field(default_factory=set)


@dataclass
class FileNode:
    """Analysis result for a single source file."""
    path: str
    imports: Dict[str, ImportInfo] = field(default_factory=dict)
    exports: Dict[str, ExportInfo] = field(default_factory=dict)
    functions: Dict[str, FunctionInfo] = field(default_factory=dict)
    # `export * from` specifiers, resolved later by the linker
    export_all: List[str] = field(default_factory=list)
    # import bindings evaluated when the module loads (side-effect imports,
    # top-level require/import calls)
    on_load: Set[str] = field(default_factory=set)

    def load_time_imports(self) -> List[ImportInfo]:
        return [self.imports[name] for name in sorted(self.on_load) if name in self.imports]

    def referenced_paths(self) -> Set[str]:
        """Files this node points at through imports or named re-exports."""
        paths = {info.path for info in self.imports.values()}
        paths.update(info.target_path for info in self.exports.values()
                     if isinstance(info, ReExport))
        return paths


class FileRegistry:
    """Arena of FileNodes for one analysis run.

    Files are interned to integer ids in insertion order. Nodes are
    write-once: a path can only be registered a single time. Once frozen,
    no new files may be added.
    """

    def __init__(self):
        self._nodes: List[FileNode] = []
        self._ids: Dict[str, int] = {}
        self._frozen = False

    def add(self, node: FileNode) -> int:
        """Register a node and return its id.

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If the path is already registered
        """
        if self._frozen:
            raise RuntimeError("FileRegistry is frozen")
        if node.path in self._ids:
            raise ValueError(f"File already registered: {node.path}")
        file_id = len(self._nodes)
        self._nodes.append(node)
        self._ids[node.path] = file_id
        return file_id

    def freeze(self):
        self._frozen = True

    def id_of(self, path: str) -> Optional[int]:
        return self._ids.get(str(path))

    def path_of(self, file_id: int) -> str:
        return self._nodes[file_id].path

    def node(self, path: str) -> FileNode:
        return self._nodes[self._ids[str(path)]]

    def paths(self) -> List[str]:
        return [node.path for node in self._nodes]

    def __getitem__(self, file_id: int) -> FileNode:
        return self._nodes[file_id]

    def __contains__(self, path) -> bool:
        return str(path) in self._ids

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self._nodes)))

    def __len__(self) -> int:
        return len(self._nodes)
