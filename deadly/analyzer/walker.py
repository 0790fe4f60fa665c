"""Module-syntax walker over tree-sitter JS/TS trees.

Flattens a syntax tree into a closed set of typed events (imports, exports,
CommonJS idioms, local symbol declarations) in document order. The File
Analyzer only ever sees these events, never raw tree-sitter nodes.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple, Union

from tree_sitter import Node, Tree

from .model import DEFAULT_EXPORT_NAME


# Node types that introduce a new function scope
FUNCTION_TYPES = {
    'function_declaration', 'generator_function_declaration',
    'function_expression', 'function', 'generator_function',
    'arrow_function', 'method_definition',
}

FUNCTION_DECLARATION_TYPES = {'function_declaration', 'generator_function_declaration'}
CLASS_DECLARATION_TYPES = {'class_declaration', 'abstract_class_declaration'}
VARIABLE_DECLARATION_TYPES = {'lexical_declaration', 'variable_declaration'}

# Identifier-like nodes that read a binding
REFERENCE_TYPES = {'identifier', 'shorthand_property_identifier', 'type_identifier'}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass
class ImportBinding:
    local: str
    kind: str  # 'default', 'named' or 'namespace'
    imported: Optional[str] = None


@dataclass
class ImportDecl:
    """`import ... from 'x'`; no bindings means a side-effect import."""
    specifier: str
    bindings: List[ImportBinding] = field(default_factory=list)


@dataclass
class RequireBinding:
    """`const x = require('x')`, or a destructured `require('x')` / `import('x')`."""
    specifier: str
    local: Optional[str] = None
    # (local name, property key) pairs for destructuring
    destructured: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class DynamicImportBinding:
    """`const m = import('x')` / `const m = await import('x')`."""
    specifier: str
    local: str


@dataclass
class InlineModuleCall:
    """A `require('x')` / `import('x')` call not bound to a variable."""
    callee: str
    specifier: str
    # False when the call only runs inside a function body
    runs_on_load: bool

    @property
    def binding_name(self) -> str:
        return synthetic_binding(self.callee, self.specifier)


@dataclass
class FunctionDecl:
    name: str
    references: Set[str]


@dataclass
class VariableDecl:
    """Top-level variable declarator or class declaration."""
    name: str
    references: Set[str]


@dataclass
class ExportDecl:
    """`export const a = ...`, `export function f`, `export class C`."""
    names: List[str]


@dataclass
class ExportClause:
    """`export { a, b as c }` with an optional `from` source."""
    # (local name, exported name) pairs
    specifiers: List[Tuple[str, str]]
    source: Optional[str] = None


@dataclass
class ExportNamespace:
    """`export * as ns from 'x'`."""
    name: str
    source: str


@dataclass
class ExportAll:
    """`export * from 'x'`."""
    source: str


@dataclass
class ExportDefault:
    """`export default ...`.

    `local_name` is set for a named function/class declaration or a bare
    identifier; `references` holds the identifiers of any other expression.
    """
    local_name: Optional[str] = None
    references: Set[str] = field(default_factory=set)


@dataclass
class CommonJSExportsAssign:
    """`module.exports = ...`."""
    # (key, references) for an object literal
    properties: Optional[List[Tuple[str, Set[str]]]] = None
    identifier: Optional[str] = None
    references: Set[str] = field(default_factory=set)


@dataclass
class CommonJSExportsMember:
    """`module.exports.X = v`, `exports.X = v`, or a read of `module.exports.X`."""
    name: str
    references: Set[str] = field(default_factory=set)
    is_assignment: bool = True


ModuleEvent = Union[
    ImportDecl, RequireBinding, DynamicImportBinding, InlineModuleCall,
    FunctionDecl, VariableDecl, ExportDecl, ExportClause, ExportNamespace,
    ExportAll, ExportDefault, CommonJSExportsAssign, CommonJSExportsMember,
]


def synthetic_binding(callee: str, specifier: str) -> str:
    """Binding name for an unbound require()/import() call; never a valid identifier."""
    return f"{callee}('{specifier}')"


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def node_text(node: Node) -> str:
    return node.text.decode('utf-8', errors='ignore')


def string_value(node: Optional[Node]) -> Optional[str]:
    """Literal value of a string (or substitution-free template) node."""
    if node is None:
        return None
    if node.type == 'string':
        return node_text(node)[1:-1]
    if node.type == 'template_string':
        if any(child.type == 'template_substitution' for child in node.children):
            return None
        return node_text(node)[1:-1]
    return None


def module_call(node: Node) -> Optional[Tuple[str, str]]:
    """Return (callee, specifier) for `require('x')` / `import('x')` calls."""
    if node.type != 'call_expression':
        return None
    function_node = node.child_by_field_name('function')
    args_node = node.child_by_field_name('arguments')
    if function_node is None or args_node is None or args_node.named_child_count == 0:
        return None

    if function_node.type == 'import':
        callee = 'import'
    elif function_node.type == 'identifier' and node_text(function_node) == 'require':
        callee = 'require'
    else:
        return None

    specifier = string_value(args_node.named_children[0])
    if specifier is None:
        return None
    return callee, specifier


def export_name(node: Node) -> str:
    """Text of an import/export specifier name, mapping `default` to the reserved name."""
    name = node_text(node)
    if node.type == 'string':
        name = name[1:-1]
    return DEFAULT_EXPORT_NAME if name == 'default' else name


def is_module_exports(node: Optional[Node]) -> bool:
    """True for the `module.exports` member expression."""
    if node is None or node.type != 'member_expression':
        return False
    obj = node.child_by_field_name('object')
    prop = node.child_by_field_name('property')
    return (obj is not None and prop is not None
            and obj.type == 'identifier' and node_text(obj) == 'module'
            and node_text(prop) == 'exports')


def collect_references(node: Optional[Node]) -> Set[str]:
    """Identifiers read anywhere under `node`.

    Unbound require()/import() calls contribute their synthetic binding name.
    """
    references: Set[str] = set()
    if node is None:
        return references

    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in REFERENCE_TYPES:
            references.add(node_text(current))
            continue
        call = module_call(current)
        if call:
            references.add(synthetic_binding(*call))
            continue
        stack.extend(current.children)
    return references


def pattern_names(node: Node) -> List[str]:
    """Names bound by a declarator's name (identifier or destructuring pattern)."""
    if node.type == 'identifier':
        return [node_text(node)]
    names = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in ('identifier', 'shorthand_property_identifier_pattern'):
            names.append(node_text(current))
            continue
        if current.type == 'pair_pattern':
            value = current.child_by_field_name('value')
            if value is not None:
                stack.append(value)
            continue
        if current.type in ('assignment_pattern', 'object_assignment_pattern'):
            left = current.child_by_field_name('left')
            if left is not None:
                stack.append(left)
            continue
        stack.extend(reversed(current.children))
    return names


def _unwrap_await(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in ('await_expression', 'parenthesized_expression'):
        inner = node.named_children
        node = inner[0] if inner else None
    return node


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------

class ModuleSyntaxWalker:
    """Produce module-level events from a tree-sitter tree, in document order."""

    def walk(self, tree: Tree) -> List[ModuleEvent]:
        events: List[ModuleEvent] = []
        # (node, inside a function body, at module top level)
        stack: List[Tuple[Node, bool, bool]] = [(tree.root_node, False, True)]

        while stack:
            node, in_function, top_level = stack.pop()
            children = self._visit(node, in_function, top_level, events)
            if children is None:
                continue
            child_in_function = in_function or node.type in FUNCTION_TYPES
            child_top_level = top_level and node.type in ('program', 'export_statement', 'ERROR')
            stack.extend(
                (child, child_in_function, child_top_level) for child in reversed(children)
            )
        return events

    def _visit(self, node: Node, in_function: bool, top_level: bool,
               events: List[ModuleEvent]) -> Optional[List[Node]]:
        """Emit events for `node`; return the children to descend into (None to stop)."""
        node_type = node.type

        if node_type == 'import_statement':
            self._visit_import(node, events)
            return None

        if node_type == 'export_statement':
            return self._visit_export(node, events)

        if node_type in FUNCTION_DECLARATION_TYPES:
            name_node = node.child_by_field_name('name')
            if name_node is not None:
                events.append(FunctionDecl(node_text(name_node), collect_references(node)))
            return node.children

        if node_type in CLASS_DECLARATION_TYPES:
            name_node = node.child_by_field_name('name')
            if top_level and name_node is not None:
                events.append(VariableDecl(node_text(name_node), collect_references(node)))
            return node.children

        if node_type in VARIABLE_DECLARATION_TYPES:
            return self._visit_variables(node, top_level, events)

        if node_type == 'assignment_expression':
            return self._visit_assignment(node, events)

        if node_type == 'member_expression':
            obj = node.child_by_field_name('object')
            prop = node.child_by_field_name('property')
            if is_module_exports(obj) and prop is not None:
                events.append(CommonJSExportsMember(node_text(prop), is_assignment=False))
                return None
            return node.children

        call = module_call(node)
        if call:
            events.append(InlineModuleCall(call[0], call[1], runs_on_load=not in_function))
            return None

        return node.children

    def _visit_import(self, node: Node, events: List[ModuleEvent]):
        source = string_value(node.child_by_field_name('source'))
        bindings: List[ImportBinding] = []

        for child in node.named_children:
            if child.type == 'import_require_clause':
                # TypeScript: import x = require('y')
                name_node = child.named_children[0] if child.named_children else None
                spec = string_value(child.child_by_field_name('source'))
                if name_node is not None and spec is not None:
                    events.append(RequireBinding(spec, local=node_text(name_node)))
                return
            if child.type != 'import_clause':
                continue
            for clause in child.named_children:
                if clause.type == 'identifier':
                    bindings.append(ImportBinding(node_text(clause), 'default'))
                elif clause.type == 'namespace_import':
                    for ns_child in clause.named_children:
                        if ns_child.type == 'identifier':
                            bindings.append(ImportBinding(node_text(ns_child), 'namespace'))
                elif clause.type == 'named_imports':
                    for specifier in clause.named_children:
                        if specifier.type != 'import_specifier':
                            continue
                        name_node = specifier.child_by_field_name('name')
                        alias_node = specifier.child_by_field_name('alias')
                        if name_node is None:
                            continue
                        imported = export_name(name_node)
                        local = node_text(alias_node) if alias_node is not None else imported
                        if imported == DEFAULT_EXPORT_NAME:
                            bindings.append(ImportBinding(local, 'default'))
                        else:
                            bindings.append(ImportBinding(local, 'named', imported))

        if source is not None:
            events.append(ImportDecl(source, bindings))

    def _visit_export(self, node: Node, events: List[ModuleEvent]) -> Optional[List[Node]]:
        source = string_value(node.child_by_field_name('source'))
        declaration = node.child_by_field_name('declaration')
        value = node.child_by_field_name('value')
        is_default = any(child.type == 'default' for child in node.children)

        for child in node.children:
            if child.type == 'namespace_export':
                names = [c for c in child.children if c.type in ('identifier', 'string')]
                if names and source is not None:
                    events.append(ExportNamespace(export_name(names[-1]), source))
                return None
            if child.type == 'export_clause':
                specifiers = []
                for spec in child.named_children:
                    if spec.type != 'export_specifier':
                        continue
                    name_node = spec.child_by_field_name('name')
                    alias_node = spec.child_by_field_name('alias')
                    if name_node is None:
                        continue
                    local = export_name(name_node)
                    exported = export_name(alias_node) if alias_node is not None else local
                    specifiers.append((local, exported))
                events.append(ExportClause(specifiers, source))
                return None
            if child.type == '*' and source is not None:
                events.append(ExportAll(source))
                return None

        if declaration is not None:
            names = self._declared_names(declaration)
            if is_default:
                events.append(ExportDefault(local_name=names[0] if names else None,
                                            references=collect_references(declaration)))
            else:
                events.append(ExportDecl(names))
            return [declaration]

        if value is not None:
            if value.type == 'identifier':
                events.append(ExportDefault(local_name=node_text(value)))
            elif value.type in ('class', 'function_expression', 'function') and value.child_by_field_name('name'):
                # `export default class Foo {}` parsed as an expression
                events.append(ExportDefault(local_name=node_text(value.child_by_field_name('name')),
                                            references=collect_references(value)))
            else:
                events.append(ExportDefault(references=collect_references(value)))
            return [value]

        return node.children

    def _declared_names(self, declaration: Node) -> List[str]:
        if declaration.type in VARIABLE_DECLARATION_TYPES:
            names = []
            for declarator in declaration.named_children:
                if declarator.type == 'variable_declarator':
                    name_node = declarator.child_by_field_name('name')
                    if name_node is not None:
                        names.extend(pattern_names(name_node))
            return names
        name_node = declaration.child_by_field_name('name')
        return [node_text(name_node)] if name_node is not None else []

    def _visit_variables(self, node: Node, top_level: bool,
                         events: List[ModuleEvent]) -> List[Node]:
        descend: List[Node] = []
        for declarator in node.named_children:
            if declarator.type != 'variable_declarator':
                continue
            name_node = declarator.child_by_field_name('name')
            value_node = declarator.child_by_field_name('value')
            if name_node is None:
                continue

            unwrapped = _unwrap_await(value_node)
            call = module_call(unwrapped) if unwrapped is not None else None
            if call:
                callee, specifier = call
                if name_node.type == 'object_pattern':
                    events.append(RequireBinding(specifier,
                                                 destructured=self._destructured(name_node)))
                    continue
                if name_node.type == 'identifier':
                    if callee == 'require':
                        events.append(RequireBinding(specifier, local=node_text(name_node)))
                    else:
                        events.append(DynamicImportBinding(specifier, node_text(name_node)))
                    continue

            if top_level:
                references = collect_references(value_node)
                for name in pattern_names(name_node):
                    events.append(VariableDecl(name, references))
            if value_node is not None:
                descend.append(value_node)
        return descend

    def _destructured(self, pattern: Node) -> List[Tuple[str, str]]:
        pairs = []
        for prop in pattern.named_children:
            if prop.type == 'shorthand_property_identifier_pattern':
                name = node_text(prop)
                pairs.append((name, name))
            elif prop.type == 'pair_pattern':
                key = prop.child_by_field_name('key')
                value = prop.child_by_field_name('value')
                if key is None or value is None:
                    continue
                if value.type in ('assignment_pattern', 'object_assignment_pattern'):
                    value = value.child_by_field_name('left')
                if value is not None and value.type == 'identifier':
                    pairs.append((node_text(value), export_name(key)))
            elif prop.type == 'object_assignment_pattern':
                left = prop.child_by_field_name('left')
                if left is not None:
                    name = node_text(left)
                    pairs.append((name, name))
        return pairs

    def _visit_assignment(self, node: Node, events: List[ModuleEvent]) -> Optional[List[Node]]:
        left = node.child_by_field_name('left')
        right = node.child_by_field_name('right')
        if left is None or left.type != 'member_expression':
            return node.children

        if is_module_exports(left):
            events.append(self._exports_assignment(right))
            return [right] if right is not None else None

        obj = left.child_by_field_name('object')
        prop = left.child_by_field_name('property')
        if prop is not None and obj is not None and (
                is_module_exports(obj) or (obj.type == 'identifier' and node_text(obj) == 'exports')):
            events.append(CommonJSExportsMember(node_text(prop), collect_references(right)))
            return [right] if right is not None else None

        return node.children

    def _exports_assignment(self, right: Optional[Node]) -> CommonJSExportsAssign:
        if right is None:
            return CommonJSExportsAssign()
        if right.type == 'identifier':
            return CommonJSExportsAssign(identifier=node_text(right))
        if right.type != 'object':
            return CommonJSExportsAssign(references=collect_references(right))

        properties: List[Tuple[str, Set[str]]] = []
        for prop in right.named_children:
            if prop.type == 'shorthand_property_identifier':
                name = node_text(prop)
                properties.append((name, {name}))
            elif prop.type == 'pair':
                key = prop.child_by_field_name('key')
                if key is not None:
                    properties.append((self._property_key(key),
                                       collect_references(prop.child_by_field_name('value'))))
            elif prop.type == 'method_definition':
                key = prop.child_by_field_name('name')
                if key is not None:
                    properties.append((self._property_key(key), collect_references(prop)))
        return CommonJSExportsAssign(properties=properties)

    @staticmethod
    def _property_key(key: Node) -> str:
        value = string_value(key)
        return value if value is not None else node_text(key)
