"""Tests for marking files reachable from the entry point."""
import pytest

from deadly.analyzer.model import (
    DEFAULT, DEFAULT_EXPORT_NAME, NAMED, NAMESPACE, SIDE_EFFECT,
    FileNode, FileRegistry, ImportInfo, LocalExport, ReExport,
)
from deadly.analyzer.reachability import ReachabilityMarker


def registry_of(*nodes):
    registry = FileRegistry()
    for node in nodes:
        registry.add(node)
    registry.freeze()
    return registry


def unused_after_entry(registry, entry='/p/main.js'):
    marker = ReachabilityMarker(registry)
    marker.seed_entry(entry)
    return marker.unused_paths()


class TestSeedEntry:

    def test_imported_files_are_used_even_if_binding_is_unread(self):
        """Every file the entry imports is used."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'x': ImportInfo('/p/x.js', NAMED, 'x')}),
            FileNode('/p/x.js', exports={'x': LocalExport()}),
            FileNode('/p/orphan.js'),
        )
        assert unused_after_entry(registry) == {'/p/orphan.js'}

    def test_unknown_entry(self):
        """Seeding an unregistered entry raises KeyError."""
        registry = registry_of(FileNode('/p/main.js'))
        with pytest.raises(KeyError):
            ReachabilityMarker(registry).seed_entry('/p/other.js')

    def test_only_requested_exports_are_followed(self):
        """Only the dependencies of requested exports are followed."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'used': ImportInfo('/p/lib.js', NAMED, 'used')}),
            FileNode('/p/lib.js',
                     imports={'a': ImportInfo('/p/a.js', NAMED, 'a'),
                              'b': ImportInfo('/p/b.js', NAMED, 'b')},
                     exports={'used': LocalExport({'a'}), 'unused': LocalExport({'b'})}),
            FileNode('/p/a.js', exports={'a': LocalExport()}),
            FileNode('/p/b.js', exports={'b': LocalExport()}),
        )
        assert unused_after_entry(registry) == {'/p/b.js'}

    def test_reexport_chain(self):
        """Re-exports forward the request to the defining file."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'App': ImportInfo('/p/index.js', DEFAULT)}),
            FileNode('/p/index.js',
                     exports={DEFAULT_EXPORT_NAME: ReExport('/p/App.js', DEFAULT_EXPORT_NAME)}),
            FileNode('/p/App.js',
                     imports={'Child': ImportInfo('/p/Child.js', DEFAULT)},
                     exports={DEFAULT_EXPORT_NAME: LocalExport({'Child'})}),
            FileNode('/p/Child.js'),
        )
        assert unused_after_entry(registry) == set()

    def test_namespace_requests_every_export(self):
        """Namespace imports request every export of the target."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'ns': ImportInfo('/p/lib.js', NAMESPACE)}),
            FileNode('/p/lib.js',
                     imports={'a': ImportInfo('/p/a.js', DEFAULT),
                              'b': ImportInfo('/p/b.js', DEFAULT)},
                     exports={'one': LocalExport({'a'}), 'two': LocalExport({'b'})}),
            FileNode('/p/a.js'),
            FileNode('/p/b.js'),
        )
        assert unused_after_entry(registry) == set()

    def test_side_effect_imports_run_when_loaded(self):
        """Load-time imports are followed once a file is used."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'x': ImportInfo('/p/lib.js', NAMED, 'x')}),
            FileNode('/p/lib.js',
                     imports={"import './polyfill.js'": ImportInfo('/p/polyfill.js', SIDE_EFFECT)},
                     exports={'x': LocalExport()},
                     on_load={"import './polyfill.js'"}),
            FileNode('/p/polyfill.js'),
        )
        assert unused_after_entry(registry) == set()

    def test_missing_dependency_binding_adds_no_edge(self):
        """A dependency without an import binding adds no edge."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'x': ImportInfo('/p/lib.js', NAMED, 'x')}),
            FileNode('/p/lib.js', exports={'x': LocalExport({'ghost'})}),
            FileNode('/p/orphan.js'),
        )
        assert unused_after_entry(registry) == {'/p/orphan.js'}


class TestCycles:

    def test_import_cycle_terminates(self):
        """Mutually importing files are marked without looping."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'a': ImportInfo('/p/a.js', NAMED, 'a')}),
            FileNode('/p/a.js',
                     imports={'b': ImportInfo('/p/b.js', NAMED, 'b')},
                     exports={'a': LocalExport({'b'})}),
            FileNode('/p/b.js',
                     imports={'a': ImportInfo('/p/a.js', NAMED, 'a')},
                     exports={'b': LocalExport({'a'})}),
        )
        assert unused_after_entry(registry) == set()

    def test_reexport_cycle_terminates(self):
        """A cycle of re-exports terminates."""
        registry = registry_of(
            FileNode('/p/main.js', imports={'x': ImportInfo('/p/a.js', NAMED, 'x')}),
            FileNode('/p/a.js', exports={'x': ReExport('/p/b.js', 'x')}),
            FileNode('/p/b.js', exports={'x': ReExport('/p/a.js', 'x')}),
            FileNode('/p/orphan.js'),
        )
        assert unused_after_entry(registry) == {'/p/orphan.js'}

    def test_cycle_unreachable_from_entry_stays_unused(self):
        """A cycle not reached from the entry stays unused."""
        registry = registry_of(
            FileNode('/p/main.js'),
            FileNode('/p/a.js', imports={'b': ImportInfo('/p/b.js', DEFAULT)}),
            FileNode('/p/b.js', imports={'a': ImportInfo('/p/a.js', DEFAULT)}),
        )
        assert unused_after_entry(registry) == {'/p/a.js', '/p/b.js'}


class TestMarkUsed:

    def test_marking_is_idempotent(self):
        """Marking the same export twice changes nothing."""
        registry = registry_of(
            FileNode('/p/main.js'),
            FileNode('/p/lib.js',
                     imports={'a': ImportInfo('/p/a.js', DEFAULT)},
                     exports={'x': LocalExport({'a'})}),
            FileNode('/p/a.js'),
            FileNode('/p/orphan.js'),
        )
        marker = ReachabilityMarker(registry)
        marker.mark_used('/p/lib.js', ['x'])
        first = marker.unused_paths()
        marker.mark_used('/p/lib.js', ['x'])
        assert marker.unused_paths() == first == {'/p/main.js', '/p/orphan.js'}

    def test_unused_set_only_shrinks(self):
        """Files only ever leave the unused set."""
        registry = registry_of(FileNode('/p/main.js'), FileNode('/p/lib.js'))
        marker = ReachabilityMarker(registry)
        assert marker.unused_paths() == {'/p/main.js', '/p/lib.js'}
        marker.mark_used('/p/lib.js', [])
        assert marker.unused_paths() == {'/p/main.js'}
        marker.seed_entry('/p/main.js')
        assert marker.unused_paths() == set()
