"""End-to-end tests: discovery, analysis, linking and marking in one session."""
from pathlib import Path

import pytest

from deadly.analyzer.errors import ExportConflict, FileNotFound
from deadly.analyzer.session import AnalysisSession, find_unused_files
from deadly.config import Config


# Fixture directory
FIXTURES_DIR = Path(__file__).parent / 'fixtures' / 'projects'


def project_dir(name):
    return (FIXTURES_DIR / name).resolve()


class TestFixtureProjects:

    def test_imported_file_with_unused_export(self, config):
        """An imported file stays used even if one export is not."""
        root = project_dir('imported_unused')
        unused = find_unused_files(root / 'entrypoint.js', root, config)
        assert unused == {str(root / 'test2.js')}

    def test_destructured_require(self, config):
        """A destructured require keeps the module used."""
        root = project_dir('simple_require')
        unused = find_unused_files(root / 'entrypoint.js', root, config)
        assert unused == {str(root / 'test2.js')}

    def test_index_with_export_all(self, config):
        """An index re-exporting with export * keeps both files used."""
        root = project_dir('index_export_all')
        unused = find_unused_files(root / 'entrypoint.js', root, config)
        assert unused == {str(root / 'lib' / 'test2.js')}

    def test_vue_application(self, config):
        """A Vue app with aliases, lazy routes and script setup."""
        root = project_dir('vue_app')
        unused = find_unused_files(root / 'src' / 'main.js', root, config)
        assert unused == {str(root / 'src' / 'utils' / 'legacy.js')}

    def test_root_defaults_to_entry_directory(self, config):
        """Without a root the entry's directory is scanned."""
        root = project_dir('vue_app') / 'src'
        session = AnalysisSession(root / 'main.js', config=config)
        assert session.root == root
        assert session.run() == {str(root / 'utils' / 'legacy.js')}

    def test_parallel_analysis_matches_sequential(self):
        """Thread-pool analysis gives the sequential result."""
        root = project_dir('vue_app')
        sequential = find_unused_files(root / 'src' / 'main.js', root, Config(workers=1))
        parallel = find_unused_files(root / 'src' / 'main.js', root, Config(workers=4))
        assert parallel == sequential


class TestSessionBehaviour:

    def test_missing_entry_point(self, tmp_path, config):
        """A missing entry point raises FileNotFound."""
        with pytest.raises(FileNotFound) as excinfo:
            find_unused_files(tmp_path / 'main.js', tmp_path, config)
        assert 'main.js' in str(excinfo.value)

    def test_runs_are_independent(self, config):
        """Two runs on the same project agree."""
        root = project_dir('imported_unused')
        first = find_unused_files(root / 'entrypoint.js', root, config)
        second = find_unused_files(root / 'entrypoint.js', root, config)
        assert first == second

    def test_entry_imports_are_always_used(self, config):
        """Nothing the entry imports is reported unused."""
        root = project_dir('vue_app')
        session = AnalysisSession(root / 'src' / 'main.js', root, config)
        unused = session.run()
        entry = session.registry.node(session.entry_point)
        for info in entry.imports.values():
            assert info.path not in unused

    def test_imported_assets_are_tracked_without_parsing(self, write_project, config):
        """Imported css/json files are registered as empty nodes."""
        root = write_project({
            'src/main.js': "import './theme.css'\nimport data from './data.json'\n",
            'src/theme.css': 'body { color: red; }',
            'src/data.json': '{"a": 1}',
        })
        session = AnalysisSession(root / 'src/main.js', root, config)
        assert session.run() == set()
        assert str(root / 'src/theme.css') in session.registry
        assert session.registry.node(root / 'src/data.json').exports == {}

    def test_test_files_and_node_modules_are_not_candidates(self, write_project, config):
        """Test files and node_modules are never reported."""
        root = write_project({
            'src/main.js': '',
            'src/main.spec.js': "import './main.js'",
            'node_modules/lib/index.js': '',
        })
        assert find_unused_files(root / 'src/main.js', root, config) == set()

    def test_alias_and_cycles(self, write_project, config):
        """Aliased imports resolve and unreached cycles stay unused."""
        root = write_project({
            'src/main.js': "import { a } from '@/a'\na()\n",
            'src/a.js': "import { b } from './b'\nexport function a() { return b() }\n",
            'src/b.js': "import { a } from './a'\nexport function b() { return a() }\n",
            'src/c.js': "import { d } from './d'\nexport const c = d\n",
            'src/d.js': "import { c } from './c'\nexport const d = c\n",
        })
        unused = find_unused_files(root / 'src/main.js', root, config)
        assert unused == {str(root / 'src/c.js'), str(root / 'src/d.js')}

    def test_unused_export_does_not_pull_in_its_imports(self, write_project, config):
        """Imports of an unused export stay unused."""
        root = write_project({
            'main.js': "import { used } from './lib.js'\nused()\n",
            'lib.js': """
                import { heavy } from './heavy.js'
                export function used() {}
                export function unused() { return heavy() }
            """,
            'heavy.js': 'export function heavy() {}\n',
        })
        unused = find_unused_files(root / 'main.js', root, config)
        assert unused == {str(root / 'heavy.js')}

    def test_export_all_cycle_keeps_files_used(self, write_project, config):
        """A name imported through a three-file export * cycle reaches its defining file."""
        root = write_project({
            'main.js': "import { fromB } from './c.js'\nfromB()\n",
            'a.js': "export * from './b.js'\nexport const fromA = 1\n",
            'b.js': "export * from './c.js'\nexport function fromB() {}\n",
            'c.js': "export * from './a.js'\nexport const fromC = 3\n",
        })
        assert find_unused_files(root / 'main.js', root, config) == set()

    def test_directory_specifiers_use_the_index(self, write_project, config):
        """'.' and './utils/' keep the index file used, not the same-named sibling."""
        root = write_project({
            'main.js': "import { x } from './lib/runner.js'\nimport { y } from './utils/'\nx(y)\n",
            'lib.js': 'export const x = 0\n',
            'lib/index.js': 'export const x = 1\n',
            'lib/runner.js': "export { x } from '.'\n",
            'utils.js': 'export const y = 0\n',
            'utils/index.js': 'export const y = 1\n',
        })
        unused = find_unused_files(root / 'main.js', root, config)
        assert unused == {str(root / 'lib.js'), str(root / 'utils.js')}

    def test_outside_and_excluded_targets_are_not_reported(self, write_project, config):
        """Files reached only from dead code but outside root or under dist/ stay out of the report."""
        root = write_project({
            'app/main.js': '',
            'app/dead.js': "import '../shared.js'\nimport './dist/bundle.js'\n",
            'app/dist/bundle.js': '',
            'shared.js': '',
        })
        session = AnalysisSession(root / 'app/main.js', root / 'app', config)
        assert session.run() == {str(root / 'app/dead.js')}
        assert str(root / 'shared.js') in session.registry
        assert str(root / 'app/dist/bundle.js') in session.registry

    def test_export_all_conflict_aborts(self, write_project, config):
        """An export * conflict aborts the run."""
        root = write_project({
            'main.js': "import { x } from './index.js'\n",
            'index.js': "export * from './a.js'\nexport * from './b.js'\n",
            'a.js': 'export const x = 1\n',
            'b.js': 'export const x = 2\n',
        })
        with pytest.raises(ExportConflict):
            find_unused_files(root / 'main.js', root, config)

    def test_import_graph(self, config):
        """The import graph includes linked re-export edges."""
        root = project_dir('index_export_all')
        session = AnalysisSession(root / 'entrypoint.js', root, config)
        session.run()
        graph = session.import_graph()
        assert graph.has_edge(str(root / 'entrypoint.js'), str(root / 'lib' / 'index.js'))
        assert graph.has_edge(str(root / 'lib' / 'index.js'), str(root / 'lib' / 'impl.js'))
        assert graph.in_degree(str(root / 'lib' / 'test2.js')) == 0
