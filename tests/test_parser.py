"""Tests for source loading, Vue script extraction and tolerant parsing."""
import pytest

from deadly.analyzer.errors import FileNotFound
from deadly.analyzer.parser import LanguageParser, ParserPool, extract_vue_script, load_source


class TestVueExtraction:

    def test_single_script_block(self):
        """The body of a single script block is extracted."""
        source = extract_vue_script(
            "<template><div/></template>\n<script>\nexport default {}\n</script>\n<style></style>"
        )
        assert source.code.decode().strip() == "export default {}"
        assert source.language == 'javascript'
        assert not source.script_setup
        assert not source.degraded

    def test_script_setup_and_plain_block_are_joined(self):
        """Plain and setup script blocks are concatenated."""
        source = extract_vue_script(
            "<script>\nexport const shared = 1\n</script>\n"
            "<script setup>\nimport Foo from './Foo.vue'\n</script>"
        )
        text = source.code.decode()
        assert "export const shared = 1" in text
        assert "import Foo from './Foo.vue'" in text
        assert source.script_setup

    def test_typescript_block(self):
        """lang="ts" selects the TypeScript grammar."""
        source = extract_vue_script('<script lang="ts">\nconst x: number = 1\n</script>')
        assert source.language == 'typescript'

    def test_no_script_tag_falls_back_to_whole_file(self):
        """Without a script block the whole file is parsed, flagged degraded."""
        content = "<template><p>static</p></template>"
        source = extract_vue_script(content)
        assert source.degraded
        assert source.code.decode() == content


class TestLoadSource:

    def test_vue_file(self, write_project):
        """load_source extracts the script of a .vue file."""
        root = write_project({'Comp.vue': "<script>\nimport a from './a'\n</script>"})
        source = load_source(root / 'Comp.vue')
        assert source.code.decode().strip() == "import a from './a'"

    def test_language_by_extension(self, write_project):
        """The grammar is chosen from the file extension."""
        root = write_project({'a.js': 'x', 'b.ts': 'y'})
        assert load_source(root / 'a.js').language == 'javascript'
        assert load_source(root / 'b.ts').language == 'typescript'

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFound, a FileNotFoundError."""
        with pytest.raises(FileNotFound) as excinfo:
            load_source(tmp_path / 'gone.js')
        assert isinstance(excinfo.value, FileNotFoundError)
        assert 'gone.js' in str(excinfo.value)


class TestLanguageParser:

    def test_unsupported_language(self):
        """Unknown languages are rejected."""
        with pytest.raises(ValueError):
            LanguageParser('cobol')

    def test_malformed_code_still_parses(self):
        """Broken code yields a tree with error nodes, not an exception."""
        parser = LanguageParser('javascript')
        tree = parser.parse_source(b"import { a } from './a';\nfunction broken( {\n")
        assert tree.root_node.has_error
        assert tree.root_node.children[0].type == 'import_statement'

    def test_pool_reuses_parser_per_thread(self):
        """The pool keeps one parser per language per thread."""
        pool = ParserPool()
        assert pool.get('javascript') is pool.get('javascript')
        assert pool.get('javascript') is not pool.get('typescript')
