"""Tree-sitter parser for JavaScript/TypeScript sources and Vue single-file components."""
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

from .errors import FileNotFound

logger = logging.getLogger(__name__)

SCRIPT_BLOCK = re.compile(r'<script(?P<attrs>[^>]*)>(?P<body>[\s\S]*?)</script>', re.IGNORECASE)
LANG_ATTR = re.compile(r'''\blang\s*=\s*["']?(?P<lang>[\w-]+)''')


@dataclass
class SourceText:
    """Script text of one file, ready for parsing."""
    code: bytes
    language: str
    script_setup: bool = False
    # True when a .vue file had no <script> block and was parsed whole
    degraded: bool = False


class LanguageParser:
    """Error-tolerant parser using tree-sitter v0.25+ API.

    tree-sitter never rejects input: malformed code yields a tree with
    ERROR nodes that the walker still descends into.
    """

    SUPPORTED_LANGUAGES = {
        '.js': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
        '.jsx': 'javascript',
        '.ts': 'typescript',
        '.vue': 'javascript',
    }

    def __init__(self, language: str):
        """Initialize parser for given language.

        Args:
            language: One of 'javascript', 'typescript'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        if self.language == 'javascript':
            lang = Language(tsjavascript.language())
        elif self.language == 'typescript':
            lang = Language(tstypescript.language_typescript())
        else:
            raise ValueError(f"Unsupported language: {self.language}")
        return Parser(lang)

    def parse_source(self, code: bytes) -> Tree:
        return self.parser.parse(code)


class ParserPool:
    """Hands out one LanguageParser per (thread, language).

    tree-sitter Parser objects must not be shared between threads.
    """

    def __init__(self):
        self._local = threading.local()

    def get(self, language: str) -> LanguageParser:
        parsers: Dict[str, LanguageParser] = getattr(self._local, 'parsers', None)
        if parsers is None:
            parsers = self._local.parsers = {}
        if language not in parsers:
            parsers[language] = LanguageParser(language)
        return parsers[language]


def extract_vue_script(content: str) -> SourceText:
    """Pull the script blocks out of a Vue single-file component.

    All <script> blocks are concatenated (Vue 3 allows a plain block next to
    `<script setup>`). With no script tag the whole file is returned and
    flagged as degraded.
    """
    blocks = list(SCRIPT_BLOCK.finditer(content))
    if not blocks:
        return SourceText(code=content.encode('utf-8'), language='javascript', degraded=True)

    language = 'javascript'
    script_setup = False
    bodies = []
    for block in blocks:
        attrs = block.group('attrs')
        lang = LANG_ATTR.search(attrs)
        if lang and lang.group('lang').lower() in ('ts', 'typescript'):
            language = 'typescript'
        if re.search(r'\bsetup\b', attrs):
            script_setup = True
        bodies.append(block.group('body'))

    return SourceText(code='\n'.join(bodies).encode('utf-8'), language=language,
                      script_setup=script_setup)


def load_source(file_path: str | Path) -> SourceText:
    """Read a file and return the script text to analyze.

    Raises:
        FileNotFound: If the file is missing or cannot be read
    """
    file_path = Path(file_path)
    try:
        content = file_path.read_text(encoding='utf-8', errors='replace')
    except OSError as exc:
        raise FileNotFound(file_path, reason=f"Cannot read file ({exc.strerror})") from exc

    extension = file_path.suffix.lower()
    if extension == '.vue':
        source = extract_vue_script(content)
        if source.degraded:
            logger.warning("No <script> block in %s, parsing the whole file", file_path)
        return source

    language = LanguageParser.SUPPORTED_LANGUAGES.get(extension, 'javascript')
    return SourceText(code=content.encode('utf-8'), language=language)
