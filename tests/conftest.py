"""Shared fixtures: on-disk sample projects and throwaway project builders."""
from pathlib import Path
from textwrap import dedent

import pytest

from deadly.config import Config


# Fixture directory
FIXTURES_DIR = Path(__file__).parent / 'fixtures' / 'projects'


@pytest.fixture
def write_project(tmp_path):
    """Return a helper that writes {relative path: source} into tmp_path.

    The helper returns the resolved project root.
    """
    root = tmp_path.resolve()

    def _write(files):
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(dedent(content).lstrip('\n'), encoding='utf-8')
        return root

    return _write


@pytest.fixture
def config():
    """Sequential analysis with default alias settings."""
    return Config(workers=1, alias_prefix='@/', source_dir_name='src', extensions='.js,.ts')
