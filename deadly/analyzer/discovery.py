"""Candidate file discovery for a JS/Vue project."""
from pathlib import Path
from typing import Iterable, List, Optional


# Dependency, build and tooling directories that never hold project sources
DEFAULT_EXCLUDE_DIRS = {
    'node_modules', 'bower_components', 'jspm_packages',
    'dist', 'build', 'out', 'coverage',
    '.git', '.nuxt', '.next', '.output', '.cache', '.vite',
}

# Test files are run by a test runner, never imported by the app
TEST_SUFFIXES = ('.spec', '.test', '.unit')

DEFAULT_EXTENSIONS = ('.js', '.ts')


def is_test_file(file_path: Path) -> bool:
    """True for `name.spec.js`, `name.test.ts`, `name.unit.js` and friends."""
    return file_path.stem.lower().endswith(TEST_SUFFIXES)


def is_reportable(file_path: str | Path, root: str | Path,
                  exclude_dirs: Optional[Iterable[str]] = None) -> bool:
    """True if file_path lies under root and outside every excluded directory."""
    file_path = Path(file_path)
    try:
        relative_parts = file_path.relative_to(root).parts[:-1]
    except ValueError:
        return False
    excluded = DEFAULT_EXCLUDE_DIRS if exclude_dirs is None else set(exclude_dirs)
    return not any(part in excluded for part in relative_parts)


def iter_source_files(root: str | Path,
                      extensions: Iterable[str] = DEFAULT_EXTENSIONS,
                      exclude_dirs: Optional[Iterable[str]] = None) -> List[Path]:
    """Discover candidate source files under root.

    Args:
        root: Project directory to scan recursively
        extensions: File extensions to include (e.g. ['.js', '.ts'])
        exclude_dirs: Directory names to skip; defaults to DEFAULT_EXCLUDE_DIRS

    Returns:
        Sorted list of absolute file paths
    """
    root = Path(root).resolve()
    extensions = {ext.lower() for ext in extensions}
    if exclude_dirs is not None:
        exclude_dirs = set(exclude_dirs)

    files = set()
    for file_path in root.rglob('*'):
        if not is_reportable(file_path, root, exclude_dirs):
            continue
        if file_path.suffix.lower() not in extensions or not file_path.is_file():
            continue
        if is_test_file(file_path):
            continue
        files.add(file_path.resolve())

    return sorted(files)
