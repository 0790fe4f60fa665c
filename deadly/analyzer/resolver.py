"""Module specifier resolution for JS/Vue sources."""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import StrictResolutionFailure

logger = logging.getLogger(__name__)


def is_directory_specifier(specifier: str) -> bool:
    """True for specifiers that can only mean a directory index ('.', '..', './lib/')."""
    return specifier in ('', '.', '..') or specifier.endswith(('/', '/.', '/..'))


def find_source_root(entry_point: str | Path, dir_name: str = 'src') -> Optional[Path]:
    """Find the closest `src` directory at or above the entry point's directory.

    Args:
        entry_point: Path of the project's entry file
        dir_name: Name of the conventional source directory

    Returns:
        Absolute path of the source root, or None if none exists
    """
    start = Path(entry_point).resolve().parent
    for directory in (start, *start.parents):
        candidate = directory / dir_name
        if candidate.is_dir():
            return candidate
    return None


class ModuleResolver:
    """Turns (referencing file, specifier) into a file on disk.

    Two modes share one search:
    - permissive (`resolve`): not found means the module is external or
      untracked, returns None
    - strict (`resolve_strict`): not found raises StrictResolutionFailure
    """

    CANDIDATE_EXTENSIONS = ('.js', '.ts', '.vue')
    INDEX_EXTENSIONS = ('.js', '.ts')

    def __init__(self, source_root: Optional[str | Path] = None, alias_prefix: str = '@/'):
        """Initialize resolver.

        Args:
            source_root: Directory the alias prefix points to (None disables aliasing)
            alias_prefix: Specifier prefix rewritten to source_root (e.g. '@/')
        """
        self.source_root = Path(source_root).resolve() if source_root else None
        self.alias_prefix = alias_prefix
        self._cache: Dict[Tuple[str, str], Tuple[Optional[str], Tuple[str, ...]]] = {}

    def resolve(self, current_file: str | Path, specifier: str) -> Optional[str]:
        """Permissive resolution.

        Returns:
            Absolute path of the first matching regular file, or None
        """
        resolved, _ = self._lookup(current_file, specifier)
        if resolved is None:
            logger.debug("Untracked module '%s' imported from %s", specifier, current_file)
        return resolved

    def resolve_strict(self, current_file: str | Path, specifier: str) -> str:
        """Strict resolution.

        Raises:
            StrictResolutionFailure: If no candidate file exists
        """
        resolved, tried = self._lookup(current_file, specifier)
        if resolved is None:
            raise StrictResolutionFailure(current_file, specifier, list(tried))
        return resolved

    def _lookup(self, current_file: str | Path, specifier: str) -> Tuple[Optional[str], Tuple[str, ...]]:
        directory = str(Path(current_file).parent)
        key = (directory, specifier)
        if key not in self._cache:
            self._cache[key] = self._search(Path(directory), specifier)
        return self._cache[key]

    def _search(self, directory: Path, specifier: str) -> Tuple[Optional[str], Tuple[str, ...]]:
        if not specifier:
            return None, ()

        relative = specifier
        if self.alias_prefix and specifier.startswith(self.alias_prefix):
            if self.source_root is None:
                return None, ()
            relative = specifier[len(self.alias_prefix):]
            base = self.source_root / relative
        else:
            base = directory / specifier

        tried: List[Path] = []
        # '.', '..' and './utils/' name a directory, never a sibling file
        if not is_directory_specifier(relative):
            # Explicit extension: the path itself
            if base.suffix:
                tried.append(base)
            tried.extend(base.with_name(base.name + ext) for ext in self.CANDIDATE_EXTENSIONS)
        tried.extend(base / f"index{ext}" for ext in self.INDEX_EXTENSIONS)

        for candidate in tried:
            if candidate.is_file():
                return str(candidate.resolve()), tuple(str(p) for p in tried)
        return None, tuple(str(p) for p in tried)
