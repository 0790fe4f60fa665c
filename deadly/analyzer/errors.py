"""Fatal analysis errors.

Any of these aborts the run: no partial unused-file report is produced.
Degraded parses and untracked specifiers are not errors and never raise.
"""
from pathlib import Path
from typing import List, Optional


class AnalysisError(Exception):
    """Base class for conditions that abort an analysis run."""


class FileNotFound(AnalysisError, FileNotFoundError):
    """The entry point (or a file required by strict resolution) is missing or unreadable."""

    def __init__(self, path: str | Path, reason: str = "File does not exist"):
        self.path = str(path)
        super().__init__(f"{reason}: {self.path}")


class StrictResolutionFailure(AnalysisError):
    """A specifier that must resolve (an `export *` target) could not be found."""

    def __init__(self, file: str | Path, specifier: str, tried: Optional[List[str]] = None):
        self.file = str(file)
        self.specifier = specifier
        self.tried = list(tried or [])
        message = f"Cannot resolve '{specifier}' from {self.file}"
        if self.tried:
            message += f". Tried {', '.join(self.tried)}"
        super().__init__(message)


class ExportConflict(AnalysisError):
    """An `export *` merge would overwrite an export that already exists."""

    def __init__(self, file: str | Path, name: str, source: str | Path,
                 existing_source: str | Path):
        self.file = str(file)
        self.name = name
        self.source = str(source)
        self.existing_source = str(existing_source)
        super().__init__(
            f"Export name conflict: '{name}' in {self.file} "
            f"from {self.source} collides with the export from {self.existing_source}"
        )
