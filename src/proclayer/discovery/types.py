"""Discovery options, per-file load outcomes and the aggregated result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from proclayer.core.errors import DiscoveryErrorCode
from proclayer.procedures.types import ProcedureCollection

DEFAULT_EXTENSIONS: tuple[str, ...] = (".py",)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "test_*.py",
    "*_test.py",
    "conftest.py",
    "__init__.py",
    "*.pyi",
)

EXCLUDED_DIRECTORIES: frozenset[str] = frozenset(
    {
        "__pycache__",
        "__tests__",
        "__mocks__",
        ".git",
        ".venv",
        "venv",
        "node_modules",
        "site-packages",
    }
)


class InvalidExportPolicy(str, Enum):
    THROW = "throw"
    WARN = "warn"
    SILENT = "silent"


@dataclass(frozen=True)
class DiscoveryOptions:
    """How to scan and what to do with invalid exports.

    Attributes:
        cwd: Base for a relative search path (default: process working directory)
        recursive: Descend into subdirectories
        extensions: File suffixes to load
        exclude: ``fnmatch`` patterns matched against file names
        on_invalid_export: ``throw``, ``warn`` or ``silent``
    """

    cwd: str | None = None
    recursive: bool = False
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    on_invalid_export: InvalidExportPolicy = InvalidExportPolicy.THROW

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", tuple(self.extensions))
        object.__setattr__(self, "exclude", tuple(self.exclude))
        object.__setattr__(self, "on_invalid_export", InvalidExportPolicy(self.on_invalid_export))


@dataclass(frozen=True)
class InvalidExport:
    name: str
    reason: str


@dataclass(frozen=True, slots=True)
class LoadSuccess:
    """A module loaded; ``collections`` are valid, ``invalid_exports`` only look like one."""

    file_path: str
    collections: tuple[ProcedureCollection, ...] = ()
    invalid_exports: tuple[InvalidExport, ...] = ()


@dataclass(frozen=True, slots=True)
class LoadFailure:
    """A module could not be read or executed."""

    file_path: str
    code: DiscoveryErrorCode
    error: BaseException


LoadResult = Union[LoadSuccess, LoadFailure]


@dataclass(frozen=True)
class DiscoveryWarning:
    file_path: str
    code: DiscoveryErrorCode
    message: str
    export_name: str | None = None


@dataclass(frozen=True)
class DiscoveryResult:
    """Snapshot of one discovery run."""

    collections: tuple[ProcedureCollection, ...]
    scanned_files: tuple[str, ...]
    loaded_files: tuple[str, ...]
    warnings: tuple[DiscoveryWarning, ...] = field(default_factory=tuple)


__all__ = [
    "DEFAULT_EXTENSIONS",
    "DEFAULT_EXCLUDE_PATTERNS",
    "EXCLUDED_DIRECTORIES",
    "InvalidExportPolicy",
    "DiscoveryOptions",
    "InvalidExport",
    "LoadSuccess",
    "LoadFailure",
    "LoadResult",
    "DiscoveryWarning",
    "DiscoveryResult",
]
