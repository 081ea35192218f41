"""
Filesystem discovery of procedure collections.

Manifesto:
    Registering every collection by hand is busywork that drifts out of
    date. Discovery scans a directory of Python modules, loads each one,
    and keeps every module-level value that is a valid procedure
    collection. Unrelated exports are ignored. Exports that merely look
    like a collection are handled by a configurable policy, while modules
    that fail to load always abort the run.

Architecture:
    ::

        discover_procedures_verbose(path, options)
          │
          ├── resolve path ─────────────► directory_not_found / invalid_file_type
          ├── scan_for_procedure_files()  sorted, excluded dirs skipped,
          │                               symlink loops detected
          ├── DiscoveryPackage(root)      synthetic package, relative imports work
          ├── load_procedure_files()      thread pool, one LoadResult per file
          │     ├── LoadSuccess(collections, invalid_exports)
          │     └── LoadFailure(code, error) ──► always raised
          └── aggregate                    dedupe by identity, apply policy
                └── no collections ─────► no_procedures_found

Examples:
    >>> collections = discover_procedures("app/procedures", recursive=True)
    >>> [c.namespace for c in collections]
    ['posts', 'users']

Tags:
    discovery, importlib, loader, filesystem, proclayer
"""

from __future__ import annotations

import importlib
import importlib.machinery
import importlib.util
import itertools
import os
import sys
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from fnmatch import fnmatch
from pathlib import Path
from types import ModuleType
from typing import Any

from proclayer.core.errors import DiscoveryErrorCode
from proclayer.core.logging import get_logger
from proclayer.discovery.errors import (
    directory_not_found,
    file_load_error,
    invalid_export,
    invalid_file_type,
    no_procedures_found,
    permission_denied,
)
from proclayer.discovery.types import (
    EXCLUDED_DIRECTORIES,
    DiscoveryOptions,
    DiscoveryResult,
    DiscoveryWarning,
    InvalidExport,
    InvalidExportPolicy,
    LoadFailure,
    LoadResult,
    LoadSuccess,
)
from proclayer.procedures.builder import is_procedure_collection
from proclayer.procedures.types import ProcedureCollection

logger = get_logger(__name__)

MODULE_PREFIX = "_proclayer_discovered"
INVALID_COLLECTION_REASON = (
    "has a namespace and procedures but is not a valid procedure collection"
)

_module_counter = itertools.count()


# =============================================================================
# SCANNING
# =============================================================================


def _is_candidate(name: str, extensions: Sequence[str], exclude: Sequence[str]) -> bool:
    if not name.endswith(tuple(extensions)):
        return False
    return not any(fnmatch(name, pattern) for pattern in exclude)


def scan_for_procedure_files(
    directory: str | Path,
    *,
    recursive: bool = False,
    extensions: Sequence[str] = (".py",),
    exclude: Sequence[str] = (),
    _visited: set[Path] | None = None,
) -> list[str]:
    """Return the sorted candidate files under ``directory``.

    Each real directory is visited at most once, so symlink loops terminate.

    Raises:
        DiscoveryError: ``permission_denied`` if a directory cannot be listed
    """
    visited = _visited if _visited is not None else set()
    try:
        real = Path(directory).resolve(strict=True)
    except OSError:
        return []
    if real in visited:
        return []
    visited.add(real)

    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except PermissionError as e:
        raise permission_denied(str(directory), e) from e

    files: list[str] = []
    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=True)
            is_file = not is_dir and entry.is_file(follow_symlinks=True)
        except OSError:
            continue
        if is_dir:
            if recursive and entry.name not in EXCLUDED_DIRECTORIES:
                files.extend(
                    scan_for_procedure_files(
                        entry.path,
                        recursive=True,
                        extensions=extensions,
                        exclude=exclude,
                        _visited=visited,
                    )
                )
        elif is_file and _is_candidate(entry.name, extensions, exclude):
            files.append(entry.path)
    return sorted(files)


# =============================================================================
# LOADING
# =============================================================================


class DiscoveryPackage:
    """Synthetic package rooted at a discovery directory.

    Discovered files load as submodules (``<package>.users``,
    ``<package>.admin.roles``) so relative imports between sibling files
    resolve through the normal import system. Leaving the ``with`` block
    removes the package and every submodule from ``sys.modules``.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.name = f"{MODULE_PREFIX}_{next(_module_counter)}"

    def __enter__(self) -> DiscoveryPackage:
        spec = importlib.machinery.ModuleSpec(self.name, None, is_package=True)
        spec.submodule_search_locations = [str(self.root)]
        sys.modules[self.name] = importlib.util.module_from_spec(spec)
        importlib.invalidate_caches()
        return self

    def __exit__(self, *exc_info: object) -> None:
        prefix = f"{self.name}."
        for key in [k for k in sys.modules if k == self.name or k.startswith(prefix)]:
            sys.modules.pop(key, None)

    def relative_parts(self, file_path: str) -> tuple[str, ...]:
        relative = Path(os.path.relpath(file_path, self.root))
        return (*relative.parent.parts, relative.stem)

    def module_name(self, file_path: str) -> str:
        return ".".join((self.name, *self.relative_parts(file_path)))


def _importable(file_path: str, package: DiscoveryPackage) -> bool:
    # The path finder only sees standard suffixes; dots in a name would
    # split it into extra package levels.
    if Path(file_path).suffix not in importlib.machinery.SOURCE_SUFFIXES:
        return False
    return not any("." in part for part in package.relative_parts(file_path))


def _exec_file(name: str, file_path: str) -> ModuleType:
    parent = name.rpartition(".")[0]
    importlib.import_module(parent)
    loader = importlib.machinery.SourceFileLoader(name, file_path)
    spec = importlib.util.spec_from_file_location(name, file_path, loader=loader)
    if spec is None:
        raise ImportError(f"Cannot create a module spec for {file_path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def _public_exports(module: ModuleType) -> Iterable[tuple[str, Any]]:
    names = getattr(module, "__all__", None)
    if names is None:
        names = [name for name in vars(module) if not name.startswith("_")]
    for name in names:
        yield name, getattr(module, name, None)


def looks_like_collection(value: Any) -> bool:
    """Superficial shape check: a namespace string plus a procedures field."""
    if value is None or isinstance(value, (type, ModuleType)):
        return False
    if isinstance(value, Mapping):
        return isinstance(value.get("namespace"), str) and "procedures" in value
    return isinstance(getattr(value, "namespace", None), str) and hasattr(value, "procedures")


def inspect_module(file_path: str, module: ModuleType) -> LoadSuccess:
    """Split a loaded module's exports into valid collections and look-alikes."""
    collections: list[ProcedureCollection] = []
    invalid: list[InvalidExport] = []
    for name, value in _public_exports(module):
        if is_procedure_collection(value):
            collections.append(value)
        elif looks_like_collection(value):
            invalid.append(InvalidExport(name=name, reason=INVALID_COLLECTION_REASON))
    return LoadSuccess(file_path, tuple(collections), tuple(invalid))


def load_procedure_file(file_path: str, package: DiscoveryPackage | None = None) -> LoadResult:
    """Execute one file as a submodule of ``package``. Never raises for load errors.

    Without a package, the file gets a fresh one rooted at its own
    directory, dropped from ``sys.modules`` once the file is inspected.
    A module a sibling already imported is reused, not executed again.
    """
    if package is None:
        with DiscoveryPackage(Path(file_path).parent) as own:
            return load_procedure_file(file_path, own)

    name = package.module_name(file_path)
    try:
        if _importable(file_path, package):
            module = importlib.import_module(name)
        else:
            module = sys.modules.get(name) or _exec_file(name, file_path)
    except PermissionError as e:
        return LoadFailure(file_path, DiscoveryErrorCode.PERMISSION_DENIED, e)
    except Exception as e:
        return LoadFailure(file_path, DiscoveryErrorCode.FILE_LOAD_ERROR, e)
    return inspect_module(file_path, module)


def load_procedure_files(
    files: Sequence[str],
    package: DiscoveryPackage,
    max_workers: int | None = None,
) -> list[LoadResult]:
    """Load files concurrently into ``package``; results keep the order of ``files``."""
    if not files:
        return []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="proclayer-discovery") as pool:
        return list(pool.map(lambda file_path: load_procedure_file(file_path, package), files))


# =============================================================================
# DISCOVERY
# =============================================================================


def _resolve_options(options: DiscoveryOptions | None, overrides: dict[str, Any]) -> DiscoveryOptions:
    resolved = options or DiscoveryOptions()
    return replace(resolved, **overrides) if overrides else resolved


def discover_procedures_verbose(
    path: str | os.PathLike[str],
    options: DiscoveryOptions | None = None,
    **overrides: Any,
) -> DiscoveryResult:
    """Discover collections and report scanned files, loaded files and warnings.

    Raises:
        DiscoveryError: For a missing path, a file path, an unreadable or
            broken module, an invalid export under the ``throw`` policy, or
            when no collection is found
    """
    opts = _resolve_options(options, overrides)
    root = Path(path)
    if not root.is_absolute():
        root = Path(opts.cwd or os.getcwd()) / root
    root_str = str(root)

    if not root.exists():
        raise directory_not_found(root_str)
    if not root.is_dir():
        raise invalid_file_type(root_str)

    files = scan_for_procedure_files(
        root,
        recursive=opts.recursive,
        extensions=opts.extensions,
        exclude=opts.exclude,
    )
    logger.debug("discovery.scanned", path=root_str, files=len(files))

    collections: list[ProcedureCollection] = []
    seen: set[int] = set()
    loaded: list[str] = []
    warnings: list[DiscoveryWarning] = []

    with DiscoveryPackage(root) as package:
        results = load_procedure_files(files, package)

    for result in results:
        match result:
            case LoadFailure(file_path=file_path, code=code, error=error):
                if code is DiscoveryErrorCode.PERMISSION_DENIED:
                    raise permission_denied(file_path, error) from error
                raise file_load_error(file_path, error) from error

            case LoadSuccess(file_path=file_path, collections=found, invalid_exports=invalid):
                for export in invalid:
                    if opts.on_invalid_export is InvalidExportPolicy.THROW:
                        raise invalid_export(file_path, export.name, export.reason)
                    error = invalid_export(file_path, export.name, export.reason)
                    warnings.append(
                        DiscoveryWarning(
                            file_path=file_path,
                            code=DiscoveryErrorCode.INVALID_EXPORT,
                            message=error.message,
                            export_name=export.name,
                        )
                    )
                    if opts.on_invalid_export is InvalidExportPolicy.WARN:
                        logger.warning(
                            "discovery.invalid_export",
                            file_path=file_path,
                            export_name=export.name,
                            reason=export.reason,
                        )
                for collection in found:
                    if id(collection) not in seen:
                        seen.add(id(collection))
                        collections.append(collection)
                if found:
                    loaded.append(file_path)
                    logger.debug("discovery.file_loaded", file_path=file_path, collections=len(found))

    if not collections:
        raise no_procedures_found(root_str, len(files))

    logger.info(
        "discovery.completed",
        path=root_str,
        scanned=len(files),
        loaded=len(loaded),
        collections=len(collections),
        warnings=len(warnings),
    )
    return DiscoveryResult(
        collections=tuple(collections),
        scanned_files=tuple(files),
        loaded_files=tuple(loaded),
        warnings=tuple(warnings),
    )


def discover_procedures(
    path: str | os.PathLike[str],
    options: DiscoveryOptions | None = None,
    **overrides: Any,
) -> list[ProcedureCollection]:
    """Discover collections under ``path``; see :func:`discover_procedures_verbose`."""
    return list(discover_procedures_verbose(path, options, **overrides).collections)


__all__ = [
    "DiscoveryPackage",
    "discover_procedures",
    "discover_procedures_verbose",
    "scan_for_procedure_files",
    "load_procedure_file",
    "load_procedure_files",
    "inspect_module",
    "looks_like_collection",
]
