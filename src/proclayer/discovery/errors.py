"""Factories for discovery errors, one per :class:`DiscoveryErrorCode`."""

from __future__ import annotations

from proclayer.core.errors import DiscoveryError, DiscoveryErrorCode


def directory_not_found(path: str) -> DiscoveryError:
    return DiscoveryError(
        DiscoveryErrorCode.DIRECTORY_NOT_FOUND,
        f"Procedures directory not found: {path}",
        file_path=path,
        fix=f"Create the directory {path} or pass the path of an existing procedures directory",
    )


def invalid_file_type(path: str) -> DiscoveryError:
    return DiscoveryError(
        DiscoveryErrorCode.INVALID_FILE_TYPE,
        f"Expected a directory but got a file: {path}",
        file_path=path,
        fix="Pass the directory that contains the procedure modules, not a single module",
    )


def no_procedures_found(path: str, scanned_files: int) -> DiscoveryError:
    if scanned_files == 0:
        message = f"No procedure files found in {path}"
        fix = "Add a module that exports a collection, e.g. users = define_procedures('users', {...})"
    else:
        message = f"Scanned {scanned_files} file(s) in {path} but none export a procedure collection"
        fix = "Export the result of define_procedures(namespace, {...}) at module level"
    return DiscoveryError(
        DiscoveryErrorCode.NO_PROCEDURES_FOUND,
        message,
        file_path=path,
        fix=fix,
    ).with_context(scanned_files=scanned_files)


def invalid_export(path: str, export_name: str, reason: str) -> DiscoveryError:
    return DiscoveryError(
        DiscoveryErrorCode.INVALID_EXPORT,
        f"Invalid export {export_name!r} in {path}: {reason}",
        file_path=path,
        fix="Build every procedure with procedure()...query()/mutation() and group them with define_procedures()",
    ).with_context(export_name=export_name)


def file_load_error(path: str, cause: BaseException) -> DiscoveryError:
    return DiscoveryError(
        DiscoveryErrorCode.FILE_LOAD_ERROR,
        f"Failed to load {path}: {type(cause).__name__}: {cause}",
        file_path=path,
        fix="Fix the syntax or import-time error in the module, or exclude it from discovery",
        cause=cause,
    )


def permission_denied(path: str, cause: BaseException | None = None) -> DiscoveryError:
    return DiscoveryError(
        DiscoveryErrorCode.PERMISSION_DENIED,
        f"Permission denied: cannot read {path}",
        file_path=path,
        fix="Check the file permissions of the procedures directory",
        cause=cause,
    )


def is_discovery_error(value: object) -> bool:
    return isinstance(value, DiscoveryError)


__all__ = [
    "directory_not_found",
    "invalid_file_type",
    "no_procedures_found",
    "invalid_export",
    "file_load_error",
    "permission_denied",
    "is_discovery_error",
]
