"""Filesystem discovery of procedure collections."""

from proclayer.discovery.errors import is_discovery_error
from proclayer.discovery.loader import (
    discover_procedures,
    discover_procedures_verbose,
    load_procedure_file,
    scan_for_procedure_files,
)
from proclayer.discovery.types import (
    DiscoveryOptions,
    DiscoveryResult,
    DiscoveryWarning,
    InvalidExportPolicy,
    LoadFailure,
    LoadSuccess,
)

__all__ = [
    "discover_procedures",
    "discover_procedures_verbose",
    "scan_for_procedure_files",
    "load_procedure_file",
    "is_discovery_error",
    "DiscoveryOptions",
    "DiscoveryResult",
    "DiscoveryWarning",
    "InvalidExportPolicy",
    "LoadSuccess",
    "LoadFailure",
]
