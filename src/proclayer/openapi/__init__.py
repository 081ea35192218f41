"""API description generation."""

from proclayer.openapi.generator import OPENAPI_VERSION, generate_openapi

__all__ = ["generate_openapi", "OPENAPI_VERSION"]
