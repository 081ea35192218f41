"""
Schema contract and the pydantic adapter.

The procedure layer never inspects a schema's internals. It only calls:

- ``parse(value)``: returns the parsed value or raises
- ``json_schema()``: optional structural-introspection hook used by the
  API description generator

Any object with a ``parse`` method satisfies the contract. pydantic models
and plain type annotations (``list[int]``, ``dict[str, str]``) are wrapped in
:class:`PydanticSchema` automatically by :func:`as_schema`.

Examples:
    >>> from pydantic import BaseModel
    >>> class GetUser(BaseModel):
    ...     id: str
    >>> schema = as_schema(GetUser)
    >>> schema.parse({"id": "123"}).id
    '123'
    >>> schema.json_schema()["required"]
    ['id']
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from proclayer.core.errors import ConstructionError, ProcedureValidationError

ROOT_FIELD = "_root"
DEFAULT_REF_TEMPLATE = "#/$defs/{model}"


@runtime_checkable
class Schema(Protocol):
    """Validation contract consumed by the builder and the engine."""

    def parse(self, value: Any) -> Any: ...


class PydanticSchema:
    """Adapts a pydantic model or type annotation to the :class:`Schema` contract."""

    def __init__(self, type_: Any):
        self.type = type_
        self._adapter = TypeAdapter(type_)

    def parse(self, value: Any) -> Any:
        return self._adapter.validate_python(value)

    def json_schema(self, ref_template: str = DEFAULT_REF_TEMPLATE) -> dict[str, Any]:
        return self._adapter.json_schema(ref_template=ref_template)

    def __repr__(self) -> str:
        name = getattr(self.type, "__name__", repr(self.type))
        return f"PydanticSchema({name})"


def _is_model_class(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, BaseModel)


def as_schema(schema: Any) -> Schema:
    """Normalize a user-supplied schema to the :class:`Schema` contract.

    Raises:
        ConstructionError: If the value is neither a schema nor a type pydantic understands
    """
    if _is_model_class(schema):
        return PydanticSchema(schema)
    if not isinstance(schema, type) and callable(getattr(schema, "parse", None)):
        return schema
    try:
        return PydanticSchema(schema)
    except TypeError as e:  # PydanticSchemaGenerationError is a TypeError
        raise ConstructionError(
            f"Unsupported schema: {schema!r}",
            fix="Pass a pydantic model, a type annotation, or an object with a parse() method",
            cause=e,
        ) from e


def _format_loc(loc: tuple[Any, ...]) -> str:
    if not loc:
        return ROOT_FIELD
    return ".".join(str(part) for part in loc)


def validation_fields(error: BaseException) -> dict[str, str]:
    """Extract per-field messages from a schema failure."""
    if isinstance(error, PydanticValidationError):
        fields: dict[str, str] = {}
        for item in error.errors():
            key = _format_loc(tuple(item.get("loc", ())))
            # first message per field wins
            fields.setdefault(key, item.get("msg", "Invalid value"))
        return fields
    if isinstance(error, ProcedureValidationError):
        return dict(error.fields)
    return {ROOT_FIELD: str(error) or error.__class__.__name__}


def parse_input(schema: Schema, value: Any) -> Any:
    """Run ``schema.parse`` and convert any failure to :class:`ProcedureValidationError`."""
    try:
        return schema.parse(value)
    except ProcedureValidationError:
        raise
    except Exception as e:
        raise ProcedureValidationError(
            "Input validation failed",
            fields=validation_fields(e),
            cause=e,
        ) from e


def json_schema_of(schema: Schema | None, ref_template: str | None = None) -> dict[str, Any] | None:
    """Return the JSON schema of ``schema`` if it exposes the introspection hook."""
    if schema is None:
        return None
    hook = getattr(schema, "json_schema", None)
    if not callable(hook):
        return None
    if ref_template is not None and isinstance(schema, PydanticSchema):
        return hook(ref_template=ref_template)
    return hook()


__all__ = [
    "Schema",
    "PydanticSchema",
    "as_schema",
    "parse_input",
    "validation_fields",
    "json_schema_of",
    "ROOT_FIELD",
]
