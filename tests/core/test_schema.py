"""
Tests for the schema contract and pydantic adapter.
"""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from proclayer.core.errors import ConstructionError, ProcedureValidationError
from proclayer.core.schema import (
    ROOT_FIELD,
    PydanticSchema,
    as_schema,
    json_schema_of,
    parse_input,
    validation_fields,
)


class Address(BaseModel):
    city: str


class Person(BaseModel):
    name: str
    age: int
    address: Address | None = None


class UpperSchema:
    """Custom schema with only ``parse``."""

    def parse(self, value):
        if not isinstance(value, str):
            raise ValueError("expected a string")
        return value.upper()


class TestAsSchema:
    def test_model_class_wrapped(self):
        schema = as_schema(Person)
        assert isinstance(schema, PydanticSchema)
        assert schema.parse({"name": "a", "age": "3"}).age == 3

    def test_annotation_wrapped(self):
        assert as_schema(list[int]).parse(["1", 2]) == [1, 2]

    def test_custom_schema_passthrough(self):
        custom = UpperSchema()
        assert as_schema(custom) is custom

    def test_unsupported_raises(self):
        with pytest.raises(ConstructionError):
            as_schema(object())


class TestParseInput:
    def test_success(self):
        assert parse_input(as_schema(Person), {"name": "a", "age": 1}).name == "a"

    def test_pydantic_failure_fields(self):
        with pytest.raises(ProcedureValidationError) as exc_info:
            parse_input(as_schema(Person), {"name": "a", "age": "old"})
        assert set(exc_info.value.fields) == {"age"}

    def test_nested_location_dotted(self):
        with pytest.raises(ProcedureValidationError) as exc_info:
            parse_input(as_schema(Person), {"name": "a", "age": 1, "address": {}})
        assert "address.city" in exc_info.value.fields

    def test_custom_failure_reported_at_root(self):
        with pytest.raises(ProcedureValidationError) as exc_info:
            parse_input(UpperSchema(), 5)
        assert exc_info.value.fields == {ROOT_FIELD: "expected a string"}

    def test_root_failure(self):
        fields = validation_fields(ValueError(""))
        assert fields == {ROOT_FIELD: "ValueError"}


class TestJsonSchemaOf:
    def test_none(self):
        assert json_schema_of(None) is None

    def test_without_hook(self):
        assert json_schema_of(UpperSchema()) is None

    def test_model(self):
        schema = json_schema_of(as_schema(Person))
        assert schema["required"] == ["name", "age"]
        assert "$defs" in schema

    def test_ref_template(self):
        schema = json_schema_of(as_schema(Person), ref_template="#/components/schemas/{model}")
        refs = str(schema["properties"]["address"])
        assert "#/components/schemas/Address" in refs
