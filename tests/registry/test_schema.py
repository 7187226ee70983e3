"""Tests for argument schemas and validation."""

import pytest

from toolhost.protocol.errors import INVALID_PARAMS, InvalidArgument
from toolhost.registry.schema import EMPTY_SCHEMA, FieldSpec, InputSchema


@pytest.fixture
def greeting_schema():
    return InputSchema.of(
        FieldSpec("name", description="Who to greet", required=True),
        FieldSpec("style", enum=("formal", "casual"), default="casual"),
        FieldSpec("times", "integer"),
    )


class TestFieldSpec:
    """Tests for FieldSpec construction and serialization."""

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="Unsupported field type"):
            FieldSpec("x", "date")

    def test_rejects_empty_enum(self):
        with pytest.raises(ValueError, match="must not be empty"):
            FieldSpec("x", enum=())

    def test_to_dict(self):
        spec = FieldSpec("op", enum=["add", "divide"], title="Operation", default="add")
        assert spec.to_dict() == {
            "type": "string",
            "title": "Operation",
            "enum": ["add", "divide"],
            "default": "add",
        }

    def test_from_dict_round_trips_default_of_none(self):
        spec = FieldSpec.from_dict("x", {"type": "string", "default": None})
        assert spec.has_default
        assert spec.default is None


class TestInputSchema:
    """Tests for InputSchema validation."""

    def test_to_dict_is_json_schema_object(self, greeting_schema):
        schema = greeting_schema.to_dict()
        assert schema["type"] == "object"
        assert list(schema["properties"]) == ["name", "style", "times"]
        assert schema["required"] == ["name"]

    def test_empty_schema_has_no_required_key(self):
        assert EMPTY_SCHEMA.to_dict() == {"type": "object", "properties": {}}

    def test_missing_required_field(self, greeting_schema):
        with pytest.raises(InvalidArgument) as exc_info:
            greeting_schema.validate({})
        assert exc_info.value.code == INVALID_PARAMS
        assert exc_info.value.field == "name"

    def test_null_counts_as_absent(self, greeting_schema):
        with pytest.raises(InvalidArgument):
            greeting_schema.validate({"name": None})

    def test_default_applied_and_unknown_dropped(self, greeting_schema):
        result = greeting_schema.validate({"name": "Ada", "extra": 1})
        assert result == {"name": "Ada", "style": "casual"}

    def test_optional_without_default_left_out(self, greeting_schema):
        assert "times" not in greeting_schema.validate({"name": "Ada"})

    def test_enum_mismatch(self, greeting_schema):
        with pytest.raises(InvalidArgument, match="must be one of"):
            greeting_schema.validate({"name": "Ada", "style": "rude"})

    def test_wrong_type(self, greeting_schema):
        with pytest.raises(InvalidArgument, match="must be of type string"):
            greeting_schema.validate({"name": 42})

    def test_integral_float_narrowed_to_int(self, greeting_schema):
        result = greeting_schema.validate({"name": "Ada", "times": 3.0})
        assert result["times"] == 3
        assert isinstance(result["times"], int)

    def test_fractional_float_rejected_for_integer(self, greeting_schema):
        with pytest.raises(InvalidArgument):
            greeting_schema.validate({"name": "Ada", "times": 2.5})

    def test_number_rejects_bool(self):
        schema = InputSchema.of(FieldSpec("a", "number", required=True))
        with pytest.raises(InvalidArgument):
            schema.validate({"a": True})

    def test_number_accepts_int_and_float(self):
        schema = InputSchema.of(FieldSpec("a", "number", required=True))
        assert schema.validate({"a": 6}) == {"a": 6}
        assert schema.validate({"a": 1.5}) == {"a": 1.5}

    def test_number_rejects_non_finite(self):
        schema = InputSchema.of(FieldSpec("a", "number", required=True))
        with pytest.raises(InvalidArgument, match="finite"):
            schema.validate({"a": float("inf")})

    def test_arguments_must_be_object(self, greeting_schema):
        with pytest.raises(InvalidArgument, match="must be an object"):
            greeting_schema.validate(["Ada"])

    def test_duplicate_field_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            InputSchema.of(FieldSpec("a"), FieldSpec("a"))

    def test_problems_lists_every_mismatch(self, greeting_schema):
        problems = greeting_schema.problems({"style": "rude", "times": "x"})
        assert len(problems) == 3

    def test_problems_empty_for_valid_payload(self, greeting_schema):
        assert greeting_schema.problems({"name": "Ada"}) == []

    def test_from_dict(self):
        schema = InputSchema.from_dict(
            {
                "type": "object",
                "properties": {"a": {"type": "number"}, "b": {"type": "string"}},
                "required": ["a"],
            }
        )
        assert schema.required == ["a"]
        assert schema.get("b").type == "string"
