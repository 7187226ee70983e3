"""Argument schemas and validation for capability descriptors."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator

from toolhost.protocol.errors import InvalidArgument

FIELD_TYPES = ("string", "number", "integer", "boolean", "object", "array")


class _NoDefault:
    """Marker for fields without a default value."""

    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class FieldSpec:
    """
    One named argument in an input or output schema.

    Serialized as a JSON Schema property. `required`, `enum` and
    `default` drive validation; `title` and `description` are for display.
    """

    name: str
    type: str = "string"
    description: str | None = None
    title: str | None = None
    required: bool = False
    enum: tuple[Any, ...] | None = None
    default: Any = NO_DEFAULT

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("field name is required")
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unsupported field type: {self.type}")
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))
            if not self.enum:
                raise ValueError(f"enum for '{self.name}' must not be empty")

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON Schema property."""
        prop: dict[str, Any] = {"type": self.type}
        if self.title is not None:
            prop["title"] = self.title
        if self.description is not None:
            prop["description"] = self.description
        if self.enum is not None:
            prop["enum"] = list(self.enum)
        if self.has_default:
            prop["default"] = self.default
        return prop

    @classmethod
    def from_dict(cls, name: str, prop: dict[str, Any], required: bool = False) -> "FieldSpec":
        """Create from a JSON Schema property."""
        enum = prop.get("enum")
        return cls(
            name=name,
            type=prop.get("type", "string"),
            description=prop.get("description"),
            title=prop.get("title"),
            required=required,
            enum=tuple(enum) if enum is not None else None,
            default=prop["default"] if "default" in prop else NO_DEFAULT,
        )

    def check(self, value: Any) -> Any:
        """
        Check a value against this field.

        Returns:
            The value, with integral floats narrowed to int for
            integer fields.

        Raises:
            InvalidArgument: On a type or enum mismatch.
        """
        value = _check_type(self.name, self.type, value)
        if self.enum is not None and value not in self.enum:
            allowed = ", ".join(str(v) for v in self.enum)
            raise InvalidArgument(
                self.name,
                f"'{self.name}' must be one of: {allowed} (got {value!r})",
            )
        return value


def _check_type(name: str, type_name: str, value: Any) -> Any:
    # bool is an int subclass, so it is excluded from the numeric checks.
    if type_name == "string":
        ok = isinstance(value, str)
    elif type_name == "boolean":
        ok = isinstance(value, bool)
    elif type_name == "number":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        if ok and isinstance(value, float) and not math.isfinite(value):
            raise InvalidArgument(name, f"'{name}' must be a finite number")
    elif type_name == "integer":
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif type_name == "object":
        ok = isinstance(value, dict)
    else:
        ok = isinstance(value, list)

    if not ok:
        raise InvalidArgument(
            name,
            f"'{name}' must be of type {type_name} (got {type(value).__name__})",
        )
    return value


@dataclass(frozen=True)
class InputSchema:
    """
    Flat object schema: an ordered set of named fields.

    Used for tool input and output schemas and for elicitation forms.
    """

    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in schema: {names}")

    @classmethod
    def of(cls, *fields: FieldSpec) -> "InputSchema":
        return cls(fields=fields)

    @property
    def required(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def get(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON Schema object."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {f.name: f.to_dict() for f in self.fields},
        }
        if self.required:
            schema["required"] = self.required
        return schema

    @classmethod
    def from_dict(cls, schema: dict[str, Any]) -> "InputSchema":
        """Create from a flat JSON Schema object."""
        required = set(schema.get("required", []))
        properties = schema.get("properties", {})
        return cls(
            fields=tuple(
                FieldSpec.from_dict(name, prop, required=name in required)
                for name, prop in properties.items()
            )
        )

    def validate(self, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """
        Validate raw arguments.

        Required fields must be present and well typed. Unknown fields are
        dropped. Absent (or null) optional fields take their default when
        one is declared and are left out otherwise.

        Returns:
            A new dict holding only declared fields.

        Raises:
            InvalidArgument: On the first problem found.
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidArgument(None, "arguments must be an object")

        validated: dict[str, Any] = {}
        for spec in self.fields:
            value = arguments.get(spec.name)
            if value is None:
                if spec.required:
                    raise InvalidArgument(
                        spec.name, f"missing required field '{spec.name}'"
                    )
                if spec.has_default:
                    validated[spec.name] = spec.default
                continue
            validated[spec.name] = spec.check(value)
        return validated

    def problems(self, payload: Any) -> list[str]:
        """List every way a payload fails this schema (empty when it conforms)."""
        if not isinstance(payload, dict):
            return ["payload must be an object"]
        found: list[str] = []
        for spec in self.fields:
            if payload.get(spec.name) is None:
                if spec.required:
                    found.append(f"missing required field '{spec.name}'")
                continue
            try:
                spec.check(payload[spec.name])
            except InvalidArgument as e:
                found.append(e.details)
        return found


EMPTY_SCHEMA = InputSchema()
