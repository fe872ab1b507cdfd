"""
Tri-state values for partial updates.

A ``Patch`` field is either unspecified (leave the stored value alone),
explicitly null (clear the stored value) or carries a value (overwrite).
Plain ``Optional`` cannot tell the first two apart once a request body
has been parsed, ``Patch`` can:

    class RenameCommand(PatchModel):
        description: Patch[str] = patch_field()

    RenameCommand.model_validate({})                       # unspecified
    RenameCommand.model_validate({"description": None})    # null
    RenameCommand.model_validate({"description": "x"})     # value
"""

from __future__ import annotations

import enum
from typing import Any, Generic, TypeVar, get_args

from pydantic import BaseModel, Field, model_serializer
from pydantic_core import core_schema

T = TypeVar("T")


class UnspecifiedValueError(ValueError):
    """Raised when reading the value of an unspecified Patch."""


class PatchState(enum.Enum):
    UNSPECIFIED = "unspecified"
    NULL = "null"
    VALUE = "value"


class Patch(Generic[T]):
    __slots__ = ("_state", "_value")

    def __init__(self, value: T | None = None, *, state: PatchState | None = None):
        if state is None:
            state = PatchState.NULL if value is None else PatchState.VALUE
        if state is not PatchState.VALUE:
            value = None
        self._state = state
        self._value = value

    # ── Constructors ──────────────────────────────────────────────────────────

    @classmethod
    def unspecified(cls) -> Patch[Any]:
        return cls(state=PatchState.UNSPECIFIED)

    @classmethod
    def null(cls) -> Patch[Any]:
        return cls(state=PatchState.NULL)

    @classmethod
    def of(cls, value: T | None) -> Patch[T]:
        """Wrap a value; ``None`` becomes an explicit null."""
        return cls(value)

    # ── Accessors ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> PatchState:
        return self._state

    @property
    def is_specified(self) -> bool:
        return self._state is not PatchState.UNSPECIFIED

    @property
    def is_null(self) -> bool:
        return self._state is PatchState.NULL

    @property
    def value(self) -> T | None:
        if self._state is PatchState.UNSPECIFIED:
            raise UnspecifiedValueError("Patch value was not specified")
        return self._value

    def get_or_default(self, fallback: T | None = None) -> T | None:
        return self._value if self.is_specified else fallback

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Patch):
            return NotImplemented
        return self._state is other._state and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._state, self._value))

    def __repr__(self) -> str:
        if self._state is PatchState.VALUE:
            return f"Patch({self._value!r})"
        return f"Patch.{self._state.value}()"

    # ── Pydantic integration ──────────────────────────────────────────────────

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler) -> core_schema.CoreSchema:
        args = get_args(source_type)
        inner_schema = handler.generate_schema(args[0]) if args else core_schema.any_schema()

        def validate(value: Any, validate_inner) -> Patch:
            if isinstance(value, Patch):
                return value
            if value is None:
                return cls.null()
            return cls.of(validate_inner(value))

        def serialize(patch: Patch) -> Any:
            return patch.get_or_default(None)

        return core_schema.no_info_wrap_validator_function(
            validate,
            core_schema.nullable_schema(inner_schema),
            serialization=core_schema.plain_serializer_function_ser_schema(
                serialize,
                return_schema=core_schema.nullable_schema(inner_schema),
            ),
        )


def patch_field(**kwargs: Any) -> Any:
    """Field declaration for a Patch attribute that defaults to unspecified."""
    return Field(default_factory=Patch.unspecified, **kwargs)


class PatchModel(BaseModel):
    """Base model that leaves unspecified Patch fields out of its output."""

    @model_serializer(mode="wrap")
    def _omit_unspecified(self, handler):
        data = handler(self)
        for name, field_info in type(self).model_fields.items():
            field_value = getattr(self, name, None)
            if isinstance(field_value, Patch) and not field_value.is_specified:
                data.pop(name, None)
                if field_info.alias:
                    data.pop(field_info.alias, None)
        return data

    def specified_fields(self) -> set[str]:
        return {
            name
            for name in type(self).model_fields
            if not isinstance(getattr(self, name), Patch) or getattr(self, name).is_specified
        }
