from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationInfo
from pydantic.alias_generators import to_camel

T_Model = TypeVar("T_Model", bound="RecordModel")

STORED_CONTEXT_KEY = "stored"


class RecordModel(BaseModel):
    """Immutable model whose storage form uses camelCase column names."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls: Type[T_Model], data: Mapping[str, Any] | BaseModel) -> T_Model:
        return cls.model_validate(data)

    @classmethod
    def from_stored_row(cls: Type[T_Model], row: Mapping[str, Any]) -> T_Model:
        """Validate a row read back from an image.

        Columns the model does not know are ignored, and validators see
        ``{"stored": True}`` in their context so they can accept values
        that new input may not carry.
        """
        known = {name for name in cls.model_fields} | {
            field.alias for field in cls.model_fields.values() if field.alias
        }
        data = {key: value for key, value in row.items() if key in known}
        return cls.model_validate(data, context={STORED_CONTEXT_KEY: True})


def is_stored(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get(STORED_CONTEXT_KEY))


def ensure_non_empty_text(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value
