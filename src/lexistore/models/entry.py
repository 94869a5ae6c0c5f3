from typing import Any, Mapping

from pydantic import Field, ValidationInfo, field_validator, model_validator

from lexistore.models.base import RecordModel, blank_to_none, ensure_non_empty_text, is_stored
from lexistore.models.enums import EntryStatus

_ISSUE_KEYS = ("validation_issue", "validationIssue")


def _drop_issue_unless_invalid(data: Any) -> Any:
    if isinstance(data, Mapping):
        if data.get("status") != EntryStatus.INVALID:
            data = {key: value for key, value in data.items() if key not in _ISSUE_KEYS}
    return data


def _coerce_status(value: Any) -> Any:
    if value is None or value == "":
        return EntryStatus.UNCHECKED
    return value


class Entry(RecordModel):
    """One headword reading extracted from a scanned lexicon page."""

    id: str
    hebrew_word: str
    hebrew_consonantal: str | None = None
    transliteration: str | None = None
    part_of_speech: str = ""
    definition: str = ""
    root: str | None = None
    is_root: bool = False
    strongs_numbers: str = ""
    source_page: str | None = None
    source_url: str | None = None
    date_added: int | None = Field(default=None, ge=0)
    status: EntryStatus = EntryStatus.UNCHECKED
    validation_issue: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_validation_issue(cls, data: Any) -> Any:
        return _drop_issue_unless_invalid(data)

    @field_validator("hebrew_word", mode="before")
    @classmethod
    def _stored_headword_may_be_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and is_stored(info):
            return ""
        return value

    @field_validator("id", "hebrew_word")
    @classmethod
    def _ensure_non_empty(cls, value: str, info: ValidationInfo) -> str:
        # Images written by older digitizer versions can hold blank headwords.
        if info.field_name == "hebrew_word" and is_stored(info):
            return value
        return ensure_non_empty_text(value, info.field_name or "value")

    @field_validator(
        "hebrew_consonantal",
        "transliteration",
        "root",
        "source_page",
        "source_url",
        "validation_issue",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return blank_to_none(value)

    @field_validator("part_of_speech", "definition", "strongs_numbers", mode="before")
    @classmethod
    def _none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_root", mode="before")
    @classmethod
    def _coerce_is_root(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return _coerce_status(value)


class EntryValidation(RecordModel):
    """Outcome of a validation or correction pass for a single entry."""

    id: str
    status: EntryStatus
    validation_issue: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_validation_issue(cls, data: Any) -> Any:
        return _drop_issue_unless_invalid(data)

    @field_validator("id")
    @classmethod
    def _ensure_id(cls, value: str) -> str:
        return ensure_non_empty_text(value, "id")

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return _coerce_status(value)


__all__ = ["Entry", "EntryValidation"]
