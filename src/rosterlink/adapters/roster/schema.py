"""Pydantic models describing roster payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _scalar_to_str(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


class RosterBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EmployeePayload(RosterBaseModel):
    """One roster row. Keys not listed here end up in ``attributes``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    stable_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("stable_id", "stableId", "ZohoID", "zoho_id"),
    )
    display_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("display_name", "displayName", "FullName", "full_name"),
    )
    attributes: dict[str, str] = Field(default_factory=dict)

    _normalize_ids = field_validator("stable_id", "display_name", mode="before")(_scalar_to_str)

    @field_validator("attributes", mode="before")
    @classmethod
    def _stringify_attributes(cls, value: object) -> object:
        if isinstance(value, Mapping):
            items = cast(Mapping[str, object], value).items()
            return {str(key): str(item) for key, item in items if item is not None}
        return value

    @property
    def has_stable_id(self) -> bool:
        return bool(self.stable_id)

    def merged_attributes(self) -> dict[str, str]:
        merged = {
            key: str(value)
            for key, value in (self.model_extra or {}).items()
            if isinstance(value, str | int | float | bool)
        }
        merged.update(self.attributes)
        return merged


class RosterEnvelope(RosterBaseModel):
    """Object-shaped responses wrapping the rows in a list."""

    employees: list[EmployeePayload] = Field(
        validation_alias=AliasChoices("employees", "data", "items", "rows")
    )


_ROWS_ADAPTER: TypeAdapter[list[EmployeePayload]] = TypeAdapter(list[EmployeePayload])


def parse_roster_payload(payload: object) -> list[EmployeePayload]:
    """Validate a decoded JSON document (a bare list or an envelope object)."""

    if isinstance(payload, list):
        return _ROWS_ADAPTER.validate_python(payload)
    return RosterEnvelope.model_validate(payload).employees
