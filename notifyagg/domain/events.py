from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ResultType(str, Enum):
    SUCCEEDED = "Succeeded"
    THROTTLED = "Throttled"
    FAILED = "Failed"


# Producers that serialize the enum by ordinal send 0/1/2 instead of the name.
_RESULT_TYPE_ORDINALS = {index: member for index, member in enumerate(ResultType)}
_RESULT_TYPE_NAMES = {member.value.lower(): member for member in ResultType}


class OutcomeEvent(BaseModel):
    """One recipient's delivery result, or a delayed force-completion signal.

    Wire payloads use camelCase keys; attribute access uses snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    notification_id: str = Field(alias="notificationId", min_length=1)
    result_type: ResultType | None = Field(default=None, alias="resultType")
    force_message_complete: bool = Field(default=False, alias="forceMessageComplete")
    sent_date: datetime | None = Field(default=None, alias="sentDate")

    @field_validator("notification_id", mode="before")
    @classmethod
    def _strip_notification_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("result_type", mode="before")
    @classmethod
    def _coerce_result_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, ResultType):
            return value
        if isinstance(value, bool):
            raise ValueError("resultType must be a name or ordinal")
        if isinstance(value, int):
            if value not in _RESULT_TYPE_ORDINALS:
                raise ValueError(f"unknown resultType ordinal {value}")
            return _RESULT_TYPE_ORDINALS[value]
        if isinstance(value, str):
            member = _RESULT_TYPE_NAMES.get(value.strip().lower())
            if member is None:
                raise ValueError(f"unknown resultType {value!r}")
            return member
        raise ValueError("resultType must be a name or ordinal")

    @field_validator("sent_date")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _require_result_type(self) -> "OutcomeEvent":
        if not self.force_message_complete and self.result_type is None:
            raise ValueError("resultType is required unless forceMessageComplete is set")
        return self