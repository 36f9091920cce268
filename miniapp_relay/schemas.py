"""Pydantic models for data arriving from the Mini App.

All models validate in strict mode: JSON types must match exactly, nothing is
coerced. Optional fields may be omitted but not sent as null. Unknown keys are
ignored so newer Mini App builds can add fields.
"""

from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class _StrictModel(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name not in cls.nullable_fields:
            raise ValueError("must not be null")
        return value


class _CamelModel(_StrictModel):
    # Mini App sends camelCase keys; only those are accepted
    model_config = ConfigDict(alias_generator=to_camel)


class WebAppUser(_StrictModel):
    """The ``user`` object embedded in initData."""

    id: int
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None


class Envelope(_CamelModel):
    """Outer structure of every Mini App event."""

    nullable_fields: ClassVar[frozenset[str]] = frozenset({"payload"})

    action: str = Field(min_length=1)
    timestamp: str | None = None
    payload: Any = None
    init_data: str = Field(min_length=1)


def validate_envelope(raw: object) -> Envelope:
    """Validate the decoded JSON document. Raises pydantic.ValidationError."""
    return Envelope.model_validate(raw)


# --- Per-action payloads ---

class CallInitiatedPayload(_CamelModel):
    call_sid: str = Field(min_length=1)
    to: Annotated[str, Field(min_length=1)] | None = None
    status: str | None = None


class CallEndedPayload(_CamelModel):
    call_sid: str = Field(min_length=1)
    status: str = Field(min_length=1)
    duration: Annotated[float, Field(ge=0, allow_inf_nan=False)] | None = None


class SmsSentPayload(_CamelModel):
    phone_number: str = Field(min_length=1)
    message_id: str | None = None


class UserAddedPayload(_CamelModel):
    user_id: str = Field(min_length=1)
    name: str | None = None
    username: str | None = None


class UserRemovedPayload(_CamelModel):
    user_id: str = Field(min_length=1)
